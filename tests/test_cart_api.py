import uuid
from decimal import Decimal

from storefront.core.config import get_settings
from storefront.core.identity import OwnerRef
from storefront.repositories.cart_repo import CartRepository

settings = get_settings()
HEADER = settings.CART_SESSION_HEADER


def _session_headers() -> dict[str, str]:
    return {HEADER: str(uuid.uuid4())}


def test_add_update_remove_flow(client, add_kit):
    basic = add_kit(name="Basic Water Test", price="49.99")
    metals = add_kit(name="Heavy Metals Panel", price="89.99")
    headers = _session_headers()

    resp = client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(basic.id), "quantity": 2},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["preview_open"] is True
    assert Decimal(data["total"]) == Decimal("99.98")

    resp = client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(metals.id)},
        headers=headers,
    )
    data = resp.json()
    assert Decimal(data["total"]) == Decimal("189.97")
    lines = {item["test_kit_id"]: item for item in data["items"]}
    basic_line = lines[str(basic.id)]["line_id"]
    metals_line = lines[str(metals.id)]["line_id"]

    resp = client.patch(
        f"/api/v1/cart/items/{metals_line}",
        json={"quantity": 0},
        headers=headers,
    )
    assert resp.status_code == 200
    assert Decimal(resp.json()["total"]) == Decimal("189.97")

    resp = client.delete(f"/api/v1/cart/items/{basic_line}", headers=headers)
    assert Decimal(resp.json()["total"]) == Decimal("89.99")

    resp = client.get("/api/v1/cart", headers=headers)
    assert resp.json()["total_quantity"] == 1


def test_add_validates_payload(client, add_kit):
    kit = add_kit()

    resp = client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(kit.id), "quantity": 0},
        headers=_session_headers(),
    )
    assert resp.status_code == 422

    resp = client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(uuid.uuid4())},
        headers=_session_headers(),
    )
    assert resp.status_code == 404


def test_add_beyond_stock_is_400(client, add_kit):
    kit = add_kit(stock=1)

    resp = client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(kit.id), "quantity": 2},
        headers=_session_headers(),
    )

    assert resp.status_code == 400


def test_sessions_are_isolated(client, add_kit):
    kit = add_kit()
    mine = _session_headers()

    client.post("/api/v1/cart/items", json={"test_kit_id": str(kit.id)}, headers=mine)

    assert client.get("/api/v1/cart", headers=_session_headers()).json()["items"] == []
    assert len(client.get("/api/v1/cart", headers=mine).json()["items"]) == 1


def test_clear_cart(client, add_kit):
    kit = add_kit()
    headers = _session_headers()
    client.post("/api/v1/cart/items", json={"test_kit_id": str(kit.id)}, headers=headers)

    resp = client.delete("/api/v1/cart", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["items"] == []
    assert resp.json()["cart_id"] is None


def test_merge_endpoint(client, add_kit, add_user, auth_headers):
    kit = add_kit()
    user = add_user()
    anon = _session_headers()
    client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(kit.id), "quantity": 3},
        headers=anon,
    )

    resp = client.post("/api/v1/cart/merge", headers={**anon, **auth_headers(user)})

    assert resp.status_code == 200
    data = resp.json()
    assert data["retired_session_id"] == anon[HEADER]
    assert data["merged_lines"] == 1
    assert data["cart"]["owner_kind"] == "user"
    assert data["cart"]["total_quantity"] == 3

    assert client.get("/api/v1/cart", headers=anon).json()["items"] == []
    mine = client.get("/api/v1/cart", headers=auth_headers(user)).json()
    assert mine["total_quantity"] == 3


def test_merge_needs_session_and_token(client, add_user, auth_headers):
    user = add_user()

    assert client.post("/api/v1/cart/merge", headers=_session_headers()).status_code == 401
    assert client.post("/api/v1/cart/merge", headers=auth_headers(user)).status_code == 400


def test_catalog_lists_active_kits(client, add_kit):
    add_kit(name="Nitrate Test")
    add_kit(name="Arsenic Test")
    hidden = add_kit(name="Old Kit", is_active=False)

    resp = client.get("/api/v1/test-kits")

    assert resp.status_code == 200
    assert [k["name"] for k in resp.json()] == ["Arsenic Test", "Nitrate Test"]
    assert client.get(f"/api/v1/test-kits/{hidden.id}").status_code == 404


def test_token_with_leftover_session_claims_anonymous_cart(
    client, session, add_kit, add_user, auth_headers
):
    kit = add_kit()
    user = add_user()
    anon = _session_headers()
    client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(kit.id), "quantity": 2},
        headers=anon,
    )

    resp = client.get("/api/v1/cart", headers={**anon, **auth_headers(user)})

    assert resp.status_code == 200
    assert resp.json()["owner_kind"] == "user"
    assert resp.json()["total_quantity"] == 2
    sid = uuid.UUID(anon[HEADER])
    assert CartRepository().get_for_owner(session, OwnerRef.anonymous(sid)) is None

    again = client.get("/api/v1/cart", headers={**anon, **auth_headers(user)})
    assert again.json()["total_quantity"] == 2
