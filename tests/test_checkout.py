import uuid
from decimal import Decimal

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from storefront.core.identity import OwnerRef
from storefront.integrations.payment import (
    PaymentResult,
    SimulatedPaymentGateway,
    get_payment_gateway,
)
from storefront.main import app
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.cart import CartLineRead, CartSummary
from storefront.schemas.order import CheckoutRequest
from storefront.services.checkout_service import CheckoutService
from storefront.services.checkout_snapshot import freeze_cart
from storefront.services.order_service import OrderService
from storefront.services.user_service import UserService

SHIPPING = {
    "name": "Riley Brook",
    "email": "river@example.com",
    "phone": "416-555-0100",
    "address": "12 Lakeshore Rd",
    "city": "Toronto",
    "state": "ON",
    "zip_code": "M5V 2T6",
    "country": "Canada",
}


def _summary(*lines: tuple[str, int]) -> CartSummary:
    items = [
        CartLineRead(
            line_id=uuid.uuid4(),
            test_kit_id=uuid.uuid4(),
            display_name="Kit",
            unit_price=Decimal(price),
            quantity=qty,
            line_total=Decimal(price) * qty,
        )
        for price, qty in lines
    ]
    return CartSummary(owner_kind="user", cart_id=uuid.uuid4(), items=items)


def _service() -> CheckoutService:
    return CheckoutService(
        OrderService(OrderRepository()),
        UserService(UserRepository()),
    )


class RecordingGateway:
    def __init__(self):
        self.captures: list[tuple[uuid.UUID, Decimal, str]] = []

    def capture(self, order_id, amount, payment_token):
        self.captures.append((order_id, amount, payment_token))
        return PaymentResult(approved=True, reference="REC-1")


# -------- Pricing --------


def test_freeze_cart_pricing():
    snapshot = freeze_cart(_summary(("49.99", 2)), Decimal("0.13"), Decimal("9.99"))

    assert snapshot.subtotal == Decimal("99.98")
    assert snapshot.tax_amount == Decimal("13.00")
    assert snapshot.shipping_amount == Decimal("9.99")
    assert snapshot.total_amount == Decimal("122.97")


def test_tax_rounds_half_up():
    snapshot = freeze_cart(_summary(("0.50", 1)), Decimal("0.13"), Decimal("9.99"))

    assert snapshot.tax_amount == Decimal("0.07")


def test_empty_cart_has_no_shipping():
    snapshot = freeze_cart(_summary(), Decimal("0.13"), Decimal("9.99"))

    assert snapshot.is_empty
    assert snapshot.shipping_amount == Decimal("0.00")
    assert snapshot.total_amount == Decimal("0.00")


def test_simulated_gateway():
    gateway = SimulatedPaymentGateway()

    ok = gateway.capture(uuid.uuid4(), Decimal("10.00"), "tok_visa")
    assert ok.approved and ok.reference.startswith("SIM-")

    assert not gateway.capture(uuid.uuid4(), Decimal("10.00"), "tok_chargeDeclined").approved
    assert not gateway.capture(uuid.uuid4(), Decimal("0"), "tok_visa").approved


# -------- Checkout over HTTP --------


def test_summary_of_empty_cart_redirects_to_catalog(client):
    resp = client.get("/api/v1/checkout/summary")

    assert resp.status_code == 400
    assert resp.json()["detail"]["redirect_to"] == "/test-kits"


def test_summary_prices_the_cart(client, add_kit, add_user, auth_headers):
    kit = add_kit(price="49.99")
    headers = auth_headers(add_user())
    client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(kit.id), "quantity": 2},
        headers=headers,
    )

    data = client.get("/api/v1/checkout/summary", headers=headers).json()

    assert Decimal(data["subtotal"]) == Decimal("99.98")
    assert Decimal(data["tax_amount"]) == Decimal("13.00")
    assert Decimal(data["shipping_amount"]) == Decimal("9.99")
    assert Decimal(data["total_amount"]) == Decimal("122.97")
    assert data["items"][0]["quantity"] == 2


def test_checkout_creates_paid_order_and_clears_cart(
    client, add_kit, add_user, auth_headers
):
    kit = add_kit(name="Basic Water Test", price="49.99")
    user = add_user()
    headers = auth_headers(user)
    client.post(
        "/api/v1/cart/items",
        json={"test_kit_id": str(kit.id), "quantity": 2},
        headers=headers,
    )
    gateway = RecordingGateway()
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    resp = client.post(
        "/api/v1/orders/checkout",
        json={"shipping": SHIPPING, "payment_token": "tok_visa"},
        headers=headers,
    )

    assert resp.status_code == 200
    order = resp.json()
    assert order["status"] == "paid"
    assert order["payment_reference"] == "REC-1"
    assert Decimal(order["total_amount"]) == Decimal("122.97")
    assert order["items"][0]["product_name"] == "Basic Water Test"
    assert Decimal(order["items"][0]["line_total"]) == Decimal("99.98")
    assert gateway.captures[0][1] == Decimal("122.97")

    assert client.get("/api/v1/cart", headers=headers).json()["items"] == []

    profile = client.get("/api/v1/users/me", headers=headers).json()
    assert profile["shipping_city"] == "Toronto"
    assert profile["phone"] == "416-555-0100"


def test_declined_payment_keeps_cart(client, add_kit, add_user, auth_headers):
    kit = add_kit()
    headers = auth_headers(add_user())
    client.post("/api/v1/cart/items", json={"test_kit_id": str(kit.id)}, headers=headers)

    resp = client.post(
        "/api/v1/orders/checkout",
        json={
            "shipping": SHIPPING,
            "payment_token": "tok_chargeDeclined",
            "save_shipping_to_profile": False,
        },
        headers=headers,
    )

    assert resp.status_code == 402
    orders = client.get("/api/v1/orders/me", headers=headers).json()
    assert [o["status"] for o in orders] == ["payment_failed"]
    assert client.get("/api/v1/cart", headers=headers).json()["total_quantity"] == 1
    assert client.get("/api/v1/users/me", headers=headers).json()["shipping_city"] is None


def test_checkout_requires_login(client, add_kit):
    kit = add_kit()
    headers = {"X-Cart-Session": str(uuid.uuid4())}
    client.post("/api/v1/cart/items", json={"test_kit_id": str(kit.id)}, headers=headers)

    resp = client.post(
        "/api/v1/orders/checkout",
        json={"shipping": SHIPPING, "payment_token": "tok_visa"},
        headers=headers,
    )

    assert resp.status_code == 401


def test_checkout_of_empty_cart_is_rejected(client, add_user, auth_headers):
    headers = auth_headers(add_user())

    resp = client.post(
        "/api/v1/orders/checkout",
        json={"shipping": SHIPPING, "payment_token": "tok_visa"},
        headers=headers,
    )

    assert resp.status_code == 400
    assert client.get("/api/v1/orders/me", headers=headers).json() == []


# -------- Service-level edge cases --------


def test_paid_order_survives_cart_clear_failure(
    make_store, add_kit, add_user, session, monkeypatch
):
    kit = add_kit()
    user = add_user()
    store = make_store(OwnerRef.authenticated(user.id))
    store.add_item(kit.id, 1)

    def failing_clear():
        raise HTTPException(status_code=503, detail="down")

    monkeypatch.setattr(store, "clear", failing_clear)

    order = _service().submit(
        session,
        store,
        user,
        CheckoutRequest(shipping=SHIPPING, payment_token="tok_visa"),
        SimulatedPaymentGateway(),
    )

    assert order.status == "paid"


def test_submit_rejects_store_of_another_owner(make_store, add_kit, add_user, session):
    kit = add_kit()
    user = add_user()
    store = make_store()
    store.add_item(kit.id, 1)

    with pytest.raises(HTTPException) as exc:
        _service().submit(
            session,
            store,
            user,
            CheckoutRequest(shipping=SHIPPING, payment_token="tok_visa"),
            SimulatedPaymentGateway(),
        )

    assert exc.value.status_code == 401


def test_order_write_failure_is_503(make_store, add_kit, add_user, session, monkeypatch):
    kit = add_kit()
    user = add_user()
    store = make_store(OwnerRef.authenticated(user.id))
    store.add_item(kit.id, 1)
    service = _service()

    def boom(*args, **kwargs):
        raise OperationalError("INSERT INTO orders", {}, Exception("db down"))

    monkeypatch.setattr(service.order_service.order_repo, "add_order", boom)

    with pytest.raises(HTTPException) as exc:
        service.submit(
            session,
            store,
            user,
            CheckoutRequest(
                shipping=SHIPPING,
                payment_token="tok_visa",
                save_shipping_to_profile=False,
            ),
            SimulatedPaymentGateway(),
        )

    assert exc.value.status_code == 503
    assert store.fetch_cart().total_quantity == 1
