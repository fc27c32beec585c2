from decimal import Decimal

import pytest

from storefront.core.identity import IdentityChange, IdentityEvents, OwnerRef
from storefront.services.cart_store import StoreState


def test_merge_rekeys_anonymous_cart_when_customer_has_none(
    make_store, add_kit, add_user, session
):
    kit = add_kit()
    store = make_store()
    anonymous = store.owner
    cart_id = store.add_item(kit.id, 2).cart_id
    user_owner = OwnerRef.authenticated(add_user().id)

    merged = store.merge_on_authentication(user_owner)

    assert merged == 1
    assert store.owner == user_owner
    assert store.cart_repo.get_for_owner(session, anonymous) is None
    assert store.cart_repo.get_for_owner(session, user_owner).id == cart_id

    cart = store.fetch_cart()
    assert cart.owner_kind == "user"
    assert cart.items[0].quantity == 2


def test_merge_folds_lines_into_existing_customer_cart(
    make_store, add_kit, add_user, session
):
    basic = add_kit(name="Basic Water Test", price="49.99")
    lead = add_kit(name="Lead Test", price="29.99")
    user_owner = OwnerRef.authenticated(add_user().id)

    customer = make_store(user_owner)
    customer.add_item(basic.id, 1)

    basic.price = Decimal("59.99")
    session.add(basic)
    session.commit()

    store = make_store()
    anonymous = store.owner
    store.add_item(basic.id, 2)
    store.add_item(lead.id, 1)

    merged = store.merge_on_authentication(user_owner)

    assert merged == 2
    assert store.cart_repo.get_for_owner(session, anonymous) is None

    cart = customer.fetch_cart()
    lines = {item.test_kit_id: item for item in cart.items}
    assert set(lines) == {basic.id, lead.id}
    assert lines[basic.id].quantity == 3
    assert lines[basic.id].unit_price == Decimal("49.99")
    assert lines[lead.id].quantity == 1
    assert cart.total == Decimal("179.96")


def test_merge_without_anonymous_cart_changes_nothing(make_store, add_user):
    store = make_store()
    user_owner = OwnerRef.authenticated(add_user().id)

    assert store.merge_on_authentication(user_owner) == 0
    assert store.owner == user_owner
    assert store.fetch_cart().items == []


def test_merge_requires_anonymous_store(make_store, add_user):
    user_owner = OwnerRef.authenticated(add_user().id)
    store = make_store(user_owner)

    with pytest.raises(ValueError):
        store.merge_on_authentication(user_owner)


def test_login_event_merges_and_refetches(make_store, add_kit, add_user, session):
    kit = add_kit()
    store = make_store()
    anonymous = store.owner
    store.add_item(kit.id, 1)
    user_owner = OwnerRef.authenticated(add_user().id)

    events = IdentityEvents()
    store.attach(events)
    events.publish(IdentityChange(previous=anonymous, current=user_owner))

    assert store.owner == user_owner
    assert store.state is StoreState.READY
    assert store.cart.owner_kind == "user"
    assert store.cart.total_quantity == 1
    assert store.cart_repo.get_for_owner(session, anonymous) is None


def test_logout_event_rebinds_to_fresh_session(make_store, add_kit, add_user):
    kit = add_kit()
    user_owner = OwnerRef.authenticated(add_user().id)
    store = make_store(user_owner)
    store.add_item(kit.id, 1)
    assert store.preview_open is True

    anonymous = make_store().owner
    events = IdentityEvents()
    detach = store.attach(events)
    events.publish(IdentityChange(previous=user_owner, current=anonymous))
    detach()

    assert store.owner == anonymous
    assert store.preview_open is False
    assert store.cart.owner_kind == "session"
    assert store.cart.items == []

    events.publish(IdentityChange(previous=anonymous, current=user_owner))
    assert store.owner == anonymous
