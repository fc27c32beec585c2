# storefront/routers/orders.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.integrations.payment import PaymentGateway, get_payment_gateway
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.user_repo import UserRepository
from storefront.routers.dependencies import get_cart_store
from storefront.schemas.order import (
    CheckoutRequest,
    CheckoutSummaryRead,
    OrderRead,
    OrderStatus,
    OrderWithItemsRead,
)
from storefront.services.cart_store import CartStore
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.services.user_service import UserService

router = APIRouter(tags=["Orders"])

order_service = OrderService(OrderRepository())
checkout_service = CheckoutService(order_service, UserService(UserRepository()))


# -------- Checkout --------


@router.get("/checkout/summary", response_model=CheckoutSummaryRead)
def checkout_summary(store: CartStore = Depends(get_cart_store)):
    """
    Priced snapshot of the current cart (subtotal, 13% tax, flat shipping).

    An empty cart answers 400 with `redirect_to` set to the catalog.
    """
    return checkout_service.summarize(checkout_service.begin(store))


@router.post(
    "/orders/checkout",
    response_model=OrderWithItemsRead,
)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    store: CartStore = Depends(get_cart_store),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Create a paid order from the current customer's cart.

    - 400 when the cart is empty.
    - 402 when the payment is declined (order kept as 'payment_failed').
    - The cart is cleared once the order is paid.
    """
    return checkout_service.submit(session, store, current_user, payload, gateway)


# -------- Order history --------


@router.get(
    "/orders/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items), newest first.

    Optional `status` filter, e.g. `?status=paid`.
    """
    return order_service.list_user_orders(
        session, current_user.id, status_filter=status, skip=skip, limit=limit
    )


@router.get(
    "/orders/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return order_service.get_user_order(session, current_user.id, order_id)
