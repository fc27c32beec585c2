# storefront/services/checkout_service.py
import logging
from decimal import Decimal

from fastapi import HTTPException, status
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.integrations.payment import PaymentGateway
from storefront.models.user import User
from storefront.schemas.order import (
    CheckoutLineRead,
    CheckoutRequest,
    CheckoutSummaryRead,
    OrderWithItemsRead,
)
from storefront.services.cart_store import CartStore
from storefront.services.checkout_snapshot import CheckoutSnapshot, freeze_cart
from storefront.services.order_service import OrderService
from storefront.services.user_service import UserService

settings = get_settings()
logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Hands the cart over to order creation.

    Responsibilities:
      - refuse empty carts (client is sent back to the catalog)
      - freeze the cart into a priced CheckoutSnapshot
        (13% tax, flat shipping, no external tax service)
      - create the order, capture payment, record the outcome
      - clear the cart once the order is paid
    """

    def __init__(
        self,
        order_service: OrderService,
        user_service: UserService,
        tax_rate: Decimal | None = None,
        flat_shipping: Decimal | None = None,
    ):
        self.order_service = order_service
        self.user_service = user_service
        self.tax_rate = settings.TAX_RATE if tax_rate is None else tax_rate
        self.flat_shipping = (
            settings.FLAT_SHIPPING if flat_shipping is None else flat_shipping
        )

    def begin(self, store: CartStore) -> CheckoutSnapshot:
        """
        Refetch the cart and freeze it.

        Raises:
            HTTPException(400): cart is empty; detail carries `redirect_to`
            pointing at the catalog.
        """
        cart = store.fetch_cart()
        snapshot = freeze_cart(cart, self.tax_rate, self.flat_shipping)

        if snapshot.is_empty:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "Cart is empty",
                    "redirect_to": settings.CATALOG_PATH,
                },
            )
        return snapshot

    @staticmethod
    def summarize(snapshot: CheckoutSnapshot) -> CheckoutSummaryRead:
        return CheckoutSummaryRead(
            items=[
                CheckoutLineRead(
                    test_kit_id=line.test_kit_id,
                    name=line.name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                )
                for line in snapshot.lines
            ],
            subtotal=snapshot.subtotal,
            tax_rate=snapshot.tax_rate,
            tax_amount=snapshot.tax_amount,
            shipping_amount=snapshot.shipping_amount,
            total_amount=snapshot.total_amount,
        )

    def submit(
        self,
        session: Session,
        store: CartStore,
        user: User,
        payload: CheckoutRequest,
        gateway: PaymentGateway,
    ) -> OrderWithItemsRead:
        """
        Convert the customer's cart into a paid order.

        Steps:
          1. Require the store to belong to the authenticated customer.
          2. Freeze the cart (empty => 400, nothing written).
          3. Optionally remember the shipping address on the profile.
          4. Create the pending order + items from the snapshot.
          5. Capture payment; decline => order 'payment_failed', 402.
          6. Mark the order 'paid' and clear the cart.
        """
        if store.owner.is_anonymous or store.owner.id != user.id:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Log in to complete your purchase",
            )

        snapshot = self.begin(store)

        if payload.save_shipping_to_profile:
            self.user_service.save_shipping(session, user, payload.shipping)

        order, items = self.order_service.create_pending(
            session, user.id, snapshot, payload.shipping
        )

        result = gateway.capture(order.id, snapshot.total_amount, payload.payment_token)
        if not result.approved:
            self.order_service.mark_failed(session, order)
            logger.warning("Payment declined for order %s", order.id)
            raise HTTPException(
                status_code=status.HTTP_402_PAYMENT_REQUIRED,
                detail=result.message or "Payment failed. Please try again.",
            )

        self.order_service.mark_paid(session, order, result.reference)

        try:
            store.clear()
        except HTTPException:
            # The order stands; the shopper sees the stale cart until the
            # next successful fetch.
            logger.warning("Order %s paid but the cart could not be cleared", order.id)

        logger.info("✅ Checkout complete: order %s for user %s", order.id, user.id)
        return self.order_service.build_order_dto(order, items)
