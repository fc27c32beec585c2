# storefront/services/order_service.py
import logging
import uuid
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.models.order import Order, OrderItem
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order import (
    OrderItemRead,
    OrderRead,
    OrderWithItemsRead,
    ShippingDetails,
)
from storefront.services.checkout_snapshot import CheckoutSnapshot

logger = logging.getLogger(__name__)

ORDER_FAILED_DETAIL = "We couldn't place your order right now. Please try again."


class OrderService:
    """
    Order/payment boundary behind checkout.

    Responsibilities:
      - persist a pending Order + OrderItems from a checkout snapshot
      - record the payment outcome (paid / payment_failed)
      - customer-facing order history
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    def _commit(self, session: Session, action: str) -> None:
        try:
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("❌ Order %s failed", action, exc_info=exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=ORDER_FAILED_DETAIL,
            ) from exc

    # -------- Checkout side --------

    def create_pending(
        self,
        session: Session,
        user_id: uuid.UUID,
        snapshot: CheckoutSnapshot,
        shipping: ShippingDetails,
    ) -> tuple[Order, list[OrderItem]]:
        """
        Write the order and its items with status 'pending'.

        Amounts come straight from the snapshot; nothing is re-priced.
        """
        try:
            order = self.order_repo.add_order(
                session,
                Order(
                    user_id=user_id,
                    status="pending",
                    subtotal=snapshot.subtotal,
                    tax_amount=snapshot.tax_amount,
                    shipping_amount=snapshot.shipping_amount,
                    total_amount=snapshot.total_amount,
                    shipping_name=shipping.name,
                    shipping_email=shipping.email,
                    shipping_phone=shipping.phone,
                    shipping_address=shipping.address,
                    shipping_city=shipping.city,
                    shipping_state=shipping.state,
                    shipping_zip=shipping.zip_code,
                    shipping_country=shipping.country,
                ),
            )
            items = self.order_repo.add_items(
                session,
                [
                    OrderItem(
                        order_id=order.id,
                        test_kit_id=line.test_kit_id,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        product_name=line.name,
                    )
                    for line in snapshot.lines
                ],
            )
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("❌ Creating order for user %s failed", user_id, exc_info=exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=ORDER_FAILED_DETAIL,
            ) from exc

        self._commit(session, "creation")
        logger.info(
            "Order %s created for user %s (%s line(s), total %s)",
            order.id,
            user_id,
            len(items),
            snapshot.total_amount,
        )
        return order, items

    def mark_paid(self, session: Session, order: Order, reference: str | None) -> Order:
        order.status = "paid"
        order.payment_reference = reference
        self.order_repo.add_order(session, order)
        self._commit(session, "payment update")
        return order

    def mark_failed(self, session: Session, order: Order) -> Order:
        order.status = "payment_failed"
        self.order_repo.add_order(session, order)
        self._commit(session, "payment update")
        return order

    # -------- Order history --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        status_filter: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        """
        List orders for the given user (without items), newest first.
        """
        return self.order_repo.list_for_user(
            session, user_id, status=status_filter, skip=skip, limit=limit
        )

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - 404 if order not found or does not belong to this user.
        """
        order = self.order_repo.get_for_user(session, user_id, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

        items = self.order_repo.list_items(session, order.id)
        return self.build_order_dto(order, items)

    # -------- Helper DTO builder --------

    def build_order_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        item_dtos = [
            OrderItemRead(
                id=it.id,
                order_id=it.order_id,
                test_kit_id=it.test_kit_id,
                product_name=it.product_name,
                quantity=it.quantity,
                unit_price=it.unit_price,
                line_total=Decimal(str(it.unit_price)) * it.quantity,
            )
            for it in items
        ]

        # getattr (not model_dump) so expired attributes reload after commit
        fields = {name: getattr(order, name) for name in OrderRead.model_fields}
        return OrderWithItemsRead(**fields, items=item_dtos)
