# storefront/repositories/order_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; checkout writes the order, its items and the
        payment outcome in steps. OrderService calls session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        status: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = select(Order).where(Order.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def get_for_user(
        self, session: Session, user_id: uuid.UUID, order_id: uuid.UUID
    ) -> Order | None:
        stmt = select(Order).where(Order.id == order_id, Order.user_id == user_id)
        return session.exec(stmt).first()

    def add_order(self, session: Session, order: Order) -> Order:
        """
        Stage an Order (insert or update) and flush so the id is populated.
        """
        session.add(order)
        session.flush()
        return order

    # ---- Order items ----

    def list_items(self, session: Session, order_id: uuid.UUID) -> list[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.order_id == order_id)
        return session.exec(stmt).all()

    def add_items(self, session: Session, items: list[OrderItem]) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        return items
