# storefront/repositories/cart_repo.py
import uuid

from sqlmodel import Session, select

from storefront.core.identity import OwnerKind, OwnerRef
from storefront.models.cart import Cart, CartItem


class CartRepository:
    """
    Data access layer for carts and cart_items.

    NOTE:
      - No commits here; every cart mutation is committed (or rolled back)
        by the CartStore so a failed sync never leaves half a write behind.
    """

    # ---- Carts ----

    def get_for_owner(self, session: Session, owner: OwnerRef) -> Cart | None:
        if owner.kind is OwnerKind.USER:
            stmt = select(Cart).where(Cart.user_id == owner.id)
        else:
            stmt = select(Cart).where(Cart.session_id == owner.id)
        return session.exec(stmt).first()

    def create_for_owner(self, session: Session, owner: OwnerRef) -> Cart:
        if owner.kind is OwnerKind.USER:
            cart = Cart(user_id=owner.id)
        else:
            cart = Cart(session_id=owner.id)
        session.add(cart)
        session.flush()  # Assign PK
        return cart

    def rekey(self, session: Session, cart: Cart, owner: OwnerRef) -> Cart:
        """Move a cart to another owner, dropping the previous owner key."""
        if owner.kind is OwnerKind.USER:
            cart.user_id = owner.id
            cart.session_id = None
        else:
            cart.session_id = owner.id
            cart.user_id = None
        session.add(cart)
        session.flush()
        return cart

    def delete_cart(self, session: Session, cart: Cart) -> None:
        for row in self.list_lines(session, cart.id):
            session.delete(row)
        session.flush()
        session.delete(cart)
        session.flush()

    # ---- Lines ----

    def list_lines(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.created_at, CartItem.id)
        )
        return session.exec(stmt).all()

    def get_line(
        self, session: Session, cart_id: uuid.UUID, line_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id, CartItem.id == line_id
        )
        return session.exec(stmt).first()

    def get_line_for_kit(
        self, session: Session, cart_id: uuid.UUID, test_kit_id: uuid.UUID
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id, CartItem.test_kit_id == test_kit_id
        )
        return session.exec(stmt).first()

    def save_line(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.flush()
        return item

    def delete_line(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.flush()
