# storefront/services/cart_store.py
import logging
import uuid
from decimal import Decimal
from enum import Enum
from typing import Callable

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.core.identity import IdentityEvents, OwnerRef
from storefront.models.cart import Cart, CartItem
from storefront.models.test_kit import TestKit
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.test_kit_repo import TestKitRepository
from storefront.schemas.cart import CartLineRead, CartSummary

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

SYNC_FAILED_DETAIL = "We couldn't sync your cart right now. Please try again."


class StoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    MUTATING = "mutating"


StoreListener = Callable[["CartStore"], None]


class CartStore:
    """
    Authoritative view of one owner's in-progress selection.

    Responsibilities:
      - lazily create the owner's cart on first add
      - one line per test kit (adding again increments quantity)
      - snapshot price / name / image from the catalog at add time
      - refetch after every mutation and recompute the total
      - re-key an anonymous cart to the customer on login
      - notify subscribers on every state change

    States: uninitialized -> loading -> ready, with a transient
    `mutating` state around each write.

    Database failures roll back the transaction, are logged, kept in
    `last_error`, and surface as HTTP 503. The last good view is kept
    until the next successful fetch; nothing is retried.
    """

    def __init__(
        self,
        session: Session,
        owner: OwnerRef,
        cart_repo: CartRepository,
        catalog_repo: TestKitRepository,
    ):
        self.session = session
        self.owner = owner
        self.cart_repo = cart_repo
        self.catalog_repo = catalog_repo

        self.state = StoreState.UNINITIALIZED
        self.preview_open = False
        self.last_error: str | None = None
        self.cart = CartSummary(
            owner_kind=owner.kind.value,
            state=StoreState.UNINITIALIZED.value,
        )

        self._loaded = False
        self._listeners: list[StoreListener] = []

    # ---- subscription ----

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """
        Register a listener called with the store on every state change.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def attach(self, events: IdentityEvents) -> Callable[[], None]:
        """Follow login/logout transitions published on `events`."""
        return events.subscribe(
            lambda change: self.handle_identity_change(change.current)
        )

    def _set_state(self, state: StoreState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(self)

    def _resting_state(self) -> StoreState:
        return StoreState.READY if self._loaded else StoreState.UNINITIALIZED

    def _sync_failed(self, action: str, exc: SQLAlchemyError) -> HTTPException:
        """
        Roll back, record and log a failed round-trip; returns the
        HTTPException for the caller to raise.
        """
        self.session.rollback()
        self.last_error = f"{action} failed"
        logger.error(
            "❌ Cart sync failed while %s for %s:%s",
            action,
            self.owner.kind.value,
            self.owner.id,
            exc_info=exc,
        )
        self._set_state(self._resting_state())
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=SYNC_FAILED_DETAIL,
        )

    # ---- internal helpers ----

    def _get_cart(self) -> Cart | None:
        return self.cart_repo.get_for_owner(self.session, self.owner)

    def _find_line(self, line_id: uuid.UUID) -> CartItem | None:
        cart = self._get_cart()
        if cart is None:
            return None
        return self.cart_repo.get_line(self.session, cart.id, line_id)

    def _current_view(self) -> CartSummary:
        if self._loaded:
            return self.cart
        return self.fetch_cart()

    def _summarize(
        self,
        cart: Cart | None,
        lines: list[CartItem],
        kits: dict[uuid.UUID, TestKit],
    ) -> CartSummary:
        items: list[CartLineRead] = []
        total_qty = 0
        total = Decimal("0")

        for line in lines:
            kit = kits.get(line.test_kit_id)
            unit_price = Decimal(str(line.unit_price))
            line_total = (unit_price * line.quantity).quantize(CENT)
            total_qty += line.quantity
            total += line_total

            items.append(
                CartLineRead(
                    line_id=line.id,
                    test_kit_id=line.test_kit_id,
                    display_name=line.display_name or (kit.name if kit else None),
                    thumbnail_url=line.thumbnail_url
                    or (kit.image_url if kit else None),
                    unit_price=unit_price,
                    quantity=line.quantity,
                    line_total=line_total,
                )
            )

        return CartSummary(
            owner_kind=self.owner.kind.value,
            cart_id=cart.id if cart else None,
            items=items,
            total_quantity=total_qty,
            total=total.quantize(CENT),
            state=StoreState.READY.value,
            preview_open=self.preview_open,
        )

    # ---- public operations ----

    def fetch_cart(self) -> CartSummary:
        """
        Load the owner's cart and lines and recompute totals.

        No cart yet => empty summary (not an error).
        Lines whose snapshot lacks a name or image are filled in from
        the catalog.
        """
        self._set_state(StoreState.LOADING)
        try:
            cart = self._get_cart()
            lines = self.cart_repo.list_lines(self.session, cart.id) if cart else []
            missing = {
                line.test_kit_id
                for line in lines
                if not line.display_name or not line.thumbnail_url
            }
            kits = self.catalog_repo.get_many(self.session, missing)
        except SQLAlchemyError as exc:
            raise self._sync_failed("fetching cart", exc) from exc

        self.cart = self._summarize(cart, lines, kits)
        self._loaded = True
        self.last_error = None
        self._set_state(StoreState.READY)
        return self.cart

    def add_item(self, test_kit_id: uuid.UUID, quantity: int = 1) -> CartSummary:
        """
        Add a test kit to the cart.

        Rules:
          - quantity must be >= 1 (checked before touching the database)
          - kit must exist and be active
          - existing_quantity + quantity <= stock
          - an existing line is incremented; otherwise a new line is
            appended with price/name/image taken from the catalog now
          - opens the cart preview
        """
        if quantity < 1:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Quantity must be at least 1",
            )

        try:
            kit = self.catalog_repo.get_by_id(self.session, test_kit_id)
        except SQLAlchemyError as exc:
            raise self._sync_failed("looking up test kit", exc) from exc

        if kit is None or not kit.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Test kit not found",
            )

        self._set_state(StoreState.MUTATING)
        try:
            cart = self._get_cart()
            line = (
                self.cart_repo.get_line_for_kit(self.session, cart.id, kit.id)
                if cart
                else None
            )
            new_qty = (line.quantity if line else 0) + quantity

            if new_qty > kit.stock:
                self._set_state(self._resting_state())
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Not enough stock available",
                )

            if cart is None:
                cart = self.cart_repo.create_for_owner(self.session, self.owner)

            if line is not None:
                line.quantity = new_qty
            else:
                line = CartItem(
                    cart_id=cart.id,
                    test_kit_id=kit.id,
                    quantity=quantity,
                    unit_price=kit.price,
                    display_name=kit.name,
                    thumbnail_url=kit.image_url,
                )
            self.cart_repo.save_line(self.session, line)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._sync_failed("adding item", exc) from exc

        logger.info(
            "Added %s x %s to cart of %s:%s",
            quantity,
            kit.id,
            self.owner.kind.value,
            self.owner.id,
        )
        self.preview_open = True
        return self.fetch_cart()

    def update_quantity(self, line_id: uuid.UUID, new_quantity: int) -> CartSummary:
        """
        Replace the quantity of a line.

        No-ops (cart returned unchanged):
          - new_quantity < 1 (removal must go through remove_item)
          - line_id is not in this owner's cart

        A line whose test kit is gone from the catalog (or retired) cannot
        be edited: 404, the line is left as is.
        """
        if new_quantity < 1:
            logger.debug("Ignoring quantity %s for line %s", new_quantity, line_id)
            return self._current_view()

        self._set_state(StoreState.MUTATING)
        try:
            line = self._find_line(line_id)
            kit = (
                self.catalog_repo.get_by_id(self.session, line.test_kit_id)
                if line
                else None
            )
        except SQLAlchemyError as exc:
            raise self._sync_failed("updating quantity", exc) from exc

        if line is None:
            self._set_state(self._resting_state())
            return self._current_view()

        if kit is None or not kit.is_active:
            self._set_state(self._resting_state())
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Test kit not found",
            )

        if new_quantity > kit.stock:
            self._set_state(self._resting_state())
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Not enough stock available",
            )

        try:
            line.quantity = new_quantity
            self.cart_repo.save_line(self.session, line)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._sync_failed("updating quantity", exc) from exc

        return self.fetch_cart()

    def remove_item(self, line_id: uuid.UUID) -> CartSummary:
        """
        Delete a line from the cart.

        Unknown line ids leave the cart unchanged.
        """
        self._set_state(StoreState.MUTATING)
        try:
            line = self._find_line(line_id)
            if line is not None:
                self.cart_repo.delete_line(self.session, line)
                self.session.commit()
        except SQLAlchemyError as exc:
            raise self._sync_failed("removing item", exc) from exc

        return self.fetch_cart()

    def clear(self) -> CartSummary:
        """
        Delete the owner's cart record and all of its lines.
        """
        self._set_state(StoreState.MUTATING)
        try:
            cart = self._get_cart()
            if cart is not None:
                self.cart_repo.delete_cart(self.session, cart)
                self.session.commit()
        except SQLAlchemyError as exc:
            raise self._sync_failed("clearing cart", exc) from exc

        self.preview_open = False
        return self.fetch_cart()

    def merge_on_authentication(self, user_owner: OwnerRef) -> int:
        """
        Hand the anonymous cart over to an authenticated customer.

        Policy:
          - no anonymous cart => nothing to do
          - customer has no cart => the anonymous cart is re-keyed
          - customer has a cart => anonymous lines are folded in
            (same kit: quantities summed, customer's captured price kept;
            new kit: line moved as is) and the anonymous cart is deleted

        Afterwards no cart is keyed to the anonymous session id and the
        store is bound to `user_owner`.

        Returns:
            Number of anonymous lines carried over.
        """
        if not self.owner.is_anonymous or user_owner.is_anonymous:
            raise ValueError("merge requires an anonymous store and a user owner")

        anonymous = self.owner
        merged = 0

        self._set_state(StoreState.MUTATING)
        try:
            anon_cart = self.cart_repo.get_for_owner(self.session, anonymous)
            if anon_cart is not None:
                lines = self.cart_repo.list_lines(self.session, anon_cart.id)
                merged = len(lines)
                user_cart = self.cart_repo.get_for_owner(self.session, user_owner)

                if user_cart is None:
                    self.cart_repo.rekey(self.session, anon_cart, user_owner)
                else:
                    for line in lines:
                        existing = self.cart_repo.get_line_for_kit(
                            self.session, user_cart.id, line.test_kit_id
                        )
                        if existing is not None:
                            existing.quantity += line.quantity
                            self.cart_repo.save_line(self.session, existing)
                            self.cart_repo.delete_line(self.session, line)
                        else:
                            line.cart_id = user_cart.id
                            self.cart_repo.save_line(self.session, line)
                    self.cart_repo.delete_cart(self.session, anon_cart)

                self.session.commit()
        except SQLAlchemyError as exc:
            raise self._sync_failed("merging cart", exc) from exc

        if merged:
            logger.info(
                "🔄 Merged %s line(s) from session %s into user %s",
                merged,
                anonymous.id,
                user_owner.id,
            )
        self.owner = user_owner
        self._set_state(self._resting_state())
        return merged

    def handle_identity_change(self, new_owner: OwnerRef) -> CartSummary:
        """
        React to a login/logout.

        anonymous -> user: merge, then refetch as the user.
        anything else: rebind to the new owner and refetch.
        """
        if new_owner != self.owner:
            if self.owner.is_anonymous and not new_owner.is_anonymous:
                self.merge_on_authentication(new_owner)
            else:
                self.owner = new_owner
                self.preview_open = False
        return self.fetch_cart()
