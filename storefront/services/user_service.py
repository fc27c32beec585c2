# storefront/services/user_service.py
from sqlmodel import Session

from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.order import ShippingDetails
from storefront.schemas.user import UserUpdate


class UserService:
    """
    Business logic for customer profiles.

    Responsibilities:
      - profile edits (email stays owned by Supabase Auth)
      - remembering the last shipping address used at checkout
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def get_me(self, current_user: User) -> User:
        """Return the current authenticated user."""
        return current_user

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits; only fields that were sent
        are changed.
        """
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(current_user, field, value)

        return self.repo.update(session, current_user)

    def save_shipping(
        self,
        session: Session,
        current_user: User,
        shipping: ShippingDetails,
    ) -> User:
        """
        Store the checkout shipping details as the profile defaults so
        the next checkout can be prefilled.
        """
        current_user.phone = shipping.phone or current_user.phone
        current_user.shipping_address = shipping.address
        current_user.shipping_city = shipping.city
        current_user.shipping_state = shipping.state
        current_user.shipping_zip = shipping.zip_code
        current_user.shipping_country = shipping.country
        return self.repo.update(session, current_user)
