# storefront/repositories/user_repo.py
from sqlmodel import Session

from storefront.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations
      - No FastAPI, no HTTP, no business logic

    Profiles are created by `storefront.core.auth.provision_user` on the
    first authenticated request, so there is no create here.
    """

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
