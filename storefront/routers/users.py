# storefront/routers/users.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.user import UserRead, UserUpdate
from storefront.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.

    The profile row is auto-created on the first authenticated request,
    with a default name derived from the email.
    """
    return service.get_me(current_user)


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile (partial update).

    Editable: name, phone and default shipping address.
    """
    return service.update_me(session, current_user, payload)
