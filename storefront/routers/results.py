# storefront/routers/results.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.result_repo import ResultRepository
from storefront.routers.dependencies import test_kit_repo
from storefront.schemas.result import TestResultDetailRead, TestResultRead
from storefront.services.result_service import ResultService

router = APIRouter(prefix="/results", tags=["Results"])

service = ResultService(ResultRepository(), test_kit_repo)


@router.get("/me", response_model=list[TestResultRead])
def list_my_results(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's lab results, newest first.
    """
    return service.list_user_results(session, current_user.id, skip=skip, limit=limit)


@router.get("/me/{result_id}", response_model=TestResultDetailRead)
def get_my_result(
    result_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get one lab result with every measured parameter and its
    `within_range` flag.
    """
    return service.get_user_result(session, current_user.id, result_id)
