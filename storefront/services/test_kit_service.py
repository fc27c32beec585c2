# storefront/services/test_kit_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from storefront.models.test_kit import TestKit
from storefront.repositories.test_kit_repo import TestKitRepository


class TestKitService:
    """
    Read-only catalog of water test kits.

    The catalog is maintained outside this service; only active kits are
    offered to shoppers.
    """

    def __init__(self, repo: TestKitRepository):
        self.repo = repo

    def list_test_kits(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
    ) -> list[TestKit]:
        return self.repo.list(session, skip=skip, limit=limit)

    def get_test_kit(self, session: Session, test_kit_id: uuid.UUID) -> TestKit:
        kit = self.repo.get_by_id(session, test_kit_id)
        if not kit or not kit.is_active:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Test kit not found",
            )
        return kit
