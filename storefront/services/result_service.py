# storefront/services/result_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from storefront.models.result import ResultParameter, TestResult
from storefront.repositories.result_repo import ResultRepository
from storefront.repositories.test_kit_repo import TestKitRepository
from storefront.schemas.result import (
    ResultParameterRead,
    TestResultDetailRead,
    TestResultRead,
)


def within_range(parameter: ResultParameter) -> bool:
    """A missing bound is treated as open."""
    if parameter.safe_min is not None and parameter.value < parameter.safe_min:
        return False
    if parameter.safe_max is not None and parameter.value > parameter.safe_max:
        return False
    return True


class ResultService:
    """
    Customer-facing view of lab results for returned kits.

    Responsibilities:
      - list the customer's results, newest first
      - result detail with every measured parameter flagged against
        its safe range
    """

    def __init__(self, repo: ResultRepository, catalog_repo: TestKitRepository):
        self.repo = repo
        self.catalog_repo = catalog_repo

    def _kit_names(
        self, session: Session, results: list[TestResult]
    ) -> dict[uuid.UUID, str]:
        kits = self.catalog_repo.get_many(session, {r.test_kit_id for r in results})
        return {kit_id: kit.name for kit_id, kit in kits.items()}

    @staticmethod
    def _result_fields(result: TestResult, kit_name: str | None) -> dict:
        fields = {name: getattr(result, name, None) for name in TestResultRead.model_fields}
        fields["test_kit_name"] = kit_name
        return fields

    def list_user_results(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[TestResultRead]:
        results = self.repo.list_for_user(session, user_id, skip=skip, limit=limit)
        names = self._kit_names(session, results)
        return [
            TestResultRead(**self._result_fields(r, names.get(r.test_kit_id)))
            for r in results
        ]

    def get_user_result(
        self,
        session: Session,
        user_id: uuid.UUID,
        result_id: uuid.UUID,
    ) -> TestResultDetailRead:
        """
        Get a single result with its parameters.

        - 404 if the result does not exist or belongs to someone else.
        """
        result = self.repo.get_for_user(session, user_id, result_id)
        if not result:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Test result not found",
            )

        names = self._kit_names(session, [result])
        parameters = [
            ResultParameterRead(
                id=p.id,
                name=p.name,
                value=p.value,
                unit=p.unit,
                safe_min=p.safe_min,
                safe_max=p.safe_max,
                within_range=within_range(p),
            )
            for p in self.repo.list_parameters(session, result.id)
        ]

        return TestResultDetailRead(
            **self._result_fields(result, names.get(result.test_kit_id)),
            parameters=parameters,
            flagged_count=sum(1 for p in parameters if not p.within_range),
        )
