# storefront/repositories/result_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.result import ResultParameter, TestResult


class ResultRepository:
    """
    Read-only data access for lab results.
    """

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[TestResult]:
        stmt = (
            select(TestResult)
            .where(TestResult.user_id == user_id)
            .order_by(TestResult.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def get_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        result_id: uuid.UUID,
    ) -> TestResult | None:
        stmt = select(TestResult).where(
            TestResult.id == result_id,
            TestResult.user_id == user_id,
        )
        return session.exec(stmt).first()

    def list_parameters(
        self,
        session: Session,
        result_id: uuid.UUID,
    ) -> list[ResultParameter]:
        stmt = (
            select(ResultParameter)
            .where(ResultParameter.result_id == result_id)
            .order_by(ResultParameter.name)
        )
        return session.exec(stmt).all()
