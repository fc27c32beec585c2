# storefront/models/result.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class TestResult(SQLModel, table=True):
    """
    Lab result for a returned test kit.

    Rows are written by the lab pipeline; customers only read them.
    """

    __tablename__ = "test_results"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    order_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="orders.id",
        index=True,
    )

    test_kit_id: uuid.UUID = Field(
        foreign_key="test_kits.id",
        index=True,
    )

    # processing | completed
    status: str = Field(default="processing", index=True)

    summary: str | None = None

    collected_at: datetime | None = None
    completed_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ResultParameter(SQLModel, table=True):
    """
    One measured parameter (e.g. lead, nitrate, pH) of a lab result.
    """

    __tablename__ = "result_parameters"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    result_id: uuid.UUID = Field(
        foreign_key="test_results.id",
        index=True,
    )

    name: str = Field(max_length=100)
    value: float
    unit: str | None = Field(default=None, max_length=20)

    # Acceptable range; either bound may be open
    safe_min: float | None = None
    safe_max: float | None = None
