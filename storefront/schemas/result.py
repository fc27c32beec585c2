# storefront/schemas/result.py
import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel

ResultStatus = Literal["processing", "completed"]


class ResultParameterRead(SQLModel):
    """
    One measured parameter, flagged against its safe range.
    """

    id: uuid.UUID
    name: str
    value: float
    unit: str | None = None
    safe_min: float | None = None
    safe_max: float | None = None
    within_range: bool


class TestResultRead(SQLModel):
    """
    Lightweight representation of a lab result (without parameters).
    """

    id: uuid.UUID
    order_id: uuid.UUID | None = None
    test_kit_id: uuid.UUID
    test_kit_name: str | None = None
    status: ResultStatus
    summary: str | None = None
    collected_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class TestResultDetailRead(TestResultRead):
    """
    Full lab result including parameters.
    """

    parameters: list[ResultParameterRead]
    flagged_count: int
