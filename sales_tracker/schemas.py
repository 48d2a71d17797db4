"""Request and response shapes for the HTTP API."""

from datetime import datetime
from typing import List, Optional

from pydantic import FiniteFloat, field_validator
from sqlmodel import Field, SQLModel

from sales_tracker.models import Aggregate, AnalyticsResult, ItemKind


def _require_timezone(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        raise ValueError("timestamp must be RFC3339 with a UTC offset")
    return value


class ItemCreate(SQLModel):
    kind: ItemKind
    amount: FiniteFloat = Field(ge=0)
    occurred_at: datetime
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("occurred_at")
    @classmethod
    def require_timezone(cls, value):
        return _require_timezone(value)


class ItemUpdate(SQLModel):
    """Partial update; only fields present in the request body change."""

    kind: Optional[ItemKind] = None
    amount: Optional[FiniteFloat] = Field(default=None, ge=0)
    occurred_at: Optional[datetime] = None
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("occurred_at")
    @classmethod
    def require_timezone(cls, value):
        return _require_timezone(value)


class ItemRead(SQLModel):
    id: int
    kind: ItemKind
    amount: float
    occurred_at: datetime
    category: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ItemCreated(SQLModel):
    id: int


class ItemsPage(SQLModel):
    items: List[ItemRead]
    total: int
    page: int
    limit: int
    total_pages: int


class AggregateRead(SQLModel):
    sum: float = 0.0
    avg: float = 0.0
    count: int = 0
    median: float = 0.0
    percent90: float = 0.0

    @classmethod
    def from_aggregate(cls, aggregate: Aggregate) -> "AggregateRead":
        return cls(**aggregate.to_dict())


class AnalyticsRead(SQLModel):
    income: AggregateRead
    expense: AggregateRead
    details: List[ItemRead]

    @classmethod
    def from_result(cls, result: AnalyticsResult) -> "AnalyticsRead":
        return cls(
            income=AggregateRead.from_aggregate(result.income),
            expense=AggregateRead.from_aggregate(result.expense),
            details=[ItemRead.model_validate(item) for item in result.details],
        )


class ErrorResponse(SQLModel):
    error: str
    message: str
