"""Item model for the sales tracker ledger."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timestamp column that always stores UTC and always returns aware values.

    Naive values are taken to be UTC. SQLite has no timezone support, so values
    are normalised to UTC before binding and tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ItemKind(str, Enum):
    """Direction of a ledger item."""

    INCOME = "income"
    EXPENSE = "expense"


class Item(SQLModel, table=True):
    """A single income or expense record."""

    __tablename__ = "items"
    __table_args__ = (CheckConstraint("amount >= 0", name="ck_items_amount_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    kind: ItemKind = Field(
        sa_column=Column(
            SAEnum(
                ItemKind,
                name="item_kind",
                values_callable=lambda kinds: [k.value for k in kinds],
            ),
            nullable=False,
            index=True,
        )
    )
    amount: float = Field(nullable=False)

    # When the income or expense happened; all range queries use this field
    occurred_at: datetime = Field(
        sa_column=Column(UTCDateTime(), nullable=False, index=True)
    )

    category: Optional[str] = Field(default=None, index=True)
    description: Optional[str] = Field(default=None)

    # Maintained by the store
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(UTCDateTime(), nullable=False)
    )
