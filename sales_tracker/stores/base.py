"""Storage capabilities the services depend on."""

from datetime import datetime
from typing import Any, ContextManager, Optional, Protocol

from sales_tracker.deadline import Deadline
from sales_tracker.models import Aggregate, Item, ItemKind


class AnalyticsSnapshot(Protocol):
    """Reads that all observe the same point-in-time view of the items."""

    def aggregate(self, kind: ItemKind, start: datetime, end: datetime) -> Aggregate:
        """Sum, average, count, median and p90 of ``amount`` for one kind.

        ``occurred_at`` is matched inclusively on both ends.
        """
        ...

    def details(self, start: datetime, end: datetime) -> list[Item]:
        """Items in the window, newest first, ties in insertion order."""
        ...


class AnalyticsStore(Protocol):
    def snapshot(self, deadline: Optional[Deadline] = None) -> ContextManager[AnalyticsSnapshot]:
        """Open a read-only snapshot, released when the context exits.

        Leaving the context through an exception rolls the transaction back.
        """
        ...


class ItemStore(Protocol):
    def create(self, item: Item) -> Item: ...

    def get(self, item_id: int) -> Item: ...

    def update(self, item_id: int, changes: dict[str, Any]) -> Item: ...

    def delete(self, item_id: int) -> None: ...

    def list_page(self, offset: int, limit: int) -> tuple[list[Item], int]: ...
