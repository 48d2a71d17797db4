"""Service for managing ledger items."""

import logging
from typing import Any, Callable, Optional, TypeVar

from sales_tracker.errors import InternalError, InvalidInput, LedgerError
from sales_tracker.models import Item
from sales_tracker.schemas import ItemCreate, ItemUpdate
from sales_tracker.stores.base import ItemStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fields that may be omitted from an update but never cleared
REQUIRED_FIELDS = ("kind", "amount", "occurred_at")


class ItemService:
    """Service for creating, reading, updating and deleting items."""

    def __init__(self, store: ItemStore, default_page_size: int = 25, max_page_size: int = 100):
        self._store = store
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def create_item(self, data: ItemCreate) -> Item:
        item = Item(**data.model_dump())
        created = self._call("create item", lambda: self._store.create(item))
        logger.info("Item created: id=%s kind=%s", created.id, created.kind.value)
        return created

    def get_item(self, item_id: int) -> Item:
        _check_id(item_id)
        return self._call(f"get item {item_id}", lambda: self._store.get(item_id))

    def list_items(self, page: int = 1, limit: Optional[int] = None) -> dict[str, Any]:
        """
        Read one page of items, newest first.

        Returns:
            Dict with 'items', 'total', 'page', 'limit', 'total_pages'
        """
        if limit is None:
            limit = self.default_page_size
        if page <= 0:
            raise InvalidInput("page must be a positive integer")
        if limit <= 0 or limit > self.max_page_size:
            raise InvalidInput(f"limit must be between 1 and {self.max_page_size}")

        offset = (page - 1) * limit
        items, total = self._call(
            "list items", lambda: self._store.list_page(offset, limit)
        )
        total_pages = (total + limit - 1) // limit if total > 0 else 1
        logger.info("Items retrieved: count=%d total=%d", len(items), total)
        return {
            "items": items,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": total_pages,
        }

    def update_item(self, item_id: int, data: ItemUpdate) -> Item:
        _check_id(item_id)
        changes = data.model_dump(exclude_unset=True)
        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise InvalidInput(f"{field} cannot be null")

        updated = self._call(
            f"update item {item_id}", lambda: self._store.update(item_id, changes)
        )
        logger.info("Item updated: id=%s fields=%s", item_id, sorted(changes))
        return updated

    def delete_item(self, item_id: int) -> None:
        _check_id(item_id)
        self._call(f"delete item {item_id}", lambda: self._store.delete(item_id))
        logger.info("Item deleted: id=%s", item_id)

    def _call(self, action: str, operation: Callable[[], T]) -> T:
        try:
            return operation()
        except LedgerError as exc:
            logger.error("Failed to %s: %s", action, exc)
            raise
        except Exception as exc:
            logger.exception("Unexpected failure while trying to %s", action)
            raise InternalError(cause=exc) from exc


def _check_id(item_id: int) -> None:
    if item_id <= 0:
        raise InvalidInput("id must be a positive integer")
