"""Storage backends for the sales tracker."""

from sales_tracker.stores.base import AnalyticsSnapshot, AnalyticsStore, ItemStore
from sales_tracker.stores.sql import SqlAnalyticsStore, SqlItemStore

__all__ = [
    "AnalyticsSnapshot",
    "AnalyticsStore",
    "ItemStore",
    "SqlAnalyticsStore",
    "SqlItemStore",
]
