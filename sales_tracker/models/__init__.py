"""Models package for the sales tracker."""

from sales_tracker.models.analytics import Aggregate, AnalyticsResult, percentile_cont
from sales_tracker.models.item import Item, ItemKind

__all__ = [
    "Aggregate",
    "AnalyticsResult",
    "Item",
    "ItemKind",
    "percentile_cont",
]
