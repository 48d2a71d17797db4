"""Services package for the sales tracker."""

from sales_tracker.services.analytics_service import AnalyticsService
from sales_tracker.services.item_service import ItemService
from sales_tracker.services.range_validator import validate_range

__all__ = [
    "AnalyticsService",
    "ItemService",
    "validate_range",
]
