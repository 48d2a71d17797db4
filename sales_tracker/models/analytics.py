"""Derived analytics shapes; computed on demand and never persisted."""

import math
from dataclasses import dataclass, field
from typing import List, Sequence

from sales_tracker.models.item import Item

MEDIAN = 0.5
PERCENTILE_90 = 0.9


def percentile_cont(sorted_values: Sequence[float], fraction: float) -> float:
    """Continuous percentile with linear interpolation between closest ranks.

    Matches SQL ``PERCENTILE_CONT``: the target rank is ``fraction * (n - 1)``
    over the ascending values. Returns 0 for an empty sequence.
    """
    if not sorted_values:
        return 0.0
    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"fraction must be within [0, 1], got {fraction}")

    rank = fraction * (len(sorted_values) - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(sorted_values[lower])
    low_value = sorted_values[lower]
    high_value = sorted_values[upper]
    return low_value + (high_value - low_value) * (rank - lower)


@dataclass(frozen=True)
class Aggregate:
    """Summary statistics over the amounts of one item kind."""

    sum: float = 0.0
    avg: float = 0.0
    count: int = 0
    median: float = 0.0
    percent90: float = 0.0

    @classmethod
    def from_amounts(cls, amounts: Sequence[float]) -> "Aggregate":
        """Build an aggregate from raw amounts in any order."""
        values = sorted(float(a) for a in amounts)
        if not values:
            return cls()
        total = math.fsum(values)
        return cls(
            sum=total,
            avg=total / len(values),
            count=len(values),
            median=percentile_cont(values, MEDIAN),
            percent90=percentile_cont(values, PERCENTILE_90),
        )

    def to_dict(self) -> dict:
        return {
            "sum": self.sum,
            "avg": self.avg,
            "count": self.count,
            "median": self.median,
            "percent90": self.percent90,
        }


@dataclass(frozen=True)
class AnalyticsResult:
    """Income and expense aggregates plus the detail rows they were computed from.

    ``details`` is ordered by ``occurred_at`` descending, ties by insertion order.
    """

    income: Aggregate
    expense: Aggregate
    details: List[Item] = field(default_factory=list)
