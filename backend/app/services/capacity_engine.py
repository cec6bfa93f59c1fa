"""
capacity_engine.py — Capacity Aggregator for the growth timeline

Covers:
  - Monthly capacity ceiling per item (day / week / month constraints reconciled)
  - Effective (ceiling-limited) output per item
  - Total planned output across items
  - Output-weighted utilization rate, defaulting to 100 % when unspecified

All functions are pure and accept any iterable of CapacityItem models.
A ceiling of 0 means "no ceiling supplied", never "zero capacity".
"""

from typing import Iterable, List

from app.config import WEEKS_PER_MONTH, DAYS_PER_MONTH
from app.models.growth_schema import CapacityItem


# ---------------------------------------------------------------------------
# Per-item figures
# ---------------------------------------------------------------------------

def monthly_capacity_limit(item: CapacityItem) -> float:
    """
    Tightest monthly ceiling implied by the item's max-output constraints.

    month → as is, week → ×52/12, day → ×30. Zero or negative constraints are
    ignored; with none present the result is 0 (uncapped).
    """
    constraints: List[float] = []
    month = max(0.0, item.max_output_per_month)
    week = max(0.0, item.max_output_per_week)
    day = max(0.0, item.max_output_per_day)

    if month > 0:
        constraints.append(month)
    if week > 0:
        constraints.append(week * WEEKS_PER_MONTH)
    if day > 0:
        constraints.append(day * DAYS_PER_MONTH)

    if not constraints:
        return 0.0
    return min(constraints)


def effective_output(item: CapacityItem) -> float:
    """Planned output clamped to the item's ceiling when one is supplied."""
    planned = max(0.0, item.planned_output_per_month)
    limit = monthly_capacity_limit(item)
    return min(planned, limit) if limit > 0 else planned


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def total_planned_output(items: Iterable[CapacityItem]) -> float:
    return sum(max(0.0, item.planned_output_per_month) for item in items)


def total_max_output(items: Iterable[CapacityItem]) -> float:
    return sum(monthly_capacity_limit(item) for item in items)


def weighted_utilization(items: Iterable[CapacityItem]) -> float:
    """
    Output-weighted utilization as a fraction (1.0 = 100 %).

        Σ(util_i × planned_i) / Σ planned_i / 100

    Items store utilization as 0–100. When no item carries a rate (numerator 0)
    or there is no planned output (denominator 0) the result is 1.0: legacy
    plans never set a rate and must book their full planned output.
    """
    numerator = 0.0
    denominator = 0.0
    for item in items:
        planned = max(0.0, item.planned_output_per_month)
        numerator += max(0.0, item.utilization_rate) * planned
        denominator += planned

    if denominator > 0 and numerator > 0:
        return numerator / denominator / 100
    return 1.0


def summarize_capacity(items: Iterable[CapacityItem]) -> dict:
    items = list(items)
    return {
        "item_count": len(items),
        "total_planned_output": total_planned_output(items),
        "total_effective_output": sum(effective_output(i) for i in items),
        "total_max_output": total_max_output(items),
        "weighted_utilization": weighted_utilization(items),
    }
