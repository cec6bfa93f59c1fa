"""
growth_events.py — Event Effect Resolver

Folds every growth event that applies to a simulated month into that month's
effective operating state. Nothing is carried between months: each call to
``EventEffectResolver.resolve(m)`` starts again from the base state and the
full event list, so any month can be resolved in isolation.

Temporal patterns per event kind:
  - Instant, ongoing     : hire, cost-change, capacity-change, marketing-change,
                           custom, price-change
  - One-time             : funding-round (whole effect), equipment-purchase
                           (purchase cost only; maintenance + capacity ongoing)
  - Window then permanent: facility-build (construction spread, then rent + capacity)
  - Window then reverted : seasonal-campaign
  - Staggered            : hiring-campaign (cumulative hires ramp across the window)

Untargeted capacity effects resolve differently per kind and must stay that way:
hire / hiring-campaign → first capacity item; capacity-change / facility-build /
equipment-purchase → every item. With no capacity items at all the amount is
tracked as a standalone output delta.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from app.config import DEFAULT_EVENT_DURATION_MONTHS
from app.models.growth_schema import (
    EVENT_TYPES,
    CapacityItem,
    CostItem,
    GrowthComputeInput,
    GrowthEvent,
    WorkforceMember,
)


# ---------------------------------------------------------------------------
# Month-scoped state
# ---------------------------------------------------------------------------

@dataclass
class ResolvedMonth:
    """Effective state and accumulators for a single simulated month."""
    month: int
    workforce: List[WorkforceMember]
    cost_items: List[CostItem]
    capacity_items: List[CapacityItem]
    marketing_budget: float
    price_per_unit: float
    # Additive, ongoing
    custom_revenue_delta: float = 0.0
    custom_fixed_cost_delta: float = 0.0
    custom_variable_cost_delta: float = 0.0
    custom_marketing_delta: float = 0.0
    standalone_capacity_delta: float = 0.0   # only used when no capacity items exist
    # This month only
    one_time_non_operating_cash_flow: float = 0.0
    one_time_fixed_cost: float = 0.0
    # capacity item id -> positions in capacity_items
    _positions_by_id: Dict[str, List[int]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for pos, item in enumerate(self.capacity_items):
            self._positions_by_id.setdefault(item.id, []).append(pos)

    # ── capacity helpers ──────────────────────────────────────────────────────

    def _bump(self, pos: int, amount: float) -> None:
        item = self.capacity_items[pos]
        self.capacity_items[pos] = item.model_copy(
            update={"planned_output_per_month": item.planned_output_per_month + amount}
        )

    def add_capacity_to_item(self, item_id: str, amount: float) -> None:
        """Targeted uplift. An id that matches no item has no effect."""
        for pos in self._positions_by_id.get(item_id, []):
            self._bump(pos, amount)

    def add_capacity_to_all(self, amount: float) -> None:
        if not self.capacity_items:
            self.standalone_capacity_delta += amount
            return
        for pos in range(len(self.capacity_items)):
            self._bump(pos, amount)

    def add_capacity_to_first(self, amount: float) -> None:
        if not self.capacity_items:
            self.standalone_capacity_delta += amount
            return
        self._bump(0, amount)

    def add_capacity(self, item_id: Optional[str], amount: float) -> None:
        if item_id:
            self.add_capacity_to_item(item_id, amount)
        else:
            self.add_capacity_to_all(amount)


# ---------------------------------------------------------------------------
# Timing helpers
# ---------------------------------------------------------------------------

def event_duration(event: GrowthEvent) -> int:
    """durationMonths when it is a positive whole number, else 1."""
    if event.duration_months and event.duration_months > 0:
        return event.duration_months
    return DEFAULT_EVENT_DURATION_MONTHS


def in_window(event: GrowthEvent, month: int) -> bool:
    """True while ``event.month ≤ month ≤ event.month + duration − 1``."""
    return event.month <= month <= event.month + event_duration(event) - 1


def cumulative_hires(total_hires: int, start: int, duration: int, month: int) -> int:
    """
    Hires in post at ``month`` for a campaign spreading ``total_hires`` over
    ``duration`` months from ``start``.

    Example: 4 hires over 4 months starting month 1 → 1, 2, 3, 4, 4, 4 …
    """
    if month < start:
        return 0
    if month > start + duration - 1:
        return total_hires
    index = month - start
    return min(total_hires, math.floor(total_hires * (index + 1) / duration))


# ---------------------------------------------------------------------------
# Effect handlers: one per event kind
# ---------------------------------------------------------------------------

EffectHandler = Callable[[ResolvedMonth, GrowthEvent], None]


def _apply_hire(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    state.workforce.append(WorkforceMember(
        role=data.role,
        count=data.count,
        rate_per_hour=data.rate_per_hour,
        hours_per_week=data.hours_per_week,
    ))
    hire_capacity = (data.capacity_per_hire or 0.0) * data.count
    if hire_capacity > 0:
        state.add_capacity_to_first(hire_capacity)


def _apply_cost_change(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    state.cost_items.append(CostItem(
        category=data.category,
        type=data.cost_type,
        rate=data.rate,
        driver_type=data.driver_type,
        driver_quantity_per_month=data.driver_quantity_per_month,
    ))


def _apply_capacity_change(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    state.add_capacity(data.capacity_item_id, data.output_delta)


def _apply_marketing_change(state: ResolvedMonth, event: GrowthEvent) -> None:
    state.marketing_budget = event.delta.data.monthly_budget


def _apply_custom(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    if data.target == "revenue":
        state.custom_revenue_delta += data.value
    elif data.target == "fixedCost":
        state.custom_fixed_cost_delta += data.value
    elif data.target == "variableCost":
        state.custom_variable_cost_delta += data.value
    elif data.target == "marketing":
        state.custom_marketing_delta += data.value


def _apply_funding_round(state: ResolvedMonth, event: GrowthEvent) -> None:
    if event.month != state.month:
        return
    data = event.delta.data
    state.one_time_non_operating_cash_flow += data.amount
    state.one_time_fixed_cost += data.legal_costs


def _apply_facility_build(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    duration = event_duration(event)
    if in_window(event, state.month):
        state.custom_fixed_cost_delta += data.construction_cost / duration
    elif state.month >= event.month + duration:
        state.custom_fixed_cost_delta += data.monthly_rent
        state.add_capacity(data.capacity_item_id, data.capacity_added)


def _apply_hiring_campaign(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    duration = event_duration(event)
    hired = cumulative_hires(data.total_hires, event.month, duration, state.month)
    hired_before = cumulative_hires(data.total_hires, event.month, duration, state.month - 1)

    if hired > 0:
        state.workforce.append(WorkforceMember(
            role=data.role,
            count=hired,
            rate_per_hour=data.rate_per_hour,
            hours_per_week=data.hours_per_week,
        ))

    new_hires = hired - hired_before
    if new_hires > 0:
        state.one_time_fixed_cost += new_hires * data.recruiting_cost_per_hire

    campaign_capacity = (data.capacity_per_hire or 0.0) * hired
    if campaign_capacity > 0:
        state.add_capacity_to_first(campaign_capacity)


def _apply_price_change(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    if data.new_price_per_unit is not None:
        state.price_per_unit = data.new_price_per_unit
    elif data.new_avg_check is not None:
        state.price_per_unit = data.new_avg_check


def _apply_equipment_purchase(state: ResolvedMonth, event: GrowthEvent) -> None:
    data = event.delta.data
    if event.month == state.month:
        state.one_time_fixed_cost += data.purchase_cost
    state.custom_fixed_cost_delta += data.maintenance_cost_monthly
    state.add_capacity(data.capacity_item_id, data.capacity_increase)


def _apply_seasonal_campaign(state: ResolvedMonth, event: GrowthEvent) -> None:
    if in_window(event, state.month):
        state.custom_marketing_delta += event.delta.data.budget_increase


EFFECT_HANDLERS: Dict[str, EffectHandler] = {
    "hire":               _apply_hire,
    "cost-change":        _apply_cost_change,
    "capacity-change":    _apply_capacity_change,
    "marketing-change":   _apply_marketing_change,
    "custom":             _apply_custom,
    "funding-round":      _apply_funding_round,
    "facility-build":     _apply_facility_build,
    "hiring-campaign":    _apply_hiring_campaign,
    "price-change":       _apply_price_change,
    "equipment-purchase": _apply_equipment_purchase,
    "seasonal-campaign":  _apply_seasonal_campaign,
}

_unhandled = set(EVENT_TYPES) - set(EFFECT_HANDLERS)
if _unhandled:
    raise RuntimeError(f"No effect handler for event types: {sorted(_unhandled)}")


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class EventEffectResolver:
    """
    Resolves the effective state of any month from a base input.

    Disabled events are dropped up front and the rest are stably ordered by
    start month, so later overrides (marketing-change, price-change) win and
    appended workforce / cost rows keep a deterministic order.
    """

    def __init__(self, payload: GrowthComputeInput) -> None:
        self.payload = payload
        self.active_events: List[GrowthEvent] = sorted(
            (e for e in payload.events if e.enabled),
            key=lambda e: e.month,
        )

    def resolve(self, month: int) -> ResolvedMonth:
        ops = self.payload.operations
        state = ResolvedMonth(
            month=month,
            workforce=list(ops.workforce),
            cost_items=list(ops.cost_items),
            capacity_items=list(ops.capacity_items),
            marketing_budget=self.payload.base_marketing_budget,
            price_per_unit=self.payload.base_price_per_unit,
        )
        for event in self.active_events:
            if event.month > month:
                break
            EFFECT_HANDLERS[event.delta.type](state, event)
        return state
