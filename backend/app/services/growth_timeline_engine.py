"""
growth_timeline_engine.py — Month-by-month growth timeline simulation

Covers:
  - Per-month effective state via the Event Effect Resolver
  - Planned output, weighted utilization and bookings
  - Seasonality (coefficients cycle past the end of the list)
  - Revenue, workforce / variable / fixed / marketing cost, profit
  - Cumulative profit and first break-even month
  - Projection records for the financial-projections display
  - Horizon summary (total revenue, total costs, total profit)

The engine is a pure function of its input: no I/O, no state kept between
calls, identical input → identical result.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from app.models.growth_schema import (
    GrowthComputeInput,
    GrowthComputeResult,
    GrowthSummary,
    MonthlyProjection,
    MonthlySnapshot,
)
from app.services.capacity_engine import total_planned_output, weighted_utilization
from app.services.growth_events import EventEffectResolver, ResolvedMonth
from app.services.input_normalizer import normalize_growth_input
from app.services.operations_cost_engine import OperationsCostEngine
from app.services.perf_monitor import timed
from app.services.projection_adapter import to_projection

logger = logging.getLogger("bizplan-api.growth")


def season_coefficient(coefficients: Sequence[float], month: int) -> float:
    """Coefficient for 1-based ``month``, cycling; 1.0 when none are given."""
    if not coefficients:
        return 1.0
    return coefficients[(month - 1) % len(coefficients)]


class GrowthTimelineEngine:
    """
    Growth timeline simulator.

    Usage::

        engine = GrowthTimelineEngine()
        result = engine.compute(payload)      # GrowthComputeInput or plain dict
        result.summary.break_even_month
    """

    def __init__(self, cost_engine: Optional[OperationsCostEngine] = None) -> None:
        self.cost_engine = cost_engine or OperationsCostEngine()

    # -----------------------------------------------------------------------
    # 1. Single month (steps 2–9; independent of every other month)
    # -----------------------------------------------------------------------

    def month_figures(self, payload: GrowthComputeInput, resolved: ResolvedMonth) -> Dict[str, Any]:
        planned_output = (
            total_planned_output(resolved.capacity_items)
            + max(0.0, resolved.standalone_capacity_delta)
        )
        utilization = weighted_utilization(resolved.capacity_items)

        if planned_output > 0:
            bookings = planned_output * utilization
        else:
            bookings = payload.base_bookings * utilization

        coeff = season_coefficient(payload.season_coefficients, resolved.month)
        revenue = (
            max(0.0, bookings) * coeff * resolved.price_per_unit
            + resolved.custom_revenue_delta
        )

        effective_ops = payload.operations.model_copy(update={
            "workforce": resolved.workforce,
            "cost_items": resolved.cost_items,
            "capacity_items": resolved.capacity_items,
        })
        costs = self.cost_engine.compute(effective_ops)

        workforce_cost = costs["workforce_monthly_total"]
        variable_cost = costs["variable_monthly_total"] + resolved.custom_variable_cost_delta
        fixed_cost = (
            costs["fixed_monthly_total"]
            + resolved.custom_fixed_cost_delta
            + resolved.one_time_fixed_cost
        )
        marketing_cost = resolved.marketing_budget + resolved.custom_marketing_delta
        total_cost = workforce_cost + variable_cost + fixed_cost + marketing_cost

        return {
            "planned_output": max(0.0, planned_output),
            "bookings": max(0.0, bookings),
            "revenue": revenue,
            "workforce_cost": workforce_cost,
            "variable_cost": variable_cost,
            "fixed_cost": fixed_cost,
            "marketing_cost": marketing_cost,
            "total_cost": total_cost,
            "profit": revenue - total_cost,
        }

    # -----------------------------------------------------------------------
    # 2. Horizon
    # -----------------------------------------------------------------------

    @timed
    def compute(self, payload: Union[GrowthComputeInput, Mapping[str, Any]]) -> GrowthComputeResult:
        if not isinstance(payload, GrowthComputeInput):
            payload = normalize_growth_input(payload)

        resolver = EventEffectResolver(payload)
        snapshots: List[MonthlySnapshot] = []
        projections: List[MonthlyProjection] = []
        cumulative_profit = 0.0
        break_even_month: Optional[int] = None

        for m in range(1, payload.horizon_months + 1):
            resolved = resolver.resolve(m)
            figures = self.month_figures(payload, resolved)

            cumulative_profit += figures["profit"]
            if break_even_month is None and cumulative_profit >= 0:
                break_even_month = m

            snapshot = MonthlySnapshot(
                month=m,
                label=f"Month {m}",
                workforce=resolved.workforce,
                cost_items=resolved.cost_items,
                price_per_unit=resolved.price_per_unit,
                marketing_budget=resolved.marketing_budget,
                cumulative_profit=cumulative_profit,
                **figures,
            )
            snapshots.append(snapshot)
            projections.append(
                to_projection(snapshot, resolved.one_time_non_operating_cash_flow)
            )

        total_revenue = sum(s.revenue for s in snapshots)
        total_costs = sum(s.total_cost for s in snapshots)

        logger.info(
            "growth timeline computed",
            extra={
                "horizon_months": payload.horizon_months,
                "event_count": len(payload.events),
                "break_even_month": break_even_month,
            },
        )

        return GrowthComputeResult(
            months=snapshots,
            projections=projections,
            summary=GrowthSummary(
                total_revenue=total_revenue,
                total_costs=total_costs,
                total_profit=total_revenue - total_costs,
                break_even_month=break_even_month,
            ),
        )


_default_engine = GrowthTimelineEngine()


def compute_growth_timeline(payload: Union[GrowthComputeInput, Mapping[str, Any]]) -> GrowthComputeResult:
    """Module-level shortcut using a shared default engine (it holds no state)."""
    return _default_engine.compute(payload)
