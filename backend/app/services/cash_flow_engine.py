"""
cash_flow_engine.py — Cash position from monthly projection records

Covers:
  - Total monthly cost across every cost line of a projection record
  - Net cash flow per month (operating result + non-operating inflows such as
    funding rounds)
  - Running ending cash from a starting balance

Non-finite values (NaN / ±inf from upstream arithmetic) count as 0 so one bad
month cannot poison the running balance.
"""

import math
from typing import Iterable, List

from app.models.growth_schema import CashProjectionPoint, MonthlyCosts, MonthlyProjection


def _safe(value: float) -> float:
    return value if isinstance(value, (int, float)) and math.isfinite(value) else 0.0


def sum_monthly_costs(costs: MonthlyCosts) -> float:
    return (
        _safe(costs.marketing)
        + _safe(costs.labor)
        + _safe(costs.supplies)
        + _safe(costs.museum)
        + _safe(costs.transport)
        + _safe(costs.fixed)
    )


def build_cash_projection(
    projections: Iterable[MonthlyProjection], starting_cash: float = 0.0
) -> List[CashProjectionPoint]:
    """
    net_cash_flow = revenue − Σ costs + non_operating_cash_flow
    ending_cash   = previous ending cash (starting_cash for month 1) + net_cash_flow

    Example: starting 10 000, month revenue 5 000, costs 3 000, funding 20 000
        net = 5000 − 3000 + 20000 = 22 000, ending = 32 000
    """
    running_cash = _safe(starting_cash)
    points: List[CashProjectionPoint] = []

    for record in projections:
        net_cash_flow = (
            _safe(record.revenue)
            - sum_monthly_costs(record.costs)
            + _safe(record.non_operating_cash_flow)
        )
        running_cash += net_cash_flow
        points.append(CashProjectionPoint(
            month=record.month,
            net_cash_flow=net_cash_flow,
            ending_cash=running_cash,
        ))
    return points
