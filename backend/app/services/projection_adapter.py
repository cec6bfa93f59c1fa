"""Maps growth timeline snapshots onto the generic monthly projection record."""

from app.config import PROJECTION_LEGACY_COST_FIELDS
from app.models.growth_schema import MonthlyCosts, MonthlyProjection, MonthlySnapshot


def to_projection(snapshot: MonthlySnapshot, non_operating_cash_flow: float = 0.0) -> MonthlyProjection:
    """
    Snapshot → projection record.

    labor ← workforce cost, supplies ← variable cost, marketing ← marketing cost
    (budget plus custom/seasonal additions), fixed ← fixed cost. The
    museum/transport lines belong to the downstream format and stay at 0.
    """
    costs = MonthlyCosts(
        marketing=snapshot.marketing_cost,
        labor=snapshot.workforce_cost,
        supplies=snapshot.variable_cost,
        fixed=snapshot.fixed_cost,
        **{name: 0.0 for name in PROJECTION_LEGACY_COST_FIELDS},
    )
    return MonthlyProjection(
        month=snapshot.label,
        revenue=snapshot.revenue,
        costs=costs,
        profit=snapshot.profit,
        non_operating_cash_flow=non_operating_cash_flow,
    )
