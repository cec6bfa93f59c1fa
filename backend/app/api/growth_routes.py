"""
Growth timeline routes.
Runs the growth timeline simulation, the cash projection built on top of it,
and the derivation of engine inputs from stored business-plan sections.
"""
import logging
import time
from typing import Any, Callable, Dict, List

from fastapi import APIRouter, HTTPException, Request
from pydantic import Field

from app.config import DEFAULT_HORIZON_MONTHS, MAX_HORIZON_MONTHS
from app.models.growth_schema import (
    CashProjectionPoint,
    GrowthComputeInput,
    GrowthComputeResult,
    MonthlyProjection,
    PlanModel,
    ResultModel,
)
from app.services.cash_flow_engine import build_cash_projection
from app.services.financial_inputs_engine import FinancialInputsEngine
from app.services.growth_timeline_engine import GrowthTimelineEngine
from app.services.perf_monitor import tracker as perf_tracker

router = APIRouter(prefix="/api/v1/growth", tags=["Growth Timeline"])
logger = logging.getLogger("bizplan-api.growth")

_timeline_engine = GrowthTimelineEngine()
_inputs_engine = FinancialInputsEngine()


class GrowthTimelineRequest(GrowthComputeInput):
    horizon_months: int = Field(
        DEFAULT_HORIZON_MONTHS, ge=1, le=MAX_HORIZON_MONTHS,
        description="Number of months to simulate",
    )


class TimelineCashRequest(GrowthTimelineRequest):
    starting_cash: float = Field(0.0, description="Cash on hand before month 1")


class TimelineCashResponse(ResultModel):
    timeline: GrowthComputeResult
    cash_projection: List[CashProjectionPoint]


class CashProjectionRequest(PlanModel):
    projections: List[MonthlyProjection]
    starting_cash: float = 0.0


class DeriveInputsRequest(PlanModel):
    sections: Dict[str, Any] = Field(
        default_factory=dict,
        description="Stored plan sections: operations, financialProjections, "
                    "kpisMetrics, marketingStrategy, productService",
    )
    events: List[Dict[str, Any]] = Field(default_factory=list)
    horizon_months: int = Field(DEFAULT_HORIZON_MONTHS, ge=1, le=MAX_HORIZON_MONTHS)


class DerivedFinancialInputs(ResultModel):
    base_output_per_month: float
    total_max_output_per_month: float
    average_price_per_output: float
    variable_cost_per_output: float
    monthly_fixed_overhead: float
    monthly_workforce_cost: float
    monthly_fixed_cost: float
    monthly_marketing: float
    has_capacity_output: bool
    has_price_signal: bool


class DeriveInputsResponse(ResultModel):
    financial_inputs: DerivedFinancialInputs
    growth_input: GrowthComputeInput


def _tracked(kind: str, months: int, fn: Callable, *args):
    """Run an engine call, recording duration / errors in the perf tracker."""
    start = time.perf_counter()
    try:
        result = fn(*args)
    except Exception:
        perf_tracker.record_error(kind)
        logger.exception(f"{kind} computation failed")
        raise HTTPException(status_code=500, detail=f"{kind} computation failed")
    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    perf_tracker.record_computation(kind, duration_ms, months)
    return result


def _tag_request(request: Request, req: GrowthComputeInput) -> None:
    # Read back by RequestTimingMiddleware for the request log line
    request.state.horizon_months = req.horizon_months
    request.state.event_count = len(req.events)


@router.post("/timeline", response_model=GrowthComputeResult)
async def compute_timeline(req: GrowthTimelineRequest, request: Request):
    """
    Simulate the growth timeline month by month.

    Returns one snapshot and one projection record per month plus the horizon
    summary (totals and first break-even month, null if never reached).
    """
    _tag_request(request, req)
    return _tracked("growth_timeline", req.horizon_months, _timeline_engine.compute, req)


@router.post("/timeline/cash", response_model=TimelineCashResponse)
async def compute_timeline_with_cash(req: TimelineCashRequest, request: Request):
    """Growth timeline plus the running cash position it implies."""
    _tag_request(request, req)
    timeline = _tracked("growth_timeline", req.horizon_months, _timeline_engine.compute, req)
    cash = _tracked(
        "cash_projection", 0, build_cash_projection, timeline.projections, req.starting_cash
    )
    return TimelineCashResponse(timeline=timeline, cash_projection=cash)


@router.post("/cash-projection", response_model=List[CashProjectionPoint])
async def compute_cash_projection(req: CashProjectionRequest):
    """Running cash balance from already-computed projection records."""
    if not req.projections:
        raise HTTPException(status_code=400, detail="At least one projection record required")
    return _tracked("cash_projection", 0, build_cash_projection, req.projections, req.starting_cash)


@router.post("/inputs/derive", response_model=DeriveInputsResponse)
async def derive_inputs(req: DeriveInputsRequest):
    """
    Derive financial inputs and a ready-to-run growth engine input from the
    stored plan sections (price priority chain, base bookings from capacity,
    marketing budget from channels).
    """
    def _derive():
        inputs = _inputs_engine.derive_from_sections(req.sections)
        growth_input = _inputs_engine.build_growth_input(
            req.sections, req.events, req.horizon_months
        )
        return inputs, growth_input

    inputs, growth_input = _tracked("input_derivation", 0, _derive)
    if len(growth_input.events) < len(req.events):
        logger.info(
            f"Input derivation dropped {len(req.events) - len(growth_input.events)} "
            f"malformed event(s)"
        )
    return DeriveInputsResponse(
        financial_inputs=DerivedFinancialInputs(**inputs),
        growth_input=growth_input,
    )
