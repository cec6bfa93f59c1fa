"""
Operations routes.
Normalises stored operations documents (any generation) and returns their
monthly cost and capacity summary.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, HTTPException

from app.models.growth_schema import Operations
from app.services.capacity_engine import summarize_capacity
from app.services.input_normalizer import normalize_operations
from app.services.operations_cost_engine import OperationsCostEngine

router = APIRouter(prefix="/api/v1/operations", tags=["Operations"])
logger = logging.getLogger("bizplan-api.operations")

_cost_engine = OperationsCostEngine()


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Operations document must be a JSON object")
    return payload


@router.post("/normalize", response_model=Operations)
async def normalize(payload: Any = Body(...)):
    """Current-shape Operations for any stored operations document."""
    return normalize_operations(_require_object(payload))


@router.post("/costs")
async def operations_costs(payload: Any = Body(...)):
    """
    Monthly cost totals and capacity figures for an operations document.

    Workforce at rate × hours/week × count × 52/12; fixed items normalised to a
    month; variable items plus variable components priced against their
    offering's planned output.
    """
    ops = normalize_operations(_require_object(payload))
    costs = _cost_engine.compute(ops)
    logger.debug(
        f"Operations costs: total {costs['monthly_operations_total']:.2f}/month "
        f"across {len(ops.capacity_items)} capacity item(s)"
    )
    return {
        "operations": ops.model_dump(by_alias=True),
        "costs": costs,
        "capacity": summarize_capacity(ops.capacity_items),
    }
