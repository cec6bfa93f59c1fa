"""
input_normalizer.py — Lenient parsing of stored plan data into engine models

Covers:
  - Operations in the current shape (field-by-field defaults, id fallbacks)
  - Transitional single ``capacity`` object → one capacity item
  - Variable cost rows → variable components (when none exist and output > 0)
  - Legacy ``crew`` + ``costBreakdown`` documents → workforce / items / components
  - Growth engine input: top-level numerics coerced, events validated one by one

Stored documents come from several generations of the plan editor, so nothing
here raises: wrong-typed values fall back to defaults and malformed events are
dropped with a warning.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from app.config import DEFAULT_HOURS_PER_WEEK, DEFAULT_HORIZON_MONTHS, DEFAULT_SEASON_COEFFICIENTS
from app.models.growth_schema import (
    CapacityItem,
    CostItem,
    GrowthComputeInput,
    GrowthEvent,
    OperationalMetric,
    Operations,
    VariableCostComponent,
    WorkforceMember,
)
from app.services.capacity_engine import total_planned_output

logger = logging.getLogger("bizplan-api.normalize")

_SOURCING_MODELS = {"in-house", "purchase-order", "on-demand"}
_DRIVER_TYPES = {
    "per-unit", "per-order", "per-service-hour", "per-machine-hour",
    "monthly", "quarterly", "yearly",
}

_DRIVER_UNIT_LABELS: Dict[str, str] = {
    "per-order":        "order",
    "per-service-hour": "service-hour",
    "per-machine-hour": "machine-hour",
}

# Legacy costBreakdown fields billed as flat monthly amounts → cost item category
_LEGACY_FIXED_FIELDS = [
    ("ownerSalary",           "Owner Salary"),
    ("marketingPerson",       "Marketing Person"),
    ("eventCoordinator",      "Event Coordinator"),
    ("vehiclePayment",        "Vehicle Payment"),
    ("vehicleMaintenance",    "Vehicle Maintenance"),
    ("vehicleInsurance",      "Vehicle Insurance"),
    ("crmSoftware",           "CRM Software"),
    ("websiteHosting",        "Website Hosting"),
    ("aiChatbot",             "AI & Chatbot"),
    ("cloudServices",         "Cloud Services"),
    ("phonePlan",             "Phone Plan"),
    ("contentCreation",       "Content Creation"),
    ("graphicDesign",         "Graphic Design"),
    ("storageRent",           "Storage Rent"),
    ("equipmentAmortization", "Equipment Amortization"),
    ("businessLicenses",      "Business Licenses"),
    ("miscFixed",             "Miscellaneous Fixed"),
]


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

def _get(raw: Mapping[str, Any], key: str) -> Any:
    """Look up a camelCase key, falling back to its snake_case spelling."""
    if key in raw:
        return raw[key]
    return raw.get(to_snake(key))


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _num(value: Any, default: float = 0.0) -> float:
    return float(value) if _is_number(value) else default


def _text(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _opt_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _records(value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, Mapping)]


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


# ---------------------------------------------------------------------------
# Current-shape rows
# ---------------------------------------------------------------------------

def ensure_capacity_item(raw: Mapping[str, Any], index: int) -> CapacityItem:
    return CapacityItem(
        id=_opt_text(_get(raw, "id")) or f"cap-{index + 1}",
        name=_text(_get(raw, "name")),
        offering_id=_opt_text(_get(raw, "offeringId")),
        output_unit_label=_text(_get(raw, "outputUnitLabel")),
        planned_output_per_month=_num(_get(raw, "plannedOutputPerMonth")),
        max_output_per_day=_num(_get(raw, "maxOutputPerDay")),
        max_output_per_week=_num(_get(raw, "maxOutputPerWeek")),
        max_output_per_month=_num(_get(raw, "maxOutputPerMonth")),
        utilization_rate=_num(_get(raw, "utilizationRate")),
    )


def ensure_variable_component(raw: Mapping[str, Any], index: int) -> VariableCostComponent:
    sourcing = _get(raw, "sourcingModel")
    return VariableCostComponent(
        id=_opt_text(_get(raw, "id")) or f"var-{index + 1}",
        name=_text(_get(raw, "name")),
        offering_id=_opt_text(_get(raw, "offeringId")),
        description=_opt_text(_get(raw, "description")),
        supplier=_opt_text(_get(raw, "supplier")),
        sourcing_model=sourcing if sourcing in _SOURCING_MODELS else "in-house",
        component_unit_label=_text(_get(raw, "componentUnitLabel"), "unit"),
        cost_per_component_unit=_num(_get(raw, "costPerComponentUnit")),
        component_units_per_output=_num(_get(raw, "componentUnitsPerOutput")),
        order_quantity=_num(_get(raw, "orderQuantity")),
        order_fee=_num(_get(raw, "orderFee")),
    )


def ensure_workforce_member(raw: Mapping[str, Any]) -> WorkforceMember:
    return WorkforceMember(
        role=_text(_get(raw, "role")),
        count=_num(_get(raw, "count")),
        rate_per_hour=_num(_get(raw, "ratePerHour")),
        hours_per_week=_num(_get(raw, "hoursPerWeek"), DEFAULT_HOURS_PER_WEEK),
    )


def ensure_cost_item(raw: Mapping[str, Any]) -> Optional[CostItem]:
    """None for rows that are neither fixed nor variable (they count nowhere)."""
    cost_type = _get(raw, "type")
    if cost_type not in ("fixed", "variable"):
        return None
    driver = _get(raw, "driverType")
    return CostItem(
        category=_text(_get(raw, "category")),
        type=cost_type,
        rate=_num(_get(raw, "rate")),
        driver_type=driver if driver in _DRIVER_TYPES else "monthly",
        driver_quantity_per_month=_num(_get(raw, "driverQuantityPerMonth")),
    )


def ensure_operational_metric(raw: Mapping[str, Any]) -> OperationalMetric:
    return OperationalMetric(
        name=_text(_get(raw, "name")),
        unit=_text(_get(raw, "unit")),
        value=_num(_get(raw, "value")),
        target=_num(_get(raw, "target")),
    )


# ---------------------------------------------------------------------------
# Migrations
# ---------------------------------------------------------------------------

def migrate_single_capacity(raw: Mapping[str, Any]) -> List[CapacityItem]:
    """Previous generic shape: one ``capacity`` object instead of a list."""
    return [ensure_capacity_item(
        {
            **raw,
            "id": _opt_text(_get(raw, "id")) or "cap-primary",
            "name": _opt_text(_get(raw, "name")) or "Primary Capacity",
        },
        0,
    )]


def migrate_variable_items_to_components(
    variable_items: List[CostItem], monthly_output_basis: float
) -> List[VariableCostComponent]:
    """
    Re-express variable cost rows as per-output components.

    units_per_output = monthly driver quantity / monthly output basis, so the
    component costs the same as the row did at the plan's current output.
    """
    components: List[VariableCostComponent] = []
    for index, item in enumerate(variable_items):
        quantity = max(0.0, item.driver_quantity_per_month)
        components.append(VariableCostComponent(
            id=f"var-legacy-{index + 1}",
            name=item.category or f"Variable Component {index + 1}",
            description=f"Migrated from legacy variable cost ({item.driver_type})",
            sourcing_model="in-house",
            component_unit_label=_DRIVER_UNIT_LABELS.get(item.driver_type, "unit"),
            cost_per_component_unit=max(0.0, item.rate),
            component_units_per_output=(
                quantity / monthly_output_basis if monthly_output_basis > 0 else 0.0
            ),
        ))
    return components


def migrate_crew(crew: List[Mapping[str, Any]]) -> List[WorkforceMember]:
    return [
        WorkforceMember(
            role=_text(_get(m, "role")),
            count=_num(_get(m, "count")),
            rate_per_hour=_num(_get(m, "hourlyRate")),
            hours_per_week=DEFAULT_HOURS_PER_WEEK,
        )
        for m in crew
    ]


def migrate_legacy_capacity(cap: Mapping[str, Any]) -> List[CapacityItem]:
    per_month = _num(_get(cap, "maxBookingsPerMonth"))
    return [CapacityItem(
        id="cap-legacy-1",
        name="Primary Capacity",
        output_unit_label="bookings",
        planned_output_per_month=per_month,
        max_output_per_day=_num(_get(cap, "maxBookingsPerDay")),
        max_output_per_week=_num(_get(cap, "maxBookingsPerWeek")),
        max_output_per_month=per_month,
        utilization_rate=0.0,
    )]


def migrate_cost_breakdown(cb: Mapping[str, Any], monthly_bookings: float) -> List[CostItem]:
    """
    Legacy per-event cost sheet → generic cost items.

    Per-event amounts become variable per-unit rows driven by monthly bookings;
    salaries and overheads become fixed monthly rows.
    """
    items: List[CostItem] = []

    def variable(category: str, rate: float) -> CostItem:
        return CostItem(
            category=category, type="variable", rate=rate,
            driver_type="per-unit", driver_quantity_per_month=monthly_bookings,
        )

    supplies = _num(_get(cb, "suppliesPerChild"))
    if supplies > 0:
        items.append(variable("Supplies", supplies * _num(_get(cb, "participantsPerEvent"), 1.0)))

    tickets = _num(_get(cb, "museumTicketPrice"))
    if tickets > 0:
        items.append(variable("Venue / Tickets", tickets * _num(_get(cb, "ticketsPerEvent"), 1.0)))

    fuel_cost = (
        _num(_get(cb, "avgRoundTripMiles")) / max(_num(_get(cb, "vehicleMPG"), 1.0), 1.0)
        * _num(_get(cb, "fuelPricePerGallon"))
        + _num(_get(cb, "parkingPerEvent"))
    )
    if fuel_cost > 0:
        items.append(variable("Transportation", fuel_cost))

    for key, category in _LEGACY_FIXED_FIELDS:
        amount = _num(_get(cb, key))
        if amount > 0:
            items.append(CostItem(
                category=category, type="fixed", rate=amount,
                driver_type="monthly", driver_quantity_per_month=1,
            ))

    for expense in _records(_get(cb, "customExpenses")):
        amount = _num(_get(expense, "amount"))
        if amount <= 0:
            continue
        name = _opt_text(_get(expense, "name")) or "Custom Expense"
        if _get(expense, "type") == "per-event":
            items.append(variable(name, amount))
        else:
            items.append(CostItem(
                category=name, type="fixed", rate=amount,
                driver_type="monthly", driver_quantity_per_month=1,
            ))

    return items


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def _split_variable_items(
    cost_items: List[CostItem],
    components: List[VariableCostComponent],
    output_basis: float,
) -> Tuple[List[CostItem], List[VariableCostComponent]]:
    """
    Move variable cost rows into components when the plan has none yet and
    there is output to express them against. Otherwise the rows stay as cost
    items (still billed as rate × quantity) so no cost is lost.
    """
    variable_items = [i for i in cost_items if i.type == "variable"]
    if components or not variable_items or output_basis <= 0:
        return cost_items, components
    return (
        [i for i in cost_items if i.type == "fixed"],
        migrate_variable_items_to_components(variable_items, output_basis),
    )


def _normalize_legacy(data: Mapping[str, Any]) -> Operations:
    capacity = _get(data, "capacity")
    capacity_items = migrate_legacy_capacity(capacity) if isinstance(capacity, Mapping) else []
    monthly_bookings = sum(item.max_output_per_month for item in capacity_items)

    breakdown = _get(data, "costBreakdown")
    migrated = (
        migrate_cost_breakdown(breakdown, monthly_bookings)
        if isinstance(breakdown, Mapping) else []
    )

    cost_items, variable_components = _split_variable_items(migrated, [], monthly_bookings)

    return Operations(
        workforce=migrate_crew(_records(_get(data, "crew"))),
        capacity_items=capacity_items,
        variable_components=variable_components,
        cost_items=cost_items,
        equipment=_strings(_get(data, "equipment")),
        safety_protocols=_strings(_get(data, "safetyProtocols")),
    )


def _normalize_current(data: Mapping[str, Any]) -> Operations:
    capacity_items = [
        ensure_capacity_item(raw, i) for i, raw in enumerate(_records(_get(data, "capacityItems")))
    ]
    if not capacity_items and isinstance(_get(data, "capacity"), Mapping):
        capacity_items = migrate_single_capacity(_get(data, "capacity"))

    cost_items = [
        item for item in (ensure_cost_item(raw) for raw in _records(_get(data, "costItems")))
        if item is not None
    ]

    variable_components = [
        ensure_variable_component(raw, i)
        for i, raw in enumerate(_records(_get(data, "variableComponents")))
    ]
    cost_items, variable_components = _split_variable_items(
        cost_items, variable_components, total_planned_output(capacity_items)
    )

    return Operations(
        workforce=[ensure_workforce_member(raw) for raw in _records(_get(data, "workforce"))],
        capacity_items=capacity_items,
        variable_components=variable_components,
        cost_items=cost_items,
        equipment=_strings(_get(data, "equipment")),
        safety_protocols=_strings(_get(data, "safetyProtocols")),
        operational_metrics=[
            ensure_operational_metric(raw) for raw in _records(_get(data, "operationalMetrics"))
        ],
    )


def normalize_operations(raw: Any) -> Operations:
    """
    Normalise stored operations data to the current Operations model.

    Handles three cases:
    1. Legacy format (``crew`` list + ``costBreakdown``): migrated field by field
    2. Current or transitional format: passed through with defaults
    3. Anything else (None, scalars, unknown dicts): empty Operations

    When both ``workforce`` and ``crew`` exist, ``workforce`` takes precedence.
    Variable cost rows become variable components when the plan has none and
    there is planned output to price them against; otherwise they stay as
    variable cost items.
    """
    if isinstance(raw, Operations):
        return raw
    if not isinstance(raw, Mapping):
        return Operations()

    if isinstance(_get(raw, "crew"), list) and not isinstance(_get(raw, "workforce"), list):
        return _normalize_legacy(raw)

    has_current_shape = (
        any(isinstance(_get(raw, k), list)
            for k in ("workforce", "costItems", "variableComponents", "capacityItems"))
        or isinstance(_get(raw, "capacity"), Mapping)
    )
    if has_current_shape:
        return _normalize_current(raw)
    return Operations()


# ---------------------------------------------------------------------------
# Growth engine input
# ---------------------------------------------------------------------------

def coerce_season_coefficients(value: Any) -> List[float]:
    if not isinstance(value, list):
        return list(DEFAULT_SEASON_COEFFICIENTS)
    return [_num(v, 1.0) for v in value]


def _horizon(value: Any) -> int:
    return int(value) if _is_number(value) else DEFAULT_HORIZON_MONTHS


def normalize_events(raw_events: Any) -> List[GrowthEvent]:
    """Validate events one at a time; malformed ones are logged and skipped."""
    if not isinstance(raw_events, list):
        return []

    events: List[GrowthEvent] = []
    dropped = 0
    for index, raw in enumerate(raw_events):
        if isinstance(raw, GrowthEvent):
            events.append(raw)
            continue
        try:
            events.append(GrowthEvent.model_validate(raw))
        except ValidationError as exc:
            dropped += 1
            event_id = _get(raw, "id") if isinstance(raw, Mapping) else None
            logger.warning(
                f"Skipping malformed growth event #{index} (id={event_id}): "
                f"{exc.error_count()} validation error(s)"
            )
    if dropped:
        logger.warning("growth events dropped", extra={"dropped": dropped})
    return events


def normalize_growth_input(raw: Any) -> GrowthComputeInput:
    """
    Build a GrowthComputeInput from loosely-typed JSON (camelCase or snake_case keys).

    Non-numeric or non-finite scalars take their defaults (0, horizon 12,
    twelve flat season coefficients); operations go through
    ``normalize_operations``; events through ``normalize_events``.
    """
    if isinstance(raw, GrowthComputeInput):
        return raw
    if not isinstance(raw, Mapping):
        raw = {}

    return GrowthComputeInput(
        operations=normalize_operations(_get(raw, "operations")),
        base_price_per_unit=_num(_get(raw, "basePricePerUnit")),
        base_bookings=_num(_get(raw, "baseBookings")),
        base_marketing_budget=_num(_get(raw, "baseMarketingBudget")),
        season_coefficients=coerce_season_coefficients(
            _get(raw, "seasonCoefficients")
        ),
        horizon_months=_horizon(_get(raw, "horizonMonths")),
        events=normalize_events(_get(raw, "events")),
    )
