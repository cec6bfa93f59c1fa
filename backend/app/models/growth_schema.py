"""
Growth timeline data model.

Pydantic models for the operations state, the growth events and the engine
output. Field names are snake_case in Python; every model also accepts and
emits the camelCase names used by the business-plan JSON documents
(``plannedOutputPerMonth``, ``durationMonths``, ``nonOperatingCashFlow`` ...).

Usage:
    from app.models.growth_schema import GrowthComputeInput, GrowthEvent

    payload = GrowthComputeInput.model_validate(request_json)
    event = GrowthEvent(
        id="evt-1", month=3, label="Hire barista",
        delta={"type": "hire", "data": {"role": "Barista", "count": 1,
                                        "ratePerHour": 18, "hoursPerWeek": 40}},
    )
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.config import DEFAULT_HOURS_PER_WEEK, DEFAULT_SEASON_COEFFICIENTS, DEFAULT_HORIZON_MONTHS


class PlanModel(BaseModel):
    """Base for every input model: camelCase aliases, snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ResultModel(PlanModel):
    """Base for engine output; frozen so callers treat results as values."""


CostType = Literal["variable", "fixed"]
CostDriverType = Literal[
    "per-unit",
    "per-order",
    "per-service-hour",
    "per-machine-hour",
    "monthly",
    "quarterly",
    "yearly",
]
SourcingModel = Literal["in-house", "purchase-order", "on-demand"]
CustomTarget = Literal["revenue", "fixedCost", "variableCost", "marketing"]
InvestmentType = Literal["equity", "debt", "grant"]


# ── Operations state ──────────────────────────────────────────────────────────

class WorkforceMember(PlanModel):
    role: str = ""
    count: float = 0.0
    rate_per_hour: float = 0.0
    hours_per_week: float = DEFAULT_HOURS_PER_WEEK


class CapacityItem(PlanModel):
    """A production or service line. utilization_rate is a percentage (0–100)."""
    id: str = ""
    name: str = ""
    offering_id: Optional[str] = None
    output_unit_label: str = ""
    planned_output_per_month: float = 0.0
    max_output_per_day: float = 0.0
    max_output_per_week: float = 0.0
    max_output_per_month: float = 0.0
    utilization_rate: float = 0.0


class VariableCostComponent(PlanModel):
    """A consumable or bought-in part whose usage scales with output."""
    id: str = ""
    name: str = ""
    offering_id: Optional[str] = None
    description: Optional[str] = None
    supplier: Optional[str] = None
    sourcing_model: SourcingModel = "in-house"
    component_unit_label: str = "unit"
    cost_per_component_unit: float = 0.0
    component_units_per_output: float = 0.0
    order_quantity: float = 0.0
    order_fee: float = 0.0


class CostItem(PlanModel):
    category: str = ""
    type: CostType = "fixed"
    rate: float = 0.0
    driver_type: CostDriverType = "monthly"
    driver_quantity_per_month: float = 0.0


class OperationalMetric(PlanModel):
    name: str = ""
    unit: str = ""
    value: float = 0.0
    target: float = 0.0


class Operations(PlanModel):
    workforce: List[WorkforceMember] = Field(default_factory=list)
    capacity_items: List[CapacityItem] = Field(default_factory=list)
    variable_components: List[VariableCostComponent] = Field(default_factory=list)
    cost_items: List[CostItem] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    safety_protocols: List[str] = Field(default_factory=list)
    operational_metrics: List[OperationalMetric] = Field(default_factory=list)


# ── Event deltas (closed set, discriminated by ``type``) ──────────────────────

class HireData(PlanModel):
    role: str = ""
    count: float = 0.0
    rate_per_hour: float = 0.0
    hours_per_week: float = DEFAULT_HOURS_PER_WEEK
    capacity_per_hire: Optional[float] = None


class CostChangeData(PlanModel):
    category: str = ""
    cost_type: CostType = "fixed"
    rate: float = 0.0
    driver_type: CostDriverType = "monthly"
    driver_quantity_per_month: float = 0.0


class CapacityChangeData(PlanModel):
    capacity_item_id: Optional[str] = None
    output_delta: float = 0.0


class MarketingChangeData(PlanModel):
    monthly_budget: float = 0.0


class CustomData(PlanModel):
    label: str = ""
    value: float = 0.0
    target: CustomTarget = "revenue"
    formula: Optional[str] = None


class FundingRoundData(PlanModel):
    amount: float = 0.0
    legal_costs: float = 0.0
    investment_type: InvestmentType = "equity"


class FacilityBuildData(PlanModel):
    construction_cost: float = 0.0
    monthly_rent: float = 0.0
    capacity_added: float = 0.0
    capacity_item_id: Optional[str] = None


class HiringCampaignData(PlanModel):
    total_hires: int = 0
    role: str = ""
    rate_per_hour: float = 0.0
    hours_per_week: float = DEFAULT_HOURS_PER_WEEK
    recruiting_cost_per_hire: float = 0.0
    capacity_per_hire: Optional[float] = None


class PriceChangeData(PlanModel):
    new_price_per_unit: Optional[float] = None
    new_avg_check: Optional[float] = None   # legacy name for new_price_per_unit


class EquipmentPurchaseData(PlanModel):
    purchase_cost: float = 0.0
    capacity_increase: float = 0.0
    maintenance_cost_monthly: float = 0.0
    capacity_item_id: Optional[str] = None


class SeasonalCampaignData(PlanModel):
    budget_increase: float = 0.0


class HireDelta(PlanModel):
    type: Literal["hire"] = "hire"
    data: HireData = Field(default_factory=HireData)


class CostChangeDelta(PlanModel):
    type: Literal["cost-change"] = "cost-change"
    data: CostChangeData = Field(default_factory=CostChangeData)


class CapacityChangeDelta(PlanModel):
    type: Literal["capacity-change"] = "capacity-change"
    data: CapacityChangeData = Field(default_factory=CapacityChangeData)


class MarketingChangeDelta(PlanModel):
    type: Literal["marketing-change"] = "marketing-change"
    data: MarketingChangeData = Field(default_factory=MarketingChangeData)


class CustomDelta(PlanModel):
    type: Literal["custom"] = "custom"
    data: CustomData = Field(default_factory=CustomData)


class FundingRoundDelta(PlanModel):
    type: Literal["funding-round"] = "funding-round"
    data: FundingRoundData = Field(default_factory=FundingRoundData)


class FacilityBuildDelta(PlanModel):
    type: Literal["facility-build"] = "facility-build"
    data: FacilityBuildData = Field(default_factory=FacilityBuildData)


class HiringCampaignDelta(PlanModel):
    type: Literal["hiring-campaign"] = "hiring-campaign"
    data: HiringCampaignData = Field(default_factory=HiringCampaignData)


class PriceChangeDelta(PlanModel):
    type: Literal["price-change"] = "price-change"
    data: PriceChangeData = Field(default_factory=PriceChangeData)


class EquipmentPurchaseDelta(PlanModel):
    type: Literal["equipment-purchase"] = "equipment-purchase"
    data: EquipmentPurchaseData = Field(default_factory=EquipmentPurchaseData)


class SeasonalCampaignDelta(PlanModel):
    type: Literal["seasonal-campaign"] = "seasonal-campaign"
    data: SeasonalCampaignData = Field(default_factory=SeasonalCampaignData)


EventDelta = Annotated[
    Union[
        HireDelta,
        CostChangeDelta,
        CapacityChangeDelta,
        MarketingChangeDelta,
        CustomDelta,
        FundingRoundDelta,
        FacilityBuildDelta,
        HiringCampaignDelta,
        PriceChangeDelta,
        EquipmentPurchaseDelta,
        SeasonalCampaignDelta,
    ],
    Field(discriminator="type"),
]

# Every wire tag, in declaration order
EVENT_TYPES: tuple[str, ...] = tuple(
    get_args(variant.model_fields["type"].annotation)[0]
    for variant in get_args(get_args(EventDelta)[0])
)


class GrowthEvent(PlanModel):
    """A timed modification of the base operating state."""
    id: str = ""
    month: int = Field(1, description="First month (1-based) the event applies to")
    label: str = ""
    enabled: bool = True
    duration_months: Optional[int] = Field(
        None, description="Window length for duration-based events; absent means 1"
    )
    delta: EventDelta


# ── Engine input ──────────────────────────────────────────────────────────────

class GrowthComputeInput(PlanModel):
    operations: Operations = Field(default_factory=Operations)
    base_price_per_unit: float = 0.0
    base_bookings: float = 0.0
    base_marketing_budget: float = 0.0
    season_coefficients: List[float] = Field(
        default_factory=lambda: list(DEFAULT_SEASON_COEFFICIENTS)
    )
    horizon_months: int = DEFAULT_HORIZON_MONTHS
    events: List[GrowthEvent] = Field(default_factory=list)


# ── Engine output ─────────────────────────────────────────────────────────────

class MonthlySnapshot(ResultModel):
    month: int
    label: str
    workforce: List[WorkforceMember]
    cost_items: List[CostItem]
    planned_output: float
    price_per_unit: float
    bookings: float
    marketing_budget: float
    marketing_cost: float
    revenue: float
    workforce_cost: float
    variable_cost: float
    fixed_cost: float
    total_cost: float
    profit: float
    cumulative_profit: float


class MonthlyCosts(ResultModel):
    marketing: float = 0.0
    labor: float = 0.0
    supplies: float = 0.0
    museum: float = 0.0
    transport: float = 0.0
    fixed: float = 0.0


class MonthlyProjection(ResultModel):
    """Generic monthly record consumed by the financial-projections display."""
    month: str
    revenue: float = 0.0
    costs: MonthlyCosts = Field(default_factory=MonthlyCosts)
    profit: float = 0.0
    non_operating_cash_flow: float = 0.0


class GrowthSummary(ResultModel):
    total_revenue: float = 0.0
    total_costs: float = 0.0
    total_profit: float = 0.0
    break_even_month: Optional[int] = None


class GrowthComputeResult(ResultModel):
    months: List[MonthlySnapshot] = Field(default_factory=list)
    projections: List[MonthlyProjection] = Field(default_factory=list)
    summary: GrowthSummary = Field(default_factory=GrowthSummary)


class CashProjectionPoint(ResultModel):
    month: str
    net_cash_flow: float
    ending_cash: float
