"""
financial_inputs_engine.py — Engine inputs derived from the other plan sections

Covers:
  - Offering price signal (priced offerings, linked by capacity item offering_id)
  - Base output, capacity ceiling and output-weighted average price
  - Monthly workforce / fixed / marketing figures from Operations and Marketing
  - Unit price priority chain for the growth timeline
  - Base bookings from capacity (utilization-adjusted), falling back to KPI targets
  - Assembly of a complete GrowthComputeInput from the sections

Sections arrive as the stored JSON documents (camelCase dicts); operations
are normalised first so every generation of the operations document works.
"""

from typing import Any, Dict, List, Mapping, Optional

from app.config import DEFAULT_HORIZON_MONTHS, DEFAULT_SEASON_COEFFICIENTS
from app.models.growth_schema import GrowthComputeInput, GrowthEvent, Operations
from app.services.capacity_engine import effective_output
from app.services.input_normalizer import (
    coerce_season_coefficients,
    normalize_events,
    normalize_operations,
)
from app.services.operations_cost_engine import OperationsCostEngine


def _positive(value: Any) -> float:
    """value when it is a finite positive number, else 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value) if 0 < value < float("inf") else 0.0


def _section(sections: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = sections.get(key)
    return value if isinstance(value, Mapping) else {}


class FinancialInputsEngine:
    """Derives financial-projection and growth-timeline inputs from plan sections."""

    def __init__(self, cost_engine: Optional[OperationsCostEngine] = None) -> None:
        self.cost_engine = cost_engine or OperationsCostEngine()

    # -----------------------------------------------------------------------
    # 1. Price signal
    # -----------------------------------------------------------------------

    def offering_prices(self, product_service: Mapping[str, Any]) -> Dict[str, float]:
        """offering id → price, for offerings with a positive price (None = "on request")."""
        prices: Dict[str, float] = {}
        offerings = product_service.get("offerings")
        if not isinstance(offerings, list):
            return prices
        for index, offering in enumerate(offerings):
            if not isinstance(offering, Mapping):
                continue
            price = _positive(offering.get("price"))
            if price > 0:
                offering_id = offering.get("id") or f"offering-{index + 1}"
                prices[str(offering_id)] = price
        return prices

    def average_offering_price(self, product_service: Mapping[str, Any]) -> float:
        prices = list(self.offering_prices(product_service).values())
        return sum(prices) / len(prices) if prices else 0.0

    # -----------------------------------------------------------------------
    # 2. Section-level derivation
    # -----------------------------------------------------------------------

    def monthly_marketing(self, marketing: Mapping[str, Any]) -> float:
        channels = marketing.get("channels")
        if not isinstance(channels, list):
            return 0.0
        return sum(
            _positive(ch.get("budget"))
            for ch in channels
            if isinstance(ch, Mapping)
        )

    def derive(
        self,
        product_service: Mapping[str, Any],
        operations: Any,
        marketing: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """
        Financial inputs implied by the Product/Service, Operations and
        Marketing sections.

        Average price per output weights each capacity item's effective output
        by its linked offering price; unlinked (or unpriced) items take the
        weighted linked price, or the plain average offering price when no
        item is linked.
        """
        ops = normalize_operations(operations)
        costs = self.cost_engine.compute(ops)
        prices = self.offering_prices(product_service)

        linked_output = 0.0
        linked_revenue = 0.0
        for item in ops.capacity_items:
            output = effective_output(item)
            price = prices.get(item.offering_id, 0.0) if item.offering_id else 0.0
            if output > 0 and price > 0:
                linked_output += output
                linked_revenue += output * price
        weighted_linked_price = linked_revenue / linked_output if linked_output > 0 else 0.0
        fallback_price = weighted_linked_price or self.average_offering_price(product_service)

        base_output = 0.0
        priced_revenue = 0.0
        for item in ops.capacity_items:
            output = effective_output(item)
            if output <= 0:
                continue
            base_output += output
            price = prices.get(item.offering_id, 0.0) if item.offering_id else 0.0
            priced_revenue += output * (price or fallback_price)

        average_price = priced_revenue / base_output if base_output > 0 else 0.0
        workforce = costs["workforce_monthly_total"]
        fixed = costs["fixed_monthly_total"]

        return {
            "base_output_per_month": base_output,
            "total_max_output_per_month": costs["total_max_output_per_month"],
            "average_price_per_output": average_price,
            "variable_cost_per_output": costs["variable_cost_per_output"],
            "monthly_fixed_overhead": workforce + fixed,
            "monthly_workforce_cost": workforce,
            "monthly_fixed_cost": fixed,
            "monthly_marketing": self.monthly_marketing(marketing),
            "has_capacity_output": base_output > 0,
            "has_price_signal": average_price > 0,
        }

    def derive_from_sections(self, sections: Mapping[str, Any]) -> Dict[str, Any]:
        return self.derive(
            _section(sections, "productService"),
            sections.get("operations"),
            _section(sections, "marketingStrategy"),
        )

    # -----------------------------------------------------------------------
    # 3. Growth timeline input
    # -----------------------------------------------------------------------

    def resolve_price_per_unit(
        self,
        financials: Mapping[str, Any],
        kpis: Mapping[str, Any],
        product_service: Mapping[str, Any],
    ) -> float:
        """
        First positive value of:
            financials.unitEconomics.pricePerUnit → financials.unitEconomics.avgCheck
            → kpis.targets.pricePerUnit → kpis.targets.avgCheck
            → mean offering price → 0
        """
        unit_economics = financials.get("unitEconomics")
        unit_economics = unit_economics if isinstance(unit_economics, Mapping) else {}
        targets = kpis.get("targets")
        targets = targets if isinstance(targets, Mapping) else {}

        candidates = [
            unit_economics.get("pricePerUnit"),
            unit_economics.get("avgCheck"),
            targets.get("pricePerUnit"),
            targets.get("avgCheck"),
        ]
        for candidate in candidates:
            price = _positive(candidate)
            if price > 0:
                return price
        return self.average_offering_price(product_service)

    def derive_base_bookings(self, operations: Operations, kpis: Mapping[str, Any]) -> float:
        """
        Σ effective_output × utilization over capacity items (items without a
        rate count at 100 %); KPI monthlyBookings when capacity yields nothing.
        """
        from_capacity = sum(
            effective_output(item)
            * (item.utilization_rate / 100 if item.utilization_rate > 0 else 1.0)
            for item in operations.capacity_items
        )
        if from_capacity > 0:
            return from_capacity
        targets = kpis.get("targets")
        if isinstance(targets, Mapping):
            return _positive(targets.get("monthlyBookings"))
        return 0.0

    def build_growth_input(
        self,
        sections: Mapping[str, Any],
        events: Optional[List[Any]] = None,
        horizon_months: int = DEFAULT_HORIZON_MONTHS,
    ) -> GrowthComputeInput:
        """
        Assemble the growth engine input from stored sections.

        ``sections`` keys: operations, financialProjections, kpisMetrics,
        marketingStrategy, productService (missing ones count as empty).
        """
        operations = normalize_operations(sections.get("operations"))
        financials = _section(sections, "financialProjections")
        kpis = _section(sections, "kpisMetrics")
        marketing = _section(sections, "marketingStrategy")
        product_service = _section(sections, "productService")

        coefficients = coerce_season_coefficients(financials.get("seasonCoefficients"))
        if not coefficients:
            coefficients = list(DEFAULT_SEASON_COEFFICIENTS)

        parsed_events: List[GrowthEvent] = normalize_events(events or [])

        return GrowthComputeInput(
            operations=operations,
            base_price_per_unit=self.resolve_price_per_unit(financials, kpis, product_service),
            base_bookings=self.derive_base_bookings(operations, kpis),
            base_marketing_budget=self.monthly_marketing(marketing),
            season_coefficients=coefficients,
            horizon_months=horizon_months,
            events=parsed_events,
        )
