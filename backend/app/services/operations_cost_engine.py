"""
operations_cost_engine.py — Monthly operating cost aggregation

Covers:
  - Workforce cost (hourly rate × weekly hours × headcount × 52/12)
  - Fixed cost items normalised to a month (quarterly ÷ 3, yearly ÷ 12)
  - Variable cost items (rate × monthly driver quantity)
  - Variable components priced against their offering's planned output,
    including purchase-order fees (whole orders only)
  - Variable cost per unit of output
  - Total monthly capacity ceiling

The growth timeline calls ``compute`` once per simulated month with that
month's effective operations state; the engine itself keeps no state.
"""

import math
from typing import Any, Dict, List

from app.config import WEEKS_PER_MONTH, DRIVER_PERIOD_MONTHS
from app.models.growth_schema import (
    CapacityItem,
    CostItem,
    Operations,
    VariableCostComponent,
    WorkforceMember,
)
from app.services.capacity_engine import total_planned_output, total_max_output


class OperationsCostEngine:
    """Turns an Operations state into monthly cost totals."""

    # -----------------------------------------------------------------------
    # 1. Workforce
    # -----------------------------------------------------------------------

    def workforce_monthly_total(self, workforce: List[WorkforceMember]) -> float:
        """
        Σ rate_per_hour × hours_per_week × count × 52/12.

        Example: 1 assistant at 25/hr for 20 h/week
            25 × 20 × 1 × 4.333… = 2166.67 per month
        """
        return sum(
            w.rate_per_hour * w.hours_per_week * w.count * WEEKS_PER_MONTH
            for w in workforce
        )

    # -----------------------------------------------------------------------
    # 2. Fixed cost items
    # -----------------------------------------------------------------------

    def fixed_monthly_total(self, cost_items: List[CostItem]) -> float:
        """Σ rate × driver quantity over fixed items, per month."""
        total = 0.0
        for item in cost_items:
            if item.type != "fixed":
                continue
            amount = item.rate * item.driver_quantity_per_month
            total += amount / DRIVER_PERIOD_MONTHS.get(item.driver_type, 1)
        return total

    # -----------------------------------------------------------------------
    # 3. Variable costs
    # -----------------------------------------------------------------------

    def variable_item_total(self, cost_items: List[CostItem]) -> float:
        return sum(
            item.rate * item.driver_quantity_per_month
            for item in cost_items
            if item.type == "variable"
        )

    def component_output_basis(
        self,
        component: VariableCostComponent,
        capacity_items: List[CapacityItem],
        total_output: float,
    ) -> float:
        """
        Output the component is consumed against: the planned output of the
        capacity items sharing its offering_id, or the total planned output
        when the component is unlinked or no item carries that offering.
        """
        if component.offering_id:
            linked = [i for i in capacity_items if i.offering_id == component.offering_id]
            if linked:
                return total_planned_output(linked)
        return total_output

    def component_costs(
        self,
        components: List[VariableCostComponent],
        capacity_items: List[CapacityItem],
    ) -> List[Dict[str, Any]]:
        """
        Monthly cost of each variable component.

            units      = units_per_output × output_basis
            base_cost  = units × cost_per_unit
            order_fees = ceil(units / order_quantity) × order_fee   (purchase-order only)
        """
        total_output = total_planned_output(capacity_items)
        breakdown: List[Dict[str, Any]] = []

        for comp in components:
            basis = self.component_output_basis(comp, capacity_items, total_output)
            units = max(0.0, comp.component_units_per_output) * basis
            base_cost = units * comp.cost_per_component_unit

            order_count = 0
            order_fees = 0.0
            if (
                comp.sourcing_model == "purchase-order"
                and comp.order_quantity > 0
                and comp.order_fee > 0
                and units > 0
            ):
                order_count = math.ceil(units / comp.order_quantity)
                order_fees = order_count * comp.order_fee

            breakdown.append({
                "id": comp.id,
                "name": comp.name,
                "offering_id": comp.offering_id,
                "sourcing_model": comp.sourcing_model,
                "output_basis": basis,
                "units_per_month": units,
                "order_count": order_count,
                "component_cost": base_cost,
                "order_fees": order_fees,
                "monthly_cost": base_cost + order_fees,
            })
        return breakdown

    # -----------------------------------------------------------------------
    # 4. Full summary
    # -----------------------------------------------------------------------

    def compute(self, operations: Operations) -> Dict[str, Any]:
        """
        Aggregate the operations state into monthly totals.

        Returns:
            workforce_monthly_total, variable_monthly_total, fixed_monthly_total,
            monthly_operations_total, variable_cost_per_output,
            total_planned_output_per_month, total_max_output_per_month,
            variable_components (per-component breakdown)
        """
        workforce_total = self.workforce_monthly_total(operations.workforce)
        fixed_total = self.fixed_monthly_total(operations.cost_items)

        components = self.component_costs(
            operations.variable_components, operations.capacity_items
        )
        variable_total = (
            self.variable_item_total(operations.cost_items)
            + sum(c["monthly_cost"] for c in components)
        )

        planned_output = total_planned_output(operations.capacity_items)
        per_output = variable_total / planned_output if planned_output > 0 else 0.0

        return {
            "workforce_monthly_total": workforce_total,
            "variable_monthly_total": variable_total,
            "fixed_monthly_total": fixed_total,
            "monthly_operations_total": variable_total + fixed_total + workforce_total,
            "variable_cost_per_output": per_output,
            "total_planned_output_per_month": planned_output,
            "total_max_output_per_month": total_max_output(operations.capacity_items),
            "variable_components": components,
        }
