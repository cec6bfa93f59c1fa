"""
conftest.py — Shared pytest fixtures for the growth engine backend test suite.

No database or external service fixtures are defined here.  Engine tests are
pure unit tests that exercise computation classes in isolation; API tests run
the FastAPI app in-process through TestClient.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def cost_engine():
    """OperationsCostEngine (stateless)."""
    from app.services.operations_cost_engine import OperationsCostEngine
    return OperationsCostEngine()


@pytest.fixture(scope="session")
def timeline_engine():
    """GrowthTimelineEngine with the default cost engine."""
    from app.services.growth_timeline_engine import GrowthTimelineEngine
    return GrowthTimelineEngine()


@pytest.fixture(scope="session")
def inputs_engine():
    """FinancialInputsEngine with the default cost engine."""
    from app.services.financial_inputs_engine import FinancialInputsEngine
    return FinancialInputsEngine()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def client():
    """In-process TestClient for the FastAPI app."""
    from fastapi.testclient import TestClient
    from app.main import app
    return TestClient(app)


@pytest.fixture
def fresh_tracker():
    """The process-wide PerformanceTracker, reset before and after the test."""
    from app.services.perf_monitor import tracker
    tracker.reset()
    yield tracker
    tracker.reset()


# ---------------------------------------------------------------------------
# Shared sample data
# ---------------------------------------------------------------------------

@pytest.fixture
def make_input():
    """
    Factory for GrowthComputeInput with a flat baseline:
    50 bookings/month at 100 per unit, no operations, 12 flat months.
    Keyword overrides replace any field.
    """
    from app.models.growth_schema import GrowthComputeInput

    def _make(**overrides):
        fields = {
            "base_price_per_unit": 100.0,
            "base_bookings": 50.0,
            "base_marketing_budget": 0.0,
            "horizon_months": 12,
        }
        fields.update(overrides)
        return GrowthComputeInput(**fields)

    return _make


@pytest.fixture
def make_event():
    """Factory for GrowthEvent: make_event("hire", month=3, role="Barista", ...)."""
    from app.models.growth_schema import GrowthEvent

    def _make(delta_type, month=1, enabled=True, duration_months=None, event_id=None, **data):
        return GrowthEvent.model_validate({
            "id": event_id or f"evt-{delta_type}-{month}",
            "month": month,
            "label": delta_type,
            "enabled": enabled,
            "durationMonths": duration_months,
            "delta": {"type": delta_type, "data": data},
        })

    return _make


@pytest.fixture
def two_line_operations():
    """
    Two capacity lines, one linked variable component and mixed cost items.

      cap-a: 100 planned/month, util 80 %, offering "off-a"
      cap-b:  50 planned/month, util 60 %, unlinked
      workforce: 2 × 20/hr × 40 h/week
      fixed: rent 1200/month, insurance 600/quarter
      component: 2 units per output of off-a at 1.5/unit
    """
    from app.models.growth_schema import (
        CapacityItem, CostItem, Operations, VariableCostComponent, WorkforceMember,
    )
    return Operations(
        workforce=[WorkforceMember(role="Operator", count=2, rate_per_hour=20, hours_per_week=40)],
        capacity_items=[
            CapacityItem(id="cap-a", name="Line A", offering_id="off-a",
                         planned_output_per_month=100, utilization_rate=80),
            CapacityItem(id="cap-b", name="Line B",
                         planned_output_per_month=50, utilization_rate=60),
        ],
        variable_components=[
            VariableCostComponent(id="var-1", name="Packaging", offering_id="off-a",
                                  cost_per_component_unit=1.5, component_units_per_output=2),
        ],
        cost_items=[
            CostItem(category="Rent", type="fixed", rate=1200,
                     driver_type="monthly", driver_quantity_per_month=1),
            CostItem(category="Insurance", type="fixed", rate=600,
                     driver_type="quarterly", driver_quantity_per_month=1),
        ],
    )


@pytest.fixture
def plan_sections():
    """
    Stored business-plan sections (camelCase JSON as the editor saves them).

    One capacity item (200 planned, util 75 %) linked to a 40-priced offering,
    two marketing channels (300 + 200), one 2000/month fixed rent.
    """
    return {
        "operations": {
            "workforce": [{"role": "Chef", "count": 1, "ratePerHour": 25, "hoursPerWeek": 40}],
            "capacityItems": [{
                "id": "kitchen",
                "name": "Kitchen",
                "offeringId": "menu",
                "plannedOutputPerMonth": 200,
                "utilizationRate": 75,
            }],
            "costItems": [{
                "category": "Rent",
                "type": "fixed",
                "rate": 2000,
                "driverType": "monthly",
                "driverQuantityPerMonth": 1,
            }],
        },
        "productService": {
            "offerings": [
                {"id": "menu", "name": "Tasting menu", "price": 40},
                {"id": "catering", "name": "Catering", "price": None},
            ],
        },
        "marketingStrategy": {
            "channels": [{"name": "Social", "budget": 300}, {"name": "Print", "budget": 200}],
        },
        "financialProjections": {
            "seasonCoefficients": [0.8, 0.9, 1.0, 1.1, 1.2, 1.3, 1.3, 1.2, 1.1, 1.0, 0.9, 0.8],
        },
        "kpisMetrics": {"targets": {"monthlyBookings": 120}},
    }
