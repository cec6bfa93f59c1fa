"""
test_growth_routes.py — HTTP-level tests for the growth and operations routers.

Tests cover:
  - POST /api/v1/growth/timeline: camelCase in/out, validation of horizonMonths
  - POST /api/v1/growth/timeline/cash: timeline plus running cash
  - POST /api/v1/growth/cash-projection: 400 on an empty list
  - POST /api/v1/growth/inputs/derive: derived figures and ready-to-run input
  - POST /api/v1/operations/normalize and /costs
  - /health, /metrics, request-id and security headers, request log fields

Runs the FastAPI app in-process via TestClient; no network or database.
"""

import logging

import pytest


# ---------------------------------------------------------------------------
# Constants mirrored from config for assertion math
# ---------------------------------------------------------------------------
WEEKS_PER_MONTH = 52 / 12
MAX_HORIZON_MONTHS = 120


def _timeline_body(**overrides):
    body = {
        "basePricePerUnit": 100,
        "baseBookings": 50,
        "baseMarketingBudget": 1000,
        "horizonMonths": 3,
        "events": [],
    }
    body.update(overrides)
    return body


# ===========================================================================
# Class 1: Timeline
# ===========================================================================

class TestTimelineRoute:

    def test_flat_timeline(self, client, fresh_tracker):
        resp = client.post("/api/v1/growth/timeline", json=_timeline_body())
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["months"]) == 3
        assert data["months"][0]["revenue"] == 5000
        assert data["summary"]["totalRevenue"] == 15000
        assert data["summary"]["breakEvenMonth"] == 1
        assert data["projections"][0]["costs"]["museum"] == 0
        assert fresh_tracker.get_metrics()["computations_processed"] == 1
        assert fresh_tracker.get_metrics()["months_simulated"] == 3

    def test_event_in_request(self, client):
        body = _timeline_body(events=[{
            "id": "h1", "month": 2, "label": "First hire",
            "delta": {"type": "hire", "data": {"role": "Barista", "count": 1,
                                               "ratePerHour": 18, "hoursPerWeek": 40}},
        }])
        months = client.post("/api/v1/growth/timeline", json=body).json()["months"]
        assert months[0]["workforceCost"] == 0
        assert abs(months[1]["workforceCost"] - 18 * 40 * WEEKS_PER_MONTH) < 1e-6
        assert months[1]["workforce"][0]["role"] == "Barista"

    def test_unknown_event_type_rejected(self, client):
        body = _timeline_body(events=[{"id": "x", "month": 1,
                                       "delta": {"type": "teleport", "data": {}}}])
        assert client.post("/api/v1/growth/timeline", json=body).status_code == 422

    @pytest.mark.parametrize("horizon", [0, MAX_HORIZON_MONTHS + 1])
    def test_horizon_out_of_range(self, client, horizon):
        resp = client.post("/api/v1/growth/timeline", json=_timeline_body(horizonMonths=horizon))
        assert resp.status_code == 422

    def test_timeline_with_cash(self, client):
        """Nets 4000 per month from 2000 starting cash → 6000, 10 000, 14 000."""
        resp = client.post("/api/v1/growth/timeline/cash",
                           json=_timeline_body(startingCash=2000))
        assert resp.status_code == 200
        data = resp.json()
        assert data["timeline"]["summary"]["totalProfit"] == 12000
        assert [p["endingCash"] for p in data["cashProjection"]] == [6000, 10000, 14000]


# ===========================================================================
# Class 2: Cash projection
# ===========================================================================

class TestCashProjectionRoute:

    def test_empty_list_rejected(self, client):
        resp = client.post("/api/v1/growth/cash-projection", json={"projections": []})
        assert resp.status_code == 400

    def test_projection_records(self, client):
        resp = client.post("/api/v1/growth/cash-projection", json={
            "startingCash": 1000,
            "projections": [
                {"month": "Month 1", "revenue": 500,
                 "costs": {"labor": 300, "fixed": 100}, "profit": 100},
                {"month": "Month 2", "revenue": 0, "costs": {}, "profit": 0,
                 "nonOperatingCashFlow": 5000},
            ],
        })
        assert resp.status_code == 200
        points = resp.json()
        assert [p["netCashFlow"] for p in points] == [100, 5000]
        assert [p["endingCash"] for p in points] == [1100, 6100]


# ===========================================================================
# Class 3: Input derivation
# ===========================================================================

class TestDeriveInputsRoute:

    def test_derive(self, client, plan_sections):
        resp = client.post("/api/v1/growth/inputs/derive", json={
            "sections": plan_sections,
            "horizonMonths": 6,
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["financialInputs"]["averagePricePerOutput"] == 40
        assert data["financialInputs"]["monthlyMarketing"] == 500
        assert data["growthInput"]["basePricePerUnit"] == 40
        assert data["growthInput"]["baseBookings"] == 150
        assert data["growthInput"]["horizonMonths"] == 6

    def test_derived_input_runs_on_timeline(self, client, plan_sections):
        derived = client.post("/api/v1/growth/inputs/derive",
                              json={"sections": plan_sections, "horizonMonths": 1}).json()
        resp = client.post("/api/v1/growth/timeline", json=derived["growthInput"])
        assert resp.status_code == 200
        assert abs(resp.json()["months"][0]["revenue"] - 4800) < 1e-6


# ===========================================================================
# Class 4: Operations
# ===========================================================================

class TestOperationsRoutes:

    def test_normalize_legacy(self, client):
        resp = client.post("/api/v1/operations/normalize", json={
            "crew": [{"role": "Guide", "count": 1, "hourlyRate": 20}],
            "capacity": {"maxBookingsPerMonth": 30},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["workforce"][0]["hoursPerWeek"] == 40
        assert data["capacityItems"][0]["id"] == "cap-legacy-1"

    def test_normalize_rejects_non_object(self, client):
        assert client.post("/api/v1/operations/normalize", json=[1, 2]).status_code == 400

    def test_costs(self, client):
        resp = client.post("/api/v1/operations/costs", json={
            "workforce": [{"role": "Crew", "count": 3, "ratePerHour": 15}],
            "capacityItems": [{"id": "c", "plannedOutputPerMonth": 100, "utilizationRate": 50}],
        })
        assert resp.status_code == 200
        data = resp.json()
        assert abs(data["costs"]["workforce_monthly_total"] - 7800) < 1e-6
        assert data["capacity"]["total_planned_output"] == 100
        assert data["capacity"]["weighted_utilization"] == 0.5
        assert data["operations"]["capacityItems"][0]["id"] == "c"


# ===========================================================================
# Class 5: Service endpoints and middleware
# ===========================================================================

class TestServiceEndpoints:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "active"

    def test_metrics(self, client, fresh_tracker):
        client.post("/api/v1/growth/timeline", json=_timeline_body(horizonMonths=2))
        data = client.get("/metrics").json()
        assert data["computations_processed"] == 1
        assert data["months_simulated"] == 2
        assert data["error_count"] == 0
        assert "growth_timeline" in data["avg_duration_ms_by_kind"]

    def test_request_headers(self, client):
        resp = client.post("/api/v1/growth/timeline", json=_timeline_body())
        assert len(resp.headers["X-Request-ID"]) == 36
        assert float(resp.headers["X-Process-Time"]) >= 0
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"

    def test_request_log_carries_simulation_size(self, client, caplog):
        body = _timeline_body(horizonMonths=4, events=[
            {"id": "m", "month": 2, "delta": {"type": "marketing-change",
                                              "data": {"monthlyBudget": 800}}},
        ])
        with caplog.at_level(logging.INFO, logger="bizplan-api.middleware"):
            client.post("/api/v1/growth/timeline", json=body)
        records = [r for r in caplog.records
                   if r.name == "bizplan-api.middleware"
                   and r.http_path == "/api/v1/growth/timeline"]
        assert len(records) == 1
        assert records[0].horizon_months == 4
        assert records[0].event_count == 1
        assert records[0].http_status == 200

    def test_request_log_without_simulation_context(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="bizplan-api.middleware"):
            client.post("/api/v1/growth/cash-projection", json={"projections": []})
        records = [r for r in caplog.records if r.name == "bizplan-api.middleware"]
        assert records and records[-1].http_status == 400
        assert not hasattr(records[-1], "horizon_months")
