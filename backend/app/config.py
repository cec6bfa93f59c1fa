"""
Growth engine configuration — single source of truth for calendar constants,
input defaults and service settings.

Import from here in all engines and routers rather than hardcoding values.
"""
from __future__ import annotations

import os

# ── Calendar conversions ───────────────────────────────────────────────────────

# Average weeks in a month (52 weeks spread over 12 months)
WEEKS_PER_MONTH: float = 52 / 12

# Day-based capacity ceilings assume a flat 30-day month
DAYS_PER_MONTH: int = 30

# Fixed cost drivers billed less often than monthly, normalised to a month
DRIVER_PERIOD_MONTHS: dict[str, int] = {
    "quarterly": 3,
    "yearly":    12,
}


# ── Input defaults ─────────────────────────────────────────────────────────────

# Applied to workforce rows (and migrated legacy crew) that omit hoursPerWeek
DEFAULT_HOURS_PER_WEEK: float = 40.0

# Flat seasonality: every month weighs the same
DEFAULT_SEASON_COEFFICIENTS: list[float] = [1.0] * 12

DEFAULT_HORIZON_MONTHS: int = 12

# Duration-windowed events without a usable durationMonths span one month
DEFAULT_EVENT_DURATION_MONTHS: int = 1

# Cost lines of the downstream projection format that this engine never fills
PROJECTION_LEGACY_COST_FIELDS: tuple[str, ...] = ("museum", "transport")


# ── Service settings (environment) ─────────────────────────────────────────────

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
JSON_LOGS: bool = os.getenv("LOG_FORMAT", "json").lower() != "text"

CORS_ORIGINS: list[str] = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000").split(",")
    if o.strip()
]

# Upper bound the HTTP API accepts for horizonMonths (the engine itself has none)
MAX_HORIZON_MONTHS: int = int(os.getenv("GROWTH_MAX_HORIZON_MONTHS", "120"))

API_VERSION: str = "1.0.0"
