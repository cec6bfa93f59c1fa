"""
test_import_safety.py — Import isolation and circular import checks.

Verifies that:
  1. Every engine module imports cleanly with FastAPI / Starlette absent
     (the engine is usable as a plain library, without the HTTP layer).
  2. All service, model and router modules import without circular import
     failures.
  3. The effect dispatch table covers every event type at import time.
  4. Engine modules stay free of I/O: no HTTP, database or file access.

No database, network, or external services are required.
"""

import sys
import os
import importlib
import inspect
import types
import contextlib
import pytest

_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Helpers: temporarily mask modules and isolate app.* re-imports
# ---------------------------------------------------------------------------

class _AbsentModule(types.ModuleType):
    """Sentinel that raises ImportError for any attribute access."""

    def __getattr__(self, name):
        raise ImportError(f"Simulated absent module: {self.__name__}.{name}")


@contextlib.contextmanager
def _absent(*names: str):
    """Mask each named package (and its submodules) as unavailable."""
    saved = {
        k: sys.modules.pop(k)
        for k in list(sys.modules)
        if any(k == n or k.startswith(n + ".") for n in names)
    }
    for name in names:
        sys.modules[name] = _AbsentModule(name)
    try:
        yield
    finally:
        for name in names:
            sys.modules.pop(name, None)
        sys.modules.update(saved)


@contextlib.contextmanager
def _fresh_app_modules():
    """
    Evict cached ``app.*`` modules so imports inside the block run again, then
    put the originals back so the rest of the suite keeps the same classes.
    """
    saved = {k: sys.modules.pop(k) for k in list(sys.modules) if k == "app" or k.startswith("app.")}
    try:
        yield
    finally:
        for key in [k for k in sys.modules if k == "app" or k.startswith("app.")]:
            del sys.modules[key]
        sys.modules.update(saved)


# Pure computation modules: must not need the HTTP stack
_ENGINE_MODULES = [
    "app.config",
    "app.models.growth_schema",
    "app.services.capacity_engine",
    "app.services.operations_cost_engine",
    "app.services.growth_events",
    "app.services.growth_timeline_engine",
    "app.services.projection_adapter",
    "app.services.cash_flow_engine",
    "app.services.input_normalizer",
    "app.services.financial_inputs_engine",
    "app.services.perf_monitor",
    "app.services.logging_config",
]

_HTTP_MODULES = [
    "app.services.middleware",
    "app.api.growth_routes",
    "app.api.operations_routes",
    "app.main",
]


# ---------------------------------------------------------------------------
# Engine importable without the HTTP layer
# ---------------------------------------------------------------------------

class TestEngineWithoutHttpStack:
    """Engine modules must import even if fastapi / starlette are absent."""

    @pytest.mark.parametrize("module_path", _ENGINE_MODULES)
    def test_imports_without_fastapi(self, module_path):
        with _fresh_app_modules(), _absent("fastapi", "starlette", "uvicorn"):
            try:
                mod = importlib.import_module(module_path)
                assert mod is not None
            except ImportError as e:
                pytest.fail(f"{module_path} needs the HTTP stack to import: {e}")

    def test_timeline_runs_without_fastapi(self):
        with _fresh_app_modules(), _absent("fastapi", "starlette", "uvicorn"):
            engine_mod = importlib.import_module("app.services.growth_timeline_engine")
            result = engine_mod.compute_growth_timeline(
                {"basePricePerUnit": 10, "baseBookings": 3, "horizonMonths": 2}
            )
            assert [m.revenue for m in result.months] == [30.0, 30.0]

    def test_originals_restored_after_isolation(self):
        from app.models import growth_schema
        before = growth_schema.GrowthComputeInput
        with _fresh_app_modules():
            importlib.import_module("app.models.growth_schema")
        from app.models import growth_schema as after_mod
        assert after_mod.GrowthComputeInput is before


# ---------------------------------------------------------------------------
# All modules import without circular import errors
# ---------------------------------------------------------------------------

class TestModuleImports:

    @pytest.mark.parametrize("module_path", _ENGINE_MODULES + _HTTP_MODULES)
    def test_module_imports(self, module_path):
        try:
            mod = importlib.import_module(module_path)
            assert mod is not None, f"Module {module_path} is None after import"
        except ImportError as e:
            pytest.fail(f"{module_path} raised ImportError: {e}")
        except Exception as e:
            pytest.fail(f"{module_path} raised unexpected error on import: {type(e).__name__}: {e}")

    def test_routers_registered(self):
        from app.main import app
        # Included routers may appear as route entries without a path of their own
        paths = set(app.openapi()["paths"])
        paths.update(getattr(route, "path", None) for route in app.routes)
        for expected in (
            "/api/v1/growth/timeline",
            "/api/v1/growth/timeline/cash",
            "/api/v1/growth/cash-projection",
            "/api/v1/growth/inputs/derive",
            "/api/v1/operations/normalize",
            "/api/v1/operations/costs",
            "/health",
            "/metrics",
        ):
            assert expected in paths, f"route {expected} not registered"


# ---------------------------------------------------------------------------
# Dispatch completeness and engine purity
# ---------------------------------------------------------------------------

class TestEngineInvariants:

    def test_dispatch_table_complete(self):
        from app.models.growth_schema import EVENT_TYPES
        from app.services.growth_events import EFFECT_HANDLERS
        missing = set(EVENT_TYPES) - set(EFFECT_HANDLERS)
        assert not missing, f"event types without a handler: {sorted(missing)}"
        extra = set(EFFECT_HANDLERS) - set(EVENT_TYPES)
        assert not extra, f"handlers for unknown event types: {sorted(extra)}"

    @pytest.mark.parametrize("module_path", [
        "app.services.capacity_engine",
        "app.services.operations_cost_engine",
        "app.services.growth_events",
        "app.services.growth_timeline_engine",
        "app.services.projection_adapter",
        "app.services.cash_flow_engine",
    ])
    def test_engine_module_has_no_io(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        for marker in ("import requests", "import httpx", "open(", "sqlalchemy", "import fastapi"):
            assert marker not in src, f"{module_path} must stay pure (found {marker!r})"
