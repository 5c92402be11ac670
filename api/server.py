"""
OFAT Engine — FastAPI + MCP Server
The interface layer: exposes one-factor-at-a-time sensitivity analysis
as an HTTP/MCP tool for agents.

Calculations are Python callables registered by the host application;
requests refer to them by name.
"""

import math
import os
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sensitivity.models import SensitivityRequest, SensitivityResponse
from sensitivity.errors import CalculationError, ReportError, ValidationError
from sensitivity.engine import SensitivityEngine
from sensitivity.report import format_report, percent_impacts


# ─────────────────────────────────────────────
# App Configuration
# ─────────────────────────────────────────────

APP_NAME = "OFAT Engine"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = """
**One-Factor-at-a-Time Sensitivity Analysis** — perturb each input of a
calculation by ±delta and report the % impact on its output.

### Capabilities
- **Registered calculations**: the host application registers named Python functions
- **Relative perturbation**: every parameter is scaled by (1 ± delta), others held at base
- **Text report**: ready-to-print table of % deviation from the base case
"""


# ─────────────────────────────────────────────
# Calculation registry
# ─────────────────────────────────────────────

_calculations: dict[str, Callable[[dict], float]] = {}


def register_calculation(name: str, func: Optional[Callable[[dict], float]] = None):
    """
    Register a calculation under `name`. Usable directly or as a decorator:

        @register_calculation("margin")
        def margin(p):
            return p["price"] - p["cost"]
    """
    def decorator(f):
        if not callable(f):
            raise TypeError(f"Calculation '{name}' is not callable")
        _calculations[name] = f
        return f

    if func is not None:
        return decorator(func)
    return decorator


def unregister_calculation(name: str):
    """Remove a calculation; unknown names are ignored."""
    _calculations.pop(name, None)


def get_calculation(name: str) -> Callable[[dict], float]:
    try:
        return _calculations[name]
    except KeyError:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown calculation '{name}'. Registered: {sorted(_calculations)}",
        )


@register_calculation("sum")
def _sum(p: dict) -> float:
    return sum(p.values())


@register_calculation("product")
def _product(p: dict) -> float:
    return math.prod(p.values())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    print(f"🚀 {APP_NAME} v{APP_VERSION} starting...")
    print(f"   MCP endpoint: /mcp")
    print(f"   Calculations: {', '.join(sorted(_calculations))}")
    yield
    print(f"👋 {APP_NAME} shutting down.")


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description=APP_DESCRIPTION,
    lifespan=lifespan,
)

# CORS — allow all origins for MCP agent access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────────────────────────
# Request tracking middleware
# ─────────────────────────────────────────────

_request_count = 0
_total_analysis_time = 0.0


@app.middleware("http")
async def track_requests(request: Request, call_next):
    """Track request count and timing for the info endpoint."""
    global _request_count, _total_analysis_time
    start = time.time()
    response = await call_next(request)
    elapsed = time.time() - start
    if request.url.path == "/analyze_sensitivity":
        _request_count += 1
        _total_analysis_time += elapsed
    return response


# ─────────────────────────────────────────────
# Health & Info Endpoints
# ─────────────────────────────────────────────

@app.get("/", operation_id="root", summary="Server info and status")
async def root():
    """Returns server info, available tools, and usage statistics."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "status": "operational",
        "tools": [
            {
                "name": "analyze_sensitivity",
                "description": "Perturb each parameter of a registered calculation by ±delta and report the % impact.",
                "endpoint": "/analyze_sensitivity",
            },
        ],
        "calculations": sorted(_calculations),
        "stats": {
            "requests_served": _request_count,
            "total_analysis_time_seconds": round(_total_analysis_time, 2),
        },
        "mcp_endpoint": "/mcp",
    }


@app.get("/health", operation_id="health_check", summary="Health check")
async def health():
    """Simple health check for monitoring and load balancers."""
    return {"status": "healthy", "version": APP_VERSION}


@app.get("/calculations", operation_id="list_calculations", summary="List registered calculations")
async def list_calculations():
    return {"calculations": sorted(_calculations)}


# ─────────────────────────────────────────────
# Core Tool Endpoint
# ─────────────────────────────────────────────

@app.post(
    "/analyze_sensitivity",
    response_model=SensitivityResponse,
    operation_id="analyze_sensitivity",
    summary="One-factor-at-a-time sensitivity analysis",
    description="""
Evaluates a registered calculation at its base case and with each parameter
independently scaled by (1 + delta) and (1 - delta).

**Example**:
```json
{"calculation": "sum", "parameters": {"alpha": 1.1, "beta": 0.2}, "delta": 0.1}
```
returns `base` 1.3, `results` `{"alpha": {"+10%": 1.41, "-10%": 1.19}, ...}`
and the % impact of each case relative to the base.
""",
    tags=["Sensitivity"],
)
def analyze_sensitivity_endpoint(request: SensitivityRequest) -> SensitivityResponse:
    calculation = get_calculation(request.calculation)
    try:
        engine = SensitivityEngine(
            calculation=calculation,
            parameters=request.parameters,
            delta=request.delta,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        base = engine.base()
        results = engine.run(max_workers=request.max_workers)
        impacts = percent_impacts(engine, results, base=base)
        report = format_report(engine, impacts)
    except (CalculationError, ReportError) as e:
        return SensitivityResponse(status="error", message=str(e), delta=engine.delta)
    except Exception as e:
        return SensitivityResponse(
            status="error",
            message=f"Base case calculation failed: {e}",
            delta=engine.delta,
        )

    return SensitivityResponse(
        status="completed",
        message=f"{len(results)} parameters analyzed across {2 * len(results) + 1} evaluations.",
        delta=engine.delta,
        base=base,
        cases=list(results.labels),
        results=results.as_dict(),
        impacts=impacts,
        report=report,
    )


# ─────────────────────────────────────────────
# Error Handlers
# ─────────────────────────────────────────────

@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    """Catch-all for server errors."""
    return JSONResponse(
        status_code=500,
        content={
            "status": "error",
            "message": "Internal server error. Please try again or contact support.",
        },
    )


# ─────────────────────────────────────────────
# MCP Integration
# ─────────────────────────────────────────────

try:
    from fastapi_mcp import FastApiMCP

    mcp = FastApiMCP(
        app,
        name="OFAT Engine",
        description=(
            "Sensitivity analysis tool — perturbs each input of a registered calculation "
            "by ±delta, one at a time, and reports the % change in the output."
        ),
        describe_all_responses=True,
        describe_full_response_schema=True,
    )
    mcp.mount()
    print("✅ MCP server mounted at /mcp")
except ImportError:
    print("⚠️  fastapi-mcp not installed. MCP endpoint disabled. Install with: pip install fastapi-mcp")
except Exception as e:
    print(f"⚠️  MCP mount failed: {e}. Server running without MCP.")


# ─────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("api.server:app", host="0.0.0.0", port=port, reload=True)
