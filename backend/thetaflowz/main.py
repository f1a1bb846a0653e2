"""
ThetaFlowz - FastAPI Application Entry Point

Mounts the session, entitlement, market data, watchlist and screener
endpoints. All components live in one ``Services`` container on
``app.state``.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from thetaflowz import __version__
from thetaflowz.config import Settings, get_settings
from thetaflowz.error_handlers import register_error_handlers
from thetaflowz.middleware import RequestLoggerMiddleware
from thetaflowz.routes import auth_router, entitlements_router, health_router
from thetaflowz.routes_market import market_router
from thetaflowz.routes_screener import screener_router
from thetaflowz.routes_watchlist import watchlist_router
from thetaflowz.services import Services, build_services

log = structlog.get_logger("thetaflowz.startup")

API_V1 = "/v1/api"


def _validate_config(settings: Settings) -> None:
    """Warn on missing provider keys at startup."""
    checks = {
        "alphavantage_api_key": "Alpha Vantage (first quote provider skipped)",
        "finnhub_api_key": "Finnhub (second quote provider skipped)",
        "polygon_api_key": "Polygon.io (third quote provider skipped)",
    }
    missing = 0
    for attr, description in checks.items():
        if not getattr(settings, attr, ""):
            missing += 1
            log.warning("config.missing_key", key=attr, impact=description)
    if missing == len(checks):
        log.warning("config.offline_mode", detail="no provider keys set; all market data will be synthetic")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    services: Services = app.state.services
    settings = services.settings
    log.info(
        "startup",
        env=settings.app_env,
        storage=settings.storage_path,
        providers=[p.name for p in services.aggregator.providers],
    )
    _validate_config(settings)

    yield

    log.info("shutdown", uptime_seconds=services.uptime_seconds)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Application factory. Tests pass a pre-built container."""
    services = services or build_services()
    settings = services.settings

    app = FastAPI(
        title="ThetaFlowz",
        description="""# ThetaFlowz API

Options-trading education backend.

## Features
- **Plans & Trials**: free 7-day trial, basic and premium plans, admin override
- **Market Data**: quotes, search and daily history with provider fallback
- **Watchlist**: persisted tickers with last known prices
- **Screener**: strategy profiles (wheel, iron condor, spreads) over large caps
""",
        version=__version__,
        debug=settings.app_debug,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Health", "description": "Service health and provider circuit state"},
            {"name": "Authentication", "description": "Registration, login and plan changes"},
            {"name": "Entitlements", "description": "Feature access and trial status"},
            {"name": "Market Data", "description": "Quotes, search, history and options"},
            {"name": "Watchlist", "description": "Tracked tickers"},
            {"name": "Screener", "description": "Options strategy stock screener"},
        ],
    )
    app.state.services = services

    # ── Global Error Handlers ──
    register_error_handlers(app)

    # ── CORS (configurable from settings) ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Request Logging ──
    app.add_middleware(RequestLoggerMiddleware)

    # ── Routes (unversioned) ──
    app.include_router(health_router, tags=["Health"])

    # ── Routes (v1 API) ──
    app.include_router(health_router, prefix=API_V1, tags=["Health"])
    app.include_router(auth_router, prefix=API_V1, tags=["Authentication"])
    app.include_router(entitlements_router, prefix=API_V1, tags=["Entitlements"])
    app.include_router(market_router, prefix=API_V1, tags=["Market Data"])
    app.include_router(watchlist_router, prefix=API_V1, tags=["Watchlist"])
    app.include_router(screener_router, prefix=API_V1, tags=["Screener"])

    # ── API Version Header ──
    @app.middleware("http")
    async def add_api_version_header(request, call_next):
        response = await call_next(request)
        response.headers["X-API-Version"] = "v1"
        return response

    return app


app = create_app()
