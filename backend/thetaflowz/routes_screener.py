"""
ThetaFlowz - Screener Routes

Strategy catalogue and screener runs. Runs are gated by the screener
trial (account age), not by the paid ``market`` feature.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from thetaflowz.auth.dependencies import get_current_user, get_services, require_screener
from thetaflowz.engines.screener_engine import DEFAULT_STRATEGY, STRATEGY_PROFILES
from thetaflowz.models import CriteriaOverrides
from thetaflowz.services import Services
from thetaflowz.utils.validators import validate_ticker

screener_router = APIRouter(prefix="/screener")


class ScreenerRunRequest(BaseModel):
    strategy: str = DEFAULT_STRATEGY
    view: str = Field("default", min_length=1, max_length=64)
    overrides: Optional[CriteriaOverrides] = None
    symbols: Optional[list[str]] = Field(None, max_length=200)


@screener_router.get("/strategies", dependencies=[Depends(get_current_user)])
async def list_strategies():
    return {
        "strategies": [p.model_dump() for p in STRATEGY_PROFILES.values()],
        "default": DEFAULT_STRATEGY,
    }


@screener_router.post("/run", dependencies=[Depends(require_screener)])
async def run_screener(body: ScreenerRunRequest, services: Services = Depends(get_services)):
    symbols = None
    if body.symbols is not None:
        try:
            symbols = [validate_ticker(s) for s in body.symbols]
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    result = await services.screener.run(
        view=body.view,
        strategy=body.strategy,
        overrides=body.overrides,
        symbols=symbols,
    )
    return {**result.model_dump(), "count": result.count}
