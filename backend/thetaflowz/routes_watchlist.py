"""
ThetaFlowz - Watchlist Routes

REST endpoints over the persisted watchlist. Requires the ``market``
feature. Adding a symbol already present is a no-op that returns the
existing entry.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from thetaflowz.auth.dependencies import get_services, require_feature
from thetaflowz.models import Feature
from thetaflowz.services import Services

watchlist_router = APIRouter(
    prefix="/watchlist",
    dependencies=[Depends(require_feature(Feature.MARKET))],
)


class AddWatchlistRequest(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=10, description="Stock ticker symbol")


@watchlist_router.get("")
async def get_watchlist(services: Services = Depends(get_services)):
    entries = services.watchlist.load()
    return {"watchlist": [e.model_dump(mode="json") for e in entries], "count": len(entries)}


@watchlist_router.post("", status_code=201)
async def add_to_watchlist(body: AddWatchlistRequest, services: Services = Depends(get_services)):
    entry = await services.watchlist.add(body.symbol)
    return {
        **entry.model_dump(mode="json"),
        "message": f"{entry.symbol} is on your watchlist",
    }


@watchlist_router.post("/refresh")
async def refresh_watchlist(services: Services = Depends(get_services)):
    entries = await services.watchlist.refresh()
    return {"watchlist": [e.model_dump(mode="json") for e in entries], "count": len(entries)}


@watchlist_router.delete("/{symbol}")
async def remove_from_watchlist(symbol: str, services: Services = Depends(get_services)):
    removed = await services.watchlist.remove(symbol)
    sym = symbol.strip().upper()
    return {
        "symbol": sym,
        "removed": removed,
        "message": f"Removed {sym} from watchlist" if removed else f"{sym} was not on your watchlist",
    }
