"""
ThetaFlowz - Market Data Routes

Quotes, market summary, symbol search, daily history and options chains.
All endpoints require the ``market`` feature (basic or premium plan).
Responses carry a ``synthetic`` flag so clients can show that the data
is not live.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from thetaflowz.auth.dependencies import get_services, require_feature
from thetaflowz.models import Feature
from thetaflowz.services import Services
from thetaflowz.utils.validators import parse_symbol_list, validate_ticker

market_router = APIRouter(
    prefix="/market",
    dependencies=[Depends(require_feature(Feature.MARKET))],
)


def _ticker_or_400(symbol: str) -> str:
    try:
        return validate_ticker(symbol)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@market_router.get("/summary")
async def market_summary(services: Services = Depends(get_services)):
    """Overview quotes for the major index constituents."""
    quotes = await services.aggregator.get_market_summary()
    return {
        "quotes": [q.model_dump() for q in quotes],
        "count": len(quotes),
        "synthetic": any(q.is_synthetic for q in quotes),
    }


@market_router.get("/quote/{symbol}")
async def get_quote(symbol: str, services: Services = Depends(get_services)):
    quote = await services.aggregator.get_quote(_ticker_or_400(symbol))
    return {**quote.model_dump(), "synthetic": quote.is_synthetic}


@market_router.get("/quotes")
async def get_quotes(
    symbols: str = Query(..., description="Comma-separated tickers, e.g. AAPL,MSFT"),
    services: Services = Depends(get_services),
):
    try:
        tickers = [validate_ticker(s) for s in parse_symbol_list(symbols)]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    quotes = await services.aggregator.get_quotes(tickers)
    return {
        "quotes": [{**q.model_dump(), "synthetic": q.is_synthetic} for q in quotes],
        "count": len(quotes),
    }


@market_router.get("/search")
async def search(
    q: str = Query("", max_length=50, description="Ticker or company name fragment"),
    services: Services = Depends(get_services),
):
    results = await services.aggregator.search_symbols(q)
    return {
        "query": q,
        "results": [r.model_dump() for r in results],
        "count": len(results),
    }


@market_router.get("/history/{symbol}")
async def history(
    symbol: str,
    period: str = Query("1mo", description="5d or 1mo; longer periods are capped"),
    interval: str = Query("1d", description="Only daily bars are available"),
    services: Services = Depends(get_services),
):
    series = await services.aggregator.get_historical_data(_ticker_or_400(symbol), period, interval)
    return {
        **series.model_dump(),
        "count": len(series.bars),
        "synthetic": series.is_synthetic,
    }


@market_router.get("/options/{symbol}")
async def options_chain(symbol: str, services: Services = Depends(get_services)):
    """Full chain; 501 when no configured provider offers options data."""
    chain = await services.aggregator.get_options_chain(_ticker_or_400(symbol))
    return chain.model_dump()
