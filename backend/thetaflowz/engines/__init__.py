# Engines: market data aggregation, watchlist, screener
from thetaflowz.engines.market_data import MarketDataAggregator
from thetaflowz.engines.screener_engine import ScreenerEngine
from thetaflowz.engines.watchlist import WatchlistService

__all__ = ["MarketDataAggregator", "ScreenerEngine", "WatchlistService"]
