"""
ThetaFlowz - Screener Universe

Curated large-cap list the screener runs against, with display names,
sectors and approximate market capitalization (USD). Reference data only;
prices always come from the aggregator.
"""

from __future__ import annotations

from thetaflowz.models import UniverseMember

_B = 1_000_000_000

# symbol, name, sector, market cap
_ROWS: list[tuple[str, str, str, float]] = [
    ("AAPL", "Apple Inc.", "Technology", 3_000 * _B),
    ("MSFT", "Microsoft Corporation", "Technology", 3_100 * _B),
    ("GOOGL", "Alphabet Inc.", "Technology", 2_100 * _B),
    ("AMZN", "Amazon.com Inc.", "Consumer Discretionary", 1_900 * _B),
    ("NVDA", "NVIDIA Corporation", "Technology", 3_000 * _B),
    ("TSLA", "Tesla Inc.", "Consumer Discretionary", 700 * _B),
    ("META", "Meta Platforms Inc.", "Technology", 1_300 * _B),
    ("BRK.B", "Berkshire Hathaway Inc.", "Financials", 950 * _B),
    ("UNH", "UnitedHealth Group Inc.", "Healthcare", 450 * _B),
    ("JNJ", "Johnson & Johnson", "Healthcare", 380 * _B),
    ("JPM", "JPMorgan Chase & Co.", "Financials", 650 * _B),
    ("V", "Visa Inc.", "Financials", 560 * _B),
    ("PG", "Procter & Gamble Co.", "Consumer Staples", 390 * _B),
    ("HD", "The Home Depot Inc.", "Consumer Discretionary", 380 * _B),
    ("MA", "Mastercard Inc.", "Financials", 480 * _B),
    ("DIS", "The Walt Disney Co.", "Communication Services", 200 * _B),
    ("PYPL", "PayPal Holdings Inc.", "Financials", 70 * _B),
    ("NFLX", "Netflix Inc.", "Communication Services", 300 * _B),
    ("CRM", "Salesforce Inc.", "Technology", 260 * _B),
    ("ADBE", "Adobe Inc.", "Technology", 220 * _B),
    ("NKE", "Nike Inc.", "Consumer Discretionary", 110 * _B),
    ("KO", "The Coca-Cola Co.", "Consumer Staples", 300 * _B),
    ("PEP", "PepsiCo Inc.", "Consumer Staples", 210 * _B),
    ("ABT", "Abbott Laboratories", "Healthcare", 200 * _B),
    ("TMO", "Thermo Fisher Scientific Inc.", "Healthcare", 210 * _B),
    ("AVGO", "Broadcom Inc.", "Technology", 800 * _B),
    ("COST", "Costco Wholesale Corporation", "Consumer Staples", 400 * _B),
    ("WMT", "Walmart Inc.", "Consumer Staples", 700 * _B),
    ("MRK", "Merck & Co. Inc.", "Healthcare", 250 * _B),
    ("ACN", "Accenture plc", "Technology", 200 * _B),
    ("LLY", "Eli Lilly and Company", "Healthcare", 750 * _B),
    ("DHR", "Danaher Corporation", "Healthcare", 170 * _B),
    ("TXN", "Texas Instruments Inc.", "Technology", 180 * _B),
    ("QCOM", "QUALCOMM Inc.", "Technology", 180 * _B),
    ("HON", "Honeywell International Inc.", "Industrials", 140 * _B),
    ("UNP", "Union Pacific Corporation", "Industrials", 140 * _B),
    ("RTX", "Raytheon Technologies Corporation", "Industrials", 160 * _B),
    ("LOW", "Lowe's Companies Inc.", "Consumer Discretionary", 140 * _B),
    ("SPGI", "S&P Global Inc.", "Financials", 160 * _B),
    ("ISRG", "Intuitive Surgical Inc.", "Healthcare", 180 * _B),
    ("GILD", "Gilead Sciences Inc.", "Healthcare", 120 * _B),
    ("ADI", "Analog Devices Inc.", "Technology", 110 * _B),
    ("VRTX", "Vertex Pharmaceuticals Inc.", "Healthcare", 120 * _B),
    ("REGN", "Regeneron Pharmaceuticals Inc.", "Healthcare", 80 * _B),
    ("KLAC", "KLA Corporation", "Technology", 100 * _B),
    ("PANW", "Palo Alto Networks Inc.", "Technology", 120 * _B),
    ("SNPS", "Synopsys Inc.", "Technology", 80 * _B),
    ("CDNS", "Cadence Design Systems Inc.", "Technology", 80 * _B),
    ("MELI", "MercadoLibre Inc.", "Consumer Discretionary", 100 * _B),
    ("FTNT", "Fortinet Inc.", "Technology", 70 * _B),
    ("OKTA", "Okta Inc.", "Technology", 15 * _B),
    ("ZS", "Zscaler Inc.", "Technology", 35 * _B),
    ("CRWD", "CrowdStrike Holdings Inc.", "Technology", 90 * _B),
    ("NET", "Cloudflare Inc.", "Technology", 40 * _B),
    ("PLTR", "Palantir Technologies Inc.", "Technology", 250 * _B),
]

DEFAULT_UNIVERSE: tuple[UniverseMember, ...] = tuple(
    UniverseMember(symbol=s, name=n, sector=sec, market_cap=cap) for s, n, sec, cap in _ROWS
)

_BY_SYMBOL = {m.symbol: m for m in DEFAULT_UNIVERSE}


def lookup(symbol: str) -> UniverseMember:
    """Reference row for a symbol; unknown symbols get a bare placeholder."""
    member = _BY_SYMBOL.get(symbol.upper())
    if member is not None:
        return member
    return UniverseMember(symbol=symbol.upper(), name=symbol.upper())


def display_name(symbol: str) -> str:
    return lookup(symbol).name
