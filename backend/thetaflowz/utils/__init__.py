# Shared utilities: validators, circuit breaker
from thetaflowz.utils.validators import normalize_symbol, parse_symbol_list, validate_ticker

__all__ = [
    "normalize_symbol",
    "parse_symbol_list",
    "validate_ticker",
]
