from __future__ import annotations
from types import MappingProxyType
from typing import Mapping, Optional

# Normalized code -> Kraken asset code, as reported in Balance / Ledgers.
# Each code maps to exactly one asset code and back; pass-through codes are
# listed separately and map to themselves.
_PREFIXED: Mapping[str, str] = MappingProxyType({
    "BTC": "XXBT", "ETH": "XETH", "ETC": "XETC", "LTC": "XLTC",
    "XRP": "XXRP", "XLM": "XXLM", "DOGE": "XXDG", "XMR": "XXMR",
    "ZEC": "XZEC", "MLN": "XMLN", "REP": "XREP",
    "EUR": "ZEUR", "USD": "ZUSD", "GBP": "ZGBP", "CAD": "ZCAD", "JPY": "ZJPY",
})

# Assets Kraken reports under their plain ticker.
PASSTHROUGH_CODES: frozenset[str] = frozenset({
    "BSV", "BCH", "USDT", "USDC", "DAI", "TRX", "DOT", "ADA", "SOL",
})

# Short forms that show up inside concatenated pair strings (XBTEUR, BSVEUR, ...).
_PAIR_ALIASES: Mapping[str, str] = MappingProxyType({
    "XBT": "BTC", "XDG": "DOGE",
    "ETH": "ETH", "ETC": "ETC", "LTC": "LTC", "XRP": "XRP", "XLM": "XLM",
    "XMR": "XMR", "ZEC": "ZEC", "MLN": "MLN", "REP": "REP",
    "EUR": "EUR", "USD": "USD", "GBP": "GBP", "CAD": "CAD", "JPY": "JPY",
})

TO_EXCHANGE: Mapping[str, str] = MappingProxyType({
    **_PREFIXED, **{c: c for c in PASSTHROUGH_CODES},
})
FROM_EXCHANGE: Mapping[str, str] = MappingProxyType({v: k for k, v in TO_EXCHANGE.items()})

# Decimal places of the smallest subunit. Codes missing here fall back to
# DEFAULT_PRECISION; config validation refuses such codes for client input.
DEFAULT_PRECISION = 2
PRECISION: Mapping[str, int] = MappingProxyType({
    "BTC": 8, "BSV": 8, "BCH": 8, "ETH": 8, "ETC": 8, "LTC": 8, "DOGE": 8,
    "XMR": 8, "ZEC": 8, "MLN": 8, "REP": 8, "DOT": 8, "ADA": 6, "SOL": 8,
    "XRP": 6, "XLM": 7, "TRX": 6,
    "USDT": 2, "USDC": 2, "DAI": 2,
    "EUR": 2, "USD": 2, "GBP": 2, "CAD": 2, "JPY": 2,
})


def to_exchange_code(code: str) -> Optional[str]:
    """Kraken asset code for a normalized currency, or None when unmapped."""
    return TO_EXCHANGE.get((code or "").upper())


def lookup(asset_code: str) -> Optional[str]:
    """Resolve any Kraken spelling of an asset (XXBT, XBT, ZEUR, EUR, USDC) or None."""
    if asset_code in PASSTHROUGH_CODES:
        return asset_code
    return FROM_EXCHANGE.get(asset_code) or _PAIR_ALIASES.get(asset_code)


def from_exchange_code(asset_code: str) -> str:
    """Normalized code for a Kraken asset; unknown assets come back unchanged."""
    return lookup(asset_code) or asset_code


def pair_code(code: str) -> str:
    """Spelling of a currency inside an unprefixed pair string (BTC -> XBT)."""
    for short, normalized in _PAIR_ALIASES.items():
        if normalized == code and short != code:
            return short
    return code


def precision(code: str) -> int:
    return PRECISION.get(code, DEFAULT_PRECISION)


def is_registered(code: str) -> bool:
    """True when the code has both a precision entry and an exchange mapping."""
    return code in PRECISION and code in TO_EXCHANGE
