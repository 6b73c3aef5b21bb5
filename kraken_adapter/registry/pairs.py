from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional

from kraken_adapter.core.errors import ValidationError
from kraken_adapter.registry import currencies

# Majors listed as X<asset>Z<fiat> (XXBTZUSD, XETHZEUR).
X_PREFIXED_BASES: frozenset[str] = frozenset({"BTC", "ETH", "ETC", "LTC", "XRP", "XLM", "XMR", "ZEC"})
Z_QUOTES: frozenset[str] = frozenset({"USD", "EUR", "GBP", "CAD", "JPY"})

# Stablecoin/fiat books with a Z-prefixed quote only (USDTZUSD).
STABLECOIN_Z_PAIRS: frozenset[tuple[str, str]] = frozenset({("USDT", "USD")})

# base+quote -> (wire base, wire quote) for books Kraken only lists reversed.
INVERSE_PAIRS = {
    "EURETH": ("ETH", "EUR"),
    "USDETH": ("ETH", "USD"),
    "EURBTC": ("XBT", "EUR"),
    "USDBTC": ("XBT", "USD"),
}


@dataclass(frozen=True)
class PairResolution:
    base: str
    quote: str
    wire_pair: str
    inverse: bool = False


@dataclass(frozen=True)
class ParsedPair:
    base: str
    quote: str


@dataclass(frozen=True)
class PairParse:
    ok: bool
    base: Optional[str] = None
    quote: Optional[str] = None
    error: Optional[str] = None


def resolve_pair(base: str, quote: str, supported: Optional[Iterable[str]] = None) -> PairResolution:
    """Build the wire pair for BASE/QUOTE.

    Rules are tried in order and the first match wins: X/Z-prefixed majors,
    the stablecoin/fiat special case, registered inverse books, then the
    plain concatenation.
    """
    if not base or not quote:
        raise ValidationError("Missing base currency or quote currency")
    base, quote = base.upper(), quote.upper()
    allowed = {c.upper() for c in supported} if supported is not None else None
    for code in (base, quote):
        if not currencies.is_registered(code) or (allowed is not None and code not in allowed):
            raise ValidationError(
                f"Kraken adapter does not support {base}/{quote}; "
                f"supported currencies are {', '.join(sorted(allowed or currencies.PRECISION))}.")
    if base == quote:
        raise ValidationError(f"Base and quote currency must differ, got {base}/{quote}.")

    asset_base = currencies.pair_code(base)
    if base in X_PREFIXED_BASES and quote in Z_QUOTES:
        return PairResolution(base, quote, f"X{asset_base}Z{quote}")
    if (base, quote) in STABLECOIN_Z_PAIRS:
        return PairResolution(base, quote, f"{asset_base}Z{quote}")
    inverted = INVERSE_PAIRS.get(base + quote)
    if inverted:
        inv_base, inv_quote = inverted
        return PairResolution(base, quote, f"X{inv_base}Z{inv_quote}", inverse=True)
    return PairResolution(base, quote, f"{asset_base}{quote}")


def _accept_slice(code: str, allow_identity: bool) -> Optional[str]:
    normalized = currencies.lookup(code)
    if normalized is None:
        return None
    # A 4-char slice must translate to something else (ZEUR, XXBT) or be a
    # registered pass-through (USDC); otherwise try the 3-char base.
    if not allow_identity and normalized == code and code not in currencies.PASSTHROUGH_CODES:
        return None
    return normalized


def try_parse_pair(wire_pair: str) -> PairParse:
    """Split a concatenated pair, trying a 4-char base before a 3-char base.

    The order matters: USDCEUR reads as USDC/EUR and EURUSDC as EUR/USDC.
    A string where both slices would fit is resolved by the 4-char attempt.
    """
    s = wire_pair or ""
    for width, allow_identity in ((4, False), (3, True)):
        if len(s) <= width:
            continue
        base = _accept_slice(s[:width], allow_identity)
        if base is None:
            continue
        remainder = s[width:]
        quote = currencies.lookup(remainder)
        if quote is None:
            return PairParse(False, error=f"Unknown quote currency {remainder!r} in pair {wire_pair!r}")
        return PairParse(True, base, quote)
    return PairParse(False, error=f"Unable to determine base currency of pair {wire_pair!r}")


def parse_pair(wire_pair: str) -> ParsedPair:
    result = try_parse_pair(wire_pair)
    if not result.ok:
        raise ValidationError(result.error or f"Invalid pair {wire_pair!r}")
    return ParsedPair(result.base, result.quote)
