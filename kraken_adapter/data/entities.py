from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

@dataclass(frozen=True)
class OrderBookEntry:
    price: float
    base_amount: int

@dataclass(frozen=True)
class OrderBook:
    base_currency: str
    quote_currency: str
    bids: List[OrderBookEntry]
    asks: List[OrderBookEntry]

@dataclass(frozen=True)
class Ticker:
    base_currency: str
    quote_currency: str
    bid: float
    ask: float
    last_price: float
    high_24h: float
    low_24h: float
    vwap_24h: float
    volume_24h: int  # subunits

@dataclass(frozen=True)
class Balance:
    available: Dict[str, int]
    total: Dict[str, int]

@dataclass(frozen=True)
class Trade:
    """A trade or order. Amounts are signed subunits: negative for the leg given up."""
    external_id: str
    type: str
    state: str  # open | closed | cancelled
    base_currency: str
    base_amount: int
    quote_currency: str
    quote_amount: Optional[int] = None  # None while open
    fee_amount: Optional[int] = None
    fee_currency: Optional[str] = None
    timestamp: Optional[str] = None
    limit_price: Optional[float] = None
    raw: Dict[str, Any] = field(default_factory=dict)

@dataclass(frozen=True)
class Transaction:
    external_id: str
    timestamp: str
    state: str
    amount: int
    currency: str
    type: str  # deposit | withdrawal
    raw: Dict[str, Any] = field(default_factory=dict)
