from __future__ import annotations
import json, math
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger

from kraken_adapter.core.config import KrakenConfig
from kraken_adapter.core.errors import ExchangeServerError, ValidationError
from kraken_adapter.data.entities import Balance, OrderBook, Ticker, Trade, Transaction
from kraken_adapter.data import normalizers as norm
from kraken_adapter.data.subunits import from_subunit, round_half_away, to_wire
from kraken_adapter.execution.transport import KrakenTransport
from kraken_adapter.registry.pairs import PairResolution, resolve_pair

INVALID_ORDER = "EOrder:Invalid order"
EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _field(obj: Any, *names: str) -> Any:
    for name in names:
        if isinstance(obj, dict):
            if obj.get(name) is not None:
                return obj[name]
        elif getattr(obj, name, None) is not None:
            return getattr(obj, name)
    return None


def transaction_id(trade_ref: Any) -> str:
    """txid of a trade reference: raw['txid'][0], else the first key of raw."""
    raw = _field(trade_ref, "raw")
    if "txid" in raw:
        txid = raw["txid"]
        return txid[0] if isinstance(txid, (list, tuple)) else txid
    return next(iter(raw))


class KrakenClient:
    """Kraken REST adapter. Every public method is one request/response transform."""

    def __init__(self, cfg: KrakenConfig | None = None, transport: KrakenTransport | None = None):
        self.cfg = cfg or KrakenConfig()
        self.transport = transport or KrakenTransport(self.cfg)

    def resolve(self, base: str, quote: str) -> PairResolution:
        return resolve_pair(base, quote, self.cfg.supported_currencies)

    # ---------------------------------------------------------------- market data

    def get_order_book(self, base: str, quote: str) -> OrderBook:
        res = self.resolve(base, quote)
        result = self.transport.post("Depth", {"pair": res.wire_pair})
        return norm.normalize_order_book(result, res)

    def get_ticker(self, base: str, quote: str) -> Ticker:
        res = self.resolve(base, quote)
        result = self.transport.post("Ticker", {"pair": res.wire_pair})
        return norm.normalize_ticker(result, res)

    # ---------------------------------------------------------------- account

    def get_balance(self) -> Balance:
        totals = self.transport.post("Balance")
        open_orders = self.transport.post("OpenOrders", {})
        return norm.normalize_balance(totals, open_orders.get("open") or {}, self.cfg.supported_currencies)

    def get_trade(self, trade_ref: Any) -> Trade:
        """Look a trade up by reference; ids unknown to QueryTrades are retried as orders."""
        if not trade_ref:
            raise ValidationError("Trade object is a required parameter.")
        if not _field(trade_ref, "raw"):
            raise ValidationError("'trade.raw' is a required property.")
        txid = transaction_id(trade_ref)
        try:
            result = self.transport.post("QueryTrades", {"txid": txid})
            return norm.normalize_trade(result, "trade", txid)
        except ExchangeServerError as e:
            if INVALID_ORDER not in (e.error_messages or []):
                raise
        logger.debug(f"{txid} is not a closed trade, querying orders")
        result = self.transport.post("QueryOrders", {"txid": txid})
        return norm.normalize_trade(result, "order", txid)

    def place_trade(self, base_amount: int, limit_price: float, base: str, quote: str) -> Trade:
        """Place a limit order: negative base_amount sells, positive buys (subunits of base)."""
        res = self.resolve(base, quote)
        if isinstance(base_amount, bool) or not isinstance(base_amount, (int, float)) \
                or not math.isfinite(base_amount) or base_amount == 0 or base_amount != int(base_amount):
            raise ValidationError("The base amount must be a number and larger or smaller than 0.")
        if isinstance(limit_price, bool) or not isinstance(limit_price, (int, float)) \
                or not math.isfinite(limit_price) or limit_price < 0:
            raise ValidationError("The limit price must be a positive number.")

        # AddOrder rejects prices with more than one decimal
        price = round_half_away(limit_price, 1)
        side = norm.TYPE_SELL if base_amount < 0 else norm.TYPE_BUY
        volume = from_subunit(abs(int(base_amount)), res.base)
        result = self.transport.post("AddOrder", {
            "pair": res.wire_pair,
            "type": side,
            "ordertype": "limit",
            "price": to_wire(price),
            "volume": to_wire(volume),
        })
        return Trade(
            external_id=result["txid"][0],
            type="limit",
            state=norm.STATE_OPEN,
            base_currency=res.base,
            base_amount=int(base_amount),
            quote_currency=res.quote,
            limit_price=float(price),
            raw=result,
        )

    # ---------------------------------------------------------------- history

    def _ledger_pages(self, entry_type: str, start: Optional[int]) -> Iterator[Dict[str, Any]]:
        """Ledgers pages, offset by the count fetched so far, until an empty page."""
        fetched = 0
        while True:
            params: Dict[str, Any] = {"type": entry_type, "ofs": fetched}
            if start:
                params["start"] = start
            response = self.transport.post("Ledgers", params)
            ledger = response.get("ledger") if isinstance(response, dict) else None
            if not isinstance(ledger, dict):
                raise ExchangeServerError("Unexpected response from Ledgers endpoint",
                                          response_body=json.dumps(response, default=str))
            if not ledger:
                return
            fetched += len(ledger)
            yield ledger

    def _list_ledger(self, entry_type: str, start: Optional[int]) -> List[Transaction]:
        out: List[Transaction] = []
        for page in self._ledger_pages(entry_type, start):
            out.extend(norm.normalize_ledger_page(page))
        logger.debug(f"Fetched {len(out)} {entry_type} ledger entries")
        return out

    def list_transactions(self, latest_transaction: Any = None) -> List[Transaction]:
        """Withdrawals and deposits since latest_transaction (all when None), oldest first."""
        start = None
        if latest_transaction is not None:
            raw = _field(latest_transaction, "raw") or {}
            start = math.trunc(float(raw["time"]))
        withdrawals = self._list_ledger("withdrawal", start)
        deposits = self._list_ledger("deposit", start)
        return sorted(withdrawals + deposits, key=lambda tx: float(tx.raw["time"]))

    def list_trade_history_for_period(self, from_date: datetime, to_date: datetime) -> List[Trade]:
        if not isinstance(from_date, datetime) or not isinstance(to_date, datetime):
            raise ValidationError("from_date and to_date must be datetime instances.")
        start, end = from_date.timestamp(), to_date.timestamp()
        if start > end:
            raise ValidationError("from_date must not be after to_date.")
        result = self.transport.post("TradesHistory", {"start": start, "end": end})
        return norm.normalize_trade_history(result.get("trades") or {}, start, end)

    def list_trades(self, latest_trade: Any = None) -> List[Trade]:
        """Trades since latest_trade (create_time, or the timestamp of a Trade this client returned)."""
        since = None
        if latest_trade is not None:
            since = _field(latest_trade, "create_time", "createTime", "timestamp")
        if since is None:
            since = EPOCH
        elif not isinstance(since, datetime):
            try:
                since = datetime.fromisoformat(str(since).replace("Z", "+00:00"))
            except ValueError as e:
                raise ValidationError(f"Invalid trade creation time: {since!r}", cause=e) from e
        if since.tzinfo is None:
            # offset-less input is UTC, never local time
            since = since.replace(tzinfo=timezone.utc)
        return self.list_trade_history_for_period(since, datetime.now(timezone.utc))
