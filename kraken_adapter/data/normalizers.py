"""Pure transforms from raw Kraken `result` payloads to adapter entities.

Nothing here performs I/O. Pair strings go through the pair resolver,
amounts through the subunit converter. Inverse-quoted books (the exchange
only lists QUOTE/BASE) get reciprocal prices; bids and asks keep their sides.
"""
from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from kraken_adapter.core.errors import KrakenAdapterError, ModuleError
from kraken_adapter.data.entities import Balance, OrderBook, OrderBookEntry, Ticker, Trade, Transaction
from kraken_adapter.data.subunits import to_decimal, to_subunit
from kraken_adapter.registry import currencies
from kraken_adapter.registry.pairs import PairResolution, ParsedPair, try_parse_pair

TYPE_SELL = "sell"
TYPE_BUY = "buy"
STATE_OPEN = "open"
STATE_CLOSED = "closed"
STATE_CANCELLED = "cancelled"


def iso_timestamp(seconds: Any) -> str:
    """Epoch seconds -> ISO-8601 UTC with milliseconds, e.g. 2016-12-02T10:37:32.708Z."""
    dt = datetime.fromtimestamp(float(seconds), tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _reciprocal(price: Any, wire_pair: str) -> float:
    p = to_decimal(price)
    if p == 0:
        raise ModuleError(f"Cannot invert zero price for {wire_pair}")
    return float(Decimal(1) / p)


def _wire_legs(res: PairResolution) -> Tuple[str, str]:
    return (res.quote, res.base) if res.inverse else (res.base, res.quote)


def _pair_payload(result: Dict[str, Any], res: PairResolution) -> Dict[str, Any]:
    """Entry for the resolved pair; Kraken sometimes keys it as BTC/USD instead of XXBTZUSD."""
    if res.wire_pair in result:
        return result[res.wire_pair]
    wb, wq = _wire_legs(res)
    for label in (f"{wb}/{wq}", f"{currencies.pair_code(wb)}/{wq}"):
        if label in result:
            logger.debug(f"Aliasing response key {label} to {res.wire_pair}")
            return result[label]
    raise ModuleError(f"Currency pair: {res.wire_pair} is not in response")


def _book_entry(entry: List[Any], res: PairResolution) -> OrderBookEntry:
    price, volume = entry[0], entry[1]
    if not res.inverse:
        return OrderBookEntry(price=float(price), base_amount=to_subunit(volume, res.base))
    # wire volume is in res.quote; the amount of res.base on offer is price * volume
    amount = to_decimal(price) * to_decimal(volume)
    return OrderBookEntry(price=_reciprocal(price, res.wire_pair), base_amount=to_subunit(amount, res.base))


def normalize_order_book(result: Dict[str, Any], res: PairResolution) -> OrderBook:
    book = _pair_payload(result, res)
    bids = [_book_entry(e, res) for e in (book.get("bids") or [])]
    asks = [_book_entry(e, res) for e in (book.get("asks") or [])]
    return OrderBook(base_currency=res.base, quote_currency=res.quote, bids=bids, asks=asks)


def normalize_ticker(result: Dict[str, Any], res: PairResolution) -> Ticker:
    """Map Kraken's a/b/c/v/p/l/h arrays; index 1 is the rolling 24h value."""
    t = _pair_payload(result, res)
    if not res.inverse:
        return Ticker(
            base_currency=res.base, quote_currency=res.quote,
            bid=float(t["b"][0]), ask=float(t["a"][0]), last_price=float(t["c"][0]),
            high_24h=float(t["h"][1]), low_24h=float(t["l"][1]), vwap_24h=float(t["p"][1]),
            volume_24h=to_subunit(t["v"][1], res.base),
        )
    inv = lambda v: _reciprocal(v, res.wire_pair)
    return Ticker(
        base_currency=res.base, quote_currency=res.quote,
        bid=inv(t["a"][0]), ask=inv(t["b"][0]), last_price=inv(t["c"][0]),
        high_24h=inv(t["l"][1]), low_24h=inv(t["h"][1]), vwap_24h=inv(t["p"][1]),
        volume_24h=to_subunit(t["v"][1], res.quote),
    )


def normalize_balance(totals: Dict[str, Any], open_orders: Dict[str, Any], supported: Iterable[str]) -> Balance:
    """Total per supported currency, minus what open orders keep reserved.

    Sell orders reserve their volume in the base currency, buy orders
    price * volume in the quote currency.
    """
    codes = list(supported)
    total = {c: 0 for c in codes}
    reserved = {c: 0 for c in codes}
    for asset, amount in (totals or {}).items():
        code = currencies.lookup(asset)
        if code not in total:
            logger.debug(f"Ignoring balance of unsupported asset {asset}")
            continue
        total[code] = to_subunit(amount, code)

    for order_id, order in (open_orders or {}).items():
        descr = order.get("descr") or {}
        pair = try_parse_pair(descr.get("pair", ""))
        if not pair.ok:
            logger.warning(f"Skipping open order {order_id}: {pair.error}")
            continue
        side = descr.get("type")
        if side == TYPE_SELL and pair.base in reserved:
            reserved[pair.base] += to_subunit(order["vol"], pair.base)
        elif side == TYPE_BUY and pair.quote in reserved:
            cost = to_decimal(descr["price"]) * to_decimal(order["vol"])
            reserved[pair.quote] += to_subunit(cost, pair.quote)

    available = {c: total[c] - reserved[c] for c in codes}
    return Balance(available=available, total=total)


def _parse_or_fail(wire_pair: str) -> ParsedPair:
    parsed = try_parse_pair(wire_pair)
    if not parsed.ok:
        raise ModuleError(parsed.error or f"Invalid pair {wire_pair!r}")
    return ParsedPair(parsed.base, parsed.quote)


def _record_time(record: Dict[str, Any], is_trade: bool) -> Optional[str]:
    ts = record.get("time") if is_trade else (record.get("closetm") or record.get("opentm"))
    return iso_timestamp(ts) if ts not in (None, "") else None


def normalize_trade(response: Dict[str, Any], entity_type: str, txid: str) -> Trade:
    """Build a Trade from a QueryTrades ('trade') or QueryOrders ('order') result.

    Trade records keep pair/type/ordertype at top level, order records keep
    them under `descr`. Kraken reports cost and fee as zero for open orders;
    those become None.
    """
    if txid not in response:
        raise ModuleError(f"Trade {txid} is not in response")
    record = response[txid]
    is_trade = entity_type == "trade"
    values = record if is_trade else (record.get("descr") or {})
    pair = _parse_or_fail(values.get("pair", ""))

    state = STATE_CLOSED if is_trade else record.get("status")
    if state == "canceled":
        state = STATE_CANCELLED

    base_amount = to_subunit(record["vol"], pair.base)
    if values.get("type") == TYPE_SELL:
        base_amount = -base_amount

    quote_amount = fee_amount = None
    if state != STATE_OPEN:
        quote_amount = to_subunit(record["cost"], pair.quote)
        if values.get("type") == TYPE_BUY:
            quote_amount = -quote_amount
        fee_amount = to_subunit(record["fee"], pair.quote)

    return Trade(
        external_id=txid,
        type=values.get("ordertype"),
        state=state,
        base_currency=pair.base,
        base_amount=base_amount,
        quote_currency=pair.quote,
        quote_amount=quote_amount,
        fee_amount=fee_amount,
        fee_currency=pair.quote,
        timestamp=_record_time(record, is_trade),
        raw=response,
    )


def normalize_transaction(entry: Dict[str, Any]) -> Optional[Transaction]:
    """One ledger entry; None for assets the registry does not know."""
    if not entry:
        return None
    currency = currencies.lookup(entry.get("asset", ""))
    if currency is None:
        logger.warning(f"Dropping ledger entry {entry.get('refid')}: unrecognized asset {entry.get('asset')!r}")
        return None
    return Transaction(
        external_id=entry["refid"],
        timestamp=iso_timestamp(entry["time"]),
        state="completed",
        amount=to_subunit(entry["amount"], currency),
        currency=currency,
        type=entry["type"],
        raw=entry,
    )


def normalize_ledger_page(ledger: Dict[str, Any]) -> List[Transaction]:
    out: List[Transaction] = []
    for ledger_id, entry in ledger.items():
        try:
            tx = normalize_transaction(entry)
        except (KrakenAdapterError, KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.warning(f"Dropping ledger entry {ledger_id}: {e}")
            continue
        if tx is not None:
            out.append(tx)
    return out


def normalize_trade_history(trades: Dict[str, Any], start: float, end: float) -> List[Trade]:
    """Trades with start <= time <= end; entries that fail to normalize are logged and dropped."""
    out: List[Trade] = []
    for txid, record in (trades or {}).items():
        try:
            ts = float(record.get("time"))
        except (TypeError, ValueError):
            logger.warning(f"Dropping trade {txid}: missing time")
            continue
        if ts < start or ts > end:
            continue
        try:
            out.append(normalize_trade({txid: record}, "trade", txid))
        except (KrakenAdapterError, KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.warning(f"Dropping trade {txid} ({record.get('pair')}): {e}")
    return out
