import base64, json

import pytest
from kraken_adapter.client import INVALID_ORDER, KrakenClient, transaction_id
from kraken_adapter.core.config import KrakenConfig
from kraken_adapter.core.errors import ExchangeServerError, ValidationError
from kraken_adapter.data.entities import Trade
from kraken_adapter.execution.transport import KrakenTransport

class FakeTransport:
    """Queue of canned results; exceptions in the queue are raised."""
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, action, params=None):
        self.calls.append((action, params))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r

def _client(*responses):
    transport = FakeTransport(*responses)
    return KrakenClient(KrakenConfig(), transport=transport), transport

TXID = "OQCLML-BW3P3-BUCMWZ"

def test_order_book_requests_resolved_pair():
    client, t = _client({"XXBTZUSD": {"asks": [["6500.1", "1", 0]], "bids": []}})
    book = client.get_order_book("btc", "usd")
    assert t.calls == [("Depth", {"pair": "XXBTZUSD"})]
    assert book.asks[0].base_amount == 100000000

def test_ticker_inverse_pair_request():
    client, t = _client({"XETHZEUR": {
        "a": ["2000", "1", "1"], "b": ["1600", "1", "1"], "c": ["1800", "1"],
        "v": ["1", "2"], "p": ["1", "1900"], "l": ["1", "1250"], "h": ["1", "2500"],
    }})
    ticker = client.get_ticker("EUR", "ETH")
    assert t.calls == [("Ticker", {"pair": "XETHZEUR"})]
    assert (ticker.base_currency, ticker.quote_currency) == ("EUR", "ETH")

def test_unsupported_currency_sends_nothing():
    client, t = _client()
    with pytest.raises(ValidationError):
        client.get_ticker("DOGE", "USD")
    assert t.calls == []

def test_balance_uses_open_orders():
    client, t = _client(
        {"ZUSD": "10.00", "XXBT": "1"},
        {"open": {"O1": {"descr": {"pair": "XBTUSD", "type": "buy", "price": "5"}, "vol": "1"}}},
    )
    bal = client.get_balance()
    assert [c[0] for c in t.calls] == ["Balance", "OpenOrders"]
    assert bal.total["USD"] == 1000 and bal.available["USD"] == 500
    assert bal.available["BTC"] == bal.total["BTC"] == 100000000

# ---------------------------------------------------------------- get_trade

def _order_result(status="open"):
    return {TXID: {"status": status, "opentm": 1534614248.0, "closetm": 0,
                   "descr": {"pair": "XBTEUR", "type": "sell", "ordertype": "limit", "price": "6500.0"},
                   "vol": "4.00000000", "cost": "0.00000", "fee": "0.00000"}}

def test_transaction_id():
    assert transaction_id({"raw": {"txid": [TXID]}}) == TXID
    assert transaction_id({"raw": {TXID: {}}}) == TXID

def test_get_trade_falls_back_to_orders():
    invalid = ExchangeServerError("The exchange service responded with an error.",
                                  error_messages=[INVALID_ORDER])
    client, t = _client(invalid, _order_result())
    trade = client.get_trade({"raw": {"txid": [TXID]}})
    assert t.calls == [("QueryTrades", {"txid": TXID}), ("QueryOrders", {"txid": TXID})]
    assert trade.state == "open" and trade.base_amount == -400000000
    assert trade.quote_amount is None

def test_get_trade_other_errors_propagate():
    err = ExchangeServerError("The exchange service responded with an error.",
                              error_messages=["EGeneral:Internal error"])
    client, t = _client(err)
    with pytest.raises(ExchangeServerError) as ei:
        client.get_trade(Trade(external_id=TXID, type="limit", state="open", base_currency="BTC",
                               base_amount=-1, quote_currency="EUR", raw={"txid": [TXID]}))
    assert ei.value is err
    assert len(t.calls) == 1

@pytest.mark.parametrize("ref,message", [
    (None, "Trade object is a required parameter."),
    ({"raw": None}, "'trade.raw' is a required property."),
])
def test_get_trade_validation(ref, message):
    client, t = _client()
    with pytest.raises(ValidationError) as ei:
        client.get_trade(ref)
    assert ei.value.message == message
    assert t.calls == []

# ---------------------------------------------------------------- place_trade

def test_place_sell_trade():
    client, t = _client({"descr": {"order": "sell 0.01 XBTEUR @ limit 10000.6"}, "txid": [TXID]})
    trade = client.place_trade(-1000000, 10000.55, "BTC", "EUR")
    assert t.calls == [("AddOrder", {
        "pair": "XXBTZEUR", "type": "sell", "ordertype": "limit",
        "price": "10000.6", "volume": "0.01",
    })]
    assert trade.external_id == TXID
    assert (trade.type, trade.state) == ("limit", "open")
    assert (trade.base_currency, trade.base_amount, trade.quote_currency) == ("BTC", -1000000, "EUR")
    assert trade.limit_price == 10000.6
    assert trade.raw["txid"] == [TXID]

def test_place_trade_rounds_limit_price():
    client, t = _client({"txid": [TXID]})
    trade = client.place_trade(-1000000, 10000.57, "BTC", "USD")
    params = t.calls[0][1]
    assert (params["pair"], params["type"]) == ("XXBTZUSD", "sell")
    assert (params["price"], params["volume"]) == ("10000.6", "0.01")
    assert (trade.state, trade.base_amount, trade.limit_price) == ("open", -1000000, 10000.6)
    assert (trade.base_currency, trade.quote_currency) == ("BTC", "USD")

def test_place_buy_trade_plain_pair():
    client, t = _client({"txid": [TXID]})
    client.place_trade(250000000, 150, "BSV", "USD")
    action, params = t.calls[0]
    assert params["pair"] == "BSVUSD" and params["type"] == "buy"
    assert params["volume"] == "2.5" and params["price"] == "150"

@pytest.mark.parametrize("amount,price,message", [
    (0, 100, "The base amount must be a number and larger or smaller than 0."),
    (float("nan"), 100, "The base amount must be a number and larger or smaller than 0."),
    ("100", 100, "The base amount must be a number and larger or smaller than 0."),
    (float("inf"), 100, "The base amount must be a number and larger or smaller than 0."),
    (float("-inf"), 100, "The base amount must be a number and larger or smaller than 0."),
    (-1000000.9, 100, "The base amount must be a number and larger or smaller than 0."),
    (100, None, "The limit price must be a positive number."),
    (100, float("inf"), "The limit price must be a positive number."),
    (100, -1, "The limit price must be a positive number."),
])
def test_place_trade_validation(amount, price, message):
    client, t = _client()
    with pytest.raises(ValidationError) as ei:
        client.place_trade(amount, price, "BTC", "EUR")
    assert ei.value.message == message
    assert t.calls == []

def test_place_trade_form_over_the_wire():
    """End to end through the real transport with a fake HTTP session."""
    class Session:
        def __init__(self):
            self.calls = []
        def request(self, **kw):
            self.calls.append(kw)
            return type("R", (), {"text": json.dumps({"error": [], "result": {"txid": [TXID]}})})()

    session = Session()
    cfg = KrakenConfig(key="k", secret=base64.b64encode(b"s").decode())
    client = KrakenClient(cfg, transport=KrakenTransport(cfg, session=session))
    client.place_trade(-1000000, 10000.55, "BTC", "EUR")
    form = session.calls[0]["data"]
    assert session.calls[0]["url"].endswith("/0/private/AddOrder")
    assert (form["price"], form["volume"], form["pair"]) == ("10000.6", "0.01", "XXBTZEUR")
    assert "nonce" in form

def test_place_trade_accepts_integral_float_amount():
    client, t = _client({"txid": [TXID]})
    trade = client.place_trade(-1000000.0, 100, "BTC", "EUR")
    assert t.calls[0][1]["volume"] == "0.01"
    assert trade.base_amount == -1000000
