from kraken_adapter.registry import currencies
from kraken_adapter.registry.currencies import from_exchange_code, to_exchange_code, lookup, precision

def test_to_exchange_code():
    assert to_exchange_code("USD") == "ZUSD"
    assert to_exchange_code("EUR") == "ZEUR"
    assert to_exchange_code("BTC") == "XXBT"
    assert to_exchange_code("btc") == "XXBT"
    assert to_exchange_code("BSV") == "BSV"
    assert to_exchange_code("NOPE") is None

def test_from_exchange_code():
    assert from_exchange_code("ZUSD") == "USD"
    assert from_exchange_code("ZEUR") == "EUR"
    assert from_exchange_code("XBT") == "BTC"
    assert from_exchange_code("XXBT") == "BTC"
    assert from_exchange_code("XXDG") == "DOGE"
    assert from_exchange_code("USDC") == "USDC"

def test_unknown_asset_passes_through_unchanged():
    assert from_exchange_code("XNEWCOIN") == "XNEWCOIN"
    assert lookup("XNEWCOIN") is None

def test_mapping_is_one_to_one():
    fwd = currencies.TO_EXCHANGE
    assert len(set(fwd.values())) == len(fwd)
    for code, asset in fwd.items():
        assert from_exchange_code(asset) == code

def test_precision_table_and_default():
    assert precision("BTC") == 8
    assert precision("USD") == 2
    assert precision("UNLISTED") == currencies.DEFAULT_PRECISION == 2

def test_registration_requires_precision_and_mapping():
    assert currencies.is_registered("ETH")
    assert not currencies.is_registered("DKK")
