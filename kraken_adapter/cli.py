# kraken_adapter/cli.py: command line front-end for the Kraken REST adapter
from __future__ import annotations
import json, sys
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Any

import click, yaml
from dotenv import load_dotenv
from loguru import logger

from kraken_adapter.client import KrakenClient
from kraken_adapter.core.config import RootConfig, apply_env_overrides
from kraken_adapter.core.errors import KrakenAdapterError

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"

# --------------------------------------------------------------------------------------
# Config / logging
# --------------------------------------------------------------------------------------

def load_config(file: str = "configs/config.yaml") -> Dict[str, Any]:
    """Load YAML config, overlay KRAKEN_* env vars and validate against the Pydantic schema."""
    raw_config: Dict[str, Any] = {}
    if Path(file).exists():
        with open(file, "r") as f:
            raw_config = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Config file {file} not found; using defaults.")

    try:
        validated_config = RootConfig.model_validate(apply_env_overrides(raw_config))
        logger.info("Configuration validated successfully.")
        return validated_config.model_dump()
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise SystemExit("Exiting due to invalid configuration.") from e

def _configure_logging(log_cfg: Dict[str, Any]) -> None:
    level = str(log_cfg.get("level", "INFO")).upper()
    logger.remove()
    if log_cfg.get("file"):
        Path(log_cfg["file"]).parent.mkdir(exist_ok=True, parents=True)
        logger.add(
            log_cfg["file"],
            level=level,
            rotation=log_cfg.get("rotation", "10 MB"),
            retention=log_cfg.get("retention", "14 days"),
            enqueue=True,
            format="{time} {level} {message}",
        )
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)

def _client() -> KrakenClient:
    load_dotenv()
    cfg = load_config()
    _configure_logging(cfg["logging"])
    return KrakenClient(RootConfig.model_validate(cfg).kraken)

def _emit(payload: Any) -> None:
    if isinstance(payload, list):
        payload = [asdict(p) for p in payload]
    elif hasattr(payload, "__dataclass_fields__"):
        payload = asdict(payload)
    click.echo(json.dumps(payload, indent=2, default=str))

def _run(fn, *args) -> None:
    try:
        _emit(fn(*args))
    except KrakenAdapterError as e:
        logger.error(f"{e.code}: {e.message}")
        raise SystemExit(1) from e

# --------------------------------------------------------------------------------------
# CLI Root
# --------------------------------------------------------------------------------------

@click.group()
def cli() -> None:
    """Root CLI group."""
    pass

@cli.command()
def check() -> None:
    """Validate configuration and report which credentials are present."""
    load_dotenv()
    try:
        cfg = load_config()
    except SystemExit:
        click.echo("configuration invalid")
        raise SystemExit(1)
    kraken = cfg["kraken"]
    click.echo(f"host: {kraken['host']}")
    click.echo(f"supported currencies: {', '.join(kraken['supported_currencies'])}")
    click.echo(f"credentials: {'present' if kraken.get('key') and kraken.get('secret') else 'missing'}")
    click.echo("environment ok")

@cli.command()
@click.argument("base")
@click.argument("quote")
def ticker(base: str, quote: str) -> None:
    """Print the 24h ticker for BASE/QUOTE."""
    _run(_client().get_ticker, base, quote)

@cli.command()
@click.argument("base")
@click.argument("quote")
@click.option("--depth", default=10, show_default=True, help="Entries per side to print.")
def orderbook(base: str, quote: str, depth: int) -> None:
    """Print the top of the order book for BASE/QUOTE."""
    client = _client()
    try:
        book = client.get_order_book(base, quote)
    except KrakenAdapterError as e:
        logger.error(f"{e.code}: {e.message}")
        raise SystemExit(1) from e
    out = asdict(book)
    out["bids"], out["asks"] = out["bids"][:depth], out["asks"][:depth]
    _emit(out)

@cli.command()
def balance() -> None:
    """Print total and available balances in subunits."""
    _run(_client().get_balance)

@cli.command()
def transactions() -> None:
    """Print all deposits and withdrawals, oldest first."""
    _run(_client().list_transactions)

@cli.command()
@click.option("--since", default=None, help="ISO-8601 start of the period (default: epoch).")
def trades(since: str | None) -> None:
    """Print trades executed since --since."""
    latest = {"create_time": since} if since else None
    _run(_client().list_trades, latest)

@cli.command(name="place-trade")
@click.argument("amount", type=int)
@click.argument("price", type=float)
@click.argument("base")
@click.argument("quote")
def place_trade(amount: int, price: float, base: str, quote: str) -> None:
    """Place a limit order. AMOUNT is signed subunits of BASE (negative sells; pass it after --)."""
    _run(_client().place_trade, amount, price, base, quote)

if __name__ == "__main__":
    cli()
