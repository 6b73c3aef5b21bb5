from __future__ import annotations
import json, time
from typing import Any, Dict, Optional

import requests
from loguru import logger

from kraken_adapter.core.config import KrakenConfig
from kraken_adapter.core.errors import ExchangeServerError, ModuleError
from kraken_adapter.execution.signer import sign

PUBLIC_METHODS = frozenset({"Time", "Assets", "AssetPairs", "Ticker", "Depth", "Trades", "Spread", "OHLC"})
PRIVATE_METHODS = frozenset({
    "Balance", "TradeBalance", "OpenOrders", "ClosedOrders", "QueryOrders", "TradesHistory",
    "QueryTrades", "OpenPositions", "Ledgers", "QueryLedgers", "TradeVolume", "AddOrder",
    "CancelOrder", "DepositMethods", "DepositAddresses", "DepositStatus", "WithdrawInfo",
    "Withdraw", "WithdrawStatus", "WithdrawCancel",
})
_SECRET_HEADERS = ("API-Key", "API-Sign")


def visibility(action: str) -> str:
    return "public" if action in PUBLIC_METHODS else "private"


class KrakenTransport:
    """Single-shot REST calls with Kraken's {error, result} envelope unwrapped.

    No retries: every failure is raised to the caller as ExchangeServerError
    (or ModuleError when credentials are missing for a private call).
    """

    def __init__(self, cfg: KrakenConfig, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.session = session or requests.Session()
        self._last_nonce = 0

    def _path(self, action: str) -> str:
        return f"/{self.cfg.api_version}/{visibility(action)}/{action}"

    def _nonce(self) -> int:
        n = int(time.time() * 1000) * 1000
        if n <= self._last_nonce:
            n = self._last_nonce + 1
        self._last_nonce = n
        return n

    def get(self, action: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        opts = {
            "method": "GET",
            "url": self.cfg.host.rstrip("/") + self._path(action),
            "params": dict(params or {}),
            "headers": {"User-Agent": self.cfg.user_agent},
            "timeout": self.cfg.timeout_seconds,
        }
        return self._send(opts)

    def post(self, action: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        path = self._path(action)
        form: Dict[str, Any] = dict(params or {})
        headers = {"User-Agent": self.cfg.user_agent}
        if visibility(action) == "private":
            if not self.cfg.key or not self.cfg.secret:
                raise ModuleError("Must provide key and secret to make this API request.")
            form["nonce"] = self._nonce()
            if self.cfg.otp:
                form["otp"] = self.cfg.otp
            headers["API-Key"] = self.cfg.key
            headers["API-Sign"] = sign(path, form, self.cfg.secret)
        opts = {
            "method": "POST",
            "url": self.cfg.host.rstrip("/") + path,
            "data": form,
            "headers": headers,
            "timeout": self.cfg.timeout_seconds,
        }
        return self._send(opts)

    def _send(self, opts: Dict[str, Any]) -> Dict[str, Any]:
        loggable = dict(opts, headers={k: v for k, v in opts["headers"].items() if k not in _SECRET_HEADERS})
        logger.debug(f"Kraken API request: {loggable}")
        try:
            resp = self.session.request(**opts)
        except requests.RequestException as e:
            raise ExchangeServerError("An error occurred while performing the request.", cause=e) from e

        body = getattr(resp, "text", None)
        if not body:
            raise ExchangeServerError("Response body is empty/undefined.")
        try:
            data = json.loads(body)
        except (TypeError, ValueError) as e:
            raise ExchangeServerError("Could not understand response from exchange server.",
                                      cause=e, response_body=body) from e
        if not isinstance(data, dict):
            raise ExchangeServerError("Could not understand response from exchange server.", response_body=body)
        logger.debug(f"Kraken API response: {body}")

        errors = data.get("error") or []
        if errors:
            raise ExchangeServerError("The exchange service responded with an error.",
                                      cause=RuntimeError(json.dumps(errors)),
                                      error_messages=list(errors), response_body=body)
        result = data.get("result")
        if not result:
            raise ExchangeServerError("Response from kraken is empty.", response_body=body)
        return result
