# kraken_adapter/core/config.py
import os
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Dict, Optional, Any

from kraken_adapter.registry.currencies import is_registered

DEFAULT_HOST = "https://api.kraken.com"
DEFAULT_SUPPORTED_CURRENCIES = ["ETH", "BTC", "BSV", "EUR", "USD"]

# env var -> kraken config key
ENV_OVERRIDES = {
    "KRAKEN_API_KEY": "key",
    "KRAKEN_API_SECRET": "secret",
    "KRAKEN_OTP": "otp",
    "KRAKEN_HOST": "host",
}

class KrakenConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = DEFAULT_HOST
    api_version: int = 0
    key: Optional[str] = None
    secret: Optional[str] = None
    otp: Optional[str] = None
    timeout_seconds: float = Field(120.0, gt=0)
    user_agent: str = "Kraken Python API Client"
    supported_currencies: List[str] = Field(default_factory=lambda: list(DEFAULT_SUPPORTED_CURRENCIES))

    @field_validator("supported_currencies")
    @classmethod
    def _known_currencies(cls, v: List[str]) -> List[str]:
        codes = [str(c).upper() for c in v]
        unknown = [c for c in codes if not is_registered(c)]
        if unknown:
            raise ValueError(f"unsupported currency codes: {', '.join(unknown)}")
        return codes

class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = "logs/kraken_adapter.log"
    rotation: str = "10 MB"
    retention: str = "14 days"

class RootConfig(BaseModel):
    kraken: KrakenConfig = Field(default_factory=KrakenConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

def apply_env_overrides(raw: Dict[str, Any] | None, environ: Dict[str, str] | None = None) -> Dict[str, Any]:
    """Overlay credentials/host from the environment onto a raw config mapping."""
    env = os.environ if environ is None else environ
    cfg = dict(raw or {})
    kraken = dict(cfg.get("kraken") or {})
    for var, key in ENV_OVERRIDES.items():
        val = env.get(var, "").strip()
        if val:
            kraken[key] = val
    cfg["kraken"] = kraken
    return cfg
