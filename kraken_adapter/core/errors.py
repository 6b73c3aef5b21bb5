from __future__ import annotations
from typing import Any, List, Optional

VALIDATION_ERROR = "validation_error"
EXCHANGE_SERVER_ERROR = "exchange_server_error"
MODULE_ERROR = "internal_module_error"


class KrakenAdapterError(Exception):
    """Base error. `code` is machine readable, `cause` holds the raw origin if any."""
    code = MODULE_ERROR

    def __init__(self, message: str, cause: Any = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ValidationError(KrakenAdapterError):
    """Bad caller input; raised before any request goes out."""
    code = VALIDATION_ERROR


class ExchangeServerError(KrakenAdapterError):
    code = EXCHANGE_SERVER_ERROR

    def __init__(self, message: str, cause: Any = None,
                 error_messages: Optional[List[str]] = None,
                 response_body: Optional[str] = None):
        super().__init__(message, cause)
        self.error_messages = error_messages
        self.response_body = response_body


class ModuleError(KrakenAdapterError):
    """Adapter-side consistency failure (missing pair key, bad pair string, no credentials)."""
    code = MODULE_ERROR
