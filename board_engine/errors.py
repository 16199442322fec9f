"""
Board Coordinator — Generation Error Taxonomy & Classifier

Every failure the content provider can produce ends up as one of:

  TransientProviderError  — network, 5xx, 429. Retried.
  ValidationError         — 4xx except 429, malformed outbound request. Terminal.
  MalformedResponseError  — payload could not be coerced. Retried within the
                            same budget, terminal once the budget is spent.
  OfflineError            — no connectivity. Terminal, raised before any attempt.
  ProviderUnavailableError — transient failures exhausted the retry budget.

All terminal kinds get the same controller reaction (rollback + FAILED).
The codes exist for messaging and observability only.
"""

from __future__ import annotations

import enum


class ErrorClass(str, enum.Enum):
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


class GenerationError(Exception):
    """Base for every provider-side failure surfaced to the controller."""

    code = "ERR_UNKNOWN"

    def __init__(self, message: str, correlation_id: str = "unknown", code: str | None = None):
        super().__init__(message)
        self.message = message
        self.correlation_id = correlation_id or "unknown"
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "correlation_id": self.correlation_id,
            "type": type(self).__name__,
        }


class TransientProviderError(GenerationError):
    code = "ERR_PROVIDER_DOWN"

    def __init__(self, message: str, status: int | None = None, correlation_id: str = "unknown"):
        super().__init__(message, correlation_id)
        self.status = status


class ValidationError(GenerationError):
    code = "ERR_VALIDATION"

    def __init__(self, message: str, status: int | None = None, correlation_id: str = "unknown"):
        super().__init__(message, correlation_id)
        self.status = status


class MalformedResponseError(GenerationError):
    code = "ERR_AI_GENERATION"

    def __init__(self, message: str, raw_response: str = "", correlation_id: str = "unknown"):
        super().__init__(message, correlation_id)
        self.raw_response = raw_response


class OfflineError(GenerationError):
    code = "ERR_NETWORK"


class ProviderUnavailableError(GenerationError):
    code = "ERR_AI_GENERATION"


class StructureError(ValueError):
    """Raised when a write would change the document's locked cardinalities."""


# ═══════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════

_AUTH_MARKERS = ("401", "403", "unauthorized", "forbidden")


def status_of(error: BaseException) -> int | None:
    """Best-effort HTTP status extraction from a provider exception."""
    for attr in ("status", "status_code", "code", "http_status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and 100 <= value < 600:
            return value
    response = getattr(error, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value
    return None


def classify_error(error: BaseException) -> ErrorClass:
    """Label a provider failure as retryable-transient or terminal."""
    if isinstance(error, (ValidationError, OfflineError, ProviderUnavailableError)):
        return ErrorClass.TERMINAL
    if isinstance(error, (TransientProviderError, MalformedResponseError)):
        return ErrorClass.RETRYABLE

    status = status_of(error)
    if status is not None:
        if 400 <= status < 500 and status != 429:
            return ErrorClass.TERMINAL
        return ErrorClass.RETRYABLE

    err_str = str(error).lower()
    if any(marker in err_str for marker in _AUTH_MARKERS):
        return ErrorClass.TERMINAL
    return ErrorClass.RETRYABLE
