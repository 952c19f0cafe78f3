"""Heuristic classification of provider failures.

Upstream providers do not share an error taxonomy, so failures are sorted by
looking at HTTP status attributes and at marker substrings in the error text.
This is approximate: a provider rewording its errors can move a failure into
a different class. Rate-limit markers are checked first so that quota-like
wording never triggers a model fallback.
"""

from enum import Enum

RATE_LIMIT_MARKERS: tuple[str, ...] = (
    "quota",
    "limit",
    "429",
    "too many requests",
    "resource_exhausted",
    "resource exhausted",
)

CREDENTIAL_MARKERS: tuple[str, ...] = (
    "api key",
    "api_key",
    "apikey",
    "unauthorized",
    "authentication",
    "invalid x-api-key",
    "permission denied",
)

AVAILABILITY_MARKERS: tuple[str, ...] = (
    "not found",
    "not_found",
    "not supported",
    "unsupported",
    "decommissioned",
    "deprecated",
    "does not exist",
    "no longer available",
    "no longer supported",
    "not available",
    "unavailable",
    "no endpoints found",
    "invalid model",
    "unknown model",
)

_RATE_LIMIT_STATUS_CODES = frozenset({429})
_CREDENTIAL_STATUS_CODES = frozenset({401, 403})


class ErrorKind(str, Enum):
    CREDENTIAL_MISSING = "credential_missing"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    UNKNOWN = "unknown"


def _status_code(error: BaseException) -> int | None:
    status_code = getattr(error, "status_code", None)
    if status_code is None:
        status_code = getattr(error, "code", None)
    return status_code if isinstance(status_code, int) else None


def error_message(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


def classify_error(error: BaseException) -> ErrorKind:
    status_code = _status_code(error)
    text = error_message(error).lower()

    if status_code in _RATE_LIMIT_STATUS_CODES or any(m in text for m in RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMITED
    if status_code in _CREDENTIAL_STATUS_CODES or any(m in text for m in CREDENTIAL_MARKERS):
        return ErrorKind.CREDENTIAL_MISSING
    if any(m in text for m in AVAILABILITY_MARKERS):
        return ErrorKind.MODEL_UNAVAILABLE
    return ErrorKind.UNKNOWN


def is_availability_error(error: BaseException) -> bool:
    """True when the failure says the model id itself is unusable."""
    return classify_error(error) is ErrorKind.MODEL_UNAVAILABLE
