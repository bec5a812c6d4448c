"""
Failure Classes
===============
Standardised constants for why a call to the inference endpoint failed.

Used by ServiceError.failure_class so the retry loop and the model router can
make decisions without parsing error text a second time.
"""
from typing import Optional


# ---------------------------------------------------------------------------
# Failure Class Constants
# ---------------------------------------------------------------------------
QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
SERVER_ERROR = "SERVER_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
BAD_REQUEST = "BAD_REQUEST"
PERMISSION_DENIED = "PERMISSION_DENIED"
NOT_FOUND = "NOT_FOUND"
UNKNOWN = "UNKNOWN"

TRANSIENT_FAILURES = frozenset({
    QUOTA_EXCEEDED,
    SERVER_ERROR,
    NETWORK_ERROR,
})

_QUOTA_KEYWORDS = ("quota", "resource_exhausted", "resource exhausted", "rate limit")


# ---------------------------------------------------------------------------
# Likely causes appended to permanent failure messages
# ---------------------------------------------------------------------------
LIKELY_CAUSES = {
    BAD_REQUEST: (
        "The request was rejected. The recording may be in an unsupported "
        "format or too large to send inline."
    ),
    PERMISSION_DENIED: (
        "Permission denied. Check that the API key is valid and has access "
        "to the selected model."
    ),
    NOT_FOUND: (
        "Model not found. The selected model identifier may be wrong or not "
        "available to this API key."
    ),
}


def classify_failure(status_code: Optional[int], message: str = "") -> str:
    """
    Map an HTTP status and error text to a failure class.

    Quota is checked first so that a quota message carried on an unusual
    status is still treated as quota exhaustion.

    Parameters
    ----------
    status_code : int or None
        HTTP status of the failed call, None for transport failures.
    message : str
        Error text returned by the provider.

    Returns
    -------
    str
        One of the failure class constants.
    """
    lowered = (message or "").lower()
    if status_code == 429 or any(kw in lowered for kw in _QUOTA_KEYWORDS):
        return QUOTA_EXCEEDED
    if status_code is None:
        return NETWORK_ERROR
    if 500 <= status_code <= 599:
        return SERVER_ERROR
    if status_code == 400:
        return BAD_REQUEST
    if status_code in (401, 403):
        return PERMISSION_DENIED
    if status_code == 404:
        return NOT_FOUND
    return UNKNOWN


def is_transient(failure_class: str) -> bool:
    """Return True when a retry shortly after is likely to succeed."""
    return failure_class in TRANSIENT_FAILURES


def describe_failure(failure_class: str, message: str) -> str:
    """Annotate a provider message with the likely cause, when one is known."""
    cause = LIKELY_CAUSES.get(failure_class)
    if cause:
        return f"{message} ({cause})" if message else cause
    return message
