"""
Errors
======
Exception hierarchy surfaced to callers of the analyzer.

Every failure reaches the caller as a single VibeFixError subclass whose
str() is a human-readable message. Diagnostic detail (attempt counts, which
failure class triggered a retry or fallback) goes to the log only.

    VibeFixError
    ├── ConfigurationError      - credential missing, call never attempted
    ├── MediaReadError          - recording could not be read or is not a video
    ├── ServiceError            - inference endpoint failed
    │   ├── TransientServiceError   (quota / server fault / network) → retried
    │   └── PermanentServiceError   (400 / 403 / 404) → never retried
    ├── EmptyResponseError      - reply had no text
    ├── ResponseDecodeError     - reply text was not a valid report
    └── SessionBusyError        - a call is already in flight for the session
"""
from typing import Optional

from vibefix.utils.failure_classes import (
    QUOTA_EXCEEDED,
    UNKNOWN,
    classify_failure,
    describe_failure,
    is_transient,
)


class VibeFixError(Exception):
    """Base class for all errors raised by vibefix."""

    @property
    def message(self) -> str:
        return str(self)


class ConfigurationError(VibeFixError):
    pass


class MediaReadError(VibeFixError):
    pass


class ServiceError(VibeFixError):
    """
    Failure reported by the inference endpoint.

    Parameters
    ----------
    message : str
        Human-readable message (already annotated for permanent failures).
    status_code : int or None
        HTTP status, or None for transport-level failures.
    failure_class : str
        One of the constants in vibefix.utils.failure_classes.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        failure_class: str = UNKNOWN,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.failure_class = failure_class

    @property
    def is_quota(self) -> bool:
        return self.failure_class == QUOTA_EXCEEDED


class TransientServiceError(ServiceError):
    pass


class PermanentServiceError(ServiceError):
    pass


class EmptyResponseError(VibeFixError):
    pass


class ResponseDecodeError(VibeFixError):
    pass


class SessionBusyError(VibeFixError):
    pass


def build_service_error(status_code: Optional[int], message: str) -> ServiceError:
    """
    Classify a failed call and wrap it in the matching ServiceError subclass.

    Permanent failures carry a likely-cause annotation in their message.
    """
    failure_class = classify_failure(status_code, message)
    if is_transient(failure_class):
        return TransientServiceError(message, status_code, failure_class)
    return PermanentServiceError(
        describe_failure(failure_class, message), status_code, failure_class
    )
