"""
Extraction Client Errors
========================

Every failure raised by the extraction client derives from `ExtractionError`.
Transport failures are the exception: they surface as the original
``requests.RequestException`` and are never wrapped.
"""

from __future__ import annotations

SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."
UNEXPECTED_JOB_RESPONSE_MESSAGE = "Unexpected response format from job status API"


class ExtractionError(Exception):
    """Base class for all extraction client errors."""


class SessionExpiredError(ExtractionError):
    """
    A 401 could not be resolved by a token refresh.

    Credentials have already been cleared when this is raised; the user
    must log in again.
    """

    def __init__(self, message: str = SESSION_EXPIRED_MESSAGE):
        super().__init__(message)


class ApiResponseError(ExtractionError):
    """The service answered with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UnexpectedResponseError(ExtractionError):
    """A job status payload was neither pending nor completed."""

    def __init__(self, message: str = UNEXPECTED_JOB_RESPONSE_MESSAGE):
        super().__init__(message)


class ResponseValidationError(ExtractionError):
    """A decoded response body did not match its expected schema."""

    def __init__(self, context: str, errors: list[str]):
        super().__init__(f"Invalid {context} response: {', '.join(errors)}")
        self.context = context
        self.errors = errors


class PollingTimeoutError(ExtractionError):
    """A job stayed pending for the maximum number of status checks."""

    def __init__(self, message_id: str, attempts: int):
        super().__init__(
            f"Job {message_id} still pending after {attempts} status checks"
        )
        self.message_id = message_id
        self.attempts = attempts
