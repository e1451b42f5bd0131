"""
Extraction service client package.

This package contains:

- the credential store (login, refresh, logout)
- the authenticated request executor (one refresh-and-retry on 401)
- the job poller that waits for queued extraction jobs
- the high-level client for image, PDF and audio extraction
- the response schemas and error types shared by all of the above
"""

from .auth import Credentials, CredentialStore, User
from .client import ExtractionClient
from .errors import (
    ApiResponseError,
    ExtractionError,
    PollingTimeoutError,
    ResponseValidationError,
    SessionExpiredError,
    UnexpectedResponseError,
)
from .executor import AuthenticatedRequestExecutor, RequestDescriptor
from .poller import JobPoller
from .schemas import ExtractionResult, extract_error_message, validate_response

__all__ = [
    "ApiResponseError",
    "AuthenticatedRequestExecutor",
    "CredentialStore",
    "Credentials",
    "ExtractionClient",
    "ExtractionError",
    "ExtractionResult",
    "JobPoller",
    "PollingTimeoutError",
    "RequestDescriptor",
    "ResponseValidationError",
    "SessionExpiredError",
    "UnexpectedResponseError",
    "User",
    "extract_error_message",
    "validate_response",
]
