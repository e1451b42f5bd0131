"""
Response Schemas
================

This module describes every JSON payload the extraction service returns and
provides the helpers used at each trust boundary where a decoded body crosses
into typed code:

- `validate_response` turns a raw body into a typed model or raises a
  `ResponseValidationError` listing every offending field.
- `extract_error_message` pulls a human-readable message out of an arbitrary
  error payload and never raises; `read_error_message` does the same for an
  HTTP response whose body may not even be JSON.
- `parse_job_status` decodes a job status body into the pending/completed
  tagged union.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import ResponseValidationError, UnexpectedResponseError

DEFAULT_ERROR_MESSAGE = "An error occurred"

ModelT = TypeVar("ModelT", bound=BaseModel)


# --- Errors ---


class ApiErrorPayload(BaseModel):
    message: str | None = None
    detail: str | None = None


# --- Auth ---


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    name: str
    user_id: str


class RegisterResponse(BaseModel):
    message: str


class RefreshTokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str


# --- Job queue ---


class QueuedJobResponse(BaseModel):
    message: str
    message_id: str
    status: Literal["queued", "pending"]


class JobPending(BaseModel):
    """A job the service is still working on."""

    kind: ClassVar[Literal["pending"]] = "pending"

    status: Literal["pending"]


class JobCompleted(BaseModel):
    """A finished job carrying the extracted content."""

    kind: ClassVar[Literal["completed"]] = "completed"

    content: str
    description: str
    request_id: str

    def to_result(self) -> ExtractionResult:
        return ExtractionResult(
            content=self.content,
            description=self.description,
            request_id=self.request_id,
        )


JobStatus = JobPending | JobCompleted


@dataclass(frozen=True)
class ExtractionResult:
    """
    The value handed back to callers once a job completes.

    ``request_id`` is an opaque handle: it is only ever passed back to the
    service verbatim (e.g. for a follow-up question on the same PDF).
    """

    content: str
    description: str
    request_id: str


# --- Helpers ---


def _format_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}"
        for item in error.errors()
    ]


def validate_response(schema: type[ModelT], data: Any, context: str) -> ModelT:
    """
    Validate a decoded response body against ``schema``.

    Args:
        schema: The pydantic model describing the expected payload.
        data: The decoded JSON body.
        context: A short label (e.g. ``"login"``) included in the error message.

    Raises:
        ResponseValidationError: naming ``context`` and every offending field path.
    """
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise ResponseValidationError(context, _format_errors(e)) from None


def extract_error_message(data: Any) -> str:
    """
    Return the most useful message from an error payload.

    Priority is ``detail``, then ``message``, then a generic fallback. Any
    input (``None``, lists, malformed dicts) is accepted.
    """
    try:
        payload = ApiErrorPayload.model_validate(data)
    except ValidationError:
        return DEFAULT_ERROR_MESSAGE
    return payload.detail or payload.message or DEFAULT_ERROR_MESSAGE


def decode_json_body(response: Any, context: str) -> Any:
    """
    Decode the JSON body of a successful response.

    Raises:
        ResponseValidationError: the body is not JSON at all.
    """
    try:
        return response.json()
    except ValueError:
        content_type = response.headers.get("Content-Type") or "unknown content type"
        raise ResponseValidationError(
            context, [f"body: expected JSON, got {content_type}"]
        ) from None


def read_error_message(response: Any, fallback: str) -> str:
    """
    Decode the JSON error body of ``response`` and extract its message.

    A body that is not JSON is treated as ``{"message": fallback}``.
    """
    try:
        data = response.json()
    except ValueError:
        data = {"message": fallback}
    return extract_error_message(data)


def parse_job_status(data: Any) -> JobStatus:
    """
    Decode a job status body into `JobPending` or `JobCompleted`.

    Pending is tried first. A body matching neither shape is a protocol
    error, not a third state.
    """
    for model in (JobPending, JobCompleted):
        try:
            return model.model_validate(data)
        except ValidationError:
            continue
    raise UnexpectedResponseError()
