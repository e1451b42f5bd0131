"""
Extraction API Client
=====================

This module provides the high-level client for the media extraction service.
Each operation uploads a file (or a follow-up question) as multipart form
data, receives a queued job descriptor, and waits for the job to finish using
the `JobPoller`.

All requests go through the `AuthenticatedRequestExecutor`, so an expired
access token is refreshed transparently and a dead session surfaces as
`SessionExpiredError`.
"""

from __future__ import annotations

import os
from pathlib import Path

import requests
import structlog

from common.config import Settings

from .auth import CredentialStore
from .errors import ApiResponseError
from .executor import AuthenticatedRequestExecutor, RequestDescriptor
from .poller import JobPoller
from .schemas import (
    ExtractionResult,
    QueuedJobResponse,
    decode_json_body,
    read_error_message,
    validate_response,
)

log = structlog.get_logger(__name__)

AUDIO_MIME_TYPES = {
    "m4a": "audio/mp4",
    "mp4": "audio/mp4",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "webm": "audio/webm",
    "ogg": "audio/ogg",
    "aac": "audio/aac",
    "3gp": "audio/3gpp",
    "flac": "audio/flac",
}


def _file_name(path: str | os.PathLike, default: str) -> str:
    return Path(path).name or default


def _extension(filename: str) -> str | None:
    suffix = Path(filename).suffix
    return suffix[1:] if len(suffix) > 1 else None


def image_mime_type(filename: str) -> str:
    """``image/<ext>`` from the file extension, ``image/jpeg`` without one."""
    ext = _extension(filename)
    return f"image/{ext}" if ext else "image/jpeg"


def audio_mime_type(filename: str) -> str:
    ext = (_extension(filename) or "m4a").lower()
    return AUDIO_MIME_TYPES.get(ext, "audio/mp4")


class ExtractionClient:
    """A client for submitting media to the extraction service."""

    def __init__(
        self,
        executor: AuthenticatedRequestExecutor,
        poller: JobPoller,
        settings: Settings,
        credentials: CredentialStore | None = None,
    ):
        self.executor = executor
        self.poller = poller
        self.settings = settings
        # The store behind the executor, for login and logout.
        self.credentials = credentials

    @classmethod
    def from_settings(
        cls, settings: Settings, session: requests.Session | None = None
    ) -> "ExtractionClient":
        """Build the credential store, executor and poller around one HTTP session."""
        session = session or requests.Session()
        credentials = CredentialStore(settings, session=session)
        executor = AuthenticatedRequestExecutor(credentials, settings, session=session)
        return cls(
            executor, JobPoller(executor, settings), settings, credentials=credentials
        )

    def close(self) -> None:
        self.executor.close()

    def __enter__(self) -> "ExtractionClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _submit_job(
        self,
        path: str,
        form: dict[str, tuple],
        *,
        context: str,
        failure_message: str,
    ) -> ExtractionResult:
        """
        Post a multipart job, validate the queued descriptor and wait for the result.

        ``form`` maps part names to ``(filename, content[, content_type])``
        tuples; plain text fields use ``None`` as the filename.
        """
        response = self.executor.execute(
            RequestDescriptor(
                url=f"{self.settings.API_URL}{path}",
                method="POST",
                files=form,
            )
        )
        if not response.ok:
            message = read_error_message(response, failure_message)
            log.warning(
                "Job submission failed",
                context=context,
                status_code=response.status_code,
                error=message,
            )
            raise ApiResponseError(message, response.status_code)

        queued = validate_response(
            QueuedJobResponse, decode_json_body(response, context), context
        )
        log.info("Job queued", context=context, message_id=queued.message_id)
        return self.poller.completion(queued.message_id)

    def extract_text_from_image(self, image_path: str | os.PathLike) -> str:
        """
        Upload an image and return the text extracted from it.
        """
        filename = _file_name(image_path, "photo.jpg")
        form = {
            "image": (filename, Path(image_path).read_bytes(), image_mime_type(filename))
        }
        result = self._submit_job(
            "/convert/image/text",
            form,
            context="image extraction",
            failure_message="Text extraction failed",
        )
        return result.content

    def extract_text_from_pdf(
        self,
        query: str,
        model: str,
        *,
        pdf_path: str | os.PathLike | None = None,
        pdf_name: str | None = None,
        request_id: str | None = None,
        openai_pass: str | None = None,
    ) -> ExtractionResult:
        """
        Ask a question about a PDF.

        Either upload a new PDF (``pdf_path``, optionally renamed with
        ``pdf_name``) or ask a follow-up about a previous upload by passing the
        ``request_id`` of its result. The request id is sent back verbatim.

        Raises:
            ValueError: neither a PDF nor a request id was given.
        """
        if request_id:
            form = {"past_request_id": (None, request_id)}
        elif pdf_path:
            filename = pdf_name or _file_name(pdf_path, "document.pdf")
            form = {
                "pdf": (filename, Path(pdf_path).read_bytes(), "application/pdf")
            }
        else:
            raise ValueError("Either pdf_path/pdf_name or request_id is required")

        form["query"] = (None, query)
        form["model"] = (None, model)
        if model == "openai" and openai_pass:
            form["openai_pass"] = (None, openai_pass)

        return self._submit_job(
            "/pdf/get/response",
            form,
            context="PDF extraction",
            failure_message="PDF extraction failed",
        )

    def transcribe_audio(self, audio_path: str | os.PathLike) -> str:
        """
        Upload an audio recording and return its transcription.
        """
        filename = _file_name(audio_path, "audio.m4a")
        form = {
            "file": (filename, Path(audio_path).read_bytes(), audio_mime_type(filename))
        }
        result = self._submit_job(
            "/convert/sound/text",
            form,
            context="audio transcription",
            failure_message="Audio transcription failed",
        )
        return result.content
