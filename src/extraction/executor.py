"""
Authenticated Request Executor
==============================

Wraps a single outbound HTTP call with the current credentials. When the
service answers 401 the executor asks the credential store for exactly one
refresh and, if it succeeds, repeats the call once with the new token. When
the refresh fails the credentials are cleared and `SessionExpiredError` is
raised; the 401 response itself never reaches the caller.

Every other status code is returned untouched, and transport errors from
``requests`` propagate as-is without being retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping, Protocol

import requests
import structlog

from common.config import Settings

from .auth import Credentials
from .errors import SessionExpiredError

log = structlog.get_logger(__name__)


class CredentialSource(Protocol):
    """The three credential operations the executor relies on."""

    def read(self) -> Credentials: ...

    def refresh(self, rejected: Credentials | None = None) -> bool: ...

    def clear(self) -> None: ...


@dataclass(frozen=True)
class RequestDescriptor:
    """
    One outbound request, as supplied by the caller.

    Bodies must be replayable because a request may be sent twice: pass
    ``files`` as ``(name, bytes, content_type)`` tuples rather than open
    file objects.
    """

    url: str
    method: str = "GET"
    headers: Mapping[str, str] | None = None
    data: Any = None
    files: Any = None
    json: Any = None


class AuthenticatedRequestExecutor:
    """Sends requests with the current ``Authorization`` header and one refresh-and-retry."""

    def __init__(
        self,
        credentials: CredentialSource,
        settings: Settings,
        session: requests.Session | None = None,
    ):
        self.credentials = credentials
        self.settings = settings
        self._session = session or requests.Session()

    def execute(self, descriptor: RequestDescriptor) -> requests.Response:
        """
        Send ``descriptor`` and return the response.

        Raises:
            SessionExpiredError: the first attempt was unauthorized and the
                token could not be refreshed.
        """
        sent_with = self.credentials.read()
        response = self._send(descriptor, sent_with)
        if response.status_code != HTTPStatus.UNAUTHORIZED:
            return response

        log.info(
            "Request unauthorized; refreshing token",
            method=descriptor.method,
            url=descriptor.url,
        )
        if not self.credentials.refresh(sent_with):
            self.credentials.clear()
            log.warning("Session expired", method=descriptor.method, url=descriptor.url)
            raise SessionExpiredError()

        # Second and final attempt, whatever its outcome.
        return self._send(descriptor, self.credentials.read())

    def close(self) -> None:
        self._session.close()

    def _send(
        self, descriptor: RequestDescriptor, credentials: Credentials
    ) -> requests.Response:
        headers = dict(descriptor.headers or {})
        authorization = credentials.authorization
        if authorization:
            headers["Authorization"] = authorization

        return self._session.request(
            descriptor.method,
            descriptor.url,
            # An empty header set is omitted rather than sent as {}
            headers=headers or None,
            data=descriptor.data,
            files=descriptor.files,
            json=descriptor.json,
            timeout=self.settings.REQUEST_TIMEOUT,
        )
