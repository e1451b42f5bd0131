"""
Credential Store
================

This module owns the process-wide authentication state of the extraction
client: the access token, its type, and the refresh token. It is the only
shared mutable resource in the client and exposes three core operations to
the request pipeline:

- `read` returns an immutable `Credentials` snapshot;
- `refresh` exchanges the refresh token for a new token pair, replacing all
  three fields at once on success and clearing them on failure;
- `clear` drops all credentials.

Concurrent callers that hit a 401 at the same time share a single in-flight
refresh instead of each spending the refresh token. The store also performs
the login, registration and logout calls that create and destroy credentials.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass

import requests
import structlog

from common.config import Settings

from .errors import ApiResponseError, ResponseValidationError
from .schemas import (
    LoginResponse,
    RefreshTokenResponse,
    RegisterResponse,
    decode_json_body,
    read_error_message,
    validate_response,
)

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    access_token: str | None = None
    token_type: str | None = None
    refresh_token: str | None = None

    @property
    def authorization(self) -> str | None:
        """The ``Authorization`` header value, or None when not logged in."""
        if self.access_token and self.token_type:
            return f"{self.token_type} {self.access_token}"
        return None


@dataclass(frozen=True)
class User:
    id: str | None
    name: str
    email: str


EMPTY_CREDENTIALS = Credentials()


class CredentialStore:
    """Holds the current credentials and performs the auth API calls."""

    def __init__(self, settings: Settings, session: requests.Session | None = None):
        self.settings = settings
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._credentials = EMPTY_CREDENTIALS
        self._user: User | None = None
        self._refresh_in_flight: Future[bool] | None = None

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._credentials.authorization is not None

    def read(self) -> Credentials:
        """Return the current credentials snapshot."""
        return self._credentials

    def set_credentials(self, credentials: Credentials, user: User | None = None) -> None:
        """Replace the stored credentials (and optionally the user) in one step."""
        if bool(credentials.access_token) != bool(credentials.token_type):
            raise ValueError("access_token and token_type must be set together")
        with self._lock:
            self._credentials = credentials
            if user is not None:
                self._user = user

    def clear(self) -> None:
        """Drop all credentials and the current user. Safe to call repeatedly."""
        with self._lock:
            self._credentials = EMPTY_CREDENTIALS
            self._user = None

    def refresh(self, rejected: Credentials | None = None) -> bool:
        """
        Exchange the refresh token for a new token pair.

        Returns True once the new credentials are stored. Returns False after
        clearing the store when the refresh could not be completed. If another
        thread is already refreshing, this waits for and returns its outcome.

        Args:
            rejected: The credentials the server just refused. When the store
                already holds a different access token, another caller has
                refreshed in the meantime and no new refresh is made.
        """
        with self._lock:
            current = self._credentials
            if (
                rejected is not None
                and current.authorization is not None
                and current.access_token != rejected.access_token
            ):
                log.debug("Token already refreshed by another caller")
                return True

            in_flight = self._refresh_in_flight
            owner = in_flight is None
            if owner:
                in_flight = self._refresh_in_flight = Future()

        if not owner:
            log.debug("Waiting for in-flight token refresh")
            return in_flight.result()

        try:
            succeeded = self._perform_refresh()
            in_flight.set_result(succeeded)
            return succeeded
        except BaseException as e:
            in_flight.set_exception(e)
            raise
        finally:
            with self._lock:
                self._refresh_in_flight = None

    def _perform_refresh(self) -> bool:
        refresh_token = self._credentials.refresh_token
        if not refresh_token:
            log.warning("Token refresh skipped; no refresh token available")
            self.clear()
            return False

        try:
            response = self._session.post(
                f"{self.settings.API_URL}/auth/refresh",
                json={"refresh_token": refresh_token},
                timeout=self.settings.REQUEST_TIMEOUT,
            )
            if not response.ok:
                log.warning("Token refresh rejected", status_code=response.status_code)
                self.clear()
                return False
            data = validate_response(
                RefreshTokenResponse,
                decode_json_body(response, "token refresh"),
                "token refresh",
            )
        except (requests.RequestException, ResponseValidationError):
            log.exception("Token refresh failed")
            self.clear()
            return False

        with self._lock:
            self._credentials = Credentials(
                access_token=data.access_token,
                token_type=data.token_type,
                refresh_token=data.refresh_token,
            )
        log.info("Access token refreshed")
        return True

    def login(self, email: str, password: str) -> User:
        """
        Log in and store the returned credentials.

        Raises:
            ApiResponseError: when the service rejects the login.
            ResponseValidationError: when the success body is malformed.
        """
        response = self._session.post(
            f"{self.settings.API_URL}/auth/login",
            json={"email": email, "password": password},
            timeout=self.settings.REQUEST_TIMEOUT,
        )
        if not response.ok:
            raise ApiResponseError(
                read_error_message(response, "Login failed"), response.status_code
            )

        data = validate_response(
            LoginResponse, decode_json_body(response, "login"), "login"
        )
        user = User(id=data.user_id, name=data.name, email=email)
        self.set_credentials(
            Credentials(
                access_token=data.access_token,
                token_type=data.token_type,
                refresh_token=data.refresh_token,
            ),
            user=user,
        )
        log.info("Logged in", user_id=user.id)
        return user

    def register(self, name: str, email: str, password: str) -> str:
        """Create an account and return the service's confirmation message."""
        response = self._session.post(
            f"{self.settings.API_URL}/auth/register",
            json={"name": name, "email": email, "password": password},
            timeout=self.settings.REQUEST_TIMEOUT,
        )
        if not response.ok:
            raise ApiResponseError(
                read_error_message(response, "Registration failed"),
                response.status_code,
            )

        data = validate_response(
            RegisterResponse, decode_json_body(response, "registration"), "registration"
        )
        return data.message

    def logout(self) -> None:
        """
        Revoke the refresh token server-side and clear local credentials.

        A failing logout call is logged; local credentials are cleared regardless.
        """
        credentials = self.read()
        if credentials.refresh_token:
            headers = {}
            if credentials.authorization:
                headers["Authorization"] = credentials.authorization
            try:
                response = self._session.post(
                    f"{self.settings.API_URL}/auth/logout",
                    json={"refresh_token": credentials.refresh_token},
                    headers=headers or None,
                    timeout=self.settings.REQUEST_TIMEOUT,
                )
                if not response.ok:
                    log.warning("Logout call failed", status_code=response.status_code)
            except requests.RequestException:
                log.exception("Logout call errored")
        self.clear()
        log.info("Logged out")
