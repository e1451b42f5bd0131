"""
Job Poller
==========

The extraction service processes uploads asynchronously: a submission
returns a ``message_id`` and the result has to be fetched from
``/job/{message_id}`` once it is ready. `JobPoller.completion` hides that
protocol behind a single blocking call.

The loop is deliberately simple:

- One status check at a time, never overlapping.
- A pending job sleeps a fixed interval (no backoff) before the next check.
- An error status, or a body that is neither pending nor completed, ends the
  loop with an exception. Nothing is retried apart from the pending state.
- An optional attempt bound stops the loop after too many pending answers.
"""

from __future__ import annotations

import time
from typing import Callable

import structlog

from common.config import Settings

from .errors import ApiResponseError, PollingTimeoutError, UnexpectedResponseError
from .executor import AuthenticatedRequestExecutor, RequestDescriptor
from .schemas import ExtractionResult, JobPending, parse_job_status, read_error_message

log = structlog.get_logger(__name__)


class JobPoller:
    """Polls a queued job until the service reports it as completed."""

    def __init__(
        self,
        executor: AuthenticatedRequestExecutor,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            executor: Sends every status request with current credentials.
            settings: Supplies the API URL, poll interval and attempt bound.
            sleep: Injectable sleep function (primarily for tests).
        """
        self.executor = executor
        self.settings = settings
        self._sleep = sleep

    def completion(self, message_id: str) -> ExtractionResult:
        """
        Block until job ``message_id`` completes and return its result.

        Raises:
            ApiResponseError: the status endpoint answered with an error status.
            UnexpectedResponseError: the body was neither pending nor completed.
            PollingTimeoutError: ``MAX_POLL_ATTEMPTS`` checks were all pending.
            SessionExpiredError: credentials could not be refreshed.
        """
        url = f"{self.settings.API_URL}/job/{message_id}"
        max_attempts = self.settings.MAX_POLL_ATTEMPTS
        interval = self.settings.POLL_INTERVAL_SECONDS

        attempt = 0
        while True:
            attempt += 1
            response = self.executor.execute(RequestDescriptor(url=url, method="GET"))
            if not response.ok:
                message = read_error_message(response, "Failed to check job status")
                log.warning(
                    "Job status check failed",
                    message_id=message_id,
                    status_code=response.status_code,
                    error=message,
                )
                raise ApiResponseError(message, response.status_code)

            try:
                body = response.json()
            except ValueError:
                log.warning(
                    "Job status body was not JSON",
                    message_id=message_id,
                    content_type=response.headers.get("Content-Type"),
                )
                raise UnexpectedResponseError() from None

            status = parse_job_status(body)
            if not isinstance(status, JobPending):
                log.info("Job completed", message_id=message_id, attempts=attempt)
                return status.to_result()

            if max_attempts and attempt >= max_attempts:
                log.warning(
                    "Giving up on pending job", message_id=message_id, attempts=attempt
                )
                raise PollingTimeoutError(message_id, attempt)

            log.debug(
                "Job pending; waiting",
                message_id=message_id,
                attempt=attempt,
                poll_interval_seconds=interval,
            )
            self._sleep(interval)
