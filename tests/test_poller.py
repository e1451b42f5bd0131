from unittest.mock import MagicMock

import pytest

from extraction.auth import Credentials, CredentialStore
from extraction.errors import (
    ApiResponseError,
    PollingTimeoutError,
    SessionExpiredError,
    UnexpectedResponseError,
)
from extraction.executor import AuthenticatedRequestExecutor
from extraction.poller import JobPoller
from extraction.schemas import ExtractionResult

JOB_URL = "https://api.test/job/job-123"
PENDING = {"json": {"status": "pending"}}
COMPLETED = {
    "json": {
        "content": "Extracted text",
        "description": "Document description",
        "request_id": "req-123",
    }
}


@pytest.fixture
def settings(make_settings):
    """Five pending answers at most, so the attempt bound is easy to hit."""
    return make_settings(EXTRACTION_API_URL="https://api.test", MAX_POLL_ATTEMPTS="5")


@pytest.fixture
def store(settings):
    store = CredentialStore(settings)
    store.set_credentials(Credentials("access-1", "Bearer", "refresh-1"))
    return store


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def poller(store, settings, sleep):
    executor = AuthenticatedRequestExecutor(store, settings)
    return JobPoller(executor, settings, sleep=sleep)


def test_returns_immediately_completed_job_without_sleeping(poller, sleep, requests_mock):
    mock_job = requests_mock.get(JOB_URL, **COMPLETED)

    result = poller.completion("job-123")

    assert result == ExtractionResult(
        content="Extracted text",
        description="Document description",
        request_id="req-123",
    )
    assert mock_job.call_count == 1
    assert mock_job.last_request.headers["Authorization"] == "Bearer access-1"
    sleep.assert_not_called()


def test_polls_until_completed(poller, sleep, requests_mock):
    mock_job = requests_mock.get(JOB_URL, [PENDING, PENDING, PENDING, COMPLETED])

    result = poller.completion("job-123")

    assert result.content == "Extracted text"
    assert result.request_id == "req-123"
    assert mock_job.call_count == 4
    assert sleep.call_count == 3
    sleep.assert_called_with(10.0)


def test_unexpected_shape_raises_without_retry(poller, sleep, requests_mock):
    mock_job = requests_mock.get(JOB_URL, json={"status": "processing"})

    with pytest.raises(
        UnexpectedResponseError, match="Unexpected response format from job status API"
    ):
        poller.completion("job-123")

    assert mock_job.call_count == 1
    sleep.assert_not_called()


def test_error_status_raises_server_message(poller, sleep, requests_mock):
    requests_mock.get(JOB_URL, status_code=404, json={"detail": "Job not found"})

    with pytest.raises(ApiResponseError, match="Job not found") as exc_info:
        poller.completion("job-123")

    assert exc_info.value.status_code == 404
    sleep.assert_not_called()


def test_error_status_without_json_uses_fallback(poller, requests_mock):
    requests_mock.get(JOB_URL, status_code=500, text="Internal Server Error")

    with pytest.raises(ApiResponseError, match="Failed to check job status"):
        poller.completion("job-123")


def test_error_after_pending_is_terminal(poller, sleep, requests_mock):
    mock_job = requests_mock.get(
        JOB_URL, [PENDING, {"status_code": 500, "json": {"message": "Worker crashed"}}]
    )

    with pytest.raises(ApiResponseError, match="Worker crashed"):
        poller.completion("job-123")

    assert mock_job.call_count == 2
    assert sleep.call_count == 1


def test_gives_up_after_max_attempts(poller, sleep, requests_mock):
    mock_job = requests_mock.get(JOB_URL, **PENDING)

    with pytest.raises(PollingTimeoutError) as exc_info:
        poller.completion("job-123")

    assert exc_info.value.attempts == 5
    assert exc_info.value.message_id == "job-123"
    assert mock_job.call_count == 5
    assert sleep.call_count == 4


def test_zero_max_attempts_polls_without_bound(store, settings, sleep, requests_mock):
    settings.MAX_POLL_ATTEMPTS = 0
    poller = JobPoller(AuthenticatedRequestExecutor(store, settings), settings, sleep=sleep)
    mock_job = requests_mock.get(JOB_URL, [PENDING] * 20 + [COMPLETED])

    result = poller.completion("job-123")

    assert result.request_id == "req-123"
    assert mock_job.call_count == 21


def test_uses_configured_interval(store, settings, sleep, requests_mock):
    settings.POLL_INTERVAL_SECONDS = 0.5
    poller = JobPoller(AuthenticatedRequestExecutor(store, settings), settings, sleep=sleep)
    requests_mock.get(JOB_URL, [PENDING, COMPLETED])

    poller.completion("job-123")

    sleep.assert_called_once_with(0.5)


def test_refreshes_token_mid_poll(poller, store, settings, requests_mock):
    """
    A token that expires between two status checks is refreshed and the
    check is retried with the new token.
    """
    mock_job = requests_mock.get(
        JOB_URL, [PENDING, {"status_code": 401, "json": {}}, COMPLETED]
    )
    requests_mock.post(
        f"{settings.API_URL}/auth/refresh",
        json={"access_token": "access-2", "refresh_token": "refresh-2", "token_type": "Bearer"},
    )

    result = poller.completion("job-123")

    assert result.content == "Extracted text"
    assert mock_job.call_count == 3
    assert mock_job.request_history[2].headers["Authorization"] == "Bearer access-2"


def test_expired_session_stops_polling(poller, store, settings, sleep, requests_mock):
    requests_mock.get(JOB_URL, status_code=401, json={})
    requests_mock.post(f"{settings.API_URL}/auth/refresh", status_code=400, json={})

    with pytest.raises(SessionExpiredError):
        poller.completion("job-123")

    assert not store.is_authenticated
    sleep.assert_not_called()


def test_non_json_success_body_raises_unexpected_response(poller, sleep, requests_mock):
    mock_job = requests_mock.get(
        JOB_URL, text="<html>ok</html>", headers={"Content-Type": "text/html"}
    )

    with pytest.raises(UnexpectedResponseError) as exc_info:
        poller.completion("job-123")

    assert not isinstance(exc_info.value, ValueError)
    assert mock_job.call_count == 1
    sleep.assert_not_called()
