import pytest

from linkcrawler.errors import NavigationFailed, TransportCrashed, TransportError
from linkcrawler.retry import RetryPolicy, backoff_delays, is_retryable_status
from linkcrawler.types import NavigationResult


def _result(status: int, url: str = "https://ex.com/") -> NavigationResult:
    return NavigationResult(requested_url=url, status=status, final_url=url)


class Script:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, url):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def test_default_backoff_delays():
    assert RetryPolicy().delays == [1.0, 1.5]
    assert backoff_delays(4, 1.0, 1.5) == [1.0, 1.5, 2.25]
    assert backoff_delays(1, 1.0, 1.5) == []


def test_retryable_statuses():
    assert not is_retryable_status(200)
    assert not is_retryable_status(204)
    assert not is_retryable_status(404)
    assert is_retryable_status(500)
    assert is_retryable_status(403)
    assert is_retryable_status(301)


def test_transport_errors_are_retried_with_backoff():
    slept = []
    policy = RetryPolicy(sleep=slept.append)
    navigate = Script(TransportError("timeout"), TransportError("reset"), _result(200))

    result = policy.run(navigate, "https://ex.com/")

    assert result.status == 200
    assert navigate.calls == 3
    assert slept == [1.0, 1.5]


def test_404_is_terminal_and_not_retried():
    slept = []
    policy = RetryPolicy(sleep=slept.append)
    navigate = Script(_result(404))

    result = policy.run(navigate, "https://ex.com/")

    assert result.status == 404
    assert navigate.calls == 1
    assert slept == []


def test_exhausted_retries_raise_navigation_failed_with_last_result():
    slept = []
    policy = RetryPolicy(sleep=slept.append)
    navigate = Script(_result(500), TransportError("dns"), _result(503))

    with pytest.raises(NavigationFailed) as excinfo:
        policy.run(navigate, "https://ex.com/")

    assert navigate.calls == 3
    assert slept == [1.0, 1.5]
    assert excinfo.value.attempts == 3
    assert excinfo.value.result is not None and excinfo.value.result.status == 503
    assert "503" in str(excinfo.value.last_error)


def test_transport_crash_propagates_immediately():
    slept = []
    policy = RetryPolicy(sleep=slept.append)
    navigate = Script(TransportCrashed("browser died"), _result(200))

    with pytest.raises(TransportCrashed):
        policy.run(navigate, "https://ex.com/")
    assert navigate.calls == 1
    assert slept == []


def test_invalid_policy_arguments():
    with pytest.raises(ValueError):
        RetryPolicy(attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(exponent=0.5)
