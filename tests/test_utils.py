from types import SimpleNamespace
from unittest.mock import call

import pytest

from common.utils import _sleep_backoff, retry


class DummyWorker:
    def __init__(self, max_retries: int):
        self.settings = SimpleNamespace(
            MAX_RETRIES=max_retries, MAX_RETRY_BACKOFF_SECONDS=30
        )
        self.calls = 0

    @retry(retryable_exceptions=(ValueError,))
    def flaky(self) -> str:
        self.calls += 1
        if self.calls < 3:
            raise ValueError("boom")
        return "ok"

    @retry(retryable_exceptions=(ValueError,))
    def fail(self) -> None:
        self.calls += 1
        raise ValueError("nope")

    @retry(retryable_exceptions=(ValueError,))
    def wrong_error(self) -> None:
        self.calls += 1
        raise KeyError("not retried")


def test_retry_succeeds_after_retries(mocker):
    sleep_spy = mocker.patch("common.utils._sleep_backoff")
    worker = DummyWorker(max_retries=3)

    assert worker.flaky() == "ok"
    assert worker.calls == 3
    sleep_spy.assert_has_calls(
        [call(1, worker.settings), call(2, worker.settings)]
    )


def test_retry_raises_after_max_retries(mocker):
    sleep_spy = mocker.patch("common.utils._sleep_backoff")
    worker = DummyWorker(max_retries=2)

    with pytest.raises(ValueError, match="nope"):
        worker.fail()

    assert worker.calls == 2
    sleep_spy.assert_called_once_with(1, worker.settings)


def test_retry_does_not_retry_other_exceptions(mocker):
    sleep_spy = mocker.patch("common.utils._sleep_backoff")
    worker = DummyWorker(max_retries=3)

    with pytest.raises(KeyError):
        worker.wrong_error()

    assert worker.calls == 1
    sleep_spy.assert_not_called()


def test_retry_zero_retries_raises_value_error():
    worker = DummyWorker(max_retries=0)

    with pytest.raises(ValueError, match="MAX_RETRIES must be >= 1"):
        worker.fail()

    assert worker.calls == 0


def test_sleep_backoff_uses_exponential_delay(mocker):
    settings = SimpleNamespace(MAX_RETRIES=5, MAX_RETRY_BACKOFF_SECONDS=30)
    mocker.patch("common.utils.random.uniform", return_value=1.0)
    sleep_mock = mocker.patch("common.utils.time.sleep")

    _sleep_backoff(2, settings)

    sleep_mock.assert_called_once_with(4.0)


def test_sleep_backoff_caps_delay(mocker):
    settings = SimpleNamespace(MAX_RETRIES=5, MAX_RETRY_BACKOFF_SECONDS=10)
    mocker.patch("common.utils.random.uniform", return_value=1.0)
    sleep_mock = mocker.patch("common.utils.time.sleep")

    _sleep_backoff(6, settings)

    sleep_mock.assert_called_once_with(10.0)
