from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from app.analysis.exceptions import ProcessingError, ProcessingTimeoutError
from app.analysis.poller import PollingPolicy, ReadinessPoller
from app.inference.base import BaseInferenceClient
from app.inference.models import FileState, RemoteFile


def _make_poller(
    states: list[FileState],
    remote_file: Callable[..., RemoteFile],
    max_attempts: int = 5,
) -> tuple[ReadinessPoller, MagicMock, MagicMock]:
    client = MagicMock(spec=BaseInferenceClient)
    client.get_file.side_effect = [remote_file(state) for state in states]
    sleep = MagicMock()
    policy = PollingPolicy(
        max_attempts=max_attempts, interval_seconds=2.0, total_timeout_seconds=60
    )
    return ReadinessPoller(client, policy, sleep=sleep), client, sleep


class TestPollingPolicy:
    def test_defaults_fit_budget(self) -> None:
        policy = PollingPolicy()
        assert policy.max_attempts == 120
        assert policy.interval_seconds == 2.0
        assert policy.total_timeout_seconds == 240.0

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            PollingPolicy(max_attempts=0)

    def test_rejects_negative_interval(self) -> None:
        with pytest.raises(ValueError, match="interval_seconds"):
            PollingPolicy(interval_seconds=-1)

    def test_rejects_attempts_exceeding_budget(self) -> None:
        with pytest.raises(ValueError, match="budget"):
            PollingPolicy(max_attempts=200, interval_seconds=2.0, total_timeout_seconds=240)


class TestBecomesActive:
    def test_returns_when_active_on_first_poll(
        self, remote_file: Callable[..., RemoteFile]
    ) -> None:
        poller, client, sleep = _make_poller([FileState.ACTIVE], remote_file)

        result = poller.wait_until_active("files/abc")

        assert result.state is FileState.ACTIVE
        client.get_file.assert_called_once_with("files/abc")
        sleep.assert_not_called()

    def test_returns_exactly_when_active_appears(
        self, remote_file: Callable[..., RemoteFile]
    ) -> None:
        states = [FileState.PENDING, FileState.PENDING, FileState.PENDING, FileState.ACTIVE]
        poller, client, sleep = _make_poller(states, remote_file)

        poller.wait_until_active("files/abc")

        assert client.get_file.call_count == 4
        assert sleep.call_count == 3
        sleep.assert_called_with(2.0)


class TestFailures:
    def test_failed_raises_without_further_polling(
        self, remote_file: Callable[..., RemoteFile]
    ) -> None:
        states = [FileState.PENDING, FileState.FAILED, FileState.ACTIVE]
        poller, client, _sleep = _make_poller(states, remote_file)

        with pytest.raises(ProcessingError, match="FAILED"):
            poller.wait_until_active("files/abc")

        assert client.get_file.call_count == 2

    def test_times_out_after_max_attempts(
        self, remote_file: Callable[..., RemoteFile]
    ) -> None:
        poller, client, sleep = _make_poller([FileState.PENDING] * 5, remote_file, max_attempts=5)

        with pytest.raises(ProcessingTimeoutError):
            poller.wait_until_active("files/abc")

        assert client.get_file.call_count == 5
        assert sleep.call_count == 4

    def test_timeout_is_a_builtin_timeout_error(
        self, remote_file: Callable[..., RemoteFile]
    ) -> None:
        poller, _client, _sleep = _make_poller([FileState.PENDING] * 2, remote_file, max_attempts=2)

        with pytest.raises(TimeoutError):
            poller.wait_until_active("files/abc")
