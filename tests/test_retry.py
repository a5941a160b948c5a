"""Tests for the resilient operation wrapper."""

import ftplib
from unittest.mock import Mock

import pytest

from ftpmirror.exceptions import RemoteConnectionError, RemoteStoreError
from ftpmirror.sync.retry import ResilientOperation, is_transient


def flaky(failures: int, error: BaseException, result: str = "ok") -> Mock:
    """Mock failing ``failures`` times with ``error`` before returning."""
    return Mock(side_effect=[error] * failures + [result], __name__="flaky")


class TestIsTransient:
    """Tests for error classification."""

    @pytest.mark.parametrize(
        "error",
        [
            RemoteConnectionError("timed out"),
            ConnectionResetError(),
            BrokenPipeError(),
            TimeoutError(),
            EOFError(),
        ],
    )
    def test_transient(self, error):
        assert is_transient(error)

    @pytest.mark.parametrize(
        "error",
        [
            RemoteStoreError("550 denied"),
            PermissionError(),
            FileNotFoundError(),
            ValueError(),
            ftplib.error_perm("550"),
        ],
    )
    def test_permanent(self, error):
        assert not is_transient(error)


class TestResilientOperation:
    """Tests for ResilientOperation."""

    @pytest.fixture
    def sleep(self):
        return Mock()

    def test_success_on_first_attempt(self, sleep):
        func = flaky(0, RemoteConnectionError("x"))
        recover = Mock()
        op = ResilientOperation(recover=recover, retry_limit=3, sleep=sleep)

        assert op.call(func, "a", key="b") == "ok"
        func.assert_called_once_with("a", key="b")
        recover.assert_not_called()
        sleep.assert_not_called()

    @pytest.mark.parametrize("failures", [1, 2, 3])
    def test_succeeds_after_k_transient_failures(self, sleep, failures):
        """k < limit transient failures: k + 1 attempts, k recoveries."""
        func = flaky(failures, RemoteConnectionError("reset"))
        recover = Mock()
        op = ResilientOperation(recover=recover, retry_limit=3, sleep=sleep)

        assert op.call(func) == "ok"
        assert func.call_count == failures + 1
        assert recover.call_count == failures

    def test_exhausted_budget_reraises_last_error(self, sleep):
        errors = [RemoteConnectionError(f"fail {i}") for i in range(4)]
        func = Mock(side_effect=errors, __name__="func")
        recover = Mock()
        op = ResilientOperation(recover=recover, retry_limit=3, sleep=sleep)

        with pytest.raises(RemoteConnectionError, match="fail 3"):
            op.call(func)
        assert func.call_count == 4
        assert recover.call_count == 3

    def test_permanent_error_attempted_once(self, sleep):
        func = Mock(side_effect=RemoteStoreError("550 denied"), __name__="func")
        recover = Mock()
        op = ResilientOperation(recover=recover, retry_limit=5, sleep=sleep)

        with pytest.raises(RemoteStoreError, match="denied"):
            op.call(func)
        func.assert_called_once()
        recover.assert_not_called()

    def test_zero_retry_limit_attempts_once(self, sleep):
        func = flaky(1, RemoteConnectionError("x"))
        op = ResilientOperation(retry_limit=0, sleep=sleep)
        with pytest.raises(RemoteConnectionError):
            op.call(func)
        func.assert_called_once()

    def test_recovery_failure_propagates(self, sleep):
        func = flaky(1, RemoteConnectionError("reset"))
        recover = Mock(side_effect=RemoteStoreError("530 login incorrect"))
        op = ResilientOperation(recover=recover, retry_limit=3, sleep=sleep)

        with pytest.raises(RemoteStoreError, match="530") as exc_info:
            op.call(func)
        assert isinstance(exc_info.value.__cause__, RemoteConnectionError)
        func.assert_called_once()

    def test_custom_classifier(self, sleep):
        func = flaky(2, KeyError("busy"))
        op = ResilientOperation(
            classify=lambda e: isinstance(e, KeyError), retry_limit=3, sleep=sleep
        )
        assert op.call(func) == "ok"
        assert func.call_count == 3

    def test_backoff_delays_grow(self, sleep):
        func = flaky(3, RemoteConnectionError("x"))
        op = ResilientOperation(retry_limit=3, retry_delay=1.0, sleep=sleep)

        op.call(func)

        delays = [c.args[0] for c in sleep.call_args_list]
        assert len(delays) == 3
        # 1s, 2s, 4s with +/- 25% jitter
        assert 0.75 <= delays[0] <= 1.25
        assert 1.5 <= delays[1] <= 2.5
        assert 3.0 <= delays[2] <= 5.0

    def test_zero_delay_never_sleeps(self, sleep):
        func = flaky(2, RemoteConnectionError("x"))
        op = ResilientOperation(retry_limit=3, retry_delay=0, sleep=sleep)
        op.call(func)
        sleep.assert_not_called()

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            ResilientOperation(retry_limit=-1)
