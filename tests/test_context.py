"""
Unit tests for the cancellable execution context.
"""
import threading
import time

import pytest

from policy_scout.core.context import ExecutionContext
from policy_scout.core.errors import OperationCancelled


def test_fresh_context_passes_checks():
    context = ExecutionContext()
    context.check()
    assert not context.cancelled
    assert context.remaining() is None


def test_cancel_is_sticky():
    context = ExecutionContext()
    context.cancel("user pressed ctrl-c")
    with pytest.raises(OperationCancelled, match="ctrl-c"):
        context.check()
    with pytest.raises(OperationCancelled):
        context.check()


def test_expired_deadline():
    context = ExecutionContext(timeout_seconds=0.01)
    time.sleep(0.05)
    assert context.remaining() == 0.0
    with pytest.raises(OperationCancelled, match="deadline exceeded"):
        context.check()


def test_invalid_timeout():
    with pytest.raises(ValueError, match="timeout_seconds"):
        ExecutionContext(timeout_seconds=0)


def test_sleep_returns_normally():
    context = ExecutionContext(timeout_seconds=5)
    context.sleep(0.01)


def test_sleep_never_outlives_the_deadline():
    context = ExecutionContext(timeout_seconds=0.05)
    started = time.monotonic()
    with pytest.raises(OperationCancelled, match="deadline"):
        context.sleep(10)
    assert time.monotonic() - started < 5


def test_cancel_from_another_thread_wakes_a_sleeper():
    context = ExecutionContext()
    threading.Timer(0.05, context.cancel).start()
    started = time.monotonic()
    with pytest.raises(OperationCancelled):
        context.sleep(10)
    assert time.monotonic() - started < 5
