from datetime import datetime, timedelta, timezone

import pytest

from mailq.retry import backoff_delay, next_retry_at, should_fail


def test_backoff_doubles_per_attempt():
    assert [backoff_delay(n, 60, 10_000) for n in range(4)] == [60, 120, 240, 480]


def test_backoff_is_capped():
    assert backoff_delay(10, 60, 3600) == 3600


def test_negative_attempts_rejected():
    with pytest.raises(ValueError):
        backoff_delay(-1, 60, 3600)


def test_next_retry_at_adds_delay():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert next_retry_at(1, 60, 3600, now) == now + timedelta(seconds=120)


def test_should_fail_at_max_attempts():
    assert not should_fail(4, 5)
    assert should_fail(5, 5)
    assert should_fail(6, 5)
