from datetime import datetime, timedelta, timezone
import logging

import pytest

from mailq.config import QueueSettings
from mailq.context import QueueContext
from mailq.db import connect_db, init_db
from mailq.sender import EmailSendError


class FakeSender:
    """Records messages; fails while `failures` is non-empty."""

    def __init__(self, failures=()):
        self.failures = list(failures)
        self.sent = []
        self.calls = 0

    def send(self, message):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append(message)
        return f"msg-{self.calls}"


class AlwaysFailingSender:
    def __init__(self, reason="provider returned 503"):
        self.reason = reason
        self.calls = 0

    def send(self, message):
        self.calls += 1
        raise EmailSendError(f"{self.reason} (call {self.calls})")


class Clock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def conn():
    c = connect_db(":memory:")
    init_db(c)
    yield c
    c.close()


@pytest.fixture
def clock():
    return Clock(datetime(2025, 11, 6, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return QueueSettings(base_delay_seconds=60, max_delay_seconds=3600, max_attempts=5, batch_size=10)


@pytest.fixture
def make_ctx(conn, clock, settings):
    def _make(sender, **overrides):
        s = settings
        if overrides:
            s = QueueSettings(**{**vars(settings), **overrides})
        return QueueContext(conn=conn, sender=sender, settings=s, clock=clock)

    return _make


@pytest.fixture(autouse=True)
def _reset_mailq_logger():
    # The CLI installs its own handler on the "mailq" logger.
    yield
    logger = logging.getLogger("mailq")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
