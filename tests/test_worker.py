import logging
import threading
import time

import pytest

from mailq.repository import enqueue_email, counts
from mailq.worker import start_worker

from conftest import FakeSender


def test_worker_runs_immediately_and_repeats(make_ctx):
    ctx = make_ctx(FakeSender())
    calls = []
    enough = threading.Event()

    def process(c):
        calls.append(c)
        if len(calls) >= 3:
            enough.set()
        return 0

    stop = start_worker(ctx, 0.01, process=process)
    try:
        assert enough.wait(2)
    finally:
        stop()
    assert all(c is ctx for c in calls)


def test_failed_cycle_does_not_stop_worker(make_ctx):
    ctx = make_ctx(FakeSender())
    calls = []
    recovered = threading.Event()

    def process(c):
        calls.append(c)
        if len(calls) == 1:
            raise RuntimeError("database is locked")
        recovered.set()
        return 0

    stop = start_worker(ctx, 0.01, process=process)
    try:
        assert recovered.wait(2)
    finally:
        stop()


def test_stop_cancels_future_cycles(make_ctx):
    ctx = make_ctx(FakeSender())
    calls = []
    started = threading.Event()

    def process(c):
        calls.append(c)
        started.set()
        return 0

    stop = start_worker(ctx, 0.01, process=process)
    assert started.wait(2)
    stop()
    seen = len(calls)
    time.sleep(0.05)
    assert len(calls) == seen


def test_worker_delivers_queued_email(conn, clock, make_ctx):
    enqueue_email(conn, to="a@example.com", subject="Hi", text_body="Body", now=clock())
    sender = FakeSender()
    ctx = make_ctx(sender)
    stop = start_worker(ctx, 60)
    deadline = time.time() + 2
    while not sender.sent and time.time() < deadline:
        time.sleep(0.01)
    stop()
    assert counts(conn)["sent"] == 1


def test_interval_must_be_positive(make_ctx):
    with pytest.raises(ValueError):
        start_worker(make_ctx(FakeSender()), 0)


def test_failed_cycle_is_logged_once_with_traceback(conn, make_ctx, caplog):
    ctx = make_ctx(FakeSender())
    conn.close()

    with caplog.at_level(logging.INFO, logger="mailq"):
        stop = start_worker(ctx, 60)
        stop()

    errors = [r for r in caplog.records if r.levelno >= logging.WARNING]
    assert [r.getMessage() for r in errors] == ["email_worker_cycle_failed"]
    assert errors[0].exc_info is not None
    assert errors[0].error
