import logging
import signal
import threading

from .processor import process_queue_once

logger = logging.getLogger(__name__)


def _run_cycle(ctx, process):
    try:
        process(ctx)
    except Exception as e:
        # A failed cycle is skipped; the next tick starts over.
        logger.exception("email_worker_cycle_failed", extra={"error": str(e)})


def start_worker(ctx, interval: float, process=process_queue_once):
    """Run `process(ctx)` now and then every `interval` seconds on a daemon thread.

    Returns a function that stops the loop and waits for the thread to exit.
    """
    if interval <= 0:
        raise ValueError("interval must be > 0 seconds")
    stop_event = threading.Event()

    def _loop():
        logger.info("email_worker_started", extra={"interval": interval})
        _run_cycle(ctx, process)
        while not stop_event.wait(interval):
            _run_cycle(ctx, process)
        logger.info("email_worker_stopped")

    t = threading.Thread(target=_loop, name="mailq-worker", daemon=True)
    t.start()

    def stop(timeout=None):
        stop_event.set()
        if t is not threading.current_thread():
            t.join(timeout)

    return stop


def run_forever(ctx, interval: float, process=process_queue_once):
    """Start the worker and block until SIGINT/SIGTERM."""
    done = threading.Event()

    def _handler(signum, frame):
        logger.info("email_worker_signal", extra={"signal": signum})
        done.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _handler)

    stop = start_worker(ctx, interval, process=process)
    try:
        while not done.wait(0.5):
            pass
    finally:
        stop()
