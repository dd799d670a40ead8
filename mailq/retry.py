"""Exponential backoff for failed deliveries."""
from datetime import datetime, timedelta


def backoff_delay(attempts: int, base_delay: float, max_delay: float) -> float:
    """Seconds to wait after `attempts` failed deliveries: base * 2**attempts, capped."""
    if attempts < 0:
        raise ValueError("attempts must be >= 0")
    return min(base_delay * (2 ** attempts), max_delay)


def next_retry_at(attempts: int, base_delay: float, max_delay: float, now: datetime) -> datetime:
    return now + timedelta(seconds=backoff_delay(attempts, base_delay, max_delay))


def should_fail(attempts: int, max_attempts: int) -> bool:
    return attempts >= max_attempts
