from datetime import datetime, timezone, timedelta
import re

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# e.g. "30d", "12h", "1d12h"
AGE_RE = re.compile(r"(?i)^\s*(?:(\d+)\s*d)?\s*(?:(\d+)\s*h)?\s*$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Fixed-width UTC timestamp like '2025-11-06T09:12:34.123456Z'.

    Always carries microseconds so stored values sort as strings.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


def parse_age_to_days(s: str) -> float:
    """
    Parse retention ages like '30d', '12h', '1d12h' into days.
    Raises ValueError on bad input or zero.
    """
    if not s:
        raise ValueError("age string is empty")
    m = AGE_RE.match(s)
    if not m or not any(m.groups()):
        raise ValueError(f"Invalid age format: {s!r}")
    d, h = m.groups()
    total = timedelta(days=int(d or 0), hours=int(h or 0))
    if total <= timedelta(0):
        raise ValueError("age must be > 0")
    return total / timedelta(days=1)
