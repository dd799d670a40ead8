import os
from dataclasses import dataclass

DEFAULT_CONFIG = {
    "base_delay_seconds": "60",
    "max_delay_seconds": "3600",
    "max_attempts": "5",
    "batch_size": "10",
    "poll_interval_seconds": "60",
    "provider": "log",
}

ALLOWED_CONFIG_KEYS = set(DEFAULT_CONFIG.keys())

INT_CONFIG_KEYS = ALLOWED_CONFIG_KEYS - {"provider"}

# Delays may be 0; a zero attempt budget, batch or poll interval would
# break the failed-job invariant or stall the queue.
MIN_CONFIG_VALUES = {
    "max_attempts": 1,
    "batch_size": 1,
    "poll_interval_seconds": 1,
}

PROVIDERS = ("log", "smtp")


def parse_int_setting(key: str, raw) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{key} must be an integer, got {raw!r}")
    minimum = MIN_CONFIG_VALUES.get(key, 0)
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class QueueSettings:
    base_delay_seconds: int = 60
    max_delay_seconds: int = 3600
    max_attempts: int = 5
    batch_size: int = 10
    poll_interval_seconds: int = 60
    provider: str = "log"

    @classmethod
    def from_mapping(cls, cfg):
        """Build settings from the string values kept in the config table."""
        merged = {**DEFAULT_CONFIG, **{k: v for k, v in cfg.items() if k in ALLOWED_CONFIG_KEYS}}
        values = {}
        for key, raw in merged.items():
            if key in INT_CONFIG_KEYS:
                values[key] = parse_int_setting(key, raw)
            else:
                values[key] = raw.strip().lower()
        return cls(**values)


@dataclass(frozen=True)
class SmtpSettings:
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True
    from_email: str = "no-reply@memoryloop.local"

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("MAILQ_SMTP_HOST", ""),
            port=int(env.get("MAILQ_SMTP_PORT", "587")),
            username=env.get("MAILQ_SMTP_USERNAME", ""),
            password=env.get("MAILQ_SMTP_PASSWORD", ""),
            use_tls=env.get("MAILQ_SMTP_USE_TLS", "true").strip().lower() in ("1", "true", "yes", "on"),
            from_email=env.get("MAILQ_FROM_EMAIL", "") or "no-reply@memoryloop.local",
        )
