from __future__ import annotations

import json
import logging
import sys
from typing import Any

# Attributes every LogRecord carries; anything else was passed via `extra`.
_RESERVED_RECORD_KEYS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        if value and not any(ch.isspace() or ch in "\"=" for ch in value):
            return value
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _non_reserved_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras = {}
    for key, value in vars(record).items():
        if key in _RESERVED_RECORD_KEYS or key.startswith("_"):
            continue
        extras[key] = value
    return extras


class ExtrasFormatter(logging.Formatter):
    """Plain-text formatter that appends `extra` fields as key=value pairs."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        extras = _non_reserved_extras(record)
        if extras:
            line += " " + " ".join(f"{k}={_format_value(v)}" for k, v in sorted(extras.items()))
        return line


def configure_logging(verbose: bool = False) -> logging.Handler:
    """Send mailq's logs to the current stderr, replacing any handler installed earlier."""
    logger = logging.getLogger("mailq")
    for handler in list(logger.handlers):
        if getattr(handler, "_mailq_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler._mailq_handler = True
    handler.setFormatter(ExtrasFormatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return handler
