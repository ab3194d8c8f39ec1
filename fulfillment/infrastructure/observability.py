"""Structured Logging — order-aware log formatting for the fulfillment API.

Invariants:
    - Every record carries timestamp, level, logger and message
    - Order context passed via `extra=` (order_id, order_number, actor, from/to
      status, error_code, path) is rendered when present, omitted otherwise
    - setup_logging is idempotent: a second call replaces, never stacks, its handler

Design Decisions:
    - Standard logging with a JSON formatter; the text formatter is for local runs
    - Called from the API lifespan; library code only ever uses getLogger(__name__)
"""

import json
import logging
from datetime import datetime, timezone

ORDER_CONTEXT_KEYS = (
    "order_id", "order_number", "actor_role", "actor_id",
    "from_status", "to_status", "error_code", "path",
)

_HANDLER_NAME = "fulfillment"


def order_context(record: logging.LogRecord) -> dict[str, str]:
    return {
        key: str(value) for key in ORDER_CONTEXT_KEYS
        if (value := getattr(record, key, None)) is not None
    }


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **order_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """`time LEVEL logger: message [order_id=... to_status=...]`"""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ctx = order_context(record)
        if ctx:
            line += " [" + " ".join(f"{k}={v}" for k, v in ctx.items()) + "]"
        return line


def setup_logging(level: str = "INFO", fmt: str = "json"):
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
