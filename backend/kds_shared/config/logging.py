"""
Logging for the KDS API and the station feed.

Loggers accept keyword fields next to the message::

    logger = get_logger(__name__)
    logger.info("Ticket bumped", ticket_id=12, station="BAR")

Production emits one JSON object per line; other environments get a
compact text line. The request id and the calling display's station are
attached by RequestContextFilter.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping

from kds_shared.config.settings import settings

# Keyword arguments the stdlib logger understands itself
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class KdsLogger(logging.LoggerAdapter):
    """Moves free keyword arguments into ``record.fields``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        fields = {k: kwargs.pop(k) for k in list(kwargs) if k not in _LOGGING_KWARGS}
        extra = dict(kwargs.get("extra") or {})
        extra["fields"] = fields
        kwargs["extra"] = extra
        return msg, kwargs


class KdsFormatter(logging.Formatter):
    def __init__(self, as_json: bool):
        super().__init__()
        self.as_json = as_json

    def _payload(self, record: logging.LogRecord) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in ("request_id", "station"):
            value = getattr(record, key, "")
            if value:
                payload[key] = value
        fields = getattr(record, "fields", None)
        if fields:
            payload["fields"] = fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            payload["at"] = f"{record.pathname}:{record.lineno}"
        return payload

    def format(self, record: logging.LogRecord) -> str:
        payload = self._payload(record)
        if self.as_json:
            return json.dumps(payload, default=str)

        tags = " ".join(
            payload[key][:8] if key == "request_id" else payload[key]
            for key in ("request_id", "station")
            if key in payload
        )
        line = f"{payload['ts'][11:19]} {record.levelname:<7} {record.name}"
        if tags:
            line += f" [{tags}]"
        line += f": {payload['msg']}"
        if "fields" in payload:
            line += " " + " ".join(f"{k}={v}" for k, v in payload["fields"].items())
        if "exception" in payload:
            line += "\n" + payload["exception"]
        return line


def setup_logging() -> None:
    """Install the KDS handler on the root logger. Call once at startup."""
    from kds_shared.infrastructure.correlation import RequestContextFilter

    level = logging.DEBUG if settings.debug else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(KdsFormatter(as_json=settings.environment == "production"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> KdsLogger:
    return KdsLogger(logging.getLogger(name), {})


def mask_email(email: str | None) -> str:
    """Keep the first two characters of the local part: ch***@example.com."""
    if not email or "@" not in email:
        return "<none>"
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"


api_logger = get_logger("kds_api")
kitchen_logger = get_logger("kds_api.kitchen")
orders_logger = get_logger("kds_api.orders")
feed_logger = get_logger("kds_feed")
