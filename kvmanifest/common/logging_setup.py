"""
Structured Logging

Every component logs under the "kvmanifest" namespace through a
ServiceLoggerAdapter and never installs handlers itself, so records go
wherever the host application's logging config sends them.

setup_logging() is for standalone use (the CLI, scripts): it attaches a
single stream handler to the namespace, JSON by default.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import IO

LOGGER_NAMESPACE = "kvmanifest"
TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Attributes every LogRecord carries; the rest arrived through extra=
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "service"}

# Marks handlers owned by setup_logging so a second call replaces them
_HANDLER_FLAG = "_kvmanifest_handler"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, extra fields copied to the top level"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", record.name.rpartition(".")[2]),
            "message": record.getMessage(),
            "logger": record.name,
            "thread": record.threadName,
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Tags every record with the emitting component"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), "service": self.extra["service"]}
        return msg, kwargs


def get_service_logger(component: str) -> ServiceLoggerAdapter:
    """Adapter over the kvmanifest.<component> logger. Attaches no handlers."""
    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{component}")
    return ServiceLoggerAdapter(logger, {"service": component})


def setup_logging(
    log_level: str | None = None,
    json_format: bool | None = None,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Send kvmanifest logs to a stream (stderr by default).

    Args:
        log_level: Level name; defaults to KVMANIFEST_LOG_LEVEL, then INFO
        json_format: JSON lines when True, plain text otherwise; defaults to
            KVMANIFEST_LOG_FORMAT ("json" or "text")
        stream: Destination stream

    Returns:
        The namespace logger
    """
    if log_level is None:
        log_level = os.environ.get("KVMANIFEST_LOG_LEVEL", "INFO")
    if json_format is None:
        json_format = os.environ.get("KVMANIFEST_LOG_FORMAT", "json").lower() == "json"

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in [h for h in logger.handlers if getattr(h, _HANDLER_FLAG, False)]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    setattr(handler, _HANDLER_FLAG, True)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    return logger
