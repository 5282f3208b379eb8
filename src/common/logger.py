"""
Logging setup for the marketplace service.

`setup_logging()` configures the root handler once at startup (plain text
for development, one JSON object per line for log aggregation).
`get_logger()` returns an adapter that tags each line with the request id
and component it was created for, so one page view can be followed through
the guard, the gateway and the route.
"""

import json
import logging
import os
import sys
from typing import Optional

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that are chatty at INFO and may echo query strings
NOISY_LOGGERS = ("httpx", "httpcore")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ContextLogger(logging.LoggerAdapter):
    """
    Prefixes messages with `[req:<id>] [<component>]`.

    The request id is shortened to 8 characters.
    """

    def __init__(
        self,
        logger: logging.Logger,
        request_id: Optional[str] = None,
        component: Optional[str] = None,
    ):
        super().__init__(logger, {"request_id": request_id, "component": component})
        self.request_id = request_id
        self.component = component

    def process(self, msg, kwargs):
        tags = []
        if self.request_id:
            tags.append(f"[req:{self.request_id[:8]}]")
        if self.component:
            tags.append(f"[{self.component}]")
        if tags:
            msg = f"{' '.join(tags)} {msg}"
        return msg, kwargs


def setup_logging(level: str = "INFO", format: str = "simple") -> None:
    """
    Configure the root logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR (unknown names fall back to INFO)
        format: "simple" or "json"
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    if format == "json":
        handler.setFormatter(JsonLineFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(
    name: str,
    request_id: Optional[str] = None,
    component: Optional[str] = None,
) -> ContextLogger:
    """
    Get a logger tagged with request context.

    Setting DEBUG_MODE=true in the environment lowers the named logger to
    DEBUG regardless of the root level.
    """
    logger = logging.getLogger(name)
    if os.getenv("DEBUG_MODE", "false").lower() == "true":
        logger.setLevel(logging.DEBUG)
    return ContextLogger(logger, request_id=request_id, component=component)
