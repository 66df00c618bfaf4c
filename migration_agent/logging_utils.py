"""
Logging for migration batches.

Batch runs are usually driven from command runners or container jobs
whose collectors read one JSON object per line. Records emitted by the
agent carry batch context (option prefix, item count, cursor, options)
through ``extra``; the JSON formatter groups those under a ``batch`` key
so a whole run can be filtered by prefix.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import IO, TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .config import AgentConfig

PACKAGE_LOGGER = "migration_agent"

# Context keys the agent attaches to its records
BATCH_FIELDS = ("option_prefix", "total", "cursor", "item_id", "options")

LOG_FORMATS = ("json", "text")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes every LogRecord has; anything else arrived through extra
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


class BatchJsonFormatter(logging.Formatter):
    """
    Formats records as single-line JSON.

    Output fields:
    - timestamp: record creation time, ISO 8601 in UTC
    - level, logger, message
    - batch: the BATCH_FIELDS present on the record
    - context: any other extra fields
    - exception: formatted traceback, when exc_info is set
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        batch: dict[str, Any] = {}
        context: dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            target = batch if key in BATCH_FIELDS else context
            target[key] = _jsonable(value)

        if batch:
            log_obj["batch"] = batch
        if context:
            log_obj["context"] = context
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj)


def configure_structured_logging(
    level: int | str = logging.INFO,
    log_format: str = "json",
    stream: IO[str] | None = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling it again replaces the handler installed by the previous call,
    leaving handlers added by the host application alone.

    Args:
        level: Logging level or level name
        log_format: "json" for BatchJsonFormatter, "text" for plain lines
        stream: Output stream (default: stdout)
        logger_name: Logger to configure (default: the package logger)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    for handler in list(logger.handlers):
        if getattr(handler, "_migration_agent", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    if log_format == "json":
        handler.setFormatter(BatchJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._migration_agent = True  # type: ignore[attr-defined]

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def configure_logging(config: AgentConfig, stream: IO[str] | None = None) -> logging.Logger | None:
    """Apply the logging settings of an AgentConfig.

    Nothing is configured when ``config.log_level`` is unset, so embedding
    hosts keep control of their own logging.
    """
    if not config.log_level:
        return None
    return configure_structured_logging(config.log_level, config.log_format, stream)


class AgentLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter tagging records with the batch they belong to.

    Per-call ``extra`` values are merged over the adapter's context.
    """

    def __init__(self, logger: logging.Logger, option_prefix: str) -> None:
        super().__init__(logger, {"option_prefix": option_prefix})

    def process(self, msg: str, kwargs: Any) -> tuple[str, Any]:
        extra: Mapping[str, Any] = kwargs.get("extra") or {}
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs
