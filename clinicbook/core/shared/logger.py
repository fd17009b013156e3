"""
Logging setup for clinicbook.

Services log through a ``ContextLogger`` so every record carries the
component that produced it plus the ids it concerns (appointment_id,
invoice_id, ...). The JSON formatter emits those fields under ``extra``;
the console formatters show the message only.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

LINE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        fields = getattr(record, "extra_data", None)
        if fields is not None:
            payload["extra"] = fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ColoredFormatter(logging.Formatter):
    """ANSI-colored level names for terminals."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # the record is shared with every other handler
        levelname = record.levelname
        record.levelname = f"{self.COLORS.get(levelname, self.RESET)}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class ContextLogger:
    """
    Wraps a stdlib logger and attaches structured fields to each record.

    Example:
        ```python
        logger = get_service_logger("billing_reconciler")
        logger.info("Invoice 4 paid", invoice_id=4)
        ```
    """

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        self._logger = logging.getLogger(name)
        self._context = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def with_context(self, **fields: Any) -> "ContextLogger":
        return ContextLogger(self.name, {**self._context, **fields})

    def _emit(self, level: int, message: str, fields: dict[str, Any], exc_info: bool = False) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(
                level, message, exc_info=exc_info, extra={"extra_data": {**self._context, **fields}}, stacklevel=3
            )

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, fields, exc_info=True)


def configure_logging(level: str = "INFO", format_type: str = "colored", log_file: str | None = None) -> None:
    """
    Replace the root handlers with one console handler.

    Args:
        level: Level name; unknown names fall back to INFO
        format_type: ``colored``, ``json`` or ``plain``
        log_file: Also append JSON lines to this file
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if format_type == "json":
        formatter: logging.Formatter = JSONFormatter()
    elif format_type == "colored":
        formatter = ColoredFormatter(LINE_FORMAT, datefmt=DATE_FORMAT)
    else:
        formatter = logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        root.addHandler(handler)


def configure_logging_from_settings(settings: Any) -> None:
    configure_logging(level=settings.LOG_LEVEL, format_type=settings.LOG_FORMAT, log_file=settings.LOG_FILE)


def get_logger(name: str, context: dict[str, Any] | None = None) -> ContextLogger:
    return ContextLogger(name, context)


def get_service_logger(service_name: str) -> ContextLogger:
    """Logger named ``service.<name>`` tagged with the service it belongs to."""
    return get_logger(f"service.{service_name}", {"component": "service", "service": service_name})
