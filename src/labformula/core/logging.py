"""
Logging configuration for LabFormula.

Provides structured logging with JSON output for log aggregators
and human-readable colored output for interactive use.
"""

import copy
import logging
import sys
from typing import Any

import orjson

# Attributes set on every LogRecord; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


def _json_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Engine log calls pass context such as ``formula_id`` or ``column``
    through ``extra=``; those fields are nested under ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            log_data["extra"] = extra

        return orjson.dumps(log_data, default=_json_default).decode("utf-8")


class ConsoleFormatter(logging.Formatter):
    """Console formatter that colors the level name of a copy of the record."""

    def format(self, record: logging.LogRecord) -> str:
        colored = copy.copy(record)
        colored.levelname = (
            f"{_LEVEL_COLORS.get(record.levelno, _RESET)}{record.levelname}{_RESET}"
        )
        return super().format(colored)


def setup_logging(
    log_level: str | None = None,
    json_logs: bool | None = None,
    log_format: str | None = None,
) -> None:
    """
    Set up logging for the ``labformula`` logger hierarchy.

    Only the package logger is configured; the host application's root
    logger is left alone.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to ``settings.log_level``.
        json_logs: Whether to output JSON logs. Defaults to ``settings.json_logs``.
        log_format: Custom log format string for console output
    """
    from labformula.core.config import settings

    level = (log_level or settings.log_level).upper()
    use_json = settings.json_logs if json_logs is None else json_logs

    package_logger = logging.getLogger("labformula")
    package_logger.setLevel(level)
    package_logger.handlers.clear()
    package_logger.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if use_json:
        formatter: logging.Formatter = JSONFormatter()
    else:
        format_str = (
            log_format
            or "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d - %(message)s"
        )
        formatter = ConsoleFormatter(format_str, datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)
    package_logger.addHandler(handler)

    package_logger.debug(
        "Logging configured",
        extra={"log_level": level, "json_logs": use_json},
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
