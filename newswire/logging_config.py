"""Structured JSON logging for newswire components."""

import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import Any, TextIO

ROOT_LOGGER = "newswire"

# Attributes every LogRecord carries; anything else came in through ``extra``
_STOCK_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def new_execution_id(prefix: str = "exec") -> str:
    return f"{prefix}_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"


class StructuredFormatter(logging.Formatter):
    """Renders every record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for key, value in record.__dict__.items():
            if key not in _STOCK_ATTRIBUTES and key not in payload:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


class ExecutionLogger:
    """Component logger that stamps execution context on every record."""

    def __init__(self, execution_id: str, component: str = "main"):
        """Initialize execution logger.

        Args:
            execution_id: Identifier shared by every record of one run
            component: Component name (e.g., 'source_fetcher', 'realtime')
        """
        self.execution_id = execution_id
        self.component = component
        self.logger = logging.getLogger(f"{ROOT_LOGGER}.{component}")
        self._started: float | None = None

    def _extra(self, context: dict[str, Any]) -> dict[str, Any]:
        return {"execution_id": self.execution_id, "component": self.component, **context}

    def log(self, level: int, message: str, **context) -> None:
        self.logger.log(level, message, extra=self._extra(context))

    def debug(self, message: str, **context) -> None:
        self.log(logging.DEBUG, message, **context)

    def info(self, message: str, **context) -> None:
        self.log(logging.INFO, message, **context)

    def warning(self, message: str, **context) -> None:
        self.log(logging.WARNING, message, **context)

    def error(self, message: str, **context) -> None:
        self.log(logging.ERROR, message, **context)

    def exception(self, message: str, **context) -> None:
        """Log at ERROR with the exception being handled attached."""
        self.logger.exception(message, extra=self._extra(context))

    @property
    def elapsed_seconds(self) -> float | None:
        if self._started is None:
            return None
        return time.monotonic() - self._started

    def log_execution_start(self, **context) -> None:
        self._started = time.monotonic()
        self.info(f"Starting {self.component} execution", **context)

    def log_execution_end(self, success: bool = True, **context) -> None:
        self.info(
            f"Completed {self.component} execution",
            execution_duration_seconds=self.elapsed_seconds,
            execution_success=success,
            **context,
        )

    def log_source_result(self, source_name: str, items_count: int, relay: str) -> None:
        self.info(
            f"{source_name}: {items_count} items via {relay}",
            source_name=source_name,
            relay=relay,
            items_count=items_count,
        )

    def log_metrics(self, metrics: dict[str, Any]) -> None:
        self.info("Execution metrics", metrics=metrics)


def setup_structured_logging(log_level: str = "INFO", stream: TextIO | None = None) -> None:
    """Route all logging through a single JSON handler.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream, stdout by default

    Raises:
        ValueError: If ``log_level`` is not a known level name
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers[:] = [handler]
    root_logger.setLevel(level)

    # Component loggers inherit from the package logger
    logging.getLogger(ROOT_LOGGER).setLevel(level)


def create_execution_logger(component: str, execution_id: str | None = None) -> ExecutionLogger:
    """Create a logger for ``component``, generating an execution ID when none is given."""
    return ExecutionLogger(execution_id or new_execution_id(), component)
