"""Structured JSON logging system.

``CommandRunnerLogger`` writes JSON lines to a rotating file and to stderr.
The runner itself only depends on the small ``DiagnosticSink`` protocol, so
callers can inject this logger, the default ``StdlibSink`` or anything else
with ``debug``/``error`` methods.
"""

import json
import logging
import os
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

LOGGER_NAME = "cmdrunner"


@runtime_checkable
class DiagnosticSink(Protocol):
    """Minimal logging surface used by the runner and the file writer."""

    def debug(self, msg: str, **kv: Any) -> None: ...

    def error(self, msg: str, **kv: Any) -> None: ...


class StdlibSink:
    """Forward diagnostics to a ``logging.Logger`` without installing handlers.

    Key-value pairs travel in ``extra={"kv": ...}`` so ``JSONFormatter`` picks
    them up when ``CommandRunnerLogger`` has configured the parent logger.
    """

    def __init__(self, name: str = LOGGER_NAME) -> None:
        self._logger = logging.getLogger(name)

    def debug(self, msg: str, **kv: Any) -> None:
        self._logger.debug(msg, extra={"kv": kv})

    def error(self, msg: str, **kv: Any) -> None:
        self._logger.error(msg, extra={"kv": kv})


class CommandRunnerLogger:
    """JSON-lines logger for the CLI.

    Configures the shared "cmdrunner" logger with a rotating file under
    ~/.cmdrunner/logs/ and a stderr console handler, so records from
    ``StdlibSink`` instances elsewhere in the process land in the same place.
    """

    log_dir: Path | None
    log_file: Path | None

    def __init__(
        self,
        log_dir: str | None = None,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        level: str | None = None,
    ) -> None:
        """Attach handlers to the "cmdrunner" logger, replacing any earlier ones.

        Args:
            log_dir: Directory for log files (defaults to ~/.cmdrunner/logs/)
            max_bytes: Maximum size before rotation (default 10MB)
            backup_count: Number of backup files to keep (default 5)
            level: Log level (DEBUG/INFO/WARN/ERROR), defaults to CMDRUNNER_LOG_LEVEL
        """
        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.propagate = False
        self.close()

        self.log_dir = None
        self.log_file = None
        if not _file_logging_disabled():
            self.log_dir = Path(log_dir) if log_dir else Path.home() / ".cmdrunner" / "logs"
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = self.log_dir / "cmdrunner.log"
            self._add_handler(
                RotatingFileHandler(self.log_file, maxBytes=max_bytes, backupCount=backup_count)
            )

        # stderr only; stdout may be the redirected output of a command
        self._add_handler(logging.StreamHandler(sys.stderr))

        self.set_level(level or os.environ.get("CMDRUNNER_LOG_LEVEL", "WARNING"))

    def _add_handler(self, handler: logging.Handler) -> None:
        handler.setFormatter(JSONFormatter())
        self._logger.addHandler(handler)

    def set_level(self, level: str) -> None:
        """Set logging level.

        Args:
            level: One of DEBUG, INFO, WARN/WARNING, ERROR
        """
        level_upper = level.upper()
        if level_upper == "WARN":
            level_upper = "WARNING"

        numeric_level = getattr(logging, level_upper, logging.INFO)
        self._logger.setLevel(numeric_level)

    def debug(self, msg: str, **kv: Any) -> None:
        """Log debug message with optional key-value pairs."""
        self._logger.debug(msg, extra={"kv": kv})

    def info(self, msg: str, **kv: Any) -> None:
        """Log info message with optional key-value pairs."""
        self._logger.info(msg, extra={"kv": kv})

    def error(self, msg: str, **kv: Any) -> None:
        """Log error message with optional key-value pairs."""
        self._logger.error(msg, extra={"kv": kv})

    def close(self) -> None:
        """Flush and detach all handlers."""
        for handler in self._logger.handlers[:]:
            handler.close()
            self._logger.removeHandler(handler)

    @contextmanager
    def operation(self, operation_name: str, **kv: Any) -> Iterator[dict[str, Any]]:
        """Log ``<name>_start`` and ``<name>_end`` around a block.

        The end record carries ``duration_ms`` and is written even if the
        block raises or exits. Fields the block stores in the yielded dict
        are added to the end record.

        Example:
            with logger.operation("exec", argv=argv) as result:
                result["succeeded"] = runner.run_argv(argv)
        """
        result: dict[str, Any] = {}
        start_time = time.monotonic()
        self.info(f"{operation_name}_start", **kv)

        try:
            yield result
        finally:
            fields = {**kv, **result}
            fields["duration_ms"] = int((time.monotonic() - start_time) * 1000)
            self.info(f"{operation_name}_end", **fields)


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string
        """
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        timestamp = dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

        log_data = {
            "timestamp": timestamp,
            "level": record.levelname,
            "message": record.getMessage(),
        }

        if hasattr(record, "kv") and record.kv:
            log_data.update(record.kv)

        return json.dumps(log_data, default=str)


def _file_logging_disabled() -> bool:
    return os.environ.get("CMDRUNNER_DISABLE_FILE_LOGGING", "").lower() in ("1", "true", "yes")
