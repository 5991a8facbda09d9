"""
Logging infrastructure for MediSync.

Provides:
- Structured JSON logging for file output
- Rich console output for terminal
- Contextual logging with run id and checkpoint position
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from rich.console import Console


EXTRA_KEYS = ("run_id", "page_index", "patient_index", "action")


def json_dumps(obj: Any) -> str:
    return orjson.dumps(obj, default=str).decode("utf-8")


# =============================================================================
# JSON Formatter for File Logging
# =============================================================================


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_KEYS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json_dumps(log_data)


# =============================================================================
# Rich Console Handler
# =============================================================================


class RichConsoleHandler(logging.Handler):
    """Handler that outputs to Rich console with formatting."""

    def __init__(self, console: "Console | None" = None, level: int = logging.INFO):
        super().__init__(level)
        if console is None:
            from rich.console import Console
            console = Console(stderr=True)
        self.console = console

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)

            style = {
                logging.DEBUG: "dim",
                logging.INFO: "default",
                logging.WARNING: "yellow",
                logging.ERROR: "red",
                logging.CRITICAL: "bold red",
            }.get(record.levelno, "default")

            prefix = ""
            if hasattr(record, "page_index") and hasattr(record, "patient_index"):
                prefix = f"[cyan]\\[page {record.page_index} / row {record.patient_index}][/cyan] "

            self.console.print(f"{prefix}[{style}]{message}[/{style}]", highlight=False)

            if record.exc_info:
                self.console.print_exception()

        except Exception:
            self.handleError(record)


# =============================================================================
# Logger Configuration
# =============================================================================


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Set up logging for MediSync.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Path to log file (optional)
        json_format: Use JSON format for file logs
        rich_console: Use Rich for console output

    Returns:
        Root logger for medisync
    """
    logger = logging.getLogger("medisync")
    logger.setLevel(getattr(logging, level.upper()))

    logger.handlers.clear()

    if rich_console:
        console_handler: logging.Handler = RichConsoleHandler()
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
    console_handler.setLevel(getattr(logging, level.upper()))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)  # Capture all levels to file

        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )

        logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (will be prefixed with 'medisync.')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"medisync.{name}")
    return logging.getLogger("medisync")


# =============================================================================
# Contextual Logging Adapter
# =============================================================================


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that adds run id and checkpoint position to records."""

    def __init__(
        self,
        logger: logging.Logger,
        run_id: str | None = None,
        page_index: int | None = None,
        patient_index: int | None = None,
    ):
        super().__init__(logger, {})
        self.run_id = run_id
        self.page_index = page_index
        self.patient_index = patient_index

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})

        if self.run_id:
            extra["run_id"] = self.run_id
        if self.page_index is not None:
            extra["page_index"] = self.page_index
        if self.patient_index is not None:
            extra["patient_index"] = self.patient_index

        kwargs["extra"] = extra
        return msg, kwargs

    def with_position(self, page_index: int, patient_index: int) -> "ContextualLogger":
        """Create a new logger bound to a checkpoint position."""
        return ContextualLogger(
            self.logger,
            run_id=self.run_id,
            page_index=page_index,
            patient_index=patient_index,
        )


def get_contextual_logger(
    name: str | None = None,
    run_id: str | None = None,
) -> ContextualLogger:
    """Get a contextual logger bound to a run.

    Args:
        name: Logger name
        run_id: Run ID for context

    Returns:
        ContextualLogger instance
    """
    return ContextualLogger(get_logger(name), run_id=run_id)
