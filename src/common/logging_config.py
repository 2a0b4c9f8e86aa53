"""
Logging configuration for the mini-app registry.

Console output is colored when attached to a terminal; the optional log
file can be written as JSON lines. Records carry the fields set through
LogContext (chain, command, app origin) so registry operations can be
traced per network.
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FILENAME = "miniapps.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

# Libraries that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")

_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "miniapps_log_context", default={}
)
_factory_installed = False


def _install_record_factory() -> None:
    global _factory_installed
    if _factory_installed:
        return

    base_factory = logging.getLogRecordFactory()

    def record_factory(*args, **kwargs):
        record = base_factory(*args, **kwargs)
        record.context = dict(_context.get())
        return record

    logging.setLogRecordFactory(record_factory)
    _factory_installed = True


def _format_context(context: Dict[str, Any]) -> str:
    if not context:
        return ""
    return " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.lineno}",
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short console lines with the log context appended, colored on a TTY."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = False):
        super().__init__("%(levelname)s %(name)s: %(message)s")
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record) + _format_context(getattr(record, "context", {}))
        if not self.color:
            return line
        return f"{self.COLORS.get(record.levelno, '')}{line}{self.RESET}"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    json_logs: bool = False,
    log_dir: Optional[Path] = None,
    color: Optional[bool] = None,
):
    """
    Configure logging for the registry tools.

    Args:
        level: Console logging level (default: INFO)
        log_file: Path to a rotating log file (optional)
        json_logs: Write the log file as JSON lines
        log_dir: Directory for the log file; overrides log_file with
            <log_dir>/miniapps.log
        color: Force colored console output on or off; defaults to
            whether stderr is a terminal
    """
    _install_record_factory()

    root_logger = logging.getLogger()
    root_logger.setLevel(min(level, logging.DEBUG) if (log_file or log_dir) else level)
    root_logger.handlers.clear()

    if color is None:
        color = sys.stderr.isatty()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(ConsoleFormatter(color=color))
    root_logger.addHandler(console_handler)

    if log_dir:
        log_file = Path(log_dir) / LOG_FILENAME

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        if json_logs:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s%(context_suffix)s"
            ))
            file_handler.addFilter(_context_suffix_filter)
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _context_suffix_filter(record: logging.LogRecord) -> bool:
    record.context_suffix = _format_context(getattr(record, "context", {}))
    return True


class LogContext:
    """
    Context manager that tags log records with registry fields.

    Nested contexts merge, and asyncio tasks inherit the context that was
    active when they were created.

    Example:
        with LogContext(chain_id="1", command="remove"):
            logger.info("Removing app")  # ... [chain_id=1 command=remove]
    """

    def __init__(self, **fields):
        self.fields = fields
        self._token = None

    def __enter__(self):
        _install_record_factory()
        self._token = _context.set({**_context.get(), **self.fields})
        return self

    def __exit__(self, *args):
        _context.reset(self._token)

    @staticmethod
    def current() -> Dict[str, Any]:
        return dict(_context.get())
