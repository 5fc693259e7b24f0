"""Destinations for repository error reports.

Repositories forward failures to the ``ErrorSink`` they were built with. The default ``NullErrorSink`` drops them;
``FileErrorSink`` appends them to a log file for local debugging.
"""

import json
import traceback
from abc import abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from repokit.core.base import RepokitABC
from repokit.core.utils import ifnone


class ErrorSink(RepokitABC):
    """Receives error reports from repositories."""

    @abstractmethod
    def record(self, error: Any, context: Optional[str] = None) -> None:
        """Record an error.

        Args:
            error: An exception, a message, or any JSON-like structure describing the failure.
            context: Where the error happened, e.g. ``"users.findOneAndUpdate"``.
        """


class NullErrorSink(ErrorSink):
    """Discards every report."""

    def record(self, error: Any, context: Optional[str] = None) -> None:
        return None


def format_error(error: Any) -> str:
    """Render an error report as text: strings verbatim, exceptions with their traceback, anything else as JSON."""
    if isinstance(error, str):
        return error
    if isinstance(error, BaseException):
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return f"{type(error).__name__}: {error}\n{stack}"
    return json.dumps(error, indent=2, default=str)


class FileErrorSink(ErrorSink):
    """Appends error reports to a file, one timestamped entry per report.

    Entries look like ``[2026-10-19T10:00:00+00:00 users.insertOne] Failed to insert document ...``. Failing to write
    is logged as a warning and never raised to the repository.

    Args:
        log_dir: Directory of the log file. Defaults to ``REPOKIT_DIR_PATHS.ERROR_LOG_DIR``.
        filename: Name of the log file. Defaults to ``REPOKIT_DATABASE.ERROR_LOG_FILE``.
        **kwargs: Passed to ``Repokit`` (``config_overrides``, logger options).
    """

    def __init__(self, log_dir: Optional[str | Path] = None, filename: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        log_dir = ifnone(log_dir, self.config.REPOKIT_DIR_PATHS.ERROR_LOG_DIR)
        filename = ifnone(filename, self.config.REPOKIT_DATABASE.ERROR_LOG_FILE)
        self.path = Path(log_dir) / filename

    def record(self, error: Any, context: Optional[str] = None) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        entry = f"[{timestamp} {context or 'UnknownContext'}] {format_error(error)}\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a") as f:
                f.write(entry)
        except OSError as e:
            self.logger.warning(f"Could not write error report to {self.path}: {e}")
