import logging
import os
from collections import OrderedDict
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from repokit.core.config import CoreSettings
from repokit.core.utils import ifnone


def default_formatter(fmt: Optional[str] = None) -> logging.Formatter:
    """Returns a logging formatter with a default format if none is specified."""
    default_fmt = "[%(asctime)s] %(levelname)s: %(name)s: %(message)s"
    return logging.Formatter(fmt or default_fmt)


def _log_file_path(name: str, log_dir: Optional[Path], use_structlog: bool) -> str:
    child_log_path = f"{name}.log" if name == "repokit" else os.path.join("modules", f"{name}.log")
    if log_dir is None:
        dir_paths = CoreSettings().REPOKIT_DIR_PATHS
        log_dir = dir_paths.STRUCT_LOGGER_DIR if use_structlog else dir_paths.LOGGER_DIR
    return os.path.join(log_dir, child_log_path)


def setup_logger(
    name: str = "repokit",
    *,
    log_dir: Optional[Path] = None,
    logger_level: int = logging.DEBUG,
    stream_level: int = logging.ERROR,
    add_stream_handler: bool = True,
    file_level: int = logging.DEBUG,
    file_mode: str = "a",
    add_file_handler: bool = True,
    propagate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    use_structlog: Optional[bool] = None,
    structlog_json: Optional[bool] = True,
    structlog_bind: Optional[object] = None,
) -> Logger | structlog.BoundLogger:
    """Configure and initialize logging for repokit components programmatically.

    Sets up a rotating file handler and a console handler on the given logger.
    Log file defaults to ~/.cache/repokit/logs/{name}.log.

    Args:
        name: Logger name, defaults to "repokit".
        log_dir: Custom directory for log file.
        logger_level: Overall logger level.
        stream_level: StreamHandler level (e.g., ERROR).
        add_stream_handler: Whether to add a stream handler.
        file_level: FileHandler level (e.g., DEBUG).
        file_mode: Mode for file handler, default is 'a' (append).
        add_file_handler: Whether to add a file handler.
        propagate: Whether the logger should propagate messages to ancestor loggers.
        max_bytes: Maximum size in bytes before rotating log file.
        backup_count: Number of backup files to retain.
        use_structlog: If True, configure and return a structlog BoundLogger. Defaults to REPOKIT_LOGGER.USE_STRUCTLOG.
        structlog_json: If True, render JSON; otherwise use the console renderer.
        structlog_bind: Optional dict or callable(name)->dict of fields bound to the structlog logger.

    Returns:
        Logger | structlog.BoundLogger: Configured logger instance.
    """
    use_structlog = ifnone(use_structlog, CoreSettings().REPOKIT_LOGGER.USE_STRUCTLOG)

    stdlib_logger = logging.getLogger(name)
    stdlib_logger.handlers.clear()
    stdlib_logger.setLevel(logger_level)
    stdlib_logger.propagate = propagate

    # structlog renders the whole line itself
    formatter = logging.Formatter("%(message)s") if use_structlog else default_formatter()

    if add_stream_handler:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(stream_level)
        stream_handler.setFormatter(formatter)
        stdlib_logger.addHandler(stream_handler)

    if add_file_handler:
        log_file_path = _log_file_path(name, log_dir, use_structlog)
        os.makedirs(Path(log_file_path).parent, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(log_file_path), maxBytes=max_bytes, backupCount=backup_count, mode=file_mode
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        stdlib_logger.addHandler(file_handler)

    if not use_structlog:
        return stdlib_logger

    renderer = structlog.processors.JSONRenderer() if structlog_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _enforce_key_order_processor(["timestamp", "event", "collection", "context", "level", "logger"]),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    bound_logger = structlog.get_logger(name)
    if structlog_bind is not None:
        bind_dict = structlog_bind(name) if callable(structlog_bind) else dict(structlog_bind)
        if bind_dict:
            bound_logger = bound_logger.bind(**bind_dict)
    return bound_logger


def _enforce_key_order_processor(key_order: list[str]):
    def _processor(_logger, _method_name, event_dict):
        ordered = OrderedDict()
        for key in key_order:
            if key in event_dict:
                ordered[key] = event_dict.pop(key)
        for k in sorted(event_dict.keys()):
            ordered[k] = event_dict[k]
        return ordered

    return _processor


def get_logger(
    name: str | None = "repokit", use_structlog: bool | None = None, **kwargs
) -> logging.Logger | structlog.BoundLogger:
    """
    Create or retrieve a named logger instance.

    Names are placed under the ``repokit`` hierarchy, so ``get_logger("database.users")`` configures and returns
    ``repokit.database.users``. Messages propagate to the parent ``repokit`` logger by default.

    Args:
        name (str): The name of the logger. Defaults to "repokit".
        use_structlog (bool): Whether to use structured logging. If None, uses config default.
        **kwargs: Additional keyword arguments to be passed to `setup_logger`.

    Returns:
        logging.Logger | structlog.BoundLogger: A configured logger instance.

    Example:
        .. code-block:: python

            from repokit.core.logging.logger import get_logger

            logger = get_logger("database.users")
            logger.warning("2 users document(s) failed validation during find")

            slogger = get_logger("database.users", use_structlog=True, structlog_bind={"collection": "users"})
            slogger.info("Structured log", filter={"status": "sent"})
    """
    if not name:
        name = "repokit"

    full_name = name if name.startswith("repokit") else f"repokit.{name}"
    kwargs.setdefault("propagate", True)
    return setup_logger(full_name, use_structlog=use_structlog, **kwargs)
