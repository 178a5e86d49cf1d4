"""Logging configuration for mmdot.

Provides configurable logging with:
- File-based logging with rotation
- Console output for interactive runs
- Timing helpers for sync stages

Environment Variables:
    MMDOT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    MMDOT_LOG_FILE: Path to log file (default: ~/.mmdot/mmdot.log)
    MMDOT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    MMDOT_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from mmdot.utils.logging_config import setup_logging, timed_section

    setup_logging()  # Call once at startup

    with timed_section("parse", target="~/.ssh/config"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Any, Optional

# Timing logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("mmdot.perf")

MAIN_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-22s | %(levelname)-7s | %(message)s"
CONSOLE_FORMAT = "%(levelname)-7s %(message)s"


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("MMDOT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".mmdot" / "mmdot.log"
    path_str = os.environ.get("MMDOT_LOG_FILE", str(default_path))
    return Path(path_str).expanduser()


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, DEBUG with ``verbose``)
    - File handler with rotation (DEBUG level - captures everything)
    """
    log_level = logging.DEBUG if verbose else get_log_level()
    log_file = log_file or get_log_file()
    max_size_mb = int(os.environ.get("MMDOT_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("MMDOT_LOG_BACKUPS", "5"))

    root_logger = logging.getLogger("mmdot")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    # A read-only home directory must not break the CLI
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError as e:
        root_logger.warning(f"File logging disabled ({log_file}): {e}")
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            MAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"
        ))
        root_logger.addHandler(file_handler)

    root_logger.debug(
        f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}"
    )


def _perf_message(operation: str, elapsed: float, status: str, extra: dict) -> str:
    msg = f"{operation:16s} | {elapsed:8.2f}ms | {status}"
    if extra:
        msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    return msg


def timed(operation: str):
    """Decorator to log execution time of a function.

    Usage:
        @timed("load_sources")
        def load_hosts(self):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_perf_message(operation, elapsed, f"FAIL: {e}", {}))
                raise
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.debug(_perf_message(operation, elapsed, "OK", {}))
            return result

        return wrapper

    return decorator


@contextmanager
def timed_section(operation: str, **extra):
    """Context manager for timing code sections.

    Usage:
        with timed_section("write", path=str(path)):
            ...
    """
    start = time.perf_counter()

    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(_perf_message(operation, elapsed, f"FAIL: {e}", extra))
        raise

    elapsed = (time.perf_counter() - start) * 1000
    perf_logger.debug(_perf_message(operation, elapsed, "OK", extra))
