"""Logging configuration for bmc-butler.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Timing decorators for configure/execute runtimes
- Structured asset context rendered as key=value fields

Environment Variables:
    BUTLER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    BUTLER_LOG_FILE: Path to log file (default: ~/.bmc-butler/butler.log)
    BUTLER_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    BUTLER_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from bmc_butler.utils.logging_config import setup_logging, timed

    setup_logging()  # Call once at startup

    @timed("configure")
    async def apply(self, config, asset):
        ...

    # Or use context manager for sections:
    async with timed_section("configure", serial="CZ123"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("butler.perf")
main_logger = logging.getLogger("butler")


def get_log_level(override: Optional[str] = None) -> int:
    """Get log level from the override or the environment."""
    level_str = (override or os.environ.get("BUTLER_LOG_LEVEL", "INFO")).upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".bmc-butler" / "butler.log"
    path_str = os.environ.get("BUTLER_LOG_FILE", str(default_path))
    return Path(path_str)


def fields(**context: Any) -> str:
    """Render structured context as ``key=value | key=value``.

    Empty values are left out, so context that is not known yet
    (the active address before login, the vendor of a bare IP) does not clutter the line.
    """
    return " | ".join(f"{k}={v}" for k, v in context.items() if v not in (None, "", [], {}))


def setup_logging(level: Optional[str] = None, log_file: Optional[Path] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects BUTLER_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics
    """
    log_level = get_log_level(level)
    log_file = log_file or get_log_file()
    max_size_mb = int(os.environ.get("BUTLER_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("BUTLER_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-28s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "butler-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    main_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    main_logger.addHandler(console_handler)
    main_logger.addHandler(file_handler)

    # Module loggers live under bmc_butler.*, route them to the same handlers
    pkg_logger = logging.getLogger("bmc_butler")
    pkg_logger.setLevel(logging.DEBUG)
    pkg_logger.addHandler(console_handler)
    pkg_logger.addHandler(file_handler)

    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def _perf_line(operation: str, subject: Optional[str], elapsed: float, outcome: str) -> str:
    return f"{operation:20s} | {subject or 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"


def timed(operation: str):
    """Decorator to log execution time of coroutine functions.

    The subject column is taken from an ``asset`` keyword or a positional
    argument that has a ``serial`` attribute.

    Usage:
        @timed("configure")
        async def apply(self, config, asset):
            ...
    """
    def subject_of(args, kwargs) -> Optional[str]:
        candidates = [kwargs.get("asset"), *args]
        for candidate in candidates:
            serial = getattr(candidate, "serial", None)
            if serial:
                return serial
        return None

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_perf_line(operation, subject_of(args, kwargs), elapsed, f"FAIL: {e}"))
                raise
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.info(_perf_line(operation, subject_of(args, kwargs), elapsed, "OK"))
            return result

        return async_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, serial: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Usage:
        async with timed_section("enc_page", asset_type="servers", offset=20):
            ...
    """
    start = time.perf_counter()
    extra_str = fields(**extra)

    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = _perf_line(operation, serial, elapsed, f"FAIL: {e}")
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
    elapsed = (time.perf_counter() - start) * 1000
    msg = _perf_line(operation, serial, elapsed, "OK")
    if extra_str:
        msg += f" | {extra_str}"
    perf_logger.info(msg)
