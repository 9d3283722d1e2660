"""Utility modules for logging, metrics and retries."""
from .logging_config import (
    setup_logging,
    fields,
    timed,
    timed_section,
    perf_logger,
)
from .metrics import MetricsRegistry, metrics
from .retry import retrying, RETRYABLE_EXCEPTIONS

__all__ = [
    "setup_logging",
    "fields",
    "timed",
    "timed_section",
    "perf_logger",
    "MetricsRegistry",
    "metrics",
    "retrying",
    "RETRYABLE_EXCEPTIONS",
]
