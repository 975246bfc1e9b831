"""Elapsed-time logging for service calls."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional


@contextmanager
def log_timing(
    label: str,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
) -> Iterator[None]:
    """Logs how long the wrapped block took, in milliseconds, even if it raised."""
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        (logger or logging.getLogger(__name__)).log(level, "[Timing] %s: %.1f ms", label, elapsed_ms)
