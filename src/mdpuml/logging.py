"""Structured logging for mdpuml.

All output goes through loguru. ``configure_logging`` installs a single
stderr sink; ``log`` wraps an operation in a timed span that emits one
record when it finishes.
"""

from __future__ import annotations

import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from loguru import logger

__all__ = ["LogSpan", "configure_logging", "log"]

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> <level>{level: <7}</level> <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a compact stderr sink.

    Args:
        level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR)
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT, colorize=None)


class LogSpan:
    """A structured logging span with timing and attributes."""

    def __init__(self, name: str, **attrs: Any) -> None:
        """Initialize a log span.

        Args:
            name: Span name (e.g., "resolver.resolve")
            **attrs: Initial attributes to log
        """
        self.name = name
        self.attrs: dict[str, Any] = dict(attrs)
        self.start_time = time.time()
        self.error: str | None = None

    def add(self, **attrs: Any) -> LogSpan:
        """Add attributes to the span (e.g. ``span.add(status=200, size=512)``)."""
        self.attrs.update(attrs)
        return self

    def _emit(self) -> None:
        """Emit the span as a single log record."""
        elapsed_ms = round((time.time() - self.start_time) * 1000, 2)
        fields = " ".join(f"{k}={v}" for k, v in self.attrs.items())
        bound = logger.bind(span=self.name, elapsed_ms=elapsed_ms, **self.attrs)

        if self.error:
            bound.debug(f"{self.name} failed after {elapsed_ms}ms {fields} error={self.error}")
        else:
            bound.debug(f"{self.name} {elapsed_ms}ms {fields}".rstrip())


@contextmanager
def log(name: str, **attrs: Any) -> Generator[LogSpan, None, None]:
    """Context manager for structured logging.

    Automatically captures timing and errors.

    Example:
        >>> with log("render.fetch", fmt="svg") as span:
        ...     data = await client.fetch_image("svg", encoded)
        ...     span.add(size=len(data))
    """
    span = LogSpan(name, **attrs)
    try:
        yield span
    except Exception as e:
        span.error = f"{type(e).__name__}: {e}"
        raise
    finally:
        span._emit()
