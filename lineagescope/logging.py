"""Logging configuration for lineagescope.

Everything goes to stderr so the CLI can keep stdout for JSON output.
Recoverable data and layout problems (dropped edges, layout fallbacks,
generation cycles) are reported here as warnings rather than raised.
"""

import logging
import os
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger("lineagescope")


def _configured_level() -> int:
    name = os.getenv("LINEAGESCOPE_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


logger.setLevel(_configured_level())

# Only add handler if not already configured
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter(
            "[lineagescope] %(asctime)s %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logger.addHandler(handler)


def log_progress(
    message: str,
    current: int | None = None,
    total: int | None = None,
    level: int = logging.DEBUG,
) -> None:
    """Log a progress message, with a percentage when the total is known."""
    if current is not None and total is not None:
        pct = (current / total * 100) if total > 0 else 0
        logger.log(level, "%s [%d/%d %.1f%%]", message, current, total, pct)
    elif current is not None:
        logger.log(level, "%s [%d]", message, current)
    else:
        logger.log(level, message)


class TimingContext:
    """Wall-clock timer for a logged operation, filled in when it ends."""

    def __init__(self) -> None:
        self.started = time.perf_counter()
        self.elapsed = 0.0

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000

    def stop(self) -> float:
        self.elapsed = time.perf_counter() - self.started
        return self.elapsed


@contextmanager
def log_operation(
    operation: str,
    details: dict[str, Any] | None = None,
    level: int = logging.DEBUG,
) -> Generator[TimingContext, None, None]:
    """Log an operation's start and end with its duration.

    Failures are logged at ERROR and re-raised. The yielded timer holds the
    elapsed time once the block exits:

        with log_operation("layout", {"type": "radial"}) as timing:
            positions = radial_layout(graph, ids, options)
        logger.info("radial took %.1fms", timing.elapsed_ms)
    """
    suffix = "".join(f" {k}={v}" for k, v in (details or {}).items())
    logger.log(level, "%s started%s", operation, suffix)
    timing = TimingContext()
    try:
        yield timing
    except Exception as e:
        logger.error("%s failed after %.3fs: %s", operation, timing.stop(), e)
        raise
    logger.log(level, "%s finished in %.3fs%s", operation, timing.stop(), suffix)
