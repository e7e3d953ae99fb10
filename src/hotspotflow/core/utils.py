"""Utility functions and helpers."""

import logging
import math
import numbers
import time
from typing import Any

import numpy as np


# Logging setup
def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with standardized configuration.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


# Data validation helpers
def validate_bounds(
    bounds: tuple[float, float, float, float],
) -> tuple[float, float, float, float]:
    """
    Validate and normalize geographic bounds.

    Args:
        bounds: (min_lat, max_lat, min_lng, max_lng) in decimal degrees

    Returns:
        Validated bounds

    Raises:
        ValueError: If bounds are inverted or not finite
    """
    min_lat, max_lat, min_lng, max_lng = (float(b) for b in bounds)

    if not all(math.isfinite(b) for b in (min_lat, max_lat, min_lng, max_lng)):
        raise ValueError(f"Bounds must be finite, got {bounds}")
    if min_lat > max_lat:
        raise ValueError(f"min_lat ({min_lat}) must not exceed max_lat ({max_lat})")
    if min_lng > max_lng:
        raise ValueError(f"min_lng ({min_lng}) must not exceed max_lng ({max_lng})")

    return (min_lat, max_lat, min_lng, max_lng)


def coerce_number(value: Any) -> float | None:
    """Return ``value`` as a float, or None when it is not a usable number.

    Any real scalar counts, including numpy integer and float scalars.
    Booleans and NaN do not.
    """
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
        return None
    number = float(value)
    if math.isnan(number):
        return None
    return number


# Deadline / cancellation
class DeadlineExceeded(TimeoutError):
    """Raised when a long-running loop outlives its deadline or is cancelled."""


class Deadline:
    """Cooperative deadline and cancellation token for the O(n²) loops.

    A deadline with ``seconds=None`` never expires on its own but can still be
    cancelled. Loops call :meth:`check` between independent units of work
    (matrix rows, grid rows).
    """

    def __init__(self, seconds: float | None = None) -> None:
        """
        Initialize a deadline.

        Args:
            seconds: Time budget from now, or None for no time limit
        """
        if seconds is not None and seconds < 0:
            raise ValueError(f"Deadline seconds must be non-negative, got {seconds}")
        self.seconds = seconds
        self._expires_at = None if seconds is None else time.monotonic() + seconds
        self._cancelled = False

    @classmethod
    def from_timeout(cls, seconds: float | None) -> "Deadline | None":
        """Build a deadline from an optional timeout; None means no deadline."""
        if seconds is None:
            return None
        return cls(seconds)

    def cancel(self) -> None:
        """Cancel all work guarded by this deadline."""
        self._cancelled = True

    def check(self, operation: str = "operation") -> None:
        """Raise DeadlineExceeded if the deadline has expired."""
        if self._cancelled:
            raise DeadlineExceeded(f"{operation} cancelled")
        if self._expires_at is not None and time.monotonic() >= self._expires_at:
            raise DeadlineExceeded(f"{operation} exceeded deadline of {self.seconds}s")

    def __repr__(self) -> str:
        return f"Deadline(seconds={self.seconds}, cancelled={self._cancelled})"


def check_deadline(deadline: Deadline | None, operation: str) -> None:
    """Check an optional deadline."""
    if deadline is not None:
        deadline.check(operation)


# Progress tracking
class ProgressTracker:
    """Simple progress tracker for long-running operations."""

    def __init__(self, total: int, description: str = "") -> None:
        """
        Initialize progress tracker.

        Args:
            total: Total number of items
            description: Description of the operation
        """
        self.total = total
        self.description = description
        self.current = 0
        self.logger = get_logger(__name__)

    def update(self, n: int = 1) -> None:
        """Update progress by n items."""
        self.current += n
        if self.total and self.current % max(1, self.total // 10) == 0:
            pct = (self.current / self.total) * 100
            self.logger.debug(f"{self.description}: {self.current}/{self.total} ({pct:.1f}%)")

    def finish(self) -> None:
        """Mark progress as complete."""
        self.logger.debug(f"{self.description}: Complete ({self.total} items)")
