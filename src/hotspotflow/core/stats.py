"""Descriptive statistics and normal-distribution p-values."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

# Abramowitz & Stegun 7.1.26 coefficients
_ERF_P = 0.3275911
_ERF_A1 = 0.254829592
_ERF_A2 = -0.284496736
_ERF_A3 = 1.421413741
_ERF_A4 = -1.453152027
_ERF_A5 = 1.061405429

#: Maximum absolute error of :func:`erf` over the real line.
ERF_MAX_ABS_ERROR = 1.5e-7


def _as_array(values: Sequence[float] | np.ndarray) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        raise ValueError("Statistics require at least one value")
    return arr


def mean(values: Sequence[float] | np.ndarray) -> float:
    """Arithmetic mean of a non-empty sequence."""
    return float(_as_array(values).mean())


def population_std(values: Sequence[float] | np.ndarray) -> float:
    """Population (ddof=0) standard deviation of a non-empty sequence."""
    arr = _as_array(values)
    return float(np.sqrt(np.mean((arr - arr.mean()) ** 2)))


def erf(x: float) -> float:
    """
    Error function via the Abramowitz-Stegun rational approximation.

    This is an approximation, not the exact function: the absolute error is
    bounded by ``ERF_MAX_ABS_ERROR`` (1.5e-7). Results must be compared with
    that tolerance, e.g. against :func:`math.erf`.
    """
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)

    t = 1.0 / (1.0 + _ERF_P * x)
    poly = ((((_ERF_A5 * t + _ERF_A4) * t + _ERF_A3) * t + _ERF_A2) * t + _ERF_A1) * t
    y = 1.0 - poly * math.exp(-x * x)

    return sign * y


def two_tailed_p_value(z: float) -> float:
    """
    Two-tailed p-value of a standard normal z-score.

    Computed as ``1 - erf(|z| / sqrt(2))`` using :func:`erf`, so it inherits
    its 1.5e-7 absolute error bound. Decreasing in ``|z|``.
    """
    return 1.0 - erf(abs(z) / math.sqrt(2))
