"""Kernel Density Estimation over a regular latitude/longitude grid.

Distances between grid nodes and points are great-circle kilometers, so the
bandwidth is expressed in km as well. The grid has ``resolution + 1`` nodes
per axis; row ``i`` runs over latitude and column ``j`` over longitude.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import Literal

import numpy as np

from hotspotflow.core.geodesy import bounding_box, haversine_km_matrix
from hotspotflow.core.schema import Bounds, GridCell, KDEConfig, KDEResult, Point
from hotspotflow.core.stats import population_std
from hotspotflow.core.utils import Deadline, ProgressTracker, check_deadline, get_logger

logger = get_logger(__name__)

KM_PER_DEGREE = 111.0
SILVERMAN_FACTOR = 1.06
DEFAULT_BANDWIDTH_KM = 1.0

KernelFn = Callable[[np.ndarray | float, float], np.ndarray | float]

_SQRT_2PI = math.sqrt(2 * math.pi)


# -----------------------------------------------------------------------------
# Kernels
# -----------------------------------------------------------------------------


def gaussian_kernel(distance: np.ndarray | float, bandwidth: float) -> np.ndarray | float:
    """Gaussian kernel ``exp(-0.5 (d/h)^2) / (h sqrt(2 pi))``; unbounded support."""
    u = np.asarray(distance, dtype=np.float64) / bandwidth
    result = np.exp(-0.5 * u * u) / (bandwidth * _SQRT_2PI)
    return float(result) if result.ndim == 0 else result


def epanechnikov_kernel(distance: np.ndarray | float, bandwidth: float) -> np.ndarray | float:
    """Epanechnikov kernel ``0.75 (1 - u^2) / h`` for ``|u| <= 1``, else 0."""
    u = np.asarray(distance, dtype=np.float64) / bandwidth
    result = np.where(np.abs(u) <= 1.0, 0.75 * (1.0 - u * u) / bandwidth, 0.0)
    return float(result) if result.ndim == 0 else result


KERNELS: dict[str, KernelFn] = {
    "gaussian": gaussian_kernel,
    "epanechnikov": epanechnikov_kernel,
}


def get_kernel(name: str) -> KernelFn:
    """Look up a kernel function by name."""
    try:
        return KERNELS[name]
    except KeyError:
        raise ValueError(
            f"Unknown kernel '{name}'. Available: {sorted(KERNELS)}"
        ) from None


# -----------------------------------------------------------------------------
# Bandwidth and grid
# -----------------------------------------------------------------------------


def silverman_bandwidth(
    lats: Sequence[float] | np.ndarray,
    lngs: Sequence[float] | np.ndarray,
) -> float:
    """
    Silverman's rule of thumb adapted to degrees.

    ``h = 1.06 * mean(std_lat, std_lng) * n^(-1/5) * 111`` km, using
    population standard deviations. Returns 1 km for fewer than two points.
    """
    n = len(lats)
    if n < 2:
        return DEFAULT_BANDWIDTH_KM

    avg_std = (population_std(lats) + population_std(lngs)) / 2
    return SILVERMAN_FACTOR * avg_std * n ** (-0.2) * KM_PER_DEGREE


def generate_grid(bounds: Bounds, resolution: int = 50) -> list[GridCell]:
    """
    Create ``(resolution + 1)^2`` evaluation nodes spanning ``bounds``.

    Cells are ordered row-major (latitude outer, longitude inner) and carry
    zero densities.
    """
    if resolution < 1:
        raise ValueError(f"Resolution must be at least 1, got {resolution}")

    lat_step = (bounds.max_lat - bounds.min_lat) / resolution
    lng_step = (bounds.max_lng - bounds.min_lng) / resolution

    return [
        GridCell(
            lat=bounds.min_lat + i * lat_step,
            lng=bounds.min_lng + j * lng_step,
            row=i,
            col=j,
        )
        for i in range(resolution + 1)
        for j in range(resolution + 1)
    ]


def _density_surface(
    bounds: Bounds,
    resolution: int,
    lats: np.ndarray,
    lngs: np.ndarray,
    weights: np.ndarray,
    kernel_fn: KernelFn,
    bandwidth: float,
    deadline: Deadline | None,
) -> np.ndarray:
    """Evaluate the weighted kernel sum on every grid node, one row at a time."""
    size = resolution + 1
    row_lats = bounds.min_lat + np.arange(size) * ((bounds.max_lat - bounds.min_lat) / resolution)
    col_lngs = bounds.min_lng + np.arange(size) * ((bounds.max_lng - bounds.min_lng) / resolution)

    surface = np.zeros((size, size), dtype=np.float64)
    progress = ProgressTracker(size, description="KDE grid rows")

    for i in range(size):
        check_deadline(deadline, "KDE grid evaluation")
        distances = haversine_km_matrix(
            np.full(size, row_lats[i]),
            col_lngs,
            lats,
            lngs,
        )
        surface[i] = np.asarray(kernel_fn(distances, bandwidth)) @ weights
        progress.update()

    progress.finish()
    return surface


def perform_kde(
    points: Sequence[Point],
    config: KDEConfig | None = None,
    weights: Sequence[float] | np.ndarray | None = None,
    deadline: Deadline | None = None,
) -> KDEResult:
    """
    Estimate a kernel density surface for a point set.

    Args:
        points: Normalized points
        config: KDE configuration (defaults when None)
        weights: Optional per-point weights (1 for every point when None)
        deadline: Optional deadline/cancellation token

    Returns:
        KDEResult with one GridCell per grid node

    Raises:
        ValueError: If ``weights`` does not match the number of points
        DeadlineExceeded: If the deadline expires during evaluation
    """
    config = config or KDEConfig()

    if len(points) == 0:
        logger.info("KDE skipped: no points")
        return KDEResult(
            grid=[],
            max_density=0.0,
            min_density=0.0,
            bandwidth=0.0,
            bounds=config.bounds,
            resolution=config.resolution,
            kernel=config.kernel,
        )

    lats = np.array([p.lat for p in points], dtype=np.float64)
    lngs = np.array([p.lng for p in points], dtype=np.float64)

    if weights is None:
        weight_arr = np.ones(len(points), dtype=np.float64)
    else:
        weight_arr = np.asarray(weights, dtype=np.float64)
        if weight_arr.shape != (len(points),):
            raise ValueError(
                f"Expected {len(points)} weights, got shape {weight_arr.shape}"
            )

    bounds = config.bounds or bounding_box(lats, lngs, padding=config.padding_degrees)

    bandwidth = config.bandwidth or silverman_bandwidth(lats, lngs)
    if not math.isfinite(bandwidth) or bandwidth <= 0:
        # Coincident points have zero spread
        logger.warning(
            f"Silverman bandwidth degenerate ({bandwidth}); using {DEFAULT_BANDWIDTH_KM}km"
        )
        bandwidth = DEFAULT_BANDWIDTH_KM

    kernel_fn = get_kernel(config.kernel)
    size = config.resolution + 1
    logger.info(
        f"Computing KDE: {len(points)} points, {size}x{size} grid, "
        f"kernel={config.kernel}, bandwidth={bandwidth:.4f}km"
    )

    surface = _density_surface(
        bounds, config.resolution, lats, lngs, weight_arr, kernel_fn, bandwidth, deadline
    )

    max_density = float(surface.max())
    min_density = float(surface.min())
    normalized = surface / max_density if max_density > 0 else np.zeros_like(surface)

    grid = [
        cell.model_copy(
            update={
                "density": float(surface[cell.row, cell.col]),
                "normalized_density": float(normalized[cell.row, cell.col]),
            }
        )
        for cell in generate_grid(bounds, config.resolution)
    ]

    return KDEResult(
        grid=grid,
        max_density=max_density,
        min_density=min_density,
        bandwidth=bandwidth,
        bounds=bounds,
        resolution=config.resolution,
        kernel=config.kernel,
    )


def grid_to_matrix(
    kde_result: KDEResult,
    field: Literal["density", "normalized_density"] = "normalized_density",
) -> np.ndarray:
    """
    Arrange grid values as a ``(resolution + 1, resolution + 1)`` array.

    Missing cells are 0, so an empty KDE result yields an all-zero array.
    """
    size = kde_result.resolution + 1
    matrix = np.zeros((size, size), dtype=np.float64)
    for cell in kde_result.grid:
        if cell.row < size and cell.col < size:
            matrix[cell.row, cell.col] = getattr(cell, field)
    return matrix
