"""Distance-based spatial weight matrices for local statistics.

The weight matrix is a dense, C-contiguous (row-major) ``numpy`` buffer
indexed by point position, not by point id. Self-weights are always 1 and are
assigned explicitly after the distance policy has been applied.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from hotspotflow.core.geodesy import (
    bounding_box_diagonal_km,
    nearest_neighbor_distances,
    pairwise_distances,
)
from hotspotflow.core.schema import WeightType
from hotspotflow.core.utils import Deadline, get_logger

logger = get_logger(__name__)

# Adaptive threshold tunables (km). Empirical values tuned for incident data,
# not derived; change them together with the regression fixtures.
ADAPTIVE_NN_MULTIPLIER = 2.5
ADAPTIVE_DIAGONAL_FRACTION = 0.25
ADAPTIVE_MIN_KM = 1.0
ADAPTIVE_MAX_KM = 15.0
ADAPTIVE_DEFAULT_KM = 10.0

SELF_WEIGHT = 1.0


@dataclass(frozen=True)
class SpatialWeights:
    """Dense n×n spatial weight matrix.

    Attributes:
        matrix: (n, n) float64 array, row-major
        threshold: Distance threshold in km used to build the matrix
        weight_type: Weighting policy
        power: Inverse-distance exponent (unused for binary weights)
    """

    matrix: np.ndarray
    threshold: float
    weight_type: WeightType = WeightType.BINARY
    power: float = 1.0

    @property
    def n(self) -> int:
        return int(self.matrix.shape[0])

    def row(self, i: int) -> np.ndarray:
        """Weights of every point relative to point ``i``."""
        return self.matrix[i]

    def row_sums(self) -> np.ndarray:
        """Σ_j w[i][j] for every i, self-weight included."""
        return self.matrix.sum(axis=1)

    def neighbors_count(self, i: int) -> float:
        """Σ_j w[i][j] minus the self-weight."""
        return float(self.matrix[i].sum() - self.matrix[i, i])

    def to_lists(self) -> list[list[float]]:
        """Nested-list copy of the matrix."""
        return self.matrix.tolist()


def adaptive_threshold(
    lats: Sequence[float] | np.ndarray,
    lngs: Sequence[float] | np.ndarray,
    distances: np.ndarray | None = None,
    deadline: Deadline | None = None,
) -> float:
    """
    Choose a neighbor distance from the point pattern itself.

    ``threshold = max(min(avgNN * 2.5, D / 4, 15), 1)`` where ``avgNN`` is the
    mean nearest-neighbor distance and ``D`` the bounding-box diagonal, all in
    km. With fewer than two points the default of 10 km is returned.

    Args:
        lats: Point latitudes
        lngs: Point longitudes
        distances: Precomputed pairwise distance matrix, if available
        deadline: Optional deadline/cancellation token

    Returns:
        Threshold in km
    """
    n = len(lats)
    if n < 2:
        return ADAPTIVE_DEFAULT_KM

    if distances is None:
        distances = pairwise_distances(lats, lngs, deadline=deadline)

    nn = nearest_neighbor_distances(distances)
    avg_nn = float(nn[np.isfinite(nn)].sum()) / n
    diagonal = bounding_box_diagonal_km(lats, lngs)

    threshold = min(
        avg_nn * ADAPTIVE_NN_MULTIPLIER,
        diagonal * ADAPTIVE_DIAGONAL_FRACTION,
        ADAPTIVE_MAX_KM,
    )
    threshold = max(threshold, ADAPTIVE_MIN_KM)

    logger.debug(
        f"Adaptive threshold: avg_nn={avg_nn:.4f}km, diagonal={diagonal:.4f}km "
        f"-> {threshold:.4f}km"
    )
    return threshold


def binary_weights(distances: np.ndarray, threshold: float) -> np.ndarray:
    """1 where ``distance <= threshold``, else 0; self-weight set to 1."""
    matrix = (distances <= threshold).astype(np.float64)
    np.fill_diagonal(matrix, SELF_WEIGHT)
    return matrix


def inverse_distance_weights(
    distances: np.ndarray,
    threshold: float,
    power: float = 1.0,
) -> np.ndarray:
    """``1 / d**power`` where ``0 < d <= threshold``, else 0; self-weight set to 1."""
    within = (distances > 0) & (distances <= threshold)
    matrix = np.zeros_like(distances, dtype=np.float64)
    matrix[within] = 1.0 / np.power(distances[within], power)
    np.fill_diagonal(matrix, SELF_WEIGHT)
    return matrix


def build_spatial_weights(
    lats: Sequence[float] | np.ndarray,
    lngs: Sequence[float] | np.ndarray,
    threshold: float | None = None,
    weight_type: WeightType | str = WeightType.BINARY,
    power: float = 1.0,
    deadline: Deadline | None = None,
) -> SpatialWeights:
    """
    Build a spatial weight matrix for a point set.

    Args:
        lats: Point latitudes
        lngs: Point longitudes
        threshold: Neighbor distance in km; adaptive when None
        weight_type: ``binary`` (or ``fixed_distance``) or ``inverse_distance``
        power: Exponent for inverse-distance decay
        deadline: Optional deadline/cancellation token

    Returns:
        SpatialWeights with the threshold actually used

    Raises:
        ValueError: If the threshold or power is not positive
    """
    weight_type = WeightType.coerce(weight_type)
    if threshold is not None and threshold <= 0:
        raise ValueError(f"Distance threshold must be positive, got {threshold}")
    if power <= 0:
        raise ValueError(f"Inverse-distance power must be positive, got {power}")

    distances = pairwise_distances(lats, lngs, deadline=deadline)
    if threshold is None:
        threshold = adaptive_threshold(lats, lngs, distances=distances)

    if weight_type is WeightType.INVERSE_DISTANCE:
        matrix = inverse_distance_weights(distances, threshold, power)
    else:
        matrix = binary_weights(distances, threshold)

    logger.debug(
        f"Built {weight_type.value} weights for {len(distances)} points "
        f"(threshold={threshold:.4f}km)"
    )
    return SpatialWeights(
        matrix=np.ascontiguousarray(matrix),
        threshold=float(threshold),
        weight_type=weight_type,
        power=power,
    )
