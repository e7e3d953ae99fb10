"""Great-circle geometry on a spherical earth."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from hotspotflow.core.schema import Bounds
from hotspotflow.core.utils import Deadline, check_deadline

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Compute the haversine distance between two points in kilometers.

    NaN coordinates propagate to a NaN distance.

    Args:
        lat1, lng1: First point in decimal degrees
        lat2, lng2: Second point in decimal degrees

    Returns:
        Great-circle distance in km
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_km_vectorized(
    lat: float,
    lng: float,
    lats: np.ndarray | Sequence[float],
    lngs: np.ndarray | Sequence[float],
) -> np.ndarray:
    """Distances in km from one location to many."""
    lats_arr = np.asarray(lats, dtype=np.float64)
    lngs_arr = np.asarray(lngs, dtype=np.float64)

    phi1 = math.radians(lat)
    phi2 = np.radians(lats_arr)
    delta_phi = phi2 - phi1
    delta_lambda = np.radians(lngs_arr - lng)

    a = np.sin(delta_phi / 2) ** 2 + math.cos(phi1) * np.cos(phi2) * np.sin(delta_lambda / 2) ** 2
    # Rounding can push a marginally outside [0, 1]
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_km_matrix(
    lats_a: np.ndarray | Sequence[float],
    lngs_a: np.ndarray | Sequence[float],
    lats_b: np.ndarray | Sequence[float],
    lngs_b: np.ndarray | Sequence[float],
) -> np.ndarray:
    """Distances in km between every location of ``a`` (rows) and ``b`` (columns)."""
    phi_a = np.radians(np.asarray(lats_a, dtype=np.float64))[:, np.newaxis]
    lam_a = np.radians(np.asarray(lngs_a, dtype=np.float64))[:, np.newaxis]
    phi_b = np.radians(np.asarray(lats_b, dtype=np.float64))[np.newaxis, :]
    lam_b = np.radians(np.asarray(lngs_b, dtype=np.float64))[np.newaxis, :]

    a = (
        np.sin((phi_b - phi_a) / 2) ** 2
        + np.cos(phi_a) * np.cos(phi_b) * np.sin((lam_b - lam_a) / 2) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def pairwise_distances(
    lats: np.ndarray | Sequence[float],
    lngs: np.ndarray | Sequence[float],
    deadline: Deadline | None = None,
) -> np.ndarray:
    """
    Build the n×n great-circle distance matrix.

    Rows are computed independently; the deadline is checked between rows.

    Args:
        lats: Point latitudes
        lngs: Point longitudes
        deadline: Optional deadline/cancellation token

    Returns:
        Symmetric (n, n) float64 array with a zero diagonal
    """
    lats_arr = np.asarray(lats, dtype=np.float64)
    lngs_arr = np.asarray(lngs, dtype=np.float64)
    n = len(lats_arr)

    distances = np.zeros((n, n), dtype=np.float64)
    for i in range(n):
        check_deadline(deadline, "pairwise distance computation")
        distances[i] = haversine_km_vectorized(lats_arr[i], lngs_arr[i], lats_arr, lngs_arr)

    np.fill_diagonal(distances, 0.0)
    return distances


def nearest_neighbor_distances(distances: np.ndarray) -> np.ndarray:
    """Per-point distance to the closest other point (inf when there is none)."""
    if distances.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)
    masked = distances.copy()
    np.fill_diagonal(masked, np.inf)
    return masked.min(axis=1)


def bounding_box(
    lats: np.ndarray | Sequence[float],
    lngs: np.ndarray | Sequence[float],
    padding: float = 0.0,
) -> Bounds:
    """
    Min/max bounding box of the given coordinates.

    Raises:
        ValueError: If no coordinates are given
    """
    lats_arr = np.asarray(lats, dtype=np.float64)
    lngs_arr = np.asarray(lngs, dtype=np.float64)
    if lats_arr.size == 0:
        raise ValueError("Cannot compute a bounding box of zero points")

    return Bounds(
        min_lat=float(lats_arr.min()) - padding,
        max_lat=float(lats_arr.max()) + padding,
        min_lng=float(lngs_arr.min()) - padding,
        max_lng=float(lngs_arr.max()) + padding,
    )


def bounding_box_diagonal_km(
    lats: np.ndarray | Sequence[float],
    lngs: np.ndarray | Sequence[float],
) -> float:
    """Great-circle length of the bounding-box diagonal (south-west to north-east)."""
    box = bounding_box(lats, lngs)
    return haversine_km(box.min_lat, box.min_lng, box.max_lat, box.max_lng)
