"""Getis-Ord Gi* local hotspot statistic.

For point ``i`` with weight row ``w[i]``, global mean ``X`` and population
standard deviation ``S`` of the attribute values::

    Gi* = (sum_j w_ij x_j - X sum_j w_ij)
          / (S * sqrt((n sum_j w_ij^2 - (sum_j w_ij)^2) / (n - 1)))

The point itself is part of its own neighborhood (``w_ii = 1``).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from hotspotflow.core.schema import (
    AnalysisSummary,
    Classification,
    GetisOrdConfig,
    GiStarAnalysis,
    GiStarResult,
    Point,
)
from hotspotflow.core.stats import mean, population_std, two_tailed_p_value
from hotspotflow.core.utils import Deadline, coerce_number, get_logger
from hotspotflow.core.weights import SpatialWeights, build_spatial_weights

logger = get_logger(__name__)

MIN_POINTS = 3


@dataclass(frozen=True)
class SignificanceLevel:
    """A z-score cutoff and the class it maps to."""

    classification: Classification
    z_threshold: float
    p_value: float
    confidence: int


HOTSPOT_99 = SignificanceLevel(Classification.HOTSPOT_99, 2.58, 0.01, 99)
HOTSPOT_95 = SignificanceLevel(Classification.HOTSPOT_95, 1.96, 0.05, 95)
HOTSPOT_90 = SignificanceLevel(Classification.HOTSPOT_90, 1.65, 0.10, 90)
COLDSPOT_90 = SignificanceLevel(Classification.COLDSPOT_90, -1.65, 0.10, 90)
COLDSPOT_95 = SignificanceLevel(Classification.COLDSPOT_95, -1.96, 0.05, 95)
COLDSPOT_99 = SignificanceLevel(Classification.COLDSPOT_99, -2.58, 0.01, 99)

# Checked in order; first match wins
_HOT_LEVELS = (HOTSPOT_99, HOTSPOT_95, HOTSPOT_90)
_COLD_LEVELS = (COLDSPOT_99, COLDSPOT_95, COLDSPOT_90)


def classify_z_score(z: float) -> SignificanceLevel | None:
    """Return the significance level of a z-score, or None if not significant."""
    for level in _HOT_LEVELS:
        if z >= level.z_threshold:
            return level
    for level in _COLD_LEVELS:
        if z <= level.z_threshold:
            return level
    return None


def classification_label(z: float) -> str:
    """Human-readable class label for a z-score."""
    level = classify_z_score(z)
    return (level.classification if level else Classification.NOT_SIGNIFICANT).value


# Map-layer colors (RGB) per class
CLASSIFICATION_COLORS: dict[Classification, tuple[int, int, int]] = {
    Classification.HOTSPOT_99: (139, 0, 0),
    Classification.HOTSPOT_95: (220, 38, 38),
    Classification.HOTSPOT_90: (251, 146, 60),
    Classification.NOT_SIGNIFICANT: (156, 163, 175),
    Classification.COLDSPOT_90: (147, 197, 253),
    Classification.COLDSPOT_95: (59, 130, 246),
    Classification.COLDSPOT_99: (30, 58, 138),
}


def hotspot_color(z: float, opacity: float = 1.0) -> str:
    """CSS ``rgba()`` color for a z-score, red for hot and blue for cold."""
    r, g, b = CLASSIFICATION_COLORS[Classification(classification_label(z))]
    return f"rgba({r}, {g}, {b}, {opacity})"


def attribute_values(points: Sequence[Point], field: str = "value") -> np.ndarray:
    """Numeric attribute per point; missing or non-numeric values count as 1."""
    values = []
    for point in points:
        number = coerce_number(point.attribute(field))
        values.append(1.0 if number is None else number)
    return np.asarray(values, dtype=np.float64)


_RESULT_FIELDS = {
    key
    for name, field in GiStarResult.model_fields.items()
    if name not in Point.model_fields
    for key in (name, field.alias)
    if key
} | {"gi_star", "giStar"}


def _point_fields(point: Point) -> dict:
    """Point data without any statistics from a previous run."""
    return point.model_dump(exclude=_RESULT_FIELDS)


def _trivial_results(points: Sequence[Point]) -> list[GiStarResult]:
    return [
        GiStarResult(
            **_point_fields(point),
            z_score=0.0,
            p_value=1.0,
            classification=Classification.NOT_SIGNIFICANT,
            confidence_level=0,
            is_hotspot=False,
            is_coldspot=False,
            neighbors_count=0.0,
        )
        for point in points
    ]


def summarize(
    results: Sequence[GiStarResult],
    distance_threshold: float = 0.0,
    global_mean: float = 0.0,
    global_std_dev: float = 0.0,
) -> AnalysisSummary:
    """Tally results into the non-overlapping confidence tiers."""
    counts = {classification: 0 for classification in Classification}
    for result in results:
        counts[result.classification] += 1

    return AnalysisSummary(
        hotspots_99=counts[Classification.HOTSPOT_99],
        hotspots_95=counts[Classification.HOTSPOT_95],
        hotspots_90=counts[Classification.HOTSPOT_90],
        coldspots_90=counts[Classification.COLDSPOT_90],
        coldspots_95=counts[Classification.COLDSPOT_95],
        coldspots_99=counts[Classification.COLDSPOT_99],
        not_significant=counts[Classification.NOT_SIGNIFICANT],
        total_hotspots=sum(1 for r in results if r.is_hotspot),
        total_coldspots=sum(1 for r in results if r.is_coldspot),
        distance_threshold=distance_threshold,
        global_mean=global_mean,
        global_std_dev=global_std_dev,
    )


def gi_star_result(
    point: Point,
    weights_row: np.ndarray,
    values: np.ndarray,
    global_mean: float,
    global_std: float,
    self_weight: float = 1.0,
) -> GiStarResult:
    """Compute the Gi* statistic of one point from its weight row."""
    n = len(values)
    sum_w = float(weights_row.sum())
    sum_w2 = float(np.dot(weights_row, weights_row))
    sum_wx = float(np.dot(weights_row, values))

    numerator = sum_wx - global_mean * sum_w
    # Rounding can make the variance term slightly negative
    variance = max(0.0, (n * sum_w2 - sum_w**2) / (n - 1))
    denominator = global_std * math.sqrt(variance)

    z_score = numerator / denominator if denominator > 0 else 0.0
    level = classify_z_score(z_score)

    return GiStarResult(
        **_point_fields(point),
        z_score=z_score,
        p_value=two_tailed_p_value(z_score),
        classification=level.classification if level else Classification.NOT_SIGNIFICANT,
        confidence_level=level.confidence if level else 0,
        is_hotspot=z_score >= HOTSPOT_90.z_threshold,
        is_coldspot=z_score <= COLDSPOT_90.z_threshold,
        neighbors_count=sum_w - self_weight,
        sum_wij=sum_w,
        sum_wij_xj=sum_wx,
    )


def perform_gi_star(
    points: Sequence[Point],
    config: GetisOrdConfig | None = None,
    deadline: Deadline | None = None,
) -> GiStarAnalysis:
    """
    Run Getis-Ord Gi* hotspot analysis on a point set.

    Fewer than three points, or attribute values without variance, give every
    point ``z_score=0``, ``p_value=1`` and "Not Significant" without building
    a weight matrix.

    Args:
        points: Normalized points
        config: Gi* configuration (defaults when None)
        deadline: Optional deadline/cancellation token

    Returns:
        GiStarAnalysis with per-point results, summary and weights
    """
    config = config or GetisOrdConfig()
    n = len(points)

    if n < MIN_POINTS:
        logger.warning(f"Gi* needs at least {MIN_POINTS} points, got {n}; nothing is significant")
        results = _trivial_results(points)
        return GiStarAnalysis(results=results, summary=summarize(results))

    values = attribute_values(points, config.attribute_field)
    x_bar = mean(values)
    s = population_std(values)

    # Identical values can leave a rounding-level std instead of exactly 0
    if s == 0 or np.ptp(values) == 0:
        s = 0.0
        logger.warning("Gi* attribute values have zero variance; nothing is significant")
        results = _trivial_results(points)
        return GiStarAnalysis(
            results=results,
            summary=summarize(results, global_mean=x_bar, global_std_dev=s),
        )

    threshold = config.fixed_distance_km or config.distance_threshold
    weights: SpatialWeights = build_spatial_weights(
        [p.lat for p in points],
        [p.lng for p in points],
        threshold=threshold,
        weight_type=config.weight_type,
        power=config.power,
        deadline=deadline,
    )
    if threshold is None:
        logger.info(f"Using adaptive distance threshold {weights.threshold:.4f}km")

    results = [
        gi_star_result(point, weights.row(i), values, x_bar, s, weights.matrix[i, i])
        for i, point in enumerate(points)
    ]
    summary = summarize(results, weights.threshold, x_bar, s)

    logger.info(
        f"Gi* complete: {n} points, {summary.total_hotspots} hotspots, "
        f"{summary.total_coldspots} coldspots (threshold={weights.threshold:.4f}km)"
    )
    return GiStarAnalysis(results=results, summary=summary, weights=weights)
