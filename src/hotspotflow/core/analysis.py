"""Combined hotspot analysis: point normalization, KDE and Gi*."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from hotspotflow.core.gi_star import perform_gi_star
from hotspotflow.core.kde import perform_kde
from hotspotflow.core.schema import AnalysisOptions, AnalysisResult, Point
from hotspotflow.core.utils import Deadline, coerce_number, get_logger

logger = get_logger(__name__)

# Alternate spellings accepted from upstream aggregation layers
_LAT_KEYS = ("lat", "Latitude", "latitude")
_LNG_KEYS = ("lng", "Longitude", "longitude", "lon")
_VALUE_KEYS = ("value", "intensity")


class InvalidPointError(ValueError):
    """Raised when an input point has unusable geometry or a negative value."""

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Invalid point at index {index}: {reason}")


def _first_present(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_point(raw: Mapping[str, Any] | Point, index: int) -> Point:
    """
    Build a normalized Point from one raw record.

    ``id`` defaults to ``index``; ``value`` falls back to ``intensity`` and
    then to 1 when missing or non-numeric. Other keys pass through untouched.

    Raises:
        InvalidPointError: If lat/lng are missing or non-finite, or value is negative
    """
    if isinstance(raw, Point):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidPointError(index, f"expected a mapping, got {type(raw).__name__}")

    lat = coerce_number(_first_present(raw, _LAT_KEYS))
    lng = coerce_number(_first_present(raw, _LNG_KEYS))
    if lat is None or lng is None or not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidPointError(index, "lat/lng must be finite numbers")

    value = None
    for key in _VALUE_KEYS:
        value = coerce_number(raw.get(key))
        if value is not None:
            break
    if value is None or math.isinf(value):
        value = 1.0
    if value < 0:
        raise InvalidPointError(index, f"value must be non-negative, got {value}")

    point_id = raw.get("id")
    passthrough = {k: v for k, v in raw.items() if k not in ("id", "lat", "lng", "value")}

    return Point(
        **passthrough,
        id=index if point_id is None else point_id,
        lat=lat,
        lng=lng,
        value=value,
    )


def normalize_points(points: Iterable[Mapping[str, Any] | Point]) -> list[Point]:
    """Normalize raw records into new Point instances; inputs are never mutated."""
    return [normalize_point(raw, i) for i, raw in enumerate(points)]


def analyze(
    points: Iterable[Mapping[str, Any] | Point],
    options: AnalysisOptions | Mapping[str, Any] | None = None,
    *,
    deadline: Deadline | None = None,
) -> AnalysisResult:
    """
    Run KDE and Getis-Ord Gi* on a point set.

    The two analyses only read the normalized point list and are independent
    of each other.

    Args:
        points: Raw point records (``lat``, ``lng``, optional ``value``/``id``)
        options: AnalysisOptions or a mapping of option names (camelCase ok)
        deadline: Optional deadline/cancellation token; when omitted one is
            derived from ``options.timeout_seconds``

    Returns:
        AnalysisResult with the KDE grid, Gi* results and normalized points

    Raises:
        InvalidPointError: If a point has unusable coordinates
        DeadlineExceeded: If the deadline expires
    """
    if options is None:
        options = AnalysisOptions()
    elif not isinstance(options, AnalysisOptions):
        options = AnalysisOptions(**options)

    if deadline is None:
        deadline = Deadline.from_timeout(options.timeout_seconds)

    try:
        normalized = normalize_points(points)
        logger.info(f"Starting hotspot analysis on {len(normalized)} points")

        kde_weights = [p.value for p in normalized] if options.kde_weight_by_value else None
        kde_result = perform_kde(
            normalized,
            options.to_kde_config(),
            weights=kde_weights,
            deadline=deadline,
        )
        gi_result = perform_gi_star(
            normalized,
            options.to_getis_ord_config(),
            deadline=deadline,
        )
    except Exception as e:
        logger.error(f"Hotspot analysis failed with error: {e}")
        raise

    logger.info("Hotspot analysis completed successfully")
    return AnalysisResult(kde=kde_result, gi_star=gi_result, points=normalized)
