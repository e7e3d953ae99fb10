"""Tests for point normalization and the combined analysis."""

from __future__ import annotations

import copy
from typing import Any

import numpy as np
import pytest
from pydantic import ValidationError

from hotspotflow.core.analysis import (
    InvalidPointError,
    analyze,
    normalize_point,
    normalize_points,
)
from hotspotflow.core.schema import AnalysisOptions, AnalysisResult, Classification, Point
from hotspotflow.core.utils import Deadline, DeadlineExceeded


class TestNormalizePoint:
    """Tests for raw-record normalization."""

    def test_defaults(self) -> None:
        """Test that id defaults to the index and value to 1."""
        point = normalize_point({"lat": 1.0, "lng": 2.0}, index=7)

        assert point.id == 7
        assert point.value == 1.0

    def test_keeps_given_id_and_passthrough(self) -> None:
        """Test that ids and extra keys survive normalization."""
        point = normalize_point({"id": "x1", "lat": 1, "lng": 2, "value": 3, "type": "theft"}, 0)

        assert point.id == "x1"
        assert point.value == 3.0
        assert point.attribute("type") == "theft"

    def test_alternate_keys(self) -> None:
        """Test Latitude/Longitude and intensity spellings."""
        point = normalize_point({"Latitude": 13.8, "Longitude": 100.5, "intensity": 4}, 0)

        assert (point.lat, point.lng, point.value) == (13.8, 100.5, 4.0)

    @pytest.mark.parametrize("bad_value", ["high", None, float("nan"), True, float("inf")])
    def test_unusable_values_default_to_one(self, bad_value: Any) -> None:
        """Test that non-numeric or non-finite values become 1."""
        point = normalize_point({"lat": 0.0, "lng": 0.0, "value": bad_value}, 0)
        assert point.value == 1.0

    def test_numpy_scalars(self) -> None:
        """Test that numpy integer and float32 scalars are read as numbers."""
        point = normalize_point(
            {"lat": np.float32(13.5), "lng": np.float32(100.25), "value": np.int64(5)}, 0
        )

        assert (point.lat, point.lng, point.value) == (13.5, 100.25, 5.0)

    def test_numpy_bool_value_defaults_to_one(self) -> None:
        """Test that numpy booleans are not treated as numbers."""
        assert normalize_point({"lat": 0.0, "lng": 0.0, "value": np.bool_(True)}, 0).value == 1.0

    def test_zero_value_kept(self) -> None:
        """Test that a legitimate zero is not replaced."""
        assert normalize_point({"lat": 0.0, "lng": 0.0, "value": 0}, 0).value == 0.0

    def test_negative_value_rejected(self) -> None:
        """Test that negative values are invalid."""
        with pytest.raises(InvalidPointError, match="non-negative"):
            normalize_point({"lat": 0.0, "lng": 0.0, "value": -2}, 3)

    @pytest.mark.parametrize(
        "raw",
        [
            {"lng": 1.0},
            {"lat": float("nan"), "lng": 1.0},
            {"lat": 1.0, "lng": float("inf")},
            {"lat": "13.8", "lng": 100.5},
        ],
    )
    def test_bad_coordinates_rejected(self, raw: dict[str, Any]) -> None:
        """Test that missing or non-finite coordinates are errors."""
        with pytest.raises(InvalidPointError) as exc_info:
            normalize_point(raw, 4)

        assert exc_info.value.index == 4
        assert isinstance(exc_info.value, ValueError)

    def test_non_mapping_rejected(self) -> None:
        """Test that non-mapping records are errors."""
        with pytest.raises(InvalidPointError, match="mapping"):
            normalize_point([1.0, 2.0], 0)  # type: ignore[arg-type]

    def test_point_passes_through(self) -> None:
        """Test that Point instances are returned unchanged."""
        point = Point(id="p", lat=1.0, lng=2.0)
        assert normalize_point(point, 0) is point

    def test_inputs_not_mutated(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test that raw records are left untouched."""
        original = copy.deepcopy(cluster_points)
        normalize_points(cluster_points)
        assert cluster_points == original


class TestAnalyze:
    """Tests for the combined KDE + Gi* analysis."""

    def test_combined_result(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test that both analyses run on the normalized points."""
        result = analyze(cluster_points, {"giDistanceThreshold": 2.0, "kdeResolution": 8})

        assert isinstance(result, AnalysisResult)
        assert len(result.points) == 5
        assert len(result.kde.grid) == 81
        assert len(result.gi_star.results) == 5
        assert result.gi_star.results[0].classification == Classification.HOTSPOT_95
        assert result.gi_star.results[4].classification == Classification.COLDSPOT_95

    def test_numpy_int_values(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test that values taken from a numpy int array keep the hotspot pattern."""
        values = np.array([10, 10, 10, 1, 1])
        points = [{**p, "value": v} for p, v in zip(cluster_points, values)]

        result = analyze(points, {"giDistanceThreshold": 2.0, "kdeResolution": 4})
        z = [r.z_score for r in result.gi_star.results]

        assert z == pytest.approx([2.0, 2.0, 2.0, -2.0, -2.0])

    def test_default_options(self, incident_points: list[dict[str, Any]]) -> None:
        """Test the default 40-cell KDE grid and adaptive Gi* threshold."""
        result = analyze(incident_points)

        assert result.kde.resolution == 40
        assert len(result.kde.grid) == 41 * 41
        assert result.gi_star.summary.distance_threshold >= 1.0

    def test_options_model(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test passing an AnalysisOptions instance."""
        options = AnalysisOptions(
            kde_resolution=4,
            kde_bandwidth=2.0,
            kernel="epanechnikov",
            gi_distance_threshold=1.0,
            gi_weight_type="fixed_distance",
        )
        result = analyze(cluster_points, options)

        assert result.kde.bandwidth == 2.0
        assert result.kde.kernel == "epanechnikov"
        assert result.gi_star.summary.distance_threshold == 1.0

    def test_value_weighting_toggle(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test that value weighting changes the KDE surface."""
        weighted = analyze(cluster_points, {"kdeResolution": 4, "kdeBandwidth": 5.0})
        unweighted = analyze(
            cluster_points,
            {"kdeResolution": 4, "kdeBandwidth": 5.0, "kdeWeightByValue": False},
        )

        assert weighted.kde.max_density > unweighted.kde.max_density

    def test_camel_case_dump(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test the camelCase output contract."""
        data = analyze(cluster_points, {"kdeResolution": 2}).model_dump(by_alias=True)

        assert {"kde", "giStar", "points"} <= set(data)
        assert "normalizedDensity" in data["kde"]["grid"][0]
        assert "maxDensity" in data["kde"]
        result = data["giStar"]["results"][0]
        assert {"zScore", "pValue", "giStar", "neighborsCount", "isHotspot"} <= set(result)
        summary = data["giStar"]["summary"]
        assert {"hotspots99", "coldspots95", "notSignificant", "globalStdDev"} <= set(summary)
        assert "weights" not in data["giStar"]

    def test_empty_input(self) -> None:
        """Test that no points give empty outputs."""
        result = analyze([])

        assert result.points == []
        assert result.kde.grid == []
        assert result.gi_star.results == []

    def test_invalid_point_propagates(self) -> None:
        """Test that a bad record aborts the analysis."""
        with pytest.raises(InvalidPointError):
            analyze([{"lat": 0.0, "lng": 0.0}, {"lat": None, "lng": 0.0}])

    def test_invalid_options(self) -> None:
        """Test that option validation errors surface."""
        with pytest.raises(ValidationError):
            analyze([], {"kdeResolution": 0})
        with pytest.raises(ValidationError):
            analyze([], {"giWeightType": "gaussian"})

    def test_deadline(self, incident_points: list[dict[str, Any]]) -> None:
        """Test that an expired deadline raises DeadlineExceeded."""
        with pytest.raises(DeadlineExceeded):
            analyze(incident_points, deadline=Deadline(0))

    def test_cancelled_deadline(self, incident_points: list[dict[str, Any]]) -> None:
        """Test that a cancelled token raises a TimeoutError."""
        deadline = Deadline()
        deadline.cancel()

        with pytest.raises(TimeoutError):
            analyze(incident_points, deadline=deadline)
