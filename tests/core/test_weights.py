"""Tests for spatial weight matrices and the adaptive threshold."""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest

from hotspotflow.core.geodesy import haversine_km
from hotspotflow.core.schema import WeightType
from hotspotflow.core.weights import (
    ADAPTIVE_DEFAULT_KM,
    ADAPTIVE_MAX_KM,
    ADAPTIVE_MIN_KM,
    SELF_WEIGHT,
    adaptive_threshold,
    binary_weights,
    build_spatial_weights,
    inverse_distance_weights,
)


def _coords(points: list[dict[str, Any]]) -> tuple[list[float], list[float]]:
    return [p["lat"] for p in points], [p["lng"] for p in points]


class TestAdaptiveThreshold:
    """Tests for the data-driven neighbor distance."""

    def test_square_grid_hits_floor(self, square_points: list[dict[str, Any]]) -> None:
        """Test that a ~1 km square clamps to the 1 km floor.

        avgNN ≈ 0.71 km gives 1.77 km, but D/4 ≈ 0.35 km is smaller, so the
        floor applies.
        """
        lats, lngs = _coords(square_points)
        threshold = adaptive_threshold(lats, lngs)

        assert ADAPTIVE_MIN_KM <= threshold <= ADAPTIVE_MAX_KM
        assert threshold == ADAPTIVE_MIN_KM

    def test_inside_band_uses_quarter_diagonal(self) -> None:
        """Test a line of points spaced 0.03° apart on the equator.

        Nearest neighbors are one spacing apart (2.5× gives ~8.3 km) while the
        diagonal is four spacings, so D/4 (~3.34 km) wins.
        """
        lngs = [0.0, 0.03, 0.06, 0.09, 0.12]
        lats = [0.0] * 5
        spacing = haversine_km(0.0, 0.0, 0.0, 0.03)

        threshold = adaptive_threshold(lats, lngs)

        assert ADAPTIVE_MIN_KM < threshold < ADAPTIVE_MAX_KM
        assert threshold == pytest.approx(spacing, rel=1e-9)

    def test_sparse_points_hit_cap(self) -> None:
        """Test that points a degree apart are capped at 15 km."""
        lats = [0.0, 1.0, 2.0, 3.0, 4.0]
        lngs = [0.0] * 5

        assert adaptive_threshold(lats, lngs) == ADAPTIVE_MAX_KM

    @pytest.mark.parametrize("n", [0, 1])
    def test_too_few_points_default(self, n: int) -> None:
        """Test the 10 km default for fewer than two points."""
        assert adaptive_threshold([0.0] * n, [0.0] * n) == ADAPTIVE_DEFAULT_KM

    def test_coincident_points_hit_floor(self) -> None:
        """Test that stacked points do not yield a zero threshold."""
        assert adaptive_threshold([1.0, 1.0, 1.0], [2.0, 2.0, 2.0]) == ADAPTIVE_MIN_KM


class TestWeightMatrices:
    """Tests for binary and inverse-distance weights."""

    @pytest.fixture
    def distances(self) -> np.ndarray:
        return np.array(
            [
                [0.0, 0.5, 2.0],
                [0.5, 0.0, 1.0],
                [2.0, 1.0, 0.0],
            ]
        )

    def test_binary(self, distances: np.ndarray) -> None:
        """Test 0/1 weights with inclusive threshold."""
        matrix = binary_weights(distances, threshold=1.0)
        expected = np.array(
            [
                [1.0, 1.0, 0.0],
                [1.0, 1.0, 1.0],
                [0.0, 1.0, 1.0],
            ]
        )
        np.testing.assert_array_equal(matrix, expected)

    def test_inverse_distance(self, distances: np.ndarray) -> None:
        """Test 1/d weights inside the threshold."""
        matrix = inverse_distance_weights(distances, threshold=1.0)

        assert matrix[0, 1] == pytest.approx(2.0)
        assert matrix[1, 2] == pytest.approx(1.0)
        assert matrix[0, 2] == 0.0
        np.testing.assert_array_equal(np.diag(matrix), SELF_WEIGHT)

    def test_inverse_distance_power(self, distances: np.ndarray) -> None:
        """Test that the exponent controls decay."""
        matrix = inverse_distance_weights(distances, threshold=1.0, power=2.0)
        assert matrix[0, 1] == pytest.approx(4.0)

    def test_coincident_points_get_no_inverse_weight(self) -> None:
        """Test that zero off-diagonal distances do not divide by zero."""
        distances = np.zeros((2, 2))
        matrix = inverse_distance_weights(distances, threshold=1.0)

        assert matrix[0, 1] == 0.0
        assert np.isfinite(matrix).all()


class TestBuildSpatialWeights:
    """Tests for the weight-matrix builder."""

    def test_self_weight_is_exactly_one(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test that the diagonal is exactly 1 for every policy."""
        lats, lngs = _coords(cluster_points)
        for weight_type in WeightType:
            weights = build_spatial_weights(lats, lngs, threshold=1.0, weight_type=weight_type)
            assert (np.diag(weights.matrix) == 1.0).all()

    def test_row_major_and_symmetric(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test the buffer layout and symmetry."""
        lats, lngs = _coords(cluster_points)
        weights = build_spatial_weights(lats, lngs, threshold=1.0)

        assert weights.matrix.flags["C_CONTIGUOUS"]
        assert weights.n == 5
        np.testing.assert_array_equal(weights.matrix, weights.matrix.T)

    def test_neighbors_count(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test that neighbor counts exclude the point itself."""
        lats, lngs = _coords(cluster_points)
        weights = build_spatial_weights(lats, lngs, threshold=1.0)

        assert weights.neighbors_count(0) == 2.0
        assert weights.neighbors_count(3) == 0.0
        np.testing.assert_array_equal(weights.row_sums(), [3.0, 3.0, 3.0, 1.0, 1.0])

    def test_fixed_distance_alias(self, cluster_points: list[dict[str, Any]]) -> None:
        """Test that 'fixed_distance' is accepted as binary."""
        lats, lngs = _coords(cluster_points)
        weights = build_spatial_weights(lats, lngs, threshold=2.0, weight_type="fixed_distance")

        assert weights.weight_type is WeightType.BINARY
        assert weights.neighbors_count(3) == 1.0

    def test_adaptive_when_no_threshold(self, square_points: list[dict[str, Any]]) -> None:
        """Test that the adaptive threshold is recorded on the result."""
        lats, lngs = _coords(square_points)
        weights = build_spatial_weights(lats, lngs)
        assert weights.threshold == ADAPTIVE_MIN_KM

    def test_to_lists(self) -> None:
        """Test the nested-list export."""
        weights = build_spatial_weights([0.0, 0.0], [0.0, 0.001], threshold=1.0)
        assert weights.to_lists() == [[1.0, 1.0], [1.0, 1.0]]

    @pytest.mark.parametrize("threshold", [0.0, -1.0])
    def test_non_positive_threshold_rejected(self, threshold: float) -> None:
        """Test that a non-positive threshold is an error."""
        with pytest.raises(ValueError, match="threshold"):
            build_spatial_weights([0.0, 1.0], [0.0, 1.0], threshold=threshold)

    def test_non_positive_power_rejected(self) -> None:
        """Test that a non-positive exponent is an error."""
        with pytest.raises(ValueError, match="power"):
            build_spatial_weights(
                [0.0, 1.0], [0.0, 1.0], threshold=1.0, weight_type="inverse_distance", power=0
            )

    def test_unknown_weight_type(self) -> None:
        """Test that an unknown policy is rejected."""
        with pytest.raises(ValueError):
            build_spatial_weights([0.0, 1.0], [0.0, 1.0], threshold=1.0, weight_type="kernel")
