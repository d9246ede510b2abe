"""
Tests for distance calculation utilities
"""

import numpy as np
import pytest

from multisom.distance import DistanceCalculator, DistanceMetric, build_registry
from multisom.errors import ConfigurationError


@pytest.mark.unit
class TestDistanceCalculator:
    """Test distance calculation methods"""

    @pytest.mark.unit
    def test_euclidean_distance(self):
        distance = DistanceCalculator.euclidean([0, 0], [3, 4])
        assert distance == pytest.approx(5.0)

        distance = DistanceCalculator.euclidean([1, 1], [0, 1])
        assert distance == pytest.approx(1.0)

    @pytest.mark.unit
    def test_sum_of_squares(self):
        assert DistanceCalculator.sum_of_squares([1, 2], [2, 4]) == pytest.approx(5.0)

    @pytest.mark.unit
    def test_manhattan_distance(self):
        assert DistanceCalculator.manhattan([0, 0], [1, 0]) == pytest.approx(1.0)
        assert DistanceCalculator.manhattan([1, 1], [0, 0]) == pytest.approx(2.0)

    @pytest.mark.unit
    def test_hamming_distance(self):
        distance = DistanceCalculator.hamming([1, 0, 0, 0], [0, 1, 0, 0])
        assert distance == pytest.approx(0.5)

        distance = DistanceCalculator.hamming([0.9, 0.1], [0.6, 0.4])
        assert distance == pytest.approx(0.0)

    @pytest.mark.unit
    def test_hamming_divides_by_full_length(self):
        distance = DistanceCalculator.hamming([1, 0, 0, 0], [0, np.nan, np.nan, np.nan])
        assert distance == pytest.approx(0.25)

    @pytest.mark.unit
    def test_row_wise_on_matrix(self):
        nodes = np.array([[0, 0], [1, 0], [3, 4]])
        distances = DistanceCalculator.euclidean(nodes, [0, 0])
        np.testing.assert_array_almost_equal(distances, [0.0, 1.0, 5.0])

        distances = DistanceCalculator.manhattan(nodes, [1, 1])
        np.testing.assert_array_almost_equal(distances, [2.0, 1.0, 5.0])


@pytest.mark.unit
class TestDistanceMetric:
    """Properties every metric must fulfill"""

    vectors = [
        np.array([0.1, 0.7, 0.3, 0.9]),
        np.array([0.6, 0.2, 0.8, 0.4]),
        np.array([1.0, 0.0, 0.0, 1.0]),
    ]

    @pytest.mark.unit
    @pytest.mark.parametrize("metric", list(DistanceMetric))
    def test_identity(self, metric):
        for x in self.vectors:
            assert metric.distance(x, x) == pytest.approx(0.0)

    @pytest.mark.unit
    @pytest.mark.parametrize("metric", list(DistanceMetric))
    def test_symmetry(self, metric):
        for x in self.vectors:
            for y in self.vectors:
                assert metric.distance(x, y) == pytest.approx(metric.distance(y, x))

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "metric",
        [DistanceMetric.SUM_OF_SQUARES, DistanceMetric.EUCLIDEAN, DistanceMetric.MANHATTAN],
    )
    def test_nan_equals_omitted_dimension(self, metric):
        x = np.array([0.1, 0.7, 0.3, 0.9])
        y = np.array([0.6, np.nan, 0.8, 0.4])
        keep = [0, 2, 3]
        assert metric.distance(x, y) == pytest.approx(metric.distance(x[keep], y[keep]))

    @pytest.mark.unit
    def test_all_missing_is_zero(self):
        y = np.full(3, np.nan)
        for metric in DistanceMetric:
            assert metric.distance([0.2, 0.5, 0.9], y) == pytest.approx(0.0)

    @pytest.mark.unit
    def test_matrix_with_missing_values(self):
        nodes = np.array([[0.0, 0.0, 5.0], [1.0, 1.0, -5.0]])
        distances = DistanceMetric.EUCLIDEAN.distance(nodes, [1.0, 1.0, np.nan])
        np.testing.assert_array_almost_equal(distances, [np.sqrt(2), 0.0])


@pytest.mark.unit
class TestRegistry:
    """Test name lookup of metrics"""

    @pytest.mark.unit
    def test_from_name(self):
        assert DistanceMetric.from_name("euclidean") is DistanceMetric.EUCLIDEAN
        assert DistanceMetric.from_name("SumOfSquares") is DistanceMetric.SUM_OF_SQUARES
        assert DistanceMetric.from_name(" hamming ") is DistanceMetric.HAMMING

    @pytest.mark.unit
    def test_unknown_name(self):
        with pytest.raises(ConfigurationError, match="cosine"):
            DistanceMetric.from_name("cosine")

    @pytest.mark.unit
    def test_registry_is_complete_and_cached(self):
        registry = build_registry()
        assert set(registry) == {m.value for m in DistanceMetric}
        assert build_registry() is registry
