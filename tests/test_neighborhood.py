"""
Tests for neighborhood functions and map metrics
"""

import numpy as np
import pytest

from multisom.errors import ConfigurationError
from multisom.neighborhood import MapMetric, Neighborhood


@pytest.mark.unit
class TestNeighborhood:
    """Test neighborhood weights"""

    @pytest.mark.unit
    @pytest.mark.parametrize("neighborhood", list(Neighborhood))
    def test_weight_at_center_is_one(self, neighborhood):
        assert neighborhood.weight(2, 3, 2, 3, 1.5) == pytest.approx(1.0)

    @pytest.mark.unit
    @pytest.mark.parametrize("neighborhood", list(Neighborhood))
    def test_weight_in_unit_interval(self, neighborhood):
        xs, ys = np.meshgrid(np.arange(8), np.arange(8), indexing="ij")
        weights = neighborhood.weight(xs.ravel(), ys.ravel(), 3, 4, 2.5)
        assert np.all(weights >= 0.0)
        assert np.all(weights <= 1.0)

    @pytest.mark.unit
    def test_gaussian(self):
        weight = Neighborhood.GAUSSIAN.weight(0, 0, 3, 4, 5.0)
        assert weight == pytest.approx(np.exp(-25 / 50))
        assert Neighborhood.GAUSSIAN.weight(0, 0, 30, 0, 1.0) > 0.0

    @pytest.mark.unit
    def test_cut_gaussian(self):
        assert Neighborhood.CUT_GAUSSIAN.weight(0, 0, 1, 0, 2.0) == pytest.approx(
            np.exp(-1 / 8)
        )
        assert Neighborhood.CUT_GAUSSIAN.weight(0, 0, 3, 0, 2.0) == 0.0

    @pytest.mark.unit
    def test_linear(self):
        assert Neighborhood.LINEAR.weight(0, 0, 1, 0, 4.0) == pytest.approx(0.75)
        assert Neighborhood.LINEAR.weight(0, 0, 4, 0, 4.0) == pytest.approx(0.0)
        assert Neighborhood.LINEAR.weight(0, 0, 5, 0, 4.0) == 0.0

    @pytest.mark.unit
    def test_box(self):
        assert Neighborhood.BOX.weight(0, 0, 2, 0, 2.0) == 1.0
        assert Neighborhood.BOX.weight(0, 0, 2, 1, 2.0) == 0.0

    @pytest.mark.unit
    @pytest.mark.parametrize("neighborhood", list(Neighborhood))
    def test_zero_radius_only_center(self, neighborhood):
        assert neighborhood.weight(1, 1, 1, 1, 0.0) == 1.0
        assert neighborhood.weight(1, 1, 1, 2, 0.0) == 0.0

    @pytest.mark.unit
    def test_max_radius(self):
        assert Neighborhood.GAUSSIAN.max_radius(3.7) == -1
        assert Neighborhood.CUT_GAUSSIAN.max_radius(3.7) == 3
        assert Neighborhood.LINEAR.max_radius(0.4) == 0
        assert Neighborhood.BOX.max_radius(-1.0) == 0

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "neighborhood", [Neighborhood.CUT_GAUSSIAN, Neighborhood.LINEAR, Neighborhood.BOX]
    )
    def test_zero_beyond_max_radius(self, neighborhood):
        radius = 2.6
        lim = neighborhood.max_radius(radius)
        assert neighborhood.weight(0, 0, lim + 1, 0, radius) == 0.0
        assert neighborhood.weight(0, 0, 0, lim + 1, radius) == 0.0

    @pytest.mark.unit
    def test_from_name(self):
        assert Neighborhood.from_name("cutgaussian") is Neighborhood.CUT_GAUSSIAN
        with pytest.raises(ConfigurationError, match="triangle"):
            Neighborhood.from_name("triangle")


@pytest.mark.unit
class TestMapMetric:
    """Test grid distances"""

    @pytest.mark.unit
    def test_distances(self):
        assert MapMetric.EUCLIDEAN.distance(0, 0, 3, 4) == pytest.approx(5.0)
        assert MapMetric.MANHATTAN.distance(0, 0, 3, 4) == pytest.approx(7.0)
        assert MapMetric.CHEBYSHEV.distance(0, 0, 3, 4) == pytest.approx(4.0)

    @pytest.mark.unit
    def test_diagonal_adjacency(self):
        assert MapMetric.CHEBYSHEV.distance(1, 1, 2, 2) <= 1
        assert MapMetric.MANHATTAN.distance(1, 1, 2, 2) > 1
        assert MapMetric.EUCLIDEAN.distance(1, 1, 2, 2) > 1

    @pytest.mark.unit
    def test_from_name(self):
        assert MapMetric.from_name("Chebyshev") is MapMetric.CHEBYSHEV
        with pytest.raises(ConfigurationError):
            MapMetric.from_name("hexagonal")
