"""
Tests for the kd-tree node index
"""

import numpy as np
import pytest

from multisom import LayerDef, NodeIndex, Size, Som, SomConfig, Table
from multisom.distance import DistanceMetric
from multisom.errors import ConfigurationError


@pytest.fixture
def random_som():
    """Sum-of-squares SOM with two weight-1 layers and random nodes"""
    config = SomConfig(
        width=6,
        height=5,
        layers=[
            LayerDef("A", ["a1", "a2"], metric=DistanceMetric.SUM_OF_SQUARES),
            LayerDef("B", ["b1", "b2", "b3"], metric=DistanceMetric.SUM_OF_SQUARES),
        ],
    )
    som = Som(config)
    som.randomize(np.random.RandomState(3))
    return som


@pytest.mark.unit
class TestNodeIndex:
    """kd-tree search against the linear scan"""

    @pytest.mark.unit
    def test_matches_linear_scan(self, random_som):
        rng = np.random.RandomState(11)
        index = NodeIndex(random_som)
        for _ in range(50):
            data = [rng.random_sample(2), rng.random_sample(3)]
            idx, dist = index.query(data)
            expected_idx, expected_dist = random_som.bmu(data)
            assert idx == expected_idx
            assert dist == pytest.approx(expected_dist)

    @pytest.mark.unit
    def test_grid_example(self, two_layer_som):
        index = NodeIndex(two_layer_som)
        data = [np.array([1.0, 2.0]), np.array([1.0, 2.0])]
        assert index.query(data) == (3, pytest.approx(2.0))
        data = [np.array([4.0, 1.0]), np.array([4.0, 1.0])]
        assert index.query(data) == (5, pytest.approx(4.0))

    @pytest.mark.unit
    def test_missing_values_fall_back(self, random_som):
        index = NodeIndex(random_som)
        data = [np.array([0.3, np.nan]), np.array([0.1, 0.9, 0.5])]
        assert index.query(data) == random_som.bmu(data)

    @pytest.mark.unit
    def test_layer_subset(self, random_som):
        index = NodeIndex(random_som, ["B"])
        data = [np.array([0.5, 0.5]), np.array([0.2, 0.4, 0.6])]
        idx, dist = index.query(data)
        expected_idx, expected_dist = random_som.bmu([None, data[1]])
        assert idx == expected_idx
        assert dist == pytest.approx(expected_dist)

    @pytest.mark.unit
    def test_query_tables(self, random_som):
        rng = np.random.RandomState(5)
        a = rng.random_sample((20, 2))
        a[3, 1] = np.nan
        tables = [
            Table(["a1", "a2"], data=a),
            Table(["b1", "b2", "b3"], data=rng.random_sample((20, 3))),
        ]

        indices, distances = NodeIndex(random_som).query_tables(tables)
        for row in range(20):
            idx, dist = random_som.bmu([tables[0].row(row), tables[1].row(row)])
            assert indices[row] == idx
            assert distances[row] == pytest.approx(dist)

    @pytest.mark.unit
    def test_ties_resolve_to_lowest_index(self):
        size = Size(12, 12)
        coords = size.coordinates().astype(float)
        som = Som(
            SomConfig(
                width=12, height=12, layers=[LayerDef("L", ["x", "y"], data=list(coords.ravel()))]
            )
        )
        index = NodeIndex(som)

        # Cell centres and edge midpoints are equally close to 2 or 4 nodes
        steps = np.arange(0.0, 11.0, 0.5)
        gx, gy = np.meshgrid(steps, steps, indexing="ij")
        queries = np.column_stack([gx.ravel(), gy.ravel()])

        indices, _ = index.query_tables([Table(["x", "y"], data=queries)])
        for row, query in enumerate(queries):
            expected_idx, _ = som.bmu([query])
            assert index.query([query])[0] == expected_idx
            assert indices[row] == expected_idx
        assert index.query([np.array([1.0, 0.5])])[0] == size.index(1, 0)

    @pytest.mark.unit
    def test_unknown_layer(self, random_som):
        with pytest.raises(ConfigurationError, match="C"):
            NodeIndex(random_som, ["C"])
        with pytest.raises(ConfigurationError):
            NodeIndex(random_som, [])
