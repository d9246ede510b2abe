"""
Pytest configuration and fixtures for multisom tests
"""

import numpy as np
import pandas as pd
import pytest

from multisom import LayerDef, Som, SomConfig, Table, TrainingConfig
from multisom.decay import Linear

# Node vectors equal to the node's grid coordinates on a 3x2 grid, in index order
GRID_DATA = [0, 0, 0, 1, 1, 0, 1, 1, 2, 0, 2, 1]


@pytest.fixture
def grid_config():
    """3x2 SOM with one layer whose node vectors are the grid coordinates"""
    return SomConfig(
        width=3,
        height=2,
        layers=[LayerDef(name="L1", columns=["x", "y"], data=list(GRID_DATA))],
    )


@pytest.fixture
def grid_som(grid_config):
    return Som(grid_config)


@pytest.fixture
def two_layer_som():
    """3x2 SOM with two identical coordinate layers"""
    config = SomConfig(
        width=3,
        height=2,
        layers=[
            LayerDef(name="L1", columns=["x", "y"], data=list(GRID_DATA)),
            LayerDef(name="L2", columns=["a", "b"], data=list(GRID_DATA)),
        ],
    )
    return Som(config)


@pytest.fixture
def prototype_tables():
    """Tables for a 2-layer, 1-column-each SOM holding six prototype points"""
    points = np.array([[0, 0], [0, 1], [1, 0], [1, 1], [2, 0], [2, 1]], dtype=float)
    return [
        Table(["x"], data=points[:, 0]),
        Table(["y"], data=points[:, 1]),
    ]


@pytest.fixture
def prototype_config():
    return SomConfig(
        width=3,
        height=2,
        layers=[
            LayerDef(name="X", columns=["x"]),
            LayerDef(name="Y", columns=["y"]),
        ],
    )


@pytest.fixture
def quick_training():
    """Short training run for fast tests"""
    return TrainingConfig(
        epochs=10,
        learning_rate=Linear(0.5, 0.05),
        radius=Linear(2.0, 0.5),
        seed=42,
    )


@pytest.fixture
def cluster_frame():
    """Two well separated clusters with a label column"""
    rng = np.random.RandomState(42)
    n = 40
    first = rng.normal([0.2, 0.3], 0.05, size=(n // 2, 2))
    second = rng.normal([0.8, 0.7], 0.05, size=(n // 2, 2))
    values = np.vstack([first, second])
    return pd.DataFrame(
        {
            "a": values[:, 0] * 10,
            "b": values[:, 1] * 10,
            "label": ["low"] * (n // 2) + ["high"] * (n // 2),
        }
    )
