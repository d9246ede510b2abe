"""
Neighborhood functions and map-space metrics over the node grid
"""

from enum import Enum
from functools import lru_cache
from typing import Dict

import numpy as np

from .registry import enum_registry, lookup


def _squared_grid_distance(x1, y1, x2, y2) -> np.ndarray:
    dx = np.subtract(x1, x2, dtype=np.float64)
    dy = np.subtract(y1, y2, dtype=np.float64)
    return dx * dx + dy * dy


def _scalar_or_array(value: np.ndarray):
    if np.ndim(value) == 0:
        return float(value)
    return value


def _point(sq_dist: np.ndarray) -> np.ndarray:
    # Weight for a zero radius: only the BMU itself is affected
    return np.where(sq_dist == 0, 1.0, 0.0)


def _gaussian(sq_dist: np.ndarray, radius: float) -> np.ndarray:
    if radius <= 0:
        return _point(sq_dist)
    return np.exp(-sq_dist / (2 * radius * radius))


def _cut_gaussian(sq_dist: np.ndarray, radius: float) -> np.ndarray:
    if radius <= 0:
        return _point(sq_dist)
    return np.where(sq_dist <= radius * radius, _gaussian(sq_dist, radius), 0.0)


def _linear(sq_dist: np.ndarray, radius: float) -> np.ndarray:
    if radius <= 0:
        return _point(sq_dist)
    dist = np.sqrt(sq_dist)
    return np.where(dist <= radius, 1 - dist / radius, 0.0)


def _box(sq_dist: np.ndarray, radius: float) -> np.ndarray:
    return np.where(sq_dist <= radius * radius, 1.0, 0.0)


class Neighborhood(Enum):
    """Converts grid distance and radius into an update weight in [0, 1]"""

    GAUSSIAN = "gaussian"
    CUT_GAUSSIAN = "cutgaussian"
    LINEAR = "linear"
    BOX = "box"

    def weight(self, x1, y1, x2, y2, radius: float):
        """Weight of node (x2, y2) for a BMU at (x1, y1).

        Coordinates may be ints or numpy arrays of ints.
        """
        sq_dist = _squared_grid_distance(x1, y1, x2, y2)
        return _scalar_or_array(_WEIGHTS[self](sq_dist, float(radius)))

    def max_radius(self, radius: float) -> int:
        """Grid distance beyond which the weight is exactly zero, -1 for none"""
        if self is Neighborhood.GAUSSIAN:
            return -1
        return max(int(radius), 0)

    @classmethod
    def from_name(cls, name: str) -> "Neighborhood":
        return lookup(build_registry(), name, "neighborhood")


_WEIGHTS = {
    Neighborhood.GAUSSIAN: _gaussian,
    Neighborhood.CUT_GAUSSIAN: _cut_gaussian,
    Neighborhood.LINEAR: _linear,
    Neighborhood.BOX: _box,
}


class MapMetric(Enum):
    """Distance between grid coordinates, used for topographic error"""

    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    CHEBYSHEV = "chebyshev"

    def distance(self, x1, y1, x2, y2):
        dx = np.abs(np.subtract(x1, x2, dtype=np.float64))
        dy = np.abs(np.subtract(y1, y2, dtype=np.float64))
        if self is MapMetric.EUCLIDEAN:
            result = np.sqrt(dx * dx + dy * dy)
        elif self is MapMetric.MANHATTAN:
            result = dx + dy
        else:  # CHEBYSHEV
            result = np.maximum(dx, dy)
        return _scalar_or_array(result)

    @classmethod
    def from_name(cls, name: str) -> "MapMetric":
        return lookup(build_metric_registry(), name, "map metric")


@lru_cache(maxsize=None)
def build_registry() -> Dict[str, Neighborhood]:
    """Name -> neighborhood table, built once on first use"""
    return enum_registry(Neighborhood, "neighborhood")


@lru_cache(maxsize=None)
def build_metric_registry() -> Dict[str, MapMetric]:
    """Name -> map metric table, built once on first use"""
    return enum_registry(MapMetric, "map metric")
