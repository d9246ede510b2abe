"""Distance calculation utilities for SOM layers."""

from enum import Enum
from functools import lru_cache
from typing import Dict, Tuple, Union

import numpy as np

from .registry import enum_registry, lookup

ArrayOrFloat = Union[np.ndarray, float]


class DistanceCalculator:
    """NaN-aware distance kernels.

    ``x`` is a node vector, or a matrix with one node vector per row, and is
    never NaN. ``y`` is the query vector; positions where it is NaN do not
    contribute to the distance.
    """

    # Threshold separating "off" from "on" in one-hot encoded columns
    HAMMING_THRESHOLD = 0.5

    @staticmethod
    def _observed(x, y) -> Tuple[np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        mask = ~np.isnan(y)
        if mask.all():
            return x, y
        return x[..., mask], y[mask]

    @staticmethod
    def sum_of_squares(x, y) -> ArrayOrFloat:
        """Calculate the sum of squared differences."""
        x, y = DistanceCalculator._observed(x, y)
        diff = x - y
        return np.sum(diff * diff, axis=-1)

    @staticmethod
    def euclidean(x, y) -> ArrayOrFloat:
        """Calculate Euclidean distance."""
        return np.sqrt(DistanceCalculator.sum_of_squares(x, y))

    @staticmethod
    def manhattan(x, y) -> ArrayOrFloat:
        """Calculate Manhattan distance."""
        x, y = DistanceCalculator._observed(x, y)
        return np.sum(np.abs(x - y), axis=-1)

    @staticmethod
    def hamming(x, y) -> ArrayOrFloat:
        """Fraction of positions on opposite sides of the 0.5 threshold.

        Normalized by the full vector length, also when some positions of
        ``y`` are missing.
        """
        length = np.shape(x)[-1]
        x, y = DistanceCalculator._observed(x, y)
        threshold = DistanceCalculator.HAMMING_THRESHOLD
        mismatches = np.sum((x < threshold) != (y < threshold), axis=-1)
        return mismatches / float(length)


class DistanceMetric(Enum):
    """Per-layer distance metric between node and record vectors"""

    SUM_OF_SQUARES = "sumofsquares"
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    HAMMING = "hamming"

    def distance(self, x, y) -> ArrayOrFloat:
        """Distance between node vector(s) ``x`` and query vector ``y``"""
        return _KERNELS[self](x, y)

    @classmethod
    def from_name(cls, name: str) -> "DistanceMetric":
        return lookup(build_registry(), name, "distance metric")


_KERNELS = {
    DistanceMetric.SUM_OF_SQUARES: DistanceCalculator.sum_of_squares,
    DistanceMetric.EUCLIDEAN: DistanceCalculator.euclidean,
    DistanceMetric.MANHATTAN: DistanceCalculator.manhattan,
    DistanceMetric.HAMMING: DistanceCalculator.hamming,
}


@lru_cache(maxsize=None)
def build_registry() -> Dict[str, DistanceMetric]:
    """Name -> metric table, built once on first use"""
    return enum_registry(DistanceMetric, "distance metric")
