"""
Node grid geometry and per-layer node vectors
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .distance import DistanceMetric
from .errors import ConfigurationError, ShapeError
from .normalizer import Identity, Normalizer


@dataclass(frozen=True)
class Size:
    """Width and height of the node grid.

    Nodes are numbered column by column: ``index = y + x * height``.
    """

    width: int
    height: int

    @property
    def nodes(self) -> int:
        return self.width * self.height

    def index(self, x: int, y: int) -> int:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"coordinates ({x}, {y}) outside {self.width}x{self.height} grid")
        return y + x * self.height

    def coords(self, index: int) -> Tuple[int, int]:
        if not 0 <= index < self.nodes:
            raise IndexError(f"node index {index} out of range for {self.nodes} nodes")
        return index // self.height, index % self.height

    def coordinates(self) -> np.ndarray:
        """``(nodes, 2)`` array of (x, y) per node index"""
        idx = np.arange(self.nodes)
        return np.stack([idx // self.height, idx % self.height], axis=1)


class Layer:
    """One named slab of the node grid with its own columns and metric"""

    def __init__(
        self,
        name: str,
        columns: Sequence[str],
        normalizers: Optional[Sequence[Normalizer]],
        size: Size,
        metric: DistanceMetric,
        weight: float = 1.0,
        categorical: bool = False,
        data: Optional[Sequence[float]] = None,
    ):
        self.name = name
        self._columns: List[str] = list(columns)
        if not self._columns:
            raise ConfigurationError(f"layer {name} has no columns")
        self.size = size
        self.metric = metric
        self.weight = float(weight)
        self.categorical = categorical

        expected = size.nodes * len(self._columns)
        if data is None:
            self._data = np.zeros(expected, dtype=np.float64)
        else:
            self._data = np.array(data, dtype=np.float64).reshape(-1)
            if self._data.size != expected:
                raise ShapeError(
                    f"data length ({self._data.size}) does not match layer "
                    f"size ({expected}) in layer {name}"
                )

        if not normalizers:
            normalizers = [Identity() for _ in self._columns]
        if len(normalizers) != len(self._columns):
            raise ShapeError(
                f"invalid number of normalizers in layer {name}: "
                f"expected {len(self._columns)}, got {len(normalizers)}"
            )
        self.normalizers: List[Normalizer] = list(normalizers)

    @property
    def column_names(self) -> List[str]:
        return list(self._columns)

    @property
    def columns(self) -> int:
        return len(self._columns)

    @property
    def nodes(self) -> int:
        return self.size.nodes

    @property
    def data(self) -> np.ndarray:
        """Flat arena addressed as ``node * columns + col``"""
        return self._data

    @property
    def matrix(self) -> np.ndarray:
        """``(nodes, columns)`` view of the arena"""
        return self._data.reshape(self.nodes, self.columns)

    def column_index(self, name: str) -> int:
        """Index of the named column, or -1 if it does not exist"""
        try:
            return self._columns.index(name)
        except ValueError:
            return -1

    def _offset(self, index: int, col: int) -> int:
        if not 0 <= index < self.nodes:
            raise IndexError(f"node index {index} out of range for {self.nodes} nodes")
        if not 0 <= col < self.columns:
            raise IndexError(f"column {col} out of range for layer {self.name}")
        return index * self.columns + col

    def get(self, x: int, y: int, col: int) -> float:
        return float(self._data[self._offset(self.size.index(x, y), col)])

    def get_at(self, index: int, col: int) -> float:
        return float(self._data[self._offset(index, col)])

    def set(self, x: int, y: int, col: int, value: float) -> None:
        self._data[self._offset(self.size.index(x, y), col)] = value

    def set_at(self, index: int, col: int, value: float) -> None:
        self._data[self._offset(index, col)] = value

    def node(self, x: int, y: int) -> np.ndarray:
        """View of the vector of node (x, y)"""
        return self.node_at(self.size.index(x, y))

    def node_at(self, index: int) -> np.ndarray:
        """View of the vector of the node at ``index``"""
        start = self._offset(index, 0)
        return self._data[start : start + self.columns]

    def coords_at(self, index: int) -> Tuple[int, int]:
        return self.size.coords(index)

    def column_matrix(self, col: int) -> np.ndarray:
        """Values of one column as a ``(height, width)`` grid"""
        return self.matrix[:, col].reshape(self.size.width, self.size.height).T.copy()

    def denormalized(self) -> np.ndarray:
        """Copy of the ``(nodes, columns)`` values in data units"""
        matrix = self.matrix
        out = np.empty_like(matrix)
        for col, norm in enumerate(self.normalizers):
            out[:, col] = norm.denormalize(matrix[:, col])
        return out

    def __repr__(self) -> str:
        return (
            f"Layer(name={self.name!r}, columns={self._columns!r}, "
            f"metric={self.metric.value}, weight={self.weight})"
        )
