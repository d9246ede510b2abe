"""
KD-tree index over the node vectors for accelerated BMU search
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog
from sklearn.neighbors import KDTree

from .core import LayerData, Som
from .errors import ConfigurationError
from .table import Table

logger = structlog.get_logger(__name__)


class NodeIndex:
    """
    Nearest-node search in the concatenated column space of a SOM's layers

    Each layer's node vectors are scaled by ``sqrt(weight)`` so that the
    squared tree distance equals the combined distance for sum-of-squares
    layers. For other metrics the tree result is an approximation of the
    linear scan. The reported distance is always the combined layer metric
    evaluated at the node found. Nodes at the same tree distance resolve to
    the lowest node index, as in the linear scan.

    The index is a snapshot; build a new one after the weights change.
    """

    def __init__(self, som: Som, layers: Optional[Sequence[str]] = None):
        """
        Build the index

        Args:
            som: The SOM to index
            layers: Names of the layers to search on (default: all)
        """
        self.som = som
        names = [lay.name for lay in som.layers]
        selected = set(names if layers is None else layers)
        unknown = selected - set(names)
        if unknown:
            raise ConfigurationError(f"unknown layers for index: {sorted(unknown)}")
        if not selected:
            raise ConfigurationError("index needs at least one layer")

        self._selected: List[bool] = [name in selected for name in names]
        self._scales = [np.sqrt(lay.weight) for lay in som.layers]

        points = np.hstack(
            [
                lay.matrix * scale
                for lay, scale, use in zip(som.layers, self._scales, self._selected)
                if use
            ]
        )
        self.tree = KDTree(points)
        logger.debug(
            "node_index_built", nodes=points.shape[0], dimensions=points.shape[1]
        )

    def _restrict(self, data: LayerData) -> List[Optional[np.ndarray]]:
        return [values if use else None for values, use in zip(data, self._selected)]

    def _point(self, data: LayerData) -> Optional[np.ndarray]:
        parts = []
        for values, scale, use in zip(data, self._scales, self._selected):
            if not use:
                continue
            if values is None:
                return None
            parts.append(np.asarray(values, dtype=np.float64) * scale)
        return np.concatenate(parts)

    def _nearest(self, points: np.ndarray) -> np.ndarray:
        """Nearest node per point; exact ties resolve to the lowest node index"""
        dist, _ = self.tree.query(points, k=1)
        radius = dist[:, 0] * (1 + 1e-12) + 1e-12
        candidates = self.tree.query_radius(points, r=radius)
        return np.array([c.min() for c in candidates], dtype=np.int64)

    def query(self, data: LayerData) -> Tuple[int, float]:
        """
        Nearest node of one record

        Records with missing values on the indexed layers fall back to
        the exact linear scan.

        Returns:
            (node index, combined distance)
        """
        self.som._check_data(data)
        restricted = self._restrict(data)
        point = self._point(data)
        if point is None or np.isnan(point).any():
            return self.som.bmu(restricted)

        idx = int(self._nearest(point.reshape(1, -1))[0])
        return idx, self.som.distance(restricted, idx)

    def query_tables(
        self, tables: Sequence[Optional[Table]]
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Nearest node of every row of aligned tables

        Complete rows are queried in one batch; rows with missing values
        are resolved one by one.

        Returns:
            (node index per row, combined distance per row)
        """
        rows = next(t.rows for t in tables if t is not None)
        indices = np.zeros(rows, dtype=np.int64)
        distances = np.zeros(rows, dtype=np.float64)

        parts = []
        for table, scale, use in zip(tables, self._scales, self._selected):
            if not use:
                continue
            if table is None:
                parts = None
                break
            parts.append(table.values * scale)

        complete = np.zeros(rows, dtype=bool)
        if parts is not None:
            points = np.hstack(parts)
            complete = ~np.isnan(points).any(axis=1)
            if complete.any():
                indices[complete] = self._nearest(points[complete])

        for row in range(rows):
            data = [None if t is None else t.row(row) for t in tables]
            restricted = self._restrict(data)
            if complete[row]:
                distances[row] = self.som.distance(restricted, int(indices[row]))
            else:
                indices[row], distances[row] = self.som.bmu(restricted)

        return indices, distances
