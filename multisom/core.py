"""
Core multi-layer SOM implementation
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import LayerDef, SomConfig
from .distance import DistanceMetric
from .errors import ConfigurationError, ShapeError
from .layer import Layer, Size
from .table import Table

# One entry per layer: a vector of that layer's columns, or None to skip it
LayerData = Sequence[Optional[np.ndarray]]


def check_tables(som: "Som", tables: Sequence[Optional[Table]]) -> int:
    """
    Validate that tables line up with the SOM's layers

    ``None`` entries exclude a layer and are not checked.

    Returns:
        The common number of rows
    """
    if not tables:
        raise ConfigurationError("no tables provided")
    if len(tables) != len(som.layers):
        raise ConfigurationError(
            f"number of tables ({len(tables)}) does not match "
            f"number of layers ({len(som.layers)})"
        )

    rows = -1
    for table in tables:
        if table is None:
            continue
        if rows == -1:
            rows = table.rows
        elif rows != table.rows:
            raise ConfigurationError(
                f"number of rows in table ({table.rows}) does not match "
                f"number of rows in table ({rows})"
            )
    if rows == -1:
        raise ConfigurationError("no tables provided, all entries are None")

    for lay, table in zip(som.layers, tables):
        if table is None:
            continue
        if table.columns != lay.columns:
            raise ConfigurationError(
                f"number of columns in table ({table.columns}) does not match "
                f"number of columns in layer {lay.name} ({lay.columns})"
            )
        for j, (got, want) in enumerate(zip(table.column_names, lay.column_names)):
            if got != want:
                raise ConfigurationError(
                    f"column {j} in table ({got}) does not match "
                    f"column {j} in layer {lay.name} ({want})"
                )
    return rows


class Som:
    """
    Self-Organizing Map with several named layers over one node grid

    Every layer holds one vector per node. The distance of a record to a
    node is the weighted sum of the per-layer distances. The grid is fixed
    after construction.
    """

    def __init__(self, config: SomConfig):
        """
        Build the layers of a SOM

        Args:
            config: Grid size, neighborhood and layer definitions. Layers
                without a metric get Hamming (categorical) or Euclidean,
                layers without a weight get 1.
        """
        if not config.layers:
            raise ConfigurationError("SOM must have at least one layer")

        seen = set()
        for lay in config.layers:
            if lay.name in seen:
                raise ConfigurationError(f"duplicate layer name: {lay.name}")
            seen.add(lay.name)

        self.config = config
        self.size: Size = config.size
        self.neighborhood = config.neighborhood
        self.map_metric = config.map_metric
        self.layers: List[Layer] = [self._build_layer(lay) for lay in config.layers]
        self.coords = self.size.coordinates()
        # Layers holding node values, given or learned
        self._initialized = {
            lay.name for lay in config.layers if lay.data is not None and len(lay.data)
        }

        self.metadata: Dict[str, Any] = {
            "creation_time": datetime.now().isoformat(),
            "total_epochs": 0,
            "total_samples_seen": 0,
        }

    def _build_layer(self, lay: LayerDef) -> Layer:
        if not lay.columns:
            raise ConfigurationError(f"layer {lay.name} has no columns")

        metric = lay.metric
        if metric is None:
            metric = DistanceMetric.HAMMING if lay.categorical else DistanceMetric.EUCLIDEAN
        weight = lay.weight if lay.weight else 1.0

        return Layer(
            lay.name,
            lay.columns,
            lay.norm,
            self.size,
            metric,
            weight=weight,
            categorical=lay.categorical,
            data=lay.data if lay.data is not None and len(lay.data) else None,
        )

    @property
    def nodes(self) -> int:
        return self.size.nodes

    def layer(self, name: str) -> Layer:
        idx = self.layer_index(name)
        if idx < 0:
            raise ConfigurationError(f"unknown layer: {name}")
        return self.layers[idx]

    def layer_index(self, name: str) -> int:
        """Index of the named layer, or -1 if it does not exist"""
        for i, lay in enumerate(self.layers):
            if lay.name == name:
                return i
        return -1

    def _check_data(self, data: LayerData) -> None:
        if len(data) != len(self.layers):
            raise ShapeError(
                f"expected data for {len(self.layers)} layers, got {len(data)}"
            )
        for lay, values in zip(self.layers, data):
            if values is not None and np.shape(values)[-1] != lay.columns:
                raise ShapeError(
                    f"expected {lay.columns} values for layer {lay.name}, "
                    f"got {np.shape(values)[-1]}"
                )

    def distances(self, data: LayerData) -> np.ndarray:
        """Combined weighted distance from a record to every node"""
        self._check_data(data)
        total = np.zeros(self.nodes, dtype=np.float64)
        for lay, values in zip(self.layers, data):
            if values is None:
                continue
            total += lay.weight * lay.metric.distance(lay.matrix, values)
        return total

    def distance(self, data: LayerData, node: int) -> float:
        """Combined weighted distance from a record to one node"""
        self._check_data(data)
        total = 0.0
        for lay, values in zip(self.layers, data):
            if values is None:
                continue
            total += lay.weight * float(lay.metric.distance(lay.node_at(node), values))
        return total

    def bmu(self, data: LayerData) -> Tuple[int, float]:
        """
        Best-matching unit of a record

        Ties resolve to the lowest node index. A record without any
        observed value matches node 0 at distance 0.

        Returns:
            (node index, combined distance)
        """
        dists = self.distances(data)
        idx = int(np.argmin(dists))
        return idx, float(dists[idx])

    def best_two(self, data: LayerData) -> Tuple[int, float, int, float]:
        """
        First and second best-matching units of a record

        For a single-node map the second unit is -1 at infinite distance.

        Returns:
            (first index, first distance, second index, second distance)
        """
        dists = self.distances(data)
        order = np.argsort(dists, kind="stable")
        first = int(order[0])
        if order.size < 2:
            return first, float(dists[first]), -1, float("inf")
        second = int(order[1])
        return first, float(dists[first]), second, float(dists[second])

    def update_weights(
        self, bmu: int, data: LayerData, alpha: float, radius: float
    ) -> None:
        """
        Pull the nodes around ``bmu`` towards a record

        Only nodes within the neighborhood's cutoff window are visited;
        missing record values and ``None`` layers leave the nodes as they are.
        """
        width, height = self.size.width, self.size.height
        lim = self.neighborhood.max_radius(radius)
        if lim < 0:
            lim = self.nodes

        x_bmu, y_bmu = self.size.coords(bmu)
        xs = np.arange(max(x_bmu - lim, 0), min(x_bmu + lim, width - 1) + 1)
        ys = np.arange(max(y_bmu - lim, 0), min(y_bmu + lim, height - 1) + 1)
        gx, gy = np.meshgrid(xs, ys, indexing="ij")
        gx, gy = gx.ravel(), gy.ravel()

        weights = np.asarray(self.neighborhood.weight(gx, gy, x_bmu, y_bmu, radius))
        keep = weights > 0
        if not keep.any():
            return
        nodes = (gy + gx * height)[keep]
        factor = (alpha * weights[keep])[:, np.newaxis]

        for lay, values in zip(self.layers, data):
            if values is None:
                continue
            values = np.asarray(values, dtype=np.float64)
            cols = np.flatnonzero(~np.isnan(values))
            if cols.size == 0:
                continue
            window = np.ix_(nodes, cols)
            matrix = lay.matrix
            block = matrix[window]
            matrix[window] = block + factor * (values[cols] - block)

    def learn(self, data: LayerData, alpha: float, radius: float) -> float:
        """Find the BMU of a record and update around it; returns the BMU distance"""
        idx, dist = self.bmu(data)
        self.update_weights(idx, data, alpha, radius)
        return dist

    def node_distance(self, node1: int, node2: int) -> float:
        """Combined weighted distance between two nodes"""
        total = 0.0
        for lay in self.layers:
            total += lay.weight * float(
                lay.metric.distance(lay.node_at(node1), lay.node_at(node2))
            )
        return total

    def u_matrix(self) -> np.ndarray:
        """
        Unified distance matrix of shape ``(2 * height - 1, 2 * width - 1)``

        Cell ``[2y, 2x + 1]`` holds the distance between node (x, y) and its
        right neighbor, cell ``[2y + 1, 2x]`` the one to the node below. The
        remaining cells hold the mean of their direct neighbors.
        """
        width, height = self.size.width, self.size.height
        u_height, u_width = 2 * height - 1, 2 * width - 1
        u = np.full((u_height, u_width), np.nan)

        for x in range(width):
            for y in range(height):
                here = self.size.index(x, y)
                if x < width - 1:
                    u[2 * y, 2 * x + 1] = self.node_distance(here, self.size.index(x + 1, y))
                if y < height - 1:
                    u[2 * y + 1, 2 * x] = self.node_distance(here, self.size.index(x, y + 1))

        for x in range(u_width):
            for y in range(u_height):
                if x % 2 != y % 2:
                    continue
                neighbors = []
                if x > 0:
                    neighbors.append(u[y, x - 1])
                if x < u_width - 1:
                    neighbors.append(u[y, x + 1])
                if y > 0:
                    neighbors.append(u[y - 1, x])
                if y < u_height - 1:
                    neighbors.append(u[y + 1, x])
                if neighbors:
                    u[y, x] = sum(neighbors) / len(neighbors)

        return u

    def randomize(
        self, rng: np.random.RandomState, layers: Optional[Sequence[str]] = None
    ) -> None:
        """Fill the named layers (default: all) with uniform random values in [0, 1)"""
        for lay in self.layers:
            if layers is None or lay.name in layers:
                lay.data[:] = rng.random_sample(lay.data.size)
                self._initialized.add(lay.name)

    def mark_initialized(self, name: str) -> None:
        """Record that the named layer holds node values"""
        self._initialized.add(self.layer(name).name)

    def uninitialized_layers(self) -> List[str]:
        """Names of layers that were neither given data nor filled since"""
        return [lay.name for lay in self.layers if lay.name not in self._initialized]

    def to_config(self, denormalize: bool = False) -> SomConfig:
        """
        Snapshot of the SOM as a configuration carrying the node data

        With ``denormalize`` the node values are converted back to data
        units; such a snapshot is meant for reporting and cannot be loaded
        for further use with the same normalizers.
        """
        layers = []
        for lay in self.layers:
            values = lay.denormalized() if denormalize else lay.matrix
            layers.append(
                LayerDef(
                    name=lay.name,
                    columns=lay.column_names,
                    norm=list(lay.normalizers),
                    metric=lay.metric,
                    weight=lay.weight,
                    categorical=lay.categorical,
                    data=[float(v) for v in np.ravel(values)],
                )
            )
        return SomConfig(
            width=self.size.width,
            height=self.size.height,
            layers=layers,
            neighborhood=self.neighborhood,
            map_metric=self.map_metric,
        )

    def export(self, denormalize: bool = False) -> Dict[str, Any]:
        """Dictionary form of ``to_config``"""
        return self.to_config(denormalize).to_dict()

    @classmethod
    def from_dict(cls, som_dict: Dict[str, Any]) -> "Som":
        """Rebuild a SOM, including node data, from ``export`` output"""
        return cls(SomConfig.from_dict(som_dict))

    def __repr__(self) -> str:
        names = [lay.name for lay in self.layers]
        return (
            f"Som(size={self.size.width}x{self.size.height}, layers={names}, "
            f"neighborhood={self.neighborhood.value})"
        )
