"""
Read-only inference and quality measures over a trained SOM
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .core import Som, check_tables
from .errors import ConfigurationError
from .kdtree import NodeIndex
from .neighborhood import MapMetric
from .observability import log_prediction_metrics, trace_operation
from .table import Table

logger = structlog.get_logger(__name__)

BMU_COLUMNS = ["node_id", "node_x", "node_y", "distance"]


class Predictor:
    """
    BMU lookup and derived per-row and per-node analytics

    The tables are the normalized query data, one per layer; ``None``
    excludes a layer from the BMU search. The SOM must not be trained
    while a predictor uses it.
    """

    def __init__(
        self, som: Som, tables: Sequence[Optional[Table]], use_kdtree: bool = False
    ):
        untrained = som.uninitialized_layers()
        if untrained and som.metadata["total_epochs"] == 0:
            raise RuntimeError(
                f"SOM has not been trained yet and layers {untrained} hold no "
                "node values. Train it first."
            )
        self.som = som
        self.tables = list(tables)
        self.rows = check_tables(som, self.tables)
        self.use_kdtree = use_kdtree
        self.index = None
        if use_kdtree:
            searched = [lay.name for lay, t in zip(som.layers, self.tables) if t is not None]
            self.index = NodeIndex(som, searched)

    def row_data(self, row: int) -> List[Optional[np.ndarray]]:
        return [None if t is None else t.row(row) for t in self.tables]

    def bmu(self, row: int) -> Tuple[int, float]:
        """BMU index and distance of one row"""
        data = self.row_data(row)
        if self.index is not None:
            return self.index.query(data)
        return self.som.bmu(data)

    def bmus(self) -> Tuple[np.ndarray, np.ndarray]:
        """BMU index and distance of every row"""
        if self.index is not None:
            indices, distances = self.index.query_tables(self.tables)
        else:
            indices = np.zeros(self.rows, dtype=np.int64)
            distances = np.zeros(self.rows, dtype=np.float64)
            for row in range(self.rows):
                indices[row], distances[row] = self.som.bmu(self.row_data(row))
        log_prediction_metrics("bmus", queries=self.rows, kdtree=self.use_kdtree)
        return indices, distances

    def bmu_table(self) -> Table:
        """Table with node id, grid coordinates and distance per row"""
        indices, distances = self.bmus()
        table = Table(BMU_COLUMNS, rows=self.rows)
        values = table.values
        values[:, 0] = indices
        values[:, 1:3] = self.som.coords[indices]
        values[:, 3] = distances
        return table

    def density(self) -> np.ndarray:
        """Number of rows mapped to each node"""
        indices, _ = self.bmus()
        return np.bincount(indices, minlength=self.som.nodes)

    def error(self, rmse: bool = False) -> np.ndarray:
        """
        Mean squared BMU distance of the rows mapped to each node

        Args:
            rmse: Return the root of the mean instead

        Returns:
            One value per node; nodes without rows get zero
        """
        indices, distances = self.bmus()
        counts = np.bincount(indices, minlength=self.som.nodes)
        sums = np.bincount(indices, weights=distances * distances, minlength=self.som.nodes)
        errors = np.divide(sums, counts, out=np.zeros(self.som.nodes), where=counts > 0)
        if rmse:
            errors = np.sqrt(errors)
        return errors

    def _check_outputs(self, tables: Sequence[Optional[Table]]) -> None:
        if len(tables) != len(self.som.layers):
            raise ConfigurationError(
                f"number of tables ({len(tables)}) does not match "
                f"number of layers ({len(self.som.layers)})"
            )
        for lay, table in zip(self.som.layers, tables):
            if table is None:
                continue
            if table.rows != self.rows:
                raise ConfigurationError(
                    f"number of rows in table for layer {lay.name} ({table.rows}) "
                    f"does not match number of rows ({self.rows})"
                )
            if table.column_names != lay.column_names:
                raise ConfigurationError(
                    f"columns {table.column_names} do not match "
                    f"columns {lay.column_names} of layer {lay.name}"
                )

    def fill_missing(self, tables: Sequence[Optional[Table]]) -> List[Optional[Table]]:
        """
        Fill missing cells with the values of the row's BMU

        The BMU is searched with the predictor's tables, using observed
        values only. Every NaN cell of ``tables`` (usually the raw data in
        data units) is overwritten in place with the denormalized
        prototype value of that column. Complete rows are left untouched.
        """
        tables = list(tables)
        self._check_outputs(tables)

        missing = np.zeros(self.rows, dtype=bool)
        for table in tables:
            if table is not None:
                missing |= table.missing_rows()

        rows = np.flatnonzero(missing)
        with trace_operation("fill_missing", rows=int(rows.size)):
            prototypes = [lay.denormalized() for lay in self.som.layers]
            for row in rows:
                idx, _ = self.bmu(int(row))
                for table, proto in zip(tables, prototypes):
                    if table is None:
                        continue
                    values = table.row(int(row))
                    gaps = np.isnan(values)
                    values[gaps] = proto[idx, gaps]

        log_prediction_metrics("fill_missing", queries=int(rows.size), kdtree=self.use_kdtree)
        return tables

    def predict_layers(
        self, tables: Sequence[Optional[Table]], layer_names: Sequence[str]
    ) -> List[Optional[Table]]:
        """
        Predict the named layers from the remaining ones

        The named layers are ignored during the BMU search. Their entries
        in ``tables`` receive the denormalized BMU values for every row;
        ``None`` entries of named layers are replaced by new tables.

        Returns:
            The output tables, one entry per layer
        """
        tables = list(tables)
        self._check_outputs(tables)

        targets = []
        for name in layer_names:
            idx = self.som.layer_index(name)
            if idx < 0:
                raise ConfigurationError(f"unknown layer to predict: {name}")
            targets.append(idx)
        if len(set(targets)) == len(self.som.layers):
            raise ConfigurationError("at least one layer must remain for the BMU search")

        for idx in targets:
            if tables[idx] is None:
                lay = self.som.layers[idx]
                tables[idx] = Table(lay.column_names, rows=self.rows)

        search = [None if i in targets else t for i, t in enumerate(self.tables)]
        if all(t is None for t in search):
            raise ConfigurationError("no tables left for the BMU search")

        with trace_operation("predict_layers", layers=list(layer_names), rows=self.rows):
            predictor = Predictor(self.som, search, use_kdtree=self.use_kdtree)
            indices, _ = predictor.bmus()
            for idx in targets:
                proto = self.som.layers[idx].denormalized()
                tables[idx].values[:] = proto[indices]

        return tables


class Evaluator:
    """Aggregate quality measures of a predictor's data"""

    def __init__(self, predictor: Predictor):
        self.predictor = predictor

    def _distances(self) -> np.ndarray:
        _, distances = self.predictor.bmus()
        return distances

    def error(self) -> Tuple[float, float, float]:
        """Quantization error, mean square error and root mean square error"""
        distances = self._distances()
        if distances.size == 0:
            return 0.0, 0.0, 0.0
        qe = float(np.mean(distances))
        mse = float(np.mean(distances * distances))
        return qe, mse, float(np.sqrt(mse))

    def quantization_error(self) -> float:
        """Mean BMU distance over all rows"""
        return self.error()[0]

    def mean_square_error(self) -> float:
        return self.error()[1]

    def root_mean_square_error(self) -> float:
        return self.error()[2]

    def topographic_error(self, map_metric: Optional[MapMetric] = None) -> float:
        """
        Fraction of rows whose two best-matching nodes are not adjacent

        Nodes are adjacent when their grid distance under ``map_metric``
        (default: the SOM's map metric) is at most 1. Searches always use
        the exact combined distance.
        """
        predictor = self.predictor
        som = predictor.som
        if map_metric is None:
            map_metric = som.map_metric
        if predictor.rows == 0 or som.nodes < 2:
            return 0.0

        errors = 0
        for row in range(predictor.rows):
            first, _, second, _ = som.best_two(predictor.row_data(row))
            x1, y1 = som.size.coords(first)
            x2, y2 = som.size.coords(second)
            if map_metric.distance(x1, y1, x2, y2) > 1:
                errors += 1

        log_prediction_metrics("topographic_error", queries=predictor.rows)
        return errors / predictor.rows
