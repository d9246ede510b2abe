"""
Configuration classes for SOM geometry, layers and training
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .conv import classes_to_table
from .decay import DecaySchedule, Polynomial
from .distance import DistanceMetric
from .errors import ConfigurationError
from .layer import Size
from .neighborhood import MapMetric, Neighborhood
from .normalizer import Identity, Normalizer
from .table import Table


def _parse_normalizers(layer_name: str, specs: List[str], n_columns: int) -> List[Normalizer]:
    """Zero specs give identity, one is broadcast, otherwise one per column"""
    if len(specs) > 1 and len(specs) != n_columns:
        raise ConfigurationError(
            f"invalid number of normalizers for layer {layer_name}; "
            "must be zero, one or number of columns"
        )
    if not specs:
        return [Identity() for _ in range(n_columns)]
    if len(specs) == 1:
        return [Normalizer.from_string(specs[0]) for _ in range(n_columns)]
    return [Normalizer.from_string(s) for s in specs]


@dataclass
class LayerDef:
    """Definition of one SOM layer"""

    name: str
    columns: List[str] = field(default_factory=list)
    norm: List[Normalizer] = field(default_factory=list)
    metric: Optional[DistanceMetric] = None
    weight: Optional[float] = None
    categorical: bool = False
    data: Optional[List[float]] = None

    def __post_init__(self):
        if isinstance(self.metric, str):
            self.metric = DistanceMetric.from_name(self.metric)
        self.columns = list(self.columns or [])

    def to_dict(self) -> Dict[str, Any]:
        norms = [n.to_string() for n in self.norm]
        if all(isinstance(n, Identity) for n in self.norm):
            norms = []
        return {
            "name": self.name,
            "columns": list(self.columns),
            "norm": norms,
            "metric": self.metric.value if self.metric is not None else None,
            "weight": self.weight,
            "categorical": self.categorical,
            "data": None if self.data is None else [float(v) for v in self.data],
        }

    @classmethod
    def from_dict(cls, layer_dict: Dict[str, Any]) -> "LayerDef":
        known = {"name", "columns", "norm", "metric", "weight", "categorical", "data"}
        unknown = set(layer_dict) - known
        if unknown:
            raise ConfigurationError(f"unknown layer fields: {sorted(unknown)}")
        if "name" not in layer_dict:
            raise ConfigurationError("layer definition without name")

        name = layer_dict["name"]
        columns = list(layer_dict.get("columns") or [])
        metric = layer_dict.get("metric")
        return cls(
            name=name,
            columns=columns,
            norm=_parse_normalizers(name, list(layer_dict.get("norm") or []), len(columns)),
            metric=DistanceMetric.from_name(metric) if metric else None,
            weight=layer_dict.get("weight"),
            categorical=bool(layer_dict.get("categorical", False)),
            data=layer_dict.get("data"),
        )


@dataclass
class SomConfig:
    """Geometry and layer definitions of a SOM"""

    width: int
    height: int
    layers: List[LayerDef] = field(default_factory=list)
    neighborhood: Neighborhood = Neighborhood.GAUSSIAN
    map_metric: MapMetric = MapMetric.MANHATTAN

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(
                f"grid size must be positive, got {self.width}x{self.height}"
            )
        if isinstance(self.neighborhood, str):
            self.neighborhood = Neighborhood.from_name(self.neighborhood)
        if isinstance(self.map_metric, str):
            self.map_metric = MapMetric.from_name(self.map_metric)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    def layer(self, name: str) -> LayerDef:
        for lay in self.layers:
            if lay.name == name:
                return lay
        raise ConfigurationError(f"unknown layer: {name}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization"""
        return {
            "width": self.width,
            "height": self.height,
            "neighborhood": self.neighborhood.value,
            "map_metric": self.map_metric.value,
            "layers": [lay.to_dict() for lay in self.layers],
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "SomConfig":
        """Create config from dictionary"""
        known = {"width", "height", "neighborhood", "map_metric", "layers"}
        unknown = set(config_dict) - known
        if unknown:
            raise ConfigurationError(f"unknown SOM fields: {sorted(unknown)}")
        try:
            width, height = int(config_dict["width"]), int(config_dict["height"])
        except KeyError as e:
            raise ConfigurationError(f"missing SOM field: {e.args[0]}") from None
        return cls(
            width=width,
            height=height,
            layers=[LayerDef.from_dict(d) for d in config_dict.get("layers", [])],
            neighborhood=Neighborhood.from_name(
                config_dict.get("neighborhood", Neighborhood.GAUSSIAN.value)
            ),
            map_metric=MapMetric.from_name(
                config_dict.get("map_metric", MapMetric.MANHATTAN.value)
            ),
        )

    def prepare_tables(
        self,
        frame: pd.DataFrame,
        ignore: Iterable[str] = (),
        fit_normalizers: bool = True,
        no_data: Optional[str] = None,
    ) -> Tuple[List[Optional[Table]], List[Optional[Table]]]:
        """
        Create one table per layer from a DataFrame

        Categorical layers read the label column named after the layer and
        one-hot encode it; if the layer has no columns yet, they are set to
        the classes found. Numeric layers select their columns, optionally
        fit their normalizers, and are normalized.

        Args:
            frame: Source data, one row per record
            ignore: Names of layers to skip (their table is None)
            fit_normalizers: Fit normalizers to this data before normalizing
            no_data: Label marking a missing class

        Returns:
            (normalized tables, raw tables), in layer order
        """
        ignore = set(ignore)
        tables: List[Optional[Table]] = []
        raw: List[Optional[Table]] = []
        for lay in self.layers:
            if lay.name in ignore:
                tables.append(None)
                raw.append(None)
                continue

            if lay.categorical:
                if lay.name not in frame.columns:
                    raise ConfigurationError(
                        f"label column {lay.name} for categorical layer not found"
                    )
                table = classes_to_table(
                    frame[lay.name].tolist(), lay.columns or None, no_data
                )
                lay.columns = table.column_names
                tables.append(table)
                raw.append(table.copy())
                continue

            if not lay.columns:
                raise ConfigurationError(f"layer {lay.name} has no columns")

            table = Table.from_dataframe(frame, lay.columns)
            raw.append(table.copy())
            if lay.norm:
                if len(lay.norm) != len(lay.columns):
                    raise ConfigurationError(
                        f"invalid number of normalizers for layer {lay.name}"
                    )
                for col, norm in enumerate(lay.norm):
                    if fit_normalizers:
                        norm.initialize(table, col)
                    table.normalize_column(col, norm)
            tables.append(table)

        return tables, raw


@dataclass
class TrainingConfig:
    """Parameters of the epoch loop"""

    epochs: int = 1000
    learning_rate: DecaySchedule = field(
        default_factory=lambda: Polynomial(0.25, 0.01, 2.0)
    )
    radius: DecaySchedule = field(default_factory=lambda: Polynomial(10.0, 0.7, 2.0))
    seed: Optional[int] = None
    shuffle: bool = True
    # Reserved for ViSOM regularization; not applied by the trainer
    visom_lambda: float = 0.0

    def __post_init__(self):
        if self.epochs < 0:
            raise ConfigurationError(f"epochs must not be negative, got {self.epochs}")
        if isinstance(self.learning_rate, str):
            self.learning_rate = DecaySchedule.from_string(self.learning_rate)
        if isinstance(self.radius, str):
            self.radius = DecaySchedule.from_string(self.radius)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epochs": self.epochs,
            "learning_rate": self.learning_rate.to_string(),
            "radius": self.radius.to_string(),
            "seed": self.seed,
            "shuffle": self.shuffle,
            "visom_lambda": self.visom_lambda,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "TrainingConfig":
        known = {"epochs", "learning_rate", "radius", "seed", "shuffle", "visom_lambda"}
        unknown = set(config_dict) - known
        if unknown:
            raise ConfigurationError(f"unknown training fields: {sorted(unknown)}")
        return cls(**config_dict)
