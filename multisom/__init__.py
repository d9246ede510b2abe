"""
Multi-layer Self-Organizing Map (SOM) Package

Training and inference of Self-Organizing Maps whose nodes are split into
named layers, each with its own columns, distance metric, normalizers and
weight. Supports missing values, categorical layers, kd-tree accelerated
BMU search and semi-supervised label propagation.
"""

from .callbacks import Callback, EarlyStoppingCallback, HistoryCallback
from .config import LayerDef, SomConfig, TrainingConfig
from .conv import classes_to_indices, classes_to_table, table_to_classes
from .core import Som, check_tables
from .decay import Constant, DecaySchedule, Linear, Polynomial, Power
from .distance import DistanceCalculator, DistanceMetric
from .errors import ConfigurationError, ShapeError, SomError
from .kdtree import NodeIndex
from .layer import Layer, Size
from .neighborhood import MapMetric, Neighborhood
from .normalizer import Gaussian, Identity, Normalizer, Uniform
from .observability import (
    get_metrics,
    log_prediction_metrics,
    log_training_metrics,
    setup_logging,
    trace_operation,
)
from .prediction import Evaluator, Predictor
from .table import Table
from .training import Trainer, TrainingProgress

__version__ = "0.1.0"

__all__ = [
    "Som",
    "SomConfig",
    "LayerDef",
    "TrainingConfig",
    "Layer",
    "Size",
    "Table",
    "Trainer",
    "TrainingProgress",
    "Predictor",
    "Evaluator",
    "NodeIndex",
    "check_tables",
    "DistanceMetric",
    "DistanceCalculator",
    "Neighborhood",
    "MapMetric",
    "DecaySchedule",
    "Constant",
    "Linear",
    "Power",
    "Polynomial",
    "Normalizer",
    "Identity",
    "Gaussian",
    "Uniform",
    "classes_to_table",
    "table_to_classes",
    "classes_to_indices",
    "Callback",
    "EarlyStoppingCallback",
    "HistoryCallback",
    "SomError",
    "ConfigurationError",
    "ShapeError",
    "setup_logging",
    "trace_operation",
    "get_metrics",
    "log_training_metrics",
    "log_prediction_metrics",
]
