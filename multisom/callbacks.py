"""
Callback system for monitoring and intervention during SOM training
"""

from abc import ABC, abstractmethod
from dataclasses import fields
from typing import TYPE_CHECKING, List

import pandas as pd
import structlog

from .errors import ConfigurationError

if TYPE_CHECKING:
    from .training import Trainer, TrainingProgress

logger = structlog.get_logger(__name__)


class Callback(ABC):
    """Abstract base class for callbacks"""

    @abstractmethod
    def on_epoch_begin(self, epoch: int, trainer: "Trainer") -> None:
        pass

    @abstractmethod
    def on_epoch_end(
        self, epoch: int, trainer: "Trainer", progress: "TrainingProgress"
    ) -> None:
        pass

    @abstractmethod
    def on_training_begin(self, trainer: "Trainer") -> None:
        pass

    @abstractmethod
    def on_training_end(self, trainer: "Trainer") -> None:
        pass


class EarlyStoppingCallback(Callback):
    """Stop training when a progress value stops improving"""

    def __init__(
        self, monitor: str = "error", patience: int = 10, min_delta: float = 1e-4
    ):
        if monitor not in ("mean_dist", "error"):
            raise ConfigurationError(
                f"unknown progress value to monitor: {monitor!r} "
                "(expected one of error, mean_dist)"
            )
        self.monitor = monitor
        self.patience = patience
        self.min_delta = min_delta
        self.best_value = float("inf")
        self.wait = 0

    def on_epoch_begin(self, epoch: int, trainer: "Trainer") -> None:
        pass

    def on_epoch_end(
        self, epoch: int, trainer: "Trainer", progress: "TrainingProgress"
    ) -> None:
        current_value = getattr(progress, self.monitor)
        if current_value < self.best_value - self.min_delta:
            self.best_value = current_value
            self.wait = 0
        else:
            self.wait += 1
            if self.wait >= self.patience:
                trainer.stop_training = True
                logger.info(
                    "early_stopping_triggered",
                    epoch=epoch,
                    monitor=self.monitor,
                    best_value=self.best_value,
                )

    def on_training_begin(self, trainer: "Trainer") -> None:
        self.best_value = float("inf")
        self.wait = 0

    def on_training_end(self, trainer: "Trainer") -> None:
        pass


class HistoryCallback(Callback):
    """Collects the progress snapshot of every epoch"""

    def __init__(self):
        self.history: List["TrainingProgress"] = []

    def on_epoch_begin(self, epoch: int, trainer: "Trainer") -> None:
        pass

    def on_epoch_end(
        self, epoch: int, trainer: "Trainer", progress: "TrainingProgress"
    ) -> None:
        self.history.append(progress)

    def on_training_begin(self, trainer: "Trainer") -> None:
        self.history = []

    def on_training_end(self, trainer: "Trainer") -> None:
        pass

    def to_dataframe(self) -> pd.DataFrame:
        """One row per epoch with the snapshot fields as columns"""
        from .training import TrainingProgress

        columns = [f.name for f in fields(TrainingProgress)]
        return pd.DataFrame([p.to_dict() for p in self.history], columns=columns)
