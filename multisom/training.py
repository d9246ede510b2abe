"""
Epoch-based SOM training and label propagation
"""

import queue
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np
import structlog
from tqdm import tqdm

from .callbacks import Callback
from .config import TrainingConfig
from .core import Som, check_tables
from .errors import ConfigurationError, ShapeError
from .observability import log_epoch_metrics, log_training_metrics, trace_operation
from .table import Table

logger = structlog.get_logger(__name__)

# Marks the end of the progress stream of train_async
_DONE = object()


@dataclass(frozen=True)
class TrainingProgress:
    """Snapshot published after every epoch"""

    epoch: int
    alpha: float
    radius: float
    mean_dist: float
    error: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Trainer:
    """
    Drives the epoch loop of a SOM over aligned tables

    Each epoch presents every row once, in an order drawn from the
    trainer's random state, and pulls the neighborhood of the row's BMU
    towards it. Learning rate and radius follow the configured decay
    schedules.
    """

    def __init__(
        self,
        som: Som,
        tables: Sequence[Optional[Table]],
        config: Optional[TrainingConfig] = None,
        rng: Optional[np.random.RandomState] = None,
        verbose: bool = False,
    ):
        """
        Initialize a trainer

        Args:
            som: The SOM to train, modified in place
            tables: One table per layer; None excludes a layer from training
            config: Training parameters (defaults if None)
            rng: Random state; built from ``config.seed`` if None
            verbose: Whether to show a progress bar
        """
        self.som = som
        self.tables = list(tables)
        self.rows = check_tables(som, self.tables)
        self.config = config if config is not None else TrainingConfig()
        self.verbose = verbose

        if rng is None:
            rng = np.random.RandomState(self.config.seed)
        self.rng = rng

        # Control flag for early stopping
        self.stop_training = False
        self.history: List[TrainingProgress] = []
        self._initialized = False

        if self.config.visom_lambda > 0:
            logger.warning(
                "visom_lambda_ignored",
                visom_lambda=self.config.visom_lambda,
                reason="ViSOM regularization is not implemented",
            )

    def _row(self, row: int) -> List[Optional[np.ndarray]]:
        return [None if t is None else t.row(row) for t in self.tables]

    def _order(self, rows: np.ndarray) -> np.ndarray:
        if self.config.shuffle:
            return self.rng.permutation(rows)
        return rows

    def quantization_error(self) -> float:
        """Mean BMU distance over all rows"""
        if self.rows == 0:
            return 0.0
        total = 0.0
        for row in range(self.rows):
            _, dist = self.som.bmu(self._row(row))
            total += dist
        return total / self.rows

    def _initialize(self) -> None:
        if self.rows == 0:
            raise ConfigurationError("tables have no rows to train on")
        if self._initialized:
            return
        missing = self.som.uninitialized_layers()
        if missing and self.som.metadata["total_epochs"] == 0:
            self.som.randomize(self.rng, missing)
            logger.debug("layers_randomized", layers=missing)
        self._initialized = True

    def _run_epoch(self, epoch: int) -> TrainingProgress:
        total = self.config.epochs
        alpha = self.config.learning_rate.decay(epoch, total)
        radius = self.config.radius.decay(epoch, total)

        dist_sum = 0.0
        for row in self._order(np.arange(self.rows)):
            dist_sum += self.som.learn(self._row(row), alpha, radius)

        progress = TrainingProgress(
            epoch=epoch,
            alpha=alpha,
            radius=radius,
            mean_dist=dist_sum / self.rows,
            error=self.quantization_error(),
        )
        self.som.metadata["total_epochs"] += 1
        self.som.metadata["total_samples_seen"] += self.rows
        log_epoch_metrics(progress.error)
        return progress

    def epochs(self) -> Iterator[TrainingProgress]:
        """
        Run the epoch loop lazily

        Yields one snapshot per finished epoch. Stops early when
        ``stop_training`` is set between epochs.
        """
        self._initialize()
        for epoch in range(self.config.epochs):
            if self.stop_training:
                logger.info("training_stopped", epoch=epoch)
                break
            yield self._run_epoch(epoch)

    def train(self, callbacks: Optional[List[Callback]] = None) -> List[TrainingProgress]:
        """
        Train for all configured epochs

        Args:
            callbacks: List of callback objects

        Returns:
            The snapshot of every epoch run
        """
        callbacks = callbacks or []
        size = self.som.size
        self.history = []

        with trace_operation(
            "train",
            width=size.width,
            height=size.height,
            epochs=self.config.epochs,
            rows=self.rows,
        ):
            start_time = time.time()
            self._initialize()

            for callback in callbacks:
                callback.on_training_begin(self)

            progress_bar = None
            if self.verbose:
                progress_bar = tqdm(total=self.config.epochs, desc="Training SOM")

            try:
                for epoch in range(self.config.epochs):
                    for callback in callbacks:
                        callback.on_epoch_begin(epoch, self)

                    if self.stop_training:
                        logger.info("training_stopped", epoch=epoch)
                        break

                    progress = self._run_epoch(epoch)
                    self.history.append(progress)

                    if progress_bar is not None:
                        progress_bar.update(1)
                        progress_bar.set_postfix(
                            {
                                "δ": f"{progress.mean_dist:.4f}",
                                "QE": f"{progress.error:.4f}",
                                "α": f"{progress.alpha:.4f}",
                                "r": f"{progress.radius:.3f}",
                            }
                        )

                    for callback in callbacks:
                        callback.on_epoch_end(epoch, self, progress)
            finally:
                if progress_bar is not None:
                    progress_bar.close()

            for callback in callbacks:
                callback.on_training_end(self)

            log_training_metrics(
                size.width,
                size.height,
                time.time() - start_time,
                self.rows * len(self.history),
            )

        return self.history

    def train_async(self, maxsize: int = 0) -> Iterator[TrainingProgress]:
        """
        Run the epoch loop in a background thread

        Snapshots are passed through a queue of ``maxsize`` entries
        (0 for unbounded) and yielded as they arrive; the stream ends when
        training finishes. An exception in the training thread is re-raised
        here after the stream ends.
        """
        channel: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        errors: List[BaseException] = []

        def produce():
            try:
                for progress in self.epochs():
                    channel.put(progress)
            except Exception as e:
                errors.append(e)
            finally:
                channel.put(_DONE)

        worker = threading.Thread(target=produce, name="som-trainer", daemon=True)
        worker.start()

        while True:
            item = channel.get()
            if item is _DONE:
                break
            yield item

        worker.join()
        if errors:
            raise errors[0]

    def propagate_labels(
        self, layer_name: str, classes: Sequence[str], indices: Sequence[int]
    ) -> None:
        """
        Semi-supervised label propagation onto a categorical layer

        For every labelled row (index >= 0) the BMU is searched on the
        other layers, and only the target layer is pulled towards the
        one-hot encoded label. Runs the configured number of epochs with
        the configured decay schedules; the target layer starts at zero.
        Layers of a never-trained SOM without initial data are randomized
        first, as before training.

        Args:
            layer_name: Name of the categorical target layer
            classes: Class names, equal to the target layer's columns
            indices: Class index per row, -1 for unlabelled rows
        """
        target = self.som.layer_index(layer_name)
        if target < 0:
            raise ConfigurationError(f"unknown layer for label propagation: {layer_name}")
        layer = self.som.layers[target]
        if not layer.categorical:
            raise ConfigurationError(f"layer {layer_name} is not categorical")
        if list(classes) != layer.column_names:
            raise ConfigurationError(
                f"classes {list(classes)} do not match columns "
                f"{layer.column_names} of layer {layer_name}"
            )

        indices = np.asarray(indices, dtype=np.int64)
        if indices.size != self.rows:
            raise ShapeError(
                f"got {indices.size} labels for {self.rows} rows"
            )
        if indices.max(initial=-1) >= len(classes):
            raise ShapeError(f"class index out of range for {len(classes)} classes")

        labelled = np.flatnonzero(indices >= 0)
        one_hot = np.eye(len(classes))
        total = self.config.epochs

        with trace_operation(
            "propagate_labels", layer=layer_name, labelled_rows=int(labelled.size)
        ):
            self._initialize()
            layer.data[:] = 0.0
            self.som.mark_initialized(layer_name)
            if labelled.size == 0:
                logger.warning("no_labelled_rows", layer=layer_name)
                return

            for epoch in range(total):
                alpha = self.config.learning_rate.decay(epoch, total)
                radius = self.config.radius.decay(epoch, total)
                for row in self._order(labelled):
                    data = self._row(row)
                    data[target] = None
                    bmu, _ = self.som.bmu(data)

                    update: List[Optional[np.ndarray]] = [None] * len(self.som.layers)
                    update[target] = one_hot[indices[row]]
                    self.som.update_weights(bmu, update, alpha, radius)
