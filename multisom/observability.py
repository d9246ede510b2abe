"""
Observability infrastructure for multisom
Provides structured logging, metrics and operation tracing
"""

import logging
import os
import time
import uuid
from contextlib import contextmanager
from typing import Optional

import structlog
from prometheus_client import Counter, Gauge, Histogram, generate_latest

# Prometheus Metrics
TRAINING_DURATION = Histogram(
    "multisom_training_duration_seconds",
    "SOM training duration in seconds",
    ["width", "height"],
)

TRAINING_EPOCHS = Counter("multisom_training_epochs_total", "Total training epochs completed")

TRAINING_SAMPLES = Counter(
    "multisom_training_samples_total", "Total records presented during training"
)

MODELS_TRAINED = Counter("multisom_models_trained_total", "Total number of training runs")

QUANTIZATION_ERROR = Gauge(
    "multisom_quantization_error", "Quantization error after the last training epoch"
)

BMU_QUERIES = Counter(
    "multisom_bmu_queries_total", "Total BMU searches by predictors", ["method"]
)

PREDICTION_REQUESTS = Counter(
    "multisom_predictions_total", "Total prediction operations", ["operation"]
)


class CorrelationIDProcessor:
    """Add correlation ID to log entries"""

    def __call__(self, logger, method_name, event_dict):
        event_dict.setdefault("correlation_id", "unknown")
        return event_dict


def setup_logging(log_level: Optional[str] = None, json_format: bool = True) -> None:
    """Configure structured logging with structlog

    The level defaults to the ``LOG_LEVEL`` environment variable, or INFO.
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        CorrelationIDProcessor(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )


def get_correlation_id() -> str:
    """Generate a new correlation ID"""
    return str(uuid.uuid4())


@contextmanager
def trace_operation(operation_name: str, **extra_context):
    """
    Log start, completion or failure of an operation

    The correlation ID is bound to the structlog context for the duration
    of the block, so log entries emitted inside it carry the same ID.
    Exceptions are logged and re-raised.
    """
    logger = structlog.get_logger()
    correlation_id = get_correlation_id()
    start_time = time.time()

    logger.info(
        "Operation started",
        operation=operation_name,
        correlation_id=correlation_id,
        **extra_context,
    )

    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
        try:
            yield correlation_id
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                "Operation failed",
                operation=operation_name,
                duration_seconds=duration,
                error=str(e),
                error_type=type(e).__name__,
                **extra_context,
            )
            raise

    duration = time.time() - start_time
    logger.info(
        "Operation completed",
        operation=operation_name,
        correlation_id=correlation_id,
        duration_seconds=duration,
        **extra_context,
    )


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format"""
    return generate_latest()


def log_training_metrics(width: int, height: int, duration: float, samples: int) -> None:
    """Log a finished training run to Prometheus"""
    TRAINING_DURATION.labels(width=str(width), height=str(height)).observe(duration)
    TRAINING_SAMPLES.inc(samples)
    MODELS_TRAINED.inc()


def log_epoch_metrics(error: float) -> None:
    """Log one finished epoch to Prometheus"""
    TRAINING_EPOCHS.inc()
    QUANTIZATION_ERROR.set(error)


def log_prediction_metrics(operation: str, queries: int = 0, kdtree: bool = False) -> None:
    """Log a prediction operation and the BMU searches it made"""
    PREDICTION_REQUESTS.labels(operation=operation).inc()
    if queries:
        BMU_QUERIES.labels(method="kdtree" if kdtree else "linear").inc(queries)
