"""
Per-column value normalizers

Normalizers are fitted once from the training data via ``initialize`` and
are treated as read-only afterwards. The ``to_string`` form carries the
fitted parameters, so a trained model's normalizers survive an export.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from functools import lru_cache
from typing import Dict, Tuple, Type

from .errors import ConfigurationError
from .registry import class_registry, lookup


class Normalizer(ABC):
    """Base class of all column normalizers"""

    NAME = ""

    @abstractmethod
    def normalize(self, value):
        """Transform a value (or numpy array) into normalized space"""

    @abstractmethod
    def denormalize(self, value):
        """Inverse of ``normalize``"""

    @abstractmethod
    def initialize(self, source, column: int) -> None:
        """Fit parameters from a table-like ``source``.

        ``source`` must provide ``mean_std_dev(column)`` and ``range(column)``.
        """

    @property
    def name(self) -> str:
        return self.NAME

    def params(self) -> Tuple[float, ...]:
        return tuple(getattr(self, f.name) for f in fields(self))

    def to_string(self) -> str:
        return " ".join([self.NAME] + [repr(float(p)) for p in self.params()])

    @staticmethod
    def from_string(text: str) -> "Normalizer":
        """Parse ``"<name> [params...]"``; a bare name gives an unfitted instance"""
        parts = text.split() if text else []
        if not parts:
            raise ConfigurationError("empty normalizer string")

        cls = lookup(build_registry(), parts[0], "normalizer")
        expected = len(fields(cls))
        values = parts[1:]
        if values and len(values) != expected:
            raise ConfigurationError(
                f"normalizer {cls.NAME} expects 0 or {expected} arguments, "
                f"got {len(values)}: {text!r}"
            )
        try:
            args = [float(v) for v in values]
        except ValueError:
            raise ConfigurationError(
                f"invalid argument for normalizer {cls.NAME}: {text!r}"
            ) from None
        return cls(*args)


@dataclass
class Identity(Normalizer):
    """No-op normalizer"""

    NAME = "none"

    def normalize(self, value):
        return value

    def denormalize(self, value):
        return value

    def initialize(self, source, column: int) -> None:
        pass


@dataclass
class Gaussian(Normalizer):
    """Z-score normalization"""

    NAME = "gaussian"

    mean: float = 0.0
    std: float = 1.0

    def normalize(self, value):
        return (value - self.mean) / self.std

    def denormalize(self, value):
        return value * self.std + self.mean

    def initialize(self, source, column: int) -> None:
        mean, std = source.mean_std_dev(column)
        if math.isnan(mean):
            mean = 0.0
        # Constant columns keep a unit scale
        if not std or math.isnan(std):
            std = 1.0
        self.mean = float(mean)
        self.std = float(std)


@dataclass
class Uniform(Normalizer):
    """Min-max normalization to [0, 1]"""

    NAME = "uniform"

    low: float = 0.0
    high: float = 1.0

    def normalize(self, value):
        return (value - self.low) / (self.high - self.low)

    def denormalize(self, value):
        return value * (self.high - self.low) + self.low

    def initialize(self, source, column: int) -> None:
        low, high = source.range(column)
        # All-missing columns keep the unit interval
        if not (math.isfinite(low) and math.isfinite(high)):
            low, high = 0.0, 1.0
        if not high > low:
            high = low + 1.0
        self.low = float(low)
        self.high = float(high)


@lru_cache(maxsize=None)
def build_registry() -> Dict[str, Type[Normalizer]]:
    """Name -> normalizer class table, built once on first use"""
    return class_registry([Identity, Gaussian, Uniform], "normalizer")
