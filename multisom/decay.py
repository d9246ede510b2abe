"""
Decay schedules for the learning rate and the neighborhood radius

A schedule maps ``(epoch, total_epochs)`` to a scalar that moves from a
start value at epoch 0 to an end value at ``epoch == total``. Schedules are
written as a name followed by positional arguments, e.g. ``"linear 0.5 0.01"``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from functools import lru_cache
from typing import Dict, Tuple, Type

from .errors import ConfigurationError
from .registry import class_registry, lookup


class DecaySchedule(ABC):
    """Base class of all decay schedules"""

    NAME = ""

    @abstractmethod
    def _interpolate(self, fraction: float) -> float:
        """Value at ``fraction`` in (0, 1) of the training"""

    @property
    def start(self) -> float:
        return self._interpolate(0.0)

    @property
    def end(self) -> float:
        return self._interpolate(1.0)

    def decay(self, epoch: int, total: int) -> float:
        """Value for ``epoch`` of ``total`` epochs"""
        if total <= 0 or epoch >= total:
            return self.end
        if epoch <= 0:
            return self.start
        return self._interpolate(epoch / total)

    @property
    def name(self) -> str:
        return self.NAME

    def args(self) -> Tuple[float, ...]:
        return tuple(getattr(self, f.name) for f in fields(self))

    def to_string(self) -> str:
        return " ".join([self.NAME] + [repr(float(a)) for a in self.args()])

    @staticmethod
    def from_string(text: str) -> "DecaySchedule":
        """Parse ``"<name> [args...]"``; a bare name gives the defaults"""
        parts = text.split() if text else []
        if not parts:
            raise ConfigurationError("empty decay function string")

        cls = lookup(build_registry(), parts[0], "decay function")
        expected = len(fields(cls))
        values = parts[1:]
        if values and len(values) != expected:
            raise ConfigurationError(
                f"decay function {cls.NAME} expects {expected} arguments, "
                f"got {len(values)}: {text!r}"
            )
        try:
            args = [float(v) for v in values]
        except ValueError:
            raise ConfigurationError(
                f"invalid argument for decay function {cls.NAME}: {text!r}"
            ) from None
        return cls(*args)


@dataclass(frozen=True)
class Constant(DecaySchedule):
    """Same value for all epochs"""

    NAME = "constant"

    value: float = 0.1

    def _interpolate(self, fraction: float) -> float:
        return self.value


@dataclass(frozen=True)
class Linear(DecaySchedule):
    """Linear interpolation from start to end"""

    NAME = "linear"

    start_value: float = 0.5
    end_value: float = 0.01

    @property
    def start(self) -> float:
        return self.start_value

    @property
    def end(self) -> float:
        return self.end_value

    def _interpolate(self, fraction: float) -> float:
        return self.end_value + (1 - fraction) * (self.start_value - self.end_value)


@dataclass(frozen=True)
class Power(DecaySchedule):
    """Geometric interpolation, ``start * (end/start) ** fraction``"""

    NAME = "power"

    start_value: float = 0.5
    end_value: float = 0.01

    def __post_init__(self):
        # The ratio is raised to fractional powers
        if self.start_value == 0 or self.end_value / self.start_value <= 0:
            raise ConfigurationError(
                f"decay function {self.NAME} needs non-zero start and end values "
                f"of the same sign, got {self.start_value} and {self.end_value}"
            )

    @property
    def start(self) -> float:
        return self.start_value

    @property
    def end(self) -> float:
        return self.end_value

    def _interpolate(self, fraction: float) -> float:
        return self.start_value * (self.end_value / self.start_value) ** fraction


@dataclass(frozen=True)
class Polynomial(DecaySchedule):
    """``end + (start - end) * (1 - fraction) ** exp``"""

    NAME = "polynomial"

    start_value: float = 0.25
    end_value: float = 0.01
    exp: float = 2.0

    @property
    def start(self) -> float:
        return self.start_value

    @property
    def end(self) -> float:
        return self.end_value

    def _interpolate(self, fraction: float) -> float:
        return self.end_value + (self.start_value - self.end_value) * (
            1 - fraction
        ) ** self.exp


@lru_cache(maxsize=None)
def build_registry() -> Dict[str, Type[DecaySchedule]]:
    """Name -> schedule class table, built once on first use"""
    return class_registry([Constant, Linear, Power, Polynomial], "decay function")
