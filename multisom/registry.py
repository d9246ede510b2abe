"""
Name lookup tables for the pluggable strategy families
"""

from enum import Enum
from typing import Dict, Iterable, Type, TypeVar

from .errors import ConfigurationError

E = TypeVar("E", bound=Enum)
T = TypeVar("T")


def enum_registry(enum_class: Type[E], kind: str) -> Dict[str, E]:
    """Build the name -> variant table of an enum-based strategy family.

    Enum members sharing a value silently become aliases, so they are
    reported here as duplicate names instead.
    """
    registry: Dict[str, E] = {}
    for member_name, member in enum_class.__members__.items():
        if member.name != member_name or member.value in registry:
            raise ValueError(f"duplicate {kind} name: {member.value}")
        registry[member.value] = member
    return registry


def class_registry(classes: Iterable[Type[T]], kind: str) -> Dict[str, Type[T]]:
    """Build the name -> class table of a class-based strategy family"""
    registry: Dict[str, Type[T]] = {}
    for cls in classes:
        name = cls.NAME
        if name in registry:
            raise ValueError(f"duplicate {kind} name: {name}")
        registry[name] = cls
    return registry


def lookup(registry: Dict[str, T], name: str, kind: str) -> T:
    """Resolve a name, failing with a configuration error naming it"""
    key = name.strip().lower() if isinstance(name, str) else name
    try:
        return registry[key]
    except KeyError:
        known = ", ".join(sorted(registry))
        raise ConfigurationError(
            f"unknown {kind}: {name!r} (expected one of {known})"
        ) from None
