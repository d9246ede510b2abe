"""
Exception types raised by multisom
"""


class SomError(Exception):
    """Base class for all multisom errors"""


class ConfigurationError(SomError, ValueError):
    """Invalid identifiers, argument counts or table/layer layouts.

    Always fatal and raised before any computation starts.
    """


class ShapeError(SomError, ValueError):
    """Data length does not fit the declared columns or grid"""
