"""
Error kinds raised by the thrust commander core.

All of them derive from ValueError so callers that already validate inputs
with ``except ValueError`` keep working.
"""


class ThrustCommanderError(Exception):
    """Base class for thrust commander errors."""


class ConfigurationError(ThrustCommanderError, ValueError):
    """Malformed or degenerate vehicle configuration."""


class ConfigurationMismatchError(ThrustCommanderError, ValueError):
    """A closed-form actuation pattern disagrees with the installed geometry."""


class OutOfRangeError(ThrustCommanderError, ValueError):
    """Force or command outside a calibration table's domain."""


class PhysicallyInfeasibleError(ThrustCommanderError, ValueError):
    """Requested motion cannot be produced by the given force and drag."""
