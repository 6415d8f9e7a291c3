"""Exceptions raised by uservars.

Resolution-time anomalies (missing references, cycles, ...) are never raised;
they are embedded in results as sentinels. The exceptions here are for caller
bugs and for direct lookups that have no partial result to return.
"""


class UserVarsError(Exception):
    """Base class for uservars errors."""


class InvalidVariableError(UserVarsError, TypeError):
    """A variable declaration does not have the shape its ``varType`` requires."""


class VariableNotFoundError(UserVarsError, KeyError):
    """Nothing is stored at the requested path."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class ScopeLookupError(UserVarsError, TypeError):
    """A variable was requested but the path holds a scope."""


class ConfigError(UserVarsError):
    """Error in uservars configuration."""


class ExpressionError(UserVarsError):
    """An arithmetic expression could not be parsed or evaluated."""
