"""Error taxonomy for the compiler and the storage engine"""

from typing import Optional


class GraphMemError(Exception):
    """Base class for every request-level failure raised by graphmem"""


class ParseError(GraphMemError, ValueError):
    """Malformed query text. Raised before any Query value exists."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class ExecutionError(GraphMemError):
    """Failure while executing a Query. Never leaves a cache entry behind."""


class MissingParameterError(ExecutionError):
    """A required query parameter (e.g. traversal start node) is absent"""


class UnsupportedOperationError(ExecutionError):
    """Operation kind the engine does not implement"""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unsupported operation: {operation}")


class ComputeFieldError(ExecutionError):
    """Aggregate applied to property values it cannot combine"""
