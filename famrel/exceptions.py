"""Exception classes for famrel."""

from collections.abc import Iterable
from typing import Any


class FamrelBaseException(Exception):
    """A base exception for the famrel package."""

    def __init__(self, message: str):
        """Initialize the exception with a message."""
        self.message = message
        super().__init__(self.message)


class FormatError(FamrelBaseException):
    """An error raised when a boolean formula or an algebraic expression is malformed."""

    def __init__(self, text: str, reason: str):
        """Initialize the exception with a message.

        Args:
            text (str): The text that could not be parsed.
            reason (str): Why the text was rejected.
        """
        self.text = text
        self.reason = reason
        self.message = f"Malformed expression {text!r}: {reason}"
        super().__init__(self.message)


class UnboundVariable(FamrelBaseException):
    """An error raised when an expression references a variable with no bound diagram."""

    def __init__(self, variable: str, available: Iterable[str]):
        """Initialize the exception with a message.

        Args:
            variable (str): The unresolved variable name.
            available (Iterable[str]): The names that were bound.
        """
        self.variable = variable
        self.available = sorted(available)
        self.message = (
            f"Variable {variable} is not bound (available: {self.available})"
        )
        super().__init__(self.message)


class CycleDetected(FamrelBaseException):
    """An error raised when the children relation of an RDG is not acyclic."""

    def __init__(self, path: list[str]):
        """Initialize the exception with a message.

        Args:
            path (list[str]): The node ids along the cycle, first and last equal.
        """
        self.path = path
        self.message = f"Cycle detected in RDG: {' -> '.join(path)}"
        super().__init__(self.message)


class ExternalToolFailure(FamrelBaseException):
    """An error raised when the model checker cannot produce a reliability expression."""

    def __init__(self, model: Any, reason: str):
        """Initialize the exception with a message.

        Args:
            model (Any): The model that could not be checked.
            reason (str): The failure reported by the tool.
        """
        self.model = model
        self.reason = reason
        self.message = f"Model checking failed for {type(model).__name__}: {reason}"
        super().__init__(self.message)
