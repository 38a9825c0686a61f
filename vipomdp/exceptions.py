"""
Error types raised by the solver.

All of them derive from ValueError so callers that already guard model
construction with ``except ValueError`` keep working.
"""

from typing import Optional


class StructuralError(ValueError):
    """A vector, matrix or operator does not match the model's dimensions."""


class PreconditionViolation(ValueError):
    """An operation was called in a state where it is not defined."""


class ParseError(ValueError):
    """
    Malformed model or alpha-vector file.

    Attributes:
        source: File name (or "<string>") being parsed
        line: 1-based line number of the offending input, if known
        location: Free-form location (e.g. a schema field path), if known
    """

    def __init__(
        self,
        message: str,
        source: str = "<string>",
        line: Optional[int] = None,
        location: Optional[str] = None,
    ):
        self.message = message
        self.source = source
        self.line = line
        self.location = location

        where = source
        if line is not None:
            where += f":{line}"
        if location:
            where += f" ({location})"
        super().__init__(f"{where}: {message}")
