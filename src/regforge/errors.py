from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    NULL_PTR = "NP"
    NO_DEVICE = "ND"
    BAD_PARAM = "BP"
    INVALID = "I"
    NOT_SUPPORTED = "NS"
    BAD_STATE = "BS"
    FAIL = "F"


class RegforgeError(Exception):
    """Base class for every error raised by regforge."""

    kind: ErrorKind = ErrorKind.FAIL

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class ParseError(RegforgeError, ValueError):
    """The register description text could not be parsed.

    ``line`` and ``column`` point at the offending token (1-based) when known.
    """

    kind = ErrorKind.BAD_PARAM

    def __init__(self, message: str, line: int = 0, column: int = 0, source: str = "<dsl>"):
        self.line = line
        self.column = column
        self.source = source
        where = f"{source}:{line}:{column}: " if line else f"{source}: "
        super().__init__(where + message)


class AnalysisError(RegforgeError, ValueError):
    """A parsed description is semantically invalid (bad range, unknown constant, ...)."""

    kind = ErrorKind.INVALID

    def __init__(self, message: str, field: Optional[str] = None, kind: Optional[ErrorKind] = None):
        self.field = field
        prefix = f"field '{field}': " if field else ""
        super().__init__(prefix + message, kind)


class NullPointerError(RegforgeError):
    kind = ErrorKind.NULL_PTR


class ContractViolation(RegforgeError, RuntimeError):
    """Misuse that indicates a bug in generated or hand-written code.

    Raised unconditionally, independent of the validation mode.
    """

    kind = ErrorKind.BAD_STATE
