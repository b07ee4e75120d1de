"""Structured error objects for the Zen compiler.

Every error is machine-readable: a kind tag, a message, an optional source
location and a details dict. The pipeline is fail-fast, so a CompileError
usually carries exactly one ZenError.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    BAD_CHAR = "bad_char"
    BAD_NUMBER = "bad_number"
    BAD_END_OF_INPUT = "bad_end_of_input"
    UNSUPPORTED_FORM = "unsupported_form"


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    file: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.file or '<input>'}:{self.line}:{self.column}"


@dataclass
class ZenError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def line(self) -> Optional[int]:
        return self.location.line if self.location else None

    @property
    def column(self) -> Optional[int]:
        return self.location.column if self.location else None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def bad_char(line: int, column: int, char: str, file: Optional[str] = None) -> ZenError:
    return ZenError(
        kind=ErrorKind.BAD_CHAR,
        message=f"Unexpected character {char!r}",
        location=SourceLocation(line, column, file),
        details={"char": char},
    )


def bad_number(line: int, column: int, message: str, file: Optional[str] = None) -> ZenError:
    return ZenError(
        kind=ErrorKind.BAD_NUMBER,
        message=f"Invalid number literal: {message}",
        location=SourceLocation(line, column, file),
        details={"reason": message},
    )


def bad_end_of_input(line: int, column: int, file: Optional[str] = None) -> ZenError:
    return ZenError(
        kind=ErrorKind.BAD_END_OF_INPUT,
        message="Unexpected end of input",
        location=SourceLocation(line, column, file),
    )


def unsupported_form(
    message: str,
    location: Optional[SourceLocation] = None,
    form: Optional[str] = None,
) -> ZenError:
    details: dict[str, Any] = {}
    if form is not None:
        details["form"] = form
    return ZenError(
        kind=ErrorKind.UNSUPPORTED_FORM,
        message=message,
        location=location,
        details=details,
    )


class CompileError(Exception):
    """Exception wrapping one or more ZenErrors."""

    def __init__(self, errors: list[ZenError] | ZenError):
        if isinstance(errors, ZenError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    @property
    def error(self) -> ZenError:
        """The first (for fail-fast stages, the only) error."""
        return self.errors[0]

    def _format(self) -> str:
        return "\n".join(str(e) for e in self.errors)

    def to_dict(self) -> dict[str, Any]:
        return self.error.to_dict()

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)
