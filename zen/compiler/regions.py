"""Source positions and regions.

Every token and every AST node carries a Region so diagnostics and tooling
can map back to the exact source span.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from zen.errors import SourceLocation


@dataclass(frozen=True, order=True)
class Position:
    line: int
    col: int

    def __str__(self) -> str:
        return f"{self.line}:{self.col}"

    def location(self, file: Optional[str] = None) -> SourceLocation:
        return SourceLocation(self.line, self.col, file)


RegionTuple = Union[
    tuple[int, int],
    tuple[int, int, int],
    tuple[int, int, int, int],
]


@dataclass(frozen=True, order=True)
class Region:
    start: Position
    end: Position

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Region end {self.end} precedes start {self.start}")

    @classmethod
    def new(cls, start_line: int, start_col: int, end_line: int, end_col: int) -> Region:
        return cls(Position(start_line, start_col), Position(end_line, end_col))

    @classmethod
    def from_tuple(cls, value: RegionTuple) -> Region:
        """Build a region from (line, col), (line, start, end) or a 4-tuple."""
        if len(value) == 2:
            line, col = value
            return cls.new(line, col, line, col)
        if len(value) == 3:
            line, start_col, end_col = value
            return cls.new(line, start_col, line, end_col)
        if len(value) == 4:
            return cls.new(*value)
        raise ValueError(f"Cannot build a region from {value!r}")

    def span(self, other: Region) -> Region:
        """Region from this region's start to other's end."""
        return Region(self.start, other.end)

    def to_list(self) -> list[int]:
        return [self.start.line, self.start.col, self.end.line, self.end.col]

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"
