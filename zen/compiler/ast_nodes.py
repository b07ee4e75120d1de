"""Zen AST node definitions.

Three expression kinds (Number, Symbol, List) and the Module that holds the
top-level forms of one compilation unit. Nodes are frozen once built.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from zen.compiler.regions import Region


@dataclass(frozen=True)
class Expr:
    """Base class for expressions."""
    region: Region

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class NumberExpr(Expr):
    value: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Number", "region": self.region.to_list(), "value": self.value}


@dataclass(frozen=True)
class SymbolExpr(Expr):
    value: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Symbol", "region": self.region.to_list(), "value": self.value}


@dataclass(frozen=True)
class ListExpr(Expr):
    expressions: tuple[Expr, ...] = ()

    @property
    def head(self) -> Optional[Expr]:
        return self.expressions[0] if self.expressions else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "List",
            "region": self.region.to_list(),
            "expressions": [e.to_dict() for e in self.expressions],
        }


@dataclass(frozen=True)
class Module:
    filename: Optional[str] = None
    expressions: tuple[Expr, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "expressions": [e.to_dict() for e in self.expressions],
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def walk(expr: Expr):
    """Yield expr and every nested expression, depth first, in source order."""
    stack = [expr]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, ListExpr):
            stack.extend(reversed(node.expressions))
