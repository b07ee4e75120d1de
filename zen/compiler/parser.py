"""Zen Parser - recursive-descent s-expression parser.

Consumes the lexer through a one-token lookahead buffer and builds a
positioned AST. Fail-fast: the first lexical or structural error aborts
the whole unit, no partial Module is returned.
"""

from __future__ import annotations

import logging
from typing import Optional

from zen.compiler.ast_nodes import Expr, ListExpr, Module, NumberExpr, SymbolExpr
from zen.compiler.lexer import Lexer, Token, TokenType
from zen.errors import CompileError, ZenError, bad_end_of_input

logger = logging.getLogger(__name__)


class Parser:
    """LL(1) parser for s-expressions."""

    def __init__(self, lexer: Lexer, filename: Optional[str] = None):
        self.lexer = lexer
        self.filename = filename
        self.token0: Optional[Token] = None

    def _end_of_input(self) -> CompileError:
        pos = self.lexer.position
        return CompileError(bad_end_of_input(pos.line, pos.col, self.filename))

    def peek(self) -> Optional[Token]:
        if self.token0 is None:
            self.token0 = self._next()
        return self.token0

    def advance(self) -> Optional[Token]:
        if self.token0 is not None:
            token, self.token0 = self.token0, None
            return token
        return self._next()

    def _next(self) -> Optional[Token]:
        item = next(self.lexer, None)
        if isinstance(item, ZenError):
            raise CompileError(item)
        if item is not None and item.type is TokenType.EOF:
            return None
        return item

    # -------------------------------------------------------------------
    # Top-level
    # -------------------------------------------------------------------

    def parse_module(self) -> Module:
        expressions: list[Expr] = []
        while self.peek() is not None:
            expressions.append(self.parse_expr(self.advance()))
        logger.debug("parsed %d top-level form(s) from %s", len(expressions), self.filename or "<input>")
        return Module(filename=self.filename, expressions=tuple(expressions))

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def parse_expr(self, token: Optional[Token]) -> Expr:
        """Parse one expression starting at token.

        Lists under construction are kept on an explicit stack of frames,
        one per unclosed paren, so deep nesting does not recurse.
        """
        frames: list[tuple[Token, list[Expr]]] = []
        while True:
            if token is None:
                raise self._end_of_input()

            expr: Optional[Expr] = None
            if token.type is TokenType.NUMBER:
                expr = NumberExpr(token.region, token.value)
            elif token.type is TokenType.SYMBOL:
                expr = SymbolExpr(token.region, token.value)
            elif token.type is TokenType.LPAREN:
                frames.append((token, []))
            elif token.type is TokenType.RPAREN:
                if not frames:
                    start = token.region.start
                    raise CompileError(bad_end_of_input(start.line, start.col, self.filename))
                opening, items = frames.pop()
                expr = ListExpr(opening.region.span(token.region), tuple(items))
            else:
                raise self._end_of_input()

            if expr is not None:
                if not frames:
                    return expr
                frames[-1][1].append(expr)

            token = self.advance()


def parse(source: str, filename: Optional[str] = None) -> Module:
    """Parse a compilation unit. Raises CompileError on the first error."""
    return Parser(Lexer(source, filename), filename).parse_module()
