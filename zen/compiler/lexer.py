"""Zen Lexer - lazy tokenizer with line/column tracking.

Produces a stream of position-tagged tokens from s-expression source.
Lexical errors are yielded in-band, so the consumer decides whether the
first one is fatal or whether to keep draining the stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional, Union

from zen.compiler.regions import Position, Region
from zen.errors import ZenError, CompileError, bad_char, bad_number

logger = logging.getLogger(__name__)


class TokenType(Enum):
    LPAREN = auto()
    RPAREN = auto()
    SYMBOL = auto()
    NUMBER = auto()

    # Sentinel, never yielded
    EOF = auto()


# Punctuation allowed anywhere in a symbol, including its first character.
SYMBOL_PUNCTUATION = frozenset("*.!-_?$%&=<>/:#+")


def is_symbol_start(ch: str) -> bool:
    return ch.isalpha() or ch in SYMBOL_PUNCTUATION


def is_symbol_char(ch: str) -> bool:
    return ch.isalnum() or ch in SYMBOL_PUNCTUATION


def is_digit(ch: Optional[str]) -> bool:
    return ch is not None and ch.isascii() and ch.isdigit()


@dataclass(frozen=True)
class Token:
    type: TokenType
    region: Region
    value: Union[str, float, None] = None

    def __repr__(self) -> str:
        if self.value is None:
            return f"Token({self.type.name}, {self.region})"
        return f"Token({self.type.name}, {self.value!r}, {self.region})"


LexResult = Union[Token, ZenError]


class Lexer:
    """Pull-based tokenizer over a source string.

    Iterating yields Token or ZenError items and stops at end of input.
    The lexer is single-use: once exhausted it stays exhausted.
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.filename = filename
        self._chars = iter(source)
        self._char0: Optional[str] = None
        self.line = 1
        self.col = 1
        self._start_line = 1
        self._start_col = 1
        self._done = False

    @property
    def position(self) -> Position:
        """Position one past the last consumed character."""
        return Position(self.line, self.col)

    def __iter__(self) -> Iterator[LexResult]:
        return self

    def __next__(self) -> LexResult:
        while not self._done:
            result = self._consume_next()
            if result is None:
                continue
            if isinstance(result, Token) and result.type is TokenType.EOF:
                self._done = True
                break
            return result
        raise StopIteration

    # -------------------------------------------------------------------
    # Character buffer
    # -------------------------------------------------------------------

    def _peek(self) -> Optional[str]:
        if self._char0 is None:
            self._char0 = next(self._chars, None)
        return self._char0

    def _advance(self) -> Optional[str]:
        if self._char0 is not None:
            ch: Optional[str] = self._char0
            self._char0 = None
        else:
            ch = next(self._chars, None)
        if ch is not None:
            self.col += 1
        return ch

    # -------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------

    def _emit(self, token_type: TokenType, value: Union[str, float, None] = None) -> Token:
        # col already points one past the last consumed character
        region = Region.new(self._start_line, self._start_col, self.line, max(self.col - 1, self._start_col))
        return Token(token_type, region, value)

    def _consume_next(self) -> Optional[LexResult]:
        self._start_line = self.line
        self._start_col = self.col
        ch = self._advance()
        if ch is None:
            return self._emit(TokenType.EOF)

        if ch == "\n":
            self.line += 1
            self.col = 1
            return None
        if ch == "(":
            return self._emit(TokenType.LPAREN)
        if ch == ")":
            return self._emit(TokenType.RPAREN)
        if ch.isspace():
            return None
        if is_digit(ch):
            return self._read_number(ch)
        if is_symbol_start(ch):
            return self._read_symbol(ch)
        return bad_char(self.line, self.col - 1, ch, self.filename)

    def _read_number(self, first: str) -> LexResult:
        text = first
        while is_digit(self._peek()):
            text += self._advance()

        if self._peek() == ".":
            text += self._advance()
            while is_digit(self._peek()):
                text += self._advance()

        try:
            value = float(text)
        except ValueError as e:
            return bad_number(self._start_line, self._start_col, str(e), self.filename)
        return self._emit(TokenType.NUMBER, value)

    def _read_symbol(self, first: str) -> LexResult:
        text = first
        while True:
            ch = self._peek()
            if ch is None or not is_symbol_char(ch):
                break
            text += self._advance()
        return self._emit(TokenType.SYMBOL, text)


def lex(source: str, filename: Optional[str] = None) -> tuple[list[Token], list[ZenError]]:
    """Drain the whole stream, collecting tokens and errors separately."""
    tokens: list[Token] = []
    errors: list[ZenError] = []
    for item in Lexer(source, filename):
        if isinstance(item, ZenError):
            errors.append(item)
        else:
            tokens.append(item)
    logger.debug("lexed %d token(s), %d error(s)", len(tokens), len(errors))
    return tokens, errors


def tokenize(source: str, filename: Optional[str] = None) -> list[Token]:
    """Fail-fast tokenization: raises CompileError on the first lexical error."""
    tokens: list[Token] = []
    for item in Lexer(source, filename):
        if isinstance(item, ZenError):
            raise CompileError(item)
        tokens.append(item)
    return tokens
