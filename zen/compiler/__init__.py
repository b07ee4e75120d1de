"""Zen compiler pipeline - lexer, parser, code generator, binary encoder."""

from .regions import Position, Region
from .lexer import Lexer, Token, TokenType, lex, tokenize
from .ast_nodes import Expr, NumberExpr, SymbolExpr, ListExpr, Module
from .parser import Parser, parse
from .codegen import CodeGenerator, WasmModule, codegen, compile_source, lower
from .verify import verify_module
