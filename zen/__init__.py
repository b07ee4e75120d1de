"""Zen - a small s-expression language compiling to WebAssembly."""

__version__ = "0.1.0"

from zen.errors import CompileError, ErrorKind, ZenError
from zen.compiler import compile_source, parse
