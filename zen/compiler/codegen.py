"""Zen code generator - AST to WebAssembly.

Only top-level `(defn name (params...) body)` forms are recognized. Each one
becomes a zero-parameter function returning f64, exported under its name.
Bodies are built from numeric literals and the arithmetic/comparison
operators; anything else is an unsupported form and aborts compilation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from zen.compiler.ast_nodes import Expr, ListExpr, Module, NumberExpr, SymbolExpr
from zen.compiler.parser import parse
from zen.compiler.regions import Region
from zen.compiler.wasm import (
    END, BinaryModule, CodeSection, ExportKind, ExportSection, Function,
    FunctionSection, Instruction, Opcode, TypeSection, ValType,
)
from zen.errors import CompileError, SourceLocation, unsupported_form

logger = logging.getLogger(__name__)


ARITHMETIC_OPS: dict[str, Opcode] = {
    "+": Opcode.F64_ADD,
    "-": Opcode.F64_SUB,
    "*": Opcode.F64_MUL,
    "/": Opcode.F64_DIV,
}

# Comparisons push an i32 0/1, converted back to f64 so results stay f64.
COMPARISON_OPS: dict[str, Opcode] = {
    "<": Opcode.F64_LT,
    "<=": Opcode.F64_LE,
    ">": Opcode.F64_GT,
    ">=": Opcode.F64_GE,
}

BINARY_OPS: dict[str, Opcode] = {**ARITHMETIC_OPS, **COMPARISON_OPS}


@dataclass
class CompiledFunction:
    name: str
    index: int
    instructions: list[Instruction]
    params: tuple[ValType, ...] = ()
    results: tuple[ValType, ...] = (ValType.F64,)
    region: Optional[Region] = None


@dataclass
class WasmModule:
    """Sections under construction plus the lowered functions they came from."""
    filename: Optional[str] = None
    types: TypeSection = field(default_factory=TypeSection)
    functions: FunctionSection = field(default_factory=FunctionSection)
    exports: ExportSection = field(default_factory=ExportSection)
    code: CodeSection = field(default_factory=CodeSection)
    compiled: list[CompiledFunction] = field(default_factory=list)
    type_idx: int = 0

    def get_and_increment_type_idx(self) -> int:
        cur = self.type_idx
        self.type_idx += 1
        return cur

    def finish(self) -> bytes:
        return (
            BinaryModule()
            .section(self.types)
            .section(self.functions)
            .section(self.exports)
            .section(self.code)
            .finish()
        )


def _location(expr: Expr, filename: Optional[str]) -> SourceLocation:
    return expr.region.start.location(filename)


def _describe(expr: Expr) -> str:
    if isinstance(expr, NumberExpr):
        return repr(expr.value)
    if isinstance(expr, SymbolExpr):
        return expr.value
    return "(" + " ".join(_describe(e) for e in expr.expressions) + ")"


class CodeGenerator:
    """Lowers a parsed Module into a WasmModule."""

    def __init__(self, filename: Optional[str] = None):
        self.filename = filename

    def _unsupported(self, message: str, expr: Expr) -> CompileError:
        return CompileError(unsupported_form(message, _location(expr, self.filename), _describe(expr)))

    def lower(self, module: Module) -> WasmModule:
        wasm_module = WasmModule(filename=module.filename)
        for expr in module.expressions:
            self.compile_expr(expr, wasm_module)
        return wasm_module

    def compile_expr(self, expr: Expr, wasm_module: WasmModule) -> None:
        if isinstance(expr, ListExpr) and len(expr.expressions) == 4:
            head, name, params, body = expr.expressions
            if (
                isinstance(head, SymbolExpr) and head.value == "defn"
                and isinstance(name, SymbolExpr)
                and isinstance(params, ListExpr)
            ):
                self.compile_defn(wasm_module, name.value, params, body, expr.region)
                return
        raise self._unsupported("Unknown top-level form, expected (defn name (params...) body)", expr)

    def compile_defn(
        self,
        wasm_module: WasmModule,
        name: str,
        params: ListExpr,
        body: Expr,
        region: Optional[Region] = None,
    ) -> None:
        if any(f.name == name for f in wasm_module.compiled):
            raise CompileError(unsupported_form(
                f"Duplicate definition of '{name}'",
                region.start.location(self.filename) if region else None,
                name,
            ))

        # Parameters are parsed but not bound as locals.
        instructions = self.compile_body(body)
        instructions.append(END)

        idx = wasm_module.get_and_increment_type_idx()
        compiled = CompiledFunction(name, idx, instructions, region=region)
        wasm_module.types.function(compiled.params, compiled.results)
        wasm_module.functions.function(idx)
        wasm_module.exports.export(name, ExportKind.FUNC, idx)

        func = Function()
        for instr in instructions:
            func.instruction(instr)
        wasm_module.code.function(func)

        wasm_module.compiled.append(compiled)
        logger.debug("lowered %s (index %d, %d instruction(s))", name, idx, len(instructions))

    def compile_body(self, expr: Expr) -> list[Instruction]:
        if isinstance(expr, NumberExpr):
            return [Instruction.f64_const(expr.value)]
        if isinstance(expr, SymbolExpr):
            return []
        if isinstance(expr, ListExpr):
            head = expr.head
            if isinstance(head, SymbolExpr):
                return self.compile_expr_with_args(head.value, expr.expressions[1:], expr)
            raise self._unsupported("Expected an operator symbol at the head of the list", expr)
        raise self._unsupported(f"Unknown expression {type(expr).__name__}", expr)

    def compile_expr_with_args(self, symbol: str, args: tuple[Expr, ...], expr: Expr) -> list[Instruction]:
        op = BINARY_OPS.get(symbol)
        if op is None:
            raise self._unsupported(f"Unknown operator '{symbol}'", expr)
        if not args:
            raise self._unsupported(f"Operator '{symbol}' needs at least one operand", expr)
        return self.compile_bin_op(op, args)

    def compile_bin_op(self, op: Opcode, args: tuple[Expr, ...]) -> list[Instruction]:
        # (+ a b c) -> ((a + b) + c)
        head, *rest = args
        instructions = self.compile_body(head)
        for arg in rest:
            instructions.extend(self.compile_body(arg))
            instructions.append(Instruction(op))
            if op in COMPARISON_OPS.values():
                instructions.append(Instruction(Opcode.F64_CONVERT_I32_U))
        return instructions


def lower(module: Module) -> WasmModule:
    return CodeGenerator(module.filename).lower(module)


def codegen(module: Module) -> bytes:
    """Lower a Module and return the binary module bytes."""
    return lower(module).finish()


def compile_source(source: str, filename: Optional[str] = None) -> bytes:
    """Parse and compile source text. Raises CompileError on any failure."""
    return codegen(parse(source, filename))
