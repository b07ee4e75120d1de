"""LLVM IR backend.

Replays the lowered instruction sequences as a stack machine over llvmlite
IR values, producing one `define double @name()` per function. Used for
inspection (`zen ir`); the WebAssembly module stays the compile artifact.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from llvmlite import ir as llvm_ir

from zen.compiler.codegen import CompiledFunction, WasmModule
from zen.compiler.wasm import Opcode

logger = logging.getLogger(__name__)

DOUBLE = llvm_ir.DoubleType()

FLOAT_ARITHMETIC: dict[Opcode, str] = {
    Opcode.F64_ADD: "fadd",
    Opcode.F64_SUB: "fsub",
    Opcode.F64_MUL: "fmul",
    Opcode.F64_DIV: "fdiv",
}

FLOAT_COMPARISON: dict[Opcode, str] = {
    Opcode.F64_EQ: "==",
    Opcode.F64_NE: "!=",
    Opcode.F64_LT: "<",
    Opcode.F64_LE: "<=",
    Opcode.F64_GT: ">",
    Opcode.F64_GE: ">=",
}


class LLVMEmitter:
    """Emits LLVM IR from lowered functions."""

    def __init__(self) -> None:
        self.module: Optional[Any] = None
        self._builder: Optional[Any] = None

    def emit_module(self, wasm_module: WasmModule, name: str = "zen") -> str:
        """Emit LLVM IR for an entire module. Returns LLVM IR string."""
        self.module = llvm_ir.Module(name=name)
        for func in wasm_module.compiled:
            self._emit_function(func)
        return str(self.module)

    def _pop(self, stack: list[Any], func: CompiledFunction, op: Opcode) -> Any:
        if not stack:
            raise ValueError(f"Stack underflow in '{func.name}' at '{op.text}'")
        return stack.pop()

    def _emit_function(self, func: CompiledFunction) -> None:
        fn_type = llvm_ir.FunctionType(DOUBLE, [])
        fn = llvm_ir.Function(self.module, fn_type, name=func.name)
        block = fn.append_basic_block(name="entry")
        self._builder = llvm_ir.IRBuilder(block)
        stack: list[Any] = []

        for pos, instr in enumerate(func.instructions):
            op = instr.opcode
            if op is Opcode.F64_CONST:
                stack.append(llvm_ir.Constant(DOUBLE, instr.immediate))

            elif op in FLOAT_ARITHMETIC:
                right = self._pop(stack, func, op)
                left = self._pop(stack, func, op)
                emit = getattr(self._builder, FLOAT_ARITHMETIC[op])
                stack.append(emit(left, right, name=f"op.{pos}"))

            elif op in FLOAT_COMPARISON:
                right = self._pop(stack, func, op)
                left = self._pop(stack, func, op)
                stack.append(self._builder.fcmp_ordered(FLOAT_COMPARISON[op], left, right, name=f"cmp.{pos}"))

            elif op is Opcode.F64_CONVERT_I32_U:
                value = self._pop(stack, func, op)
                stack.append(self._builder.uitofp(value, DOUBLE, name=f"conv.{pos}"))

            elif op is Opcode.END:
                # A body that pushes nothing returns 0.0
                self._builder.ret(stack.pop() if stack else llvm_ir.Constant(DOUBLE, 0.0))
                break

        logger.debug("emitted LLVM IR for %s", func.name)


def emit_llvm(wasm_module: WasmModule, name: str = "zen") -> str:
    """Emit LLVM IR text for every lowered function of a module."""
    return LLVMEmitter().emit_module(wasm_module, name)
