"""Stack type checking for generated function bodies.

Every instruction has a type [t1*] -> [t2*] (a stack transformation), so a
body can be checked in one linear pass by simulating the operand stack.
At `end` the stack must hold exactly the function's result types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from zen.compiler.codegen import CompiledFunction, WasmModule
from zen.compiler.wasm import Opcode, ValType

logger = logging.getLogger(__name__)

F64 = ValType.F64
I32 = ValType.I32

INSTRUCTION_TYPES: dict[Opcode, tuple[list[ValType], list[ValType]]] = {
    Opcode.F64_CONST: ([], [F64]),
    Opcode.F64_ADD: ([F64, F64], [F64]),
    Opcode.F64_SUB: ([F64, F64], [F64]),
    Opcode.F64_MUL: ([F64, F64], [F64]),
    Opcode.F64_DIV: ([F64, F64], [F64]),
    Opcode.F64_EQ: ([F64, F64], [I32]),
    Opcode.F64_NE: ([F64, F64], [I32]),
    Opcode.F64_LT: ([F64, F64], [I32]),
    Opcode.F64_GT: ([F64, F64], [I32]),
    Opcode.F64_LE: ([F64, F64], [I32]),
    Opcode.F64_GE: ([F64, F64], [I32]),
    Opcode.F64_CONVERT_I32_U: ([I32], [F64]),
}


@dataclass
class VerifyIssue:
    kind: str
    function: str
    message: str
    position: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "function": self.function,
            "message": self.message,
            "position": self.position,
        }


@dataclass
class VerifyResult:
    issues: list[VerifyIssue] = field(default_factory=list)
    functions_checked: int = 0
    instructions_checked: int = 0

    @property
    def verified(self) -> bool:
        return not self.issues

    @property
    def summary(self) -> str:
        if self.verified:
            return (f"{self.functions_checked} function(s), "
                    f"{self.instructions_checked} instruction(s) type-checked")
        return f"{len(self.issues)} stack typing issue(s)"

    def to_dict(self) -> dict[str, Any]:
        return {
            "verified": self.verified,
            "functions_checked": self.functions_checked,
            "instructions_checked": self.instructions_checked,
            "issues": [i.to_dict() for i in self.issues],
            "summary": self.summary,
        }


class StackTypeChecker:
    """Stack-based type checker for lowered instruction sequences."""

    def __init__(self) -> None:
        self.issues: list[VerifyIssue] = []
        self.checked = 0

    def check_function(self, func: CompiledFunction) -> None:
        stack: list[ValType] = []

        for pos, instr in enumerate(func.instructions):
            self.checked += 1
            op = instr.opcode

            if op is Opcode.END:
                self._check_end(func, stack, pos)
                return

            expected_in, expected_out = INSTRUCTION_TYPES[op]

            if len(stack) < len(expected_in):
                self.issues.append(VerifyIssue(
                    kind="stack_underflow",
                    function=func.name,
                    message=(f"'{op.text}' needs {len(expected_in)} value(s) "
                             f"but the stack has {len(stack)}"),
                    position=pos,
                ))
                stack.clear()
                stack.extend(expected_out)
                continue

            for i, expected in enumerate(reversed(expected_in)):
                actual = stack[-(i + 1)]
                if actual != expected:
                    self.issues.append(VerifyIssue(
                        kind="type_mismatch",
                        function=func.name,
                        message=f"'{op.text}' expected {expected.text} but got {actual.text}",
                        position=pos,
                    ))

            del stack[len(stack) - len(expected_in):]
            stack.extend(expected_out)

        self.issues.append(VerifyIssue(
            kind="missing_end",
            function=func.name,
            message="Function body is not terminated by 'end'",
            position=len(func.instructions),
        ))

    def _check_end(self, func: CompiledFunction, stack: list[ValType], pos: int) -> None:
        if list(stack) != list(func.results):
            got = "[" + " ".join(t.text for t in stack) + "]"
            want = "[" + " ".join(t.text for t in func.results) + "]"
            self.issues.append(VerifyIssue(
                kind="result_mismatch",
                function=func.name,
                message=f"Body leaves {got} on the stack, expected {want}",
                position=pos,
            ))


def verify_module(wasm_module: WasmModule) -> VerifyResult:
    """Type-check every lowered function of a module."""
    checker = StackTypeChecker()
    for func in wasm_module.compiled:
        checker.check_function(func)
    result = VerifyResult(
        issues=checker.issues,
        functions_checked=len(wasm_module.compiled),
        instructions_checked=checker.checked,
    )
    for issue in result.issues:
        logger.debug("%s in %s: %s", issue.kind, issue.function, issue.message)
    return result
