"""Zen Code Generator Tests - GEN-001 through GEN-006.

Lowering of defn forms, left folds, unsupported forms, and the exact bytes
of the emitted module.
"""

import struct

import pytest

from zen.compiler.codegen import compile_source, codegen, lower
from zen.compiler.parser import parse
from zen.compiler.wasm import END, Instruction, Opcode, ValType
from zen.errors import CompileError, ErrorKind


def const(value):
    return Instruction.f64_const(value)


def body_of(source, index=0):
    return lower(parse(source)).compiled[index].instructions


def assert_unsupported(source):
    with pytest.raises(CompileError) as exc:
        lower(parse(source))
    assert exc.value.error.kind is ErrorKind.UNSUPPORTED_FORM
    return exc.value.error


ADD = Instruction(Opcode.F64_ADD)
SUB = Instruction(Opcode.F64_SUB)
MUL = Instruction(Opcode.F64_MUL)
LT = Instruction(Opcode.F64_LT)
TO_F64 = Instruction(Opcode.F64_CONVERT_I32_U)


class TestGEN001:
    """GEN-001: A defn becomes an exported zero-argument f64 function."""

    def test_answer(self):
        wasm_module = lower(parse("(defn answer () 42)"))
        (func,) = wasm_module.compiled
        assert func.name == "answer"
        assert func.index == 0
        assert func.instructions == [const(42.0), END]

    def test_indices_increase_per_function(self):
        wasm_module = lower(parse("(defn a () 1)\n(defn b () 2)\n(defn c () 3)"))
        assert [(f.name, f.index) for f in wasm_module.compiled] == [("a", 0), ("b", 1), ("c", 2)]
        assert len(wasm_module.types) == 3
        assert len(wasm_module.exports) == 3

    def test_parameters_are_ignored(self):
        assert body_of("(defn f (a b) 1)") == [const(1.0), END]

    def test_symbol_body_emits_nothing(self):
        assert body_of("(defn f (x) x)") == [END]

    def test_type_section_follows_signature(self):
        wasm_module = lower(parse("(defn f (a b) 1)"))
        (func,) = wasm_module.compiled
        assert (func.params, func.results) == ((), (ValType.F64,))
        assert wasm_module.types.encode() == b"\x01\x05\x01\x60\x00\x01\x7c"


class TestGEN002:
    """GEN-002: Operators fold left to right."""

    def test_add_three(self):
        assert body_of("(defn f () (+ 1 2 3))") == [
            const(1.0), const(2.0), ADD, const(3.0), ADD, END,
        ]

    def test_subtraction_is_left_associative(self):
        assert body_of("(defn f () (- 10 3 2))") == [
            const(10.0), const(3.0), SUB, const(2.0), SUB, END,
        ]

    def test_single_operand(self):
        assert body_of("(defn f () (+ 5))") == [const(5.0), END]

    def test_nested_operations(self):
        assert body_of("(defn f () (* (+ 1 2) 4))") == [
            const(1.0), const(2.0), ADD, const(4.0), MUL, END,
        ]

    def test_comparison_converts_back_to_f64(self):
        assert body_of("(defn f () (< 1 2))") == [
            const(1.0), const(2.0), LT, TO_F64, END,
        ]

    @pytest.mark.parametrize("symbol,opcode", [
        ("/", Opcode.F64_DIV),
        ("<=", Opcode.F64_LE),
        (">", Opcode.F64_GT),
        (">=", Opcode.F64_GE),
    ])
    def test_operator_table(self, symbol, opcode):
        body = body_of(f"(defn f () ({symbol} 1 2))")
        assert body[2] == Instruction(opcode)


class TestGEN003:
    """GEN-003: Unsupported forms are compile errors."""

    def test_operator_without_operands(self):
        err = assert_unsupported("(defn f () (+))")
        assert err.location.line == 1
        assert err.location.column == 12

    def test_def_is_not_supported(self):
        assert_unsupported("(def foo 5)")

    def test_top_level_atom(self):
        assert_unsupported("5")

    def test_unknown_operator(self):
        err = assert_unsupported("(defn f () (foo 1))")
        assert "foo" in err.message

    def test_list_head_must_be_a_symbol(self):
        assert_unsupported("(defn f () ((+ 1) 2))")

    def test_empty_list_body(self):
        assert_unsupported("(defn f () ())")

    def test_params_must_be_a_list(self):
        assert_unsupported("(defn f x 1)")

    def test_extra_body_forms(self):
        assert_unsupported("(defn f () 1 2)")

    def test_name_must_be_a_symbol(self):
        assert_unsupported("(defn 1 () 2)")

    def test_duplicate_definition(self):
        err = assert_unsupported("(defn f () 1)\n(defn f () 2)")
        assert err.location.line == 2

    def test_error_after_valid_function_aborts_everything(self):
        with pytest.raises(CompileError):
            compile_source("(defn ok () 1)\n(oops)")


class TestGEN004:
    """GEN-004: Emitted bytes follow the binary module format."""

    def test_answer_bytes(self):
        expected = (
            b"\x00asm\x01\x00\x00\x00"
            # type section: one [] -> [f64]
            + b"\x01\x05\x01\x60\x00\x01\x7c"
            # function section: function 0 uses type 0
            + b"\x03\x02\x01\x00"
            # export section: "answer" -> func 0
            + b"\x07\x0a\x01\x06answer\x00\x00"
            # code section: one body, no locals, f64.const 42, end
            + b"\x0a\x0d\x01\x0b\x00\x44" + struct.pack("<d", 42.0) + b"\x0b"
        )
        assert compile_source("(defn answer () 42)") == expected

    def test_empty_module_has_empty_sections(self):
        assert codegen(parse("")) == (
            b"\x00asm\x01\x00\x00\x00"
            + b"\x01\x01\x00"
            + b"\x03\x01\x00"
            + b"\x07\x01\x00"
            + b"\x0a\x01\x00"
        )

    def test_add_body_bytes(self):
        data = compile_source("(defn f () (+ 1 2 3))")
        body = (
            b"\x00"
            + b"\x44" + struct.pack("<d", 1.0)
            + b"\x44" + struct.pack("<d", 2.0)
            + b"\xa0"
            + b"\x44" + struct.pack("<d", 3.0)
            + b"\xa0"
            + b"\x0b"
        )
        assert data.endswith(bytes([len(body)]) + body)


class TestGEN005:
    """GEN-005: Errors are reported before anything is produced."""

    def test_parse_error_propagates(self):
        with pytest.raises(CompileError) as exc:
            compile_source("(defn f () 1")
        assert exc.value.error.kind is ErrorKind.BAD_END_OF_INPUT

    def test_error_details_name_the_form(self):
        err = assert_unsupported("(defn f () (+))")
        assert err.details["form"] == "(+)"


class TestGEN006:
    """GEN-006: Emitted modules load and run in a WebAssembly runtime."""

    @pytest.fixture
    def run_export(self):
        wasmtime = pytest.importorskip("wasmtime")

        def run(source, name):
            engine = wasmtime.Engine()
            store = wasmtime.Store(engine)
            module = wasmtime.Module(engine, compile_source(source))
            instance = wasmtime.Instance(store, module, [])
            return instance.exports(store)[name](store)

        return run

    def test_answer(self, run_export):
        assert run_export("(defn answer () 42)", "answer") == 42.0

    def test_left_fold(self, run_export):
        assert run_export("(defn f () (- 10 3 2))", "f") == 5.0
        assert run_export("(defn f () (/ 8 2 2))", "f") == 2.0

    def test_comparison_yields_float(self, run_export):
        source = "(defn yes () (< 1 2))\n(defn no () (>= 1 2))"
        assert run_export(source, "yes") == 1.0
        assert run_export(source, "no") == 0.0

    def test_several_exports(self, run_export):
        source = "(defn a () 1) (defn b () (* (+ 1 2) 4))"
        assert run_export(source, "a") == 1.0
        assert run_export(source, "b") == 12.0
