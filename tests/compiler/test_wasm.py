"""Binary encoding tests - WASM-001 through WASM-003."""

import struct

import pytest

from zen.compiler.codegen import compile_source
from zen.compiler.wasm import (
    END, ExportKind, ExportSection, Instruction, SectionId, TypeSection, ValType,
    decode_u32, encode_name, encode_u32, read_sections,
)


class TestWASM001:
    """WASM-001: Unsigned LEB128."""

    @pytest.mark.parametrize("value,encoded", [
        (0, b"\x00"),
        (1, b"\x01"),
        (127, b"\x7f"),
        (128, b"\x80\x01"),
        (300, b"\xac\x02"),
        (624485, b"\xe5\x8e\x26"),
        (0xFFFFFFFF, b"\xff\xff\xff\xff\x0f"),
    ])
    def test_encode_u32(self, value, encoded):
        assert encode_u32(value) == encoded
        assert decode_u32(encoded) == (value, len(encoded))

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            encode_u32(-1)
        with pytest.raises(ValueError):
            encode_u32(1 << 32)

    def test_truncated(self):
        with pytest.raises(ValueError):
            decode_u32(b"\x80")


class TestWASM002:
    """WASM-002: Sections and entries."""

    def test_name_is_utf8_length_prefixed(self):
        assert encode_name("ä") == b"\x02\xc3\xa4"

    def test_type_section_entry(self):
        section = TypeSection().function([ValType.F64, ValType.I32], [ValType.F64])
        assert section.encode() == b"\x01\x07\x01\x60\x02\x7c\x7f\x01\x7c"

    def test_export_section_entry(self):
        section = ExportSection().export("f", ExportKind.FUNC, 3)
        assert section.encode() == b"\x07\x05\x01\x01f\x00\x03"

    def test_instruction_encoding(self):
        assert Instruction.f64_const(1.5).encode() == b"\x44" + struct.pack("<d", 1.5)
        assert END.encode() == b"\x0b"
        assert str(Instruction.f64_const(2)) == "f64.const 2.0"


class TestWASM003:
    """WASM-003: Reading a module back."""

    def test_sections_in_fixed_order(self):
        data = compile_source("(defn a () 1) (defn b () (+ 1 2))")
        ids = [section_id for section_id, _ in read_sections(data)]
        assert ids == [SectionId.TYPE, SectionId.FUNCTION, SectionId.EXPORT, SectionId.CODE]

    def test_export_payload_lists_names(self):
        data = compile_source("(defn a () 1) (defn bee () 2)")
        exports = dict(read_sections(data))[SectionId.EXPORT]
        assert exports == b"\x02" + b"\x01a\x00\x00" + b"\x03bee\x00\x01"

    def test_bad_magic(self):
        with pytest.raises(ValueError):
            read_sections(b"\x00elf\x01\x00\x00\x00")
