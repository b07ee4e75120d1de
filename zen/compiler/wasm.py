"""WebAssembly binary encoding.

Just enough of the binary format for the code generator: the Type,
Function, Export and Code sections, f64 constants, f64 arithmetic and
comparisons. Counts and indices are unsigned LEB128, names are
length-prefixed UTF-8, f64 immediates are little-endian IEEE-754.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterable, Optional

MAGIC = b"\x00asm"
VERSION = b"\x01\x00\x00\x00"

FUNC_TYPE_FORM = 0x60


class ValType(IntEnum):
    I32 = 0x7F
    I64 = 0x7E
    F32 = 0x7D
    F64 = 0x7C

    @property
    def text(self) -> str:
        return self.name.lower()


class ExportKind(IntEnum):
    FUNC = 0x00
    TABLE = 0x01
    MEMORY = 0x02
    GLOBAL = 0x03


class SectionId(IntEnum):
    CUSTOM = 0
    TYPE = 1
    IMPORT = 2
    FUNCTION = 3
    TABLE = 4
    MEMORY = 5
    GLOBAL = 6
    EXPORT = 7
    START = 8
    ELEMENT = 9
    CODE = 10
    DATA = 11


class Opcode(Enum):
    """Opcodes as (byte, text name)."""
    END = (0x0B, "end")
    F64_CONST = (0x44, "f64.const")
    F64_EQ = (0x61, "f64.eq")
    F64_NE = (0x62, "f64.ne")
    F64_LT = (0x63, "f64.lt")
    F64_GT = (0x64, "f64.gt")
    F64_LE = (0x65, "f64.le")
    F64_GE = (0x66, "f64.ge")
    F64_ADD = (0xA0, "f64.add")
    F64_SUB = (0xA1, "f64.sub")
    F64_MUL = (0xA2, "f64.mul")
    F64_DIV = (0xA3, "f64.div")
    F64_CONVERT_I32_U = (0xB8, "f64.convert_i32_u")

    @property
    def byte(self) -> int:
        return self.value[0]

    @property
    def text(self) -> str:
        return self.value[1]


# ---------------------------------------------------------------------------
# Primitive encoders
# ---------------------------------------------------------------------------

def encode_u32(value: int) -> bytes:
    """Unsigned LEB128."""
    if value < 0 or value > 0xFFFFFFFF:
        raise ValueError(f"u32 out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_u32(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode unsigned LEB128 at offset. Returns (value, next offset)."""
    result = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise ValueError("Truncated LEB128 value")
        byte = data[offset]
        offset += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, offset
        shift += 7
        if shift > 35:
            raise ValueError("LEB128 value too long for u32")


def encode_f64(value: float) -> bytes:
    return struct.pack("<d", value)


def encode_name(name: str) -> bytes:
    raw = name.encode("utf-8")
    return encode_u32(len(raw)) + raw


def encode_vec(items: Iterable[bytes]) -> bytes:
    items = list(items)
    return encode_u32(len(items)) + b"".join(items)


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instruction:
    opcode: Opcode
    immediate: Optional[float] = None

    @classmethod
    def f64_const(cls, value: float) -> Instruction:
        return cls(Opcode.F64_CONST, float(value))

    def encode(self) -> bytes:
        out = bytes([self.opcode.byte])
        if self.opcode is Opcode.F64_CONST:
            out += encode_f64(self.immediate)
        return out

    def __str__(self) -> str:
        if self.immediate is None:
            return self.opcode.text
        return f"{self.opcode.text} {self.immediate!r}"


END = Instruction(Opcode.END)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

class Section:
    id: SectionId

    def __init__(self) -> None:
        self._entries: list[bytes] = []

    def __len__(self) -> int:
        return len(self._entries)

    def encode(self) -> bytes:
        payload = encode_vec(self._entries)
        return bytes([self.id]) + encode_u32(len(payload)) + payload


class TypeSection(Section):
    id = SectionId.TYPE

    def function(self, params: Iterable[ValType], results: Iterable[ValType]) -> TypeSection:
        self._entries.append(
            bytes([FUNC_TYPE_FORM])
            + encode_vec(bytes([p]) for p in params)
            + encode_vec(bytes([r]) for r in results)
        )
        return self


class FunctionSection(Section):
    id = SectionId.FUNCTION

    def function(self, type_index: int) -> FunctionSection:
        self._entries.append(encode_u32(type_index))
        return self


class ExportSection(Section):
    id = SectionId.EXPORT

    def export(self, name: str, kind: ExportKind, index: int) -> ExportSection:
        self._entries.append(encode_name(name) + bytes([kind]) + encode_u32(index))
        return self


@dataclass
class Function:
    """A function body: local declarations plus an instruction sequence."""
    locals: list[tuple[int, ValType]] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)

    def instruction(self, instr: Instruction) -> Function:
        self.instructions.append(instr)
        return self

    def encode(self) -> bytes:
        body = encode_vec(encode_u32(count) + bytes([vt]) for count, vt in self.locals)
        body += b"".join(i.encode() for i in self.instructions)
        return encode_u32(len(body)) + body


class CodeSection(Section):
    id = SectionId.CODE

    def function(self, func: Function) -> CodeSection:
        self._entries.append(func.encode())
        return self


class BinaryModule:
    """Collects sections in the order they are added and serializes them."""

    def __init__(self) -> None:
        self._sections: list[Section] = []

    def section(self, section: Section) -> BinaryModule:
        self._sections.append(section)
        return self

    def finish(self) -> bytes:
        return MAGIC + VERSION + b"".join(s.encode() for s in self._sections)


def read_sections(data: bytes) -> list[tuple[SectionId, bytes]]:
    """Split a binary module into (section id, payload) pairs."""
    if data[:4] != MAGIC:
        raise ValueError("Not a WebAssembly module (bad magic)")
    if data[4:8] != VERSION:
        raise ValueError("Unsupported WebAssembly version")
    sections: list[tuple[SectionId, bytes]] = []
    offset = 8
    while offset < len(data):
        section_id = SectionId(data[offset])
        size, offset = decode_u32(data, offset + 1)
        payload = data[offset:offset + size]
        if len(payload) != size:
            raise ValueError(f"Truncated {section_id.name} section")
        sections.append((section_id, payload))
        offset += size
    return sections
