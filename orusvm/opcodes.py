"""Instruction set of the register VM: opcodes and 32-bit instruction words.

An instruction word packs four bytes, least significant first::

    | OPCODE | DST | SRC1 | SRC2 |

Immediate instructions replace ``SRC1`` and ``SRC2`` with one 16-bit value.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union


class RegisterOpcode(enum.IntEnum):
    """Opcodes of the register VM, grouped by range."""

    # Control flow (0x00 - 0x0F)
    NOP = 0x00
    HALT = 0x01
    JMP = 0x02
    JMP_REG = 0x03
    JZ = 0x04
    JNZ = 0x05
    JEQ = 0x06
    JNE = 0x07
    JLT = 0x08
    JLE = 0x09
    JGT = 0x0A
    JGE = 0x0B
    CALL = 0x0C
    CALL_REG = 0x0D
    RET = 0x0E
    RET_VAL = 0x0F

    # Data movement (0x10 - 0x1F)
    MOVE = 0x10
    LOAD_IMM = 0x11
    LOAD_CONST = 0x12
    LOAD_GLOBAL = 0x13
    STORE_GLOBAL = 0x14
    LOAD_LOCAL = 0x15
    STORE_LOCAL = 0x16
    LOAD_MEM = 0x17
    STORE_MEM = 0x18
    LOAD_OFFSET = 0x19
    STORE_OFFSET = 0x1A
    PUSH = 0x1B
    POP = 0x1C

    # Arithmetic (0x20 - 0x2F)
    ADD_I32 = 0x20
    SUB_I32 = 0x21
    MUL_I32 = 0x22
    DIV_I32 = 0x23
    MOD_I32 = 0x24
    NEG_I32 = 0x25
    ADD_I64 = 0x26
    SUB_I64 = 0x27
    MUL_I64 = 0x28
    DIV_I64 = 0x29
    MOD_I64 = 0x2A
    NEG_I64 = 0x2B
    ADD_U32 = 0x2C
    ADD_U64 = 0x2D
    MUL_U32 = 0x2E
    MUL_U64 = 0x2F

    # Floating point (0x30 - 0x3F)
    ADD_F64 = 0x30
    SUB_F64 = 0x31
    MUL_F64 = 0x32
    DIV_F64 = 0x33
    NEG_F64 = 0x34
    ABS_F64 = 0x35
    SQRT_F64 = 0x36
    FLOOR_F64 = 0x37
    CEIL_F64 = 0x38
    ROUND_F64 = 0x39

    # Logical (0x40 - 0x4F)
    AND = 0x40
    OR = 0x41
    XOR = 0x42
    NOT = 0x43
    SHL = 0x44
    SHR = 0x45
    SAR = 0x46
    BOOL_AND = 0x47
    BOOL_OR = 0x48
    BOOL_NOT = 0x49

    # Comparison (0x50 - 0x5F)
    CMP_I32 = 0x50
    CMP_I64 = 0x51
    CMP_U32 = 0x52
    CMP_U64 = 0x53
    CMP_F64 = 0x54
    EQ_I32 = 0x55
    NE_I32 = 0x56
    LT_I32 = 0x57
    LE_I32 = 0x58
    GT_I32 = 0x59
    GE_I32 = 0x5A
    EQ_STR = 0x5B
    EQ_OBJ = 0x5C

    # Type operations (0x60 - 0x6F)
    CAST_I32_I64 = 0x60
    CAST_I32_U32 = 0x61
    CAST_I32_F64 = 0x62
    CAST_I64_I32 = 0x63
    CAST_F64_I32 = 0x64
    CAST_TO_STR = 0x65
    CAST_TO_BOOL = 0x66
    TYPE_OF = 0x67
    IS_TYPE = 0x68
    TYPE_CHECK = 0x69

    # Objects (0x70 - 0x7F)
    NEW_OBJECT = 0x70
    NEW_ARRAY = 0x71
    NEW_STRING = 0x72
    NEW_STRUCT = 0x73
    NEW_ENUM = 0x74
    GET_FIELD = 0x75
    SET_FIELD = 0x76
    GET_INDEX = 0x77
    SET_INDEX = 0x78
    GET_LENGTH = 0x79
    CALL_METHOD = 0x7A
    CALL_STATIC = 0x7B

    # Strings (0x80 - 0x8F)
    STR_CONCAT = 0x80
    STR_LENGTH = 0x81
    STR_SUBSTR = 0x82
    STR_CHAR_AT = 0x83
    STR_INDEX_OF = 0x84
    STR_COMPARE = 0x85
    STR_TO_UPPER = 0x86
    STR_TO_LOWER = 0x87

    # Arrays (0x90 - 0x9F)
    ARRAY_PUSH = 0x90
    ARRAY_POP = 0x91
    ARRAY_INSERT = 0x92
    ARRAY_REMOVE = 0x93
    ARRAY_SLICE = 0x94
    ARRAY_CONCAT = 0x95
    ARRAY_REVERSE = 0x96
    ARRAY_SORT = 0x97

    # Generics (0xA0 - 0xAF)
    GENERIC_CALL = 0xA0
    GENERIC_INST = 0xA1
    GENERIC_CHECK = 0xA2
    GENERIC_CAST = 0xA3

    # Pattern matching (0xB0 - 0xBF)
    MATCH_BEGIN = 0xB0
    MATCH_CASE = 0xB1
    MATCH_GUARD = 0xB2
    MATCH_END = 0xB3
    ENUM_MATCH = 0xB4
    STRUCT_MATCH = 0xB5

    # Exceptions (0xC0 - 0xCF)
    TRY_BEGIN = 0xC0
    TRY_END = 0xC1
    CATCH_BEGIN = 0xC2
    CATCH_END = 0xC3
    THROW = 0xC4
    RETHROW = 0xC5

    # Modules (0xD0 - 0xDF)
    IMPORT = 0xD0
    EXPORT = 0xD1
    MODULE_CALL = 0xD2
    MODULE_GET = 0xD3
    MODULE_SET = 0xD4

    # Built-in functions (0xE0 - 0xEF)
    PRINT = 0xE0
    INPUT = 0xE1
    LEN = 0xE2
    RANGE = 0xE3
    MIN = 0xE4
    MAX = 0xE5
    SUM = 0xE6
    SORTED = 0xE7
    REVERSED = 0xE8
    TIMESTAMP = 0xE9

    # Debug and profiling (0xF0 - 0xFF)
    DEBUG_BREAK = 0xF0
    DEBUG_PRINT = 0xF1
    DEBUG_TRACE = 0xF2
    PROFILE_START = 0xF3
    PROFILE_END = 0xF4
    PROFILE_MARK = 0xF5

    RESERVED = 0xFF


class InstructionCategory(enum.IntEnum):
    """Broad classes of instructions, for analysis and optimisation."""

    CONTROL = 0
    MEMORY = 1
    ARITHMETIC = 2
    LOGICAL = 3
    COMPARISON = 4
    TYPE = 5
    OBJECT = 6
    STRING = 7
    ARRAY = 8
    GENERIC = 9
    PATTERN = 10
    EXCEPTION = 11
    MODULE = 12
    BUILTIN = 13
    DEBUG = 14


_BYTE_MAX = 0xFF
_IMM_MAX = 0xFFFF
_WORD_MAX = 0xFFFFFFFF


def _check_range(name: str, value: int, upper: int) -> int:
    number = int(value)
    if not 0 <= number <= upper:
        raise ValueError(f"{name} must be in 0..{upper}, got {number}")
    return number


def _to_opcode(op: int) -> Union[RegisterOpcode, int]:
    try:
        return RegisterOpcode(op)
    except ValueError:
        return op


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction word.

    ``opcode`` is a :class:`RegisterOpcode` when the byte names one, and the
    raw byte otherwise.
    """

    opcode: Union[RegisterOpcode, int]
    dst: int = 0
    src1: int = 0
    src2: int = 0

    def __post_init__(self) -> None:
        op = _check_range("opcode", self.opcode, _BYTE_MAX)
        object.__setattr__(self, "opcode", _to_opcode(op))
        for name in ("dst", "src1", "src2"):
            object.__setattr__(self, name, _check_range(name, getattr(self, name), _BYTE_MAX))

    @property
    def imm(self) -> int:
        """The 16-bit immediate formed by ``src1`` and ``src2``."""
        return self.src1 | (self.src2 << 8)

    @property
    def is_known(self) -> bool:
        """Whether the opcode byte names a defined opcode."""
        return isinstance(self.opcode, RegisterOpcode)

    def encode(self) -> int:
        """Pack this instruction into a 32-bit word."""
        return make_instruction(self.opcode, self.dst, self.src1, self.src2)


def make_instruction(op: int, dst: int, src1: int, src2: int) -> int:
    """Build a three-register instruction word."""
    op = _check_range("opcode", op, _BYTE_MAX)
    dst = _check_range("dst", dst, _BYTE_MAX)
    src1 = _check_range("src1", src1, _BYTE_MAX)
    src2 = _check_range("src2", src2, _BYTE_MAX)
    return op | (dst << 8) | (src1 << 16) | (src2 << 24)


def make_imm_instruction(op: int, dst: int, imm: int) -> int:
    """Build an instruction word carrying a 16-bit immediate."""
    op = _check_range("opcode", op, _BYTE_MAX)
    dst = _check_range("dst", dst, _BYTE_MAX)
    imm = _check_range("imm", imm, _IMM_MAX)
    return op | (dst << 8) | (imm << 16)


def decode_instruction(word: int) -> Instruction:
    """Split a 32-bit instruction word into its fields."""
    word = _check_range("instruction word", word, _WORD_MAX)
    return Instruction(
        opcode=word & 0xFF,
        dst=(word >> 8) & 0xFF,
        src1=(word >> 16) & 0xFF,
        src2=(word >> 24) & 0xFF,
    )