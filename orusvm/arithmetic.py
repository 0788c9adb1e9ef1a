"""Arithmetic helpers and type naming used by the register VM."""

from __future__ import annotations

from .opcodes import RegisterOpcode
from .values import Value, ValueType


class ArithmeticFault(ArithmeticError):
    """An arithmetic instruction could not produce a result."""


def _truncating_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def _require(kind: ValueType, a: Value, b: Value, op: RegisterOpcode) -> None:
    if a.type is not kind or b.type is not kind:
        raise ArithmeticFault(f"{op.name} requires two {kind.name.lower()} operands")


def perform_arithmetic(op: int, a: Value, b: Value) -> Value:
    """Apply a binary arithmetic opcode to two values.

    Only the i32 and f64 add, subtract, multiply and divide opcodes are
    supported; anything else, mismatched operand types or division by zero
    raises :class:`ArithmeticFault`.
    """
    try:
        opcode = RegisterOpcode(op)
    except ValueError:
        raise ArithmeticFault(f"unknown opcode {op}") from None

    if opcode in (
        RegisterOpcode.ADD_I32,
        RegisterOpcode.SUB_I32,
        RegisterOpcode.MUL_I32,
        RegisterOpcode.DIV_I32,
    ):
        _require(ValueType.I32, a, b, opcode)
        x, y = a.payload, b.payload
        if opcode is RegisterOpcode.ADD_I32:
            return Value.i32(x + y)
        if opcode is RegisterOpcode.SUB_I32:
            return Value.i32(x - y)
        if opcode is RegisterOpcode.MUL_I32:
            return Value.i32(x * y)
        if y == 0:
            raise ArithmeticFault("integer division by zero")
        return Value.i32(_truncating_div(x, y))

    if opcode in (
        RegisterOpcode.ADD_F64,
        RegisterOpcode.SUB_F64,
        RegisterOpcode.MUL_F64,
        RegisterOpcode.DIV_F64,
    ):
        _require(ValueType.F64, a, b, opcode)
        x, y = a.payload, b.payload
        if opcode is RegisterOpcode.ADD_F64:
            return Value.f64(x + y)
        if opcode is RegisterOpcode.SUB_F64:
            return Value.f64(x - y)
        if opcode is RegisterOpcode.MUL_F64:
            return Value.f64(x * y)
        if y == 0.0:
            raise ArithmeticFault("float division by zero")
        return Value.f64(x / y)

    raise ArithmeticFault(f"unsupported arithmetic opcode {opcode.name}")


_TYPE_NAMES = {
    ValueType.I32: "i32",
    ValueType.I64: "i64",
    ValueType.U32: "u32",
    ValueType.U64: "u64",
    ValueType.F64: "f64",
    ValueType.BOOL: "bool",
    ValueType.NIL: "nil",
    ValueType.STRING: "string",
    ValueType.ARRAY: "array",
    ValueType.ERROR: "error",
    ValueType.ENUM: "enum",
}


def type_name_of(value: Value) -> str:
    """Name of a value's runtime type, as reported by TYPE_OF."""
    return _TYPE_NAMES.get(value.type, "unknown")