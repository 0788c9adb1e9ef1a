"""Runtime values of the virtual machine: tagged values, printing and equality."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional


class ValueType(enum.IntEnum):
    """Tag identifying the kind of data a value carries."""

    I32 = 0
    I64 = 1
    U32 = 2
    U64 = 3
    F64 = 4
    BOOL = 5
    NIL = 6
    STRING = 7
    ARRAY = 8
    ERROR = 9
    RANGE_ITERATOR = 10
    ENUM = 11


class ErrorKind(enum.IntEnum):
    """Category of a runtime error object."""

    RUNTIME = 0
    TYPE = 1
    IO = 2


@dataclass(frozen=True)
class SrcLocation:
    """Position in a source file."""

    file: Optional[str] = None
    line: int = 0
    column: int = 0


@dataclass(eq=False)
class ErrorObject:
    """Heap error object; compared by identity."""

    kind: ErrorKind
    message: str
    location: SrcLocation = field(default_factory=SrcLocation)


@dataclass(eq=False)
class RangeIterator:
    """Integer range iterator; compared by identity."""

    current: int
    end: int


@dataclass(eq=False)
class EnumValue:
    """Enum instance holding its variant index and optional payload."""

    variant_index: int
    type_name: str
    data: list = field(default_factory=list)


def _wrap_signed(number: int, bits: int) -> int:
    number &= (1 << bits) - 1
    if number >= 1 << (bits - 1):
        number -= 1 << bits
    return number


def _wrap_unsigned(number: int, bits: int) -> int:
    return number & ((1 << bits) - 1)


@dataclass(frozen=True)
class Value:
    """A tagged runtime value."""

    type: ValueType
    payload: Any = None

    @classmethod
    def i32(cls, number: int) -> "Value":
        return cls(ValueType.I32, _wrap_signed(int(number), 32))

    @classmethod
    def i64(cls, number: int) -> "Value":
        return cls(ValueType.I64, _wrap_signed(int(number), 64))

    @classmethod
    def u32(cls, number: int) -> "Value":
        return cls(ValueType.U32, _wrap_unsigned(int(number), 32))

    @classmethod
    def u64(cls, number: int) -> "Value":
        return cls(ValueType.U64, _wrap_unsigned(int(number), 64))

    @classmethod
    def f64(cls, number: float) -> "Value":
        return cls(ValueType.F64, float(number))

    @classmethod
    def boolean(cls, flag: bool) -> "Value":
        return cls(ValueType.BOOL, bool(flag))

    @classmethod
    def nil(cls) -> "Value":
        return cls(ValueType.NIL, None)

    @classmethod
    def string(cls, text: str) -> "Value":
        if not isinstance(text, str):
            raise TypeError("string value requires str")
        return cls(ValueType.STRING, text)

    @classmethod
    def array(cls, elements: Iterable["Value"]) -> "Value":
        items = list(elements)
        if not all(isinstance(item, Value) for item in items):
            raise TypeError("array elements must be Value instances")
        return cls(ValueType.ARRAY, items)

    @classmethod
    def error(cls, error: ErrorObject) -> "Value":
        if not isinstance(error, ErrorObject):
            raise TypeError("error value requires ErrorObject")
        return cls(ValueType.ERROR, error)

    @classmethod
    def range_iterator(cls, iterator: RangeIterator) -> "Value":
        if not isinstance(iterator, RangeIterator):
            raise TypeError("range iterator value requires RangeIterator")
        return cls(ValueType.RANGE_ITERATOR, iterator)

    @classmethod
    def enum(cls, enum_value: EnumValue) -> "Value":
        if not isinstance(enum_value, EnumValue):
            raise TypeError("enum value requires EnumValue")
        return cls(ValueType.ENUM, enum_value)

    def __str__(self) -> str:
        return format_value(self)


def format_value(
    value: Value, variant_names: Optional[Mapping[str, Sequence[str]]] = None
) -> str:
    """Render a value in human readable form.

    ``variant_names`` maps an enum type name to its variant names; without
    an entry an enum prints as ``Type.index``.
    """
    kind = value.type
    payload = value.payload
    if kind in (ValueType.I32, ValueType.I64, ValueType.U32, ValueType.U64):
        return str(payload)
    if kind is ValueType.F64:
        return f"{payload:g}"
    if kind is ValueType.BOOL:
        return "true" if payload else "false"
    if kind is ValueType.NIL:
        return "nil"
    if kind is ValueType.STRING:
        return payload
    if kind is ValueType.ARRAY:
        return "[" + ", ".join(format_value(item, variant_names) for item in payload) + "]"
    if kind is ValueType.ERROR:
        return f"Error({int(payload.kind)}): {payload.message}"
    if kind is ValueType.RANGE_ITERATOR:
        return f"<range {payload.current}..{payload.end}>"
    if kind is ValueType.ENUM:
        names = (variant_names or {}).get(payload.type_name)
        if names is not None and 0 <= payload.variant_index < len(names):
            text = f"{payload.type_name}::{names[payload.variant_index]}"
        else:
            text = f"{payload.type_name}.{payload.variant_index}"
        if payload.data:
            text += "(" + ", ".join(format_value(item, variant_names) for item in payload.data) + ")"
        return text
    return "unknown"


def values_equal(a: Value, b: Value) -> bool:
    """Equality as the VM defines it; enums never compare equal."""
    if a.type != b.type:
        return False
    kind = a.type
    if kind in (
        ValueType.I32,
        ValueType.I64,
        ValueType.U32,
        ValueType.U64,
        ValueType.F64,
        ValueType.BOOL,
        ValueType.STRING,
    ):
        return a.payload == b.payload
    if kind is ValueType.NIL:
        return True
    if kind is ValueType.ARRAY:
        if len(a.payload) != len(b.payload):
            return False
        return all(values_equal(x, y) for x, y in zip(a.payload, b.payload))
    if kind in (ValueType.ERROR, ValueType.RANGE_ITERATOR):
        return a.payload is b.payload
    return False