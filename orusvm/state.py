"""Execution state shared by the register VM: flags, results, counters and errors."""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from typing import Optional

from .values import ErrorKind, ErrorObject, SrcLocation, Value

REGISTER_COUNT = 32
REG_SP = 32
REG_FP = 33
REG_FLAGS = 34
TOTAL_REGISTER_COUNT = 35
MAX_CALL_STACK_DEPTH = 256
MAX_EXCEPTION_HANDLERS = 64


class StatusFlag(enum.IntFlag):
    """Status bits set by arithmetic and comparison instructions."""

    ZERO = 0x01
    NEGATIVE = 0x02
    CARRY = 0x04
    OVERFLOW = 0x08
    ERROR = 0x10


class ExecutionResult(enum.IntEnum):
    """Outcome of running or stepping the VM."""

    OK = 0
    ERROR = 1
    EXCEPTION = 2
    STACK_OVERFLOW = 3
    OUT_OF_MEMORY = 4
    INVALID_OPCODE = 5


@dataclass
class PerformanceCounters:
    """Profiling counters; times are in nanoseconds."""

    instructions_executed: int = 0
    function_calls: int = 0
    memory_allocations: int = 0
    gc_collections: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    execution_time: int = 0
    gc_time: int = 0
    compilation_time: int = 0

    def reset(self) -> None:
        """Set every counter back to zero."""
        for counter in fields(self):
            setattr(self, counter.name, 0)


class VMError(Exception):
    """A runtime error raised while executing bytecode.

    ``error`` is the runtime error value recorded by the VM and ``result``
    the execution result the failure corresponds to.
    """

    result = ExecutionResult.ERROR

    def __init__(self, message: str, error: Optional[Value] = None) -> None:
        super().__init__(message)
        self.message = message
        if error is None:
            error = Value.error(ErrorObject(ErrorKind.RUNTIME, message, SrcLocation()))
        self.error = error


class InvalidOpcodeError(VMError):
    """Raised when an instruction's opcode is not handled by the VM."""

    result = ExecutionResult.INVALID_OPCODE