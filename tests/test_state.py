import pytest

from orusvm.state import (
    ExecutionResult,
    InvalidOpcodeError,
    PerformanceCounters,
    VMError,
)
from orusvm.values import ErrorKind, ValueType


def test_counters_start_at_zero_and_reset():
    counters = PerformanceCounters()
    assert counters == PerformanceCounters()
    counters.instructions_executed = 10
    counters.gc_collections = 3
    counters.compilation_time = 99
    assert counters != PerformanceCounters()
    counters.reset()
    assert counters == PerformanceCounters()
    assert counters.instructions_executed == 0
    assert counters.compilation_time == 0


def test_vm_error_builds_runtime_error_value():
    err = VMError("Unknown opcode")
    assert err.message == "Unknown opcode"
    assert err.result is ExecutionResult.ERROR
    assert err.error.type is ValueType.ERROR
    assert err.error.payload.kind is ErrorKind.RUNTIME
    assert err.error.payload.message == "Unknown opcode"


def test_invalid_opcode_error_is_vm_error():
    err = InvalidOpcodeError("Unknown opcode")
    assert err.result is ExecutionResult.INVALID_OPCODE
    assert err.message == "Unknown opcode"
    assert err.error.payload.message == "Unknown opcode"
    with pytest.raises(VMError) as info:
        raise err
    assert info.value is err


def test_execution_result_lookup():
    assert ExecutionResult(0) is ExecutionResult.OK
    assert ExecutionResult(5) is ExecutionResult.INVALID_OPCODE