"""The register virtual machine: executes chunks of 32-bit instruction words."""

from __future__ import annotations

import sys
import time
from typing import Optional, TextIO

from .arithmetic import ArithmeticFault, perform_arithmetic, type_name_of
from .chunk import RegisterChunk
from .opcodes import RegisterOpcode, decode_instruction
from .state import (
    MAX_CALL_STACK_DEPTH,
    MAX_EXCEPTION_HANDLERS,
    REG_FP,
    REG_SP,
    REGISTER_COUNT,
    TOTAL_REGISTER_COUNT,
    ExecutionResult,
    InvalidOpcodeError,
    PerformanceCounters,
    StatusFlag,
    VMError,
)
from .values import Value, ValueType, format_value, values_equal

_VERSION = "Orus Register VM 1.0.0"
_BUILT_AT = time.localtime()
_BUILD_INFO = (
    f"Built on {time.strftime('%b', _BUILT_AT)} {_BUILT_AT.tm_mday:2d} "
    f"{_BUILT_AT.tm_year} at {time.strftime('%H:%M:%S', _BUILT_AT)}"
)

_ARITHMETIC_OPS = frozenset(
    {
        RegisterOpcode.ADD_I32,
        RegisterOpcode.SUB_I32,
        RegisterOpcode.MUL_I32,
        RegisterOpcode.DIV_I32,
        RegisterOpcode.MOD_I32,
        RegisterOpcode.ADD_I64,
        RegisterOpcode.SUB_I64,
        RegisterOpcode.MUL_I64,
        RegisterOpcode.DIV_I64,
        RegisterOpcode.MOD_I64,
        RegisterOpcode.ADD_F64,
        RegisterOpcode.SUB_F64,
        RegisterOpcode.MUL_F64,
        RegisterOpcode.DIV_F64,
    }
)
_COMPARE_OPS = frozenset({RegisterOpcode.CMP_I32, RegisterOpcode.CMP_I64, RegisterOpcode.CMP_F64})
_EQUALITY_OPS = frozenset({RegisterOpcode.EQ_I32, RegisterOpcode.EQ_STR, RegisterOpcode.EQ_OBJ})


def version() -> str:
    """Version string of the virtual machine."""
    return _VERSION


def build_info() -> str:
    """Description of when this VM build was produced."""
    return _BUILD_INFO


def _in_bounds(*registers: int) -> bool:
    return all(reg < TOTAL_REGISTER_COUNT for reg in registers)


class RegisterVM:
    """A 32-register virtual machine with three special registers.

    Runtime failures raise :class:`VMError` (or :class:`InvalidOpcodeError`);
    ``PRINT`` output and execution traces go to ``output``, which defaults to
    standard output.
    """

    def __init__(self, chunk: Optional[RegisterChunk] = None, output: Optional[TextIO] = None) -> None:
        self.registers: list[Value] = [Value.nil()] * TOTAL_REGISTER_COUNT
        self.ip = 0
        self.flags = StatusFlag(0)
        self.running = False
        self.chunk = chunk
        self.output = output
        self.call_depth = 0
        self.exception_depth = 0
        self.current_exception = Value.nil()
        self.performance: Optional[PerformanceCounters] = None
        self.debug_mode = False
        self.trace_execution = False
        self.trace_memory = False
        self.last_error = Value.nil()
        self.has_error = False

    @property
    def _out(self) -> TextIO:
        return self.output if self.output is not None else sys.stdout

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self, chunk: Optional[RegisterChunk] = None) -> None:
        """Prepare for a fresh run of ``chunk``, clearing state and errors."""
        self.ip = 0
        self.flags = StatusFlag(0)
        self.running = False
        self.chunk = chunk
        self.call_depth = 0
        self.exception_depth = 0
        self.current_exception = Value.nil()
        self.last_error = Value.nil()
        self.has_error = False
        for reg in range(REGISTER_COUNT):
            self.registers[reg] = Value.nil()
        if self.performance is not None:
            self.performance.reset()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self) -> ExecutionResult:
        """Run until HALT or the end of the chunk."""
        if self.chunk is None:
            raise VMError("no chunk to execute")
        self.running = True
        try:
            while self.running and self.ip < len(self.chunk.code):
                if self.has_error:
                    raise VMError(self._error_message(), self.last_error)
                self._run_one(self.chunk.code[self.ip])
        finally:
            self.running = False
        return ExecutionResult.OK

    def step(self) -> ExecutionResult:
        """Execute exactly one instruction."""
        if self.chunk is None or self.ip >= len(self.chunk.code):
            raise VMError("no instruction to execute")
        self._run_one(self.chunk.code[self.ip])
        return ExecutionResult.OK

    def step_over(self) -> ExecutionResult:
        """Step until execution returns to the current call depth."""
        if self.chunk is None:
            raise VMError("no chunk to execute")
        initial_depth = self.call_depth
        result = self.step()
        while self.call_depth > initial_depth and self.running:
            result = self.step()
        return result

    def _run_one(self, word: int) -> None:
        if self.trace_execution:
            self._trace(word)
        if self.performance is not None:
            self.performance.instructions_executed += 1
        self._execute_instruction(word)

    def _fail(self, message: str) -> None:
        error = VMError(message)
        self.set_error(error.error)
        raise error

    def _error_message(self) -> str:
        if self.last_error.type is ValueType.ERROR:
            return self.last_error.payload.message
        return format_value(self.last_error)

    def _execute_instruction(self, word: int) -> None:
        inst = decode_instruction(word)
        op, dst, src1, src2, imm = inst.opcode, inst.dst, inst.src1, inst.src2, inst.imm
        code_count = len(self.chunk.code)
        regs = self.registers

        self.ip += 1

        if op is RegisterOpcode.NOP:
            return
        if op is RegisterOpcode.HALT:
            self.running = False
            return
        if op is RegisterOpcode.JMP:
            self.ip = imm
            if self.ip >= code_count:
                self._fail("Jump target out of bounds")
            return
        if op is RegisterOpcode.JMP_REG:
            if not _in_bounds(src1):
                self._fail("Invalid register for jump")
            target = regs[src1]
            if target.type is not ValueType.I32:
                self._fail("Jump target must be integer")
            self.ip = target.payload
            if not 0 <= self.ip < code_count:
                self._fail("Jump target out of bounds")
            return
        if op is RegisterOpcode.JZ:
            if not _in_bounds(src1):
                self._fail("Invalid register for conditional jump")
            cond = regs[src1]
            if (
                (cond.type is ValueType.BOOL and not cond.payload)
                or (cond.type is ValueType.I32 and cond.payload == 0)
                or cond.type is ValueType.NIL
            ):
                self.ip = imm
            return
        if op is RegisterOpcode.JNZ:
            if not _in_bounds(src1):
                self._fail("Invalid register for conditional jump")
            cond = regs[src1]
            if cond.type is ValueType.BOOL:
                if cond.payload:
                    self.ip = imm
            elif cond.type is ValueType.I32:
                if cond.payload != 0:
                    self.ip = imm
            elif cond.type is not ValueType.NIL:
                self.ip = imm
            return

        if op is RegisterOpcode.MOVE:
            if not _in_bounds(dst, src1):
                self._fail("Invalid register for move")
            regs[dst] = regs[src1]
            return
        if op is RegisterOpcode.LOAD_IMM:
            if not _in_bounds(dst):
                self._fail("Invalid destination register")
            regs[dst] = Value.i32(imm)
            return
        if op is RegisterOpcode.LOAD_CONST:
            if not _in_bounds(dst):
                self._fail("Invalid destination register")
            if imm >= len(self.chunk.constants):
                self._fail("Constant index out of bounds")
            regs[dst] = self.chunk.constants[imm]
            return
        if op is RegisterOpcode.LOAD_GLOBAL:
            if not _in_bounds(dst):
                self._fail("Invalid destination register")
            if imm >= len(self.chunk.globals):
                self._fail("Global variable index out of bounds")
            regs[dst] = self.chunk.globals[imm]
            return
        if op is RegisterOpcode.STORE_GLOBAL:
            if not _in_bounds(src1):
                self._fail("Invalid source register")
            if imm >= len(self.chunk.globals):
                self._fail("Global variable index out of bounds")
            self.chunk.globals[imm] = regs[src1]
            return

        if op in _ARITHMETIC_OPS:
            if not _in_bounds(dst, src1, src2):
                self._fail("Invalid register for arithmetic")
            try:
                result = perform_arithmetic(op, regs[src1], regs[src2])
            except ArithmeticFault as fault:
                raise VMError(str(fault)) from fault
            regs[dst] = result
            self._update_flags_arithmetic(result)
            return
        if op is RegisterOpcode.NEG_I32:
            if not _in_bounds(dst, src1):
                self._fail("Invalid register for negation")
            if regs[src1].type is not ValueType.I32:
                self._fail("Cannot negate non-integer value")
            regs[dst] = Value.i32(-regs[src1].payload)
            self._update_flags_arithmetic(regs[dst])
            return

        if op in _COMPARE_OPS:
            if not _in_bounds(src1, src2):
                self._fail("Invalid register for comparison")
            a, b = regs[src1], regs[src2]
            if values_equal(a, b):
                self.flags |= StatusFlag.ZERO
                self._update_flags_comparison(0)
            else:
                self.flags &= ~StatusFlag.ZERO
                if a.type is ValueType.I32 and b.type is ValueType.I32:
                    self._update_flags_comparison(a.payload - b.payload)
                else:
                    self._update_flags_comparison(-1)
            return
        if op in _EQUALITY_OPS:
            if not _in_bounds(dst, src1, src2):
                self._fail("Invalid register for equality")
            regs[dst] = Value.boolean(values_equal(regs[src1], regs[src2]))
            return

        if op is RegisterOpcode.TYPE_OF:
            if not _in_bounds(dst, src1):
                self._fail("Invalid register for type operation")
            regs[dst] = Value.string(type_name_of(regs[src1]))
            return

        if op is RegisterOpcode.PRINT:
            if not _in_bounds(src1):
                self._fail("Invalid register for print")
            self._out.write(format_value(regs[src1]) + "\n")
            return

        error = InvalidOpcodeError("Unknown opcode")
        self.set_error(error.error)
        raise error

    def _update_flags_arithmetic(self, result: Value) -> None:
        self.flags &= ~(StatusFlag.ZERO | StatusFlag.NEGATIVE)
        if result.type is ValueType.I32:
            if result.payload == 0:
                self.flags |= StatusFlag.ZERO
            elif result.payload < 0:
                self.flags |= StatusFlag.NEGATIVE

    def _update_flags_comparison(self, comparison: int) -> None:
        self.flags &= ~(StatusFlag.ZERO | StatusFlag.NEGATIVE)
        if comparison == 0:
            self.flags |= StatusFlag.ZERO
        elif comparison < 0:
            self.flags |= StatusFlag.NEGATIVE

    def _trace(self, word: int) -> None:
        inst = decode_instruction(word)
        self._out.write(
            f"[{self.ip:04X}] ROP_{int(inst.opcode):02X} R{inst.dst} R{inst.src1} R{inst.src2}\n"
        )

    # ------------------------------------------------------------------
    # Profiling and debugging
    # ------------------------------------------------------------------

    def enable_profiling(self) -> PerformanceCounters:
        """Turn on performance counters, starting from zero."""
        if self.performance is None:
            self.performance = PerformanceCounters()
        else:
            self.performance.reset()
        return self.performance

    def disable_profiling(self) -> None:
        """Turn off performance counters."""
        self.performance = None

    def debug_state(self, include_registers: bool = False) -> str:
        """Describe the VM state, optionally with every register."""
        lines = [
            "=== Register VM State ===",
            f"IP: {self.ip:04X}",
            f"Flags: {int(self.flags):02X}",
            f"Running: {'true' if self.running else 'false'}",
            f"Call Depth: {self.call_depth}",
            f"Exception Depth: {self.exception_depth}",
            f"Has Error: {'true' if self.has_error else 'false'}",
        ]
        if include_registers:
            lines.append("")
            lines.append("=== Registers ===")
            lines.extend(
                f"R{reg:02d}: {format_value(self.registers[reg])}" for reg in range(REGISTER_COUNT)
            )
            lines.append("")
            lines.append("=== Special Registers ===")
            lines.append(f"SP:    {format_value(self.registers[REG_SP])}")
            lines.append(f"FP:    {format_value(self.registers[REG_FP])}")
            lines.append(f"FLAGS: {int(self.flags):02X}")
        lines.append("========================")
        return "\n".join(lines) + "\n"

    def set_debug_options(self, trace_execution: bool, trace_memory: bool) -> None:
        """Choose whether to trace instructions and memory operations."""
        self.trace_execution = bool(trace_execution)
        self.trace_memory = bool(trace_memory)

    # ------------------------------------------------------------------
    # Error state
    # ------------------------------------------------------------------

    def set_error(self, error: Value) -> None:
        """Record a runtime error; execution stops at the next instruction."""
        self.last_error = error
        self.has_error = True

    def clear_error(self) -> None:
        """Forget any recorded runtime error."""
        self.last_error = Value.nil()
        self.has_error = False

    def is_valid(self) -> bool:
        """Whether the VM is in a state from which it can continue."""
        if self.call_depth > MAX_CALL_STACK_DEPTH:
            return False
        if self.exception_depth > MAX_EXCEPTION_HANDLERS:
            return False
        if self.chunk is not None and self.ip >= len(self.chunk.code):
            return False
        return True