import io

import pytest

from orusvm.chunk import RegisterChunk
from orusvm.opcodes import RegisterOpcode as Op
from orusvm.opcodes import make_imm_instruction, make_instruction
from orusvm.state import ExecutionResult, InvalidOpcodeError, StatusFlag, VMError
from orusvm.values import ErrorKind, ErrorObject, Value, ValueType
from orusvm.vm import RegisterVM, build_info, version


def build(*words):
    chunk = RegisterChunk("test")
    for word in words:
        chunk.add_instruction(word)
    return chunk


def load(dst, imm):
    return make_imm_instruction(Op.LOAD_IMM, dst, imm)


def test_add_i32_stores_sum():
    vm = RegisterVM(build(load(0, 5), load(1, 7), make_instruction(Op.ADD_I32, 2, 0, 1)))
    assert vm.execute() is ExecutionResult.OK
    assert vm.registers[2] == Value.i32(5 + 7)
    assert vm.running is False


def test_print_writes_value_and_newline():
    out = io.StringIO()
    chunk = build(load(0, 42), make_instruction(Op.PRINT, 0, 0, 0))
    RegisterVM(chunk, out).execute()
    assert out.getvalue() == "42\n"


def test_halt_stops_execution():
    vm = RegisterVM(build(make_instruction(Op.HALT, 0, 0, 0), load(0, 9)))
    vm.execute()
    assert vm.ip == 1
    assert vm.registers[0] == Value.nil()


def test_jump_out_of_bounds_records_error():
    vm = RegisterVM(build(make_imm_instruction(Op.JMP, 0, 50)))
    with pytest.raises(VMError) as info:
        vm.execute()
    assert info.value.message == "Jump target out of bounds"
    assert vm.has_error is True
    assert vm.last_error.payload.message == "Jump target out of bounds"


def test_unknown_opcode_raises_invalid_opcode():
    vm = RegisterVM(build(make_instruction(Op.CALL, 0, 0, 0)))
    with pytest.raises(InvalidOpcodeError) as info:
        vm.execute()
    assert info.value.result is ExecutionResult.INVALID_OPCODE
    assert vm.has_error is True


def test_division_by_zero_raises_without_recording():
    vm = RegisterVM(build(load(0, 1), load(1, 0), make_instruction(Op.DIV_I32, 2, 0, 1)))
    with pytest.raises(VMError):
        vm.execute()
    assert vm.has_error is False
    assert vm.registers[2] == Value.nil()


def test_jz_skips_when_zero():
    chunk = build(
        load(0, 0),
        make_imm_instruction(Op.JZ, 0, 0) | (0 << 8),
        load(1, 1),
    )
    # JZ reads its condition from src1 and its target from imm; target 3 skips load.
    chunk.code[1] = make_imm_instruction(Op.JZ, 0, 3) & 0x0000FFFF | (3 << 16)
    vm = RegisterVM(chunk)
    vm.execute()
    assert vm.registers[1] == Value.nil()


def test_load_const_out_of_bounds():
    vm = RegisterVM(build(make_imm_instruction(Op.LOAD_CONST, 0, 3)))
    with pytest.raises(VMError, match="Constant index out of bounds"):
        vm.execute()


def test_load_const_reads_pool():
    chunk = build(make_imm_instruction(Op.LOAD_CONST, 4, 0))
    chunk.add_constant(Value.string("hello"))
    vm = RegisterVM(chunk)
    vm.execute()
    assert vm.registers[4] == Value.string("hello")


def test_type_of_names_type():
    vm = RegisterVM(build(load(0, 3), make_instruction(Op.TYPE_OF, 1, 0, 0)))
    vm.execute()
    assert vm.registers[1] == Value.string("i32")


def test_compare_equal_sets_zero_flag():
    vm = RegisterVM(build(load(0, 4), load(1, 4), make_instruction(Op.CMP_I32, 0, 0, 1)))
    vm.execute()
    assert StatusFlag.ZERO in vm.flags
    assert StatusFlag.NEGATIVE not in vm.flags


def test_compare_less_sets_negative_flag():
    vm = RegisterVM(build(load(0, 2), load(1, 4), make_instruction(Op.CMP_I32, 0, 0, 1)))
    vm.execute()
    assert StatusFlag.NEGATIVE in vm.flags
    assert StatusFlag.ZERO not in vm.flags


def test_negate_sets_negative_flag():
    vm = RegisterVM(build(load(0, 6), make_instruction(Op.NEG_I32, 1, 0, 0)))
    vm.execute()
    assert vm.registers[1] == Value.i32(-6)
    assert StatusFlag.NEGATIVE in vm.flags


def test_equality_on_strings():
    chunk = build(
        make_imm_instruction(Op.LOAD_CONST, 0, 0),
        make_imm_instruction(Op.LOAD_CONST, 1, 1),
        make_instruction(Op.EQ_STR, 2, 0, 1),
    )
    chunk.add_constant(Value.string("abc"))
    chunk.add_constant(Value.string("abc"))
    vm = RegisterVM(chunk)
    vm.execute()
    assert vm.registers[2] == Value.boolean(True)


def test_move_copies_register():
    vm = RegisterVM(build(load(0, 11), make_instruction(Op.MOVE, 5, 0, 0)))
    vm.execute()
    assert vm.registers[5] == vm.registers[0]


def test_invalid_register_rejected():
    vm = RegisterVM(build(make_instruction(Op.MOVE, 40, 0, 0)))
    with pytest.raises(VMError, match="Invalid register for move"):
        vm.execute()


def test_jmp_reg_requires_integer():
    chunk = build(make_imm_instruction(Op.LOAD_CONST, 0, 0), make_instruction(Op.JMP_REG, 0, 0, 0))
    chunk.add_constant(Value.string("x"))
    with pytest.raises(VMError, match="Jump target must be integer"):
        RegisterVM(chunk).execute()


def test_profiling_counts_instructions():
    vm = RegisterVM(build(load(0, 1), load(1, 2), load(2, 3)))
    counters = vm.enable_profiling()
    vm.execute()
    assert counters.instructions_executed == len(vm.chunk)
    vm.disable_profiling()
    assert vm.performance is None


def test_trace_output_format():
    out = io.StringIO()
    vm = RegisterVM(build(load(0, 5)), out)
    vm.set_debug_options(True, False)
    vm.execute()
    assert out.getvalue() == "[0000] ROP_11 R0 R5 R0\n"


def test_step_runs_single_instruction():
    vm = RegisterVM(build(load(0, 1), load(1, 2)))
    assert vm.step() is ExecutionResult.OK
    assert vm.ip == 1
    assert vm.registers[1] == Value.nil()


def test_step_past_end_raises():
    vm = RegisterVM(build(load(0, 1)))
    vm.step()
    with pytest.raises(VMError):
        vm.step()


def test_step_over_advances_one_instruction_without_calls():
    vm = RegisterVM(build(load(0, 1), load(1, 2)))
    vm.step_over()
    assert vm.ip == 1


def test_execute_without_chunk_raises():
    with pytest.raises(VMError):
        RegisterVM().execute()


def test_recorded_error_stops_execution():
    vm = RegisterVM(build(load(0, 1)))
    vm.set_error(Value.error(ErrorObject(ErrorKind.RUNTIME, "boom")))
    with pytest.raises(VMError, match="boom"):
        vm.execute()
    assert vm.registers[0] == Value.nil()
    vm.clear_error()
    vm.execute()
    assert vm.registers[0] == Value.i32(1)


def test_reset_clears_registers_and_error():
    chunk = build(load(0, 7))
    vm = RegisterVM(chunk)
    vm.execute()
    vm.set_error(Value.nil())
    vm.reset(chunk)
    assert vm.ip == 0
    assert vm.has_error is False
    assert all(reg == Value.nil() for reg in vm.registers)


def test_is_valid_tracks_instruction_pointer():
    vm = RegisterVM(build(load(0, 1)))
    assert vm.is_valid() is True
    vm.execute()
    assert vm.is_valid() is False


def test_debug_state_lists_registers():
    vm = RegisterVM(build(load(0, 1)))
    vm.execute()
    text = vm.debug_state(True)
    assert "IP: 0001" in text
    assert "R00: 1" in text
    assert "R31: nil" in text
    assert text.startswith("=== Register VM State ===\n")
    assert "R00" not in vm.debug_state(False)


def test_global_store_and_load():
    chunk = build(load(0, 0))
    chunk.add_global(Value.nil())
    chunk.add_instruction(make_imm_instruction(Op.LOAD_GLOBAL, 3, 0))
    vm = RegisterVM(chunk)
    vm.execute()
    assert vm.registers[3] == chunk.globals[0]
    assert vm.registers[3].type is ValueType.NIL


def test_version_and_build_info():
    assert version() == "Orus Register VM 1.0.0"
    assert build_info().startswith("Built on ")