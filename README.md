# orusvm

A small register-based virtual machine. It runs 32-bit instruction words
over 35 registers (32 general-purpose plus SP, FP and FLAGS). It works on
typed runtime values, and a bytecode chunk holds the instructions, a
constant pool and global storage.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Values

`orusvm.values.Value` is a tagged runtime value. Its class methods build
each kind: `i32`, `i64`, `u32`, `u64`, `f64`, `boolean`, `nil`, `string`,
`array`, `error`, `range_iterator` and `enum`. Integer constructors wrap
to their bit width.

```python
from orusvm.values import Value, values_equal

a = Value.i32(40)
arr = Value.array([Value.i32(1), Value.i32(2)])

print(str(arr))                                   # [1, 2]
print(values_equal(a, Value.i32(40)))             # True
print(values_equal(a, Value.i64(40)))             # False: types differ
```

`values_equal` compares numbers, booleans and strings by value, arrays
element by element, and error and range-iterator values by identity. Enum
values never compare equal.

`format_value(value, variant_names=None)` renders a value the way the VM
prints it. `variant_names` maps enum type names to lists of variant names.
With an entry, an enum shows as `Option::Some(1)`. Without one it shows as
`Option.0(1)`. Floats use `%g` formatting, and errors show as
`Error(<kind>): <message>`.

## Instructions

`orusvm.opcodes` holds the `RegisterOpcode` and `InstructionCategory`
enums and the word layout. A word has opcode, destination, source 1 and
source 2, one byte each from the low end. Immediate forms use opcode,
destination and a 16-bit immediate instead:

```python
from orusvm.opcodes import RegisterOpcode, make_instruction, decode_instruction

word = make_instruction(RegisterOpcode.ADD_I32, 2, 0, 1)
inst = decode_instruction(word)
assert inst.encode() == word
```

`Instruction.imm` gives the 16-bit immediate, and `Instruction.is_known`
tells whether the opcode byte names a defined opcode. Fields outside
their range raise `ValueError`.

## Running a program

```python
import io
from orusvm.chunk import RegisterChunk
from orusvm.opcodes import RegisterOpcode, make_instruction, make_imm_instruction
from orusvm.values import Value
from orusvm.vm import RegisterVM

chunk = RegisterChunk()
k = chunk.add_constant(Value.i32(40))
chunk.add_instruction(make_imm_instruction(RegisterOpcode.LOAD_CONST, 0, k))
chunk.add_instruction(make_imm_instruction(RegisterOpcode.LOAD_IMM, 1, 2))
chunk.add_instruction(make_instruction(RegisterOpcode.ADD_I32, 2, 0, 1))
chunk.add_instruction(make_instruction(RegisterOpcode.PRINT, 0, 2, 0))
chunk.add_instruction(make_instruction(RegisterOpcode.HALT, 0, 0, 0))

out = io.StringIO()
vm = RegisterVM(chunk, out)
vm.execute()
print(out.getvalue())   # 42
```

The VM executes these opcodes:

- Control flow: `NOP`, `HALT`, `JMP`, `JMP_REG`, `JZ`, `JNZ`.
- Loads and stores: `MOVE`, `LOAD_IMM`, `LOAD_CONST`, `LOAD_GLOBAL`, `STORE_GLOBAL`.
- Arithmetic: add, subtract, multiply and divide on i32 and f64, and `NEG_I32`.
- Comparison: `CMP_I32`, `CMP_I64` and `CMP_F64` set the ZERO and NEGATIVE flags.
- Equality: `EQ_I32`, `EQ_STR`, `EQ_OBJ`.
- Output and types: `TYPE_OF` and `PRINT`.

Runtime faults raise `orusvm.state.VMError`. Examples are an out-of-range
jump, a bad constant or global index, mismatched operand types and
division by zero. An opcode the VM does not handle raises
`orusvm.state.InvalidOpcodeError`. Most faults also set `vm.last_error`
and `vm.has_error`; `clear_error()` resets them. Arithmetic faults raise
without setting them. `orusvm.arithmetic` exposes the helpers directly:
`perform_arithmetic(op, a, b)` raises `ArithmeticFault`, and
`type_name_of(value)` is also available.

Other `RegisterVM` methods:

- `step()` runs one instruction.
- `step_over()` steps while the call depth is above where it started.
- `reset(chunk)` clears the VM state.
- `enable_profiling()` returns a `PerformanceCounters` that counts the instructions executed.
- `set_debug_options(trace_execution, trace_memory)` with `trace_execution` on writes one trace line per instruction to the output.
- `debug_state(include_registers)` returns a text dump of the machine.
- `is_valid()` reports whether execution can continue.

`version()` and `build_info()` describe the VM.

## What it does not do

- No source language, compiler or parser: programs are built by hand as instruction words in a `RegisterChunk`.
- No command-line tool.
- No way to save or load chunks.
- Many opcodes are defined but raise `InvalidOpcodeError` when executed. These include calls and returns, i64/u32/u64 arithmetic and modulo, bitwise and boolean operations, casts, objects, strings, arrays, pattern matching, exceptions, modules, and every built-in other than `PRINT`.
- Since there are no calls, the call depth never changes.
- There is no garbage collector, so `trace_memory` has no visible effect.