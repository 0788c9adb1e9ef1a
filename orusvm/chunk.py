"""Compiled bytecode for the register VM: instructions, constants and globals."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .opcodes import Instruction
from .values import Value

_WORD_MAX = 0xFFFFFFFF
_CONSTANT_LIMIT = 0xFFFFFFFF
_GLOBAL_LIMIT = 0x10000


@dataclass
class RegisterChunk:
    """A unit of compiled code with its constant pool and global storage.

    ``code`` holds 32-bit instruction words; ``constants`` and ``globals``
    hold :class:`Value` instances addressed by index.
    """

    module_name: str = ""
    code: list[int] = field(default_factory=list)
    constants: list[Value] = field(default_factory=list)
    globals: list[Value] = field(default_factory=list)

    def add_instruction(self, instruction: Union[int, Instruction]) -> int:
        """Append an instruction word and return its address."""
        if isinstance(instruction, Instruction):
            word = instruction.encode()
        elif isinstance(instruction, int) and not isinstance(instruction, bool):
            word = instruction
        else:
            raise TypeError("instruction must be an int word or an Instruction")
        if not 0 <= word <= _WORD_MAX:
            raise ValueError(f"instruction word must be in 0..{_WORD_MAX}, got {word}")
        self.code.append(word)
        return len(self.code) - 1

    def add_constant(self, value: Value) -> int:
        """Append a value to the constant pool and return its index."""
        if not isinstance(value, Value):
            raise TypeError("constant must be a Value")
        if len(self.constants) >= _CONSTANT_LIMIT:
            raise OverflowError("constant pool is full")
        self.constants.append(value)
        return len(self.constants) - 1

    def add_global(self, value: Value) -> int:
        """Add a global variable with an initial value and return its index."""
        if not isinstance(value, Value):
            raise TypeError("global initial value must be a Value")
        if len(self.globals) >= _GLOBAL_LIMIT:
            raise OverflowError("too many global variables")
        self.globals.append(value)
        return len(self.globals) - 1

    def __len__(self) -> int:
        return len(self.code)