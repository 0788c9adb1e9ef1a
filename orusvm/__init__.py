"""A register-based virtual machine: typed values, 32-bit instruction words, bytecode chunks and an executor."""

__version__ = "0.7.0"

__all__ = ["values", "opcodes", "chunk", "state", "arithmetic", "vm"]