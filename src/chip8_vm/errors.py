"""
CHIP-8 VM Error Hierarchy
=========================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from Chip8Error, so callers can catch every
VM-related error with a single except clause.

Exception Hierarchy
-------------------
Chip8Error (base)
├── Chip8Fault (raised while executing an instruction)
│   ├── UnknownOpcodeError - word does not decode to any instruction
│   ├── StackOverflowError - CALL with a full return stack
│   ├── StackUnderflowError - RET with an empty return stack
│   └── MemoryOutOfBoundsError - access outside $000-$FFF
└── ProgramLoadError (program image handling)
    └── ProgramTooLargeError - image does not fit above $200

Faults carry the address of the instruction that raised them (``pc``).
The CPU guarantees that a faulting instruction leaves no partial effects,
so a driver may either stop or skip the instruction and carry on.

Copyright (c) 2026 chip8-vm Contributors
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class Chip8Error(Exception):
    """
    Base exception for all CHIP-8 VM errors.

        try:
            emu.load_rom("pong.ch8")
        except Chip8Error as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Execution Faults
# =============================================================================

class Chip8Fault(Chip8Error):
    """
    Base exception for faults raised by the fetch-decode-execute cycle.

    Attributes:
        message: The fault description (without location)
        pc: Address of the faulting instruction, or None if the fault was
            raised outside of instruction execution (e.g. a direct memory
            access from the host)
    """

    def __init__(self, message: str, pc: Optional[int] = None):
        self.message = message
        self.pc = pc
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.pc is None:
            return self.message
        return f"${self.pc:03X}: {self.message}"

    def at(self, pc: int) -> "Chip8Fault":
        """
        Attach the faulting instruction address.

        Used by the CPU to locate faults raised by lower layers (memory)
        that do not know which instruction was executing.
        """
        self.pc = pc
        self.args = (self._format_message(),)
        return self

    def __str__(self) -> str:
        return self._format_message()


class UnknownOpcodeError(Chip8Fault):
    """
    Fetched word does not correspond to any instruction.

    Historical programs sometimes contain data or vendor-specific
    instructions in regions that are never executed, so drivers usually
    report this and continue.
    """

    def __init__(self, code: int, pc: Optional[int] = None):
        self.code = code
        super().__init__(f"unknown opcode ${code:04X}", pc)


class StackOverflowError(Chip8Fault):
    """CALL executed with the return stack already at capacity."""

    def __init__(self, depth: int, pc: Optional[int] = None):
        self.depth = depth
        super().__init__(f"stack overflow (depth {depth})", pc)


class StackUnderflowError(Chip8Fault):
    """RET executed with an empty return stack."""

    def __init__(self, pc: Optional[int] = None):
        super().__init__("stack underflow (return with empty stack)", pc)


class MemoryOutOfBoundsError(Chip8Fault):
    """
    Memory access outside the 4KB address space.

    Attributes:
        address: The offending address
    """

    def __init__(self, address: int, pc: Optional[int] = None):
        self.address = address
        super().__init__(f"memory access out of bounds at ${address:04X}", pc)


# =============================================================================
# Program Loading
# =============================================================================

class ProgramLoadError(Chip8Error):
    """Base exception for program image errors."""
    pass


class ProgramTooLargeError(ProgramLoadError):
    """
    Program image does not fit between $200 and $FFF.

    Attributes:
        size: Size of the rejected image in bytes
        limit: Maximum image size accepted
    """

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"program is {size} bytes, maximum is {limit} bytes (${limit:03X})"
        )
