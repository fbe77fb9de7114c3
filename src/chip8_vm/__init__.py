"""
chip8-vm - A CHIP-8 Virtual Machine
===================================

This package implements a virtual machine for CHIP-8, the interpreted
8-bit instruction set created in 1977 for the COSMAC VIP. It reproduces
the machine's memory layout, register file, display, keypad and timers
closely enough that original programs run unmodified.

Main Components
---------------
- **emulator**: The machine itself
    Interpreter, memory, framebuffer, keypad, timers and the Emulator
    driver that runs them at a configurable instruction rate

- **disassembler**: Listing generator (chip8disasm)
    Turns program images back into CHIP-8 assembly

- **cli**: Command-line tools
    chip8run (headless runner) and chip8disasm

Quick Start
-----------
Run a program for two seconds of machine time:
    >>> from chip8_vm import Emulator, EmulatorConfig
    >>> emu = Emulator(EmulatorConfig(legacy=True))
    >>> emu.load_rom("ibm_logo.ch8")
    >>> event = emu.run_frames(120)
    >>> print(emu.display_text)

Disassemble a program:
    >>> from chip8_vm import Chip8Disassembler
    >>> disasm = Chip8Disassembler()
    >>> print(disasm.disassemble_to_text(open("ibm_logo.ch8", "rb").read()))

Or use the command-line tools:
    $ chip8run ibm_logo.ch8 --frames 120
    $ chip8disasm ibm_logo.ch8 -o ibm_logo.lst

Reference Documentation
-----------------------
- Cowgod's Chip-8 Technical Reference: http://devernay.free.fr/hacks/chip8/C8TECH10.HTM

Version History
---------------
1.0.0 - Initial release with interpreter, driver, disassembler and CLI tools
"""

__version__ = "1.0.0"
__author__ = "chip8-vm Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from chip8_vm.errors import (
    Chip8Error,
    Chip8Fault,
    UnknownOpcodeError,
    StackOverflowError,
    StackUnderflowError,
    MemoryOutOfBoundsError,
    ProgramLoadError,
    ProgramTooLargeError,
)
from chip8_vm.opcodes import Instruction, Op, decode
from chip8_vm.emulator import (
    Emulator,
    EmulatorConfig,
    FaultPolicy,
    Chip8CPU,
    CpuMode,
    Quirks,
    BreakEvent,
    BreakReason,
)
from chip8_vm.disassembler import Chip8Disassembler, DisassembledInstruction

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Errors
    "Chip8Error",
    "Chip8Fault",
    "UnknownOpcodeError",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryOutOfBoundsError",
    "ProgramLoadError",
    "ProgramTooLargeError",
    # Decoding
    "Instruction",
    "Op",
    "decode",
    # Machine
    "Emulator",
    "EmulatorConfig",
    "FaultPolicy",
    "Chip8CPU",
    "CpuMode",
    "Quirks",
    "BreakEvent",
    "BreakReason",
    # Disassembler
    "Chip8Disassembler",
    "DisassembledInstruction",
]
