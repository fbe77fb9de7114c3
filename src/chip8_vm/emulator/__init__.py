"""
CHIP-8 Virtual Machine
======================

A headless interpreter for the CHIP-8 instruction set.

This package provides:

- **Interpreter**: Fetch-decode-execute over the full 35-instruction set,
  with a legacy switch and individually selectable quirks
- **Memory**: 4KB with the hexadecimal font preloaded
- **Display**: 64x32 XOR framebuffer with text and PNG output
- **Keypad**: 16 keys with the conventional QWERTY mapping
- **Timers**: 60 Hz delay and sound timers, decoupled from instruction rate
- **Debugging**: Breakpoints, register conditions, fault policies

Quick Start
-----------

Basic usage::

    >>> from chip8_vm.emulator import Emulator, EmulatorConfig
    >>> emu = Emulator(EmulatorConfig(legacy=True))
    >>> emu.load_rom("maze.ch8")
    >>> event = emu.run_frames(120)
    >>> print(emu.display_text)

With debugging::

    >>> emu = Emulator(EmulatorConfig(fault_policy=FaultPolicy.HALT))
    >>> emu.load_rom("game.ch8")
    >>> emu.add_breakpoint(0x2F0)
    >>> event = emu.run()
    >>> if event.reason == BreakReason.PC_BREAKPOINT:
    ...     print(f"Stopped at ${event.address:03X}")

Module Structure
----------------

- `emulator.py`: Main Emulator class (high-level API) and EmulatorConfig
- `cpu.py`: Interpreter, register state and quirks
- `memory.py`: 4KB memory and font
- `display.py`: Framebuffer
- `keypad.py`: Keypad state and host key mapping
- `timers.py`: Delay and sound timers
- `breakpoints.py`: Debugging support

Copyright (c) 2026 chip8-vm Contributors
"""

# Main entry point
from .emulator import Emulator, EmulatorConfig, FaultPolicy

# Interpreter
from .cpu import Chip8CPU, CPUState, CpuMode, Quirks

# Memory subsystem
from .memory import Memory, FONT, FONT_ADDRESS, PROGRAM_START, MEMORY_SIZE

# I/O
from .display import Display, DISPLAY_WIDTH, DISPLAY_HEIGHT
from .keypad import Keypad, HOST_KEY_MAP, parse_key
from .timers import Timers, TimerState

# Debugging support
from .breakpoints import (
    BreakpointManager,
    BreakEvent,
    BreakReason,
    RegisterCondition,
)

__all__ = [
    # Main API
    "Emulator",
    "EmulatorConfig",
    "FaultPolicy",

    # Interpreter
    "Chip8CPU",
    "CPUState",
    "CpuMode",
    "Quirks",

    # Memory
    "Memory",
    "FONT",
    "FONT_ADDRESS",
    "PROGRAM_START",
    "MEMORY_SIZE",

    # Display
    "Display",
    "DISPLAY_WIDTH",
    "DISPLAY_HEIGHT",

    # Keypad
    "Keypad",
    "HOST_KEY_MAP",
    "parse_key",

    # Timers
    "Timers",
    "TimerState",

    # Debugging
    "BreakpointManager",
    "BreakEvent",
    "BreakReason",
    "RegisterCondition",
]
