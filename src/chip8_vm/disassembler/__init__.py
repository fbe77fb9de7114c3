"""
CHIP-8 VM Disassembler Module
=============================

Listing generator for CHIP-8 program images, used by the chip8disasm tool
and by Emulator.disassemble_at() when debugging.

Usage:
    from chip8_vm.disassembler import Chip8Disassembler

    disasm = Chip8Disassembler()
    instructions = disasm.disassemble(rom_bytes, start_address=0x200)

Copyright (c) 2026 chip8-vm Contributors
"""

from .chip8 import Chip8Disassembler, DisassembledInstruction, DEFAULT_ORIGIN

__all__ = [
    "Chip8Disassembler",
    "DisassembledInstruction",
    "DEFAULT_ORIGIN",
]
