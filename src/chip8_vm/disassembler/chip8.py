"""
CHIP-8 Disassembler
===================

Disassembles CHIP-8 program images into assembly listings using the
mnemonics of Cowgod's Chip-8 Technical Reference.

Every instruction is exactly two bytes, big-endian, so the listing walks
the image word by word. Programs freely mix code and data (sprites, BCD
scratch space), so words that do not decode are listed as data rather than
rejected:

    $20A: A2 2A     LD I, $22A
    $20C: F0 90     .WORD $F090        ; unknown opcode

A trailing odd byte is listed as .BYTE.

Jump and call targets are annotated with symbol names when a symbol table
is supplied.

Bnnn adds V0 on the COSMAC VIP and Vx (x = top nibble of nnn) on later
interpreters. The listing shows the register the selected mode adds:

    $214: B3 00     JP V3, $300           (modern)
    $214: B3 00     JP V0, $300           (legacy)

Usage:
    disasm = Chip8Disassembler()

    # Disassemble a program image
    instructions = disasm.disassemble(rom_bytes, start_address=0x200, count=10)

    # Disassemble a single instruction
    instr = disasm.disassemble_one(rom_bytes, address=0x200)
    print(f"{instr.address:03X}: {instr.mnemonic} {instr.operand_str}")

Copyright (c) 2026 chip8-vm Contributors
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..errors import UnknownOpcodeError
from ..opcodes import Op, decode

DEFAULT_ORIGIN = 0x200

# Ops whose nnn field is a code address worth annotating
_BRANCH_OPS = frozenset([Op.JP, Op.CALL, Op.JP_OFFSET])


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class DisassembledInstruction:
    """
    Represents a single disassembled CHIP-8 instruction.

    Attributes:
        address: Memory address of the instruction
        word: The instruction word (or the lone byte for .BYTE)
        mnemonic: The instruction mnemonic (e.g., "LD", "DRW", ".WORD")
        operand_str: Formatted operand string for display
        raw_bytes: All bytes comprising this instruction
        comment: Optional comment (unknown opcode, branch target symbol)
    """
    address: int
    word: int
    mnemonic: str
    operand_str: str
    raw_bytes: bytes
    comment: str = ""

    @property
    def size(self) -> int:
        """Instruction size in bytes (2, or 1 for a trailing .BYTE)."""
        return len(self.raw_bytes)

    def __str__(self) -> str:
        """Format as assembly line: ADDRESS: BYTES  MNEMONIC OPERAND"""
        hex_bytes = " ".join(f"{b:02X}" for b in self.raw_bytes).ljust(5)
        asm = f"{self.mnemonic} {self.operand_str}" if self.operand_str else self.mnemonic

        if self.comment:
            return f"${self.address:03X}: {hex_bytes}  {asm:<18} ; {self.comment}"
        return f"${self.address:03X}: {hex_bytes}  {asm}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "address": f"${self.address:03X}",
            "address_int": self.address,
            "word": f"${self.word:04X}",
            "mnemonic": self.mnemonic,
            "operand": self.operand_str,
            "size": self.size,
            "bytes": [f"${b:02X}" for b in self.raw_bytes],
            "comment": self.comment,
        }


# =============================================================================
# CHIP-8 Disassembler
# =============================================================================

class Chip8Disassembler:
    """
    Disassembler for CHIP-8 program images.

    Decoding is shared with the interpreter, so the listing shows exactly
    what the CPU would execute.

    Attributes:
        _symbol_table: Optional symbol table for address annotation
    """

    def __init__(self, symbol_table: Optional[Dict[int, str]] = None, legacy: bool = False):
        """
        Initialize the disassembler.

        Args:
            symbol_table: Optional dict mapping addresses to symbol names.
                         Used to annotate jump and call targets.
            legacy: List Bnnn as adding V0 (COSMAC VIP) instead of Vx
        """
        self._symbol_table = symbol_table or {}
        self._legacy = legacy

    def disassemble_one(
        self,
        data: bytes,
        address: int = DEFAULT_ORIGIN,
        offset: int = 0
    ) -> DisassembledInstruction:
        """
        Disassemble a single instruction.

        Args:
            data: Byte buffer containing the instruction
            address: Memory address of the instruction (for display)
            offset: Offset into data buffer where instruction starts

        Returns:
            DisassembledInstruction with decoded information

        Raises:
            ValueError: If offset is beyond the end of data
        """
        if offset >= len(data):
            raise ValueError(f"Offset {offset} beyond data length {len(data)}")

        if offset + 1 >= len(data):
            byte = data[offset]
            return DisassembledInstruction(
                address=address,
                word=byte,
                mnemonic=".BYTE",
                operand_str=f"${byte:02X}",
                raw_bytes=bytes([byte]),
            )

        raw_bytes = bytes(data[offset:offset + 2])
        word = (raw_bytes[0] << 8) | raw_bytes[1]

        try:
            instruction = decode(word)
        except UnknownOpcodeError:
            return DisassembledInstruction(
                address=address,
                word=word,
                mnemonic=".WORD",
                operand_str=f"${word:04X}",
                raw_bytes=raw_bytes,
                comment="unknown opcode",
            )

        comment = ""
        if instruction.op in _BRANCH_OPS:
            comment = self._symbol_table.get(instruction.nnn, "")

        operand_str = instruction.operand_str
        if instruction.op is Op.JP_OFFSET and not self._legacy:
            operand_str = f"V{instruction.nnn >> 8:X}, ${instruction.nnn:03X}"

        return DisassembledInstruction(
            address=address,
            word=word,
            mnemonic=instruction.mnemonic,
            operand_str=operand_str,
            raw_bytes=raw_bytes,
            comment=comment,
        )

    def disassemble(
        self,
        data: bytes,
        start_address: int = DEFAULT_ORIGIN,
        count: Optional[int] = None
    ) -> List[DisassembledInstruction]:
        """
        Disassemble multiple instructions.

        Args:
            data: Byte buffer containing the program image
            start_address: Memory address of first byte
            count: Maximum number of instructions to disassemble (None = all)

        Returns:
            List of DisassembledInstruction objects
        """
        result = []
        offset = 0

        while offset < len(data):
            if count is not None and len(result) >= count:
                break
            instr = self.disassemble_one(data, start_address + offset, offset)
            result.append(instr)
            offset += instr.size

        return result

    def disassemble_to_text(
        self,
        data: bytes,
        start_address: int = DEFAULT_ORIGIN,
        count: Optional[int] = None,
        show_bytes: bool = True
    ) -> str:
        """
        Disassemble and return a multi-line listing.

        Args:
            data: Byte buffer containing the program image
            start_address: Memory address of first byte
            count: Maximum number of instructions
            show_bytes: Include the raw instruction bytes in each line

        Returns:
            Multi-line string with disassembly listing
        """
        instructions = self.disassemble(data, start_address, count)
        if show_bytes:
            return "\n".join(str(instr) for instr in instructions)

        lines = []
        for instr in instructions:
            asm = f"{instr.mnemonic} {instr.operand_str}" if instr.operand_str else instr.mnemonic
            if instr.comment:
                asm = f"{asm:<18} ; {instr.comment}"
            lines.append(f"${instr.address:03X}: {asm}")
        return "\n".join(lines)

    def add_symbol(self, address: int, name: str) -> None:
        """Add a symbol to the symbol table."""
        self._symbol_table[address] = name

    def add_symbols(self, symbols: Dict[int, str]) -> None:
        """Add multiple symbols to the symbol table."""
        self._symbol_table.update(symbols)
