"""
CHIP-8 Instruction Decoding
===========================

Every CHIP-8 instruction is one big-endian 16-bit word. The top nibble
selects the instruction group; the remaining 12 bits are split into
operand fields depending on the group:

    nnn  12-bit address            (low 12 bits)
    kk   8-bit immediate           (low byte)
    x    register index            (bits 8-11)
    y    register index            (bits 4-7)
    n    4-bit immediate           (low nibble)

decode() turns a word into an Instruction: an Op tag plus every operand
field pre-extracted. The CPU dispatches on the tag and the disassembler
formats from the same table, so both always agree on what a word means.

Opcode Table (mnemonics from Cowgod's Chip-8 Technical Reference)
----------------------------------------------------------------
    0000  NOP                    8xy5  SUB  Vx, Vy
    00E0  CLS                    8xy6  SHR  Vx, Vy
    00EE  RET                    8xy7  SUBN Vx, Vy
    1nnn  JP   nnn               8xyE  SHL  Vx, Vy
    2nnn  CALL nnn               9xy0  SNE  Vx, Vy
    3xkk  SE   Vx, kk            Annn  LD   I, nnn
    4xkk  SNE  Vx, kk            Bnnn  JP   V0, nnn
    5xy0  SE   Vx, Vy            Cxkk  RND  Vx, kk
    6xkk  LD   Vx, kk            Dxyn  DRW  Vx, Vy, n
    7xkk  ADD  Vx, kk            Ex9E  SKP  Vx
    8xy0  LD   Vx, Vy            ExA1  SKNP Vx
    8xy1  OR   Vx, Vy            Fx07  LD   Vx, DT
    8xy2  AND  Vx, Vy            Fx0A  LD   Vx, K
    8xy3  XOR  Vx, Vy            Fx15  LD   DT, Vx
    8xy4  ADD  Vx, Vy            Fx18  LD   ST, Vx
                                 Fx1E  ADD  I, Vx
                                 Fx29  LD   F, Vx
                                 Fx33  LD   B, Vx
                                 Fx55  LD   [I], Vx
                                 Fx65  LD   Vx, [I]

Copyright (c) 2026 chip8-vm Contributors
"""

from dataclasses import dataclass
from enum import Enum, auto
from functools import lru_cache
from typing import Dict, Tuple

from .errors import UnknownOpcodeError


class Op(Enum):
    """Instruction tags, one per distinct CHIP-8 operation."""
    NOP = auto()          # 0000
    CLS = auto()          # 00E0
    RET = auto()          # 00EE
    JP = auto()           # 1nnn
    CALL = auto()         # 2nnn
    SE_BYTE = auto()      # 3xkk
    SNE_BYTE = auto()     # 4xkk
    SE_REG = auto()       # 5xy0
    LD_BYTE = auto()      # 6xkk
    ADD_BYTE = auto()     # 7xkk
    LD_REG = auto()       # 8xy0
    OR = auto()           # 8xy1
    AND = auto()          # 8xy2
    XOR = auto()          # 8xy3
    ADD_REG = auto()      # 8xy4
    SUB = auto()          # 8xy5
    SHR = auto()          # 8xy6
    SUBN = auto()         # 8xy7
    SHL = auto()          # 8xyE
    SNE_REG = auto()      # 9xy0
    LD_I = auto()         # Annn
    JP_OFFSET = auto()    # Bnnn
    RND = auto()          # Cxkk
    DRW = auto()          # Dxyn
    SKP = auto()          # Ex9E
    SKNP = auto()         # ExA1
    LD_VX_DT = auto()     # Fx07
    LD_VX_K = auto()      # Fx0A
    LD_DT_VX = auto()     # Fx15
    LD_ST_VX = auto()     # Fx18
    ADD_I_VX = auto()     # Fx1E
    LD_F_VX = auto()      # Fx29
    LD_B_VX = auto()      # Fx33
    STORE_REGS = auto()   # Fx55
    LOAD_REGS = auto()    # Fx65


# Op -> (mnemonic, operand format). Operands are formatted with the
# Instruction fields as keyword arguments.
SYNTAX: Dict[Op, Tuple[str, str]] = {
    Op.NOP: ("NOP", ""),
    Op.CLS: ("CLS", ""),
    Op.RET: ("RET", ""),
    Op.JP: ("JP", "${nnn:03X}"),
    Op.CALL: ("CALL", "${nnn:03X}"),
    Op.SE_BYTE: ("SE", "V{x:X}, ${kk:02X}"),
    Op.SNE_BYTE: ("SNE", "V{x:X}, ${kk:02X}"),
    Op.SE_REG: ("SE", "V{x:X}, V{y:X}"),
    Op.LD_BYTE: ("LD", "V{x:X}, ${kk:02X}"),
    Op.ADD_BYTE: ("ADD", "V{x:X}, ${kk:02X}"),
    Op.LD_REG: ("LD", "V{x:X}, V{y:X}"),
    Op.OR: ("OR", "V{x:X}, V{y:X}"),
    Op.AND: ("AND", "V{x:X}, V{y:X}"),
    Op.XOR: ("XOR", "V{x:X}, V{y:X}"),
    Op.ADD_REG: ("ADD", "V{x:X}, V{y:X}"),
    Op.SUB: ("SUB", "V{x:X}, V{y:X}"),
    Op.SHR: ("SHR", "V{x:X}, V{y:X}"),
    Op.SUBN: ("SUBN", "V{x:X}, V{y:X}"),
    Op.SHL: ("SHL", "V{x:X}, V{y:X}"),
    Op.SNE_REG: ("SNE", "V{x:X}, V{y:X}"),
    Op.LD_I: ("LD", "I, ${nnn:03X}"),
    Op.JP_OFFSET: ("JP", "V0, ${nnn:03X}"),  # COSMAC VIP form; see Chip8Disassembler
    Op.RND: ("RND", "V{x:X}, ${kk:02X}"),
    Op.DRW: ("DRW", "V{x:X}, V{y:X}, {n}"),
    Op.SKP: ("SKP", "V{x:X}"),
    Op.SKNP: ("SKNP", "V{x:X}"),
    Op.LD_VX_DT: ("LD", "V{x:X}, DT"),
    Op.LD_VX_K: ("LD", "V{x:X}, K"),
    Op.LD_DT_VX: ("LD", "DT, V{x:X}"),
    Op.LD_ST_VX: ("LD", "ST, V{x:X}"),
    Op.ADD_I_VX: ("ADD", "I, V{x:X}"),
    Op.LD_F_VX: ("LD", "F, V{x:X}"),
    Op.LD_B_VX: ("LD", "B, V{x:X}"),
    Op.STORE_REGS: ("LD", "[I], V{x:X}"),
    Op.LOAD_REGS: ("LD", "V{x:X}, [I]"),
}

# Low-nibble selector for the 8xyN ALU group
_ALU_OPS = {
    0x0: Op.LD_REG,
    0x1: Op.OR,
    0x2: Op.AND,
    0x3: Op.XOR,
    0x4: Op.ADD_REG,
    0x5: Op.SUB,
    0x6: Op.SHR,
    0x7: Op.SUBN,
    0xE: Op.SHL,
}

# Low-byte selector for the Fxkk group
_MISC_OPS = {
    0x07: Op.LD_VX_DT,
    0x0A: Op.LD_VX_K,
    0x15: Op.LD_DT_VX,
    0x18: Op.LD_ST_VX,
    0x1E: Op.ADD_I_VX,
    0x29: Op.LD_F_VX,
    0x33: Op.LD_B_VX,
    0x55: Op.STORE_REGS,
    0x65: Op.LOAD_REGS,
}

# Top nibbles whose instruction is fully determined by the nibble
_SIMPLE_OPS = {
    0x1: Op.JP,
    0x2: Op.CALL,
    0x3: Op.SE_BYTE,
    0x4: Op.SNE_BYTE,
    0x6: Op.LD_BYTE,
    0x7: Op.ADD_BYTE,
    0xA: Op.LD_I,
    0xB: Op.JP_OFFSET,
    0xC: Op.RND,
    0xD: Op.DRW,
}


@dataclass(frozen=True)
class Instruction:
    """
    One decoded instruction word.

    All operand fields are extracted regardless of the operation; each
    handler reads only the fields its format defines.

    Attributes:
        op: Operation tag
        word: The raw 16-bit instruction word
    """
    op: Op
    word: int

    @property
    def x(self) -> int:
        """Register index in bits 8-11."""
        return (self.word >> 8) & 0x0F

    @property
    def y(self) -> int:
        """Register index in bits 4-7."""
        return (self.word >> 4) & 0x0F

    @property
    def n(self) -> int:
        """4-bit immediate in the low nibble."""
        return self.word & 0x000F

    @property
    def kk(self) -> int:
        """8-bit immediate in the low byte."""
        return self.word & 0x00FF

    @property
    def nnn(self) -> int:
        """12-bit address in the low 12 bits."""
        return self.word & 0x0FFF

    @property
    def mnemonic(self) -> str:
        """Assembly mnemonic (e.g. "LD", "DRW")."""
        return SYNTAX[self.op][0]

    @property
    def operand_str(self) -> str:
        """Formatted operands (e.g. "V1, $2A")."""
        template = SYNTAX[self.op][1]
        return template.format(x=self.x, y=self.y, n=self.n, kk=self.kk, nnn=self.nnn)

    def __str__(self) -> str:
        operands = self.operand_str
        return f"{self.mnemonic} {operands}" if operands else self.mnemonic


@lru_cache(maxsize=None)
def decode(word: int) -> Instruction:
    """
    Decode a 16-bit instruction word.

    Args:
        word: Big-endian instruction word as fetched from memory

    Returns:
        Decoded Instruction

    Raises:
        UnknownOpcodeError: If the word is not a valid instruction.
            The error carries no pc; the caller attaches it.
    """
    word &= 0xFFFF
    group = word >> 12

    if group in _SIMPLE_OPS:
        return Instruction(_SIMPLE_OPS[group], word)

    match group:
        case 0x0:
            if word == 0x0000:
                return Instruction(Op.NOP, word)
            if word == 0x00E0:
                return Instruction(Op.CLS, word)
            if word == 0x00EE:
                return Instruction(Op.RET, word)
        case 0x5:
            if word & 0x000F == 0:
                return Instruction(Op.SE_REG, word)
        case 0x9:
            if word & 0x000F == 0:
                return Instruction(Op.SNE_REG, word)
        case 0x8:
            op = _ALU_OPS.get(word & 0x000F)
            if op is not None:
                return Instruction(op, word)
        case 0xE:
            if word & 0x00FF == 0x9E:
                return Instruction(Op.SKP, word)
            if word & 0x00FF == 0xA1:
                return Instruction(Op.SKNP, word)
        case 0xF:
            op = _MISC_OPS.get(word & 0x00FF)
            if op is not None:
                return Instruction(op, word)

    raise UnknownOpcodeError(word)
