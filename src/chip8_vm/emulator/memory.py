"""
Memory Subsystem for the CHIP-8 VM
==================================

Memory Map:
    $000-$04F  Reserved (interpreter area on the original hardware)
    $050-$09F  Built-in font, 16 glyphs x 5 bytes (digits 0-F)
    $0A0-$1FF  Reserved
    $200-$FFF  Program image and program data

The whole 4KB is writable RAM. The font is written once at reset and
programs are expected to leave it alone, but nothing stops them.

Any access outside $000-$FFF raises MemoryOutOfBoundsError. Multi-byte
operations validate the full range before touching anything, so a failed
access never leaves memory half-written.

Copyright (c) 2026 chip8-vm Contributors
"""

import logging

from ..errors import MemoryOutOfBoundsError, ProgramTooLargeError

logger = logging.getLogger(__name__)


MEMORY_SIZE = 0x1000
FONT_ADDRESS = 0x050
FONT_GLYPH_SIZE = 5
PROGRAM_START = 0x200
MAX_PROGRAM_SIZE = MEMORY_SIZE - PROGRAM_START  # $E00 bytes

# 4x5 hexadecimal digit glyphs. Each byte is one row, high nibble used.
FONT = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])


class Memory:
    """
    Flat 4KB byte-addressable memory with the font preloaded.

    Example:
        >>> mem = Memory()
        >>> mem.load_program(bytes([0x60, 0x2A]))
        >>> hex(mem.read_word(0x200))
        '0x602a'
    """

    def __init__(self):
        self._data = bytearray(MEMORY_SIZE)
        self._program_size = 0
        self._load_font()

    def _load_font(self) -> None:
        self._data[FONT_ADDRESS:FONT_ADDRESS + len(FONT)] = FONT

    @staticmethod
    def _check_range(address: int, count: int = 1) -> None:
        """Raise if any address in [address, address + count) is invalid."""
        if address < 0 or address >= MEMORY_SIZE:
            raise MemoryOutOfBoundsError(address)
        if count > 0 and address + count - 1 >= MEMORY_SIZE:
            raise MemoryOutOfBoundsError(address + count - 1)

    @property
    def size(self) -> int:
        """Size of the address space in bytes."""
        return MEMORY_SIZE

    @property
    def program_size(self) -> int:
        """Size of the last loaded program image."""
        return self._program_size

    def read_byte(self, address: int) -> int:
        """
        Read byte from memory.

        Args:
            address: 12-bit address

        Returns:
            Byte value at address

        Raises:
            MemoryOutOfBoundsError: If address is outside $000-$FFF
        """
        self._check_range(address)
        return self._data[address]

    def write_byte(self, address: int, value: int) -> None:
        """
        Write byte to memory.

        Args:
            address: 12-bit address
            value: Byte value (masked to 8 bits)

        Raises:
            MemoryOutOfBoundsError: If address is outside $000-$FFF
        """
        self._check_range(address)
        self._data[address] = value & 0xFF

    def read_word(self, address: int) -> int:
        """Read a big-endian 16-bit word from address and address + 1."""
        self._check_range(address, 2)
        return (self._data[address] << 8) | self._data[address + 1]

    def read_bytes(self, address: int, count: int) -> bytes:
        """Read count bytes starting at address."""
        self._check_range(address, count)
        return bytes(self._data[address:address + count])

    def write_bytes(self, address: int, data: bytes) -> None:
        """Write data starting at address. Nothing is written on failure."""
        self._check_range(address, len(data))
        self._data[address:address + len(data)] = bytes(b & 0xFF for b in data)

    def load_program(self, program: bytes) -> None:
        """
        Copy a program image into memory at $200.

        Args:
            program: Raw program bytes

        Raises:
            ProgramTooLargeError: If the image would extend past $FFF
        """
        if len(program) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeError(len(program), MAX_PROGRAM_SIZE)
        self._data[PROGRAM_START:PROGRAM_START + len(program)] = program
        self._program_size = len(program)
        logger.debug(f"Loaded {len(program)} byte program at ${PROGRAM_START:03X}")

    @staticmethod
    def font_address(digit: int) -> int:
        """Address of the glyph for hex digit (low nibble of digit)."""
        return FONT_ADDRESS + (digit & 0x0F) * FONT_GLYPH_SIZE

    def reset(self) -> None:
        """Clear all memory and reload the font."""
        self._data = bytearray(MEMORY_SIZE)
        self._program_size = 0
        self._load_font()

    def dump(self) -> bytes:
        """Get an immutable copy of the whole address space."""
        return bytes(self._data)
