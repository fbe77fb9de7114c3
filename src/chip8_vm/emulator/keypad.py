"""
Hexadecimal Keypad for the CHIP-8 VM
====================================

The COSMAC VIP keypad has 16 keys labelled 0-F, laid out as:

    1 2 3 C
    4 5 6 D
    7 8 9 E
    A 0 B F

Emulators conventionally map it onto the left-hand block of a QWERTY
keyboard:

    1 2 3 4
    Q W E R
    A S D F
    Z X C V

The keypad is written by the host (input source) and read by the CPU.
The only blocking instruction in the machine, Fx0A, is implemented in the
CPU as a poll of any_pressed(); the keypad itself keeps no wait state.

Copyright (c) 2026 chip8-vm Contributors
"""

from typing import Dict, List, Optional

NUM_KEYS = 16

# Host key name -> keypad index
HOST_KEY_MAP: Dict[str, int] = {
    "1": 0x1, "2": 0x2, "3": 0x3, "4": 0xC,
    "Q": 0x4, "W": 0x5, "E": 0x6, "R": 0xD,
    "A": 0x7, "S": 0x8, "D": 0x9, "F": 0xE,
    "Z": 0xA, "X": 0x0, "C": 0xB, "V": 0xF,
}


def parse_key(key: str) -> Optional[int]:
    """
    Convert a key name to a keypad index.

    Accepts host key names ("Q", "x") and explicit hex labels
    ("0x5", "$B", "key:7"). Returns None for unknown names.
    """
    name = key.strip().upper()
    if name in HOST_KEY_MAP:
        return HOST_KEY_MAP[name]
    for prefix in ("0X", "$", "KEY:"):
        if name.startswith(prefix):
            try:
                index = int(name[len(prefix):], 16)
            except ValueError:
                return None
            return index if 0 <= index < NUM_KEYS else None
    return None


class Keypad:
    """
    16-key boolean keypad state.

    Example:
        >>> pad = Keypad()
        >>> pad.set_key(0xA, True)
        >>> pad.any_pressed()
        10
        >>> pad.key_down("W")  # host layout, keypad key 5
        >>> pad.is_pressed(5)
        True
    """

    def __init__(self):
        self._keys = [False] * NUM_KEYS

    @staticmethod
    def _check_index(index: int) -> None:
        if not 0 <= index < NUM_KEYS:
            raise ValueError(f"Key index must be 0x0-0xF, got {index}")

    def set_key(self, index: int, pressed: bool) -> None:
        """
        Update one key.

        Raises:
            ValueError: If index is outside 0x0-0xF
        """
        self._check_index(index)
        self._keys[index] = bool(pressed)

    def is_pressed(self, index: int) -> bool:
        """Check if keypad key index is held down."""
        self._check_index(index)
        return self._keys[index]

    def any_pressed(self) -> Optional[int]:
        """Lowest pressed key index, or None if no key is down."""
        for index, pressed in enumerate(self._keys):
            if pressed:
                return index
        return None

    def pressed_keys(self) -> List[int]:
        """All pressed key indices in ascending order."""
        return [index for index, pressed in enumerate(self._keys) if pressed]

    def clear(self) -> None:
        """Release all keys."""
        self._keys = [False] * NUM_KEYS

    # =========================================================================
    # Host Key API
    # =========================================================================

    def key_down(self, key: str) -> None:
        """
        Press a key by name.

        Args:
            key: Host key name ("Q", "1", ...) or hex label ("0xA")

        Raises:
            ValueError: If the name is not a known key
        """
        self._keys[self._named_index(key)] = True

    def key_up(self, key: str) -> None:
        """Release a key by name. Raises ValueError for unknown names."""
        self._keys[self._named_index(key)] = False

    @staticmethod
    def _named_index(key: str) -> int:
        index = parse_key(key)
        if index is None:
            raise ValueError(f"Unknown key: {key!r}")
        return index

    def is_key_down(self, key: str) -> bool:
        """Check if a named key is currently pressed."""
        index = parse_key(key)
        return index is not None and self._keys[index]

    def __repr__(self) -> str:
        pressed = ",".join(f"{k:X}" for k in self.pressed_keys())
        return f"Keypad(pressed=[{pressed}])"
