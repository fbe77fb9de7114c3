"""
Delay and Sound Timers for the CHIP-8 VM
========================================

Two independent 8-bit countdown registers. Both are decremented by one on
every tick() until they reach zero. The driver calls tick() at a fixed
60 Hz, independently of how many instructions ran in between.

A nonzero sound timer means the tone is playing; audio sinks poll
sound_active().

Copyright (c) 2026 chip8-vm Contributors
"""

from dataclasses import dataclass

TIMER_HZ = 60


@dataclass
class TimerState:
    """Timer registers, both 8-bit unsigned."""
    delay: int = 0
    sound: int = 0


class Timers:
    """
    Delay and sound timers.

    Example:
        >>> timers = Timers()
        >>> timers.sound = 2
        >>> timers.tick(); timers.sound_active()
        True
        >>> timers.tick(); timers.sound_active()
        False
    """

    def __init__(self):
        self.state = TimerState()

    @property
    def delay(self) -> int:
        """Delay timer (8-bit)."""
        return self.state.delay

    @delay.setter
    def delay(self, value: int) -> None:
        self.state.delay = value & 0xFF

    @property
    def sound(self) -> int:
        """Sound timer (8-bit)."""
        return self.state.sound

    @sound.setter
    def sound(self, value: int) -> None:
        self.state.sound = value & 0xFF

    def tick(self) -> None:
        """Decrement both timers by one, stopping at zero."""
        if self.state.delay > 0:
            self.state.delay -= 1
        if self.state.sound > 0:
            self.state.sound -= 1

    def sound_active(self) -> bool:
        """True while the sound timer is nonzero."""
        return self.state.sound > 0

    def reset(self) -> None:
        """Zero both timers."""
        self.state = TimerState()
