"""
CHIP-8 VM - Main Orchestrator
=============================

This module provides the main `Emulator` class that owns every component of
the machine and drives it with two independent cadences:

- Instruction cadence: `instructions_per_second` (default 700)
- Timer cadence: a fixed `timer_hz` (60 Hz)

One *frame* is one timer period: about `instructions_per_second / timer_hz`
instructions followed by exactly one timer tick. The remainder is spread
over the frames, so each second of frames runs exactly
`instructions_per_second` instructions. Frontends call
run_frame() sixty times a second; tests call it as fast as they like.

The Emulator class:
- Loads program images from bytes or ROM files
- Applies the fault policy (skip the faulting instruction, or halt)
- Integrates breakpoints via the CPU's on_instruction hook
- Offers display, keypad and sound accessors for frontends and tests

Example usage:
    >>> from chip8_vm.emulator import Emulator, EmulatorConfig
    >>> emu = Emulator(EmulatorConfig(legacy=True, seed=1))
    >>> emu.load_rom("pong.ch8")
    >>> event = emu.run_frames(60)
    >>> print(emu.display_text)

Copyright (c) 2026 chip8-vm Contributors
"""

import logging
import os
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Deque, List, Optional, Union

from ..disassembler import Chip8Disassembler
from ..errors import Chip8Fault, ProgramTooLargeError
from .breakpoints import BreakpointManager, BreakEvent, BreakReason
from .cpu import Chip8CPU, Quirks
from .display import Display
from .keypad import Keypad, parse_key
from .memory import Memory, MAX_PROGRAM_SIZE, MEMORY_SIZE
from .timers import Timers, TIMER_HZ

logger = logging.getLogger(__name__)

# Most recent skipped faults kept for inspection
MAX_RECORDED_FAULTS = 64


class FaultPolicy(Enum):
    """What the driver does when an instruction faults."""
    SKIP = "skip"  # Log, record, continue after the instruction
    HALT = "halt"  # Stop and report a BreakReason.ERROR event


@dataclass(frozen=True)
class EmulatorConfig:
    """
    Configuration for emulator initialization.

    Attributes:
        legacy: Use the COSMAC VIP quirk set. Fixed for the emulator's lifetime.
        instructions_per_second: Instruction cadence (default 700)
        timer_hz: Timer cadence (default 60)
        fault_policy: SKIP (default) or HALT
        quirks: Explicit quirk set, overrides the one implied by legacy
        seed: Seed for the Cxkk random generator (None = unseeded)

    Example:
        >>> config = EmulatorConfig(legacy=True)
        >>> config = EmulatorConfig(instructions_per_second=1200, seed=42)
    """
    legacy: bool = False
    instructions_per_second: int = 700
    timer_hz: int = TIMER_HZ
    fault_policy: FaultPolicy = FaultPolicy.SKIP
    quirks: Optional[Quirks] = None
    seed: Optional[int] = None

    def __post_init__(self):
        if self.timer_hz <= 0:
            raise ValueError(f"timer_hz must be positive, got {self.timer_hz}")
        if self.instructions_per_second < self.timer_hz:
            raise ValueError(
                f"instructions_per_second ({self.instructions_per_second}) "
                f"must be at least timer_hz ({self.timer_hz})"
            )

    @property
    def instructions_per_frame(self) -> int:
        """Nominal instructions between two timer ticks (rounded down)."""
        return self.instructions_per_second // self.timer_hz

    def instructions_for_frame(self, frame: int) -> int:
        """
        Instructions to run in frame number `frame` (0-based).

        Spreads the remainder of instructions_per_second / timer_hz over the
        frames, so every timer_hz frames run exactly instructions_per_second
        instructions.
        """
        ips, hz = self.instructions_per_second, self.timer_hz
        return (frame + 1) * ips // hz - frame * ips // hz

    @property
    def effective_quirks(self) -> Quirks:
        """The quirk set the CPU will run with."""
        return self.quirks or Quirks.for_mode(self.legacy)

    @classmethod
    def from_env(cls, **overrides) -> "EmulatorConfig":
        """
        Create EmulatorConfig from environment variables.

        Environment variables (all optional):
            CHIP8_LEGACY: "1", "true", "yes" or "on" selects legacy mode
            CHIP8_IPS: Instructions per second (integer)
            CHIP8_FAULT_POLICY: "skip" or "halt"
            CHIP8_SEED: Random seed (integer)

        Invalid values, including a CHIP8_IPS below the timer rate, are
        ignored. Keyword arguments take precedence over the environment.

        Returns:
            EmulatorConfig with values from environment variables
        """
        values = {}

        if legacy := os.environ.get("CHIP8_LEGACY"):
            values["legacy"] = legacy.strip().lower() in ("1", "true", "yes", "on")

        if ips := os.environ.get("CHIP8_IPS"):
            try:
                rate = int(ips)
            except ValueError:
                rate = None  # Ignore invalid values
            if rate is not None and rate >= overrides.get("timer_hz", TIMER_HZ):
                values["instructions_per_second"] = rate

        if policy := os.environ.get("CHIP8_FAULT_POLICY"):
            try:
                values["fault_policy"] = FaultPolicy(policy.strip().lower())
            except ValueError:
                pass

        if seed := os.environ.get("CHIP8_SEED"):
            try:
                values["seed"] = int(seed)
            except ValueError:
                pass

        values.update(overrides)
        return cls(**values)


class Emulator:
    """
    CHIP-8 virtual machine with instrumentation support.

    This is the main entry point. It owns the CPU, memory, display, keypad,
    timers and breakpoint manager; nothing is shared between instances.

    Attributes:
        config: The EmulatorConfig used to initialize this instance
        cpu: The interpreter (accessible for low-level control)
        memory: 4KB memory
        display: 64x32 framebuffer
        keypad: 16-key keypad
        timers: Delay and sound timers
        breakpoints: The breakpoint manager

    Example:
        >>> emu = Emulator()
        >>> emu.load_program(bytes([0x60, 0x05, 0xF0, 0x29, 0x61, 0x00, 0xD1, 0x15]))
        >>> event = emu.run(4)
        >>> print(emu.display_text.splitlines()[0][:4])
        ####
    """

    def __init__(self, config: Optional[EmulatorConfig] = None):
        """
        Initialize the emulator with given configuration.

        Args:
            config: EmulatorConfig. If None, modern mode at 700 instructions
                    per second with the skip fault policy.
        """
        self.config = config or EmulatorConfig()
        quirks = self.config.effective_quirks

        self.memory = Memory()
        self.display = Display(clip=quirks.clip_sprites)
        self.keypad = Keypad()
        self.timers = Timers()
        self.cpu = Chip8CPU(
            memory=self.memory,
            display=self.display,
            keypad=self.keypad,
            timers=self.timers,
            legacy=self.config.legacy,
            quirks=quirks,
            rng=random.Random(self.config.seed),
        )

        self.breakpoints = BreakpointManager()
        self.cpu.on_instruction = self._instruction_hook

        self._program: Optional[bytes] = None
        self._faults: Deque[Chip8Fault] = deque(maxlen=MAX_RECORDED_FAULTS)
        self._fault_count = 0
        self._frames = 0

        # PC where the last run stopped on a break, resumed past on the next run
        self._break_pc: Optional[int] = None

    def _instruction_hook(self, pc: int, word: int) -> bool:
        """Connect the CPU's execution loop to the breakpoint manager."""
        return self.breakpoints.check_instruction(self.cpu, pc, word)

    # =========================================================================
    # Program Loading
    # =========================================================================

    def load_program(self, data: bytes) -> None:
        """
        Reset the machine and load a program image at $200.

        Args:
            data: Raw program bytes

        Raises:
            ProgramTooLargeError: If the image does not fit in memory. The
                machine and the previously loaded program are left as they
                were.
        """
        if len(data) > MAX_PROGRAM_SIZE:
            raise ProgramTooLargeError(len(data), MAX_PROGRAM_SIZE)

        self._program = None
        self.reset()
        self.memory.load_program(data)
        self._program = bytes(data)

    def load_rom(self, path: Union[str, Path]) -> None:
        """
        Load a program image from a file.

        Raises:
            FileNotFoundError: If the ROM file doesn't exist
            ProgramTooLargeError: If the image does not fit in memory
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"ROM file not found: {path}")
        self.load_program(path.read_bytes())
        logger.debug(f"Loaded ROM {path.name} ({len(self._program)} bytes)")

    # =========================================================================
    # Execution Control
    # =========================================================================

    def reset(self) -> None:
        """
        Reset emulator to power-on state.

        Memory is cleared and the font and the last loaded program (if any)
        are reloaded. Registers, timers, display and keypad are cleared and
        the random generator is re-seeded. Breakpoints are kept.
        """
        self.memory.reset()
        if self._program is not None:
            self.memory.load_program(self._program)
        self.cpu.reset()
        self.cpu.rng.seed(self.config.seed)
        self.keypad.clear()
        self._faults.clear()
        self._fault_count = 0
        self._frames = 0
        self._break_pc = None
        self.breakpoints.clear_break_request()

    def _handle_fault(self, fault: Chip8Fault) -> Optional[BreakEvent]:
        """Apply the fault policy. Returns an event if execution must stop."""
        self._faults.append(fault)
        self._fault_count += 1

        if self.config.fault_policy is FaultPolicy.HALT:
            logger.debug(f"Halting on fault: {fault}")
            return BreakEvent(
                BreakReason.ERROR,
                address=fault.pc,
                fault=fault,
                message=str(fault)
            )

        logger.warning(f"Skipping faulting instruction: {fault}")
        self.cpu.pc = fault.pc + 2
        return None

    def _run_instructions(self, count: int) -> Optional[BreakEvent]:
        """
        Run up to count instruction steps with breakpoints enabled.

        Returns:
            The event that stopped execution early, or None if the budget
            was used up
        """
        resume_pc = self._break_pc if self._break_pc == self.cpu.pc else None
        self.breakpoints.resume_from(resume_pc)
        self._break_pc = None

        for _ in range(count):
            try:
                if self.cpu.execute(1) == 0:
                    event = self.breakpoints.last_event
                    self._break_pc = self.cpu.pc
                    logger.debug(f"Stopped: {event}")
                    return event
            except Chip8Fault as fault:
                event = self._handle_fault(fault)
                if event is not None:
                    return event
        return None

    def step(self) -> BreakEvent:
        """
        Execute a single instruction, ignoring breakpoints.

        While the CPU waits for a key, a step just polls the keypad.

        Returns:
            BreakEvent with reason=STEP, or reason=ERROR if the instruction
            faulted under the halt policy
        """
        try:
            self.cpu.step()
        except Chip8Fault as fault:
            event = self._handle_fault(fault)
            if event is not None:
                return event

        return BreakEvent(
            BreakReason.STEP,
            address=self.cpu.pc,
            message=f"Step at ${self.cpu.pc:03X}"
        )

    def run_frame(self) -> BreakEvent:
        """
        Run one frame: a batch of instructions followed by one timer tick.

        If a breakpoint or a halting fault stops the batch early, the timers
        are not ticked and the frame is not counted.

        Returns:
            BreakEvent with reason=FRAME, or the event that stopped execution
        """
        event = self._run_instructions(self.config.instructions_for_frame(self._frames))
        if event is not None:
            return event

        self.timers.tick()
        self._frames += 1
        return BreakEvent(BreakReason.FRAME, address=self.cpu.pc, message=f"Frame {self._frames}")

    def run_frames(self, count: int) -> BreakEvent:
        """
        Run up to count frames, stopping early on a break.

        Returns:
            Event of the last frame, or the event that stopped execution
        """
        event = BreakEvent(BreakReason.NONE)
        for _ in range(count):
            event = self.run_frame()
            if event.reason is not BreakReason.FRAME:
                break
        return event

    def run(self, max_instructions: int = 100_000) -> BreakEvent:
        """
        Run until a breakpoint or max_instructions is reached.

        Timers are not ticked; use run_frames() for real-time behavior.

        Args:
            max_instructions: Maximum instruction steps to execute

        Returns:
            BreakEvent describing why execution stopped

        Example:
            >>> emu.add_breakpoint(0x228)
            >>> event = emu.run(10_000)
            >>> if event.reason == BreakReason.PC_BREAKPOINT:
            ...     print(f"Hit breakpoint at ${event.address:03X}")
        """
        event = self._run_instructions(max_instructions)
        return event or BreakEvent(
            BreakReason.MAX_INSTRUCTIONS,
            address=self.cpu.pc,
            message=f"Reached max instructions ({max_instructions})"
        )

    def run_until_pc(self, address: int, max_instructions: int = 100_000) -> bool:
        """
        Run until PC reaches a specific address.

        Creates a temporary breakpoint at the address and runs until hit.

        Returns:
            True if address was reached, False if max_instructions hit first
        """
        was_set = self.breakpoints.has_breakpoint(address)
        if not was_set:
            self.breakpoints.add_breakpoint(address)

        try:
            event = self.run(max_instructions)
            return (event.reason == BreakReason.PC_BREAKPOINT and
                    event.address == address)
        finally:
            if not was_set:
                self.breakpoints.remove_breakpoint(address)

    # =========================================================================
    # Breakpoint Management (delegates to BreakpointManager)
    # =========================================================================

    def add_breakpoint(self, address: int) -> None:
        """Add a PC breakpoint at the specified address."""
        self.breakpoints.add_breakpoint(address)

    def remove_breakpoint(self, address: int) -> None:
        """Remove a PC breakpoint at the specified address."""
        self.breakpoints.remove_breakpoint(address)

    def clear_breakpoints(self) -> None:
        """Remove all breakpoints and register conditions."""
        self.breakpoints.clear_all()

    # =========================================================================
    # Keypad Input
    # =========================================================================

    @staticmethod
    def _key_index(key: Union[str, int]) -> int:
        if isinstance(key, int):
            return key
        index = parse_key(key)
        if index is None:
            raise ValueError(f"Unknown key: {key!r}")
        return index

    def press_key(self, key: Union[str, int]) -> None:
        """
        Press a key (key down event).

        Args:
            key: Keypad index 0x0-0xF, host key name ("Q", "1") or hex
                 label ("0xA")

        Raises:
            ValueError: If the key is unknown
        """
        self.keypad.set_key(self._key_index(key), True)

    def release_key(self, key: Union[str, int]) -> None:
        """Release a key (key up event)."""
        self.keypad.set_key(self._key_index(key), False)

    def tap_key(self, key: Union[str, int], hold_frames: int = 3) -> None:
        """
        Tap a key: press, run hold_frames frames, release.

        Args:
            key: Key to tap
            hold_frames: How long to hold the key (in frames)
        """
        self.press_key(key)
        self.run_frames(hold_frames)
        self.release_key(key)

    # =========================================================================
    # Display and Sound Output
    # =========================================================================

    @property
    def display_text(self) -> str:
        """Framebuffer as text, '#' for lit pixels and '.' for dark ones."""
        return self.display.get_text()

    @property
    def display_pixels(self) -> bytes:
        """Raw pixel buffer, one byte per pixel (255 on, 0 off)."""
        return self.display.get_pixel_buffer()

    def render_display(self, scale: int = 8) -> bytes:
        """Render the framebuffer to PNG bytes."""
        return self.display.render_image(scale=scale)

    @property
    def sound_active(self) -> bool:
        """True while the tone should be playing."""
        return self.timers.sound_active()

    # =========================================================================
    # State Inspection
    # =========================================================================

    @property
    def registers(self) -> dict:
        """
        Current register values as a dictionary.

        Returns:
            Dictionary with keys v0-vf, i, pc, sp, dt, st
        """
        return self.cpu.registers

    @property
    def faults(self) -> List[Chip8Fault]:
        """
        Most recent faults since the last reset, oldest first.

        At most MAX_RECORDED_FAULTS are kept; see fault_count for the total.
        """
        return list(self._faults)

    @property
    def fault_count(self) -> int:
        """Total faults raised since the last reset."""
        return self._fault_count

    @property
    def total_instructions(self) -> int:
        """Instructions completed since the last reset."""
        return self.cpu.instructions_executed

    @property
    def frames(self) -> int:
        """Frames completed (timer ticks) since the last reset."""
        return self._frames

    # =========================================================================
    # Debug Helpers
    # =========================================================================

    def disassemble_at(self, address: int, count: int = 10) -> List[str]:
        """
        Disassemble instructions at the given address.

        Args:
            address: Starting address
            count: Number of instructions to disassemble

        Returns:
            List of disassembly strings
        """
        end = min(address + count * 2, MEMORY_SIZE)
        data = self.memory.read_bytes(address, end - address)
        disasm = Chip8Disassembler(legacy=self.cpu.quirks.jump_uses_v0)
        return [str(instr) for instr in disasm.disassemble(data, address, count)]

    def __repr__(self) -> str:
        """Return string representation of emulator state."""
        return (
            f"Emulator(legacy={self.config.legacy}, "
            f"pc=${self.cpu.pc:03X}, "
            f"instructions={self.total_instructions}, frames={self._frames})"
        )
