"""
Breakpoint System for the CHIP-8 VM
===================================

Debugging support for headless runs:
- PC breakpoints (break when PC reaches an address)
- Register conditions (break when a register matches)
- Single-step mode and external break requests

The BreakpointManager is attached to the CPU through its on_instruction
hook and is consulted before every instruction. Whatever stopped a run is
described by a BreakEvent.

Example usage:

    >>> from chip8_vm.emulator import Emulator, BreakReason
    >>> emu = Emulator()
    >>> emu.load_program(rom)
    >>> emu.add_breakpoint(0x228)
    >>> event = emu.run(10_000)
    >>> if event.reason == BreakReason.PC_BREAKPOINT:
    ...     print(f"Hit breakpoint at ${event.address:03X}")

Copyright (c) 2026 chip8-vm Contributors
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Set, TYPE_CHECKING

from ..errors import Chip8Fault

if TYPE_CHECKING:
    from .cpu import Chip8CPU


class BreakReason(Enum):
    """
    Enumeration of reasons why execution stopped.

    Used in BreakEvent to indicate what triggered the break.
    """
    NONE = auto()                # No specific reason
    PC_BREAKPOINT = auto()       # PC reached a breakpoint address
    REGISTER_CONDITION = auto()  # Register condition met
    STEP = auto()                # Single-step mode
    USER_INTERRUPT = auto()      # User requested stop
    MAX_INSTRUCTIONS = auto()    # Instruction budget used up
    FRAME = auto()               # Frame completed (timers ticked)
    ERROR = auto()               # Execution fault with the halt policy


@dataclass
class BreakEvent:
    """
    Information about why execution stopped.

    Attributes:
        reason: Why execution stopped
        address: PC involved (if applicable)
        fault: The fault that stopped execution (ERROR only)
        message: Human-readable description
    """
    reason: BreakReason
    address: Optional[int] = None
    fault: Optional[Chip8Fault] = None
    message: str = ""

    def __str__(self) -> str:
        """Return human-readable description."""
        if self.message:
            return self.message
        match self.reason:
            case BreakReason.PC_BREAKPOINT:
                return f"Breakpoint at ${self.address:03X}" if self.address is not None else "Breakpoint"
            case BreakReason.REGISTER_CONDITION:
                return "Register condition met"
            case BreakReason.STEP:
                return "Single step"
            case BreakReason.MAX_INSTRUCTIONS:
                return "Maximum instructions reached"
            case BreakReason.FRAME:
                return "Frame complete"
            case BreakReason.ERROR:
                return str(self.fault) if self.fault else "Runtime error"
            case _:
                return "Unknown"


class RegisterCondition:
    """
    Condition on interpreter registers.

    When the condition evaluates to True, execution stops.

    Supported registers: v0-vf, i, pc, sp (stack depth), dt, st

    Supported operators: ==, !=, <, <=, >, >=, & (true if AND is non-zero)

    Examples:
        >>> cond = RegisterCondition('v3', '==', 0x42)   # V3 equals $42
        >>> cond = RegisterCondition('i', '>', 0x300)    # I above $300
        >>> cond = RegisterCondition('vf', '&', 0x01)    # Flag set
    """

    VALID_REGISTERS = frozenset(
        [f"v{n:x}" for n in range(16)] + ["i", "pc", "sp", "dt", "st"]
    )
    VALID_OPERATORS = frozenset(["==", "!=", "<", "<=", ">", ">=", "&"])

    def __init__(self, register: str, operator: str, value: int, description: str = ""):
        """
        Create a register condition.

        Args:
            register: Register name (v0-vf, i, pc, sp, dt, st)
            operator: Comparison operator
            value: Value to compare against
            description: Optional description for debugging

        Raises:
            ValueError: If register or operator is unknown
        """
        self.register = register.lower()
        self.operator = operator
        self.value = value
        self.description = description or f"{register} {operator} {value}"

        if self.register not in self.VALID_REGISTERS:
            raise ValueError(
                f"Unknown register '{register}'. "
                f"Valid registers: {', '.join(sorted(self.VALID_REGISTERS))}"
            )
        if self.operator not in self.VALID_OPERATORS:
            raise ValueError(
                f"Unknown operator '{operator}'. "
                f"Valid operators: {', '.join(sorted(self.VALID_OPERATORS))}"
            )

    def check(self, cpu: "Chip8CPU") -> bool:
        """Check if condition is met against CPU state."""
        actual = cpu.registers[self.register]

        match self.operator:
            case '==':
                return actual == self.value
            case '!=':
                return actual != self.value
            case '<':
                return actual < self.value
            case '<=':
                return actual <= self.value
            case '>':
                return actual > self.value
            case '>=':
                return actual >= self.value
            case '&':
                return (actual & self.value) != 0
            case _:
                return False

    def __repr__(self) -> str:
        return f"RegisterCondition({self.register!r}, {self.operator!r}, {self.value!r})"


class BreakpointManager:
    """
    Manages breakpoints and register conditions.

    A run restarted on the breakpoint that stopped it does not stop there
    again immediately: pass the address to resume_from() before running and
    the first check at that address is let through.

    Example:
        >>> mgr = BreakpointManager()
        >>> mgr.add_breakpoint(0x204)
        >>> mgr.add_condition('v0', '==', 0x00)
        >>> cpu.on_instruction = lambda pc, word: mgr.check_instruction(cpu, pc, word)
    """

    def __init__(self):
        """Initialize empty breakpoint manager."""
        self._pc_breakpoints: Set[int] = set()

        # Register conditions (list with possible None holes)
        self._register_conditions: List[Optional[RegisterCondition]] = []

        self._last_event: Optional[BreakEvent] = None
        self._step_mode: bool = False
        self._break_requested: bool = False
        self._resume_address: Optional[int] = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def last_event(self) -> Optional[BreakEvent]:
        """Get the last break event that occurred."""
        return self._last_event

    @property
    def step_mode(self) -> bool:
        """Check if step mode is active."""
        return self._step_mode

    @step_mode.setter
    def step_mode(self, value: bool) -> None:
        self._step_mode = value

    @property
    def breakpoint_count(self) -> int:
        """Number of active PC breakpoints."""
        return len(self._pc_breakpoints)

    # =========================================================================
    # PC Breakpoints
    # =========================================================================

    def add_breakpoint(self, address: int) -> None:
        """
        Add PC breakpoint at address.

        Execution stops when PC reaches this address, before the
        instruction there is executed.
        """
        self._pc_breakpoints.add(address & 0xFFFF)

    def remove_breakpoint(self, address: int) -> None:
        """Remove PC breakpoint at address (no-op if absent)."""
        self._pc_breakpoints.discard(address & 0xFFFF)

    def has_breakpoint(self, address: int) -> bool:
        """Check if breakpoint exists at address."""
        return (address & 0xFFFF) in self._pc_breakpoints

    def clear_breakpoints(self) -> None:
        """Remove all PC breakpoints."""
        self._pc_breakpoints.clear()

    def list_breakpoints(self) -> List[int]:
        """Sorted list of breakpoint addresses."""
        return sorted(self._pc_breakpoints)

    # =========================================================================
    # Register Conditions
    # =========================================================================

    def add_register_condition(self, condition: RegisterCondition) -> int:
        """
        Add register condition.

        Returns:
            Condition ID for later removal
        """
        for i, c in enumerate(self._register_conditions):
            if c is None:
                self._register_conditions[i] = condition
                return i
        self._register_conditions.append(condition)
        return len(self._register_conditions) - 1

    def add_condition(self, register: str, operator: str, value: int, description: str = "") -> int:
        """Create and add a RegisterCondition, returning its ID."""
        return self.add_register_condition(
            RegisterCondition(register, operator, value, description)
        )

    def remove_register_condition(self, condition_id: int) -> None:
        """Remove register condition by ID."""
        if 0 <= condition_id < len(self._register_conditions):
            self._register_conditions[condition_id] = None

    def clear_register_conditions(self) -> None:
        """Remove all register conditions."""
        self._register_conditions.clear()

    def list_register_conditions(self) -> List[tuple[int, RegisterCondition]]:
        """Active register conditions as (id, condition) tuples."""
        return [
            (i, c) for i, c in enumerate(self._register_conditions)
            if c is not None
        ]

    # =========================================================================
    # Break Control
    # =========================================================================

    def request_break(self) -> None:
        """
        Request execution to break at next opportunity.

        Can be called from another thread to interrupt execution.
        """
        self._break_requested = True

    def clear_break_request(self) -> None:
        """Clear any pending break request."""
        self._break_requested = False

    def resume_from(self, pc: Optional[int]) -> None:
        """
        Start a new run.

        Clears the last event. If pc is given, the first check at pc is let
        through so a run restarted on the breakpoint that stopped it makes
        progress.
        """
        self._last_event = None
        self._resume_address = pc

    def clear_all(self) -> None:
        """Remove all breakpoints and conditions and reset break state."""
        self.clear_breakpoints()
        self.clear_register_conditions()
        self._step_mode = False
        self._break_requested = False
        self._last_event = None
        self._resume_address = None

    # =========================================================================
    # Check Function (called by the CPU hook)
    # =========================================================================

    def check_instruction(self, cpu: "Chip8CPU", pc: int, word: int) -> bool:
        """
        Check if we should break before executing an instruction.

        Args:
            cpu: CPU instance
            pc: Current program counter
            word: Instruction word about to be executed

        Returns:
            True to continue execution, False to break
        """
        if self._break_requested:
            self._break_requested = False
            self._last_event = BreakEvent(
                BreakReason.USER_INTERRUPT,
                address=pc,
                message="User interrupt"
            )
            return False

        resuming = pc == self._resume_address
        self._resume_address = None
        if resuming:
            return True

        if self._step_mode:
            self._step_mode = False
            self._last_event = BreakEvent(
                BreakReason.STEP,
                address=pc,
                message=f"Step at ${pc:03X}"
            )
            return False

        if pc in self._pc_breakpoints:
            self._last_event = BreakEvent(
                BreakReason.PC_BREAKPOINT,
                address=pc,
                message=f"Breakpoint at ${pc:03X}"
            )
            return False

        for cond in self._register_conditions:
            if cond is not None and cond.check(cpu):
                self._last_event = BreakEvent(
                    BreakReason.REGISTER_CONDITION,
                    address=pc,
                    message=f"Condition: {cond.description}"
                )
                return False

        return True
