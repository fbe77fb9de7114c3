"""
CHIP-8 Interpreter Core
=======================

The CHIP-8 "CPU" is the interpreter that ran on the COSMAC VIP and its
successors. Its visible state is small:

- V0-VF: sixteen 8-bit registers. VF doubles as the carry, borrow,
  shifted-out-bit and sprite collision flag.
- I: 16-bit index register, used as a memory pointer.
- PC: program counter, starts at $200.
- A return stack of up to 16 addresses.

Cycle
-----
Each step fetches the big-endian word at PC, advances PC by 2 *before*
executing, decodes the word into an Instruction and dispatches on its Op.
Skips therefore add another 2 to the already-advanced PC, and CALL pushes
the address of the instruction following the call.

Fx0A (wait for key) is the only instruction that can stall. When no key is
down the CPU rewinds PC to the Fx0A and switches to AWAITING_KEY; further
steps just poll the keypad until a key shows up, then store it and resume
after the Fx0A.

Faults
------
Handlers validate everything (stack depth, memory ranges) before changing
any state. If an instruction faults, PC is restored to the faulting
instruction and the fault is raised with its address attached. The
instruction has no other effect.

Quirks
------
Several instructions behave differently across historical interpreters.
The legacy flag selects the original COSMAC VIP behavior for the three
best-known differences; each quirk can also be set individually.

    Quirk                    Modern (default)         Legacy
    -----------------------  -----------------------  ----------------------
    shift_uses_vy            8xy6/8xyE shift Vx       Vx = Vy, then shift
    jump_uses_v0             Bnnn jumps to nnn + Vx   Bnnn jumps to nnn + V0
    load_store_increments_i  Fx55/Fx65 keep I         I += x + 1
    index_overflow_sets_vf   off                      off
    logic_resets_vf          off                      off
    clip_sprites             off                      off

Copyright (c) 2026 chip8-vm Contributors
"""

import logging
import random
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Callable, List, Optional

from ..errors import Chip8Fault, StackOverflowError, StackUnderflowError
from ..opcodes import Instruction, Op, decode
from .display import Display
from .keypad import Keypad
from .memory import Memory, PROGRAM_START
from .timers import Timers

logger = logging.getLogger(__name__)


NUM_REGISTERS = 16
STACK_DEPTH = 16
ADDRESS_LIMIT = 0xFFF


@dataclass(frozen=True)
class Quirks:
    """
    Behavior switches for historically ambiguous instructions.

    Attributes:
        shift_uses_vy: 8xy6/8xyE copy Vy into Vx before shifting
        jump_uses_v0: Bnnn adds V0 (instead of Vx, x = top nibble of nnn)
        load_store_increments_i: Fx55/Fx65 leave I pointing past the block
        index_overflow_sets_vf: Fx1E sets VF when I + Vx passes $FFF
        logic_resets_vf: 8xy1/8xy2/8xy3 clear VF
        clip_sprites: Dxyn drops pixels past the screen edges
    """
    shift_uses_vy: bool = False
    jump_uses_v0: bool = False
    load_store_increments_i: bool = False
    index_overflow_sets_vf: bool = False
    logic_resets_vf: bool = False
    clip_sprites: bool = False

    @classmethod
    def for_mode(cls, legacy: bool) -> "Quirks":
        """Default quirk set for legacy or modern mode."""
        if legacy:
            return cls(
                shift_uses_vy=True,
                jump_uses_v0=True,
                load_store_increments_i=True,
            )
        return cls()

    def with_overrides(self, **overrides: bool) -> "Quirks":
        """Copy with some switches changed."""
        return replace(self, **overrides)


class CpuMode(Enum):
    """Execution mode of the interpreter."""
    RUNNING = auto()
    AWAITING_KEY = auto()  # Stalled on Fx0A


@dataclass
class CPUState:
    """
    Complete interpreter register state.

    - v: V0-VF, each 8-bit unsigned
    - i, pc: 16-bit unsigned
    - stack: return addresses, most recent last
    - wait_register: target of a pending Fx0A (AWAITING_KEY only)
    """
    v: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)
    i: int = 0
    pc: int = PROGRAM_START
    stack: List[int] = field(default_factory=list)
    mode: CpuMode = CpuMode.RUNNING
    wait_register: Optional[int] = None


class Chip8CPU:
    """
    CHIP-8 interpreter with instrumentation support.

    The CPU owns the register file and drives memory, display, keypad and
    timers. It does not tick the timers: that happens on a separate 60 Hz
    cadence run by the driver.

    Example:
        >>> cpu = Chip8CPU(legacy=False)
        >>> cpu.memory.load_program(bytes([0x60, 0x2A]))  # LD V0, $2A
        >>> _ = cpu.step()
        >>> cpu.v[0]
        42
    """

    def __init__(
        self,
        memory: Optional[Memory] = None,
        display: Optional[Display] = None,
        keypad: Optional[Keypad] = None,
        timers: Optional[Timers] = None,
        legacy: bool = False,
        quirks: Optional[Quirks] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the interpreter.

        Args:
            memory: Memory (a fresh one is created if None)
            display: Framebuffer (created with clipping per quirks if None)
            keypad: Keypad (created if None)
            timers: Timers (created if None)
            legacy: Select the COSMAC VIP quirk set
            quirks: Explicit quirk set, overrides the one implied by legacy
            rng: Random source for Cxkk
        """
        self._legacy = legacy
        self._quirks = quirks or Quirks.for_mode(legacy)
        self.memory = memory or Memory()
        self.display = display or Display(clip=self._quirks.clip_sprites)
        self.keypad = keypad or Keypad()
        self.timers = timers or Timers()
        self.rng = rng or random.Random()
        self.state = CPUState()

        # Total instructions completed since reset (stalled polls excluded)
        self.instructions_executed = 0

        # Instrumentation hook
        # on_instruction(pc, word) -> bool: return False to stop execution
        self.on_instruction: Optional[Callable[[int, int], bool]] = None

    # ========================================
    # Configuration
    # ========================================

    @property
    def legacy(self) -> bool:
        """True if created in legacy mode. Fixed for the CPU's lifetime."""
        return self._legacy

    @property
    def quirks(self) -> Quirks:
        """Active quirk set."""
        return self._quirks

    # ========================================
    # Register Properties
    # ========================================

    @property
    def v(self) -> List[int]:
        """V0-VF register list (mutable, values kept 8-bit by handlers)."""
        return self.state.v

    @property
    def i(self) -> int:
        """Index register (16-bit)."""
        return self.state.i

    @i.setter
    def i(self, value: int) -> None:
        self.state.i = value & 0xFFFF

    @property
    def pc(self) -> int:
        """Program counter (16-bit)."""
        return self.state.pc

    @pc.setter
    def pc(self, value: int) -> None:
        self.state.pc = value & 0xFFFF

    @property
    def stack(self) -> tuple:
        """Return stack contents, oldest first."""
        return tuple(self.state.stack)

    @property
    def mode(self) -> CpuMode:
        """Current execution mode."""
        return self.state.mode

    @property
    def awaiting_key(self) -> bool:
        """True while stalled on Fx0A."""
        return self.state.mode is CpuMode.AWAITING_KEY

    @property
    def registers(self) -> dict:
        """
        Snapshot of the visible machine state.

        Returns:
            Dictionary with keys v0-vf, i, pc, sp (stack depth), dt, st
        """
        regs = {f"v{n:x}": value for n, value in enumerate(self.state.v)}
        regs.update({
            "i": self.state.i,
            "pc": self.state.pc,
            "sp": len(self.state.stack),
            "dt": self.timers.delay,
            "st": self.timers.sound,
        })
        return regs

    # ========================================
    # Reset
    # ========================================

    def reset(self) -> None:
        """
        Reset registers to power-on state.

        Clears V0-VF, I and the stack, sets PC to $200 and clears the
        display and timers. Memory is left alone.
        """
        self.state = CPUState()
        self.instructions_executed = 0
        self.display.clear()
        self.timers.reset()

    # ========================================
    # Main Execution Loop
    # ========================================

    def step(self) -> Optional[Instruction]:
        """
        Execute exactly one instruction.

        Returns:
            The instruction executed, or None if still waiting for a key

        Raises:
            Chip8Fault: The instruction faulted. PC points at it and no
                other state was changed.
        """
        if self.state.mode is CpuMode.AWAITING_KEY:
            return self._poll_key_wait()

        pc = self.state.pc
        try:
            instruction = decode(self.memory.read_word(pc))
            self.pc = pc + 2
            self._execute_instruction(instruction)
        except Chip8Fault as fault:
            self.state.pc = pc
            raise fault.at(pc)

        if self.state.mode is CpuMode.RUNNING:
            self.instructions_executed += 1
        return instruction

    def execute(self, count: int) -> int:
        """
        Execute up to count instructions.

        Execution stops early if the on_instruction hook returns False
        (breakpoint). Stalled key-wait polls count towards the budget so
        the call always returns.

        Returns:
            Number of steps performed

        Raises:
            Chip8Fault: Propagated from step()
        """
        steps = 0
        while steps < count:
            if self.on_instruction and self.state.mode is CpuMode.RUNNING:
                pc = self.state.pc
                next_word = self.memory.read_word(pc) if pc < ADDRESS_LIMIT else None
                if next_word is not None and not self.on_instruction(pc, next_word):
                    # Hook returned False - stop execution (breakpoint hit)
                    return steps
            self.step()
            steps += 1
        return steps

    def _poll_key_wait(self) -> Optional[Instruction]:
        """Resolve a pending Fx0A if a key is down."""
        key = self.keypad.any_pressed()
        if key is None:
            return None

        x = self.state.wait_register
        self.state.v[x] = key
        self.state.mode = CpuMode.RUNNING
        self.state.wait_register = None
        instruction = decode(self.memory.read_word(self.state.pc))
        self.pc = self.state.pc + 2
        self.instructions_executed += 1
        logger.debug(f"Key {key:X} released wait at ${self.state.pc - 2:03X}, V{x:X}={key:02X}")
        return instruction

    # ========================================
    # Helpers
    # ========================================

    def _skip_if(self, condition: bool) -> None:
        if condition:
            self.pc = self.state.pc + 2

    def _key_down(self, value: int) -> bool:
        # Values above $F name no key and never read as pressed
        return value < 0x10 and self.keypad.is_pressed(value)

    def _check_block(self, address: int, count: int) -> None:
        """Validate a memory block before an instruction starts writing."""
        # read_bytes raises MemoryOutOfBoundsError for the first bad address
        self.memory.read_bytes(address, count)

    # ========================================
    # Instruction Dispatch
    # ========================================

    def _execute_instruction(self, ins: Instruction) -> None:
        """
        Execute a decoded instruction.

        PC has already been advanced past the instruction.
        """
        v = self.state.v
        q = self._quirks

        match ins.op:
            # ============================================
            # Flow control
            # ============================================
            case Op.NOP:
                pass
            case Op.CLS:
                self.display.clear()
            case Op.RET:
                if not self.state.stack:
                    raise StackUnderflowError()
                self.pc = self.state.stack.pop()
            case Op.JP:
                self.pc = ins.nnn
            case Op.CALL:
                if len(self.state.stack) >= STACK_DEPTH:
                    raise StackOverflowError(len(self.state.stack))
                self.state.stack.append(self.state.pc)
                self.pc = ins.nnn
            case Op.JP_OFFSET:
                offset = v[0] if q.jump_uses_v0 else v[ins.x]
                self.pc = ins.nnn + offset

            # ============================================
            # Conditional skips
            # ============================================
            case Op.SE_BYTE:
                self._skip_if(v[ins.x] == ins.kk)
            case Op.SNE_BYTE:
                self._skip_if(v[ins.x] != ins.kk)
            case Op.SE_REG:
                self._skip_if(v[ins.x] == v[ins.y])
            case Op.SNE_REG:
                self._skip_if(v[ins.x] != v[ins.y])
            case Op.SKP:
                self._skip_if(self._key_down(v[ins.x]))
            case Op.SKNP:
                self._skip_if(not self._key_down(v[ins.x]))

            # ============================================
            # Immediate loads
            # ============================================
            case Op.LD_BYTE:
                v[ins.x] = ins.kk
            case Op.ADD_BYTE:
                v[ins.x] = (v[ins.x] + ins.kk) & 0xFF  # No carry
            case Op.LD_I:
                self.i = ins.nnn
            case Op.RND:
                v[ins.x] = self.rng.randrange(256) & ins.kk

            # ============================================
            # ALU (8xyN). VF is written after Vx so the flag wins
            # when x is F.
            # ============================================
            case Op.LD_REG:
                v[ins.x] = v[ins.y]
            case Op.OR:
                v[ins.x] |= v[ins.y]
                if q.logic_resets_vf:
                    v[0xF] = 0
            case Op.AND:
                v[ins.x] &= v[ins.y]
                if q.logic_resets_vf:
                    v[0xF] = 0
            case Op.XOR:
                v[ins.x] ^= v[ins.y]
                if q.logic_resets_vf:
                    v[0xF] = 0
            case Op.ADD_REG:
                total = v[ins.x] + v[ins.y]
                v[ins.x] = total & 0xFF
                v[0xF] = 1 if total > 0xFF else 0
            case Op.SUB:
                no_borrow = v[ins.x] >= v[ins.y]
                v[ins.x] = (v[ins.x] - v[ins.y]) & 0xFF
                v[0xF] = 1 if no_borrow else 0
            case Op.SUBN:
                no_borrow = v[ins.y] >= v[ins.x]
                v[ins.x] = (v[ins.y] - v[ins.x]) & 0xFF
                v[0xF] = 1 if no_borrow else 0
            case Op.SHR:
                source = v[ins.y] if q.shift_uses_vy else v[ins.x]
                v[ins.x] = source >> 1
                v[0xF] = source & 0x01
            case Op.SHL:
                source = v[ins.y] if q.shift_uses_vy else v[ins.x]
                v[ins.x] = (source << 1) & 0xFF
                v[0xF] = (source >> 7) & 0x01

            # ============================================
            # Display
            # ============================================
            case Op.DRW:
                sprite = self.memory.read_bytes(self.state.i, ins.n)
                collision = self.display.draw_sprite(v[ins.x], v[ins.y], sprite)
                v[0xF] = 1 if collision else 0

            # ============================================
            # Timers and keypad
            # ============================================
            case Op.LD_VX_DT:
                v[ins.x] = self.timers.delay
            case Op.LD_DT_VX:
                self.timers.delay = v[ins.x]
            case Op.LD_ST_VX:
                self.timers.sound = v[ins.x]
            case Op.LD_VX_K:
                key = self.keypad.any_pressed()
                if key is None:
                    # Stall on this instruction until a key is down
                    self.pc = self.state.pc - 2
                    self.state.mode = CpuMode.AWAITING_KEY
                    self.state.wait_register = ins.x
                    logger.debug(f"Waiting for key at ${self.state.pc:03X} (V{ins.x:X})")
                else:
                    v[ins.x] = key

            # ============================================
            # Index register and memory
            # ============================================
            case Op.ADD_I_VX:
                total = self.state.i + v[ins.x]
                self.i = total
                if q.index_overflow_sets_vf:
                    v[0xF] = 1 if total > ADDRESS_LIMIT else 0
            case Op.LD_F_VX:
                self.i = self.memory.font_address(v[ins.x])
            case Op.LD_B_VX:
                value = v[ins.x]
                self.memory.write_bytes(
                    self.state.i, bytes([value // 100, (value // 10) % 10, value % 10])
                )
            case Op.STORE_REGS:
                self.memory.write_bytes(self.state.i, bytes(v[:ins.x + 1]))
                if q.load_store_increments_i:
                    self.i = self.state.i + ins.x + 1
            case Op.LOAD_REGS:
                values = self.memory.read_bytes(self.state.i, ins.x + 1)
                v[:ins.x + 1] = list(values)
                if q.load_store_increments_i:
                    self.i = self.state.i + ins.x + 1

    def __repr__(self) -> str:
        return (
            f"Chip8CPU(pc=${self.state.pc:03X}, i=${self.state.i:03X}, "
            f"sp={len(self.state.stack)}, mode={self.state.mode.name})"
        )
