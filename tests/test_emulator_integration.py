"""
Emulator Integration Tests
==========================

End-to-end tests for the Emulator class: program loading, frame timing,
fault policies, breakpoints, keypad input and configuration.

Copyright (c) 2026 chip8-vm Contributors
"""

import pytest
from chip8_vm.emulator import (
    BreakReason,
    CpuMode,
    Emulator,
    EmulatorConfig,
    FaultPolicy,
    Quirks,
)
from chip8_vm.emulator.emulator import MAX_RECORDED_FAULTS
from chip8_vm.errors import ProgramTooLargeError, UnknownOpcodeError


def program(*words: int) -> bytes:
    """Assemble instruction words into a big-endian program image."""
    return b"".join(w.to_bytes(2, "big") for w in words)


# =============================================================================
# Initialization Tests
# =============================================================================

class TestEmulatorInit:
    """Test emulator construction and configuration."""

    def test_default_config(self):
        emu = Emulator()
        assert emu.config.legacy is False
        assert emu.config.instructions_per_second == 700
        assert emu.config.instructions_per_frame == 11
        assert emu.config.fault_policy is FaultPolicy.SKIP
        assert emu.registers["pc"] == 0x200

    def test_legacy_quirks(self):
        emu = Emulator(EmulatorConfig(legacy=True))
        assert emu.cpu.legacy is True
        assert emu.cpu.quirks.shift_uses_vy is True
        assert emu.cpu.quirks.load_store_increments_i is True

    def test_explicit_quirks_clip(self):
        quirks = Quirks.for_mode(False).with_overrides(clip_sprites=True)
        emu = Emulator(EmulatorConfig(quirks=quirks))
        assert emu.display.clip is True

    @pytest.mark.parametrize("kwargs", [
        {"timer_hz": 0},
        {"instructions_per_second": 30},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            EmulatorConfig(**kwargs)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CHIP8_LEGACY", "yes")
        monkeypatch.setenv("CHIP8_IPS", "1200")
        monkeypatch.setenv("CHIP8_FAULT_POLICY", "HALT")
        monkeypatch.setenv("CHIP8_SEED", "7")
        config = EmulatorConfig.from_env()
        assert config.legacy is True
        assert config.instructions_per_second == 1200
        assert config.instructions_per_frame == 20
        assert config.fault_policy is FaultPolicy.HALT
        assert config.seed == 7

    def test_from_env_ignores_invalid(self, monkeypatch):
        monkeypatch.setenv("CHIP8_IPS", "fast")
        monkeypatch.setenv("CHIP8_FAULT_POLICY", "explode")
        config = EmulatorConfig.from_env()
        assert config.instructions_per_second == 700
        assert config.fault_policy is FaultPolicy.SKIP

    def test_from_env_ignores_rate_below_timer(self, monkeypatch):
        monkeypatch.setenv("CHIP8_IPS", "30")
        config = EmulatorConfig.from_env()
        assert config.instructions_per_second == 700

    def test_from_env_rate_checked_against_timer_override(self, monkeypatch):
        monkeypatch.setenv("CHIP8_IPS", "30")
        config = EmulatorConfig.from_env(timer_hz=30)
        assert config.instructions_per_second == 30

    def test_from_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CHIP8_IPS", "1200")
        config = EmulatorConfig.from_env(instructions_per_second=900)
        assert config.instructions_per_second == 900

    def test_repr(self):
        assert "pc=$200" in repr(Emulator())


# =============================================================================
# Program Loading Tests
# =============================================================================

class TestProgramLoading:
    """Test loading images from bytes and files."""

    def test_load_program(self):
        emu = Emulator()
        emu.load_program(program(0x00E0, 0x1202))
        assert emu.memory.read_word(0x200) == 0x00E0
        assert emu.memory.read_word(0x202) == 0x1202

    def test_load_rom(self, tmp_path):
        rom = tmp_path / "loop.ch8"
        rom.write_bytes(program(0x6042, 0x1202))
        emu = Emulator()
        emu.load_rom(rom)
        emu.run(2)
        assert emu.registers["v0"] == 0x42

    def test_load_missing_rom(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Emulator().load_rom(tmp_path / "missing.ch8")

    def test_program_too_large(self):
        with pytest.raises(ProgramTooLargeError):
            Emulator().load_program(bytes(0xE01))

    def test_rejected_program_keeps_previous(self):
        emu = Emulator()
        emu.load_program(program(0x602A, 0x1202))
        emu.run(1)

        with pytest.raises(ProgramTooLargeError):
            emu.load_program(bytes(0xE01))

        assert emu.memory.read_word(0x200) == 0x602A
        assert emu.registers["v0"] == 0x2A
        emu.reset()
        assert emu.memory.read_word(0x200) == 0x602A

    def test_largest_program(self):
        emu = Emulator()
        emu.load_program(bytes([0xAB]) * 0xE00)
        assert emu.memory.read_byte(0xFFF) == 0xAB

    def test_reset_reloads_program(self):
        emu = Emulator()
        emu.load_program(program(0x6001, 0xA300, 0xF055, 0x1206))
        emu.run(10)
        assert emu.memory.read_byte(0x300) == 0x01

        emu.reset()
        assert emu.registers["pc"] == 0x200
        assert emu.registers["v0"] == 0
        assert emu.memory.read_byte(0x300) == 0
        assert emu.memory.read_word(0x200) == 0x6001
        assert emu.total_instructions == 0

    def test_load_replaces_state(self):
        emu = Emulator()
        emu.load_program(program(0x6005, 0x1202))
        emu.run(5)
        emu.load_program(program(0x1200))
        assert emu.registers["v0"] == 0
        assert emu.memory.read_word(0x202) == 0


# =============================================================================
# Frame Timing Tests
# =============================================================================

class TestFrames:
    """Test the instruction batch plus timer tick cadence."""

    @pytest.fixture
    def emu(self):
        emu = Emulator()
        # LD V0,5; LD DT,V0; JP $204
        emu.load_program(program(0x6005, 0xF015, 0x1204))
        return emu

    def test_run_frame_ticks_once(self, emu):
        event = emu.run_frame()
        assert event.reason == BreakReason.FRAME
        assert emu.frames == 1
        assert emu.total_instructions == 11
        assert emu.registers["dt"] == 4

    def test_run_frames(self, emu):
        event = emu.run_frames(3)
        assert event.reason == BreakReason.FRAME
        assert emu.frames == 3
        assert emu.total_instructions == 11 + 12 + 12
        assert emu.registers["dt"] == 2

    @pytest.mark.parametrize("ips", [60, 100, 700, 1000, 1234])
    def test_one_second_runs_configured_rate(self, ips):
        emu = Emulator(EmulatorConfig(instructions_per_second=ips))
        emu.load_program(program(0x1200))
        emu.run_frames(60)
        assert emu.total_instructions == ips

    def test_frame_budgets_spread_remainder(self):
        config = EmulatorConfig(instructions_per_second=700)
        budgets = [config.instructions_for_frame(n) for n in range(60)]
        assert set(budgets) == {11, 12}
        assert sum(budgets) == 700

    def test_run_zero_frames(self, emu):
        assert emu.run_frames(0).reason == BreakReason.NONE
        assert emu.frames == 0

    def test_run_does_not_tick(self, emu):
        emu.run(100)
        assert emu.registers["dt"] == 5

    def test_break_skips_tick(self, emu):
        emu.add_breakpoint(0x204)
        event = emu.run_frame()
        assert event.reason == BreakReason.PC_BREAKPOINT
        assert emu.frames == 0
        assert emu.registers["dt"] == 5

    def test_sound_active(self):
        emu = Emulator()
        # LD V0,2; LD ST,V0; JP $204
        emu.load_program(program(0x6002, 0xF018, 0x1204))
        emu.run(2)
        assert emu.sound_active is True
        emu.run_frames(2)
        assert emu.sound_active is False


# =============================================================================
# Fault Policy Tests
# =============================================================================

class TestFaultPolicy:
    """Test skip and halt handling of faulting instructions."""

    ROM = program(0xFFFF, 0x6007, 0x1204)

    def test_skip_records_and_continues(self):
        emu = Emulator()
        emu.load_program(self.ROM)
        event = emu.run(5)
        assert event.reason == BreakReason.MAX_INSTRUCTIONS
        assert emu.registers["v0"] == 7
        assert len(emu.faults) == 1
        fault = emu.faults[0]
        assert isinstance(fault, UnknownOpcodeError)
        assert fault.pc == 0x200
        assert fault.code == 0xFFFF

    def test_skip_logs_warning(self, caplog):
        emu = Emulator()
        emu.load_program(self.ROM)
        with caplog.at_level("WARNING", logger="chip8_vm.emulator.emulator"):
            emu.run(1)
        assert "unknown opcode $FFFF" in caplog.text

    def test_skipped_fault_not_counted(self):
        emu = Emulator()
        emu.load_program(self.ROM)
        emu.run(2)
        assert emu.total_instructions == 1

    def test_halt_stops(self):
        emu = Emulator(EmulatorConfig(fault_policy=FaultPolicy.HALT))
        emu.load_program(self.ROM)
        event = emu.run(5)
        assert event.reason == BreakReason.ERROR
        assert event.address == 0x200
        assert isinstance(event.fault, UnknownOpcodeError)
        assert emu.registers["pc"] == 0x200
        assert emu.registers["v0"] == 0

    def test_halt_in_frame(self):
        emu = Emulator(EmulatorConfig(fault_policy=FaultPolicy.HALT))
        emu.load_program(self.ROM)
        assert emu.run_frame().reason == BreakReason.ERROR
        assert emu.frames == 0

    def test_halt_in_step(self):
        emu = Emulator(EmulatorConfig(fault_policy=FaultPolicy.HALT))
        emu.load_program(self.ROM)
        assert emu.step().reason == BreakReason.ERROR

    def test_stack_underflow_skipped(self):
        emu = Emulator()
        emu.load_program(program(0x00EE, 0x6001, 0x1204))
        emu.run(3)
        assert emu.registers["v0"] == 1
        assert "underflow" in str(emu.faults[0])

    def test_faults_cleared_on_reset(self):
        emu = Emulator()
        emu.load_program(self.ROM)
        emu.run(3)
        emu.reset()
        assert emu.faults == []
        assert emu.fault_count == 0

    def test_fault_history_bounded(self):
        emu = Emulator()
        emu.load_program(program(0xFFFF, 0x1200))
        emu.run(10_000)
        assert emu.fault_count == 5_000
        assert len(emu.faults) == MAX_RECORDED_FAULTS
        assert all(f.pc == 0x200 for f in emu.faults)


# =============================================================================
# Breakpoint Integration Tests
# =============================================================================

class TestBreakpointIntegration:
    """Test breakpoints through the emulator."""

    @pytest.fixture
    def emu(self):
        emu = Emulator()
        # LD V0,0; ADD V0,1; JP $202
        emu.load_program(program(0x6000, 0x7001, 0x1202))
        return emu

    def test_pc_breakpoint(self, emu):
        emu.add_breakpoint(0x202)
        event = emu.run(100)
        assert event.reason == BreakReason.PC_BREAKPOINT
        assert event.address == 0x202
        assert emu.registers["v0"] == 0

    def test_resume_from_breakpoint(self, emu):
        emu.add_breakpoint(0x202)
        emu.run(100)
        event = emu.run(100)
        assert event.reason == BreakReason.PC_BREAKPOINT
        assert emu.registers["v0"] == 1
        emu.run(100)
        assert emu.registers["v0"] == 2

    def test_remove_breakpoint(self, emu):
        emu.add_breakpoint(0x202)
        emu.remove_breakpoint(0x202)
        assert emu.run(10).reason == BreakReason.MAX_INSTRUCTIONS

    def test_register_condition(self, emu):
        emu.breakpoints.add_condition("v0", "==", 3)
        event = emu.run(100)
        assert event.reason == BreakReason.REGISTER_CONDITION
        assert emu.registers["v0"] == 3

    def test_user_interrupt(self, emu):
        emu.breakpoints.request_break()
        event = emu.run(100)
        assert event.reason == BreakReason.USER_INTERRUPT
        assert emu.total_instructions == 0

    def test_step_ignores_breakpoints(self, emu):
        emu.add_breakpoint(0x200)
        event = emu.step()
        assert event.reason == BreakReason.STEP
        assert emu.registers["pc"] == 0x202

    def test_run_until_pc(self):
        emu = Emulator()
        # LD V0,0; ADD V0,1; SE V0,5; JP $202; JP $208
        emu.load_program(program(0x6000, 0x7001, 0x3005, 0x1202, 0x1208))
        assert emu.run_until_pc(0x208) is True
        assert emu.registers["v0"] == 5
        assert not emu.breakpoints.has_breakpoint(0x208)

    def test_run_until_pc_not_reached(self, emu):
        assert emu.run_until_pc(0x300, max_instructions=50) is False
        assert not emu.breakpoints.has_breakpoint(0x300)

    def test_clear_breakpoints(self, emu):
        emu.add_breakpoint(0x202)
        emu.breakpoints.add_condition("v0", "==", 3)
        emu.clear_breakpoints()
        assert emu.run(50).reason == BreakReason.MAX_INSTRUCTIONS


# =============================================================================
# Keypad Integration Tests
# =============================================================================

class TestKeypadIntegration:
    """Test key wait and key input through the emulator."""

    @pytest.fixture
    def emu(self):
        emu = Emulator()
        # LD V0,K; JP $202
        emu.load_program(program(0xF00A, 0x1202))
        return emu

    def test_wait_stalls(self, emu):
        event = emu.run(20)
        assert event.reason == BreakReason.MAX_INSTRUCTIONS
        assert emu.cpu.mode is CpuMode.AWAITING_KEY
        assert emu.registers["pc"] == 0x200

    def test_press_releases_wait(self, emu):
        emu.run(5)
        emu.press_key("W")
        emu.run(1)
        assert emu.cpu.mode is CpuMode.RUNNING
        assert emu.registers["v0"] == 0x5
        assert emu.registers["pc"] == 0x202

    def test_wait_continues_through_frames(self, emu):
        emu.run_frames(2)
        assert emu.frames == 2
        emu.press_key(0xA)
        emu.run_frame()
        assert emu.registers["v0"] == 0xA

    def test_tap_key(self, emu):
        emu.tap_key("1", hold_frames=1)
        assert emu.registers["v0"] == 0x1
        assert emu.keypad.any_pressed() is None

    def test_unknown_key(self, emu):
        with pytest.raises(ValueError):
            emu.press_key("P")

    def test_skip_if_pressed(self):
        emu = Emulator()
        # LD V0,$C; SKP V0; LD V1,1; JP $206
        emu.load_program(program(0x600C, 0xE09E, 0x6101, 0x1206))
        emu.press_key("4")
        emu.run(4)
        assert emu.registers["v1"] == 0


# =============================================================================
# Display and Determinism Tests
# =============================================================================

class TestDisplayIntegration:
    """Test drawing through the emulator."""

    def test_draw_font_glyph(self):
        emu = Emulator()
        # LD V0,5; LD F,V0; LD V1,0; DRW V1,V1,5
        emu.load_program(program(0x6005, 0xF029, 0x6100, 0xD115))
        emu.run(4)
        lines = emu.display_text.splitlines()
        assert lines[0][:5] == "####."
        assert lines[1][:5] == "#...."
        assert lines[3][:5] == "...#."
        assert emu.registers["vf"] == 0
        assert emu.total_instructions == 4

    def test_display_pixels(self):
        emu = Emulator()
        assert emu.display_pixels == bytes(64 * 32)

    def test_render_display(self):
        emu = Emulator()
        assert emu.render_display(scale=1).startswith(b"\x89PNG")

    def test_disassemble_at(self):
        emu = Emulator()
        emu.load_program(program(0x6005, 0x1202))
        lines = emu.disassemble_at(0x200, count=2)
        assert lines == ["$200: 60 05  LD V0, $05", "$202: 12 02  JP $202"]

    @pytest.mark.parametrize("legacy,text", [(False, "JP V3, $300"), (True, "JP V0, $300")])
    def test_disassemble_at_jump_offset(self, legacy, text):
        emu = Emulator(EmulatorConfig(legacy=legacy))
        emu.load_program(program(0xB300))
        assert emu.disassemble_at(0x200, count=1)[0].endswith(text)

    def test_disassemble_at_end_of_memory(self):
        lines = Emulator().disassemble_at(0xFFE, count=4)
        assert len(lines) == 1


class TestDeterminism:
    """Test seeded random generation."""

    ROM = program(0xC0FF, 0xC1FF, 0xC2FF, 0x1206)

    def test_same_seed_same_values(self):
        first = Emulator(EmulatorConfig(seed=42))
        second = Emulator(EmulatorConfig(seed=42))
        for emu in (first, second):
            emu.load_program(self.ROM)
            emu.run(3)
        assert first.registers == second.registers

    def test_reset_reseeds(self):
        emu = Emulator(EmulatorConfig(seed=42))
        emu.load_program(self.ROM)
        emu.run(3)
        values = [emu.registers[r] for r in ("v0", "v1", "v2")]
        emu.reset()
        emu.run(3)
        assert [emu.registers[r] for r in ("v0", "v1", "v2")] == values
