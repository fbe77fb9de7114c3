"""
Breakpoint System Unit Tests
============================

Tests for PC breakpoints, register conditions, single-step and break requests.

Copyright (c) 2026 chip8-vm Contributors
"""

import pytest
from chip8_vm.emulator import (
    BreakpointManager,
    BreakEvent,
    BreakReason,
    RegisterCondition,
)
from chip8_vm.errors import UnknownOpcodeError


# =============================================================================
# Mock CPU for Testing
# =============================================================================

class MockCPU:
    """Mock CPU exposing the register view conditions read."""

    def __init__(self):
        self.registers = {f"v{n:x}": 0 for n in range(16)}
        self.registers.update({"i": 0, "pc": 0x200, "sp": 0, "dt": 0, "st": 0})


@pytest.fixture
def cpu():
    return MockCPU()


@pytest.fixture
def mgr():
    return BreakpointManager()


# =============================================================================
# BreakpointManager Tests
# =============================================================================

class TestBreakpointManager:
    """Test BreakpointManager initialization and basic operations."""

    def test_initial_state(self, mgr):
        """Manager starts with no breakpoints."""
        assert mgr.breakpoint_count == 0
        assert mgr.list_register_conditions() == []
        assert mgr.last_event is None
        assert mgr.step_mode is False

    def test_add_remove_breakpoint(self, mgr):
        mgr.add_breakpoint(0x204)
        mgr.add_breakpoint(0x200)
        assert mgr.has_breakpoint(0x204)
        assert mgr.list_breakpoints() == [0x200, 0x204]

        mgr.remove_breakpoint(0x204)
        assert not mgr.has_breakpoint(0x204)
        assert mgr.breakpoint_count == 1

    def test_remove_missing_is_noop(self, mgr):
        mgr.remove_breakpoint(0x300)
        assert mgr.breakpoint_count == 0

    def test_duplicate_breakpoint(self, mgr):
        mgr.add_breakpoint(0x210)
        mgr.add_breakpoint(0x210)
        assert mgr.breakpoint_count == 1

    def test_clear_all(self, mgr):
        mgr.add_breakpoint(0x200)
        mgr.add_condition("v0", "==", 1)
        mgr.step_mode = True
        mgr.request_break()
        mgr.clear_all()
        assert mgr.breakpoint_count == 0
        assert mgr.list_register_conditions() == []
        assert mgr.step_mode is False


# =============================================================================
# Register Condition Tests
# =============================================================================

class TestRegisterCondition:
    """Test register condition validation and evaluation."""

    def test_unknown_register(self):
        with pytest.raises(ValueError):
            RegisterCondition("vg", "==", 0)

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            RegisterCondition("v0", "=~", 0)

    def test_register_name_case_insensitive(self):
        cond = RegisterCondition("VA", "==", 3)
        assert cond.register == "va"

    @pytest.mark.parametrize("operator,value,expected", [
        ("==", 0x42, True),
        ("==", 0x41, False),
        ("!=", 0x41, True),
        ("<", 0x43, True),
        ("<=", 0x42, True),
        (">", 0x42, False),
        (">=", 0x42, True),
        ("&", 0x02, True),
        ("&", 0x01, False),
    ])
    def test_operators(self, cpu, operator, value, expected):
        cpu.registers["v3"] = 0x42
        assert RegisterCondition("v3", operator, value).check(cpu) is expected

    def test_default_description(self):
        cond = RegisterCondition("i", ">", 768)
        assert cond.description == "i > 768"

    def test_ids_reused(self, mgr):
        first = mgr.add_condition("v0", "==", 1)
        second = mgr.add_condition("v1", "==", 1)
        assert (first, second) == (0, 1)

        mgr.remove_register_condition(first)
        assert [cid for cid, _ in mgr.list_register_conditions()] == [1]
        assert mgr.add_condition("v2", "==", 1) == 0

    def test_remove_unknown_id(self, mgr):
        mgr.remove_register_condition(7)
        assert mgr.list_register_conditions() == []


# =============================================================================
# check_instruction Tests
# =============================================================================

class TestCheckInstruction:
    """Test the per-instruction hook."""

    def test_continue_when_nothing_set(self, mgr, cpu):
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is True
        assert mgr.last_event is None

    def test_pc_breakpoint(self, mgr, cpu):
        mgr.add_breakpoint(0x204)
        assert mgr.check_instruction(cpu, 0x202, 0x00E0) is True
        assert mgr.check_instruction(cpu, 0x204, 0x00E0) is False
        event = mgr.last_event
        assert event.reason == BreakReason.PC_BREAKPOINT
        assert event.address == 0x204
        assert str(event) == "Breakpoint at $204"

    def test_register_condition(self, mgr, cpu):
        mgr.add_condition("vf", "==", 1, "collision")
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is True
        cpu.registers["vf"] = 1
        assert mgr.check_instruction(cpu, 0x202, 0x00E0) is False
        assert mgr.last_event.reason == BreakReason.REGISTER_CONDITION
        assert "collision" in mgr.last_event.message

    def test_step_mode_is_one_shot(self, mgr, cpu):
        mgr.step_mode = True
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is False
        assert mgr.last_event.reason == BreakReason.STEP
        assert mgr.step_mode is False
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is True

    def test_break_request(self, mgr, cpu):
        mgr.request_break()
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is False
        assert mgr.last_event.reason == BreakReason.USER_INTERRUPT
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is True

    def test_clear_break_request(self, mgr, cpu):
        mgr.request_break()
        mgr.clear_break_request()
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is True

    def test_break_request_beats_breakpoint(self, mgr, cpu):
        mgr.add_breakpoint(0x200)
        mgr.request_break()
        mgr.check_instruction(cpu, 0x200, 0x00E0)
        assert mgr.last_event.reason == BreakReason.USER_INTERRUPT

    def test_breakpoint_beats_condition(self, mgr, cpu):
        mgr.add_breakpoint(0x200)
        mgr.add_condition("v0", "==", 0)
        mgr.check_instruction(cpu, 0x200, 0x00E0)
        assert mgr.last_event.reason == BreakReason.PC_BREAKPOINT


# =============================================================================
# Resume Tests
# =============================================================================

class TestResume:
    """Test restarting from the address a run stopped at."""

    def test_resume_passes_once(self, mgr, cpu):
        mgr.add_breakpoint(0x204)
        assert mgr.check_instruction(cpu, 0x204, 0x1204) is False

        mgr.resume_from(0x204)
        assert mgr.last_event is None
        assert mgr.check_instruction(cpu, 0x204, 0x1204) is True
        assert mgr.check_instruction(cpu, 0x204, 0x1204) is False

    def test_resume_only_applies_to_first_check(self, mgr, cpu):
        mgr.add_breakpoint(0x206)
        mgr.resume_from(0x206)
        assert mgr.check_instruction(cpu, 0x204, 0x00E0) is True
        assert mgr.check_instruction(cpu, 0x206, 0x00E0) is False

    def test_resume_none(self, mgr, cpu):
        mgr.add_breakpoint(0x200)
        mgr.resume_from(None)
        assert mgr.check_instruction(cpu, 0x200, 0x00E0) is False


# =============================================================================
# BreakEvent Tests
# =============================================================================

class TestBreakEvent:
    """Test BreakEvent formatting."""

    def test_message_wins(self):
        event = BreakEvent(BreakReason.STEP, address=0x200, message="custom")
        assert str(event) == "custom"

    @pytest.mark.parametrize("reason,text", [
        (BreakReason.STEP, "Single step"),
        (BreakReason.FRAME, "Frame complete"),
        (BreakReason.MAX_INSTRUCTIONS, "Maximum instructions reached"),
        (BreakReason.REGISTER_CONDITION, "Register condition met"),
        (BreakReason.NONE, "Unknown"),
    ])
    def test_default_text(self, reason, text):
        assert str(BreakEvent(reason)) == text

    def test_error_uses_fault(self):
        fault = UnknownOpcodeError(0xFFFF).at(0x204)
        event = BreakEvent(BreakReason.ERROR, address=0x204, fault=fault)
        assert str(event) == str(fault)
        assert "$204" in str(event)
