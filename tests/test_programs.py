"""Integration tests for the interpreter."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from elfcode import RegisterMachine, execute, parse_program
from elfcode.cpu import step_state
from elfcode.state import MachineState


JUMP_PROGRAM = """
#ip 0
seti 5 0 1
seti 6 0 2
addi 0 1 0
addr 1 2 3
setr 1 0 0
seti 8 0 4
seti 9 0 5
"""

STRAIGHT_LINE = """
seti 5 0 1
addr 0 1 2
addi 2 3 2
"""

# x1 counts up to x0 = 10; the compare result is added to the ip to skip
# the backwards jump once they are equal
COUNTDOWN = """
#ip 4
seti 10 0 0
addi 1 1 1
eqrr 0 1 2
addr 2 4 4
seti 0 0 4
"""


class TestExecute:
    """Test the pure execute() function."""

    def test_straight_line_program(self):
        """seti/addr/addi without binding yields [0, 5, 8, 0]."""
        program = parse_program(STRAIGHT_LINE)
        assert execute(program, [0, 0, 0, 0]) == (0, 5, 8, 0)

    def test_jump_program(self):
        """ip-bound program skips instructions and ends with x0 = 6."""
        program = parse_program(JUMP_PROGRAM)
        assert execute(program, [0] * 6) == (6, 5, 6, 0, 0, 9)

    def test_arguments_not_modified(self):
        program = parse_program(STRAIGHT_LINE)
        registers = [0, 0, 0, 0]
        execute(program, registers)
        assert registers == [0, 0, 0, 0]

    def test_ip_overwritten_before_instruction(self):
        """addi 0 1 0 bound to x0: x0 becomes pc (0) then 1, next pc 2 halts."""
        program = parse_program("addi 0 1 0")
        assert execute(program, [2, 0, 0, 0], ip_register=0) == (1, 0, 0, 0)

    def test_without_binding_ip_register_is_plain(self):
        program = parse_program("addi 0 1 0")
        assert execute(program, [2, 0, 0, 0]) == (3, 0, 0, 0)

    def test_empty_program(self):
        assert execute(parse_program(""), [1, 2, 3, 4]) == (1, 2, 3, 4)

    def test_negative_register_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            execute(parse_program("seti 1 0 1"), [-5, 0, 0, 0])

    def test_empty_register_file_rejected(self):
        with pytest.raises(ValueError, match="at least one register"):
            execute(parse_program("seti 1 0 1"), [])

    def test_invalid_ip_register(self):
        program = parse_program("#ip 6\nseti 1 0 1")
        with pytest.raises(ValueError, match="ip register"):
            execute(program, [0] * 6)

    def test_register_out_of_range_is_fatal(self):
        program = parse_program("addr 0 7 1")
        with pytest.raises(IndexError):
            execute(program, [0, 0, 0, 0])

    def test_loop(self):
        program = parse_program(COUNTDOWN)
        final = execute(program, [0] * 6)
        assert final[0] == 10
        assert final[1] == 10


class TestStepSemantics:
    """Step-level contract of the ip binding."""

    def test_single_step_without_binding(self):
        """One instruction, no binding: pc goes 0 -> 1 and the run halts."""
        program = parse_program("seti 1 0 0")
        state = step_state(program, MachineState(registers=(0, 0, 0, 0)))
        assert state.pc == 1
        assert state.halted is True
        assert state.cycle_count == 1

    def test_write_to_ip_continues_at_value_plus_one(self):
        """seti v into the bound register continues at v + 1."""
        program = parse_program("#ip 2\nseti 3 0 2\nseti 1 0 0\nseti 1 0 1\nseti 1 0 3\nseti 1 0 3")
        state = step_state(program, MachineState(registers=(0, 0, 0, 0)))
        assert state.pc == 4
        assert state.registers[2] == 3
        assert state.halted is False

    def test_counter_synced_into_ip_register(self):
        program = parse_program("#ip 1\nseti 0 0 0\nsetr 1 0 3")
        state = MachineState(registers=(0, 99, 0, 0))
        state = step_state(program, state)
        # x1 was overwritten with pc 0 and read back
        assert state.registers[1] == 0
        assert state.pc == 1
        state = step_state(program, state)
        assert state.registers[3] == 1
        assert state.halted is True

    def test_step_outside_program_halts(self):
        program = parse_program("seti 1 0 0")
        state = step_state(program, MachineState(registers=(0, 0, 0, 0), pc=5))
        assert state.halted is True
        assert state.cycle_count == 0


class TestRegisterMachine:
    """Test the stateful wrapper."""

    @pytest.fixture
    def machine(self):
        return RegisterMachine()

    def test_run_jump_program(self, machine):
        machine.load_program(JUMP_PROGRAM)
        machine.run()

        assert machine.get_register(0) == 6
        assert machine.is_halted() is True
        assert machine.get_cycle_count() == 5
        assert machine.get_pc() == 7

    def test_initial_registers(self, machine):
        machine.load_program("addi 0 1 0", registers=[41])
        assert machine.run() == (42, 0, 0, 0, 0, 0)

    def test_four_register_variant(self):
        machine = RegisterMachine(size=4)
        machine.load_program(STRAIGHT_LINE)
        assert machine.run() == (0, 5, 8, 0)

    def test_reset_reruns(self, machine):
        machine.load_program("addi 0 1 0")
        machine.run()
        machine.reset([10])
        assert machine.get_register(0) == 10
        assert machine.is_halted() is False
        machine.run()
        assert machine.get_register(0) == 11

    def test_step_returns_state(self, machine):
        machine.load_program(STRAIGHT_LINE)
        state = machine.step()
        assert state.registers[1] == 5
        assert state.pc == 1

    def test_step_when_halted(self, machine):
        machine.load_program("seti 1 0 0")
        machine.run()
        with pytest.raises(RuntimeError, match="halted"):
            machine.step()

    def test_no_program(self, machine):
        with pytest.raises(RuntimeError, match="No program loaded"):
            machine.run()
        assert machine.is_halted() is True
        assert machine.get_cycle_count() == 0

    def test_empty_program_is_halted(self, machine):
        machine.load_program("")
        assert machine.is_halted() is True
        assert machine.run() == (0,) * 6

    def test_load_instructions_override_ip(self, machine):
        program = parse_program("addi 0 1 0")
        machine.load_instructions(program, ip_register=0, registers=[2])
        machine.run()
        assert machine.get_register(0) == 1

    def test_invalid_ip_register(self):
        machine = RegisterMachine(size=4)
        with pytest.raises(ValueError):
            machine.load_program("#ip 5\nseti 0 0 0")

    def test_iter_states(self, machine):
        machine.load_program(STRAIGHT_LINE)
        pcs = [state.pc for state in machine.iter_states()]
        assert pcs == [0, 1, 2]
        assert machine.is_halted() is True


class TestMaxCyclesSafety:
    """Caller-supplied cycle bound."""

    def test_unbounded_by_default(self):
        assert RegisterMachine().max_cycles is None

    def test_max_cycles_stops_execution(self):
        """Infinite loop stops at max cycles."""
        machine = RegisterMachine(max_cycles=10)
        machine.load_program("#ip 0\nseti 0 0 0\nseti 0 0 0")

        with pytest.raises(RuntimeError, match="Max cycles"):
            machine.run()

        assert machine.get_cycle_count() == 10

    def test_run_override(self):
        machine = RegisterMachine()
        machine.load_program("#ip 0\nseti 0 0 0\nseti 0 0 0")
        with pytest.raises(RuntimeError, match="Max cycles \\(3\\)"):
            machine.run(max_cycles=3)


class TestExecutionTrace:
    """Test execution trace functionality."""

    def test_trace_disabled_by_default(self):
        machine = RegisterMachine()
        machine.load_program(STRAIGHT_LINE)
        machine.run()
        assert machine.trace == []

    def test_trace_records_all_cycles(self):
        machine = RegisterMachine(trace=True)
        machine.load_program(JUMP_PROGRAM)
        machine.run()

        assert [str(e.instruction) for e in machine.trace] == [
            "seti 5 0 1", "seti 6 0 2", "addi 0 1 0", "setr 1 0 0", "seti 9 0 5",
        ]
        assert [e.cycle for e in machine.trace] == [1, 2, 3, 4, 5]

    def test_trace_captures_state_changes(self):
        machine = RegisterMachine(trace=True)
        machine.load_program(JUMP_PROGRAM)
        machine.run()

        entry = machine.trace[2]
        assert entry.pre_state["pc"] == 2
        assert entry.post_state["pc"] == 4
        assert entry.post_state["registers"][0] == 3

    def test_print_trace(self, capsys):
        machine = RegisterMachine(trace=True)
        machine.load_program(JUMP_PROGRAM)
        machine.run()
        machine.print_trace()

        out = capsys.readouterr().out
        assert "ELFCODE EXECUTION TRACE" in out
        assert "PC: 2 → 4" in out
        assert "Cycles: 5" in out

    def test_summary(self):
        machine = RegisterMachine(trace=True)
        machine.load_program(JUMP_PROGRAM)
        machine.run()
        summary = machine.get_summary()

        assert summary["cycles"] == 5
        assert summary["halted"] is True
        assert summary["registers"] == [6, 5, 6, 0, 0, 9]
        assert summary["ip_register"] == 0
        assert summary["trace_length"] == 5
