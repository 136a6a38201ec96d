"""RegisterMachine: the ElfCode interpreter.

Execution loop:
    PROGRAM -> FETCH (pc) -> [pc -> ip register] -> APPLY -> [ip register -> pc] -> STATE

When an instruction pointer binding is configured, the bound register is
an ordinary register: the machine writes the program counter into it right
before each instruction and reads it back right after, so any instruction
that writes to it is a jump. Without a binding the counter simply
advances by one. The run ends as soon as the counter leaves the program;
there is no halt instruction.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .decode import Instruction, Program, parse_program
from .registry import apply_instruction
from .state import DEFAULT_REGISTER_COUNT, MachineState, create_initial_state


def check_ip_register(program: Program, size: int) -> None:
    """Reject an ip binding that falls outside the register file."""
    ip = program.ip_register
    if ip is not None and not 0 <= ip < size:
        raise ValueError(f"ip register {ip} outside register file of size {size}")


def step_state(program: Program, state: MachineState) -> MachineState:
    """Execute the instruction at ``state.pc`` and return the next state.

    The returned state is halted when the next program counter is outside
    the program. Stepping a state whose counter is already outside the
    program just marks it halted.
    """
    pc = state.pc
    if pc < 0 or pc >= len(program):
        return state.set_halted(True)

    ip = program.ip_register
    registers = state.registers
    if ip is not None:
        registers = registers[:ip] + (pc,) + registers[ip + 1:]

    instruction = program.instructions[pc]
    registers = apply_instruction(
        instruction.opcode, instruction.a, instruction.b, instruction.c, registers
    )

    next_pc = registers[ip] + 1 if ip is not None else pc + 1
    halted = next_pc < 0 or next_pc >= len(program)
    return MachineState(
        registers=registers,
        pc=next_pc,
        halted=halted,
        cycle_count=state.cycle_count + 1
    )


def execute(
    program: Program,
    registers: Sequence[int],
    ip_register: Optional[int] = None
) -> Tuple[int, ...]:
    """Run a program to completion and return the final register file.

    Args:
        program: Program to run
        registers: Initial register file (not modified)
        ip_register: Instruction pointer binding; defaults to the
            program's own ``#ip`` binding

    Returns:
        Final register file as a tuple

    Raises:
        IndexError: On an out-of-range register operand
        ValueError: If the ip binding is outside the register file, a
            register value is negative or the register file is empty
    """
    state = create_initial_state(registers, size=len(registers))
    if ip_register is not None:
        program = Program(instructions=program.instructions, ip_register=ip_register)
    check_ip_register(program, len(state.registers))

    if not program.instructions:
        return state.registers
    while not state.halted:
        state = step_state(program, state)
    return state.registers


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        cycle: Cycle number after this step (1-indexed)
        instruction: Instruction executed
        pre_state: Snapshot before execution
        post_state: Snapshot after execution
    """
    cycle: int
    instruction: Instruction
    pre_state: dict
    post_state: dict


class RegisterMachine:
    """Stateful wrapper around the pure step function.

    Holds a loaded program, the current state and (optionally) an
    execution trace. Tracing is off by default because brute-force
    callers run a very large number of steps.

    Attributes:
        program: Loaded program
        state: Current machine state
        trace: Execution trace entries (only when tracing)
        max_cycles: Optional cycle bound; None means unbounded
    """

    def __init__(
        self,
        size: int = DEFAULT_REGISTER_COUNT,
        max_cycles: Optional[int] = None,
        trace: bool = False
    ):
        self.size = size
        self.max_cycles = max_cycles
        self.tracing = trace
        self.program: Optional[Program] = None
        self.state: Optional[MachineState] = None
        self.trace: List[ExecutionTraceEntry] = []

    def load_program(self, source: str, registers: Optional[Sequence[int]] = None) -> None:
        """Load a named listing from source text.

        Raises:
            ProgramParseError: If the listing is malformed
            ValueError: If the ip binding is outside the register file
        """
        self.load_instructions(parse_program(source), registers=registers)

    def load_instructions(
        self,
        program: Program,
        ip_register: Optional[int] = None,
        registers: Optional[Sequence[int]] = None
    ) -> None:
        """Load an already decoded program.

        Args:
            program: Program to run
            ip_register: Override for the program's ip binding
            registers: Initial register values (zero-padded to ``size``)
        """
        if ip_register is not None:
            program = Program(instructions=program.instructions, ip_register=ip_register)
        self.program = program
        self.reset(registers)

    def reset(self, registers: Optional[Sequence[int]] = None) -> None:
        """Restart the loaded program from PC 0 with fresh registers."""
        if self.program is None:
            raise RuntimeError("No program loaded")
        state = create_initial_state(registers, self.size)
        check_ip_register(self.program, state.size)
        if not self.program.instructions:
            state = state.set_halted(True)
        self.state = state
        self.trace = []

    def step(self) -> MachineState:
        """Execute a single instruction.

        Returns:
            The new machine state

        Raises:
            RuntimeError: If no program loaded, machine halted, or the
                cycle bound is reached
            IndexError: On an out-of-range register operand
        """
        if self.program is None or self.state is None:
            raise RuntimeError("No program loaded")

        if self.state.halted:
            raise RuntimeError("Machine is halted")

        if self.max_cycles is not None and self.state.cycle_count >= self.max_cycles:
            raise RuntimeError(f"Max cycles ({self.max_cycles}) exceeded")

        pre_state = self.state
        self.state = step_state(self.program, pre_state)

        if self.tracing:
            self.trace.append(ExecutionTraceEntry(
                cycle=self.state.cycle_count,
                instruction=self.program.instructions[pre_state.pc],
                pre_state=pre_state.snapshot(),
                post_state=self.state.snapshot()
            ))

        return self.state

    def iter_states(self) -> Iterator[MachineState]:
        """Yield the state before every instruction until the machine halts.

        Callers that only care about part of a run (cycle detection,
        watching one instruction) can stop consuming whenever they like.
        """
        if self.state is None:
            raise RuntimeError("No program loaded")
        while not self.state.halted:
            yield self.state
            self.step()

    def run(self, max_cycles: Optional[int] = None) -> Tuple[int, ...]:
        """Run until the program counter leaves the program.

        Args:
            max_cycles: Override the instance cycle bound

        Returns:
            Final register file

        Raises:
            RuntimeError: If the cycle bound is exceeded
        """
        if self.state is None:
            raise RuntimeError("No program loaded")

        limit = max_cycles if max_cycles is not None else self.max_cycles

        while not self.state.halted:
            if limit is not None and self.state.cycle_count >= limit:
                raise RuntimeError(f"Max cycles ({limit}) exceeded")
            self.step()

        return self.state.registers

    def get_register(self, index: int) -> int:
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state.get_register(index)

    def dump_registers(self) -> List[int]:
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state.dump_registers()

    def get_pc(self) -> int:
        if self.state is None:
            raise RuntimeError("No program loaded")
        return self.state.pc

    def get_cycle_count(self) -> int:
        if self.state is None:
            return 0
        return self.state.cycle_count

    def is_halted(self) -> bool:
        if self.state is None:
            return True
        return self.state.halted

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("ELFCODE EXECUTION TRACE")
        print("=" * 70)

        for entry in self.trace:
            print(f"\n[Cycle {entry.cycle}] {entry.instruction}")

            pre_regs = entry.pre_state["registers"]
            post_regs = entry.post_state["registers"]
            changes = [
                f"x{i}: {before} → {after}"
                for i, (before, after) in enumerate(zip(pre_regs, post_regs))
                if before != after
            ]
            if changes:
                print(f"  Changes: {', '.join(changes)}")

            pre_pc = entry.pre_state["pc"]
            post_pc = entry.post_state["pc"]
            if post_pc != pre_pc + 1:
                print(f"  PC: {pre_pc} → {post_pc}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        if self.state:
            print(f"  Registers: {self.dump_registers()}")
            print(f"  PC: {self.get_pc()}")
            print(f"  Cycles: {self.get_cycle_count()}")
            print(f"  Halted: {self.is_halted()}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "registers": self.dump_registers() if self.state else [],
            "pc": self.get_pc() if self.state else 0,
            "ip_register": self.program.ip_register if self.program else None,
            "trace_length": len(self.trace),
        }
