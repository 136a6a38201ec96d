"""MachineState: Immutable state representation for the ElfCode machine.

State Components:
    - Registers: fixed-size tuple of unsigned integers (4 or 6 wide)
    - PC: Program counter (index into the program)
    - Halted: Whether the program counter has left the program
    - Cycle count: Total executed instructions

All state mutations return new state objects, so a run can be traced
step by step and restarted from any snapshot.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple


# Register file widths used by the two machine variants
SAMPLE_REGISTER_COUNT = 4
DEFAULT_REGISTER_COUNT = 6


@dataclass(frozen=True)
class MachineState:
    """Immutable machine state.

    Attributes:
        registers: Register file, one non-negative integer per register
        pc: Program counter (index of the next instruction)
        halted: Whether the program counter has left the program
        cycle_count: Number of instructions executed so far
    """
    registers: Tuple[int, ...] = field(
        default_factory=lambda: (0,) * DEFAULT_REGISTER_COUNT
    )
    pc: int = 0
    halted: bool = False
    cycle_count: int = 0

    @property
    def size(self) -> int:
        """Number of registers in the register file."""
        return len(self.registers)

    def snapshot(self) -> dict:
        """Create a plain-data snapshot of the state for tracing.

        Returns:
            Dictionary with registers as a list plus pc, halted and cycle count
        """
        return {
            "registers": list(self.registers),
            "pc": self.pc,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
        }

    def validate(self) -> bool:
        """Validate state integrity.

        Checks:
            - Every register holds a non-negative int
            - Cycle count is non-negative

        Returns:
            True if state is valid, False otherwise
        """
        if not self.registers:
            return False

        for value in self.registers:
            if not isinstance(value, int) or isinstance(value, bool):
                return False
            if value < 0:
                return False

        if self.cycle_count < 0:
            return False

        return True

    def get_register(self, index: int) -> int:
        """Get value of a register.

        Raises:
            IndexError: If the register doesn't exist
        """
        if not 0 <= index < len(self.registers):
            raise IndexError(f"Invalid register: {index}")
        return self.registers[index]

    def set_register(self, index: int, value: int) -> "MachineState":
        """Create new state with updated register value.

        Raises:
            IndexError: If the register doesn't exist
        """
        if not 0 <= index < len(self.registers):
            raise IndexError(f"Invalid register: {index}")

        new_registers = list(self.registers)
        new_registers[index] = value
        return self.with_registers(new_registers)

    def with_registers(self, registers: Sequence[int]) -> "MachineState":
        """Create new state with the whole register file replaced."""
        return MachineState(
            registers=tuple(registers),
            pc=self.pc,
            halted=self.halted,
            cycle_count=self.cycle_count
        )

    def set_pc(self, new_pc: int) -> "MachineState":
        """Create new state with new PC value."""
        return MachineState(
            registers=self.registers,
            pc=new_pc,
            halted=self.halted,
            cycle_count=self.cycle_count
        )

    def set_halted(self, halted: bool = True) -> "MachineState":
        """Create new state with halted flag set."""
        return MachineState(
            registers=self.registers,
            pc=self.pc,
            halted=halted,
            cycle_count=self.cycle_count
        )

    def increment_cycle(self) -> "MachineState":
        """Create new state with cycle count incremented."""
        return MachineState(
            registers=self.registers,
            pc=self.pc,
            halted=self.halted,
            cycle_count=self.cycle_count + 1
        )

    def dump_registers(self) -> List[int]:
        """Get a copy of all register values."""
        return list(self.registers)

    def __str__(self) -> str:
        regs = " ".join(f"x{i}={v}" for i, v in enumerate(self.registers))
        return f"[Cycle {self.cycle_count}] PC={self.pc} {regs} {'HALTED' if self.halted else ''}".rstrip()


def create_initial_state(
    registers: Optional[Sequence[int]] = None,
    size: int = DEFAULT_REGISTER_COUNT
) -> MachineState:
    """Create initial machine state.

    Args:
        registers: Initial register values; shorter sequences are zero-padded
            up to ``size``, longer ones widen the register file
        size: Register file width when ``registers`` is shorter or omitted

    Returns:
        Fresh MachineState at PC 0

    Raises:
        ValueError: If a value is negative or the register file would be empty
    """
    values = list(registers) if registers is not None else []
    width = max(size, len(values))
    if width <= 0:
        raise ValueError("Register file must hold at least one register")
    for value in values:
        if value < 0:
            raise ValueError(f"Register values must be non-negative: {value}")
    values.extend([0] * (width - len(values)))

    return MachineState(registers=tuple(values), pc=0, halted=False, cycle_count=0)
