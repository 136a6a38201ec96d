"""Caller-side search policies built on the interpreter.

The interpreter itself only knows how to run until the program counter
leaves the program. Anything that stops earlier (cycle detection,
breaking at an instruction, replacing a slow loop by a closed form) is
decided here by consuming the machine's states.
"""

from itertools import islice
from typing import Hashable, Iterable, Iterator, Optional, Sequence, Tuple, TypeVar

from .cpu import RegisterMachine
from .decode import Program
from .state import DEFAULT_REGISTER_COUNT


T = TypeVar("T", bound=Hashable)


def _machine(
    program: Program,
    registers: Optional[Sequence[int]],
    size: int,
    max_cycles: Optional[int] = None
) -> RegisterMachine:
    machine = RegisterMachine(size=size, max_cycles=max_cycles)
    machine.load_instructions(program, registers=registers)
    return machine


def watch_register(
    program: Program,
    pc: int,
    register: int,
    registers: Optional[Sequence[int]] = None,
    size: int = DEFAULT_REGISTER_COUNT,
    max_cycles: Optional[int] = None
) -> Iterator[int]:
    """Yield ``register`` every time the instruction at ``pc`` is about to run.

    The value is read after the ip register has been synchronised, so
    watching the ip register itself yields ``pc``. The generator ends when
    the program halts; for programs that loop forever the caller decides
    when to stop, or passes ``max_cycles`` to have the machine raise
    RuntimeError once that many instructions have run.
    """
    if not 0 <= pc < len(program):
        raise ValueError(f"pc {pc} outside program of length {len(program)}")

    machine = _machine(program, registers, size, max_cycles)
    ip = program.ip_register
    for state in machine.iter_states():
        if state.pc == pc:
            if ip is not None and register == ip:
                yield pc
            else:
                yield state.get_register(register)


def first_repeat(values: Iterable[T]) -> Tuple[Optional[T], Optional[T]]:
    """Scan values until one repeats.

    Returns:
        Tuple of (first value, last new value before the first repeat).
        The second item is None if the values run out without repeating;
        both are None for an empty iterable.
    """
    seen = set()
    first: Optional[T] = None
    last: Optional[T] = None
    for value in values:
        if value in seen:
            return first, last
        if not seen:
            first = value
        seen.add(value)
        last = value
    return first, None


def run_until(
    program: Program,
    pc: int,
    registers: Optional[Sequence[int]] = None,
    size: int = DEFAULT_REGISTER_COUNT,
    max_cycles: Optional[int] = None
) -> Optional[Tuple[int, ...]]:
    """Run until the instruction at ``pc`` is about to execute.

    The starting state never counts, so ``pc=0`` means "the first time
    control comes back to instruction 0".

    Returns:
        The register file at that point (ip register not yet synchronised),
        or None if the program halts first

    Raises:
        RuntimeError: If ``max_cycles`` steps pass without reaching ``pc``
    """
    machine = _machine(program, registers, size)
    states = machine.iter_states()
    if max_cycles is not None:
        states = islice(states, max_cycles + 1)

    for state in states:
        if state.pc == pc and state.cycle_count > 0:
            return state.registers
    if max_cycles is not None and not machine.is_halted():
        raise RuntimeError(f"Max cycles ({max_cycles}) exceeded")
    return None


def sum_of_divisors(n: int) -> int:
    """Sum of all positive divisors of ``n``."""
    if n <= 0:
        raise ValueError(f"n must be positive: {n}")
    total = 0
    divisor = 1
    while divisor * divisor <= n:
        if n % divisor == 0:
            total += divisor
            other = n // divisor
            if other != divisor:
                total += other
        divisor += 1
    return total


def divisor_sum_shortcut(
    program: Program,
    loop_pc: int = 1,
    registers: Optional[Sequence[int]] = None,
    size: int = DEFAULT_REGISTER_COUNT,
    max_cycles: Optional[int] = 10_000_000
) -> int:
    """Answer a divisor-sum program without running its slow loop.

    The program's setup code computes a target number and then jumps back
    to ``loop_pc``, where a doubly nested loop sums the divisors of that
    target into register 0. Run the setup, take the largest register as
    the target and compute the sum directly.

    Raises:
        RuntimeError: If the setup never reaches ``loop_pc``
    """
    snapshot = run_until(program, loop_pc, registers=registers, size=size, max_cycles=max_cycles)
    if snapshot is None:
        raise RuntimeError(f"Program halted before reaching pc {loop_pc}")
    return sum_of_divisors(max(snapshot))
