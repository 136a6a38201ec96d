"""OpcodeRegistry: the sixteen ElfCode opcodes.

Each opcode is a frozen record of an operation plus two operand-kind flags
(is ``a`` a register index or an immediate, same for ``b``). The names are
kept for lookup and display; execution only looks at the operation and the
flags.

Registry Keys:
    addr, addi: add
    mulr, muli: multiply
    banr, bani: bitwise and
    borr, bori: bitwise or
    setr, seti: set (copy ``a``, ignore ``b``)
    gtir, gtri, gtrr: greater-than, 1 or 0
    eqir, eqri, eqrr: equal-to, 1 or 0

Applying an instruction is a pure function:
    (registers, opcode, a, b, c) -> new registers
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple


class Operation(Enum):
    """Operation families shared by the opcode variants."""
    ADD = "add"
    MUL = "mul"
    BAN = "ban"
    BOR = "bor"
    SET = "set"
    GT = "gt"
    EQ = "eq"


@dataclass(frozen=True)
class Opcode:
    """One opcode variant.

    Attributes:
        name: Mnemonic (e.g. "addi"), used for display only
        operation: Operation family
        a_is_register: Operand ``a`` names a register (else immediate)
        b_is_register: Operand ``b`` names a register (else immediate)
    """
    name: str
    operation: Operation
    a_is_register: bool
    b_is_register: bool

    def __str__(self) -> str:
        return self.name


def apply_operation(operation: Operation, a: int, b: int) -> int:
    """Combine two resolved operands."""
    if operation is Operation.ADD:
        return a + b
    if operation is Operation.MUL:
        return a * b
    if operation is Operation.BAN:
        return a & b
    if operation is Operation.BOR:
        return a | b
    if operation is Operation.SET:
        return a
    if operation is Operation.GT:
        return 1 if a > b else 0
    if operation is Operation.EQ:
        return 1 if a == b else 0
    raise ValueError(f"Unknown operation: {operation}")


def _resolve(registers: Sequence[int], value: int, is_register: bool) -> int:
    if not is_register:
        return value
    if not 0 <= value < len(registers):
        raise IndexError(f"Invalid register: {value}")
    return registers[value]


def apply_instruction(
    opcode: Opcode,
    a: int,
    b: int,
    c: int,
    registers: Sequence[int]
) -> Tuple[int, ...]:
    """Apply one instruction to a register file.

    Args:
        opcode: Opcode to execute
        a: First operand (register index or immediate)
        b: Second operand (register index or immediate, unused by set)
        c: Destination register index
        registers: Current register file (not modified)

    Returns:
        New register file

    Raises:
        IndexError: If a register operand or the destination is out of range
    """
    value_a = _resolve(registers, a, opcode.a_is_register)
    # set never reads b, so an unused register index is not an error
    if opcode.operation is Operation.SET:
        value_b = 0
    else:
        value_b = _resolve(registers, b, opcode.b_is_register)

    if not 0 <= c < len(registers):
        raise IndexError(f"Invalid register: {c}")

    result = list(registers)
    result[c] = apply_operation(opcode.operation, value_a, value_b)
    return tuple(result)


class OpcodeRegistry:
    """Frozen registry of the sixteen opcodes, in challenge order.

    Attributes:
        _opcodes: Mapping from mnemonic to Opcode
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self):
        self._opcodes: Dict[str, Opcode] = {}
        self._frozen = False
        self._register_all_opcodes()
        self.freeze()

    def _register_all_opcodes(self) -> None:
        # Arithmetic
        self.register(Opcode("addr", Operation.ADD, True, True))
        self.register(Opcode("addi", Operation.ADD, True, False))
        self.register(Opcode("mulr", Operation.MUL, True, True))
        self.register(Opcode("muli", Operation.MUL, True, False))

        # Bitwise
        self.register(Opcode("banr", Operation.BAN, True, True))
        self.register(Opcode("bani", Operation.BAN, True, False))
        self.register(Opcode("borr", Operation.BOR, True, True))
        self.register(Opcode("bori", Operation.BOR, True, False))

        # Assignment
        self.register(Opcode("setr", Operation.SET, True, True))
        self.register(Opcode("seti", Operation.SET, False, False))

        # Comparison
        self.register(Opcode("gtir", Operation.GT, False, True))
        self.register(Opcode("gtri", Operation.GT, True, False))
        self.register(Opcode("gtrr", Operation.GT, True, True))
        self.register(Opcode("eqir", Operation.EQ, False, True))
        self.register(Opcode("eqri", Operation.EQ, True, False))
        self.register(Opcode("eqrr", Operation.EQ, True, True))

    def register(self, opcode: Opcode) -> None:
        """Register an opcode.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If the mnemonic is already registered
        """
        if self._frozen:
            raise RuntimeError("Cannot register opcodes: registry is frozen")
        if opcode.name in self._opcodes:
            raise ValueError(f"Opcode already registered: {opcode.name}")
        self._opcodes[opcode.name] = opcode

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Opcode:
        """Look up an opcode by mnemonic (case insensitive).

        Raises:
            KeyError: If the mnemonic is unknown
        """
        key = name.lower()
        if key not in self._opcodes:
            raise KeyError(f"Unknown opcode: {name}")
        return self._opcodes[key]

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._opcodes

    def __len__(self) -> int:
        return len(self._opcodes)

    def names(self) -> List[str]:
        return list(self._opcodes)

    def opcodes(self) -> List[Opcode]:
        return list(self._opcodes.values())


# Singleton registry instance
_registry: Optional[OpcodeRegistry] = None


def get_registry() -> OpcodeRegistry:
    """Get the singleton opcode registry instance."""
    global _registry
    if _registry is None:
        _registry = OpcodeRegistry()
    return _registry
