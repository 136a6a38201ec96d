"""ElfCode: a small register-machine interpreter.

The machine has a fixed-size file of unsigned registers and sixteen
three-operand opcodes (add, multiply, bitwise and/or, set, greater-than,
equal-to, each with register or immediate operands). Control flow only
happens through an optional instruction pointer binding: one register
mirrors the program counter, and writing to it is a jump.

Architecture:
    TEXT -> DECODE -> PROGRAM -> STEP (ip sync + APPLY) -> STATE

Modules:
    state: MachineState dataclass for immutable state
    registry: The sixteen opcodes and the pure apply function
    decode: Listing parsers (named programs, before/after samples)
    cpu: execute() and the RegisterMachine wrapper
    inference: Opcode numbering from samples
    disassemble: Pseudo-assembly for reverse engineering
    search: Caller-side policies (watch, cycle detection, shortcuts)
"""

__version__ = "0.1.0"

from .state import MachineState
from .registry import Opcode, OpcodeRegistry, Operation
from .decode import Instruction, Program, ProgramParseError, parse_program
from .cpu import RegisterMachine, execute

__all__ = [
    "MachineState",
    "Opcode",
    "OpcodeRegistry",
    "Operation",
    "Instruction",
    "Program",
    "ProgramParseError",
    "parse_program",
    "RegisterMachine",
    "execute",
]
