"""Pseudo-assembly rendering for manual reverse engineering.

Each instruction becomes a readable statement over registers ``x0..xN``.
Writes into the instruction pointer register are jumps; the common
shapes are folded into ``goto`` targets using the fact that the machine
continues at ``ip + 1``:

    seti 7 0 IP        ->  goto 8
    addi IP 3 IP       ->  goto L+4            (L = line of the instruction)
    addr IP x2 IP      ->  goto (L+1 + x2)
    addi x1 2 IP       ->  goto (x1 + 3)
"""

from typing import List, Optional

from .decode import Instruction, Program
from .registry import Operation


_SYMBOLS = {
    Operation.ADD: "+",
    Operation.MUL: "*",
    Operation.BAN: "&",
    Operation.BOR: "|",
    Operation.GT: ">",
    Operation.EQ: "==",
}


def _operand(value: int, is_register: bool) -> str:
    return f"x{value}" if is_register else str(value)


def expression(instruction: Instruction) -> str:
    """Right-hand side of the statement, ignoring any jump folding."""
    opcode = instruction.opcode
    a = _operand(instruction.a, opcode.a_is_register)
    if opcode.operation is Operation.SET:
        return a
    b = _operand(instruction.b, opcode.b_is_register)
    symbol = _SYMBOLS[opcode.operation]
    if opcode.operation in (Operation.GT, Operation.EQ):
        return f"if {a} {symbol} {b} then 1 else 0"
    return f"{a} {symbol} {b}"


def _jump(instruction: Instruction, line: int, ip: int) -> str:
    opcode = instruction.opcode
    a, b = instruction.a, instruction.b

    if opcode.name == "seti":
        return f"goto {a + 1}"

    if opcode.name == "addi":
        if a == ip:
            return f"goto {line + 1 + b}"
        return f"goto (x{a} + {b + 1})"

    if opcode.name == "addr":
        if a == ip:
            return f"goto ({line + 1} + x{b})"
        if b == ip:
            return f"goto ({line + 1} + x{a})"
        return f"goto (x{a} + x{b})"

    return f"goto ({expression(instruction)}) + 1"


def render(instruction: Instruction, line: int, ip_register: Optional[int] = None) -> str:
    """Render one instruction located at ``line``."""
    if ip_register is not None and instruction.c == ip_register:
        return _jump(instruction, line, ip_register)
    return f"x{instruction.c} = {expression(instruction)}"


def disassemble(program: Program) -> List[str]:
    """Render a whole program, one ``L: statement`` string per instruction."""
    return [
        f"{line}: {render(instruction, line, program.ip_register)}"
        for line, instruction in enumerate(program.instructions)
    ]
