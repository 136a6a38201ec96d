"""Program loader for ElfCode listings.

Two listing formats are understood:

    Named listing (run with an instruction pointer binding):
        #ip 0
        seti 5 0 1
        addi 0 1 0

    Sample listing (opcode numbers unknown, learned from samples):
        Before: [3, 2, 1, 1]
        9 2 1 2
        After:  [3, 2, 2, 1]

        <more samples>


        7 3 2 0
        ...

Malformed text is fatal: every loader raises ProgramParseError, which
carries the 1-based line number of the offending line.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .registry import Opcode, get_registry


IP_DIRECTIVE = re.compile(r'^#ip\s+(\d+)$', re.IGNORECASE)
NAMED_CALL = re.compile(r'^([a-z]{4})\s+(\d+)\s+(\d+)\s+(\d+)$', re.IGNORECASE)
NUMERIC_CALL = re.compile(r'^(\d+)\s+(\d+)\s+(\d+)\s+(\d+)$')
REGISTER_LIST = re.compile(r'^(Before|After):\s*\[([\d,\s]*)\]$')


class ProgramParseError(ValueError):
    """Raised when a listing cannot be parsed.

    Attributes:
        line_number: 1-based line number, or None when not tied to a line
        line: Offending line text
    """

    def __init__(self, message: str, line_number: Optional[int] = None, line: str = ""):
        self.line_number = line_number
        self.line = line
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


@dataclass(frozen=True)
class Instruction:
    """A decoded instruction: opcode plus operands a, b and destination c."""
    opcode: Opcode
    a: int
    b: int
    c: int

    @property
    def name(self) -> str:
        return self.opcode.name

    def __str__(self) -> str:
        return f"{self.opcode.name} {self.a} {self.b} {self.c}"


@dataclass(frozen=True)
class Program:
    """An immutable instruction sequence and its optional ip binding.

    Attributes:
        instructions: Instructions in execution order
        ip_register: Register index mirroring the program counter, or None
    """
    instructions: Tuple[Instruction, ...] = field(default_factory=tuple)
    ip_register: Optional[int] = None

    def __len__(self) -> int:
        return len(self.instructions)

    def __getitem__(self, index: int) -> Instruction:
        return self.instructions[index]

    def __iter__(self):
        return iter(self.instructions)


@dataclass(frozen=True)
class NumericCall:
    """An instruction whose opcode is only known by number."""
    opcode_number: int
    a: int
    b: int
    c: int


@dataclass(frozen=True)
class Sample:
    """One before/after observation of a numeric call."""
    before: Tuple[int, ...]
    call: NumericCall
    after: Tuple[int, ...]


def _strip_comment(line: str) -> str:
    return re.sub(r';.*$', '', line).strip()


def parse_instruction(line: str, line_number: Optional[int] = None) -> Instruction:
    """Parse a single ``name a b c`` line.

    Raises:
        ProgramParseError: On unknown mnemonic or malformed operands
    """
    text = re.sub(r'\s+', ' ', _strip_comment(line))
    match = NAMED_CALL.match(text)
    if not match:
        raise ProgramParseError(f"Invalid instruction: {line.strip()!r}", line_number, line)

    registry = get_registry()
    name = match.group(1)
    if name not in registry:
        raise ProgramParseError(f"Unknown opcode: {name!r}", line_number, line)

    return Instruction(
        opcode=registry.get(name),
        a=int(match.group(2)),
        b=int(match.group(3)),
        c=int(match.group(4))
    )


def parse_program(source: str) -> Program:
    """Parse a named listing into a Program.

    Handles:
        - An optional ``#ip N`` directive before the first instruction
        - Trailing comments starting with ``;``
        - Blank lines

    Raises:
        ProgramParseError: On any malformed line or a misplaced directive
    """
    instructions: List[Instruction] = []
    ip_register: Optional[int] = None

    for line_number, raw in enumerate(source.split("\n"), start=1):
        line = _strip_comment(raw)
        if not line:
            continue

        directive = IP_DIRECTIVE.match(line)
        if directive:
            if instructions or ip_register is not None:
                raise ProgramParseError("#ip must precede all instructions", line_number, raw)
            ip_register = int(directive.group(1))
            continue

        instructions.append(parse_instruction(line, line_number))

    return Program(instructions=tuple(instructions), ip_register=ip_register)


def parse_register_list(line: str, label: str, line_number: Optional[int] = None) -> Tuple[int, ...]:
    """Parse ``Before: [a, b, c, d]`` / ``After: [...]``."""
    match = REGISTER_LIST.match(line.strip())
    if not match or match.group(1) != label:
        raise ProgramParseError(f"Expected {label}: [..], got {line.strip()!r}", line_number, line)
    values = [v.strip() for v in match.group(2).split(",") if v.strip()]
    if not values:
        raise ProgramParseError("Empty register list", line_number, line)
    return tuple(int(v) for v in values)


def parse_numeric_call(line: str, line_number: Optional[int] = None) -> NumericCall:
    """Parse an ``n a b c`` line."""
    match = NUMERIC_CALL.match(re.sub(r'\s+', ' ', line.strip()))
    if not match:
        raise ProgramParseError(f"Invalid numeric instruction: {line.strip()!r}", line_number, line)
    return NumericCall(*(int(g) for g in match.groups()))


def parse_samples(source: str) -> Tuple[List[Sample], List[NumericCall]]:
    """Parse a sample listing.

    Returns:
        Tuple of (samples, numeric program)

    Raises:
        ProgramParseError: On any malformed line
    """
    lines = source.split("\n")
    samples: List[Sample] = []
    calls: List[NumericCall] = []

    index = 0
    while index < len(lines):
        line = lines[index].strip()
        line_number = index + 1

        if not line:
            index += 1
            continue

        if line.startswith("Before"):
            if index + 2 >= len(lines):
                raise ProgramParseError("Truncated sample", line_number, lines[index])
            before = parse_register_list(lines[index], "Before", line_number)
            call = parse_numeric_call(lines[index + 1], line_number + 1)
            after = parse_register_list(lines[index + 2], "After", line_number + 2)
            if len(before) != len(after):
                raise ProgramParseError("Before/After register widths differ", line_number, lines[index])
            if calls:
                raise ProgramParseError("Sample after program start", line_number, lines[index])
            samples.append(Sample(before=before, call=call, after=after))
            index += 3
            continue

        calls.append(parse_numeric_call(lines[index], line_number))
        index += 1

    return samples, calls


def resolve_calls(
    calls: Sequence[NumericCall],
    mapping: Dict[int, Opcode],
    ip_register: Optional[int] = None
) -> Program:
    """Turn numeric calls into a Program once opcode numbers are known.

    Raises:
        ProgramParseError: If a call uses an opcode number with no mapping
    """
    instructions = []
    for position, call in enumerate(calls):
        if call.opcode_number not in mapping:
            raise ProgramParseError(
                f"No opcode known for number {call.opcode_number} (instruction {position})"
            )
        instructions.append(Instruction(mapping[call.opcode_number], call.a, call.b, call.c))
    return Program(instructions=tuple(instructions), ip_register=ip_register)
