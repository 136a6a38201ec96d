"""Opcode inference from before/after samples.

A sample listing gives observations of numbered opcodes without saying
which opcode each number is. An opcode is a candidate for a sample when
applying it to the sample's ``before`` registers yields ``after``.
Intersecting candidates per number and then eliminating fixed numbers
recovers the whole numbering.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set

from .decode import Sample
from .registry import Opcode, apply_instruction, get_registry


def matches(sample: Sample, opcode: Opcode) -> bool:
    """True if ``opcode`` explains the sample.

    Out-of-range register operands make the opcode a non-match rather
    than an error, since the samples exercise every operand pattern.
    """
    call = sample.call
    try:
        result = apply_instruction(opcode, call.a, call.b, call.c, sample.before)
    except IndexError:
        return False
    return result == sample.after


def matching_opcodes(sample: Sample, opcodes: Optional[Iterable[Opcode]] = None) -> Set[Opcode]:
    """Return every opcode consistent with the sample."""
    if opcodes is None:
        opcodes = get_registry().opcodes()
    return {opcode for opcode in opcodes if matches(sample, opcode)}


def count_ambiguous(samples: Sequence[Sample], threshold: int = 3) -> int:
    """Count samples that behave like ``threshold`` or more opcodes."""
    return sum(1 for sample in samples if len(matching_opcodes(sample)) >= threshold)


def candidate_table(samples: Sequence[Sample]) -> Dict[int, Set[Opcode]]:
    """Intersect the candidates of every sample sharing an opcode number."""
    table: Dict[int, Set[Opcode]] = {}
    for sample in samples:
        number = sample.call.opcode_number
        candidates = matching_opcodes(sample)
        if number in table:
            table[number] &= candidates
        else:
            table[number] = candidates
    return table


def deduce_opcode_numbers(samples: Sequence[Sample]) -> Dict[int, Opcode]:
    """Work out which opcode each number stands for.

    Repeatedly takes numbers with a single candidate and removes that
    opcode from every other number until all are fixed.

    Raises:
        ValueError: If a number has no candidate or elimination stalls
    """
    table = candidate_table(samples)
    mapping: Dict[int, Opcode] = {}

    while table:
        solved = [number for number, candidates in table.items() if len(candidates) == 1]
        if not solved:
            empty = sorted(n for n, c in table.items() if not c)
            if empty:
                raise ValueError(f"No opcode fits number(s) {empty}")
            raise ValueError(f"Cannot disambiguate opcode numbers {sorted(table)}")

        for number in solved:
            candidates = table.pop(number)
            if not candidates:
                raise ValueError(f"No opcode fits number(s) [{number}]")
            opcode = next(iter(candidates))
            mapping[number] = opcode
            for candidates in table.values():
                candidates.discard(opcode)

    return dict(sorted(mapping.items()))


def format_mapping(mapping: Dict[int, Opcode]) -> List[str]:
    """Render the deduced table as ``name: NN`` lines."""
    return [f"{opcode.name}: {number:02}" for number, opcode in sorted(mapping.items())]
