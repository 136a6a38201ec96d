"""ElfCode Command Line Interface.

Usage:
    elfcode run data/input.txt
    elfcode run data/input.txt --registers 1 --trace
    elfcode disasm data/input.txt
    elfcode samples data/samples.txt
    elfcode watch data/input.txt --pc 28 --register 3
"""

import argparse
import sys
from itertools import islice
from pathlib import Path
from typing import List, Optional, Sequence

from .cpu import RegisterMachine
from .decode import ProgramParseError, parse_program, parse_samples, resolve_calls
from .disassemble import disassemble
from .inference import count_ambiguous, deduce_opcode_numbers, format_mapping
from .search import divisor_sum_shortcut, first_repeat, watch_register
from .state import DEFAULT_REGISTER_COUNT, SAMPLE_REGISTER_COUNT


def parse_registers(text: str) -> List[int]:
    """Parse ``1,0,0`` into a register list (argparse type)."""
    try:
        values = [int(v) for v in text.replace(" ", "").split(",") if v]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid register list: {text}")
    if any(v < 0 for v in values):
        raise argparse.ArgumentTypeError(f"Register values must be non-negative: {text}")
    return values


def read_source(args: argparse.Namespace) -> str:
    """Return listing text from ``--inline`` or the program path."""
    if getattr(args, "inline", None):
        return args.inline.replace(";", "\n")
    path = Path(args.program)
    if not path.exists():
        raise FileNotFoundError(f"Program file not found: {args.program}")
    return path.read_text()


def cmd_run(args: argparse.Namespace) -> int:
    machine = RegisterMachine(size=args.size, max_cycles=args.max_cycles, trace=args.trace)
    machine.load_program(read_source(args), registers=args.registers)

    if not args.quiet:
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    machine.run()

    if args.trace:
        machine.print_trace()
    elif not args.quiet:
        summary = machine.get_summary()
        print(f"Cycles: {summary['cycles']}")
        print(f"IP register: {summary['ip_register']}")
        print(f"Registers: {summary['registers']}")
    print(f"register 0 : {machine.get_register(0)}")
    return 0


def cmd_disasm(args: argparse.Namespace) -> int:
    program = parse_program(read_source(args))
    for line in disassemble(program):
        print(line)
    return 0


def cmd_samples(args: argparse.Namespace) -> int:
    samples, calls = parse_samples(read_source(args))
    print(f"number of >={args.threshold} tests : {count_ambiguous(samples, args.threshold)}")

    mapping = deduce_opcode_numbers(samples)
    for line in format_mapping(mapping):
        print(line)

    if calls:
        size = len(samples[0].before) if samples else SAMPLE_REGISTER_COUNT
        machine = RegisterMachine(size=size, max_cycles=args.max_cycles)
        machine.load_instructions(resolve_calls(calls, mapping))
        machine.run()
        print(f"register 0 : {machine.get_register(0)}")
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    program = parse_program(read_source(args))
    values = watch_register(
        program, args.pc, args.register, registers=args.registers, size=args.size,
        max_cycles=args.max_cycles
    )
    if args.limit is not None:
        values = islice(values, args.limit)
    first, last = first_repeat(values)
    if first is None:
        print(f"instruction {args.pc} never executed")
        return 1
    print(f"first value : {first}")
    if last is None:
        print("no repeat observed")
    else:
        print(f"last value before repeat : {last}")
    return 0


def cmd_divisors(args: argparse.Namespace) -> int:
    program = parse_program(read_source(args))
    total = divisor_sum_shortcut(
        program, loop_pc=args.loop_pc, registers=args.registers, size=args.size,
        max_cycles=args.max_cycles
    )
    print(f"register 0 : {total}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elfcode",
        description="ElfCode register machine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a listing with all registers zeroed
    elfcode run data/input.txt

    # Start with register 0 = 1 and print every step
    elfcode run data/input.txt --registers 1 --trace

    # Run inline instructions
    elfcode run --inline "seti 5 0 1; addr 0 1 2; addi 2 3 2" --size 4
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_source(sub: argparse.ArgumentParser, inline: bool = True) -> None:
        sub.add_argument("program", nargs="?", help="Path to listing file")
        if inline:
            sub.add_argument(
                "--inline", "-i",
                type=str,
                help="Inline listing (separate instructions with ;)"
            )

    def add_machine(sub: argparse.ArgumentParser, cycles: Optional[int] = None) -> None:
        sub.add_argument(
            "--registers", "-r",
            type=parse_registers,
            default=None,
            help="Initial registers, comma separated (zero-padded)"
        )
        sub.add_argument(
            "--size", "-s",
            type=int,
            default=DEFAULT_REGISTER_COUNT,
            help=f"Register file width. Default: {DEFAULT_REGISTER_COUNT}"
        )
        sub.add_argument(
            "--max-cycles",
            type=int,
            default=cycles,
            help="Maximum execution cycles (unbounded if omitted)"
        )

    run = subparsers.add_parser("run", help="Run a listing to completion")
    add_source(run)
    add_machine(run)
    run.add_argument("--trace", "-t", action="store_true", help="Print full execution trace")
    run.add_argument("--quiet", "-q", action="store_true", help="Only print register 0")
    run.set_defaults(func=cmd_run)

    disasm = subparsers.add_parser("disasm", help="Print pseudo-assembly")
    add_source(disasm)
    disasm.set_defaults(func=cmd_disasm)

    samples = subparsers.add_parser("samples", help="Infer opcode numbers from samples")
    add_source(samples, inline=False)
    samples.add_argument("--threshold", type=int, default=3, help="Ambiguity threshold. Default: 3")
    samples.add_argument("--max-cycles", type=int, default=None, help="Maximum execution cycles")
    samples.set_defaults(func=cmd_samples)

    watch = subparsers.add_parser("watch", help="Watch a register at one instruction until it repeats")
    add_source(watch, inline=False)
    add_machine(watch)
    watch.add_argument("--pc", type=int, required=True, help="Instruction to watch")
    watch.add_argument("--register", type=int, required=True, help="Register to read")
    watch.add_argument("--limit", type=int, default=None, help="Stop after this many observations")
    watch.set_defaults(func=cmd_watch)

    divisors = subparsers.add_parser("divisors", help="Sum of divisors of the target the setup code computes")
    add_source(divisors, inline=False)
    add_machine(divisors, cycles=10_000_000)
    divisors.add_argument("--loop-pc", type=int, default=1, help="Instruction the setup jumps back to. Default: 1")
    divisors.set_defaults(func=cmd_divisors)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.program and not getattr(args, "inline", None):
        parser.error("A program path is required" + (" (or --inline)" if hasattr(args, "inline") else ""))

    try:
        return args.func(args)
    except FileNotFoundError as e:
        print(f"Error: {e}")
    except ProgramParseError as e:
        print(f"Parse error: {e}")
    except (RuntimeError, IndexError, ValueError) as e:
        print(f"Execution error: {e}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
