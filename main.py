import argparse
import logging
import sys
from typing import Dict, List, Optional

from hrmvm.compiler import UndefinedLabel, compile_source
from hrmvm.levels import LEVELS, get_level, parse_value
from hrmvm.machine import Machine, StepLimitExceeded, Tile
from hrmvm.parser import MNEMONICS, ParseError
from hrmvm import report


DEFAULT_MAX_STEPS = 100000


def _tiles(tokens: Optional[List[str]]) -> List[Tile]:
    out: List[Tile] = []
    for tok in tokens or []:
        out.extend(parse_value(tok))
    return out


def _registers(pairs: Optional[List[str]]) -> Dict[int, Tile]:
    # format: IDX=VALUE, VALUE being a number or a single letter
    regs: Dict[int, Tile] = {}
    for pair in pairs or []:
        idx, sep, raw = pair.partition("=")
        if not sep:
            raise ValueError(f"Register must be given as IDX=VALUE, got {pair!r}")
        values = parse_value(raw)
        if len(values) != 1:
            raise ValueError(f"Register value must be a number or one letter, got {raw!r}")
        regs[int(idx)] = values[0]
    return regs


def _load(path: str):
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()
    try:
        return compile_source(source)
    except ParseError as e:
        print(report.format_parse_error(source, e.offset, e.errors))
    except UndefinedLabel as e:
        print(f"Error occurred while compiling: undefined label '{e.label}'")
    return None


def _run(args) -> int:
    program = _load(args.program)
    if program is None:
        return 1

    if args.level is not None:
        try:
            level = get_level(args.level)
        except KeyError:
            print(f"Unknown level {args.level}")
            return 2
        inbox = list(level.inbox)
        registers = dict(level.registers)
        expected: Optional[List[Tile]] = list(level.outbox)
    else:
        inbox = _tiles(args.inbox)
        registers = {}
        expected = _tiles(args.expect) if args.expect else None
    # explicit registers override the level's
    registers.update(_registers(args.register))

    m = Machine(program, inbox, registers)
    try:
        result = m.run(max_steps=args.max_steps or None)
    except StepLimitExceeded as e:
        print(str(e))
        print(report.format_state(m))
        return 1

    if not result.succeeded:
        print("Program failed")
        print(result.fault)
        print(report.format_state(m))
        return 1

    print("Program completed")
    print(f"Size: {program.size}  Steps: {result.steps}")
    print("Outbox:", report.format_tiles(result.output))
    if expected is None:
        return 0
    diff = report.compare_output(expected, result.output)
    if diff is None:
        print("Output matched!")
        return 0
    print("Output did not match")
    for line in diff:
        print(line)
    return 1


def _check(args) -> int:
    program = _load(args.program)
    if program is None:
        return 1
    print(f"Program OK: {program.size} instructions")
    if args.listing:
        for line in program.listing():
            print(line)
    return 0


def cli(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Human Resource Machine - lex, compile and run HRM programs")
    p.add_argument("--verbose", "-v", action="store_true", help="Log run summaries")
    p.add_argument("--trace", action="store_true", help="Log every executed instruction")
    sub = p.add_subparsers(dest="cmd")

    c_run = sub.add_parser("run", help="Run an HRM program against a level or a given inbox")
    c_run.add_argument("program", help="HRM program file")
    source = c_run.add_mutually_exclusive_group(required=True)
    source.add_argument("--level", "-l", type=int, help="Use the inbox, registers and expected outbox of a level")
    source.add_argument("--inbox", "-i", nargs="+", help="Provide inbox values (eg. --inbox 1 2 A B)")
    c_run.add_argument("--register", "-r", action="append", help="Preset a register (eg. --register 14=0)")
    c_run.add_argument("--expect", "-e", nargs="+", help="Expected outbox values to compare against")
    c_run.add_argument("--max-steps", type=int, default=DEFAULT_MAX_STEPS,
                       help=f"Stop after this many steps; 0 for no limit (default {DEFAULT_MAX_STEPS})")

    c_check = sub.add_parser("check", help="Lex and compile an HRM program without running it")
    c_check.add_argument("program", help="HRM program file")
    c_check.add_argument("--listing", action="store_true", help="Print the compiled instructions")

    sub.add_parser("levels", help="List the known levels")
    sub.add_parser("available", help="Show the HRM instructions the lexer accepts")

    args = p.parse_args(argv)

    if args.trace:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        if args.cmd == "run":
            return _run(args)
        if args.cmd == "check":
            return _check(args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 2

    if args.cmd == "levels":
        for number, level_def in sorted(LEVELS.items()):
            print(f"{number:3d}  {level_def.title}")
        return 0
    if args.cmd == "available":
        print("Supported HRM instructions:")
        for op in sorted(MNEMONICS):
            print("-", op)
        return 0

    p.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(cli())
