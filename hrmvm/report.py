"""Human-readable diagnostics for parse failures, machine state and output checks."""
from typing import List, Optional, Sequence

from .machine import Machine, Tile, format_tile
from .parser import LexError


def format_parse_error(source: str, offset: int, errors: Sequence[LexError]) -> str:
    """Show the offending line with a caret under `offset`."""
    start = source.rfind("\n", 0, offset) + 1
    end = source.find("\n", offset)
    if end == -1:
        end = len(source)
    line = source[start:end]
    caret = " " * (offset - start) + "^"
    names = ", ".join(str(e) for e in errors)
    return "\n".join([
        "Error occurred while parsing:",
        line,
        caret,
        f"[{names}]",
    ])


def format_tiles(tiles: Sequence[Tile]) -> str:
    return "[" + ", ".join(format_tile(t) for t in tiles) + "]"


def format_state(m: Machine) -> str:
    if m.pc < len(m.program):
        instr = str(m.program[m.pc])
    else:
        instr = "<end>"
    regs = ", ".join(f"{k}: {format_tile(v)}" for k, v in sorted(m.registers.items()))
    return "\n".join([
        f"pc:        {m.pc} ({instr})",
        f"acc:       {format_tile(m.acc)}",
        f"registers: {{{regs}}}",
        f"inbox:     {format_tiles(m.inbox)}",
        f"outbox:    {format_tiles(m.outbox)}",
    ])


def compare_output(expected: Sequence[Tile], actual: Sequence[Tile]) -> Optional[List[str]]:
    """Return None on a match, otherwise the lines describing the mismatch."""
    if list(expected) == list(actual):
        return None
    lines = [
        f"Expected: {format_tiles(expected)}",
        f"Got:      {format_tiles(actual)}",
    ]
    for i, (want, got) in enumerate(zip(expected, actual)):
        if want != got:
            lines.append(f"First difference at position {i}: expected {format_tile(want)}, got {format_tile(got)}")
            break
    else:
        lines.append(f"Length differs: expected {len(expected)}, got {len(actual)}")
    return lines
