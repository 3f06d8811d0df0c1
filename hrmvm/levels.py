"""Level catalogue: inbox contents, starting registers and expected outbox."""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .machine import Letter, Number, Registers, Tile


@dataclass
class Level:
    number: int
    title: str
    inbox: List[Tile]
    registers: Registers = field(default_factory=dict)
    outbox: List[Tile] = field(default_factory=list)


def from_numbers(values: Iterable[int]) -> List[Tile]:
    return [Number(v) for v in values]


def from_string(s: str) -> List[Tile]:
    return [Letter(c) for c in s]


def zero_terminated(*words: str) -> List[Tile]:
    tiles: List[Tile] = []
    for w in words:
        tiles.extend(from_string(w))
        tiles.append(Number(0))
    return tiles


def parse_value(tok: str) -> List[Tile]:
    """An integer token is one Number; anything else is one Letter per char."""
    try:
        value = int(tok)
    except ValueError:
        return from_string(tok)
    return [Number(value)]


def parse_mixed(s: str) -> List[Tile]:
    """Parse a comma separated list such as "6,4,-1,7,ih"."""
    tiles: List[Tile] = []
    for part in s.split(","):
        tiles.extend(parse_value(part))
    return tiles


def _level_37_registers() -> Registers:
    regs: Registers = {}
    chain = [
        (0, "e", 13),
        (3, "c", 23),
        (10, "p", 20),
        (13, "s", 3),
        (20, "e", -1),
        (23, "a", 10),
    ]
    for idx, c, nxt in chain:
        regs[idx] = Letter(c)
        regs[idx + 1] = Number(nxt)
    return regs


LEVELS: Dict[int, Level] = {
    1: Level(
        1,
        "Mail Room: copy the inbox to the outbox",
        from_numbers([1, 2, 3]),
        {},
        from_numbers([1, 2, 3]),
    ),
    2: Level(
        2,
        "Busy Mail Room: copy a long inbox to the outbox",
        from_string("initialize"),
        {},
        from_string("initialize"),
    ),
    3: Level(
        3,
        "Copy Floor: spell a word from the floor tiles",
        from_numbers([-99, -99, -99, -99]),
        {i: Letter(c) for i, c in enumerate("ujxgbe")},
        from_string("bug"),
    ),
    4: Level(
        4,
        "Scrambler Handler: swap each pair from the inbox",
        parse_mixed("6,4,-1,7,ih"),
        {},
        parse_mixed("4,6,7,-1,hi"),
    ),
    35: Level(
        35,
        "Duplicate Removal: copy the inbox, dropping letters already seen",
        from_string("eabedebaeb"),
        {14: Number(0)},
        from_string("eabd"),
    ),
    36: Level(
        36,
        "Alphabetizer: output the zero-terminated word that sorts first",
        zero_terminated("aab", "aaa"),
        {23: Number(0), 24: Number(10)},
        from_string("aaa"),
    ),
    37: Level(
        37,
        "Scavenger Chain: follow letter/next-pointer pairs until -1",
        from_numbers([0, 23]),
        _level_37_registers(),
        from_string("escapeape"),
    ),
    38: Level(
        38,
        "Digit Exploder: output the digits of each number",
        from_numbers([33, 505, 7, 979]),
        {9: Number(0), 10: Number(10), 11: Number(100)},
        from_numbers([3, 3, 5, 0, 5, 7, 9, 7, 9]),
    ),
}


def get_level(number: int) -> Level:
    if number not in LEVELS:
        raise KeyError(f"Unknown level {number}")
    return LEVELS[number]
