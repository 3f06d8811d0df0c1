"""Token stream -> Program.

Header, comments and whitespace are dropped. Every label definition is
kept as a NOOP so that its index in the filtered stream is a valid jump
target; jumps are then rewritten to those absolute indices. When a label is
defined more than once the last definition wins.
"""
import logging
from typing import Dict, Iterable, Iterator, List, Sequence

from . import machine
from . import parser
from .parser import Lexer


log = logging.getLogger(__name__)

JUNK = (parser.Header, parser.Comment, parser.CommentDefinition, parser.Whitespace)


class UndefinedLabel(RuntimeError):
    def __init__(self, label: str) -> None:
        super().__init__(f"Undefined label: {label}")
        self.label = label


class Program:
    """An immutable sequence of instructions with resolved jump targets."""

    def __init__(self, instructions: Iterable[machine.Instruction]) -> None:
        self._instructions = tuple(instructions)

    def __len__(self) -> int:
        return len(self._instructions)

    def __iter__(self) -> Iterator[machine.Instruction]:
        return iter(self._instructions)

    def __getitem__(self, index: int) -> machine.Instruction:
        return self._instructions[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Program):
            return NotImplemented
        return self._instructions == other._instructions

    def __hash__(self) -> int:
        return hash(self._instructions)

    def __repr__(self) -> str:
        return f"Program({list(self._instructions)!r})"

    @property
    def size(self) -> int:
        """Instruction count as the game scores it (label NOOPs excluded)."""
        return sum(1 for i in self._instructions if not isinstance(i, machine.NoOp))

    def listing(self) -> List[str]:
        return [f"{i:3d}: {instr}" for i, instr in enumerate(self._instructions)]


def _label_table(tokens: Sequence[parser.Token]) -> Dict[str, int]:
    labels: Dict[str, int] = {}
    for i, tok in enumerate(tokens):
        if isinstance(tok, parser.LabelDefinition):
            labels[tok.name] = i
    return labels


def _lower(tok: parser.Token, labels: Dict[str, int]) -> machine.Instruction:
    if isinstance(tok, parser.Inbox):
        return machine.Inbox()
    if isinstance(tok, parser.Outbox):
        return machine.Outbox()
    if isinstance(tok, parser.CopyFrom):
        return machine.CopyFrom(tok.register)
    if isinstance(tok, parser.CopyTo):
        return machine.CopyTo(tok.register)
    if isinstance(tok, parser.BumpUp):
        return machine.BumpUp(tok.register)
    if isinstance(tok, parser.BumpDown):
        return machine.BumpDown(tok.register)
    if isinstance(tok, parser.Add):
        return machine.Add(tok.register)
    if isinstance(tok, parser.Sub):
        return machine.Sub(tok.register)
    if isinstance(tok, parser.LabelDefinition):
        return machine.NoOp()
    if isinstance(tok, (parser.Jump, parser.JumpIfZero, parser.JumpIfNegative)):
        if tok.label not in labels:
            raise UndefinedLabel(tok.label)
        target = labels[tok.label]
        if isinstance(tok, parser.Jump):
            return machine.Jump(target)
        if isinstance(tok, parser.JumpIfZero):
            return machine.JumpIfZero(target)
        return machine.JumpIfNegative(target)
    raise TypeError(f"Token has no instruction form: {tok!r}")


def compile_program(tokens: Iterable[parser.Token]) -> Program:
    """Compile a token stream.

    A ParseError raised while pulling tokens from a lazy Lexer propagates
    unchanged. Raises UndefinedLabel for a jump to a label never defined.
    """
    filtered = [t for t in tokens if not isinstance(t, JUNK)]
    labels = _label_table(filtered)
    log.debug("label table: %s", labels)
    return Program(_lower(t, labels) for t in filtered)


def compile_source(text: str) -> Program:
    return compile_program(Lexer(text))
