"""Lexer for Human Resource Machine program text.

Recognised forms (in the order they are attempted):
- -- HUMAN RESOURCE MACHINE PROGRAM --
- INBOX
- OUTBOX
- COPYFROM <r> / COPYTO <r> / BUMPUP <r> / BUMPDN <r> / ADD <r> / SUB <r>
  (BUMPDOWN is accepted as a spelling of BUMPDN)
- <label>:
- JUMP <label> / JUMPZ <label> / JUMPN <label>
- COMMENT <n>
- DEFINE COMMENT <n> <data>;
- DEFINE LABEL <n> <data>;
- whitespace

A register operand is either `N` or `[N]` (indirect) with N in 0..255.
Labels are runs of lowercase letters. Whitespace is never skipped: it is
returned as a token like everything else.

Every production either consumes a whole token or nothing at all, so the
alternation simply retries the next production from the same offset.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional, Tuple, Union


log = logging.getLogger(__name__)

HEADER = "-- HUMAN RESOURCE MACHINE PROGRAM --"
MAX_REGISTER = 255

MNEMONICS = (
    "INBOX",
    "OUTBOX",
    "COPYFROM",
    "COPYTO",
    "BUMPUP",
    "BUMPDN",
    "ADD",
    "SUB",
    "JUMP",
    "JUMPZ",
    "JUMPN",
)

DIGITS = "0123456789"


class LexError(Enum):
    EXPECTED_HEADER = "ExpectedHeader"
    EXPECTED_INBOX = "ExpectedInbox"
    EXPECTED_OUTBOX = "ExpectedOutbox"
    EXPECTED_COPY_FROM = "ExpectedCopyFrom"
    EXPECTED_COPY_TO = "ExpectedCopyTo"
    EXPECTED_BUMP_UP = "ExpectedBumpUp"
    EXPECTED_BUMP_DOWN = "ExpectedBumpDown"
    EXPECTED_ADD = "ExpectedAdd"
    EXPECTED_SUB = "ExpectedSub"
    EXPECTED_INDIRECT_REGISTER = "ExpectedIndirectRegister"
    EXPECTED_INDIRECT_REGISTER_END = "ExpectedIndirectRegisterEnd"
    EXPECTED_REGISTER_VALUE = "ExpectedRegisterValue"
    EXPECTED_LABEL_DEFINITION = "ExpectedLabelDefinition"
    EXPECTED_LABEL_VALUE = "ExpectedLabelValue"
    EXPECTED_JUMP = "ExpectedJump"
    EXPECTED_JUMP_IF_ZERO = "ExpectedJumpIfZero"
    EXPECTED_JUMP_IF_NEGATIVE = "ExpectedJumpIfNegative"
    EXPECTED_WHITESPACE = "ExpectedWhiteSpace"
    EXPECTED_COMMENT = "ExpectedComment"
    EXPECTED_COMMENT_ID = "ExpectedCommentId"
    EXPECTED_COMMENT_DEFINITION = "ExpectedCommentDefinition"
    EXPECTED_COMMENT_DEFINITION_DATA = "ExpectedCommentDefinitionData"
    EXPECTED_COMMENT_DEFINITION_END = "ExpectedCommentDefinitionEnd"
    EXPECTED_REGISTER_LABEL_DEFINITION = "ExpectedRegisterLabelDefinition"
    EXPECTED_REGISTER_LABEL_ID = "ExpectedRegisterLabelId"
    EXPECTED_REGISTER_LABEL_DEFINITION_DATA = "ExpectedRegisterLabelDefinitionData"
    EXPECTED_REGISTER_LABEL_DEFINITION_END = "ExpectedRegisterLabelDefinitionEnd"
    EXPECTED_COLON = "ExpectedColon"

    def __str__(self) -> str:
        return self.value


class ParseError(RuntimeError):
    """No production matched.

    `offset` is the furthest character index any production reached and
    `byte_offset` the same point counted in UTF-8 bytes of the source.
    `errors` lists the reasons recorded there.
    """

    def __init__(self, offset: int, errors: List[LexError], byte_offset: Optional[int] = None) -> None:
        self.offset = offset
        self.byte_offset = offset if byte_offset is None else byte_offset
        self.errors = errors
        names = ", ".join(str(e) for e in errors)
        super().__init__(f"Parse error at offset {offset}: {names}")


# ---------------------------------------------------------------------------
# Register operands


@dataclass(frozen=True)
class Direct:
    index: int

    def __str__(self) -> str:
        return str(self.index)


@dataclass(frozen=True)
class Indirect:
    index: int

    def __str__(self) -> str:
        return f"[{self.index}]"


Register = Union[Direct, Indirect]


# ---------------------------------------------------------------------------
# Tokens


@dataclass(frozen=True)
class Header:
    pass


@dataclass(frozen=True)
class Inbox:
    pass


@dataclass(frozen=True)
class Outbox:
    pass


@dataclass(frozen=True)
class CopyFrom:
    register: Register


@dataclass(frozen=True)
class CopyTo:
    register: Register


@dataclass(frozen=True)
class BumpUp:
    register: Register


@dataclass(frozen=True)
class BumpDown:
    register: Register


@dataclass(frozen=True)
class Add:
    register: Register


@dataclass(frozen=True)
class Sub:
    register: Register


@dataclass(frozen=True)
class LabelDefinition:
    name: str


@dataclass(frozen=True)
class Jump:
    label: str


@dataclass(frozen=True)
class JumpIfZero:
    label: str


@dataclass(frozen=True)
class JumpIfNegative:
    label: str


@dataclass(frozen=True)
class Comment:
    id: str


@dataclass(frozen=True)
class CommentDefinition:
    id: str
    data: str


@dataclass(frozen=True)
class Whitespace:
    text: str


Token = Union[
    Header, Inbox, Outbox,
    CopyFrom, CopyTo, BumpUp, BumpDown, Add, Sub,
    LabelDefinition, Jump, JumpIfZero, JumpIfNegative,
    Comment, CommentDefinition, Whitespace,
]


# ---------------------------------------------------------------------------
# Productions
#
# Each production takes (cursor, pos) and returns (value, new_pos). On
# failure it raises _Mismatch; the cursor keeps a note of every failure so
# that a fully failed lexing step can be reported.


class _Mismatch(Exception):
    def __init__(self, pos: int, error: LexError) -> None:
        super().__init__(error)
        self.pos = pos
        self.error = error


class _Cursor:
    def __init__(self, text: str) -> None:
        self.text = text
        self.failures: List[Tuple[int, LexError]] = []

    def fail(self, pos: int, error: LexError) -> "_Mismatch":
        self.failures.append((pos, error))
        return _Mismatch(pos, error)

    def literal(self, pos: int, lit: str, error: LexError) -> int:
        if not self.text.startswith(lit, pos):
            raise self.fail(pos, error)
        return pos + len(lit)

    def scan(self, pos: int, predicate: Callable[[str], bool]) -> int:
        end = pos
        size = len(self.text)
        while end < size and predicate(self.text[end]):
            end += 1
        return end

    def consume_while(self, pos: int, predicate: Callable[[str], bool], error: LexError) -> Tuple[str, int]:
        end = self.scan(pos, predicate)
        if end == pos:
            raise self.fail(pos, error)
        return self.text[pos:end], end

    def alternate(self, pos: int, productions):
        """Try each production from `pos`; the first success wins.

        The last production's mismatch propagates when none succeed.
        """
        *rest, final = productions
        for production in rest:
            try:
                return production(self, pos)
            except _Mismatch:
                continue
        return final(self, pos)


def _is_digit(c: str) -> bool:
    return c in DIGITS


def _is_label_char(c: str) -> bool:
    return "a" <= c <= "z"


# str.isspace also accepts the ASCII separators \x1c-\x1f, which are not
# Unicode White_Space.
SEPARATORS = "\x1c\x1d\x1e\x1f"


def _is_space(c: str) -> bool:
    return c.isspace() and c not in SEPARATORS


def _not_semicolon(c: str) -> bool:
    return c != ";"


def parse_whitespace(cur: _Cursor, pos: int) -> Tuple[Whitespace, int]:
    text, pos = cur.consume_while(pos, _is_space, LexError.EXPECTED_WHITESPACE)
    return Whitespace(text), pos


def parse_register_value(cur: _Cursor, pos: int) -> Tuple[int, int]:
    digits, end = cur.consume_while(pos, _is_digit, LexError.EXPECTED_REGISTER_VALUE)
    # int() refuses very long digit strings, so drop leading zeros and check
    # the length before converting
    significant = digits.lstrip("0") or "0"
    if len(significant) > len(str(MAX_REGISTER)) or int(significant) > MAX_REGISTER:
        raise cur.fail(pos, LexError.EXPECTED_REGISTER_VALUE)
    return int(significant), end


def parse_register_indirect(cur: _Cursor, pos: int) -> Tuple[Register, int]:
    pos = cur.literal(pos, "[", LexError.EXPECTED_INDIRECT_REGISTER)
    value, pos = parse_register_value(cur, pos)
    pos = cur.literal(pos, "]", LexError.EXPECTED_INDIRECT_REGISTER_END)
    return Indirect(value), pos


def parse_register_direct(cur: _Cursor, pos: int) -> Tuple[Register, int]:
    value, pos = parse_register_value(cur, pos)
    return Direct(value), pos


def parse_register(cur: _Cursor, pos: int) -> Tuple[Register, int]:
    return cur.alternate(pos, (parse_register_indirect, parse_register_direct))


def parse_label_value(cur: _Cursor, pos: int) -> Tuple[str, int]:
    return cur.consume_while(pos, _is_label_char, LexError.EXPECTED_LABEL_VALUE)


def parse_header(cur: _Cursor, pos: int) -> Tuple[Token, int]:
    return Header(), cur.literal(pos, HEADER, LexError.EXPECTED_HEADER)


def parse_inbox(cur: _Cursor, pos: int) -> Tuple[Token, int]:
    return Inbox(), cur.literal(pos, "INBOX", LexError.EXPECTED_INBOX)


def parse_outbox(cur: _Cursor, pos: int) -> Tuple[Token, int]:
    return Outbox(), cur.literal(pos, "OUTBOX", LexError.EXPECTED_OUTBOX)


def _register_instruction(names: Tuple[str, ...], make: Callable[[Register], Token], error: LexError):
    def production(cur: _Cursor, pos: int) -> Tuple[Token, int]:
        start = pos
        for name in names:
            if cur.text.startswith(name, start):
                pos = start + len(name)
                break
        else:
            raise cur.fail(start, error)
        _, pos = parse_whitespace(cur, pos)
        reg, pos = parse_register(cur, pos)
        return make(reg), pos

    production.__name__ = f"parse_{names[0].lower()}"
    return production


def _jump_instruction(name: str, make: Callable[[str], Token], error: LexError):
    def production(cur: _Cursor, pos: int) -> Tuple[Token, int]:
        pos = cur.literal(pos, name, error)
        _, pos = parse_whitespace(cur, pos)
        label, pos = parse_label_value(cur, pos)
        return make(label), pos

    production.__name__ = f"parse_{name.lower()}"
    return production


parse_copy_from = _register_instruction(("COPYFROM",), CopyFrom, LexError.EXPECTED_COPY_FROM)
parse_copy_to = _register_instruction(("COPYTO",), CopyTo, LexError.EXPECTED_COPY_TO)
parse_bump_up = _register_instruction(("BUMPUP",), BumpUp, LexError.EXPECTED_BUMP_UP)
parse_bump_down = _register_instruction(("BUMPDN", "BUMPDOWN"), BumpDown, LexError.EXPECTED_BUMP_DOWN)
parse_add = _register_instruction(("ADD",), Add, LexError.EXPECTED_ADD)
parse_sub = _register_instruction(("SUB",), Sub, LexError.EXPECTED_SUB)

parse_jump = _jump_instruction("JUMP", Jump, LexError.EXPECTED_JUMP)
parse_jump_if_zero = _jump_instruction("JUMPZ", JumpIfZero, LexError.EXPECTED_JUMP_IF_ZERO)
parse_jump_if_negative = _jump_instruction("JUMPN", JumpIfNegative, LexError.EXPECTED_JUMP_IF_NEGATIVE)


def parse_label_definition(cur: _Cursor, pos: int) -> Tuple[Token, int]:
    end = cur.scan(pos, _is_label_char)
    if end == pos:
        raise cur.fail(pos, LexError.EXPECTED_LABEL_DEFINITION)
    name, pos = cur.text[pos:end], end
    pos = cur.literal(pos, ":", LexError.EXPECTED_COLON)
    return LabelDefinition(name), pos


def parse_comment(cur: _Cursor, pos: int) -> Tuple[Token, int]:
    pos = cur.literal(pos, "COMMENT", LexError.EXPECTED_COMMENT)
    _, pos = parse_whitespace(cur, pos)
    ident, pos = cur.consume_while(pos, _is_digit, LexError.EXPECTED_COMMENT_ID)
    return Comment(ident), pos


def _definition(keyword: str, start: LexError, ident: LexError, data: LexError, end: LexError):
    def production(cur: _Cursor, pos: int) -> Tuple[Token, int]:
        pos = cur.literal(pos, keyword, start)
        _, pos = parse_whitespace(cur, pos)
        id_text, pos = cur.consume_while(pos, _is_digit, ident)
        _, pos = parse_whitespace(cur, pos)
        body, pos = cur.consume_while(pos, _not_semicolon, data)
        pos = cur.literal(pos, ";", end)
        return CommentDefinition(id_text, body), pos

    return production


parse_comment_definition = _definition(
    "DEFINE COMMENT",
    LexError.EXPECTED_COMMENT_DEFINITION,
    LexError.EXPECTED_COMMENT_ID,
    LexError.EXPECTED_COMMENT_DEFINITION_DATA,
    LexError.EXPECTED_COMMENT_DEFINITION_END,
)
parse_register_label_definition = _definition(
    "DEFINE LABEL",
    LexError.EXPECTED_REGISTER_LABEL_DEFINITION,
    LexError.EXPECTED_REGISTER_LABEL_ID,
    LexError.EXPECTED_REGISTER_LABEL_DEFINITION_DATA,
    LexError.EXPECTED_REGISTER_LABEL_DEFINITION_END,
)


# Order matters: JUMP must be tried before JUMPZ/JUMPN and only wins when a
# whitespace follows the literal.
PRODUCTIONS = (
    parse_header,
    parse_inbox,
    parse_outbox,
    parse_copy_from,
    parse_copy_to,
    parse_bump_up,
    parse_bump_down,
    parse_add,
    parse_sub,
    parse_label_definition,
    parse_jump,
    parse_jump_if_zero,
    parse_jump_if_negative,
    parse_comment,
    parse_comment_definition,
    parse_register_label_definition,
    parse_whitespace,
)


def _report(failures: List[Tuple[int, LexError]]) -> Tuple[int, List[LexError]]:
    furthest = max(pos for pos, _ in failures)
    errors: List[LexError] = []
    for pos, error in failures:
        if pos == furthest and error not in errors:
            errors.append(error)
    return furthest, errors


def lex_one(text: str, pos: int) -> Tuple[Token, int]:
    """Return the single token matching at `pos` and the offset after it.

    Raises ParseError if no production matches.
    """
    cur = _Cursor(text)
    for production in PRODUCTIONS:
        try:
            return production(cur, pos)
        except _Mismatch:
            continue
    offset, errors = _report(cur.failures)
    raise ParseError(offset, errors, len(text[:offset].encode("utf-8")))


class Lexer:
    """Lazy, forward-only token stream over `text`.

    Iteration stops cleanly at the end of the text. A lexing step that
    matches nothing raises ParseError; the position does not move, so
    asking again raises the same error.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.offset = 0

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        if self.offset >= len(self.text):
            raise StopIteration
        token, self.offset = lex_one(self.text, self.offset)
        return token


def tokenize(text: str) -> List[Token]:
    tokens = list(Lexer(text))
    log.debug("lexed %d tokens", len(tokens))
    return tokens
