"""HRM virtual machine.

The machine holds a compiled program, an inbox, an outbox, a sparse
register file and a single-tile accumulator (the "hand"). Every value is a
tile: a Number clamped to [-999, 999] or a single-character Letter.

Supported instructions:
- INBOX / OUTBOX
- COPYFROM r / COPYTO r
- BUMPUP r / BUMPDN r
- ADD r / SUB r
- JUMP i / JUMPZ i / JUMPN i  (absolute instruction indices)
- NOOP (left behind by label definitions)

`step()` never raises for program faults. It reports one of three outcomes:
continue, halted (inbox exhausted or program finished) or failed with a
`Fault`. A failed step leaves the machine exactly as it was before the step.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from .parser import Direct, Indirect, Register


log = logging.getLogger(__name__)

MIN_VALUE = -999
MAX_VALUE = 999
REGISTER_COUNT = 256


class Fault(Enum):
    INDIRECT_THROUGH_NIL = "IndirectThroughNil"
    INDIRECT_THROUGH_NEGATIVE = "IndirectThroughNegative"
    INDIRECT_THROUGH_LETTER = "IndirectThroughLetter"
    OUTPUT_NIL = "OutputNil"
    COPY_FROM_NIL = "CopyFromNil"
    COPY_TO_NIL = "CopyToNil"
    BUMP_NIL = "BumpNil"
    BUMP_LETTER = "BumpLetter"
    ADD_WITH_NIL = "AddWithNil"
    ADD_TO_NIL = "AddToNil"
    ADD_WITH_LETTER = "AddWithLetter"
    SUB_FROM_NIL = "SubFromNil"
    SUB_WITH_NIL = "SubWithNil"
    SUB_CROSS_TYPES = "SubCrossTypes"
    JUMP_ZERO_NIL = "JumpZeroNil"
    JUMP_NEGATIVE_NIL = "JumpNegativeNil"
    UNDERFLOW = "Underflow"
    OVERFLOW = "Overflow"

    def __str__(self) -> str:
        return self.value


class MachineError(RuntimeError):
    def __init__(self, fault: Fault) -> None:
        super().__init__(str(fault))
        self.fault = fault


class StepLimitExceeded(RuntimeError):
    def __init__(self, steps: int) -> None:
        super().__init__(f"Run exceeded max_steps ({steps})")
        self.steps = steps


# ---------------------------------------------------------------------------
# Tiles


@dataclass(frozen=True)
class Number:
    value: int

    def __post_init__(self) -> None:
        if not MIN_VALUE <= self.value <= MAX_VALUE:
            raise ValueError(f"Number {self.value} outside [{MIN_VALUE}, {MAX_VALUE}]")

    @classmethod
    def clamp(cls, value: int) -> "Number":
        if value > MAX_VALUE:
            raise MachineError(Fault.OVERFLOW)
        if value < MIN_VALUE:
            raise MachineError(Fault.UNDERFLOW)
        return cls(value)

    def add(self, other: "Number") -> "Number":
        return Number.clamp(self.value + other.value)

    def sub(self, other: "Number") -> "Number":
        return Number.clamp(self.value - other.value)

    def increment(self) -> "Number":
        return Number.clamp(self.value + 1)

    def decrement(self) -> "Number":
        return Number.clamp(self.value - 1)

    def is_zero(self) -> bool:
        return self.value == 0

    def is_negative(self) -> bool:
        return self.value < 0

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Letter:
    char: str

    def __post_init__(self) -> None:
        if not isinstance(self.char, str) or len(self.char) != 1:
            raise ValueError(f"Letter must be a single character, got {self.char!r}")

    def to_number(self) -> Number:
        return Number.clamp(ord(self.char))

    def __str__(self) -> str:
        return self.char


Tile = Union[Number, Letter]


def num(value: int) -> Number:
    return Number(value)


def tile(value: Union[int, str, Number, Letter]) -> Tile:
    """Wrap a plain int or one-character string as a tile."""
    if isinstance(value, (Number, Letter)):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Cannot make a tile from {value!r}")
    if isinstance(value, int):
        return Number(value)
    if isinstance(value, str):
        return Letter(value)
    raise TypeError(f"Cannot make a tile from {value!r}")


def format_tile(value: Optional[Tile]) -> str:
    if value is None:
        return "nil"
    if isinstance(value, Letter):
        return repr(value.char)
    return str(value.value)


# ---------------------------------------------------------------------------
# Instructions


@dataclass(frozen=True)
class Inbox:
    def __str__(self) -> str:
        return "INBOX"


@dataclass(frozen=True)
class Outbox:
    def __str__(self) -> str:
        return "OUTBOX"


@dataclass(frozen=True)
class CopyFrom:
    register: Register

    def __str__(self) -> str:
        return f"COPYFROM {self.register}"


@dataclass(frozen=True)
class CopyTo:
    register: Register

    def __str__(self) -> str:
        return f"COPYTO {self.register}"


@dataclass(frozen=True)
class BumpUp:
    register: Register

    def __str__(self) -> str:
        return f"BUMPUP {self.register}"


@dataclass(frozen=True)
class BumpDown:
    register: Register

    def __str__(self) -> str:
        return f"BUMPDN {self.register}"


@dataclass(frozen=True)
class Add:
    register: Register

    def __str__(self) -> str:
        return f"ADD {self.register}"


@dataclass(frozen=True)
class Sub:
    register: Register

    def __str__(self) -> str:
        return f"SUB {self.register}"


@dataclass(frozen=True)
class Jump:
    target: int

    def __str__(self) -> str:
        return f"JUMP {self.target}"


@dataclass(frozen=True)
class JumpIfZero:
    target: int

    def __str__(self) -> str:
        return f"JUMPZ {self.target}"


@dataclass(frozen=True)
class JumpIfNegative:
    target: int

    def __str__(self) -> str:
        return f"JUMPN {self.target}"


@dataclass(frozen=True)
class NoOp:
    def __str__(self) -> str:
        return "NOOP"


Instruction = Union[
    Inbox, Outbox,
    CopyFrom, CopyTo, BumpUp, BumpDown, Add, Sub,
    Jump, JumpIfZero, JumpIfNegative, NoOp,
]

Registers = Dict[int, Tile]


# ---------------------------------------------------------------------------
# Outcomes


class Status(Enum):
    CONTINUE = "continue"
    HALTED = "halted"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    status: Status
    fault: Optional[Fault] = None

    @classmethod
    def failed(cls, fault: Fault) -> "StepResult":
        return cls(Status.FAILED, fault)


CONTINUE = StepResult(Status.CONTINUE)
HALTED = StepResult(Status.HALTED)


@dataclass
class RunResult:
    status: Status
    fault: Optional[Fault]
    output: List[Tile] = field(default_factory=list)
    steps: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status is Status.HALTED


# ---------------------------------------------------------------------------
# Machine


class Machine:
    def __init__(
        self,
        program: Iterable[Instruction],
        inbox: Iterable[Tile],
        registers: Optional[Dict[int, Tile]] = None,
    ) -> None:
        self.program: List[Instruction] = list(program)
        self.inbox: List[Tile] = list(inbox)
        self.outbox: List[Tile] = []
        self.registers: Registers = dict(registers) if registers else {}
        self.acc: Optional[Tile] = None
        self.pc = 0
        self.steps = 0

    def _resolve(self, reg: Register) -> int:
        if isinstance(reg, Direct):
            return reg.index
        if isinstance(reg, Indirect):
            pointer = self.registers.get(reg.index)
            if pointer is None:
                raise MachineError(Fault.INDIRECT_THROUGH_NIL)
            if isinstance(pointer, Letter):
                raise MachineError(Fault.INDIRECT_THROUGH_LETTER)
            if pointer.is_negative():
                raise MachineError(Fault.INDIRECT_THROUGH_NEGATIVE)
            # pointer values wrap onto the 256 registers
            return pointer.value % REGISTER_COUNT
        raise TypeError(f"Unknown register operand: {reg!r}")

    def _bump(self, reg: Register, up: bool) -> None:
        idx = self._resolve(reg)
        current = self.registers.get(idx)
        if current is None:
            raise MachineError(Fault.BUMP_NIL)
        if isinstance(current, Letter):
            raise MachineError(Fault.BUMP_LETTER)
        value = current.increment() if up else current.decrement()
        self.registers[idx] = value
        self.acc = value

    def _execute(self, instr: Instruction) -> Optional[int]:
        """Apply `instr`. Returns a jump target, or None to fall through.

        Raises MachineError before touching any state.
        """
        if isinstance(instr, Inbox):
            # Caller checks for an empty inbox.
            self.acc = self.inbox.pop(0)
        elif isinstance(instr, Outbox):
            if self.acc is None:
                raise MachineError(Fault.OUTPUT_NIL)
            self.outbox.append(self.acc)
        elif isinstance(instr, CopyFrom):
            value = self.registers.get(self._resolve(instr.register))
            if value is None:
                raise MachineError(Fault.COPY_FROM_NIL)
            self.acc = value
        elif isinstance(instr, CopyTo):
            if self.acc is None:
                raise MachineError(Fault.COPY_TO_NIL)
            self.registers[self._resolve(instr.register)] = self.acc
        elif isinstance(instr, BumpUp):
            self._bump(instr.register, up=True)
        elif isinstance(instr, BumpDown):
            self._bump(instr.register, up=False)
        elif isinstance(instr, Add):
            operand = self.registers.get(self._resolve(instr.register))
            if self.acc is None:
                raise MachineError(Fault.ADD_TO_NIL)
            if operand is None:
                raise MachineError(Fault.ADD_WITH_NIL)
            if not (isinstance(self.acc, Number) and isinstance(operand, Number)):
                raise MachineError(Fault.ADD_WITH_LETTER)
            self.acc = self.acc.add(operand)
        elif isinstance(instr, Sub):
            operand = self.registers.get(self._resolve(instr.register))
            if self.acc is None:
                raise MachineError(Fault.SUB_FROM_NIL)
            if operand is None:
                raise MachineError(Fault.SUB_WITH_NIL)
            if isinstance(self.acc, Number) and isinstance(operand, Number):
                self.acc = self.acc.sub(operand)
            elif isinstance(self.acc, Letter) and isinstance(operand, Letter):
                self.acc = self.acc.to_number().sub(operand.to_number())
            else:
                raise MachineError(Fault.SUB_CROSS_TYPES)
        elif isinstance(instr, Jump):
            return instr.target
        elif isinstance(instr, JumpIfZero):
            if self.acc is None:
                raise MachineError(Fault.JUMP_ZERO_NIL)
            if isinstance(self.acc, Number) and self.acc.is_zero():
                return instr.target
        elif isinstance(instr, JumpIfNegative):
            if self.acc is None:
                raise MachineError(Fault.JUMP_NEGATIVE_NIL)
            if isinstance(self.acc, Number) and self.acc.is_negative():
                return instr.target
        elif isinstance(instr, NoOp):
            pass
        else:
            raise TypeError(f"Unknown instruction: {instr!r}")
        return None

    def step(self) -> StepResult:
        if self.pc >= len(self.program):
            return HALTED

        instr = self.program[self.pc]
        log.debug("pc=%d instr='%s' acc=%s", self.pc, instr, format_tile(self.acc))

        if isinstance(instr, Inbox) and not self.inbox:
            return HALTED

        try:
            target = self._execute(instr)
        except MachineError as e:
            log.debug("pc=%d fault %s", self.pc, e.fault)
            return StepResult.failed(e.fault)

        if not isinstance(instr, NoOp):
            self.steps += 1

        if target is not None:
            self.pc = target
            return CONTINUE

        self.pc += 1
        if self.pc >= len(self.program):
            return HALTED
        return CONTINUE

    def run(self, max_steps: Optional[int] = None) -> RunResult:
        """Step until the program halts or faults.

        With `max_steps`, raises StepLimitExceeded once that many steps ran
        without reaching either outcome.
        """
        count = 0
        while True:
            if max_steps is not None and count >= max_steps:
                raise StepLimitExceeded(max_steps)
            result = self.step()
            count += 1
            if result.status is Status.CONTINUE:
                continue
            if result.status is Status.HALTED:
                log.info("program halted after %d steps with %d outputs", self.steps, len(self.outbox))
            else:
                log.info("program failed at pc=%d: %s", self.pc, result.fault)
            return RunResult(result.status, result.fault, list(self.outbox), self.steps)


def execute(
    program: Iterable[Instruction],
    inbox: Iterable[Tile],
    registers: Optional[Dict[int, Tile]] = None,
    max_steps: Optional[int] = None,
) -> RunResult:
    return Machine(program, inbox, registers).run(max_steps=max_steps)
