from .compiler import Program, UndefinedLabel, compile_program, compile_source
from .machine import (
    Fault,
    Letter,
    Machine,
    MachineError,
    Number,
    RunResult,
    Status,
    StepLimitExceeded,
    StepResult,
    execute,
)
from .parser import Lexer, LexError, ParseError, tokenize

__all__ = [
    "Fault",
    "Letter",
    "LexError",
    "Lexer",
    "Machine",
    "MachineError",
    "Number",
    "ParseError",
    "Program",
    "RunResult",
    "Status",
    "StepLimitExceeded",
    "StepResult",
    "UndefinedLabel",
    "compile_program",
    "compile_source",
    "execute",
    "tokenize",
]
