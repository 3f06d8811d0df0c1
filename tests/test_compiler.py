import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from hrmvm import machine
from hrmvm.compiler import Program, UndefinedLabel, compile_program, compile_source
from hrmvm.parser import Direct, Indirect, ParseError, tokenize

HEADER = "-- HUMAN RESOURCE MACHINE PROGRAM --\n"


class TestCompiler(unittest.TestCase):

    def test_junk_is_dropped(self):
        src = HEADER + "COMMENT 1\n    INBOX\nDEFINE COMMENT 1 xyz;\n    OUTBOX\n"
        program = compile_source(src)
        self.assertEqual(list(program), [machine.Inbox(), machine.Outbox()])

    def test_register_operands_carried_over(self):
        program = compile_source("COPYFROM [2]\nCOPYTO 3\nBUMPUP 4\nBUMPDN [5]\nADD 6\nSUB 7")
        self.assertEqual(list(program), [
            machine.CopyFrom(Indirect(2)),
            machine.CopyTo(Direct(3)),
            machine.BumpUp(Direct(4)),
            machine.BumpDown(Indirect(5)),
            machine.Add(Direct(6)),
            machine.Sub(Direct(7)),
        ])

    def test_labels_become_noops_at_their_index(self):
        src = "INBOX\nloop:\nOUTBOX\nJUMP loop\nJUMPZ loop\nJUMPN loop"
        program = compile_source(src)
        self.assertEqual(list(program), [
            machine.Inbox(),
            machine.NoOp(),
            machine.Outbox(),
            machine.Jump(1),
            machine.JumpIfZero(1),
            machine.JumpIfNegative(1),
        ])

    def test_forward_reference(self):
        program = compile_source("JUMP end\nINBOX\nend:\nOUTBOX")
        self.assertEqual(program[0], machine.Jump(2))
        self.assertIsInstance(program[2], machine.NoOp)

    def test_last_label_definition_wins(self):
        src = "loop:\nINBOX\nloop:\nOUTBOX\nJUMP loop"
        program = compile_source(src)
        self.assertEqual(program[4], machine.Jump(2))

    def test_undefined_label(self):
        with self.assertRaises(UndefinedLabel) as ctx:
            compile_source("INBOX\nJUMP nowhere")
        self.assertEqual(ctx.exception.label, "nowhere")

    def test_length_matches_significant_tokens(self):
        src = HEADER + "a:\n    INBOX\n    COPYTO 0\nb:\n    JUMP a\n"
        program = compile_source(src)
        self.assertEqual(len(program), 5)
        self.assertEqual(program.size, 3)

    def test_deterministic(self):
        tokens = tokenize("INBOX\nCOPYTO 1\nADD 1\nOUTBOX")
        self.assertEqual(compile_program(tokens), compile_program(tokens))

    def test_accepts_token_list(self):
        tokens = tokenize("x:\nJUMP x")
        self.assertEqual(list(compile_program(tokens)), [machine.NoOp(), machine.Jump(0)])

    def test_parse_error_propagates(self):
        with self.assertRaises(ParseError):
            compile_source("INBOX\nBOGUS")

    def test_empty_program(self):
        program = compile_source(HEADER)
        self.assertEqual(len(program), 0)
        self.assertEqual(program, Program([]))

    def test_listing(self):
        program = compile_source("a:\nJUMP a")
        self.assertEqual(program.listing(), ["  0: NOOP", "  1: JUMP 0"])


if __name__ == "__main__":
    unittest.main()
