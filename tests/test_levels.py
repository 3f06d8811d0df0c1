import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from hrmvm.compiler import compile_source
from hrmvm.levels import LEVELS, get_level, parse_mixed, zero_terminated
from hrmvm.machine import Letter, Machine, Status, num

SOLUTIONS = ROOT / "levels"


class TestCatalogue(unittest.TestCase):

    def test_parse_mixed(self):
        self.assertEqual(parse_mixed("6,-1,ih"), [num(6), num(-1), Letter("i"), Letter("h")])

    def test_zero_terminated(self):
        self.assertEqual(zero_terminated("ab", ""), [Letter("a"), Letter("b"), num(0), num(0)])

    def test_unknown_level(self):
        with self.assertRaises(KeyError):
            get_level(99)

    def test_level_37_chain(self):
        regs = get_level(37).registers
        self.assertEqual(regs[0], Letter("e"))
        self.assertEqual(regs[21], num(-1))


class TestSolutions(unittest.TestCase):

    def test_every_level_has_a_solution(self):
        for number in LEVELS:
            self.assertTrue((SOLUTIONS / f"{number:02d}.hrm").exists(), number)

    def test_solutions_produce_expected_output(self):
        for number, level in sorted(LEVELS.items()):
            with self.subTest(level=number):
                source = (SOLUTIONS / f"{number:02d}.hrm").read_text(encoding="utf-8")
                program = compile_source(source)
                m = Machine(program, level.inbox, level.registers)
                result = m.run(max_steps=10000)
                self.assertEqual(result.status, Status.HALTED, result.fault)
                self.assertEqual(result.output, level.outbox)

    def test_level_registers_not_shared_with_machine(self):
        level = get_level(35)
        source = (SOLUTIONS / "35.hrm").read_text(encoding="utf-8")
        Machine(compile_source(source), level.inbox, level.registers).run()
        self.assertEqual(level.registers, {14: num(0)})


if __name__ == "__main__":
    unittest.main()
