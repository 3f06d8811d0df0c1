import io
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

import main
from hrmvm import report
from hrmvm.machine import Letter, Machine, num
from hrmvm.parser import LexError


def run_cli(*argv):
    buf = io.StringIO()
    with redirect_stdout(buf):
        code = main.cli(list(argv))
    return code, buf.getvalue()


class TestReport(unittest.TestCase):

    def test_parse_error_caret(self):
        text = report.format_parse_error("INBOX\nCOPYTO x\nOUTBOX", 13, [LexError.EXPECTED_REGISTER_VALUE])
        lines = text.splitlines()
        self.assertEqual(lines[1], "COPYTO x")
        self.assertEqual(lines[2], "       ^")
        self.assertEqual(lines[3], "[ExpectedRegisterValue]")

    def test_compare_output(self):
        self.assertIsNone(report.compare_output([num(1)], [num(1)]))
        diff = report.compare_output([num(1), num(2)], [num(1), num(3)])
        self.assertIn("First difference at position 1: expected 2, got 3", diff)
        diff = report.compare_output([num(1)], [])
        self.assertIn("Length differs: expected 1, got 0", diff)

    def test_state(self):
        m = Machine([], [Letter("a")], {2: num(5)})
        text = report.format_state(m)
        self.assertIn("pc:        0 (<end>)", text)
        self.assertIn("registers: {2: 5}", text)
        self.assertIn("inbox:     ['a']", text)


class TestCli(unittest.TestCase):

    def write(self, text):
        f = tempfile.NamedTemporaryFile("w", suffix=".hrm", delete=False, encoding="utf-8")
        f.write(text)
        f.close()
        self.addCleanup(Path(f.name).unlink)
        return f.name

    def test_run_level(self):
        code, out = run_cli("run", str(ROOT / "levels" / "04.hrm"), "--level", "4")
        self.assertEqual(code, 0)
        self.assertIn("Program completed", out)
        self.assertIn("Output matched!", out)

    def test_run_inbox_and_expect_mismatch(self):
        path = self.write("a:\nINBOX\nOUTBOX\nJUMP a\n")
        code, out = run_cli("run", path, "--inbox", "1", "ab", "--expect", "1", "b", "a")
        self.assertEqual(code, 1)
        self.assertIn("Output did not match", out)

    def test_run_with_register(self):
        path = self.write("COPYFROM 3\nOUTBOX\n")
        code, out = run_cli("run", path, "--inbox", "0", "--register", "3=z", "--expect", "z")
        self.assertEqual(code, 0)
        self.assertIn("Output matched!", out)

    def test_run_failure_reports_fault(self):
        path = self.write("OUTBOX\n")
        code, out = run_cli("run", path, "--inbox", "1")
        self.assertEqual(code, 1)
        self.assertIn("Program failed", out)
        self.assertIn("OutputNil", out)

    def test_step_limit(self):
        path = self.write("a:\nJUMP a\n")
        code, out = run_cli("run", path, "--inbox", "1", "--max-steps", "10")
        self.assertEqual(code, 1)
        self.assertIn("max_steps", out)

    def test_parse_error(self):
        path = self.write("INBOX\nCOPYTO x\n")
        code, out = run_cli("check", path)
        self.assertEqual(code, 1)
        self.assertIn("Error occurred while parsing:", out)

    def test_undefined_label(self):
        path = self.write("JUMP nowhere\n")
        code, out = run_cli("check", path)
        self.assertEqual(code, 1)
        self.assertIn("undefined label 'nowhere'", out)

    def test_check_listing(self):
        path = self.write("a:\nINBOX\nJUMP a\n")
        code, out = run_cli("check", path, "--listing")
        self.assertEqual(code, 0)
        self.assertIn("Program OK: 2 instructions", out)
        self.assertIn("  2: JUMP 0", out)

    def test_levels_and_available(self):
        code, out = run_cli("levels")
        self.assertEqual(code, 0)
        self.assertIn(" 35  Duplicate Removal", out)
        code, out = run_cli("available")
        self.assertIn("- JUMPZ", out)


if __name__ == "__main__":
    unittest.main()
