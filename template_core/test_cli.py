import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from template_core.cli import main, parse_assign, setup_trace_log, try_to_value
from template_core.util import log

TEMPLATE = 'Hello {{ name }}{% if n > 1 %}!{% endif %}'


class TestCli(unittest.TestCase):
    def setUp(self):
        fd, self.path = tempfile.mkstemp(suffix='.liquid')
        os.close(fd)

    def tearDown(self):
        os.remove(self.path)

    def run_it(self, text: str, *args: str) -> tuple[str, str]:
        with open(self.path, 'w', encoding='utf-8') as fp:
            fp.write(text)
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            main([self.path, *args])
        return out.getvalue(), err.getvalue()

    def test_values(self):
        self.assertEqual(try_to_value('3'), 3)
        self.assertEqual(try_to_value('1.5'), 1.5)
        self.assertEqual(try_to_value('x'), 'x')
        self.assertEqual(parse_assign('a=b=c'), ('a', 'b=c'))
        self.assertEqual(parse_assign('n='), ('n', ''))

    def test_render(self):
        out, _ = self.run_it(TEMPLATE, 'name=Bob', 'n=2')
        self.assertEqual(out, 'Hello Bob!\n')

        out, _ = self.run_it(TEMPLATE, 'name=Bob', 'n=1')
        self.assertEqual(out, 'Hello Bob\n')

    def test_stdin(self):
        out = io.StringIO()
        with patch('sys.stdin', io.StringIO(TEMPLATE)), redirect_stdout(out), redirect_stderr(io.StringIO()):
            main(['-', 'name=Ann'])
        self.assertEqual(out.getvalue(), 'Hello Ann\n')

    def test_errors(self):
        with self.assertRaises(SystemExit) as cm:
            self.run_it('{% if %}x{% endif %}')
        self.assertEqual(cm.exception.code, 1)

        with self.assertRaises(SystemExit) as cm:
            self.run_it('{{ missing }}', '-S')
        self.assertEqual(cm.exception.code, 1)

        with self.assertRaises(SystemExit) as cm:
            self.run_it('{{ a b }}', '--strict')
        self.assertEqual(cm.exception.code, 1)

    def test_bad_assign(self):
        with self.assertRaises(SystemExit) as cm:
            self.run_it(TEMPLATE, 'novalue')
        self.assertEqual(cm.exception.code, 2)

    def test_warn(self):
        with self.assertLogs('template_core', 'WARNING'):
            out, err = self.run_it('{% if n == 1 junk %}y{% endif %}', 'n=1', '--warn')
        self.assertEqual(out, 'y\n')
        self.assertIn('Warning:', err)

    def test_trace_log(self):
        level = log.level
        h = setup_trace_log(self.path)
        try:
            log.debug('traced %s', 42)
        finally:
            log.removeHandler(h)
            h.close()
            log.setLevel(level)

        with open(self.path, encoding='utf-8') as fp:
            self.assertIn('traced 42', fp.read())

    def test_dump_ctx(self):
        _, err = self.run_it(TEMPLATE, 'name=Bob', '-c')
        self.assertIn("name = 'Bob'", err)


if __name__ == '__main__':
    unittest.main()
