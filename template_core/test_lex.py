import unittest

from template_core.lex import scan_condition, scan_variable


class TestScanVariable(unittest.TestCase):
    def test_segments(self):
        self.assertEqual(
            scan_variable('a.b["c"][d].size'), ['a', 'b', '["c"]', '[d]', 'size']
        )
        self.assertEqual(scan_variable('user-name.first_name'), ['user-name', 'first_name'])
        self.assertEqual(scan_variable(''), [])

    def test_brackets(self):
        self.assertEqual(scan_variable('a["]"]'), ['a', '["]"]'])
        self.assertEqual(scan_variable('a[b[c]]'), ['a', '[b[c]]'])
        self.assertEqual(scan_variable('[key].x'), ['[key]', 'x'])

    def test_question_mark(self):
        self.assertEqual(scan_variable('empty?'), ['empty?'])
        self.assertEqual(scan_variable('a.b?.c'), ['a', 'b?', 'c'])

    def test_unclosed_bracket(self):
        self.assertEqual(scan_variable('a[b'), ['a', 'b'])


class TestScanCondition(unittest.TestCase):
    def test_tokens(self):
        self.assertEqual(
            scan_condition('a == b and c'),
            [
                ('fragment', 'a'),
                ('operator', '=='),
                ('fragment', 'b'),
                ('keyword', 'and'),
                ('fragment', 'c'),
            ],
        )

    def test_no_spaces(self):
        self.assertEqual(
            scan_condition('a<=b'),
            [('fragment', 'a'), ('operator', '<='), ('fragment', 'b')],
        )

    def test_atomic_groups(self):
        self.assertEqual(
            scan_condition('a == "b and c"'),
            [('fragment', 'a'), ('operator', '=='), ('fragment', '"b and c"')],
        )
        self.assertEqual(scan_condition('foo[a or b]'), [('fragment', 'foo[a or b]')])
        self.assertEqual(
            scan_condition("(1..3) contains 'x'"),
            [('fragment', '(1..3)'), ('fragment', 'contains'), ('fragment', "'x'")],
        )

    def test_keywords_are_whole_words(self):
        self.assertEqual(
            scan_condition('android or order'),
            [('fragment', 'android'), ('keyword', 'or'), ('fragment', 'order')],
        )

    def test_empty(self):
        self.assertEqual(scan_condition('   '), [])


if __name__ == '__main__':
    unittest.main()
