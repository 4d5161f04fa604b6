import unittest

from template_core import BLANK, EMPTY, ComparisonError, Context, TemplateSyntaxError
from template_core.condition import Condition, ElseCondition
from template_core.lookup import VariableLookup


def var(name: str) -> VariableLookup:
    return VariableLookup(name)


class TestCondition(unittest.TestCase):
    def setUp(self):
        self.ctx = Context()

    def assertHolds(self, condition: Condition, msg=None):
        self.assertTrue(condition.evaluate(self.ctx), msg or str(condition))

    def assertFails(self, condition: Condition, msg=None):
        self.assertFalse(condition.evaluate(self.ctx), msg or str(condition))

    def test_truthiness(self):
        for val in (0, '', [], {}, 'false', True):
            self.assertHolds(Condition(val), repr(val))
        self.assertFails(Condition(None))
        self.assertFails(Condition(False))
        self.assertFails(Condition(var('missing')))

    def test_equality(self):
        self.assertHolds(Condition(1, '==', 1))
        self.assertHolds(Condition(1, '==', 1.0))
        self.assertHolds(Condition('a', '!=', 'b'))
        self.assertHolds(Condition('a', '<>', 'b'))
        self.assertFails(Condition(1, '<>', 1))
        self.assertHolds(Condition(None, '==', None))
        self.assertFails(Condition(True, '==', 1))
        self.assertFails(Condition(0, '==', False))
        self.assertHolds(Condition([1, 2], '==', [1, 2]))

    def test_ordering(self):
        self.assertHolds(Condition(1, '<', 2))
        self.assertHolds(Condition(2, '>=', 2))
        self.assertHolds(Condition(1.5, '<=', 2))
        self.assertHolds(Condition('a', '<', 'b'))
        self.assertFails(Condition(3, '>', 4))
        self.assertFails(Condition(None, '<', 1))
        self.assertFails(Condition(1, '>', None))
        self.assertFails(Condition(True, '>', False))
        self.assertFails(Condition({}, '<', {}))

    def test_incomparable(self):
        with self.assertRaises(ComparisonError):
            Condition('a', '<', 1).evaluate(self.ctx)
        with self.assertRaises(TypeError):
            Condition([1], '>', 'x').evaluate(self.ctx)

    def test_contains(self):
        self.assertHolds(Condition('hello', 'contains', 'ell'))
        self.assertHolds(Condition('a1', 'contains', 1))
        self.assertHolds(Condition([1, 2], 'contains', 2))
        self.assertHolds(Condition({'a': 1}, 'contains', 'a'))
        self.assertHolds(Condition(range(1, 4), 'contains', 3))
        self.assertFails(Condition([1, 2], 'contains', 3))
        self.assertFails(Condition(None, 'contains', 'a'))
        self.assertFails(Condition('abc', 'contains', None))
        self.assertFails(Condition(5, 'contains', 5))
        self.assertFails(Condition({'a': 1}, 'contains', ['a']))

    def test_empty(self):
        for val in ('', [], {}, (), set()):
            self.assertHolds(Condition(val, '==', EMPTY), repr(val))
            self.assertHolds(Condition(EMPTY, '==', val), repr(val))
        self.assertFails(Condition(' ', '==', EMPTY))
        self.assertFails(Condition([0], '==', EMPTY))
        self.assertFails(Condition(None, '==', EMPTY))
        self.assertFails(Condition(1, '==', EMPTY))
        self.assertHolds(Condition('x', '!=', EMPTY))

    def test_blank(self):
        for val in (None, False, '', '  \n', [], {}):
            self.assertHolds(Condition(val, '==', BLANK), repr(val))
        for val in (0, True, 'x', [None]):
            self.assertFails(Condition(val, '==', BLANK), repr(val))

    def test_unknown_operator(self):
        with self.assertRaises(TemplateSyntaxError):
            Condition(1, '=~', 2)
        with self.assertRaises(TemplateSyntaxError):
            Condition(1).link('xor', Condition(2))


class TestChain(unittest.TestCase):
    def chain(self, a, b, c) -> Condition:
        # a or b and c
        return Condition(a).or_(Condition(b).and_(Condition(c)))

    def test_left_to_right(self):
        ctx = Context()
        self.assertFalse(self.chain(True, False, False).evaluate(ctx))
        self.assertTrue(self.chain(False, True, True).evaluate(ctx))
        self.assertTrue(self.chain(True, False, True).evaluate(ctx))
        self.assertFalse(self.chain(False, False, True).evaluate(ctx))

    def test_short_circuit(self):
        def boom():
            raise AssertionError('evaluated')

        ctx = Context({'boom': boom})
        self.assertFalse(Condition(False).and_(Condition(var('boom'))).evaluate(ctx))
        self.assertTrue(Condition(True).or_(Condition(var('boom'))).evaluate(ctx))

    def test_link_copies(self):
        a = Condition(1)
        b = a.and_(Condition(2))
        self.assertIsNone(a.child_condition)
        self.assertEqual(b.child_relation, 'and')
        self.assertEqual([relation for relation, _ in b.links()], [None, 'and'])

    def test_str(self):
        condition = Condition(var('a'), '==', 'x').or_(
            Condition(var('b')).and_(Condition(var('c'), '>', None))
        )
        self.assertEqual(str(condition), "a == 'x' or b and c > nil")
        self.assertEqual(str(Condition(var('a'), '==', EMPTY)), 'a == empty')

    def test_else(self):
        self.assertTrue(ElseCondition().evaluate(Context()))
        self.assertEqual(str(ElseCondition()), 'else')


if __name__ == '__main__':
    unittest.main()
