import operator
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, Sequence, Set

from .context import trace, is_tracing
from .errors import ComparisonError, TemplateSyntaxError
from .expression import MethodLiteral
from .values import is_truthy, to_str

if TYPE_CHECKING:
    from .context import Context

BOOLEAN_OPERATORS = ('and', 'or')

_ORDERINGS: dict[str, Callable[[Any, Any], bool]] = {
    '<': operator.lt,
    '>': operator.gt,
    '<=': operator.le,
    '>=': operator.ge,
}


def _equal(left: Any, right: Any) -> bool | None:
    if isinstance(left, MethodLiteral):
        return left.test(right)
    if isinstance(right, MethodLiteral):
        return right.test(left)
    # `true` is not `1` in templates.
    if isinstance(left, bool) or isinstance(right, bool):
        return left is right
    return left == right


def _orderable(val: Any) -> bool:
    return not (
        val is None
        or isinstance(val, (bool, Mapping, MethodLiteral))
    )


def _order(op: str, left: Any, right: Any) -> bool:
    # nil, booleans and hashes have no ordering: the comparison is just false.
    if not (_orderable(left) and _orderable(right)):
        return False
    try:
        return _ORDERINGS[op](left, right)
    except TypeError as e:
        raise ComparisonError(
            f'comparison of {type(left).__name__} with {type(right).__name__} failed'
        ) from e


def _contains(left: Any, right: Any) -> bool:
    if not (is_truthy(left) and is_truthy(right)):
        return False
    if isinstance(left, str):
        return to_str(right) in left
    if isinstance(left, (Mapping, Sequence, Set)):
        try:
            return right in left
        except TypeError:
            return False
    return False


OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    '==': _equal,
    '!=': lambda left, right: not _equal(left, right),
    '<>': lambda left, right: not _equal(left, right),
    '<': lambda left, right: _order('<', left, right),
    '>': lambda left, right: _order('>', left, right),
    '<=': lambda left, right: _order('<=', left, right),
    '>=': lambda left, right: _order('>=', left, right),
    'contains': _contains,
}


def _operand_str(val: Any) -> str:
    if val is None:
        return 'nil'
    if isinstance(val, bool):
        return 'true' if val else 'false'
    if isinstance(val, str):
        return repr(val)
    if isinstance(val, MethodLiteral):
        return val.name
    return str(val)


@dataclass(frozen=True)
class Condition:
    '''
    One comparison `left [operator right]`, optionally linked to the next
    condition of an `and`/`or` chain.

    Chains are folded strictly left to right with no precedence:
    `a or b and c` means `(a or b) and c`. Each link short-circuits on the
    running result, skipping the next comparison when it cannot matter.
    '''

    left: Any = None
    operator: str | None = None
    right: Any = None
    child_relation: str | None = None
    child_condition: 'Condition | None' = None

    def __post_init__(self):
        if self.operator is not None and self.operator not in OPERATORS:
            raise TemplateSyntaxError(f'Unknown operator {self.operator}')
        if self.child_relation is not None and self.child_relation not in BOOLEAN_OPERATORS:
            raise TemplateSyntaxError(f'Unknown boolean operator {self.child_relation}')

    # Returns a copy linked to `other`, replacing any previous link.
    def link(self, relation: str, other: 'Condition') -> 'Condition':
        return replace(self, child_relation=relation, child_condition=other)

    def and_(self, other: 'Condition') -> 'Condition':
        return self.link('and', other)

    def or_(self, other: 'Condition') -> 'Condition':
        return self.link('or', other)

    # The chain as `(relation, condition)` pairs, the first relation being None.
    def links(self) -> Iterator[tuple[str | None, 'Condition']]:
        relation, node = None, self
        while node is not None:
            yield relation, node
            relation, node = node.child_relation, node.child_condition

    # Value of this comparison alone, ignoring the chain.
    def interpret(self, context: 'Context') -> Any:
        left = context.evaluate(self.left)
        if self.operator is None:
            return left
        right = context.evaluate(self.right)
        return OPERATORS[self.operator](left, right)

    def evaluate(self, context: 'Context') -> bool:
        result = False
        for relation, node in self.links():
            match relation:
                case None:
                    result = is_truthy(node.interpret(context))
                case 'and':
                    if result:
                        result = is_truthy(node.interpret(context))
                case 'or':
                    if not result:
                        result = is_truthy(node.interpret(context))
            if is_tracing:
                trace('Condition: %s %s -> %s', relation or '', node.clause(), result)
        return result

    def clause(self) -> str:
        if self.operator is None:
            return _operand_str(self.left)
        return f'{_operand_str(self.left)} {self.operator} {_operand_str(self.right)}'

    def __str__(self) -> str:
        return ' '.join(
            f'{relation} {node.clause()}' if relation else node.clause()
            for relation, node in self.links()
        )


# Sentinel condition of an `else` branch.
@dataclass(frozen=True)
class ElseCondition(Condition):
    def evaluate(self, context: 'Context') -> bool:
        return True

    def __str__(self) -> str:
        return 'else'
