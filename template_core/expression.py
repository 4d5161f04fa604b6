import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Set

from .lookup import RangeLookup, VariableLookup

INTEGER = re.compile(r'-?\d+')
FLOAT = re.compile(r'-?\d+\.\d+')
RANGE = re.compile(r'\(\s*(\S+?)\s*\.\.\s*(\S+?)\s*\)')


@dataclass(frozen=True)
class MethodLiteral:
    '''
    The `empty` and `blank` literals.

    They compare by predicate, not by value: `x == empty` asks whether `x` is
    an empty string or container. Rendered, they are empty text.
    '''

    name: str

    def test(self, val: Any) -> bool | None:
        match self.name:
            case 'empty':
                if isinstance(val, (str, bytes, Mapping, Sequence, Set)):
                    return len(val) == 0
                # Values without a notion of emptiness never equal `empty`.
                return None
            case 'blank':
                if val is None or val is False:
                    return True
                if isinstance(val, str):
                    return not val.strip()
                if isinstance(val, (bytes, Mapping, Sequence, Set)):
                    return len(val) == 0
                return False
            case _:
                raise ValueError(f'Bad method literal: {self.name}')

    def __str__(self) -> str:
        return ''


EMPTY = MethodLiteral('empty')
BLANK = MethodLiteral('blank')

LITERALS: dict[str, Any] = {
    'nil': None,
    'null': None,
    'true': True,
    'false': False,
    'empty': EMPTY,
    'blank': BLANK,
}


def parse_number(text: str) -> int | float:
    if '.' in text:
        return float(text)
    return int(text)


def parse_expression(markup: str | None) -> Any:
    '''
    Parses a single operand: a literal (`nil`, `true`, `'text'`, `42`, `1.5`,
    `(1..n)`, `empty`, ...) or a variable lookup. Never fails: anything that
    is not a literal is taken as a variable path.
    '''
    if markup is None:
        return None
    markup = markup.strip()
    if not markup:
        return None

    if len(markup) >= 2 and markup[0] in '\'"' and markup[-1] == markup[0]:
        return markup[1:-1]

    if INTEGER.fullmatch(markup):
        return int(markup)

    if m := RANGE.fullmatch(markup):
        return RangeLookup.build(parse_expression(m[1]), parse_expression(m[2]))

    if FLOAT.fullmatch(markup):
        return float(markup)

    if markup in LITERALS:
        return LITERALS[markup]

    return VariableLookup.lax_parse(markup)
