import functools
from typing import Any, TypeAlias

from lark import Lark
from lark.exceptions import LarkError, UnexpectedCharacters

from .context import trace
from .errors import TemplateSyntaxError
from .expression import LITERALS, parse_number
from .lex import BOOLEAN_OPERATORS
from .lookup import RangeLookup, VariableLookup

# Only the terminals matter here: `start` exists so that lark keeps all of them.
GRAMMAR = r'''
start: _token*
_token: COMPARISON | CONTAINS | ID | STRING | NUMBER | DOTDOT | DOT | COMMA
      | COLON | PIPE | QUESTION | DASH | OPEN_SQUARE | CLOSE_SQUARE | OPEN_ROUND | CLOSE_ROUND

COMPARISON: /==|!=|<>|<=|>=|<|>/
// Must be followed by whitespace to be an operator.
CONTAINS.2: /contains(?=\s)/
ID: /[^\W\d][\w-]*\??/
STRING: /'[^']*'|"[^"]*"/
NUMBER: /-?\d+(\.\d+)?/
DOTDOT: ".."
DOT: "."
COMMA: ","
COLON: ":"
PIPE: "|"
QUESTION: "?"
DASH: "-"
OPEN_SQUARE: "["
CLOSE_SQUARE: "]"
OPEN_ROUND: "("
CLOSE_ROUND: ")"

%import common.WS
%ignore WS
'''

lexer = Lark(GRAMMAR, parser='lalr', lexer='basic')

Tok: TypeAlias = tuple[str, str]

END_OF_STRING: Tok = ('end_of_string', '')

# `contains` compares only right after an operand, elsewhere it is a name:
# `a.contains`, `contains == 1`, `a and contains`.
OPERAND_ENDS = ('id', 'string', 'number', 'close_square', 'close_round')


def _ends_operand(tokens: list[Tok]) -> bool:
    if not tokens:
        return False
    kind, value = tokens[-1]
    return kind in OPERAND_ENDS and value not in BOOLEAN_OPERATORS


@functools.lru_cache
def tokenize(markup: str) -> tuple[Tok, ...]:
    try:
        tokens = []
        for t in lexer.lex(markup):
            kind = t.type.lower()
            if kind == 'contains':
                kind = 'comparison' if _ends_operand(tokens) else 'id'
            tokens.append((kind, t.value))
    except UnexpectedCharacters as e:
        raise TemplateSyntaxError(
            f'Unexpected character {e.char!r} in "{markup}"'
        ) from e
    except LarkError as e:
        raise TemplateSyntaxError(f'{type(e).__name__}: {e}') from e

    tokens.append(END_OF_STRING)
    trace('tokenize: %r -> %s', markup, tokens)
    return tuple(tokens)


class Parser:
    '''
    Lookahead parser over the tokens of a single tag markup.

    Used by the strict grammar only. Every mismatch is a `TemplateSyntaxError`.
    '''

    def __init__(self, markup: str):
        self.markup = markup
        self._tokens = tokenize(markup)
        self._p = 0

    def _peek(self, ahead: int = 0) -> Tok:
        p = self._p + ahead
        if p >= len(self._tokens):
            return END_OF_STRING
        return self._tokens[p]

    def look(self, kind: str, ahead: int = 0) -> bool:
        return self._peek(ahead)[0] == kind

    def consume(self, kind: str | None = None) -> str:
        actual, value = self._peek()
        if kind is not None and actual != kind:
            raise TemplateSyntaxError(
                f'Expected {kind} but found {actual} in "{self.markup}"'
            )
        self._p += 1
        return value

    def consume_if(self, kind: str) -> str | None:
        if not self.look(kind):
            return None
        return self.consume()

    # Consumes the next token only if it is the identifier `text`.
    def id_p(self, text: str) -> str | None:
        kind, value = self._peek()
        if kind != 'id' or value != text:
            return None
        self._p += 1
        return value

    def expression(self) -> Any:
        kind, value = self._peek()
        match kind:
            case 'id':
                if value in LITERALS and not (
                    self.look('dot', 1) or self.look('open_square', 1)
                ):
                    self.consume()
                    return LITERALS[value]
                return VariableLookup.strict_parse(self)
            case 'open_square':
                return VariableLookup.strict_parse(self)
            case 'string':
                return self.consume()[1:-1]
            case 'number':
                return parse_number(self.consume())
            case 'open_round':
                self.consume()
                start = self.expression()
                self.consume('dotdot')
                end = self.expression()
                self.consume('close_round')
                return RangeLookup.build(start, end)
            case _:
                raise TemplateSyntaxError(
                    f'{value or kind} is not a valid expression in "{self.markup}"'
                )
