import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .lex import scan_variable
from .context import trace, is_tracing
from .errors import TemplateError, UndefinedVariable
from .values import Command, Drop, Evaluable, accessor_for, is_index, to_value

if TYPE_CHECKING:
    from .context import Context
    from .parser import Parser


def _expr_str(expr: Any) -> str:
    if expr is None:
        return 'nil'
    if isinstance(expr, bool):
        return 'true' if expr else 'false'
    return str(expr)


def _bracketed(segment: str) -> str | None:
    if segment.startswith('[') and segment.endswith(']'):
        return segment[1:-1]


@dataclass(frozen=True)
class LookupStep:
    # A literal key from dotted syntax, or a parsed expression from `[...]`.
    key: Any
    # Set for dotted `size`/`first`/`last`. Only a hint: a real key still wins.
    command: Command | None = None

    def __str__(self) -> str:
        if isinstance(self.key, str):
            return f"['{self.key}']"
        return f'[{_expr_str(self.key)}]'


@dataclass(frozen=True)
class VariableLookup(Evaluable):
    name: Any
    lookups: tuple[LookupStep, ...] = ()

    # Lax: `a.b[c]["d"].size`, with everything but brackets and words ignored.
    @classmethod
    def lax_parse(cls, markup: str) -> 'VariableLookup':
        from .expression import parse_expression

        segments = scan_variable(markup)
        if not segments:
            return cls(None)

        name = segments[0]
        if (inner := _bracketed(name)) is not None:
            # Dynamic root: {{ [key] }} looks up the value of `key`.
            name = parse_expression(inner)

        lookups = []
        for segment in segments[1:]:
            if (inner := _bracketed(segment)) is not None:
                lookups.append(LookupStep(parse_expression(inner)))
            else:
                lookups.append(LookupStep(segment, Command.parse(segment)))

        return cls(name, tuple(lookups))

    # Strict: `root(.id | [expr])*` from the tokenizer.
    @classmethod
    def strict_parse(cls, p: 'Parser') -> 'VariableLookup':
        if p.look('id'):
            name = p.consume()
        else:
            p.consume('open_square')
            name = p.expression()
            p.consume('close_square')

        lookups = []
        while True:
            if p.consume_if('open_square') is not None:
                lookups.append(LookupStep(p.expression()))
                p.consume('close_square')
            elif p.consume_if('dot') is not None:
                key = p.consume('id')
                lookups.append(LookupStep(key, Command.parse(key)))
            else:
                break

        return cls(name, tuple(lookups))

    def evaluate(self, context: 'Context') -> Any:
        name = context.evaluate(self.name)
        obj = context.find_variable(name)

        for step in self.lookups:
            key = context.evaluate(step.key)
            accessor = accessor_for(obj)

            # Hash- or array-like values: a present key, or any integer index.
            if accessor.keyed and (
                accessor.has_key(obj, key) or (accessor.positional and is_index(key))
            ):
                obj = to_value(context.lookup_and_evaluate(obj, key))

            # No such key, but a dotted command word: call it on the value.
            elif (command := accessor.command(obj, step.command)) is not None:
                obj = to_value(command())

            else:
                trace('Lookup missed: %s at %r', self, key)
                if not context.strict_variables:
                    return None
                raise UndefinedVariable(key)

            if isinstance(obj, Drop):
                obj = obj.bind(context)

        if is_tracing:
            trace('Lookup: %s = %r', self, obj)
        return obj

    def __str__(self) -> str:
        return _expr_str(self.name) + ''.join(str(step) for step in self.lookups)


_LEADING_INT = re.compile(r'\s*[-+]?\d+')


def _to_int(val: Any) -> int:
    if isinstance(val, bool):
        raise TemplateError(f'invalid integer: {val!r}')
    if isinstance(val, int):
        return val
    if val is None:
        return 0
    if isinstance(val, float):
        return int(val)
    if isinstance(val, str):
        m = _LEADING_INT.match(val)
        return int(m.group()) if m else 0
    raise TemplateError(f'invalid integer: {val!r}')


# Inclusive integer range `(start..end)` with a bound known only at render time.
@dataclass(frozen=True)
class RangeLookup(Evaluable):
    start: Any
    end: Any

    @classmethod
    def build(cls, start: Any, end: Any) -> 'RangeLookup | range':
        if isinstance(start, Evaluable) or isinstance(end, Evaluable):
            return cls(start, end)
        return range(_to_int(start), _to_int(end) + 1)

    def evaluate(self, context: 'Context') -> range:
        start = _to_int(context.evaluate(self.start))
        end = _to_int(context.evaluate(self.end))
        return range(start, end + 1)

    def __str__(self) -> str:
        return f'({_expr_str(self.start)}..{_expr_str(self.end)})'
