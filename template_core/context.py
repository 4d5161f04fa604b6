import os
import inspect
import logging
import functools
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, MutableMapping, MutableSequence

from .util import log
from .errors import UndefinedVariable
from .values import Drop, Evaluable, accessor_for, to_value

is_tracing = os.environ.get('TRACE') == '1' and log.isEnabledFor(logging.DEBUG)
trace = log.debug if is_tracing else lambda *_: None


# Deferred values stored in the context or in containers are plain functions,
# forced on first access. Callable objects (drops included) are left alone.
def is_lazy(val: Any) -> bool:
    return (
        inspect.isfunction(val)
        or inspect.ismethod(val)
        or isinstance(val, functools.partial)
    )


class Context:
    '''
    Per-render evaluation environment.

    Names are searched from the innermost scope outwards, then through the
    read-only `environments`. With `strict_variables` set, unresolved names
    raise `UndefinedVariable` instead of resolving to `None`.
    '''

    def __init__(
        self,
        scope: dict[str, Any] | None = None,
        environments: Mapping[str, Any] | list[Mapping[str, Any]] | None = None,
        *,
        strict_variables: bool = False,
    ):
        self._scopes: list[dict[str, Any]] = [scope if scope is not None else {}]
        if environments is None:
            environments = []
        elif isinstance(environments, Mapping):
            environments = [environments]
        self._environments: list[Mapping[str, Any]] = environments
        self.strict_variables = strict_variables

    def push(self, scope: dict[str, Any] | None = None):
        trace('Entering scope: %s', len(self._scopes))
        self._scopes.append(scope if scope is not None else {})

    def pop(self) -> dict[str, Any]:
        if len(self._scopes) == 1:
            raise IndexError('cannot pop the outermost scope')
        trace('Leaving scope: %s', len(self._scopes) - 1)
        return self._scopes.pop()

    @contextmanager
    def stack(self, scope: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        self.push(scope)
        try:
            yield self._scopes[-1]
        finally:
            self.pop()

    def evaluate(self, expr: Any) -> Any:
        if isinstance(expr, Evaluable):
            return expr.evaluate(self)
        return expr

    def find_variable(self, key: Any) -> Any:
        for container in self._containers():
            if accessor_for(container).has_key(container, key):
                val = self.lookup_and_evaluate(container, key)
                trace('Got var: %s = %r', key, val)
                break
        else:
            trace('Var not found: %s', key)
            if self.strict_variables:
                raise UndefinedVariable(key)
            return None

        val = to_value(val)
        if isinstance(val, Drop):
            val = val.bind(self)
        return val

    def _containers(self) -> Iterator[Mapping[str, Any]]:
        yield from reversed(self._scopes)
        yield from self._environments

    def lookup_and_evaluate(self, obj: Any, key: Any) -> Any:
        val = accessor_for(obj).fetch(obj, key)
        if not is_lazy(val):
            return val

        if inspect.signature(val).parameters:
            forced = val(self)
        else:
            forced = val()
        trace('Forced lazy value: %s = %r', key, forced)

        # Memoize into mutable containers, so the computation runs once.
        if isinstance(obj, (MutableMapping, MutableSequence)):
            obj[key] = forced
        return forced

    # Evaluate a raw expression, e.g. `ctx['user.name']`.
    def __getitem__(self, markup: str) -> Any:
        from .expression import parse_expression

        return self.evaluate(parse_expression(markup))

    def __setitem__(self, key: str, val: Any):
        self._scopes[-1][key] = val

    def __contains__(self, key: str) -> bool:
        return any(key in container for container in self._containers())
