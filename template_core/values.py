import copy
import functools
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Protocol, Sequence, runtime_checkable

from .errors import UndefinedDropMethod

if TYPE_CHECKING:
    from .context import Context


# Zero-argument operations reachable with dotted syntax (`list.size`) when no
# real key of the same name exists.
class Command(Enum):
    SIZE = 'size'
    FIRST = 'first'
    LAST = 'last'

    @classmethod
    def parse(cls, name) -> 'Command | None':
        try:
            return cls(name)
        except ValueError:
            return None


# Anything that resolves against a context: variable lookups and ranges.
class Evaluable(ABC):
    @abstractmethod
    def evaluate(self, context: 'Context') -> Any:
        pass


@runtime_checkable
class SupportsTemplateValue(Protocol):
    def to_template_value(self) -> Any: ...


def to_value(obj: Any) -> Any:
    '''
    Canonical template representation of a host value.

    Host objects can opt in by defining `to_template_value()`, everything else
    is used as-is.
    '''
    if isinstance(obj, SupportsTemplateValue):
        return obj.to_template_value()
    return obj


# Only nil and false are falsy, even `0`, `''` and empty containers are truthy.
def is_truthy(val: Any) -> bool:
    return val is not None and val is not False


def to_str(val: Any) -> str:
    if val is None:
        return ''
    if isinstance(val, bool):
        return 'true' if val else 'false'
    if isinstance(val, str):
        return val
    if isinstance(val, (int, float)):
        return str(val)
    if isinstance(val, bytes):
        return val.decode('utf-8', errors='replace')
    if isinstance(val, range):
        return f'{val.start}..{val.stop - 1}'
    if isinstance(val, (list, tuple)):
        return ''.join(to_str(v) for v in val)
    return str(val)


class Drop:
    '''
    Base class for host objects exposed to templates.

    Public methods and properties declared by subclasses are reachable as keys,
    e.g. `{{ user.display_name }}` calls `display_name()`. A drop is the only
    kind of value that receives the rendering context: resolving it yields a
    bound copy, so the shared original is never mutated.
    '''

    _context: 'Context | None' = None

    @property
    def context(self) -> 'Context | None':
        return self._context

    def bind(self, context: 'Context') -> 'Drop':
        if self._context is context:
            return self
        bound = copy.copy(self)
        bound._context = context
        return bound

    def invoke_drop(self, name: Any) -> Any:
        if name in _invokable_names(type(self)):
            attr = getattr(self, name)
            return attr() if callable(attr) else attr
        return self.missing(name)

    def missing(self, name: Any) -> Any:
        if self._context is not None and self._context.strict_variables:
            raise UndefinedDropMethod(str(name))
        return None

    def __repr__(self) -> str:
        return f'<{type(self).__name__}>'


@functools.cache
def _invokable_names(cls: type) -> frozenset[str]:
    base = set(dir(Drop))
    return frozenset(
        name
        for name in dir(cls)
        if not name.startswith('_')
        and name not in base
        and (callable(attr := getattr(cls, name)) or isinstance(attr, property))
    )


class Accessor:
    '''
    Capability table of one kind of host value.

    `keyed`: supports `value[key]` lookups, gated by `has_key`.
    `positional`: integer keys are fetched even without `has_key`.
    `commands`: the `Command`s the kind supports.
    '''

    keyed = False
    positional = False
    commands: Mapping[Command, Callable[[Any], Any]] = {}

    def has_key(self, obj: Any, key: Any) -> bool:
        return False

    def fetch(self, obj: Any, key: Any) -> Any:
        raise KeyError(key)

    def command(self, obj: Any, cmd: Command | None) -> Callable[[], Any] | None:
        if cmd is None or (func := self.commands.get(cmd)) is None:
            return None
        return functools.partial(func, obj)


def _first_item(obj: Mapping) -> list | None:
    for k, v in obj.items():
        return [k, v]


class MappingAccessor(Accessor):
    keyed = True
    commands = {Command.SIZE: len, Command.FIRST: _first_item}

    def has_key(self, obj: Mapping, key: Any) -> bool:
        try:
            return key in obj
        except TypeError:
            # Unhashable key.
            return False

    def fetch(self, obj: Mapping, key: Any) -> Any:
        return obj.get(key)


class SequenceAccessor(Accessor):
    keyed = True
    positional = True
    commands = {
        Command.SIZE: len,
        Command.FIRST: lambda obj: obj[0] if obj else None,
        Command.LAST: lambda obj: obj[-1] if obj else None,
    }

    def fetch(self, obj: Sequence, key: int) -> Any:
        try:
            return obj[key]
        except IndexError:
            return None


class StringAccessor(Accessor):
    commands = {Command.SIZE: len}


class DropAccessor(Accessor):
    keyed = True

    # Every key is accepted and resolved by the drop itself, so commands are
    # never consulted for drops.
    def has_key(self, obj: Drop, key: Any) -> bool:
        return True

    def fetch(self, obj: Drop, key: Any) -> Any:
        return obj.invoke_drop(key)


MAPPING = MappingAccessor()
SEQUENCE = SequenceAccessor()
STRING = StringAccessor()
DROP = DropAccessor()
SCALAR = Accessor()


def accessor_for(obj: Any) -> Accessor:
    if isinstance(obj, Drop):
        return DROP
    if isinstance(obj, Mapping):
        return MAPPING
    # Checked before `Sequence`, as strings are sequences too.
    if isinstance(obj, (str, bytes)):
        return STRING
    if isinstance(obj, Sequence):
        return SEQUENCE
    return SCALAR


def is_index(key: Any) -> bool:
    return isinstance(key, int) and not isinstance(key, bool)
