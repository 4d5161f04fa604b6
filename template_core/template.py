import re
from typing import Any, Callable, Iterator, Mapping, TypeAlias, TypeVar

from .util import log, shorten
from .context import Context, trace, is_tracing
from .errors import TemplateSyntaxError
from .expression import parse_expression
from .parser import Parser
from .values import to_str

ERROR_MODES = ('lax', 'warn', 'strict')
DEFAULT_ERROR_MODE = 'lax'

TEMPLATE_PARSER = re.compile(r'(\{%.*?%\}|\{\{.*?\}\})', re.S)
FULL_TAG = re.compile(r'\{%\s*(\w+)\s*(.*?)\s*%\}', re.S)

T = TypeVar('T')


def tokenize(source: str) -> list[str]:
    return [token for token in TEMPLATE_PARSER.split(source) if token]


class ParseContext:
    def __init__(self, error_mode: str | None = None):
        if error_mode is None:
            error_mode = DEFAULT_ERROR_MODE
        if error_mode not in ERROR_MODES:
            raise ValueError(f'bad error mode: {error_mode}')
        self.error_mode = error_mode
        self.warnings: list[TemplateSyntaxError] = []

    # `warn` tries the strict grammar first, and falls back to the lax one.
    def parse_with_selected_parser(
        self,
        markup: str,
        lax_parse: Callable[[str], T],
        strict_parse: Callable[[str], T],
    ) -> T:
        match self.error_mode:
            case 'strict':
                return strict_parse(markup)
            case 'lax':
                return lax_parse(markup)
            case _:
                try:
                    return strict_parse(markup)
                except TemplateSyntaxError as e:
                    log.warning('%s, parsed leniently: %s', e, shorten(markup))
                    self.warnings.append(e)
                    return lax_parse(markup)


class Tag:
    def __init__(self, tag_name: str, markup: str, parse_context: ParseContext):
        self.tag_name = tag_name
        self.markup = markup
        self.parse_context = parse_context

    # Inline tags have nothing to consume.
    def parse(self, tokens: Iterator[str]):
        pass

    @property
    def blank(self) -> bool:
        return False

    def render_to_output_buffer(self, context: Context, output: list[str]) -> list[str]:
        raise NotImplementedError(self.tag_name)


class Block(Tag):
    @property
    def block_delimiter(self) -> str:
        return 'end' + self.tag_name

    # Parses into `body` until a tag it does not know. Returns False once the
    # closing delimiter is reached.
    def parse_body(self, body: 'Body', tokens: Iterator[str]) -> bool:
        tag = body.parse(tokens, self.parse_context)
        if tag is None:
            raise TemplateSyntaxError(f"'{self.tag_name}' tag was never closed")

        name, markup = tag
        if name == self.block_delimiter:
            return False

        self.unknown_tag(name, markup, tokens)
        return True

    def unknown_tag(self, name: str, markup: str, tokens: Iterator[str]):
        if name.startswith('end'):
            raise TemplateSyntaxError(
                f"'{name}' is not a valid delimiter for {self.tag_name} tags. "
                f'use {self.block_delimiter}'
            )
        raise TemplateSyntaxError(f"Unknown tag '{name}'")


tags: dict[str, type[Tag]] = {}


def register_tag(name: str, tag_class: type[Tag]):
    tags[name] = tag_class


# Output statement: {{ expr }}
class Variable:
    def __init__(self, markup: str, parse_context: ParseContext):
        self.markup = markup
        self.expr = parse_context.parse_with_selected_parser(
            markup, parse_expression, self.strict_parse
        )

    @staticmethod
    def strict_parse(markup: str) -> Any:
        p = Parser(markup)
        expr = p.expression()
        p.consume('end_of_string')
        return expr

    def render_to_output_buffer(self, context: Context, output: list[str]) -> list[str]:
        output.append(to_str(context.evaluate(self.expr)))
        return output

    def __repr__(self) -> str:
        return f'Variable({self.markup.strip()})'


Node: TypeAlias = str | Tag | Variable


class Body:
    def __init__(self):
        self.nodelist: list[Node] | tuple[Node, ...] = []

    # Returns the `(name, markup)` of the first tag it cannot handle itself,
    # or None when the tokens run out.
    def parse(
        self, tokens: Iterator[str], parse_context: ParseContext
    ) -> tuple[str, str] | None:
        nodelist = self.nodelist
        if not isinstance(nodelist, list):
            raise RuntimeError('body already parsed')

        for token in tokens:
            if token.startswith('{%'):
                if (m := FULL_TAG.fullmatch(token)) is None:
                    raise TemplateSyntaxError(f'Tag {token!r} was not properly terminated')
                name, markup = m[1], m[2]
                if (tag_class := tags.get(name)) is None:
                    return name, markup

                tag = tag_class(name, markup, parse_context)
                tag.parse(tokens)
                nodelist.append(tag)
            elif token.startswith('{{'):
                nodelist.append(Variable(token[2:-2], parse_context))
            else:
                nodelist.append(token)

    @property
    def blank(self) -> bool:
        for node in self.nodelist:
            if isinstance(node, str):
                if not node.isspace():
                    return False
            elif not (isinstance(node, Tag) and node.blank):
                return False
        return True

    def remove_blank_strings(self):
        self.nodelist = [
            node for node in self.nodelist if not (isinstance(node, str) and node.isspace())
        ]

    def freeze(self):
        self.nodelist = tuple(self.nodelist)

    def render_to_output_buffer(self, context: Context, output: list[str]) -> list[str]:
        for node in self.nodelist:
            if isinstance(node, str):
                output.append(node)
            else:
                node.render_to_output_buffer(context, output)
        return output


class Template:
    def __init__(self, root: Body, warnings: list[TemplateSyntaxError]):
        self.root = root
        self.warnings = warnings

    @classmethod
    def parse(cls, source: str, *, error_mode: str | None = None) -> 'Template':
        parse_context = ParseContext(error_mode)
        tokens = iter(tokenize(source))

        root = Body()
        if (tag := root.parse(tokens, parse_context)) is not None:
            name, _ = tag
            if name in ('else', 'elsif') or name.startswith('end'):
                raise TemplateSyntaxError(f"Unexpected outer '{name}' tag")
            raise TemplateSyntaxError(f"Unknown tag '{name}'")
        root.freeze()

        if is_tracing:
            trace('Parsed template (%s): %s', parse_context.error_mode, root.nodelist)
        return cls(root, parse_context.warnings)

    def render(
        self,
        assigns: Mapping[str, Any] | Context | None = None,
        *,
        strict_variables: bool = False,
        environments: list[Mapping[str, Any]] | None = None,
    ) -> str:
        if isinstance(assigns, Context):
            context = assigns
        else:
            envs = [assigns] if assigns is not None else []
            if environments:
                envs.extend(environments)
            context = Context(environments=envs, strict_variables=strict_variables)

        output = self.root.render_to_output_buffer(context, [])
        r = ''.join(output)
        trace('Rendered result: %r', r)
        return r
