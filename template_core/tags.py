from dataclasses import dataclass
from typing import Iterator

from .context import Context, trace, is_tracing
from .condition import Condition, ElseCondition
from .errors import TemplateSyntaxError
from .expression import parse_expression
from .lex import scan_condition
from .parser import Parser
from .template import Block, Body, ParseContext, register_tag


@dataclass(frozen=True)
class Branch:
    condition: Condition
    body: Body


class ConditionalBlock(Block):
    '''
    {% if cond %} ... {% elsif cond %} ... {% else %} ... {% endif %}

    Only the body of the first branch whose condition holds is rendered; the
    conditions after it are never evaluated.
    '''

    def __init__(self, tag_name: str, markup: str, parse_context: ParseContext):
        super().__init__(tag_name, markup, parse_context)
        self._pending: list[Branch] = []
        self.branches: tuple[Branch, ...] = ()
        self.push_branch(tag_name, markup)

    @property
    def nodelist(self) -> list[Body]:
        return [branch.body for branch in self.branches or self._pending]

    @property
    def blank(self) -> bool:
        return all(body.blank for body in self.nodelist)

    def push_branch(self, tag_name: str, markup: str):
        if tag_name == 'else':
            condition = ElseCondition()
        else:
            condition = self.parse_context.parse_with_selected_parser(
                markup, self.lax_parse, self.strict_parse
            )
        self._pending.append(Branch(condition, Body()))

    def parse(self, tokens: Iterator[str]):
        while self.parse_body(self._pending[-1].body, tokens):
            pass

        # A block of only whitespace and blank tags renders nothing at all.
        blank = self.blank
        for branch in self._pending:
            if blank:
                branch.body.remove_blank_strings()
            branch.body.freeze()

        self.branches = tuple(self._pending)
        self._pending = []

    def unknown_tag(self, name: str, markup: str, tokens: Iterator[str]):
        if name not in ('elsif', 'else'):
            return super().unknown_tag(name, markup, tokens)

        if isinstance(self._pending[-1].condition, ElseCondition):
            raise TemplateSyntaxError(f"'{name}' after 'else' in {self.tag_name} tag")
        self.push_branch(name, markup)

    def lax_parse(self, markup: str) -> Condition:
        clauses: list[list[tuple[str, str]]] = [[]]
        relations: list[str] = []
        for kind, text in scan_condition(markup):
            if kind == 'keyword':
                relations.append(text)
                clauses.append([])
            else:
                clauses[-1].append((kind, text))

        # Build from the right, linking each new condition to the current one.
        condition = self._lax_clause(clauses.pop(), markup)
        while clauses:
            new = self._lax_clause(clauses.pop(), markup)
            if relations.pop() == 'and':
                condition = new.and_(condition)
            else:
                condition = new.or_(condition)
        return condition

    def _lax_clause(self, tokens: list[tuple[str, str]], markup: str) -> Condition:
        if not tokens or tokens[0][0] == 'operator':
            raise TemplateSyntaxError(
                f"Syntax Error in tag '{self.tag_name}' - "
                f'Valid syntax: {self.tag_name} [expression]: "{markup}"'
            )

        left = parse_expression(tokens[0][1])
        if len(tokens) == 1:
            return Condition(left)

        # `a ==` compares against nil; fragments past the right operand are ignored.
        operator = tokens[1][1]
        right = parse_expression(tokens[2][1]) if len(tokens) > 2 else None
        if len(tokens) > 3:
            trace('Ignored trailing markup: %s', tokens[3:])
        return Condition(left, operator, right)

    def strict_parse(self, markup: str) -> Condition:
        p = Parser(markup)
        condition = self._parse_binary_comparisons(p)
        p.consume('end_of_string')
        return condition

    def _parse_binary_comparisons(self, p: Parser) -> Condition:
        conditions = [self._parse_comparison(p)]
        relations = []
        while relation := p.id_p('and') or p.id_p('or'):
            relations.append(relation)
            conditions.append(self._parse_comparison(p))

        condition = conditions.pop()
        while conditions:
            condition = conditions.pop().link(relations.pop(), condition)
        return condition

    @staticmethod
    def _parse_comparison(p: Parser) -> Condition:
        left = p.expression()
        if (operator := p.consume_if('comparison')) is not None:
            return Condition(left, operator, p.expression())
        return Condition(left)

    def branch_holds(self, index: int, branch: Branch, context: Context) -> bool:
        return branch.condition.evaluate(context)

    def render_to_output_buffer(self, context: Context, output: list[str]) -> list[str]:
        for i, branch in enumerate(self.branches):
            if self.branch_holds(i, branch, context):
                if is_tracing:
                    trace('%s: taking branch %s (%s)', self.tag_name, i, branch.condition)
                return branch.body.render_to_output_buffer(context, output)
        return output

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.markup})'


class Unless(ConditionalBlock):
    '''
    {% unless cond %} renders its body when `cond` does not hold. The `elsif`
    and `else` branches behave as in `if`.
    '''

    def branch_holds(self, index: int, branch: Branch, context: Context) -> bool:
        if index == 0:
            return not branch.condition.evaluate(context)
        return super().branch_holds(index, branch, context)


register_tag('if', ConditionalBlock)
register_tag('unless', Unless)
