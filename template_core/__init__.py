from .errors import (
    TemplateError,
    TemplateSyntaxError,
    UndefinedVariable,
    UndefinedDropMethod,
    ComparisonError,
)
from .values import Drop, is_truthy, to_str
from .context import Context
from .expression import parse_expression, EMPTY, BLANK
from .lookup import VariableLookup, RangeLookup
from .condition import Condition, ElseCondition
from .template import Template, ParseContext, Tag, Block, Body, register_tag
from .tags import ConditionalBlock, Unless
