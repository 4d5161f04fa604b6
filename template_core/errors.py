class TemplateError(Exception):
    pass


# Malformed markup. Raised while parsing only, never while rendering.
class TemplateSyntaxError(TemplateError):
    pass


class UndefinedVariable(TemplateError):
    def __init__(self, key):
        super().__init__(f'undefined variable {key}')
        self.key = key


class UndefinedDropMethod(TemplateError):
    def __init__(self, name: str):
        super().__init__(f'undefined method {name}')
        self.name = name


# Relational operator applied to operands that cannot be ordered.
class ComparisonError(TemplateError, TypeError):
    pass
