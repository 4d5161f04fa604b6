from .context import trace

BOOLEAN_OPERATORS = ('and', 'or')

# Characters forming comparison operators, e.g. `==`, `<>` and `>=`.
OPERATOR_CHARS = '=!<>'


def _is_word_char(c: str) -> bool:
    return c.isalnum() or c == '_' or c == '-'


def scan_variable(markup: str) -> list[str]:
    r'''
    Chunks a variable path like `a.b["c"][d].size` into its segments.

    A segment is either:

    1. A bracket group `[...]`, kept with its brackets. Nested brackets are
       balanced and brackets inside quotes are ignored, so `a["]"]` works.
    2. A bareword of word characters and `-`, with an optional trailing `?`.

    Anything else (dots, spaces, stray punctuation) only separates segments.
    '''
    segments = []

    # Start of the segment being scanned, if any.
    start = None
    depth = 0
    quote = None

    for p, c in enumerate(markup):
        if depth:
            if quote:
                if c == quote:
                    quote = None
                continue

            match c:
                case "'" | '"':
                    quote = c
                case '[':
                    depth += 1
                case ']':
                    depth -= 1
                    if not depth:
                        segments.append(markup[start : p + 1])
                        start = None
            continue

        if c == '[':
            if start is not None:
                segments.append(markup[start:p])
            start = p
            depth = 1
        elif _is_word_char(c):
            if start is None:
                start = p
        elif start is not None:
            if c == '?':
                segments.append(markup[start : p + 1])
            else:
                segments.append(markup[start:p])
            start = None

    if depth:
        # Unclosed bracket. Rescan what follows it as plain segments.
        trace('Unclosed bracket at %s: %s', start, markup)
        segments.extend(scan_variable(markup[start + 1 :]))
    elif start is not None:
        segments.append(markup[start:])

    return segments


def scan_condition(markup: str) -> list[tuple[str, str]]:
    r'''
    Chunks the markup of an `if` tag into `(kind, text)` tokens, where kind is:

    - `keyword`: a standalone `and` or `or`.
    - `operator`: a run of comparison characters, like `==` or `<=`.
    - `fragment`: anything else delimited by spaces or operators. Quoted
      strings and bracket or paren groups are never split, so keywords and
      operators inside them are part of the fragment: `a == "b and c"`.

    Textual operators such as `contains` come out as fragments.
    '''
    tokens = []

    kind = None
    start = 0
    depth = 0
    quote = None

    def flush(end: int):
        nonlocal kind
        if kind is None:
            return
        text = markup[start:end]
        if kind == 'fragment' and text in BOOLEAN_OPERATORS:
            tokens.append(('keyword', text))
        else:
            tokens.append((kind, text))
        kind = None

    for p, c in enumerate(markup):
        if quote:
            if c == quote:
                quote = None
            continue

        if depth:
            match c:
                case "'" | '"':
                    quote = c
                case '[' | '(':
                    depth += 1
                case ']' | ')':
                    depth -= 1
            continue

        if c.isspace():
            flush(p)
            continue

        new_kind = 'operator' if c in OPERATOR_CHARS else 'fragment'
        if kind != new_kind:
            flush(p)
            kind = new_kind
            start = p

        match c:
            case "'" | '"':
                quote = c
            case '[' | '(':
                depth = 1

    # Unterminated quotes or groups are kept in the last fragment.
    flush(len(markup))
    trace('scan_condition: %r -> %s', markup, tokens)
    return tokens
