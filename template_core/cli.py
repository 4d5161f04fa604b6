import os
import sys
import time
import logging
import argparse

from .util import log
from .errors import TemplateError
from .template import Template


# The package logger does not propagate, so the file handler goes on it directly.
def setup_trace_log(path: str = 'template_core_cli.log') -> logging.Handler:
    log.setLevel(logging.DEBUG)
    h = logging.FileHandler(path, 'w', 'utf-8')
    log.addHandler(h)
    return h


if 'TRACE' in os.environ:
    setup_trace_log()


def try_to_value(s: str) -> int | float | str:
    try:
        return int(s)
    except ValueError:
        try:
            return float(s)
        except ValueError:
            return s


def parse_assign(arg: str) -> tuple[str, int | float | str]:
    key, sep, val = arg.partition('=')
    if not sep or not key:
        raise argparse.ArgumentTypeError(f'expected key=value: {arg}')
    return key, try_to_value(val)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description='Render a template.')
    parser.add_argument('file', help="Template file, or '-' for stdin")
    parser.add_argument('args', nargs='*', type=parse_assign, help='key=value assigns')
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--strict', dest='error_mode', action='store_const', const='strict',
        help='Parse with the strict grammar',
    )
    mode.add_argument(
        '--warn', dest='error_mode', action='store_const', const='warn',
        help='Parse strictly, falling back to the lax grammar with a warning',
    )
    parser.add_argument(
        '-S', '--strict-variables', action='store_true',
        help='Fail on undefined variables',
    )
    parser.add_argument(
        '-c', '--dump-ctx', action='store_true', help='Dump assigns after rendering'
    )
    args = parser.parse_args(argv)

    file = args.file
    if file == '-':
        text = sys.stdin.read()
    else:
        with open(file, encoding='utf-8') as fp:
            text = fp.read()

    assigns = dict(args.args)
    try:
        result, dt = emit(text, assigns, args.error_mode, args.strict_variables)
    except TemplateError as e:
        print('Error:', e, file=sys.stderr)
        sys.exit(1)

    print(result)

    if args.dump_ctx:
        for k, v in assigns.items():
            print(' ', k, '=', repr(v), file=sys.stderr)

    print(f'Time cost: {dt:.3f} secs', file=sys.stderr)


def emit(text: str, assigns: dict, error_mode: str | None, strict_variables: bool):
    t0 = time.perf_counter()
    t = Template.parse(text, error_mode=error_mode)
    for w in t.warnings:
        print('Warning:', w, file=sys.stderr)
    result = t.render(assigns, strict_variables=strict_variables)
    dt = time.perf_counter() - t0
    return result, dt


if __name__ == '__main__':
    main()
