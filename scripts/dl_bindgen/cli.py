"""
Command-line interface

    gen_bindings.py INPUT OUTPUT [--library NAME] [--stubs PATH]
"""

import argparse
import sys
from typing import Optional

from .errors import GenerationError, InvalidSpec
from .generator import Generator, write_text

EXIT_READ = 3
EXIT_PARSE = 4
EXIT_GENERATE = 5
EXIT_WRITE = 6


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='gen_bindings.py',
        description='Generate safe ctypes bindings from a JSON binding spec')
    parser.add_argument('input', help='binding spec (JSON)')
    parser.add_argument('output', help='generated Python module')
    parser.add_argument('--library', default=None,
                        help='shared object name (default: from the document, else lib<input stem>)')
    parser.add_argument('--stubs', default=None,
                        help='also write a .pyi stub to this path')
    return parser


def _fail(message: str, status: int) -> int:
    print(f'error: {message}', file=sys.stderr)
    return status


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    print('=== Generating bindings:')
    print(f'  {args.input} => {args.output}')

    try:
        gen = Generator.from_file(args.input, library=args.library)
    except OSError as e:
        return _fail(f"couldn't open file '{args.input}': {e.strerror or e}", EXIT_READ)
    except InvalidSpec as e:
        return _fail(f'invalid spec "{args.input}": {e}', EXIT_PARSE)
    except ValueError as e:
        return _fail(f'invalid file format "{args.input}": {e}', EXIT_PARSE)
    except GenerationError as e:
        return _fail(f'{type(e).__name__}: {e}', EXIT_GENERATE)

    try:
        code = gen.generate()
        stubs = gen.generate_stubs() if args.stubs else None
    except InvalidSpec as e:
        return _fail(f'invalid spec "{args.input}": {e}', EXIT_PARSE)
    except GenerationError as e:
        return _fail(f'{type(e).__name__}: {e}', EXIT_GENERATE)

    try:
        write_text(args.output, code)
        if args.stubs:
            write_text(args.stubs, stubs)
    except OSError as e:
        return _fail(f"couldn't save file '{e.filename or args.output}': {e.strerror or e}", EXIT_WRITE)

    return 0


if __name__ == '__main__':
    sys.exit(main())
