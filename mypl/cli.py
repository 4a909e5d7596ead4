"""MyPL CLI — check, pretty-print, or run .mypl programs."""

from __future__ import annotations

import logging
import sys

from . import check, parse, to_source
from .errors import MyPLError
from .runtime import run

logger = logging.getLogger(__name__)


USAGE: str = """\
mypl [OPTIONS] [FILE]

Run a MyPL program. Without FILE the program is read from standard input.

Options:
  --check   Parse and type-check only
  --emit    Print the parsed program as formatted source
  --debug   Log pipeline phases to stderr
  --help    Show this help message
"""


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    check_only = False
    emit_only = False
    debug = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--check":
            check_only = True
            i += 1
        elif arg == "--emit":
            emit_only = True
            i += 1
        elif arg == "--debug":
            debug = True
            i += 1
        elif arg.startswith("-"):
            print("mypl: unknown flag '" + arg + "'", file=sys.stderr)
            print(USAGE, end="", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("mypl: unexpected argument '" + arg + "'", file=sys.stderr)
            print(USAGE, end="", file=sys.stderr)
            return 2

    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    if filepath == "":
        source = sys.stdin.read()
        logger.debug("read %d characters from stdin", len(source))
    else:
        try:
            with open(filepath, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            print("mypl: " + filepath + ": No such file or directory", file=sys.stderr)
            return 1
        except OSError as e:
            print("mypl: " + filepath + ": " + str(e), file=sys.stderr)
            return 1
        try:
            source = raw.decode("utf-8")
        except ValueError:
            print("mypl: " + filepath + ": invalid utf-8", file=sys.stderr)
            return 1
        logger.debug("read %s", filepath)

    try:
        if emit_only:
            sys.stdout.write(to_source(parse(source)))
            return 0
        program = check(source)
        if check_only:
            return 0
        result = run(program)
    except MyPLError as e:
        print(e.render())
        return 1
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
