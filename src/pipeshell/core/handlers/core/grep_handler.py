# src/pipeshell/core/handlers/core/grep_handler.py
import argparse
import re
import sys
from typing import BinaryIO, List

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.utils.stream_utils import decode_bytes, open_source


class NoExitArgumentParser(argparse.ArgumentParser):
    """Argument parser that raises exceptions instead of exiting the shell."""
    def error(self, message):
        raise ValueError(message)

    def exit(self, status=0, message=None):
        raise ValueError(message or "argument parsing stopped")


def _non_negative(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative number, got {value}")
    return number


def parse_grep_args(args: List[str]) -> argparse.Namespace:
    """
    Parses 'grep [-i] [-w] [-A N] PATTERN [FILE]'.

    Flags are only recognised before the pattern: 'grep foo -i' searches
    the file named '-i'.

    Raises:
        ValueError: when the pattern is missing or a flag is malformed.
    """
    parser = NoExitArgumentParser(prog="grep", add_help=False)
    parser.add_argument("-i", dest="ignore_case", action="store_true")
    parser.add_argument("-w", dest="whole_word", action="store_true")
    parser.add_argument("-A", dest="after_context", type=_non_negative, default=0)
    parser.add_argument("operands", nargs=argparse.REMAINDER)
    options = parser.parse_args(args)

    operands = options.operands
    if not operands:
        parser.error("the following arguments are required: pattern")
    if len(operands) > 2:
        parser.error(f"unrecognized arguments: {' '.join(operands[2:])}")
    options.pattern = operands[0]
    options.file = operands[1] if len(operands) > 1 else None
    del options.operands
    return options


def handle_grep(args: List[str], _ctx: ShellContext, stdin: BinaryIO, stdout: BinaryIO) -> int:
    """
    Handles the 'grep' command.

    Prints every line of the file (or the stage input) matching the regular
    expression, plus up to N following lines with -A N. Each line is printed
    at most once.

    Returns:
        int: 0 if at least one line matched, 1 for no match, an invalid
        pattern or an unreadable file.
    """
    options = parse_grep_args(args)

    pattern = options.pattern
    if options.whole_word:
        pattern = rf"\b{re.escape(pattern)}\b"

    try:
        regex = re.compile(pattern, re.IGNORECASE if options.ignore_case else 0)
    except re.error as e:
        print(f"grep: invalid pattern: {e}", file=sys.stderr)
        return 1

    try:
        source = open_source(options.file, stdin)
    except OSError as e:
        print(f"grep: {options.file}: {e.strerror}", file=sys.stderr)
        return 1

    matched = False
    remaining_context = 0
    with source as f:
        for raw in f:
            if regex.search(decode_bytes(raw.rstrip(b"\n"))):
                matched = True
                remaining_context = options.after_context
            elif remaining_context > 0:
                remaining_context -= 1
            else:
                continue
            stdout.write(raw if raw.endswith(b"\n") else raw + b"\n")

    return 0 if matched else 1
