# src/pipeshell/core/handlers/core/wc_handler.py
import sys
from typing import BinaryIO, List

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.utils.stream_utils import open_source, write_line


def handle_wc(args: List[str], _ctx: ShellContext, stdin: BinaryIO, stdout: BinaryIO) -> int:
    """
    Handles the 'wc' command.

    Prints "<lines> <words> <bytes>" for the given file (followed by its
    name) or for the stage input. A final line without a trailing newline
    still counts as a line.

    Returns:
        int: 0 on success, 1 if the file cannot be opened.
    """
    path = args[0] if args else None
    try:
        source = open_source(path, stdin)
    except OSError as e:
        print(f"wc: {path}: {e.strerror}", file=sys.stderr)
        return 1

    lines = words = size = 0
    with source as f:
        for line in f:
            lines += 1
            words += len(line.split())
            size += len(line)

    counts = f"{lines} {words} {size}"
    write_line(stdout, f"{counts} {path}" if path else counts)
    return 0
