# src/pipeshell/core/handlers/core/cat_handler.py
import shutil
import sys
from typing import BinaryIO, List

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.utils.stream_utils import open_source


def handle_cat(args: List[str], _ctx: ShellContext, stdin: BinaryIO, stdout: BinaryIO) -> int:
    """
    Handles the 'cat' command.

    Copies the file named by the first argument, or the stage input when no
    file is given, to the stage output.

    Args:
        args (List[str]): Arguments after the command name.
        _ctx (ShellContext): The shell context (unused in this handler).
        stdin (BinaryIO): Stage input (pipe, redirect file or session input).
        stdout (BinaryIO): Stage output.

    Returns:
        int: 0 on success, 1 if the file cannot be opened.
    """
    path = args[0] if args else None
    try:
        source = open_source(path, stdin)
    except OSError as e:
        print(f"cat: {path}: {e.strerror}", file=sys.stderr)
        return 1

    with source as f:
        shutil.copyfileobj(f, stdout)
    return 0
