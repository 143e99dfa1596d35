# src/pipeshell/core/handlers/core/pwd_handler.py
import os
import sys
from typing import BinaryIO, List

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.utils.stream_utils import write_line


def handle_pwd(_args: List[str], _ctx: ShellContext, _stdin: BinaryIO, stdout: BinaryIO) -> int:
    """Prints the current working directory."""
    try:
        cwd = os.getcwd()
    except OSError as e:
        print(f"pwd: {e.strerror}", file=sys.stderr)
        return 1
    write_line(stdout, cwd)
    return 0
