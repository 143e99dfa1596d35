# src/pipeshell/core/handlers/core/echo_handler.py
from typing import BinaryIO, List

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.utils.stream_utils import write_line


def handle_echo(args: List[str], _ctx: ShellContext, _stdin: BinaryIO, stdout: BinaryIO) -> int:
    """Prints the arguments separated by single spaces, followed by a newline."""
    write_line(stdout, " ".join(args))
    return 0
