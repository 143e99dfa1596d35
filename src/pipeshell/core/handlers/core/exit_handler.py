# src/pipeshell/core/handlers/core/exit_handler.py
from typing import BinaryIO, List

from pipeshell.core.context.shell_context import ShellContext


def handle_exit(_args: List[str], ctx: ShellContext, _stdin: BinaryIO, _stdout: BinaryIO) -> int:
    """
    Signals the shell to stop. The exit code is inherited: the engine passes
    on the preceding stage's code, and a standalone 'exit' reports the code of
    the last completed pipeline.
    """
    return ctx.last_exit_code
