# src/pipeshell/core/handlers/core/cd_handler.py
import logging
import os
import sys
from typing import BinaryIO, List

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def handle_cd(args: List[str], ctx: ShellContext, _stdin: BinaryIO, _stdout: BinaryIO) -> int:
    """
    Handles the 'cd' command.

    Changes the working directory of the shell process to the given
    directory, or to $HOME when called without arguments, and records the
    new location in the PWD variable.

    Returns:
        int: 0 on success, 1 for too many arguments or an unusable directory.
    """
    if len(args) > 1:
        print("cd: too many arguments", file=sys.stderr)
        return 1

    target = args[0] if args else (ctx.get("HOME") or str(PathUtils.get_home_dir()))
    try:
        os.chdir(target)
    except OSError as e:
        print(f"cd: {target}: {e.strerror}", file=sys.stderr)
        return 1

    ctx.set("PWD", os.getcwd())
    logger.debug("Working directory changed to %s", os.getcwd())
    return 0
