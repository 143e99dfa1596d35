# src/pipeshell/core/command_registry.py
import logging
from typing import Any, Callable, Dict, List

from pipeshell.core.exceptions import ResolutionError
from pipeshell.core.handlers.core.cat_handler import handle_cat
from pipeshell.core.handlers.core.cd_handler import handle_cd
from pipeshell.core.handlers.core.echo_handler import handle_echo
from pipeshell.core.handlers.core.exit_handler import handle_exit
from pipeshell.core.handlers.core.grep_handler import handle_grep, parse_grep_args
from pipeshell.core.handlers.core.pwd_handler import handle_pwd
from pipeshell.core.handlers.core.wc_handler import handle_wc
from pipeshell.core.runnables import BuiltinRunnable, ExternalRunnable, Handler, Runnable
from pipeshell.model import EXIT_COMMAND, CommandDescription

logger = logging.getLogger(__name__)

# The closed set of builtins. Every other name is looked up as an executable.
BUILTIN_COMMANDS: Dict[str, Handler] = {
    "cat": handle_cat,
    "cd": handle_cd,
    "echo": handle_echo,
    "exit": handle_exit,
    "grep": handle_grep,
    "pwd": handle_pwd,
    "wc": handle_wc,
}

# Argument checks run before a builtin is constructed; they raise ValueError.
ARGUMENT_VALIDATORS: Dict[str, Callable[[List[str]], Any]] = {
    "grep": parse_grep_args,
}


def resolve_command(description: CommandDescription) -> Runnable:
    """
    Maps a (substituted) invocation descriptor to its runnable unit.

    Raises:
        ResolutionError: for an assignment descriptor or a builtin invoked
        with invalid arguments. Spawn failures of external programs surface
        later, from ExternalRunnable.start().
    """
    if description.is_assignment:
        raise ResolutionError(description.name, "assignments are not runnable")

    name = description.name
    args = description.arguments[1:]
    handler = BUILTIN_COMMANDS.get(name)
    if handler is None:
        logger.debug("'%s' is not a builtin, treating it as an external program.", name)
        return ExternalRunnable(description.arguments)

    validate = ARGUMENT_VALIDATORS.get(name)
    if validate is not None:
        try:
            validate(args)
        except ValueError as e:
            raise ResolutionError(name, str(e)) from e

    return BuiltinRunnable(name, handler, args, terminates=name == EXIT_COMMAND)
