# tests/core/test_command_registry.py
import pytest

from pipeshell.core.command_registry import BUILTIN_COMMANDS, resolve_command
from pipeshell.core.exceptions import ResolutionError
from pipeshell.core.runnables import BuiltinRunnable, ExternalRunnable
from pipeshell.model import ASSIGNMENT_COMMAND, CommandDescription


def _desc(*arguments):
    return CommandDescription(name=arguments[0], arguments=list(arguments))


@pytest.mark.parametrize("arguments", [
    ("exit",),
    ("pwd",),
    ("cat", "file.txt"),
    ("cat",),
    ("echo", "hello"),
    ("wc", "file.txt"),
    ("wc",),
    ("grep", "-i", "pattern"),
    ("cd",),
])
def test_builtins_resolve_to_builtin_runnables(arguments):
    runnable = resolve_command(_desc(*arguments))
    assert isinstance(runnable, BuiltinRunnable)
    assert runnable.name == arguments[0]
    assert runnable.args == list(arguments[1:])
    assert runnable.handler is BUILTIN_COMMANDS[arguments[0]]


def test_only_exit_terminates():
    assert resolve_command(_desc("exit")).terminates is True
    assert resolve_command(_desc("echo")).terminates is False


def test_unknown_names_resolve_to_external_runnables():
    runnable = resolve_command(_desc("ls", "-l"))
    assert isinstance(runnable, ExternalRunnable)
    assert runnable.arguments == ["ls", "-l"]


def test_grep_without_pattern_is_rejected():
    with pytest.raises(ResolutionError) as excinfo:
        resolve_command(_desc("grep", "-i"))
    assert excinfo.value.command == "grep"


def test_assignments_are_not_runnable():
    desc = CommandDescription(name=ASSIGNMENT_COMMAND, arguments=["A", "1"])
    with pytest.raises(ResolutionError):
        resolve_command(desc)
