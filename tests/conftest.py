import io
import os

import pytest

from pipeshell.core.command_registry import resolve_command
from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.parser import parse_command_line
from pipeshell.core.xngine import ExecuteEngine


@pytest.fixture
def ctx():
    """A fresh, empty session context for every test."""
    return ShellContext()


@pytest.fixture
def host_ctx():
    """A session context seeded from the host environment (PATH, HOME, ...)."""
    return ShellContext(os.environ)


@pytest.fixture
def engine():
    """An engine wired to the real builtin/external resolver."""
    return ExecuteEngine(resolve_fn=resolve_command)


@pytest.fixture
def run(engine):
    """
    Runs one input line against in-memory session streams and returns
    (exit code, should exit, bytes written to the session output).
    """
    def _run(line, context, stdin=b""):
        out = io.BytesIO()
        code, exited = engine.execute_sequence(
            parse_command_line(line), context, stdin=io.BytesIO(stdin), stdout=out
        )
        return code, exited, out.getvalue()

    return _run
