# src/pipeshell/core/exceptions.py
"""
Error types raised while preparing a pipeline.

Runtime failures of a builtin are not exceptions at this level: handlers
report them through their exit code (1) and a message on stderr.
"""


class ShellError(Exception):
    """Base class for all errors raised by the interpreter core."""


class ResolutionError(ShellError):
    """A descriptor could not be turned into a runnable unit (exit code 127)."""

    def __init__(self, command: str, reason: str = "command not found"):
        self.command = command
        self.reason = reason
        super().__init__(f"{command}: {reason}")


class IOSetupError(ShellError):
    """A redirection file or inter-stage pipe could not be set up (fatal to the pipeline)."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
