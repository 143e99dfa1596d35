from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, TextIO

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.core import (
    execute_sequence,
    parse_command_line,
)
from pipeshell.core.managers.config_manager import config_manager
from pipeshell.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def create_context() -> ShellContext:
    """Creates the session context, seeded from the host environment when configured."""
    inherit = config_manager.get_nested("shell.inherit_environment", True)
    ctx = ShellContext(os.environ if inherit else None)
    logger.debug("Session context created: %r", ctx)
    return ctx


def run_line(line: str, ctx: ShellContext) -> tuple[int, bool]:
    """Parses and executes one input line. Returns (exit code, should exit)."""
    commands = parse_command_line(line)
    if not commands:
        return ctx.last_exit_code, False
    return execute_sequence(commands, ctx)


# --- Shell Application ---


def start_shell(
        ctx: Optional[ShellContext] = None,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
) -> int:
    """
    Starts the read loop: prompt, read one line, execute it, until end of
    input or a terminating command.

    Returns:
        int: The exit code of the terminating command, or of the last
        pipeline when input ran out.
    """
    ctx = ctx or create_context()
    input_stream = stdin or sys.stdin
    output_stream = stdout or sys.stdout
    prompt = config_manager.get_nested("shell.prompt", "$ ")

    while True:
        output_stream.write(prompt)
        output_stream.flush()
        try:
            line = input_stream.readline()
        except KeyboardInterrupt:
            output_stream.write("\n")
            break

        if not line:
            break

        line = line.strip()
        if not line:
            continue

        code, exited = run_line(line, ctx)
        if exited:
            return code

    return ctx.last_exit_code


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for running the shell from the command line."""
    parser = argparse.ArgumentParser(
        prog="pipeshell",
        description="A line-oriented command interpreter with pipes, redirection and variables.",
    )
    parser.add_argument("-c", dest="command", metavar="LINE", help="Execute LINE and exit with its code.")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Overrides debug.level from settings.json.")
    parser.add_argument(
        "--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
        help="Overrides a dotted settings key for this session, e.g. --set shell.prompt='> '.",
    )
    args = parser.parse_args(argv)

    for override in args.overrides:
        key, sep, value = override.partition("=")
        if not sep or not key:
            parser.error(f"--set expects KEY=VALUE, got {override!r}")
        config_manager.set_nested(key, value)
    if args.log_level:
        config_manager.set_nested("debug.level", args.log_level)

    configure_logger(
        config_manager.get_nested("debug.level", "WARNING"),
        module_specific_levels=config_manager.get_nested("debug.module_levels"),
    )

    ctx = create_context()
    if args.command is not None:
        code, _ = run_line(args.command, ctx)
        return code

    logger.info("Starting interactive read loop.")
    return start_shell(ctx)


if __name__ == "__main__":
    sys.exit(main())
