from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass
from typing import BinaryIO, Callable, Dict, Iterator, List, Optional, Pattern, Tuple

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.exceptions import IOSetupError, ResolutionError
from pipeshell.core.runnables import Runnable, StageStreams
from pipeshell.model import EXIT_COMMAND, CommandDescription

# $NAME or ${NAME}
VAR_PATTERN = re.compile(r"\$\{(\w+)\}|\$(\w+)")

NOT_FOUND_EXIT_CODE = 127
FAILURE_EXIT_CODE = 1


@dataclass
class PreparedStage:
    """An invocation descriptor after substitution, wiring and resolution."""
    description: CommandDescription
    env: Dict[str, str]
    streams: Optional[StageStreams] = None
    runnable: Optional[Runnable] = None
    started: bool = False

    @property
    def is_exit(self) -> bool:
        return self.description.name == EXIT_COMMAND


class ExecuteEngine:
    """
    Core engine responsible for running parsed descriptor lists: variable
    substitution, redirection, pipe wiring between concurrently running
    stages, and exit code / termination propagation.
    """

    def __init__(
            self,
            *,
            resolve_fn: Callable[[CommandDescription], Runnable],
            var_pattern: Pattern[str] = VAR_PATTERN,
            logger: Optional[logging.Logger] = None,
    ) -> None:
        self._resolve = resolve_fn
        self._VAR_PATTERN = var_pattern
        self._log = logger or logging.getLogger(__name__)

    def expand_vars(self, text: str, ctx: ShellContext) -> str:
        """Performs $NAME / ${NAME} substitution; unset variables are left as written."""
        def repl(m: re.Match) -> str:
            name = m.group(1) or m.group(2)
            val = ctx.get(name)
            return val if val is not None else m.group(0)

        return self._VAR_PATTERN.sub(repl, text)

    def execute_sequence(
            self,
            commands: List[CommandDescription],
            context: Optional[ShellContext] = None,
            *,
            stdin: Optional[BinaryIO] = None,
            stdout: Optional[BinaryIO] = None,
    ) -> Tuple[int, bool]:
        """
        Executes every pipeline of one parsed line, in order.

        Returns:
            Tuple[int, bool]: the terminal stage's exit code of the last
            pipeline that ran (the session's previous code if only
            assignments ran), and whether the session should terminate.
        """
        ctx = context or ShellContext()
        stdin = stdin if stdin is not None else sys.stdin.buffer
        stdout = stdout if stdout is not None else sys.stdout.buffer

        last_exit = ctx.last_exit_code
        for pipeline in self._split_pipelines(commands):
            code, exited = self._execute_pipeline(pipeline, ctx, stdin, stdout)
            if code is None:
                continue

            last_exit = code
            ctx.last_exit_code = code
            if exited:
                self._log.debug("Session termination requested with code %d.", code)
                return code, True

        return last_exit, False

    @staticmethod
    def _split_pipelines(commands: List[CommandDescription]) -> Iterator[List[CommandDescription]]:
        """A pipeline runs up to and including the first invocation that is not piped."""
        current: List[CommandDescription] = []
        for desc in commands:
            current.append(desc)
            if not desc.is_assignment and not desc.is_piped:
                yield current
                current = []
        if current:
            yield current

    # --- Pipeline Handling ---

    def _execute_pipeline(
            self,
            pipeline: List[CommandDescription],
            ctx: ShellContext,
            stdin: BinaryIO,
            stdout: BinaryIO,
    ) -> Tuple[Optional[int], bool]:
        stages: List[PreparedStage] = []
        for desc in pipeline:
            if desc.is_assignment:
                self._assign(desc, ctx)
                continue
            # Each stage sees the environment as of its own substitution.
            stages.append(PreparedStage(self._substitute(desc, ctx), ctx.snapshot()))

        if not stages:
            return None, False

        try:
            try:
                self._wire(stages, stdin, stdout)
            except IOSetupError as e:
                self._log.warning("Pipeline aborted during I/O setup: %s", e)
                print(f"pipeshell: {e}", file=sys.stderr)
                return FAILURE_EXIT_CODE, False

            last = len(stages) - 1
            for k, stage in enumerate(stages):
                if stage.is_exit and k != last:
                    continue
                self._resolve_stage(stage)

            for stage in stages:
                self._start_stage(stage, ctx)

            results: List[Optional[Tuple[int, bool]]] = []
            for stage in stages:
                results.append(self._wait_stage(stage))
        finally:
            for stage in stages:
                if stage.streams is not None and not stage.started:
                    stage.streams.close_owned()

        return self._terminal_result(stages, results, ctx)

    def _terminal_result(
            self,
            stages: List[PreparedStage],
            results: List[Optional[Tuple[int, bool]]],
            ctx: ShellContext,
    ) -> Tuple[int, bool]:
        """
        The pipeline reports its terminal stage. A terminating terminal stage
        inherits the code of the nearest preceding stage that actually ran.
        """
        code, exited = results[-1] if results[-1] is not None else (ctx.last_exit_code, False)
        if not exited:
            return code, False

        for stage, result in zip(reversed(stages[:-1]), reversed(results[:-1])):
            if result is not None and not stage.is_exit:
                return result[0], True
        return code, True

    def _assign(self, desc: CommandDescription, ctx: ShellContext) -> None:
        key, value = desc.arguments
        if 1 not in desc.single_quoted:
            value = self.expand_vars(value, ctx)
        ctx.set(key, value)
        self._log.debug("Assigned %s=%r", key, value)

    def _substitute(self, desc: CommandDescription, ctx: ShellContext) -> CommandDescription:
        args = [
            arg if i in desc.single_quoted else self.expand_vars(arg, ctx)
            for i, arg in enumerate(desc.arguments)
        ]
        substituted = desc.with_arguments(args)

        paths = {}
        if desc.file_in_path is not None and not desc.in_path_literal:
            paths["file_in_path"] = self.expand_vars(desc.file_in_path, ctx)
        if desc.file_out_path is not None and not desc.out_path_literal:
            paths["file_out_path"] = self.expand_vars(desc.file_out_path, ctx)
        return substituted.model_copy(update=paths) if paths else substituted

    def _wire(self, stages: List[PreparedStage], stdin: BinaryIO, stdout: BinaryIO) -> None:
        """
        Gives every stage its input and output: redirection file, then pipe,
        then session stream. An 'exit' stage neither reads nor writes, so its
        neighbours are connected to the null device instead of a pipe.

        Raises:
            IOSetupError: if a pipe cannot be created or a file cannot be opened.
        """
        for stage in stages:
            stage.streams = StageStreams(stdin=stdin, stdout=stdout)

        for producer, consumer in zip(stages, stages[1:]):
            if producer.is_exit or consumer.is_exit:
                if not producer.is_exit:
                    producer.streams.stdout = producer.streams.own(self._open(os.devnull, "wb"))
                if not consumer.is_exit:
                    consumer.streams.stdin = consumer.streams.own(self._open(os.devnull, "rb"))
                continue

            try:
                read_fd, write_fd = os.pipe()
            except OSError as e:
                raise IOSetupError("pipe", e.strerror or str(e)) from e
            producer.streams.stdout = producer.streams.own(open(write_fd, "wb"))
            consumer.streams.stdin = consumer.streams.own(open(read_fd, "rb"))

        for stage in stages:
            desc = stage.description
            if stage.is_exit:
                continue
            if desc.file_in_path is not None:
                stage.streams.replace_stdin(self._open(desc.file_in_path, "rb"))
            if desc.file_out_path is not None:
                mode = "ab" if desc.append_out else "wb"
                stage.streams.replace_stdout(self._open(desc.file_out_path, mode))

    @staticmethod
    def _open(path: str, mode: str) -> BinaryIO:
        try:
            return open(path, mode)
        except OSError as e:
            raise IOSetupError(path, e.strerror or str(e)) from e
        except ValueError as e:
            # e.g. an embedded null byte
            raise IOSetupError(repr(path), str(e)) from e

    def _resolve_stage(self, stage: PreparedStage) -> None:
        try:
            stage.runnable = self._resolve(stage.description)
        except ResolutionError as e:
            self._report_not_found(e, stage)

    def _start_stage(self, stage: PreparedStage, ctx: ShellContext) -> None:
        if stage.runnable is None:
            return
        try:
            stage.runnable.start(stage.streams, ctx, stage.env)
        except ResolutionError as e:
            stage.runnable = None
            self._report_not_found(e, stage)
            return
        stage.started = True

    def _wait_stage(self, stage: PreparedStage) -> Optional[Tuple[int, bool]]:
        if stage.started:
            return stage.runnable.wait()
        if stage.is_exit:
            return None
        return NOT_FOUND_EXIT_CODE, False

    def _report_not_found(self, error: ResolutionError, stage: PreparedStage) -> None:
        self._log.debug("Resolution failed for %r: %s", stage.description.name, error.reason)
        print(f"{error.command}: {error.reason}", file=sys.stderr)
        # Downstream must still see end-of-input.
        stage.streams.close_owned()
