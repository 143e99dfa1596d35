# src/pipeshell/core/runnables.py
from __future__ import annotations

import logging
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from typing import IO, BinaryIO, Callable, Dict, List, Optional, Protocol, Tuple

from pipeshell.core.context.shell_context import ShellContext
from pipeshell.core.exceptions import ResolutionError

logger = logging.getLogger(__name__)

# handle_<name>(args, ctx, stdin, stdout) -> exit code
Handler = Callable[[List[str], ShellContext, BinaryIO, BinaryIO], int]


@dataclass
class StageStreams:
    """
    Input and output of one stage, plus the streams the stage owns
    (pipe ends and redirection files) and must close when it is done.
    Session streams are never owned.
    """
    stdin: BinaryIO
    stdout: BinaryIO
    owned: List[IO] = field(default_factory=list)

    def own(self, stream: IO) -> IO:
        self.owned.append(stream)
        return stream

    def replace_stdin(self, stream: BinaryIO) -> None:
        self._release(self.stdin)
        self.stdin = self.own(stream)

    def replace_stdout(self, stream: BinaryIO) -> None:
        self._release(self.stdout)
        self.stdout = self.own(stream)

    def _release(self, stream: IO) -> None:
        if stream in self.owned:
            self.owned.remove(stream)
            _close_quietly(stream)

    def close_owned(self) -> None:
        """Closes every owned stream once; later calls are no-ops."""
        owned, self.owned = self.owned, []
        for stream in owned:
            _close_quietly(stream)


def _close_quietly(stream: IO) -> None:
    try:
        stream.close()
    except OSError as e:
        # Flushing into a pipe whose reader has already gone away.
        logger.debug("Closing %r failed: %s", stream, e)


def _fileno(stream: IO) -> Optional[int]:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


class Runnable(Protocol):
    """A resolved stage: started once, then waited on for (exit code, should exit)."""
    name: str

    def start(self, streams: StageStreams, ctx: ShellContext, env: Dict[str, str]) -> None:
        ...

    def wait(self) -> Tuple[int, bool]:
        ...


class BuiltinRunnable:
    """Runs a builtin handler on its own thread so it can be joined with its pipeline."""

    def __init__(self, name: str, handler: Handler, args: List[str], terminates: bool = False):
        self.name = name
        self.handler = handler
        self.args = args
        self.terminates = terminates
        self._code = 1
        self._thread: Optional[threading.Thread] = None

    def start(self, streams: StageStreams, ctx: ShellContext, env: Dict[str, str]) -> None:
        self._thread = threading.Thread(
            target=self._run, args=(streams, ctx), name=f"stage-{self.name}", daemon=True
        )
        self._thread.start()

    def _run(self, streams: StageStreams, ctx: ShellContext) -> None:
        try:
            self._code = int(self.handler(self.args, ctx, streams.stdin, streams.stdout))
            streams.stdout.flush()
        except BrokenPipeError:
            logger.debug("Builtin '%s' stopped: its reader closed the pipe.", self.name)
            self._code = 1
        except Exception as e:
            logger.error("Builtin '%s' failed: %s", self.name, e, exc_info=True)
            print(f"{self.name}: {e}", file=sys.stderr)
            self._code = 1
        finally:
            streams.close_owned()

    def wait(self) -> Tuple[int, bool]:
        if self._thread is not None:
            self._thread.join()
        return self._code, self.terminates

    def __repr__(self) -> str:
        return f"<BuiltinRunnable {self.name} args={self.args}>"


class ExternalRunnable:
    """
    Spawns an executable found on the session's PATH. Streams without an OS
    file descriptor (e.g. in-memory buffers) are bridged with copy threads.
    """

    def __init__(self, arguments: List[str]):
        self.name = arguments[0]
        self.arguments = list(arguments)
        self._proc: Optional[subprocess.Popen] = None
        self._pumps: List[threading.Thread] = []

    def start(self, streams: StageStreams, ctx: ShellContext, env: Dict[str, str]) -> None:
        """
        Raises:
            ResolutionError: if the executable cannot be spawned.
        """
        stdin_fd = _fileno(streams.stdin)
        stdout_fd = _fileno(streams.stdout)
        if stdout_fd is not None:
            streams.stdout.flush()

        try:
            self._proc = subprocess.Popen(
                self.arguments,
                stdin=stdin_fd if stdin_fd is not None else subprocess.PIPE,
                stdout=stdout_fd if stdout_fd is not None else subprocess.PIPE,
                env=env,
            )
        except FileNotFoundError as e:
            streams.close_owned()
            raise ResolutionError(self.name, "command not found") from e
        except PermissionError as e:
            streams.close_owned()
            raise ResolutionError(self.name, "permission denied") from e
        except OSError as e:
            streams.close_owned()
            raise ResolutionError(self.name, e.strerror or str(e)) from e
        except ValueError as e:
            # Arguments that cannot be passed to exec, e.g. an embedded null byte.
            streams.close_owned()
            raise ResolutionError(self.name, str(e)) from e

        logger.debug("Spawned '%s' (pid %s).", self.name, self._proc.pid)

        if stdin_fd is None:
            self._pump(streams.stdin, self._proc.stdin, close_target=True)
        if stdout_fd is None:
            self._pump(self._proc.stdout, streams.stdout, close_target=False)

        # The child holds its own copies of the descriptors now.
        streams.close_owned()

    def _pump(self, source: IO, target: IO, close_target: bool) -> None:
        def _copy() -> None:
            try:
                shutil.copyfileobj(source, target)
                target.flush()
            except (BrokenPipeError, ValueError) as e:
                logger.debug("Stream copy for '%s' stopped: %s", self.name, e)
            finally:
                if close_target:
                    _close_quietly(target)

        pump = threading.Thread(target=_copy, name=f"pump-{self.name}", daemon=True)
        pump.start()
        self._pumps.append(pump)

    def wait(self) -> Tuple[int, bool]:
        code = self._proc.wait() if self._proc is not None else 127
        for pump in self._pumps:
            pump.join()
        if self._proc is not None and self._proc.stdout is not None:
            self._proc.stdout.close()
        return code, False

    def __repr__(self) -> str:
        return f"<ExternalRunnable {self.arguments}>"
