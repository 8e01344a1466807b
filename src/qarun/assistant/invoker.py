"""Synchronous process invocation with hard timeouts.

The invoker runs exactly one external command at a time. Two reader threads
drain stdout and stderr concurrently so a chatty child can never block on a
full pipe, and the caller only sees output after both readers have joined.
On timeout the child is killed, never asked politely.
"""

import logging
import os
import signal
import subprocess
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from qarun.assistant.errors import ProcessSpawnError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessInvocation:
    """Outcome of one external command.

    Attributes:
        command: Command and arguments as executed
        working_dir: Directory the command ran in
        timeout: Timeout bound in seconds
        stdout: Captured standard output
        stderr: Captured standard error
        exit_code: Process exit code (negative if killed by a signal)
        timed_out: Whether the process was killed for exceeding the timeout
        duration: Wall-clock seconds from spawn to return
    """

    command: tuple[str, ...]
    working_dir: Path
    timeout: float
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    timed_out: bool = False
    duration: float = 0.0

    @property
    def output_text(self) -> str:
        """Analysis text: stdout, or stderr when stdout is blank."""
        if self.stdout.strip():
            return self.stdout
        return self.stderr

    @property
    def is_empty(self) -> bool:
        """Return True if neither stream carried any text."""
        return not self.output_text.strip()

    @property
    def succeeded(self) -> bool:
        """Return True if the process exited with code 0 in time."""
        return not self.timed_out and self.exit_code == 0


def _drain(stream: IO[str], sink: list[str]) -> None:
    """Read a stream to EOF, appending lines to sink."""
    try:
        for line in iter(stream.readline, ""):
            sink.append(line)
    except (OSError, ValueError) as e:
        # Stream closed underneath the reader after a kill
        logger.debug("Output reader stopped: %s", e)


class ProcessInvoker:
    """Runs external commands one at a time with a hard timeout.

    Usage:
        invoker = ProcessInvoker()
        invocation = invoker.invoke(["gemini", "-p", prompt], project_path, 600)
        if invocation.timed_out:
            ...
    """

    def __init__(self, reader_grace: float = 2.0) -> None:
        """Initialize the invoker.

        Args:
            reader_grace: Seconds to wait for readers after a forced kill
        """
        self.reader_grace = reader_grace

    def invoke(
        self,
        command: Sequence[str],
        working_dir: Path,
        timeout: float,
    ) -> ProcessInvocation:
        """Run a command synchronously.

        Non-zero exit codes are reported, not raised.

        Args:
            command: Executable followed by its arguments
            working_dir: Working directory for the child
            timeout: Seconds before the child is killed

        Returns:
            ProcessInvocation with captured output

        Raises:
            ProcessSpawnError: If the process cannot be started
            KeyboardInterrupt: Re-raised after the child has been killed
        """
        argv = tuple(command)
        if not argv:
            raise ValueError("Command must not be empty")

        logger.debug("Invoking %s in %s (timeout %ss)", argv[0], working_dir, timeout)
        started = time.monotonic()

        try:
            process = subprocess.Popen(
                argv,
                cwd=working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                start_new_session=True,
            )
        except OSError as e:
            raise ProcessSpawnError(argv[0], str(e)) from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        readers = [
            threading.Thread(
                target=_drain,
                args=(process.stdout, stdout_lines),
                name=f"{argv[0]}-stdout",
                daemon=True,
            ),
            threading.Thread(
                target=_drain,
                args=(process.stderr, stderr_lines),
                name=f"{argv[0]}-stderr",
                daemon=True,
            ),
        ]
        for reader in readers:
            reader.start()

        timed_out = False
        try:
            process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            logger.warning("%s exceeded %ss, killing process %d", argv[0], timeout, process.pid)
            self._kill(process)
        except KeyboardInterrupt:
            logger.warning("Interrupted while waiting for %s, killing process %d", argv[0], process.pid)
            self._kill(process)
            self._join(readers, self.reader_grace)
            self._close(process, readers)
            raise

        if timed_out:
            self._join(readers, self.reader_grace)
        else:
            # Readers share the invocation deadline with the child
            self._join(readers, max(0.0, started + timeout - time.monotonic()))
            if any(reader.is_alive() for reader in readers):
                logger.warning(
                    "%s exited but a background process still holds its output, killing group %d",
                    argv[0],
                    process.pid,
                )
                self._kill(process)
                self._join(readers, self.reader_grace)

        self._close(process, readers)

        invocation = ProcessInvocation(
            command=argv,
            working_dir=Path(working_dir),
            timeout=timeout,
            stdout="".join(stdout_lines),
            stderr="".join(stderr_lines),
            exit_code=process.returncode,
            timed_out=timed_out,
            duration=time.monotonic() - started,
        )

        logger.debug(
            "%s finished: exit=%s timed_out=%s stdout=%d chars stderr=%d chars (%.1fs)",
            argv[0],
            invocation.exit_code,
            invocation.timed_out,
            len(invocation.stdout),
            len(invocation.stderr),
            invocation.duration,
        )
        return invocation

    @staticmethod
    def _kill(process: subprocess.Popen[str]) -> None:
        """Force-kill the child's process group and reap the child.

        The child leads its own session, so the group also holds any
        background processes that inherited its pipes.
        """
        try:
            if hasattr(os, "killpg"):
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except (ProcessLookupError, PermissionError):
            # Group already gone
            pass
        process.wait()

    @staticmethod
    def _join(readers: list[threading.Thread], timeout: float) -> None:
        """Join readers within one shared time budget."""
        deadline = time.monotonic() + timeout
        for reader in readers:
            reader.join(max(0.0, deadline - time.monotonic()))

    @staticmethod
    def _close(process: subprocess.Popen[str], readers: list[threading.Thread]) -> None:
        """Close both pipes.

        A stream whose reader is still blocked cannot be closed without
        waiting on that reader, so it is left to the daemon thread.
        """
        for stream, reader in zip((process.stdout, process.stderr), readers):
            if stream is None:
                continue
            if reader.is_alive():
                logger.warning("Reader %s still running; leaving its pipe open", reader.name)
                continue
            stream.close()
