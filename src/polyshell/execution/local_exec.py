"""Local execution engine implementation."""

from __future__ import annotations

import os
import signal
import subprocess
import time
from datetime import datetime, timedelta, timezone
from functools import partial
from pathlib import Path
from typing import Any, Sequence

from polyshell.errors import CommandTimeoutError, LaunchError
from polyshell.execution.base import (
    CodeExecutor,
    ExecutionResult,
    normalize_command,
    validate_timeout,
)
from polyshell.execution.streams import (
    DEFAULT_READ_BUFFER_SIZE,
    StreamDrainer,
    decode_output,
)
from polyshell.util.logging import get_logger

DEFAULT_MAX_STREAM_BYTES = 10 * 1024 * 1024
_POSIX = os.name == "posix"


class LocalExecutor(CodeExecutor):
    """Execute commands on the local host.

    Output streams are drained on background threads while the caller waits
    for the process, so a chatty child can never block on a full pipe before
    its timeout is evaluated. On POSIX the child is placed in its own session
    and termination kills the whole process group.
    """

    def __init__(
        self,
        max_stream_bytes: int = DEFAULT_MAX_STREAM_BYTES,
        read_buffer_size: int = DEFAULT_READ_BUFFER_SIZE,
        kill_grace_s: float = 5.0,
    ) -> None:
        """Initialize the executor.

        Args:
            max_stream_bytes: Maximum bytes accepted on each output stream.
            read_buffer_size: Chunk size used when draining streams.
            kill_grace_s: Seconds to wait for a terminated process to be reaped.
        """

        self._max_stream_bytes = max_stream_bytes
        self._read_buffer_size = read_buffer_size
        self._kill_grace_s = kill_grace_s
        self._logger = get_logger(self.__class__.__name__)

    def run(
        self,
        command: Sequence[str] | str,
        timeout_s: float | timedelta,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run a command locally and capture its output.

        Args:
            command: Argument vector, or a string split with the quote-aware tokenizer.
            timeout_s: Maximum wall-clock time to wait, in seconds or as a timedelta.
            cwd: Optional working directory.
            env: Optional environment variables merged over the current environment.

        Returns:
            ExecutionResult with exit code, output and timestamps.

        Raises:
            InvalidArgumentError: If the command is empty or the timeout is not positive.
            LaunchError: If the process cannot be started.
            CommandTimeoutError: If the process outlives the timeout.
            StreamTooLargeError: If either stream exceeds the configured cap.
        """

        argv = normalize_command(command)
        timeout = validate_timeout(timeout_s)

        merged_env = os.environ.copy()
        if env:
            merged_env.update(env)

        self._logger.info("Running command: %s", argv)
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env,
                **_isolation_kwargs(),
            )
        except (OSError, ValueError) as exc:
            # ValueError covers arguments the OS cannot take, such as embedded NUL bytes.
            raise LaunchError(argv, getattr(exc, "strerror", None) or str(exc)) from exc

        terminate = partial(self._terminate, process)
        drainers = [
            StreamDrainer(
                process.stdout,
                "stdout",
                self._max_stream_bytes,
                self._read_buffer_size,
                on_overflow=terminate,
            ),
            StreamDrainer(
                process.stderr,
                "stderr",
                self._max_stream_bytes,
                self._read_buffer_size,
                on_overflow=terminate,
            ),
        ]
        for drainer in drainers:
            drainer.start()

        try:
            exit_code = self._wait(process, argv, drainers, start, timeout)
        except BaseException:
            self._terminate(process)
            raise
        finally:
            self._release(process, drainers)

        for drainer in drainers:
            if drainer.error is not None:
                self._logger.warning("Discarding output of %s: %s", argv, drainer.error)
                raise drainer.error

        ended_at = datetime.now(timezone.utc)
        result = ExecutionResult(
            command=argv,
            exit_code=exit_code,
            stdout=decode_output(drainers[0].data),
            stderr=decode_output(drainers[1].data),
            started_at=started_at,
            ended_at=ended_at,
        )
        self._logger.info(
            "Command finished with exit code %s in %.2fs.",
            result.exit_code,
            result.duration_s,
        )
        return result

    def _wait(
        self,
        process: subprocess.Popen[bytes],
        argv: list[str],
        drainers: list[StreamDrainer],
        start: float,
        timeout: float,
    ) -> int:
        deadline = start + timeout
        try:
            exit_code = process.wait(timeout=max(deadline - time.monotonic(), 0))
            # A descendant may still hold a pipe open after the child exits.
            for drainer in drainers:
                drainer.join(max(deadline - time.monotonic(), 0))
            if any(drainer.is_alive() for drainer in drainers):
                raise subprocess.TimeoutExpired(argv, timeout)
        except subprocess.TimeoutExpired as exc:
            elapsed = time.monotonic() - start
            self._terminate(process)
            self._logger.warning(
                "Command %s timed out after %.2fs (limit %.2fs).", argv, elapsed, timeout
            )
            raise CommandTimeoutError(argv, elapsed, timeout) from exc
        return exit_code

    def _terminate(self, process: subprocess.Popen[bytes]) -> None:
        try:
            if _POSIX:
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
        except OSError as exc:
            self._logger.warning("Failed to terminate process %s: %s", process.pid, exc)

    def _release(self, process: subprocess.Popen[bytes], drainers: list[StreamDrainer]) -> None:
        for drainer in drainers:
            drainer.join(self._kill_grace_s)
        for stream, drainer in zip((process.stdout, process.stderr), drainers):
            # Closing a pipe still being read would block on the reader's lock.
            if stream is not None and not drainer.is_alive():
                stream.close()
        try:
            process.wait(timeout=self._kill_grace_s)
        except subprocess.TimeoutExpired:
            self._logger.warning("Process %s did not exit after termination.", process.pid)


def _isolation_kwargs() -> dict[str, Any]:
    if _POSIX:
        return {"start_new_session": True}
    return {"creationflags": getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)}
