"""Execution engine base types and interfaces."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Sequence

from polyshell.errors import InvalidArgumentError
from polyshell.tokenizer import split_command


class StreamType(str, Enum):
    """Standard output streams of a process."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class ExecutionResult:
    """Result of executing a command.

    Attributes:
        command: The argument vector that was executed.
        exit_code: Exit code returned by the process.
        stdout: Captured standard output.
        stderr: Captured standard error.
        started_at: UTC timestamp taken just before launch.
        ended_at: UTC timestamp taken after both streams were collected.
    """

    command: list[str]
    exit_code: int
    stdout: str
    stderr: str
    started_at: datetime
    ended_at: datetime

    @property
    def duration(self) -> timedelta:
        return self.ended_at - self.started_at

    @property
    def duration_s(self) -> float:
        return self.duration.total_seconds()

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def output(self, stream: StreamType) -> str:
        """Return the captured text of the given stream."""

        if stream is StreamType.STDOUT:
            return self.stdout
        return self.stderr


class CodeExecutor(ABC):
    """Abstract base class for command execution engines."""

    @abstractmethod
    def run(
        self,
        command: Sequence[str] | str,
        timeout_s: float | timedelta,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run a command and capture its results.

        Args:
            command: Argument vector, or a string to be split into one.
            timeout_s: Maximum wall-clock time (seconds or timedelta) to wait for the process.
            cwd: Optional working directory for the command.
            env: Optional environment variables to include.

        Returns:
            ExecutionResult containing exit code, output and timing.
        """


def normalize_command(command: Sequence[str] | str) -> list[str]:
    """Turn a command string or sequence into a non-empty argument vector.

    Raises:
        InvalidArgumentError: If the command is None or yields no arguments.
    """

    if command is None:
        raise InvalidArgumentError("Command must not be None.")
    if isinstance(command, str):
        argv = split_command(command)
    else:
        argv = [str(arg) for arg in command]
    if not argv:
        raise InvalidArgumentError("Command must contain at least one argument.")
    return argv


def validate_timeout(timeout: float | timedelta | None) -> float:
    """Return a timeout in seconds, rejecting missing, non-finite or non-positive values."""

    if timeout is None:
        raise InvalidArgumentError("Timeout must not be None.")
    try:
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"Timeout must be a number, got {timeout!r}.") from exc
    if not math.isfinite(seconds) or seconds <= 0:
        raise InvalidArgumentError(f"Timeout must be a positive finite number, got {seconds}s.")
    return seconds
