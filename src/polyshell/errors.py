"""Exception hierarchy for polyshell."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from polyshell.shells.kinds import ShellKind


class PolyshellError(RuntimeError):
    """Base class for all errors raised by polyshell."""


class InvalidArgumentError(PolyshellError, ValueError):
    """Raised when a caller passes an unusable command or timeout."""


class ConfigError(PolyshellError, ValueError):
    """Raised when configuration contents are invalid."""


class ShellNotFoundError(PolyshellError):
    """Raised when a shell has no resolved executable on this host.

    Attributes:
        shell: The requested shell, or None when no shell of the host resolved.
    """

    def __init__(self, shell: ShellKind | None) -> None:
        self.shell = shell
        if shell is None:
            message = "No supported shell could be found on this host."
        else:
            message = f"Shell '{shell.value}' was not found on this host."
        super().__init__(message)


class CommandNotSpecifiedError(PolyshellError):
    """Raised when a command abstraction has no entry for a shell."""

    def __init__(self, shell: ShellKind) -> None:
        self.shell = shell
        super().__init__(f"No command specified for shell '{shell.value}'.")


class CommandTimeoutError(PolyshellError, TimeoutError):
    """Raised when a process does not exit within its timeout.

    Attributes:
        command: The argument vector that was executed.
        elapsed_s: Seconds elapsed before the process was terminated.
        timeout_s: The requested timeout in seconds.
    """

    def __init__(self, command: Sequence[str], elapsed_s: float, timeout_s: float) -> None:
        self.command = list(command)
        self.elapsed_s = elapsed_s
        self.timeout_s = timeout_s
        super().__init__(
            f"Command {self.command} timed out after {elapsed_s:.2f}s "
            f"(limit {timeout_s:.2f}s)."
        )


class StreamTooLargeError(PolyshellError):
    """Raised when a process stream produces more bytes than allowed."""

    def __init__(self, stream: str, limit: int) -> None:
        self.stream = stream
        self.limit = limit
        super().__init__(f"Output on {stream} exceeded the limit of {limit} bytes.")


class LaunchError(PolyshellError):
    """Raised when the operating system fails to start a process."""

    def __init__(self, command: Sequence[str], reason: str) -> None:
        self.command = list(command)
        super().__init__(f"Unable to launch {self.command}: {reason}")
