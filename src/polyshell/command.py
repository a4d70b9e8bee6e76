"""Per-shell equivalents of one logical command."""

from __future__ import annotations

from typing import Iterator, Mapping

from polyshell.errors import CommandNotSpecifiedError, InvalidArgumentError
from polyshell.shells.kinds import ShellKind


class Command:
    """Equivalent command strings for one operation, keyed by shell.

    Example:
        >>> listing = Command.of({ShellKind.BASH: "ls -a", ShellKind.CMD: "dir /a"})
        >>> listing.get(ShellKind.CMD)
        'dir /a'
    """

    def __init__(self) -> None:
        self._commands: dict[ShellKind, str] = {}

    @classmethod
    def of(cls, commands: Mapping[ShellKind | str, str]) -> Command:
        """Build a command from a mapping of shell (or shell name) to command string."""

        command = cls()
        for shell, text in commands.items():
            command.set(ShellKind(shell), text)
        return command

    def set(self, shell: ShellKind, command: str) -> Command:
        """Set the command string for a shell, returning self for chaining.

        Raises:
            InvalidArgumentError: If the command string is empty.
        """

        if not command or not command.strip():
            raise InvalidArgumentError(f"Command for shell '{shell.value}' must not be empty.")
        self._commands[shell] = command
        return self

    def get(self, shell: ShellKind) -> str:
        """Return the command string for a shell.

        Raises:
            CommandNotSpecifiedError: If no command was set for the shell.
        """

        try:
            return self._commands[shell]
        except KeyError:
            raise CommandNotSpecifiedError(shell) from None

    def kinds(self) -> list[ShellKind]:
        return list(self._commands)

    def __contains__(self, shell: object) -> bool:
        return shell in self._commands

    def __iter__(self) -> Iterator[ShellKind]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)

    def __repr__(self) -> str:
        entries = ", ".join(f"{shell.value}={text!r}" for shell, text in self._commands.items())
        return f"Command({entries})"
