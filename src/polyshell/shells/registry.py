"""Discovery and lookup of shell executables on the host."""

from __future__ import annotations

import threading
from enum import Enum
from pathlib import Path

from polyshell.errors import PolyshellError, ShellNotFoundError
from polyshell.execution.base import CodeExecutor
from polyshell.shells.kinds import (
    HostPlatform,
    ShellKind,
    discovery_template,
    is_supported,
    supported_shells,
)
from polyshell.tokenizer import split_command
from polyshell.util.logging import get_logger

SHELL_PLACEHOLDER = "{shell}"


class DiscoveryState(str, Enum):
    """Progress of the one-time discovery pass."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class ShellRegistry:
    """Maps shell kinds to executable paths found on the host.

    Discovery runs once, on first use or on an explicit ``discover()`` call.
    A caller that arrives while another thread is discovering does not wait;
    it sees the registry as it currently is. Once discovery is done the
    mapping is never modified again, so lookups take no lock.
    """

    def __init__(
        self,
        host: HostPlatform,
        executor: CodeExecutor,
        *,
        template: str | None = None,
        timeout_s: float = 10.0,
    ) -> None:
        """Initialize the registry.

        Args:
            host: Platform whose supported shells are discovered.
            executor: Executor used to run discovery commands.
            template: Discovery command with a ``{shell}`` placeholder. Defaults
                to the platform's standard lookup command.
            timeout_s: Timeout for each discovery command.
        """

        self._host = host
        self._executor = executor
        self._template = template if template is not None else discovery_template(host)
        self._timeout_s = timeout_s
        self._paths: dict[ShellKind, Path] = {}
        self._state = DiscoveryState.NOT_STARTED
        self._lock = threading.Lock()
        self._logger = get_logger(self.__class__.__name__)

    @property
    def host(self) -> HostPlatform:
        return self._host

    @property
    def state(self) -> DiscoveryState:
        return self._state

    @property
    def is_discovered(self) -> bool:
        return self._state is DiscoveryState.DONE

    def discover(self) -> bool:
        """Run the discovery pass unless it already ran or is running.

        Returns:
            True if discovery has completed, False if another caller holds the
            discovery lock and this call returned without waiting.
        """

        if self._state is DiscoveryState.DONE:
            return True
        if not self._lock.acquire(blocking=False):
            self._logger.debug("Shell discovery already in progress; not waiting.")
            return False
        try:
            if self._state is DiscoveryState.DONE:
                return True
            self._state = DiscoveryState.IN_PROGRESS
            discovered: dict[ShellKind, Path] = {}
            for shell in supported_shells(self._host):
                path = self._locate(shell)
                if path is not None:
                    discovered[shell] = path
            self._paths = discovered
            self._state = DiscoveryState.DONE
        except Exception:
            self._state = DiscoveryState.NOT_STARTED
            raise
        finally:
            self._lock.release()
        self._logger.info(
            "Discovered %s shell(s) on %s: %s",
            len(self._paths),
            self._host.value,
            ", ".join(shell.value for shell in self._paths) or "none",
        )
        return True

    def resolve(self, shell: ShellKind) -> Path:
        """Return the executable path for a shell.

        Raises:
            ShellNotFoundError: If the shell is not supported on this platform
                or was not found during discovery.
        """

        if not is_supported(self._host, shell):
            raise ShellNotFoundError(shell)
        self.discover()
        path = self._paths.get(shell)
        if path is None:
            raise ShellNotFoundError(shell)
        return path

    def available(self) -> list[ShellKind]:
        """Return resolved shells in the platform's priority order."""

        self.discover()
        return [shell for shell in supported_shells(self._host) if shell in self._paths]

    def paths(self) -> dict[ShellKind, Path]:
        return dict(self._paths)

    def _locate(self, shell: ShellKind) -> Path | None:
        if self._template is None:
            return None
        command = split_command(self._template.replace(SHELL_PLACEHOLDER, shell.value))
        try:
            result = self._executor.run(command, self._timeout_s)
        except (PolyshellError, OSError) as exc:
            self._logger.warning("Discovery of shell '%s' failed: %s", shell.value, exc)
            return None
        if result.exit_code != 0:
            self._logger.warning(
                "Shell '%s' not found (discovery exited with %s).", shell.value, result.exit_code
            )
            return None
        first_line = next(
            (line.strip() for line in result.stdout.splitlines() if line.strip()), None
        )
        if first_line is None:
            self._logger.warning("Discovery of shell '%s' produced no path.", shell.value)
            return None
        self._logger.debug("Shell '%s' found at %s", shell.value, first_line)
        return Path(first_line)
