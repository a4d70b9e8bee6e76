"""Top-level entry points for running commands through host shells."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Any, Sequence

from polyshell.command import Command
from polyshell.config import AppConfig, config_to_dict, load_config
from polyshell.errors import (
    CommandNotSpecifiedError,
    CommandTimeoutError,
    ConfigError,
    InvalidArgumentError,
    PolyshellError,
    ShellNotFoundError,
)
from polyshell.execution.base import (
    CodeExecutor,
    ExecutionResult,
    normalize_command,
    validate_timeout,
)
from polyshell.execution.local_exec import LocalExecutor
from polyshell.shells.kinds import (
    HostPlatform,
    ShellKind,
    detect_host_platform,
    discovery_template,
    shell_switch,
)
from polyshell.shells.registry import ShellRegistry
from polyshell.util.logging import get_logger
from polyshell.util.observability import EventLogger, MetricsCollector

DEFAULT_CONFIG_FILE = "polyshell.yaml"

_LOGGER = get_logger("polyshell.app")


class CommandLine:
    """Runs commands directly or through whichever shell the host provides.

    The instance owns its shell registry; discovery happens on the first call
    that needs a shell, or when ``discover()`` is called explicitly.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        host: HostPlatform | None = None,
        executor: CodeExecutor | None = None,
        registry: ShellRegistry | None = None,
    ) -> None:
        """Initialize the command line.

        Args:
            config: Configuration; defaults apply when omitted.
            host: Platform override. Defaults to the configured platform, then detection.
            executor: Optional pre-built executor (for testing).
            registry: Optional pre-built registry; its platform takes precedence.
        """

        self._config = config or AppConfig()
        execution = self._config.execution
        self._executor = executor or LocalExecutor(
            max_stream_bytes=execution.max_stream_bytes,
            read_buffer_size=execution.read_buffer_size,
        )
        if registry is None:
            resolved_host = host or self._config.shells.platform or detect_host_platform()
            registry = ShellRegistry(
                resolved_host,
                self._executor,
                template=discovery_template(
                    resolved_host, self._config.shells.discovery_templates
                ),
                timeout_s=execution.discovery_timeout_s,
            )
        self._registry = registry
        self._events = EventLogger("polyshell.events", context={"host": registry.host.value})
        self._metrics = MetricsCollector()

    @property
    def config(self) -> AppConfig:
        return self._config

    @property
    def executor(self) -> CodeExecutor:
        return self._executor

    @property
    def host(self) -> HostPlatform:
        return self._registry.host

    @property
    def registry(self) -> ShellRegistry:
        return self._registry

    @property
    def metrics(self) -> dict[str, Any]:
        return self._metrics.snapshot()

    def discover(self) -> bool:
        """Run shell discovery now instead of on first use."""

        return self._registry.discover()

    def available_shells(self) -> list[ShellKind]:
        return self._registry.available()

    def execute_raw(
        self,
        command: Sequence[str] | str,
        timeout_s: float | timedelta | None = None,
    ) -> ExecutionResult:
        """Run an argument vector, or a string split into one, without a shell.

        Raises:
            InvalidArgumentError: If the command is empty or the timeout invalid.
            CommandTimeoutError: If the process outlives the timeout.
            StreamTooLargeError: If output exceeds the configured cap.
            LaunchError: If the process cannot be started.
        """

        timeout = self._timeout(timeout_s)
        argv = normalize_command(command)
        return self._run(argv, timeout)

    def execute_string(
        self,
        command: str,
        timeout_s: float | timedelta | None = None,
    ) -> ExecutionResult:
        """Run a command string through the first available shell of the host.

        Raises:
            ShellNotFoundError: If no supported shell was found on the host.
        """

        timeout = self._timeout(timeout_s)
        _require_text(command)
        available = self._registry.available()
        if not available:
            raise ShellNotFoundError(None)
        return self._run_in_shell(command, available[0], timeout)

    def execute_with_shell(
        self,
        command: str,
        shell: ShellKind,
        timeout_s: float | timedelta | None = None,
    ) -> ExecutionResult:
        """Run a command string through a specific shell.

        Raises:
            ShellNotFoundError: If the shell is unsupported on this host or missing.
        """

        timeout = self._timeout(timeout_s)
        _require_text(command)
        if shell is None:
            raise InvalidArgumentError("Shell must not be None.")
        return self._run_in_shell(command, shell, timeout)

    def execute_command(
        self,
        command: Command,
        timeout_s: float | timedelta | None = None,
    ) -> ExecutionResult:
        """Run a per-shell command through the first shell able to run it.

        Shells are tried in the host's priority order; the first one that is
        both installed and covered by ``command`` runs it. Only one attempt is
        made: a failure of that run is not retried with another shell.

        Raises:
            ShellNotFoundError: If no supported shell was found on the host.
            CommandNotSpecifiedError: If no available shell has a command.
        """

        timeout = self._timeout(timeout_s)
        if command is None:
            raise InvalidArgumentError("Command must not be None.")
        available = self._registry.available()
        if not available:
            raise ShellNotFoundError(None)
        for shell in available:
            if shell in command:
                return self._run_in_shell(command.get(shell), shell, timeout)
        raise CommandNotSpecifiedError(available[0])

    def _run_in_shell(self, command: str, shell: ShellKind, timeout: float) -> ExecutionResult:
        path = self._registry.resolve(shell)
        argv = [str(path), shell_switch(shell, self._config.shells.switches), command]
        return self._run(argv, timeout, shell=shell)

    def _run(
        self,
        argv: list[str],
        timeout: float,
        shell: ShellKind | None = None,
    ) -> ExecutionResult:
        payload: dict[str, Any] = {
            "command": argv,
            "shell": shell.value if shell is not None else None,
            "timeout_s": timeout,
        }
        self._events.log("command.started", payload, level="DEBUG")
        try:
            result = self._executor.run(
                argv,
                timeout,
                cwd=self._config.execution.cwd,
                env=self._config.execution.env or None,
            )
        except PolyshellError as exc:
            self._metrics.increment("commands.failed")
            if isinstance(exc, CommandTimeoutError):
                self._metrics.increment("commands.timed_out")
            self._events.log(
                "command.failed",
                {**payload, "error": type(exc).__name__, "message": str(exc)},
                level="WARNING",
            )
            raise
        self._metrics.increment("commands.completed")
        self._metrics.record_duration("command", result.duration_s)
        self._events.log(
            "command.finished",
            {**payload, "exit_code": result.exit_code, "duration_s": result.duration_s},
        )
        return result

    def _timeout(self, timeout_s: float | timedelta | None) -> float:
        if timeout_s is None:
            return self._config.execution.timeout_s
        return validate_timeout(timeout_s)


def create_command_line(config_path: Path | None = None) -> CommandLine:
    """Load configuration and build a CommandLine from it."""

    return CommandLine(load_config(config_path))


def initialize_config(directory: Path) -> Path:
    """Write a default configuration file into a directory.

    Raises:
        ConfigError: If the config file already exists.
    """

    config_path = directory.resolve() / DEFAULT_CONFIG_FILE
    if config_path.exists():
        raise ConfigError(
            f"Config file already exists at {config_path}. Remove it or choose another "
            "directory."
        )
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config_to_dict(AppConfig()), indent=2), encoding="utf-8")
    _LOGGER.info("Initialized configuration at %s", config_path)
    return config_path


def _require_text(command: str) -> None:
    if command is None or not str(command).strip():
        raise InvalidArgumentError("Command must not be empty.")
