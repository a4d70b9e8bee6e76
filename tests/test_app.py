from __future__ import annotations

import json
import logging
import platform
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Sequence

import pytest

from polyshell.app import CommandLine, create_command_line, initialize_config
from polyshell.command import Command
from polyshell.config import AppConfig, ExecutionConfig, ShellsConfig
from polyshell.errors import (
    CommandNotSpecifiedError,
    CommandTimeoutError,
    ConfigError,
    InvalidArgumentError,
    ShellNotFoundError,
)
from polyshell.execution.base import CodeExecutor, ExecutionResult
from polyshell.shells.kinds import HostPlatform, ShellKind

posix_only = pytest.mark.skipif(
    platform.system() not in {"Linux", "Darwin"} or shutil.which("which") is None,
    reason="requires a POSIX host with which(1)",
)


class FakeHostExecutor(CodeExecutor):
    """Resolves shells from a table and records every other command."""

    def __init__(self, shells: dict[str, str], exit_code: int = 0) -> None:
        self.shells = shells
        self.exit_code = exit_code
        self.commands: list[list[str]] = []
        self.cwds: list[Path | None] = []
        self.envs: list[dict[str, str] | None] = []

    def run(
        self,
        command: Sequence[str] | str,
        timeout_s: float | timedelta,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        argv = list(command)
        now = datetime.now(timezone.utc)
        if argv[0] in {"which", "where"}:
            path = self.shells.get(argv[1])
            return ExecutionResult(
                command=argv,
                exit_code=0 if path else 1,
                stdout=f"{path}\n" if path else "",
                stderr="",
                started_at=now,
                ended_at=now,
            )
        self.commands.append(argv)
        self.cwds.append(cwd)
        self.envs.append(env)
        return ExecutionResult(
            command=argv,
            exit_code=self.exit_code,
            stdout="done",
            stderr="",
            started_at=now,
            ended_at=now + timedelta(milliseconds=5),
        )


class TimingOutExecutor(FakeHostExecutor):
    def run(
        self,
        command: Sequence[str] | str,
        timeout_s: float | timedelta,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        argv = list(command)
        if argv[0] in {"which", "where"}:
            return super().run(command, timeout_s, cwd, env)
        self.commands.append(argv)
        raise CommandTimeoutError(argv, float(timeout_s), float(timeout_s))


def linux_command_line(shells: dict[str, str], **kwargs: object) -> CommandLine:
    executor = FakeHostExecutor(shells)
    return CommandLine(host=HostPlatform.LINUX, executor=executor, **kwargs)  # type: ignore[arg-type]


def test_execute_string_uses_first_available_shell() -> None:
    command_line = linux_command_line({"zsh": "/bin/zsh", "sh": "/bin/sh"})

    result = command_line.execute_string("echo hi", timeout_s=5)

    assert result.stdout == "done"
    executor = command_line.executor
    assert executor.commands == [["/bin/zsh", "-c", "echo hi"]]  # type: ignore[attr-defined]


def test_execute_string_without_shells_raises_shell_not_found() -> None:
    command_line = linux_command_line({})

    with pytest.raises(ShellNotFoundError) as excinfo:
        command_line.execute_string("echo hi", timeout_s=5)

    assert excinfo.value.shell is None


def test_execute_with_shell_uses_configured_switch() -> None:
    config = AppConfig(shells=ShellsConfig(switches={ShellKind.BASH: "-lc"}))
    command_line = linux_command_line({"bash": "/usr/bin/bash"}, config=config)

    command_line.execute_with_shell("echo hi", ShellKind.BASH, timeout_s=5)

    assert command_line.executor.commands == [  # type: ignore[attr-defined]
        ["/usr/bin/bash", "-lc", "echo hi"]
    ]


def test_execute_with_shell_outside_platform_list_fails() -> None:
    command_line = linux_command_line({"bash": "/bin/bash", "cmd": "/usr/bin/cmd"})

    with pytest.raises(ShellNotFoundError) as excinfo:
        command_line.execute_with_shell("dir", ShellKind.CMD, timeout_s=5)

    assert excinfo.value.shell is ShellKind.CMD


def test_execute_with_missing_shell_fails() -> None:
    command_line = linux_command_line({"bash": "/bin/bash"})

    with pytest.raises(ShellNotFoundError):
        command_line.execute_with_shell("echo hi", ShellKind.ZSH, timeout_s=5)


def test_execute_command_picks_first_shell_with_path_and_command() -> None:
    command_line = linux_command_line({"bash": "/bin/bash", "sh": "/bin/sh"})
    command = Command.of({ShellKind.ZSH: "print hi", ShellKind.SH: "echo hi"})

    command_line.execute_command(command, timeout_s=5)

    assert command_line.executor.commands == [  # type: ignore[attr-defined]
        ["/bin/sh", "-c", "echo hi"]
    ]


def test_execute_command_without_entry_for_only_shell() -> None:
    command_line = linux_command_line({"bash": "/bin/bash"})
    command = Command.of({ShellKind.CMD: "dir"})

    with pytest.raises(CommandNotSpecifiedError) as excinfo:
        command_line.execute_command(command, timeout_s=5)

    assert excinfo.value.shell is ShellKind.BASH


def test_execute_command_without_shells_raises_shell_not_found() -> None:
    command_line = linux_command_line({})

    with pytest.raises(ShellNotFoundError):
        command_line.execute_command(Command.of({ShellKind.BASH: "true"}), timeout_s=5)


def test_execute_command_makes_a_single_attempt() -> None:
    executor = TimingOutExecutor({"bash": "/bin/bash", "sh": "/bin/sh"})
    command_line = CommandLine(host=HostPlatform.LINUX, executor=executor)
    command = Command.of({ShellKind.BASH: "sleep 10", ShellKind.SH: "sleep 10"})

    with pytest.raises(CommandTimeoutError):
        command_line.execute_command(command, timeout_s=1)

    assert executor.commands == [["/bin/bash", "-c", "sleep 10"]]
    assert command_line.metrics["counters"]["commands.timed_out"] == 1


def test_execute_raw_passes_config_environment() -> None:
    config = AppConfig(execution=ExecutionConfig(env={"A": "1"}, cwd=Path("/work")))
    command_line = linux_command_line({}, config=config)

    command_line.execute_raw("tool --flag 'two words'", timeout_s=5)

    executor = command_line.executor
    assert executor.commands == [["tool", "--flag", "two words"]]  # type: ignore[attr-defined]
    assert executor.envs == [{"A": "1"}]  # type: ignore[attr-defined]
    assert executor.cwds == [Path("/work")]  # type: ignore[attr-defined]


def test_default_timeout_comes_from_config() -> None:
    class TimeoutRecorder(FakeHostExecutor):
        def __init__(self) -> None:
            super().__init__({})
            self.timeouts: list[float | timedelta] = []

        def run(
            self,
            command: Sequence[str] | str,
            timeout_s: float | timedelta,
            cwd: Path | None = None,
            env: dict[str, str] | None = None,
        ) -> ExecutionResult:
            self.timeouts.append(timeout_s)
            return super().run(command, timeout_s, cwd, env)

    executor = TimeoutRecorder()
    config = AppConfig(execution=ExecutionConfig(timeout_s=42))
    command_line = CommandLine(config, host=HostPlatform.LINUX, executor=executor)

    command_line.execute_raw(["true"])

    assert executor.timeouts == [42]


@pytest.mark.parametrize("timeout", [0, -5, timedelta(seconds=-1), float("nan")])
def test_invalid_timeout_rejected_before_discovery(timeout: object) -> None:
    command_line = linux_command_line({"bash": "/bin/bash"})

    with pytest.raises(InvalidArgumentError):
        command_line.execute_string("echo hi", timeout_s=timeout)  # type: ignore[arg-type]

    assert not command_line.registry.is_discovered


@pytest.mark.parametrize("command", [None, "", "   "])
def test_empty_commands_are_rejected(command: object) -> None:
    command_line = linux_command_line({"bash": "/bin/bash"})

    with pytest.raises(InvalidArgumentError):
        command_line.execute_string(command, timeout_s=5)  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError):
        command_line.execute_with_shell(command, ShellKind.BASH, timeout_s=5)  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError):
        command_line.execute_raw(command, timeout_s=5)  # type: ignore[arg-type]


def test_execute_command_rejects_none() -> None:
    command_line = linux_command_line({"bash": "/bin/bash"})

    with pytest.raises(InvalidArgumentError):
        command_line.execute_command(None, timeout_s=5)  # type: ignore[arg-type]


def test_configured_platform_overrides_detection() -> None:
    config = AppConfig(shells=ShellsConfig(platform=HostPlatform.WINDOWS))
    executor = FakeHostExecutor({"cmd": "C:\\Windows\\System32\\cmd.exe"})
    command_line = CommandLine(config, executor=executor)

    command_line.execute_string("dir", timeout_s=5)

    assert command_line.host is HostPlatform.WINDOWS
    assert executor.commands == [["C:\\Windows\\System32\\cmd.exe", "/c", "dir"]]


def test_metrics_and_events_are_recorded(caplog: pytest.LogCaptureFixture) -> None:
    command_line = linux_command_line({"sh": "/bin/sh"})

    with caplog.at_level(logging.INFO, logger="polyshell.events"):
        command_line.execute_string("true", timeout_s=5)

    snapshot = command_line.metrics
    assert snapshot["counters"]["commands.completed"] == 1
    assert snapshot["durations"]["command"]["count"] == 1.0
    events = [
        json.loads(record.message)
        for record in caplog.records
        if record.name == "polyshell.events"
    ]
    finished = [event for event in events if event["event_type"] == "command.finished"]
    assert finished[0]["payload"]["shell"] == "sh"
    assert finished[0]["context"]["host"] == "linux"


def test_initialize_config_writes_once(tmp_path: Path) -> None:
    config_path = initialize_config(tmp_path)

    data = json.loads(config_path.read_text(encoding="utf-8"))
    assert data["execution"]["timeout_s"] == 60.0
    with pytest.raises(ConfigError):
        initialize_config(tmp_path)


def test_create_command_line_loads_config(tmp_path: Path) -> None:
    config_path = tmp_path / "polyshell.yaml"
    config_path.write_text(json.dumps({"execution": {"timeout_s": 7}}), encoding="utf-8")

    command_line = create_command_line(config_path)

    assert command_line.config.execution.timeout_s == 7.0


@posix_only
def test_real_shell_runs_no_op() -> None:
    command_line = CommandLine()

    result = command_line.execute_string("exit 0", timeout_s=30)

    assert result.exit_code == 0
    assert result.started_at is not None
    assert result.ended_at >= result.started_at


@posix_only
def test_real_shell_times_out() -> None:
    command_line = CommandLine()

    with pytest.raises(CommandTimeoutError) as excinfo:
        command_line.execute_string("sleep 30", timeout_s=0.5)

    assert excinfo.value.elapsed_s >= 0.5


@posix_only
def test_real_shell_times_out_when_background_child_holds_output() -> None:
    command_line = CommandLine()

    with pytest.raises(CommandTimeoutError):
        command_line.execute_string("sleep 30 & echo started", timeout_s=1)


@posix_only
def test_real_command_abstraction_runs_on_sh() -> None:
    command_line = CommandLine()
    command = Command()
    for shell in command_line.available_shells():
        command.set(shell, "echo polyshell")

    result = command_line.execute_command(command, timeout_s=30)

    assert result.stdout.strip() == "polyshell"
