"""Run one logical command through whichever shell the host provides."""

from polyshell.app import CommandLine, create_command_line
from polyshell.command import Command
from polyshell.config import AppConfig, load_config
from polyshell.errors import (
    CommandNotSpecifiedError,
    CommandTimeoutError,
    ConfigError,
    InvalidArgumentError,
    LaunchError,
    PolyshellError,
    ShellNotFoundError,
    StreamTooLargeError,
)
from polyshell.execution import ExecutionResult, LocalExecutor, StreamType
from polyshell.shells import HostPlatform, ShellKind, ShellRegistry
from polyshell.tokenizer import join_command, split_command

__all__ = [
    "AppConfig",
    "Command",
    "CommandLine",
    "CommandNotSpecifiedError",
    "CommandTimeoutError",
    "ConfigError",
    "ExecutionResult",
    "HostPlatform",
    "InvalidArgumentError",
    "LaunchError",
    "LocalExecutor",
    "PolyshellError",
    "ShellKind",
    "ShellNotFoundError",
    "ShellRegistry",
    "StreamTooLargeError",
    "StreamType",
    "create_command_line",
    "join_command",
    "load_config",
    "split_command",
]
