"""Execution engine package."""

from polyshell.execution.base import (
    CodeExecutor,
    ExecutionResult,
    StreamType,
    normalize_command,
    validate_timeout,
)
from polyshell.execution.local_exec import DEFAULT_MAX_STREAM_BYTES, LocalExecutor
from polyshell.execution.streams import read_stream

__all__ = [
    "CodeExecutor",
    "DEFAULT_MAX_STREAM_BYTES",
    "ExecutionResult",
    "LocalExecutor",
    "StreamType",
    "normalize_command",
    "read_stream",
    "validate_timeout",
]
