"""CLI entrypoints for polyshell."""

from __future__ import annotations

from pathlib import Path

import typer

from polyshell.app import create_command_line, initialize_config
from polyshell.errors import CommandTimeoutError, PolyshellError
from polyshell.execution.base import ExecutionResult
from polyshell.shells.kinds import ShellKind
from polyshell.tokenizer import split_command
from polyshell.util.logging import configure_logging

TIMEOUT_EXIT_CODE = 124

app = typer.Typer(help="Run commands through whichever shell this host provides.")


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
) -> None:
    """Configure CLI-level options."""

    configure_logging(log_level)


@app.command()
def init(directory: Path = typer.Argument(Path("."))) -> None:
    """Write a default polyshell.yaml into a directory."""

    try:
        config_path = initialize_config(directory)
    except PolyshellError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"Created configuration at {config_path}")


@app.command("run")
def run_command(
    command: str = typer.Argument(..., help="Command string to execute."),
    shell: ShellKind | None = typer.Option(
        None,
        "--shell",
        "-s",
        case_sensitive=False,
        help="Shell to run the command in. Defaults to the first one found.",
    ),
    timeout_s: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Timeout in seconds. Defaults to the configured timeout.",
    ),
    raw: bool = typer.Option(
        False,
        "--raw",
        help="Split the command and run it directly instead of through a shell.",
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Configuration file."),
) -> None:
    """Run a command and relay its output and exit code."""

    try:
        command_line = create_command_line(config)
        if raw:
            result = command_line.execute_raw(command, timeout_s)
        elif shell is not None:
            result = command_line.execute_with_shell(command, shell, timeout_s)
        else:
            result = command_line.execute_string(command, timeout_s)
    except CommandTimeoutError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=TIMEOUT_EXIT_CODE) from exc
    except PolyshellError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    _relay(result)


@app.command("shells")
def shells_command(
    config: Path | None = typer.Option(None, "--config", "-c", help="Configuration file."),
) -> None:
    """List the shells found on this host, in priority order."""

    try:
        command_line = create_command_line(config)
        available = command_line.available_shells()
    except PolyshellError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if not available:
        typer.echo(f"No supported shells found on {command_line.host.value}.")
        return
    paths = command_line.registry.paths()
    for shell in available:
        typer.echo(f"{shell.value}\t{paths[shell]}")


@app.command("split")
def split_cmd(command: str = typer.Argument(..., help="Command string to split.")) -> None:
    """Print the arguments a command string splits into, one per line."""

    for arg in split_command(command):
        typer.echo(arg)


def _relay(result: ExecutionResult) -> None:
    if result.stdout:
        typer.echo(result.stdout, nl=not result.stdout.endswith("\n"))
    if result.stderr:
        typer.echo(result.stderr, err=True, nl=not result.stderr.endswith("\n"))
    exit_code = result.exit_code
    if exit_code < 0:
        # Killed by a signal on POSIX.
        exit_code = 128 - exit_code
    if exit_code:
        raise typer.Exit(code=exit_code)
