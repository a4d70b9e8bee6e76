"""Configuration models and loaders for polyshell."""

from __future__ import annotations

import json
import math
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from polyshell.errors import ConfigError
from polyshell.execution.local_exec import DEFAULT_MAX_STREAM_BYTES
from polyshell.execution.streams import DEFAULT_READ_BUFFER_SIZE
from polyshell.shells.kinds import (
    DEFAULT_DISCOVERY_TEMPLATES,
    DEFAULT_SWITCHES,
    HostPlatform,
    ShellKind,
)

CONFIG_FILE_NAMES: tuple[str, ...] = ("polyshell.yaml", "polyshell.yml", "pyproject.toml")


@dataclass(frozen=True)
class ExecutionConfig:
    """Configuration for process execution.

    Attributes:
        timeout_s: Default timeout for commands run without an explicit one.
        discovery_timeout_s: Timeout for each shell discovery command.
        max_stream_bytes: Maximum bytes accepted on stdout or stderr.
        read_buffer_size: Chunk size used when draining output streams.
        cwd: Optional working directory for every command.
        env: Extra environment variables for every command.
    """

    timeout_s: float = 60.0
    discovery_timeout_s: float = 10.0
    max_stream_bytes: int = DEFAULT_MAX_STREAM_BYTES
    read_buffer_size: int = DEFAULT_READ_BUFFER_SIZE
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ShellsConfig:
    """Configuration for shell discovery and invocation."""

    platform: HostPlatform | None = None
    switches: dict[ShellKind, str] = field(default_factory=lambda: dict(DEFAULT_SWITCHES))
    discovery_templates: dict[HostPlatform, str] = field(
        default_factory=lambda: dict(DEFAULT_DISCOVERY_TEMPLATES)
    )


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration for polyshell."""

    execution: ExecutionConfig = field(default_factory=lambda: ExecutionConfig())
    shells: ShellsConfig = field(default_factory=lambda: ShellsConfig())


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk.

    Args:
        path: Optional path to a configuration file or a directory to search.

    Returns:
        Parsed AppConfig with defaults applied when no config exists.

    Raises:
        ConfigError: If the file type is unsupported or its contents are invalid.
    """

    config_path = _resolve_config_path(path)
    if config_path is None:
        return AppConfig()

    if config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ConfigError(f"Unsupported config file type: {config_path}")

    return parse_config(raw_data, base_path=config_path.parent)


def parse_config(raw_data: dict[str, Any], base_path: Path = Path(".")) -> AppConfig:
    """Build an AppConfig from an already-decoded mapping."""

    return AppConfig(
        execution=_parse_execution_config(raw_data.get("execution") or {}, base_path),
        shells=_parse_shells_config(raw_data.get("shells") or {}),
    )


def config_to_dict(config: AppConfig) -> dict[str, Any]:
    """Serialize an AppConfig into a JSON-compatible dictionary."""

    execution = config.execution
    shells = config.shells
    return {
        "execution": {
            "timeout_s": execution.timeout_s,
            "discovery_timeout_s": execution.discovery_timeout_s,
            "max_stream_bytes": execution.max_stream_bytes,
            "read_buffer_size": execution.read_buffer_size,
            "cwd": str(execution.cwd) if execution.cwd is not None else None,
            "env": dict(execution.env),
        },
        "shells": {
            "platform": shells.platform.value if shells.platform is not None else None,
            "switches": {kind.value: switch for kind, switch in shells.switches.items()},
            "discovery_templates": {
                host.value: template for host, template in shells.discovery_templates.items()
            },
        },
    }


def _resolve_config_path(path: Path | None) -> Path | None:
    if path is None:
        candidate_paths = [Path(name) for name in CONFIG_FILE_NAMES]
    elif path.is_dir():
        candidate_paths = [path / name for name in CONFIG_FILE_NAMES]
    else:
        candidate_paths = [path]

    for candidate in candidate_paths:
        if candidate.exists():
            return candidate
    if path is not None and not path.is_dir():
        raise ConfigError(f"Config file not found: {path}")
    return None


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("polyshell", {})
        if not isinstance(tool_config, dict):
            raise ConfigError("tool.polyshell must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if data is not None:
        if not isinstance(data, dict):
            raise ConfigError("YAML configuration must be a mapping.")
        return data
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as exc:
        raise ConfigError(
            "PyYAML is required to parse non-JSON YAML configuration files."
        ) from exc
    parsed = yaml.safe_load(text)
    if not isinstance(parsed, dict):
        raise ConfigError("YAML configuration must be a mapping.")
    return parsed


def _parse_execution_config(raw: Any, base_path: Path) -> ExecutionConfig:
    if not isinstance(raw, dict):
        raise ConfigError("execution must be a mapping.")
    defaults = ExecutionConfig()
    env = raw.get("env") or {}
    if not isinstance(env, dict):
        raise ConfigError("execution.env must be a mapping.")
    cwd = _optional_str(raw.get("cwd"))
    cwd_path: Path | None = None
    if cwd is not None:
        cwd_path = Path(cwd)
        if not cwd_path.is_absolute():
            cwd_path = (base_path / cwd_path).resolve()
    return ExecutionConfig(
        timeout_s=_positive_float(raw, "timeout_s", defaults.timeout_s),
        discovery_timeout_s=_positive_float(
            raw, "discovery_timeout_s", defaults.discovery_timeout_s
        ),
        max_stream_bytes=_positive_int(raw, "max_stream_bytes", defaults.max_stream_bytes),
        read_buffer_size=_positive_int(raw, "read_buffer_size", defaults.read_buffer_size),
        cwd=cwd_path,
        env={str(key): str(value) for key, value in env.items()},
    )


def _parse_shells_config(raw: Any) -> ShellsConfig:
    if not isinstance(raw, dict):
        raise ConfigError("shells must be a mapping.")

    platform_name = _optional_str(raw.get("platform"))
    host = _parse_enum(HostPlatform, platform_name, "shells.platform") if platform_name else None

    switches = dict(DEFAULT_SWITCHES)
    for name, switch in _mapping(raw, "switches").items():
        switches[_parse_enum(ShellKind, name, "shells.switches")] = str(switch)

    templates = dict(DEFAULT_DISCOVERY_TEMPLATES)
    for name, template in _mapping(raw, "discovery_templates").items():
        template_text = str(template)
        if "{shell}" not in template_text:
            raise ConfigError(
                f"Discovery template for '{name}' must contain a {{shell}} placeholder."
            )
        templates[_parse_enum(HostPlatform, name, "shells.discovery_templates")] = template_text

    return ShellsConfig(platform=host, switches=switches, discovery_templates=templates)


def _mapping(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"shells.{key} must be a mapping.")
    return value


def _parse_enum(enum_type: Any, value: str, field_name: str) -> Any:
    try:
        return enum_type(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise ConfigError(f"Unknown value '{value}' for {field_name} (expected {allowed}).") from exc


def _positive_float(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key)
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"execution.{key} must be a number.") from exc
    if not math.isfinite(number) or number <= 0:
        raise ConfigError(f"execution.{key} must be a positive finite number.")
    return number


def _positive_int(raw: dict[str, Any], key: str, default: int) -> int:
    value = raw.get(key)
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"execution.{key} must be an integer.") from exc
    if number <= 0:
        raise ConfigError(f"execution.{key} must be positive.")
    return number


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
