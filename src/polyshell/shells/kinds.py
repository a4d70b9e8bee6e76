"""Shell kinds, host platforms and the lookup tables that relate them."""

from __future__ import annotations

import platform as _platform
from enum import Enum
from typing import Final

from polyshell.util.logging import get_logger

_LOGGER = get_logger("polyshell.shells")


class ShellKind(str, Enum):
    """Abstract identifier for a command interpreter."""

    BASH = "bash"
    CMD = "cmd"
    CSH = "csh"
    KSH = "ksh"
    POWERSHELL = "powershell"
    SH = "sh"
    TCSH = "tcsh"
    ZSH = "zsh"


class HostPlatform(str, Enum):
    """Operating system family the process is running on."""

    WINDOWS = "windows"
    LINUX = "linux"
    MACOS = "macos"
    UNKNOWN = "unknown"


SUPPORTED_SHELLS: Final[dict[HostPlatform, tuple[ShellKind, ...]]] = {
    HostPlatform.WINDOWS: (
        ShellKind.CMD,
        ShellKind.POWERSHELL,
        ShellKind.BASH,
        ShellKind.ZSH,
        ShellKind.SH,
    ),
    HostPlatform.LINUX: (ShellKind.BASH, ShellKind.ZSH, ShellKind.SH),
    HostPlatform.MACOS: (
        ShellKind.BASH,
        ShellKind.ZSH,
        ShellKind.TCSH,
        ShellKind.KSH,
        ShellKind.SH,
        ShellKind.CSH,
    ),
    HostPlatform.UNKNOWN: (),
}

DEFAULT_SWITCHES: Final[dict[ShellKind, str]] = {
    ShellKind.BASH: "-c",
    ShellKind.CMD: "/c",
    ShellKind.CSH: "-c",
    ShellKind.KSH: "-c",
    ShellKind.POWERSHELL: "-Command",
    ShellKind.SH: "-c",
    ShellKind.TCSH: "-c",
    ShellKind.ZSH: "-c",
}

DEFAULT_DISCOVERY_TEMPLATES: Final[dict[HostPlatform, str]] = {
    HostPlatform.WINDOWS: "where {shell}",
    HostPlatform.LINUX: "which {shell}",
    HostPlatform.MACOS: "which {shell}",
}

# Checked in order; the first marker contained in the OS name wins.
_PLATFORM_MARKERS: Final[tuple[tuple[str, HostPlatform], ...]] = (
    ("WINDOWS", HostPlatform.WINDOWS),
    ("LINUX", HostPlatform.LINUX),
    ("DARWIN", HostPlatform.MACOS),
    ("MAC OS X", HostPlatform.MACOS),
)


def supported_shells(host: HostPlatform) -> tuple[ShellKind, ...]:
    """Return the shells a platform supports, in priority order."""

    return SUPPORTED_SHELLS[host]


def is_supported(host: HostPlatform, shell: ShellKind) -> bool:
    return shell in SUPPORTED_SHELLS[host]


def shell_switch(shell: ShellKind, switches: dict[ShellKind, str] | None = None) -> str:
    """Return the flag that precedes the command string for a shell.

    Args:
        shell: Shell to look up.
        switches: Optional overrides; missing entries fall back to the defaults.
    """

    if switches and shell in switches:
        return switches[shell]
    return DEFAULT_SWITCHES[shell]


def discovery_template(
    host: HostPlatform,
    templates: dict[HostPlatform, str] | None = None,
) -> str | None:
    """Return the command template used to locate shells on a platform.

    The template contains a ``{shell}`` placeholder. Returns None for platforms
    without a discovery mechanism.
    """

    if templates and host in templates:
        return templates[host]
    return DEFAULT_DISCOVERY_TEMPLATES.get(host)


def detect_host_platform(system_name: str | None = None) -> HostPlatform:
    """Detect the host platform from an OS name string.

    Args:
        system_name: OS name to classify. Defaults to ``platform.system()``.

    Returns:
        The matching HostPlatform, or UNKNOWN when nothing matches.
    """

    name = (system_name if system_name is not None else _platform.system()).upper()
    _LOGGER.debug("Detecting host platform from OS name '%s'.", name)
    detected = next(
        (host for marker, host in _PLATFORM_MARKERS if marker in name),
        HostPlatform.UNKNOWN,
    )
    _LOGGER.info("Detected host platform: %s", detected.value)
    return detected
