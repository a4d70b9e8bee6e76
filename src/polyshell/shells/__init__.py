"""Shell kinds, host platforms and shell discovery."""

from polyshell.shells.kinds import (
    HostPlatform,
    ShellKind,
    detect_host_platform,
    discovery_template,
    shell_switch,
    supported_shells,
)
from polyshell.shells.registry import DiscoveryState, ShellRegistry

__all__ = [
    "DiscoveryState",
    "HostPlatform",
    "ShellKind",
    "ShellRegistry",
    "detect_host_platform",
    "discovery_template",
    "shell_switch",
    "supported_shells",
]
