"""mmdot config file loading and path resolution."""
from .paths import PathResolver
from .settings import (
    Settings,
    SSHSettings,
    HostSourceSettings,
    find_config,
    load_settings,
    load_sync_target,
)

__all__ = [
    "PathResolver",
    "Settings",
    "SSHSettings",
    "HostSourceSettings",
    "find_config",
    "load_settings",
    "load_sync_target",
]
