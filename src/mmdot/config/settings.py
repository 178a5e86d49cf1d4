"""mmdot config file loading.

The config file is TOML (``mmdot.toml``) or YAML (``mmdot.yaml``). Only the
``ssh`` section is read here; other sections belong to other mmdot tools.

```toml
[ssh]
config_file = "~/.ssh/config"
backup = true
preserve_local = true

[[ssh.hosts]]
name = "work"
priority = 20
encrypted_file = "ssh/work.toml.age"
identity_file = "~/.config/age/key.txt"
recipients = ["age1..."]
```
"""
import logging
import os
import tomllib
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import SettingsError
from ..ssh.loader import HostEntry
from ..ssh.schema import HostSource, SyncTarget
from .paths import PathResolver

logger = logging.getLogger(__name__)

DEFAULT_SSH_CONFIG = "~/.ssh/config"


class HostSourceSettings(BaseModel):
    """One ``[[ssh.hosts]]`` entry."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    priority: int = 0
    hosts: list[HostEntry] = []
    file: Optional[str] = None
    encrypted_file: Optional[str] = None
    recipients: list[str] = []
    identity_file: Optional[str] = None
    tags: list[str] = []

    def to_source(self, resolver: PathResolver) -> HostSource:
        return HostSource(
            name=self.name,
            priority=self.priority,
            hosts=[entry.to_host() for entry in self.hosts],
            file=resolver.resolve_optional(self.file),
            encrypted_file=resolver.resolve_optional(self.encrypted_file),
            recipients=list(self.recipients),
            identity_file=resolver.resolve_optional(self.identity_file),
            tags=list(self.tags),
        )


class SSHSettings(BaseModel):
    """The ``[ssh]`` section."""
    model_config = ConfigDict(extra="forbid")

    config_file: str = DEFAULT_SSH_CONFIG
    backup: bool = True
    preserve_local: bool = True
    hosts: list[HostSourceSettings] = []

    @model_validator(mode="after")
    def _check_sources(self) -> "SSHSettings":
        if not self.config_file.strip():
            raise ValueError("SSH config_file cannot be empty")

        seen: set[str] = set()
        for source in self.hosts:
            if source.name in seen:
                raise ValueError(f"duplicate host source name '{source.name}'")
            seen.add(source.name)
        return self

    def to_target(self, resolver: PathResolver) -> SyncTarget:
        return SyncTarget(
            config_file=resolver.resolve(self.config_file),
            backup=self.backup,
            preserve_local=self.preserve_local,
            sources=[source.to_source(resolver) for source in self.hosts],
        )


class Settings(BaseModel):
    """Top level of the mmdot config file."""
    model_config = ConfigDict(extra="ignore")

    ssh: SSHSettings = Field(default_factory=SSHSettings)


def find_config() -> Path:
    """Find the mmdot config file."""
    env_path = os.environ.get("MMDOT_CONFIG")
    if env_path:
        return Path(env_path).expanduser()

    search_paths = [
        Path.cwd() / "mmdot.toml",
        Path.cwd() / "mmdot.yaml",
        Path.cwd() / "mmdot.yml",
        Path.home() / ".config" / "mmdot" / "mmdot.toml",
        Path.home() / ".config" / "mmdot" / "mmdot.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    raise SettingsError(
        "Could not find mmdot.toml. Create one in the current directory "
        "or set MMDOT_CONFIG"
    )


def load_settings(config_path: Path) -> Settings:
    """
    Load and validate the mmdot config file.

    Raises:
        SettingsError: If the file is missing, malformed or invalid
    """
    try:
        text = Path(config_path).read_text(encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"failed to read config {config_path}: {e}") from e

    try:
        if Path(config_path).suffix.lower() in (".yaml", ".yml"):
            raw = yaml.safe_load(text) or {}
        else:
            raw = tomllib.loads(text)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise SettingsError(f"failed to parse config {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise SettingsError(f"config {config_path} must contain a mapping")

    try:
        settings = Settings.model_validate(raw)
    except PydanticValidationError as e:
        raise SettingsError(f"invalid config {config_path}: {e}") from e

    logger.debug(
        f"Loaded {config_path}: {len(settings.ssh.hosts)} SSH host sources"
    )
    return settings


def load_sync_target(config_path: Optional[Path] = None) -> SyncTarget:
    """Load the config and resolve it into a SyncTarget."""
    config_path = Path(config_path) if config_path else find_config()
    settings = load_settings(config_path)
    return settings.ssh.to_target(PathResolver.for_config(config_path))
