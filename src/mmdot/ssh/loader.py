"""Load desired hosts from host sources.

A source is either inline (hosts listed in the mmdot config), a plain
host-list file, or an age-encrypted host-list file. Host-list files are
TOML (``[[hosts]]`` tables) or YAML (a ``hosts:`` list).
"""
import logging
import tomllib
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Optional

import yaml
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from ..crypto.age import AgeEncryptor, Decryptor
from ..errors import DecryptionError, SourceLoadError, ValidationError
from .schema import Host, HostSource
from .validator import deduplicate_hosts, sort_by_priority, validate_hosts

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}


class HostEntry(BaseModel):
    """A host as written in a config or host-list file."""
    model_config = ConfigDict(extra="forbid")

    # Emptiness and port range are checked by Host.validate
    name: str = ""
    hostname: str = ""
    user: str = ""
    port: int = 0
    identity_file: str = ""
    proxy_jump: str = ""
    forward_agent: Optional[bool] = None
    forward_x11: Optional[bool] = None
    local_forward: list[str] = []
    remote_forward: list[str] = []
    custom: list[str] = []

    def to_host(self) -> Host:
        return Host(
            name=self.name,
            hostname=self.hostname,
            user=self.user,
            port=self.port,
            identity_file=self.identity_file,
            proxy_jump=self.proxy_jump,
            forward_agent=self.forward_agent,
            forward_x11=self.forward_x11,
            local_forward=list(self.local_forward),
            remote_forward=list(self.remote_forward),
            custom=list(self.custom),
        )


class HostListFile(BaseModel):
    """Structure of an external (possibly encrypted) hosts file."""
    hosts: list[HostEntry] = []


def host_list_format(path: Path) -> str:
    """Guess "toml" or "yaml" from a file name, ignoring a ".age" suffix."""
    if path.suffix == ".age":
        path = path.with_suffix("")
    return "yaml" if path.suffix.lower() in YAML_SUFFIXES else "toml"


def parse_host_list(data: bytes, fmt: str = "toml") -> list[Host]:
    """
    Parse host-list bytes into hosts.

    Raises:
        SourceLoadError: If the payload is not valid TOML/YAML or has
            unexpected fields
    """
    try:
        text = data.decode("utf-8")
        if fmt == "yaml":
            raw = yaml.safe_load(text) or {}
        else:
            raw = tomllib.loads(text)
    except (UnicodeDecodeError, tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise SourceLoadError(f"failed to parse hosts {fmt.upper()}: {e}") from e

    if not isinstance(raw, dict):
        raise SourceLoadError("hosts file must contain a mapping with a 'hosts' list")

    try:
        parsed = HostListFile.model_validate(raw)
    except PydanticValidationError as e:
        raise SourceLoadError(f"invalid hosts file: {e}") from e

    return [entry.to_host() for entry in parsed.hosts]


def load_host_file(path: Path) -> list[Host]:
    """Read and parse a plaintext host-list file."""
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SourceLoadError(f"failed to read hosts file {path}: {e}") from e
    return parse_host_list(data, host_list_format(path))


def _check_source_names(sources: list[HostSource]) -> None:
    """Source names key the managed sections, so they must be unique."""
    seen: set[str] = set()
    for index, source in enumerate(sources):
        if not source.name:
            raise ValidationError(f"host source {index}: name cannot be empty")
        if source.name in seen:
            raise ValidationError(f"duplicate host source name '{source.name}'")
        seen.add(source.name)


class SourceLoader:
    """Resolve host sources into validated, prioritized hosts."""

    def __init__(self, decryptor: Optional[Decryptor] = None):
        self.decryptor = decryptor or AgeEncryptor()

    def load_source(self, source: HostSource) -> list[Host]:
        """
        Load the hosts of one source, without stamping.

        Raises:
            SourceLoadError: If the source file is missing or unparsable
            DecryptionError: If the encrypted file cannot be decrypted
        """
        if source.encrypted_file is not None:
            return self._load_encrypted(source)

        if source.file is not None:
            return load_host_file(source.file)

        return list(source.hosts)

    def _load_encrypted(self, source: HostSource) -> list[Host]:
        if source.identity_file is None:
            raise SourceLoadError(
                f"identity_file required for encrypted source '{source.name}'"
            )

        try:
            data = self.decryptor.decrypt(
                source.encrypted_file,
                source.recipients,
                source.identity_file,
            )
        except DecryptionError as e:
            raise DecryptionError(
                f"failed to decrypt hosts file {source.encrypted_file}: {e}"
            ) from e

        return parse_host_list(data, host_list_format(source.encrypted_file))

    def load_all(self, sources: Iterable[HostSource]) -> list[Host]:
        """
        Load every source and reduce to one host per name.

        Hosts are stamped with their source's priority and name, sorted by
        priority, de-duplicated and validated. Any failure aborts the whole
        load: no source is applied partially.
        """
        sources = list(sources)
        _check_source_names(sources)

        all_hosts: list[Host] = []

        for source in sources:
            try:
                hosts = self.load_source(source)
            except SourceLoadError as e:
                raise SourceLoadError(
                    f"failed to load hosts from source '{source.name}': {e}"
                ) from e
            except DecryptionError as e:
                raise DecryptionError(
                    f"failed to load hosts from source '{source.name}': {e}"
                ) from e

            logger.debug(f"Loaded {len(hosts)} hosts from source {source.name}")
            all_hosts.extend(
                replace(host, priority=source.priority, source=source.name)
                for host in hosts
            )

        ordered = sort_by_priority(all_hosts)
        deduplicated = deduplicate_hosts(ordered)
        if len(deduplicated) < len(ordered):
            logger.info(
                f"Dropped {len(ordered) - len(deduplicated)} lower-priority "
                f"duplicate hosts"
            )

        validate_hosts(deduplicated)
        return deduplicated
