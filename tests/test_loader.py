"""Tests for host-list parsing and source loading."""
from pathlib import Path

import pytest

from mmdot.errors import SourceLoadError, ValidationError
from mmdot.ssh import (
    Host,
    HostSource,
    SourceLoader,
    host_list_format,
    load_host_file,
    parse_host_list,
)

HOSTS_TOML = b"""
[[hosts]]
name = "web"
hostname = "web.example.com"
user = "deploy"
port = 2222
forward_agent = true
local_forward = ["8080:localhost:80"]

[[hosts]]
name = "db"
hostname = "db.example.com"
"""

HOSTS_YAML = b"""
hosts:
  - name: web
    hostname: web.example.com
    user: deploy
    custom:
      - ServerAliveInterval 30
  - name: db
    hostname: db.example.com
"""


class NoDecrypt:
    def decrypt(self, path, recipients, identity_file):
        raise AssertionError("decryptor should not be called")


class TestHostListFormat:
    """Tests for picking the host-list format from a file name."""

    @pytest.mark.parametrize("name,fmt", [
        ("hosts.toml", "toml"),
        ("hosts.toml.age", "toml"),
        ("hosts.yaml", "yaml"),
        ("hosts.yml.age", "yaml"),
        ("hosts", "toml"),
    ])
    def test_suffixes(self, name, fmt):
        assert host_list_format(Path(name)) == fmt


class TestParseHostList:
    """Tests for parse_host_list."""

    def test_toml(self):
        hosts = parse_host_list(HOSTS_TOML, "toml")

        assert [h.name for h in hosts] == ["web", "db"]
        web = hosts[0]
        assert web.user == "deploy"
        assert web.port == 2222
        assert web.forward_agent is True
        assert web.forward_x11 is None
        assert web.local_forward == ["8080:localhost:80"]

    def test_yaml(self):
        hosts = parse_host_list(HOSTS_YAML, "yaml")

        assert [h.name for h in hosts] == ["web", "db"]
        assert hosts[0].custom == ["ServerAliveInterval 30"]

    def test_empty_payload(self):
        assert parse_host_list(b"", "toml") == []
        assert parse_host_list(b"", "yaml") == []

    def test_invalid_toml(self):
        with pytest.raises(SourceLoadError):
            parse_host_list(b"[[hosts]\nname = ", "toml")

    def test_unknown_field(self):
        """Typos in host fields are rejected."""
        with pytest.raises(SourceLoadError):
            parse_host_list(b'[[hosts]]\nname = "a"\nhostnme = "b"\n', "toml")

    def test_not_a_mapping(self):
        with pytest.raises(SourceLoadError):
            parse_host_list(b"- a\n- b\n", "yaml")

    def test_binary_garbage(self):
        """Undecodable bytes (e.g. a failed decryption) are a load error."""
        with pytest.raises(SourceLoadError):
            parse_host_list(b"\xff\xfe\x00age", "toml")


class TestLoadHostFile:
    """Tests for load_host_file."""

    def test_reads_by_suffix(self, tmp_path):
        path = tmp_path / "hosts.yaml"
        path.write_bytes(HOSTS_YAML)

        assert len(load_host_file(path)) == 2

    def test_missing(self, tmp_path):
        with pytest.raises(SourceLoadError):
            load_host_file(tmp_path / "hosts.toml")


class TestSourceLoader:
    """Tests for SourceLoader."""

    def test_inline_source(self):
        source = HostSource(name="inline", hosts=[Host(name="a", hostname="b")])

        hosts = SourceLoader(NoDecrypt()).load_source(source)

        assert [h.name for h in hosts] == ["a"]

    def test_file_source(self, tmp_path):
        path = tmp_path / "hosts.toml"
        path.write_bytes(HOSTS_TOML)

        hosts = SourceLoader(NoDecrypt()).load_source(HostSource(name="f", file=path))

        assert len(hosts) == 2

    def test_load_all_stamps_source_and_priority(self, tmp_path):
        """Every host carries its source's name and priority."""
        path = tmp_path / "hosts.toml"
        path.write_bytes(HOSTS_TOML)
        sources = [
            HostSource(name="personal", priority=10, hosts=[Host(name="home", hostname="h")]),
            HostSource(name="work", priority=20, file=path),
        ]

        hosts = SourceLoader(NoDecrypt()).load_all(sources)

        assert [(h.name, h.source, h.priority) for h in hosts] == [
            ("web", "work", 20),
            ("db", "work", 20),
            ("home", "personal", 10),
        ]

    def test_load_all_wraps_source_name(self, tmp_path):
        source = HostSource(name="broken", file=tmp_path / "missing.toml")

        with pytest.raises(SourceLoadError) as exc:
            SourceLoader(NoDecrypt()).load_all([source])

        assert "failed to load hosts from source 'broken'" in str(exc.value)

    def test_load_all_validates(self):
        source = HostSource(name="bad", hosts=[Host(name="a", hostname="")])

        with pytest.raises(ValidationError):
            SourceLoader(NoDecrypt()).load_all([source])

    def test_load_all_rejects_unnamed_source(self):
        """An unnamed source would be written under a nameless section."""
        source = HostSource(name="", hosts=[Host(name="h1", hostname="a")])

        with pytest.raises(ValidationError) as exc:
            SourceLoader(NoDecrypt()).load_all([source])

        assert "name cannot be empty" in str(exc.value)

    def test_load_all_rejects_repeated_source_name(self):
        """Two sources may not share one managed section."""
        sources = [
            HostSource(name="work", hosts=[Host(name="a", hostname="a")]),
            HostSource(name="work", hosts=[Host(name="b", hostname="b")]),
        ]

        with pytest.raises(ValidationError) as exc:
            SourceLoader(NoDecrypt()).load_all(sources)

        assert "duplicate host source name 'work'" in str(exc.value)

    def test_encrypted_without_identity(self, tmp_path):
        source = HostSource(name="secret", encrypted_file=tmp_path / "s.toml.age")

        with pytest.raises(SourceLoadError) as exc:
            SourceLoader(NoDecrypt()).load_source(source)

        assert "identity_file required" in str(exc.value)

    def test_encrypted_yaml_payload(self, tmp_path):
        """Format follows the name under the .age suffix."""
        class YamlDecryptor:
            def decrypt(self, path, recipients, identity_file):
                return HOSTS_YAML

        source = HostSource(
            name="secret",
            encrypted_file=tmp_path / "s.yaml.age",
            identity_file=tmp_path / "key.txt",
        )

        hosts = SourceLoader(YamlDecryptor()).load_source(source)

        assert [h.name for h in hosts] == ["web", "db"]
