"""Tests for pkgplugin.config and the models it loads."""

from pathlib import Path

import pytest

from pkgplugin.config import GrantedOptions, ProjectConfig, load_config
from pkgplugin.models import (
    AllowNetworkConnections,
    CommandCapability,
    DockerNetwork,
    LocalNetwork,
    NetworkPermission,
    NoNetwork,
)

_CONFIG = """\
packages:
  - name: demo
    display_name: Demo
    path: pkg
    targets: [Formatter]
    products:
      - {name: fmt-tool, type: executable}
plugins:
  - name: Formatter
    script: Plugins/formatter.py
    tools: [fmt-tool, protoc]
    capability:
      kind: command
      intent: {kind: custom, verb: format, description: Format sources}
      permissions:
        - kind: write-to-package-directory
          reason: needs to reformat
        - kind: allow-network-connections
          reason: fetch style rules
          scope: {kind: local, ports: [8080]}
  - name: Codegen
    capability: {kind: build-tool}
binaries:
  - {name: protoc, path: vendor/protoc}
workspace: {data_dir: .scratch}
toolchain: {compiler: definitely-not-a-compiler}
build:
  command: [make, "{product}"]
  products_dir: out/debug
"""


class TestGrantedOptions:
    def test_defaults(self) -> None:
        options = GrantedOptions()
        assert options.allow_writing_to_package_directory is False
        assert options.additional_writable_directories == ()
        assert options.allow_network_connections == NetworkPermission.NONE

    def test_from_flags_resolves_relative_directories(self, tmp_path: Path) -> None:
        options = GrantedOptions.from_flags(
            tmp_path,
            allow_writing_to_directory=["cache", str(tmp_path / "abs"), "cache"],
            allow_network_connections=NetworkPermission.DOCKER,
        )
        assert options.additional_writable_directories == (
            (tmp_path / "cache").resolve(),
            (tmp_path / "abs").resolve(),
        )
        assert options.allow_network_connections == NetworkPermission.DOCKER

    def test_frozen(self) -> None:
        options = GrantedOptions()
        with pytest.raises(ValueError):
            options.allow_writing_to_package_directory = True  # type: ignore[misc]


class TestNetworkPermission:
    def test_to_scope(self) -> None:
        assert NetworkPermission.LOCAL.to_scope() == LocalNetwork()
        assert NetworkPermission.NONE.to_scope() == NoNetwork()
        assert NetworkPermission.DOCKER.to_scope() == DockerNetwork()

    def test_scope_permission_ignores_ports(self) -> None:
        assert LocalNetwork(ports=(1, 2)).permission == NetworkPermission.LOCAL


class TestLoadConfig:
    def test_load_valid_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "pkgplugin.yaml"
        config_file.write_text(_CONFIG, encoding="utf-8")

        cfg = load_config(config_file)
        graph = cfg.graph()

        assert cfg.root_path() == tmp_path.resolve()
        assert graph.root_package.path == (tmp_path / "pkg").resolve()
        assert graph.binaries[0].path == (tmp_path / "vendor" / "protoc").resolve()
        assert cfg.plugin_working_directory() == (tmp_path / ".scratch" / "plugins").resolve()
        assert cfg.products_path() == (tmp_path / "out" / "debug").resolve()
        assert cfg.compiler_path() is None

        formatter = graph.plugins[0]
        assert isinstance(formatter.capability, CommandCapability)
        assert formatter.capability.intent.invocation_verb == "format"
        network = formatter.capability.permissions[1]
        assert isinstance(network, AllowNetworkConnections)
        assert network.scope == LocalNetwork(ports=(8080,))
        assert graph.plugins[1].capability.kind == "build-tool"

    def test_explicit_compiler_path(self, tmp_path: Path) -> None:
        cfg = ProjectConfig(project_root=str(tmp_path), toolchain={"compiler_path": "tc/bin/cc"})
        assert cfg.compiler_path() == (tmp_path / "tc" / "bin" / "cc").resolve()

    def test_missing_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/pkgplugin.yaml")

    def test_empty_file_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "pkgplugin.yaml"
        config_file.write_text("", encoding="utf-8")
        with pytest.raises(ValueError, match="empty"):
            load_config(config_file)

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "pkgplugin.yaml"
        config_file.write_text("just a string", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_file)

    def test_unknown_permission_kind_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "pkgplugin.yaml"
        config_file.write_text(
            "plugins:\n"
            "  - name: Bad\n"
            "    capability:\n"
            "      kind: command\n"
            "      intent: {kind: custom, verb: bad}\n"
            "      permissions:\n"
            "        - {kind: format-the-disk, reason: why not}\n",
            encoding="utf-8",
        )
        with pytest.raises(ValueError):
            load_config(config_file)

    def test_empty_graph_has_no_root_package(self, tmp_path: Path) -> None:
        config_file = tmp_path / "pkgplugin.yaml"
        config_file.write_text("workspace: {data_dir: .build}\n", encoding="utf-8")
        with pytest.raises(ValueError, match="root package"):
            _ = load_config(config_file).graph().root_package
