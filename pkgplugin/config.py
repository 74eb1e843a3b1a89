"""Configuration — granted plugin options and the pkgplugin.yaml project file."""

from __future__ import annotations

import shutil
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from pkgplugin.models import BinaryTool, NetworkPermission, Package, PackageGraph, Plugin

DEFAULT_CONFIG = "pkgplugin.yaml"


class GrantedOptions(BaseModel):
    """Permissions the user granted up front for a single plugin invocation.

    Built once from command-line flags and never modified afterwards;
    permissions approved interactively are tracked separately.
    """

    model_config = ConfigDict(frozen=True)

    allow_writing_to_package_directory: bool = False
    additional_writable_directories: tuple[Path, ...] = ()
    allow_network_connections: NetworkPermission = NetworkPermission.NONE

    @field_validator("additional_writable_directories")
    @classmethod
    def _deduplicate_directories(cls, v: tuple[Path, ...]) -> tuple[Path, ...]:
        """Remove duplicate directories while preserving order."""
        seen: set[Path] = set()
        result: list[Path] = []
        for path in v:
            if path not in seen:
                seen.add(path)
                result.append(path)
        return tuple(result)

    @classmethod
    def from_flags(
        cls,
        working_directory: Path,
        allow_writing_to_package_directory: bool = False,
        allow_writing_to_directory: list[str] | None = None,
        allow_network_connections: NetworkPermission = NetworkPermission.NONE,
    ) -> GrantedOptions:
        """Build options from parsed CLI flags.

        Relative ``--allow-writing-to-directory`` values are resolved
        against *working_directory*.
        """
        directories = tuple(
            (working_directory / p).resolve() for p in (allow_writing_to_directory or [])
        )
        return cls(
            allow_writing_to_package_directory=allow_writing_to_package_directory,
            additional_writable_directories=directories,
            allow_network_connections=allow_network_connections,
        )


class WorkspaceConfig(BaseModel):
    """Where the workspace keeps plugin scratch data."""

    data_dir: str = ".build"


class ToolchainConfig(BaseModel):
    """Host toolchain used to extend the plugin's tool search path."""

    compiler: str = "cc"
    compiler_path: str | None = None


class BuildConfig(BaseModel):
    """How executable products are built on demand for plugin tools."""

    command: list[str] = []
    products_dir: str = ".build/debug"


class ProjectConfig(BaseModel):
    """Contents of ``pkgplugin.yaml``.

    Relative paths are interpreted against ``project_root``.
    """

    project_root: str = "."
    packages: list[Package] = []
    plugins: list[Plugin] = []
    binaries: list[BinaryTool] = []
    workspace: WorkspaceConfig = WorkspaceConfig()
    toolchain: ToolchainConfig = ToolchainConfig()
    build: BuildConfig = BuildConfig()

    def root_path(self) -> Path:
        """Return the resolved project root path."""
        return Path(self.project_root).resolve()

    def _resolve(self, path: Path | str) -> Path:
        return (self.root_path() / path).resolve()

    def graph(self) -> PackageGraph:
        """Return the package graph with all paths made absolute."""
        return PackageGraph(
            packages=[p.model_copy(update={"path": self._resolve(p.path)}) for p in self.packages],
            plugins=list(self.plugins),
            binaries=[b.model_copy(update={"path": self._resolve(b.path)}) for b in self.binaries],
        )

    def plugin_working_directory(self) -> Path:
        """Directory holding per-plugin scratch and output directories."""
        return self._resolve(self.workspace.data_dir) / "plugins"

    def products_path(self) -> Path:
        return self._resolve(self.build.products_dir)

    def compiler_path(self) -> Path | None:
        """Locate the host compiler, or return None if it cannot be found."""
        if self.toolchain.compiler_path:
            return self._resolve(self.toolchain.compiler_path)
        found = shutil.which(self.toolchain.compiler)
        return Path(found).resolve() if found else None


def load_config(path: Path | str = DEFAULT_CONFIG) -> ProjectConfig:
    """Load and validate a project configuration file.

    A missing or relative ``project_root`` is taken relative to the
    directory containing the file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A validated ProjectConfig instance.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the file contains invalid configuration.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    text = config_path.read_text(encoding="utf-8")
    data = yaml.safe_load(text)

    if data is None:
        raise ValueError(f"Configuration file is empty: {config_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a YAML mapping: {config_path}")

    base = config_path.resolve().parent
    data["project_root"] = str(base / data.get("project_root", "."))

    return ProjectConfig(**data)
