"""Tool resolution — map the tool names a plugin uses to executables."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from pkgplugin.errors import ToolResolutionError
from pkgplugin.models import Package, PackageGraph

logger = logging.getLogger(__name__)

ToolMap = dict[str, Path]


class BuildSystem(Protocol):
    """Builds product subsets and reports the binaries it produced."""

    def build(self, subset: Sequence[str]) -> list[Path]: ...


class ToolResolver:
    """Resolve tool names against the package graph, building products on demand.

    Tools are resolved one at a time in the order given. A name is
    looked up first among the prebuilt binaries the graph knows for the
    host platform, then among the executable products of *package*,
    which are built synchronously before their binary is looked up.
    """

    def __init__(
        self,
        graph: PackageGraph,
        package: Package,
        build_system: BuildSystem,
        host_platform: str,
    ) -> None:
        self._graph = graph
        self._package = package
        self._build_system = build_system
        self._host_platform = host_platform

    def resolve(self, names: Sequence[str]) -> ToolMap:
        """Return a map from every name in *names* to an executable path.

        Raises:
            ToolResolutionError: If a name is unknown, or its product was
                built but no matching binary was reported.
        """
        tools: ToolMap = {}
        for name in names:
            tools[name] = self.resolve_one(name)
        return tools

    def resolve_one(self, name: str) -> Path:
        for binary in self._graph.binaries:
            if binary.name == name and binary.supports(self._host_platform):
                logger.debug("Tool '%s' is a binary dependency at %s", name, binary.path)
                return binary.path

        if name not in self._package.executable_products():
            raise ToolResolutionError(
                name,
                f"Tool '{name}' is neither a binary dependency for {self._host_platform} "
                f"nor an executable product of package '{self._package.label}'",
            )

        logger.info("Building tool '%s'", name)
        outputs = self._build_system.build([name])
        for path in outputs:
            if path.name == name or path.stem == name:
                return path

        raise ToolResolutionError(
            name, f"Building '{name}' did not produce an executable named '{name}'"
        )


def tool_search_directories(compiler_path: Path | None, path_env: str | None = None) -> list[Path]:
    """Return the directories searched for tools the plugin runs by name.

    The directory containing the compiler comes first, followed by the
    absolute entries of *path_env* (``$PATH`` when omitted).
    """
    if path_env is None:
        path_env = os.environ.get("PATH", "")

    dirs: list[Path] = []
    if compiler_path is not None:
        dirs.append(compiler_path.parent)
    for entry in path_env.split(os.pathsep):
        if not entry:
            continue
        candidate = Path(entry)
        if candidate.is_absolute() and candidate not in dirs:
            dirs.append(candidate)
    return dirs
