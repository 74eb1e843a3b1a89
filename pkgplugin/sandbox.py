"""Sandbox policy — the directories and network scopes a plugin may use."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

from pkgplugin.config import GrantedOptions
from pkgplugin.models import NetworkPermission, NetworkScope
from pkgplugin.permissions import NegotiationResult

T = TypeVar("T")


class SandboxPolicy(BaseModel):
    """Resolved access rules handed to the script runner.

    ``writable_directories`` always starts with the plugin's output
    directory and never shares an entry with ``read_only_directories``.
    """

    model_config = ConfigDict(frozen=True)

    writable_directories: tuple[Path, ...]
    read_only_directories: tuple[Path, ...] = ()
    allowed_network_connections: tuple[NetworkScope, ...] = ()


def _unique(items: Iterable[T]) -> list[T]:
    """Drop repeated items, keeping the first occurrence."""
    result: list[T] = []
    for item in items:
        if item not in result:
            result.append(item)
    return result


def _is_descendant_or_equal(path: Path, ancestor: Path) -> bool:
    return path == ancestor or ancestor in path.parents


def build_sandbox_policy(
    output_directory: Path,
    package_path: Path,
    options: GrantedOptions,
    negotiated: NegotiationResult,
) -> SandboxPolicy:
    """Assemble the sandbox policy for one plugin invocation.

    Writable directories are, in order: the output directory, the package
    directory when granted up front, the user's extra directories and the
    directories approved during negotiation. The package directory is
    read-only unless one of the writable directories already covers it.

    Args:
        output_directory: The plugin's private output directory.
        package_path: Root directory of the package.
        options: Permissions granted on the command line.
        negotiated: Permissions approved while negotiating.

    Returns:
        A frozen SandboxPolicy.
    """
    writable: list[Path] = [output_directory]
    if options.allow_writing_to_package_directory:
        writable.append(package_path)
    writable.extend(options.additional_writable_directories)
    writable.extend(negotiated.writable_directories)
    writable = _unique(writable)

    if any(_is_descendant_or_equal(package_path, d) for d in writable):
        read_only: list[Path] = []
    else:
        read_only = [package_path]

    network: list[NetworkScope] = []
    if options.allow_network_connections != NetworkPermission.NONE:
        network.append(options.allow_network_connections.to_scope())
    network.extend(negotiated.network_scopes)

    return SandboxPolicy(
        writable_directories=tuple(writable),
        read_only_directories=tuple(read_only),
        allowed_network_connections=tuple(_unique(network)),
    )
