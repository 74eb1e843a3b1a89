"""Plugin lookup — map a command verb to the command plugin that provides it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pkgplugin.errors import AmbiguousPluginError, MissingVerbError, PluginNotFoundError
from pkgplugin.models import CommandCapability, Package, PackageGraph, Plugin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PluginListing:
    """A command plugin paired with the package that declares it."""

    verb: str
    plugin: Plugin
    package: Package | None = None

    def describe(self) -> str:
        line = f"'{self.verb}' (plugin '{self.plugin.name}'"
        if self.package is not None:
            line += f" in package '{self.package.label}'"
        return line + ")"


def command_verb(plugin: Plugin) -> str | None:
    """Return the invocation verb of a command plugin, or None for other plugins."""
    match plugin.capability:
        case CommandCapability(intent=intent):
            return intent.invocation_verb
        case _:
            return None


def available_command_plugins(graph: PackageGraph) -> list[Plugin]:
    """Return every plugin in the graph with a command capability."""
    return [p for p in graph.plugins if command_verb(p) is not None]


def find_plugins(verb: str, graph: PackageGraph) -> list[Plugin]:
    """Return the command plugins whose invocation verb is *verb*."""
    return [p for p in available_command_plugins(graph) if command_verb(p) == verb]


def locate_plugin(verb: str, graph: PackageGraph) -> Plugin:
    """Return the single command plugin that handles *verb*.

    Raises:
        MissingVerbError: If *verb* is empty.
        PluginNotFoundError: If no command plugin provides *verb*.
        AmbiguousPluginError: If several command plugins provide *verb*.
    """
    if not verb:
        raise MissingVerbError()

    logger.info("Finding plugin for command '%s'", verb)
    matches = find_plugins(verb, graph)
    if not matches:
        raise PluginNotFoundError(verb)
    if len(matches) > 1:
        raise AmbiguousPluginError(verb, len(matches))
    return matches[0]


def list_command_plugins(graph: PackageGraph) -> list[PluginListing]:
    """List command plugins sorted by name, with their owning package when known."""
    listings: list[PluginListing] = []
    for plugin in sorted(available_command_plugins(graph), key=lambda p: p.name):
        listings.append(
            PluginListing(
                verb=command_verb(plugin) or "",
                plugin=plugin,
                package=graph.package_for(plugin),
            )
        )
    return listings
