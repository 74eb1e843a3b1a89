"""Permission negotiation — reconcile a plugin's requests with granted options."""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from pkgplugin.config import GrantedOptions
from pkgplugin.errors import PermissionDeniedError
from pkgplugin.models import (
    AllNetwork,
    AllowNetworkConnections,
    CommandCapability,
    LocalNetwork,
    NetworkScope,
    NoNetwork,
    Plugin,
    WriteToPackageDirectory,
)

logger = logging.getLogger(__name__)

# Only one blocking console read may be in flight per process.
_PROMPT_LOCK = threading.Lock()


def _isatty(stream: TextIO) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


class ConsolePrompter:
    """Ask the user yes/no questions on the console.

    The session is interactive when the output stream is a terminal,
    unless *interactive* says otherwise.
    """

    def __init__(
        self,
        output_stream: TextIO | None = None,
        input_stream: TextIO | None = None,
        interactive: bool | None = None,
    ) -> None:
        self._output = output_stream if output_stream is not None else sys.stdout
        self._input = input_stream if input_stream is not None else sys.stdin
        self.interactive = _isatty(self._output) if interactive is None else interactive

    def ask(self, problem: str, reason: str, query: str) -> bool:
        """Write the question, block for one line of input and return True on "yes"."""
        with _PROMPT_LOCK:
            self._output.write(f"{problem}\n{reason}\n{query} (yes/no) ")
            self._output.flush()
            answer = self._input.readline()
        return answer.rstrip("\r\n").lower() == "yes"


@dataclass
class NegotiationResult:
    """Permissions approved during negotiation, on top of the granted options."""

    writable_directories: list[Path] = field(default_factory=list)
    network_scopes: list[NetworkScope] = field(default_factory=list)


def network_permission_text(scope: NetworkScope) -> str:
    """Describe a network scope the way it is shown in prompts."""
    match scope:
        case LocalNetwork(ports=ports) | AllNetwork(ports=ports):
            if ports:
                ports_text = "on ports: " + ", ".join(str(p) for p in ports)
            else:
                ports_text = "on all ports"
            return f"allow {scope.label} network connections {ports_text}"
        case _:
            return f"allow {scope.label} connections"


class PermissionNegotiator:
    """Walk a plugin's permission requests in declared order.

    Requests already covered by *options* are skipped. The rest are put
    to the user through *prompter*, or rejected outright when the session
    is not interactive. The first refusal aborts the negotiation.
    """

    def __init__(self, options: GrantedOptions, prompter: ConsolePrompter) -> None:
        self._options = options
        self._prompter = prompter

    def negotiate(self, plugin: Plugin, package_path: Path) -> NegotiationResult:
        """Negotiate every permission *plugin* requests.

        Args:
            plugin: The command plugin about to run.
            package_path: Root directory of the package the plugin acts on.

        Returns:
            The directories and network scopes approved in this session.

        Raises:
            PermissionDeniedError: If a permission was declined, or could not
                be asked for because the session is not interactive.
        """
        result = NegotiationResult()
        match plugin.capability:
            case CommandCapability(permissions=permissions):
                pass
            case _:
                return result

        for request in permissions:
            match request:
                case WriteToPackageDirectory(reason=reason):
                    if self._options.allow_writing_to_package_directory:
                        continue
                    self._request(
                        plugin,
                        "write to the package directory",
                        reason,
                        "--allow-writing-to-package-directory",
                    )
                    if package_path not in result.writable_directories:
                        result.writable_directories.append(package_path)

                case AllowNetworkConnections(scope=NoNetwork()):
                    continue

                case AllowNetworkConnections(scope=scope, reason=reason):
                    if self._options.allow_network_connections == scope.permission:
                        continue
                    self._request(
                        plugin,
                        network_permission_text(scope),
                        reason,
                        f"--allow-network-connections {scope.permission.value}",
                    )
                    if scope not in result.network_scopes:
                        result.network_scopes.append(scope)

        return result

    def _request(self, plugin: Plugin, permission: str, reason: str, remedy: str) -> None:
        problem = f"Plugin '{plugin.name}' wants permission to {permission}."
        stated = f'Stated reason: "{reason}".'

        if not self._prompter.interactive:
            raise PermissionDeniedError(
                "\n".join([problem, stated, f"Use `{remedy}` to allow this."])
            )

        if not self._prompter.ask(problem, stated, f"Allow this plugin to {permission}?"):
            raise PermissionDeniedError(f"Plugin was denied permission to {permission}.")
        logger.info("Plugin '%s' granted permission to %s", plugin.name, permission)
