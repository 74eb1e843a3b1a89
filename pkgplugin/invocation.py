"""Plugin invocation — hand a descriptor to the script runner and await completion."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, InvalidStateError
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from pkgplugin.models import Package, Plugin
from pkgplugin.sandbox import SandboxPolicy

logger = logging.getLogger(__name__)


class InvocationDescriptor(BaseModel):
    """Everything the script runner needs to launch one command plugin."""

    model_config = ConfigDict(frozen=True)

    plugin: str
    package: str
    package_path: Path
    script: Path
    verb: str
    arguments: tuple[str, ...] = ()
    working_directory: Path
    output_directory: Path
    tool_search_directories: tuple[Path, ...] = ()
    tools: dict[str, Path] = {}
    policy: SandboxPolicy


class InvocationResult(BaseModel):
    """Outcome of a successful plugin run."""

    exit_code: int = 0
    output: str = ""


Completion = Callable[[InvocationResult | BaseException], None]


class PluginDelegate(Protocol):
    """Receives progress from a running plugin, possibly on another thread."""

    def handle_output(self, text: str) -> None: ...

    def handle_diagnostic(self, severity: str, message: str) -> None: ...


class ScriptRunner(Protocol):
    """Executes plugin scripts and reports completion through a callback."""

    host_platform: str

    def invoke(
        self,
        descriptor: InvocationDescriptor,
        delegate: PluginDelegate,
        completion: Completion,
    ) -> None: ...


def assemble_descriptor(
    plugin: Plugin,
    package: Package,
    verb: str,
    arguments: Sequence[str],
    working_directory: Path,
    output_directory: Path,
    tool_search_directories: Sequence[Path],
    tools: dict[str, Path],
    policy: SandboxPolicy,
) -> InvocationDescriptor:
    """Build the invocation descriptor for *plugin* acting on *package*."""
    return InvocationDescriptor(
        plugin=plugin.name,
        package=package.name,
        package_path=package.path,
        script=package.path / plugin.script,
        verb=verb,
        arguments=tuple(arguments),
        working_directory=working_directory,
        output_directory=output_directory,
        tool_search_directories=tuple(tool_search_directories),
        tools=dict(tools),
        policy=policy,
    )


class InvocationCoordinator:
    """Submit one invocation at a time and block until it completes.

    The runner's completion callback is bridged into a one-shot future,
    so the caller sees either the runner's result or its exception,
    unchanged. Completion signals after the first are ignored.
    """

    def __init__(self, runner: ScriptRunner, delegate: PluginDelegate) -> None:
        self._runner = runner
        self._delegate = delegate
        self._lock = threading.Lock()
        self._in_flight = False

    def run(self, descriptor: InvocationDescriptor) -> InvocationResult:
        """Invoke the plugin described by *descriptor* and wait for the result.

        Raises:
            RuntimeError: If another invocation is still in flight.
            Exception: Whatever failure the runner reported.
        """
        with self._lock:
            if self._in_flight:
                raise RuntimeError("A plugin invocation is already in flight")
            self._in_flight = True

        try:
            future: Future[InvocationResult] = Future()

            def complete(outcome: InvocationResult | BaseException) -> None:
                try:
                    if isinstance(outcome, BaseException):
                        future.set_exception(outcome)
                    else:
                        future.set_result(outcome)
                except InvalidStateError:
                    logger.warning(
                        "Ignoring repeated completion signal from plugin '%s'", descriptor.plugin
                    )

            logger.info("Invoking plugin '%s' for '%s'", descriptor.plugin, descriptor.verb)
            self._runner.invoke(descriptor, self._delegate, complete)
            return future.result()
        finally:
            with self._lock:
                self._in_flight = False
