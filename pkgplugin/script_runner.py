"""Subprocess script runner — runs plugin scripts on a worker thread."""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import sysconfig
import threading
from typing import IO

from rich.console import Console
from rich.markup import escape

from pkgplugin.errors import InvocationError
from pkgplugin.invocation import Completion, InvocationDescriptor, InvocationResult, PluginDelegate

logger = logging.getLogger(__name__)

# Environment variable carrying the JSON-encoded invocation descriptor.
INVOCATION_ENV = "PKGPLUGIN_INVOCATION"


class ConsoleDelegate:
    """Relay plugin output and diagnostics to a rich console.

    Callbacks arrive on the runner's worker thread, so writes are
    serialised with a lock.
    """

    def __init__(self, console: Console) -> None:
        self._console = console
        self._lock = threading.Lock()

    def handle_output(self, text: str) -> None:
        with self._lock:
            self._console.out(text.rstrip("\n"), highlight=False)

    def handle_diagnostic(self, severity: str, message: str) -> None:
        style = "red" if severity == "error" else "yellow"
        with self._lock:
            self._console.print(f"[{style}]{severity}:[/{style}] {escape(message)}")


class SubprocessScriptRunner:
    """Run a plugin's entry script with a Python interpreter.

    The descriptor is passed to the plugin as JSON in ``PKGPLUGIN_INVOCATION``
    and ``PATH`` is set to the tool search directories. The sandbox policy
    travels inside the descriptor; enforcing it is left to the host.

    Stdout lines go to ``handle_output`` and make up the captured output.
    Stderr lines are reported through ``handle_diagnostic`` as warnings.
    Both streams are decoded as UTF-8 with undecodable bytes replaced.
    """

    def __init__(self, interpreter: str | None = None, host_platform: str | None = None) -> None:
        self.interpreter = interpreter or sys.executable
        self.host_platform = host_platform or sysconfig.get_platform()

    def invoke(
        self,
        descriptor: InvocationDescriptor,
        delegate: PluginDelegate,
        completion: Completion,
    ) -> None:
        """Start the plugin in the background; *completion* fires once when it exits."""
        worker = threading.Thread(
            target=self._run,
            args=(descriptor, delegate, completion),
            name=f"plugin-{descriptor.plugin}",
            daemon=True,
        )
        worker.start()

    def _environment(self, descriptor: InvocationDescriptor) -> dict[str, str]:
        env = dict(os.environ)
        env[INVOCATION_ENV] = descriptor.model_dump_json()
        if descriptor.tool_search_directories:
            env["PATH"] = os.pathsep.join(str(d) for d in descriptor.tool_search_directories)
        return env

    def _run(
        self,
        descriptor: InvocationDescriptor,
        delegate: PluginDelegate,
        completion: Completion,
    ) -> None:
        try:
            outcome = self._execute(descriptor, delegate)
        except InvocationError as exc:
            completion(exc)
        except Exception as exc:
            completion(InvocationError(f"Plugin '{descriptor.plugin}' failed: {exc}"))
        else:
            completion(outcome)

    def _execute(
        self, descriptor: InvocationDescriptor, delegate: PluginDelegate
    ) -> InvocationResult:
        if not descriptor.script.is_file():
            raise InvocationError(f"Plugin script not found: {descriptor.script}")

        descriptor.output_directory.mkdir(parents=True, exist_ok=True)
        argv = [self.interpreter, str(descriptor.script), *descriptor.arguments]
        logger.debug("Launching %s", argv)

        lines: list[str] = []
        try:
            with subprocess.Popen(
                argv,
                cwd=descriptor.working_directory,
                env=self._environment(descriptor),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            ) as proc:
                relay = threading.Thread(
                    target=_relay_diagnostics,
                    args=(proc.stderr, delegate),
                    name=f"plugin-{descriptor.plugin}-stderr",
                    daemon=True,
                )
                relay.start()
                for line in proc.stdout or ():
                    lines.append(line)
                    delegate.handle_output(line)
                exit_code = proc.wait()
                relay.join()
        except OSError as exc:
            raise InvocationError(f"Failed to launch plugin '{descriptor.plugin}': {exc}") from exc

        output = "".join(lines)
        if exit_code != 0:
            raise InvocationError(
                f"Plugin '{descriptor.plugin}' exited with code {exit_code}",
                exit_code=exit_code,
                output=output,
            )
        return InvocationResult(exit_code=exit_code, output=output)


def _relay_diagnostics(stream: IO[str] | None, delegate: PluginDelegate) -> None:
    # Each stderr line becomes a warning.
    for line in stream or ():
        message = line.rstrip("\r\n")
        if message:
            delegate.handle_diagnostic("warning", message)
