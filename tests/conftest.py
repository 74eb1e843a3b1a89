"""Shared test fixtures for pkgplugin."""

from __future__ import annotations

import io
import threading
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from pkgplugin.config import ProjectConfig
from pkgplugin.invocation import Completion, InvocationDescriptor, InvocationResult
from pkgplugin.models import (
    BuildToolCapability,
    CommandCapability,
    CustomIntent,
    Package,
    PackageGraph,
    Plugin,
    Product,
)
from pkgplugin.permissions import ConsolePrompter

# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeBuildSystem:
    """Records build requests and reports a fixed set of outputs."""

    def __init__(self, outputs: dict[str, Path] | None = None) -> None:
        self.outputs = outputs or {}
        self.calls: list[list[str]] = []

    def build(self, subset: Sequence[str]) -> list[Path]:
        self.calls.append(list(subset))
        return list(self.outputs.values())


class FakeRunner:
    """Completes each invocation from a worker thread with a preset outcome."""

    host_platform = "linux-x86_64"

    def __init__(self, outcome: InvocationResult | BaseException | None = None) -> None:
        self.outcome = outcome if outcome is not None else InvocationResult(output="done\n")
        self.descriptors: list[InvocationDescriptor] = []
        self.completions = 1

    def invoke(self, descriptor: InvocationDescriptor, delegate, completion: Completion) -> None:
        self.descriptors.append(descriptor)

        def work() -> None:
            delegate.handle_output("working\n")
            for _ in range(self.completions):
                completion(self.outcome)

        threading.Thread(target=work).start()


class RecordingDelegate:
    def __init__(self) -> None:
        self.output: list[str] = []
        self.diagnostics: list[tuple[str, str]] = []
        self.threads: set[str] = set()

    def handle_output(self, text: str) -> None:
        self.threads.add(threading.current_thread().name)
        self.output.append(text)

    def handle_diagnostic(self, severity: str, message: str) -> None:
        self.diagnostics.append((severity, message))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_plugin() -> Callable[..., Plugin]:
    """Factory for command plugins with a custom verb."""

    def _make(
        name: str,
        verb: str,
        permissions: Sequence = (),
        tools: Sequence[str] = (),
        script: str = "Plugins/plugin.py",
    ) -> Plugin:
        return Plugin(
            name=name,
            capability=CommandCapability(
                intent=CustomIntent(verb=verb), permissions=tuple(permissions)
            ),
            tools=tuple(tools),
            script=script,
        )

    return _make


@pytest.fixture()
def package_path(tmp_path: Path) -> Path:
    """A package directory containing a plugin script."""
    root = tmp_path / "pkg"
    (root / "Plugins").mkdir(parents=True)
    (root / "Plugins" / "plugin.py").write_text("print('hello from plugin')\n", encoding="utf-8")
    return root


@pytest.fixture()
def package(package_path: Path) -> Package:
    return Package(
        name="demo",
        display_name="Demo",
        path=package_path,
        targets=["Formatter", "Linter"],
        products=[Product(name="fmt-tool"), Product(name="support", type="library")],
    )


@pytest.fixture()
def graph(package: Package, make_plugin: Callable[..., Plugin]) -> PackageGraph:
    return PackageGraph(
        packages=[package],
        plugins=[
            make_plugin("Formatter", "format"),
            Plugin(name="Codegen", capability=BuildToolCapability()),
        ],
    )


@pytest.fixture()
def project(tmp_path: Path, package_path: Path) -> ProjectConfig:
    """A project configuration rooted at tmp_path with a single package."""
    return ProjectConfig(
        project_root=str(tmp_path),
        packages=[
            Package(
                name="demo",
                display_name="Demo",
                path=package_path,
                targets=["Formatter"],
                products=[Product(name="fmt-tool")],
            )
        ],
        toolchain={"compiler_path": str(tmp_path / "toolchain" / "bin" / "cc")},
    )


@pytest.fixture()
def build_system() -> FakeBuildSystem:
    return FakeBuildSystem()


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def delegate() -> RecordingDelegate:
    return RecordingDelegate()


@pytest.fixture()
def console_io() -> Callable[..., tuple[ConsolePrompter, io.StringIO]]:
    """Factory for a prompter reading *answers* and writing to a buffer."""

    def _make(answers: str = "", interactive: bool = True) -> tuple[ConsolePrompter, io.StringIO]:
        out = io.StringIO()
        prompter = ConsolePrompter(
            output_stream=out, input_stream=io.StringIO(answers), interactive=interactive
        )
        return prompter, out

    return _make
