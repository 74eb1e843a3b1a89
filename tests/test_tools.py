"""Tests for pkgplugin.tools."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from pkgplugin.errors import ToolResolutionError
from pkgplugin.models import BinaryTool, Package, PackageGraph
from pkgplugin.tools import ToolResolver, tool_search_directories

HOST = "linux-x86_64"


@pytest.fixture()
def resolver(graph: PackageGraph, package: Package, build_system) -> ToolResolver:
    return ToolResolver(graph, package, build_system, HOST)


class TestToolResolver:
    def test_binary_dependency_needs_no_build(
        self, graph: PackageGraph, resolver: ToolResolver, build_system
    ) -> None:
        graph.binaries.append(BinaryTool(name="protoc", path=Path("/opt/protoc/bin/protoc")))

        assert resolver.resolve(["protoc"]) == {"protoc": Path("/opt/protoc/bin/protoc")}
        assert build_system.calls == []

    def test_binary_for_other_platform_is_skipped(
        self, graph: PackageGraph, resolver: ToolResolver
    ) -> None:
        graph.binaries.append(
            BinaryTool(name="protoc", path=Path("/mac/protoc"), platforms=["macosx-arm64"])
        )
        graph.binaries.append(
            BinaryTool(name="protoc", path=Path("/linux/protoc"), platforms=[HOST])
        )

        assert resolver.resolve_one("protoc") == Path("/linux/protoc")

    def test_product_is_built_then_found(self, resolver: ToolResolver, build_system) -> None:
        build_system.outputs = {
            "other": Path("/build/other"),
            "fmt-tool": Path("/build/fmt-tool"),
        }

        assert resolver.resolve(["fmt-tool"]) == {"fmt-tool": Path("/build/fmt-tool")}
        assert build_system.calls == [["fmt-tool"]]

    def test_windows_style_binary_name(self, resolver: ToolResolver, build_system) -> None:
        build_system.outputs = {"fmt-tool": Path("/build/fmt-tool.exe")}
        assert resolver.resolve_one("fmt-tool") == Path("/build/fmt-tool.exe")

    def test_built_product_missing_is_an_error(self, resolver: ToolResolver, build_system) -> None:
        with pytest.raises(ToolResolutionError) as exc_info:
            resolver.resolve(["fmt-tool"])
        assert exc_info.value.tool == "fmt-tool"
        assert build_system.calls == [["fmt-tool"]]

    def test_unknown_tool(self, resolver: ToolResolver, build_system) -> None:
        with pytest.raises(ToolResolutionError, match="nope"):
            resolver.resolve(["nope"])
        assert build_system.calls == []

    def test_library_products_are_not_tools(self, resolver: ToolResolver) -> None:
        with pytest.raises(ToolResolutionError):
            resolver.resolve(["support"])

    def test_repeated_names_resolve_in_order(self, resolver: ToolResolver, build_system) -> None:
        build_system.outputs = {"fmt-tool": Path("/build/fmt-tool")}

        resolver.resolve(["fmt-tool", "fmt-tool"])

        assert build_system.calls == [["fmt-tool"], ["fmt-tool"]]


class TestToolSearchDirectories:
    def test_compiler_directory_first(self) -> None:
        path_env = os.pathsep.join(
            ["/usr/local/bin", "relative/bin", "", "/usr/bin", "/usr/local/bin"]
        )
        dirs = tool_search_directories(Path("/toolchain/bin/cc"), path_env)
        assert dirs == [Path("/toolchain/bin"), Path("/usr/local/bin"), Path("/usr/bin")]

    def test_without_compiler(self) -> None:
        assert tool_search_directories(None, "/usr/bin") == [Path("/usr/bin")]

    def test_defaults_to_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATH", "/from/env")
        assert tool_search_directories(None) == [Path("/from/env")]
