"""Plugin command executor — locate, negotiate, resolve tools and invoke."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from pkgplugin.audit import AuditEvent, write_audit
from pkgplugin.build import CommandBuildSystem
from pkgplugin.config import GrantedOptions, ProjectConfig
from pkgplugin.errors import PermissionDeniedError
from pkgplugin.invocation import (
    InvocationCoordinator,
    InvocationResult,
    PluginDelegate,
    ScriptRunner,
    assemble_descriptor,
)
from pkgplugin.locator import locate_plugin
from pkgplugin.permissions import ConsolePrompter, PermissionNegotiator
from pkgplugin.sandbox import build_sandbox_policy
from pkgplugin.tools import BuildSystem, ToolResolver, tool_search_directories

logger = logging.getLogger(__name__)


def default_build_system(config: ProjectConfig) -> CommandBuildSystem:
    """Return the build system described by the project configuration."""
    return CommandBuildSystem(config.build.command, config.products_path(), config.root_path())


def run_plugin_command(
    config: ProjectConfig,
    verb: str,
    arguments: Sequence[str],
    options: GrantedOptions,
    prompter: ConsolePrompter,
    runner: ScriptRunner,
    delegate: PluginDelegate,
    build_system: BuildSystem | None = None,
    working_directory: Path | None = None,
) -> InvocationResult:
    """Run the command plugin registered for *verb* on the root package.

    Steps performed:
    1. Find exactly one command plugin for *verb*.
    2. Negotiate the permissions it requests against *options*.
    3. Build the sandbox policy.
    4. Resolve (and build, if needed) the tools it uses.
    5. Invoke it through *runner* and wait for completion.

    Every outcome is written to the package's audit log.

    Args:
        config: The loaded project configuration.
        verb: The command verb the user asked for.
        arguments: Arguments passed through to the plugin verbatim.
        options: Permissions granted on the command line.
        prompter: Used to ask for permissions not granted up front.
        runner: Executes the plugin script.
        delegate: Receives plugin output while it runs.
        build_system: Builds tool products; defaults to the configured one.
        working_directory: Directory the command was started from.

    Returns:
        The runner's result.

    Raises:
        PluginCommandError: On validation, permission, tool or invocation
            failure. Nothing is retried.
    """
    graph = config.graph()
    package = graph.root_package
    if working_directory is None:
        working_directory = Path.cwd()
    if build_system is None:
        build_system = default_build_system(config)

    plugin_name = ""
    writable: list[str] = []
    try:
        plugin = locate_plugin(verb, graph)
        plugin_name = plugin.name
        logger.info(
            "Running command plugin '%s' on package '%s' with arguments %s",
            plugin.name,
            package.name,
            list(arguments),
        )

        # Scratch space for this plugin; the outputs directory is always writable.
        plugins_dir = config.plugin_working_directory() / plugin.name
        output_dir = plugins_dir / "outputs"

        negotiated = PermissionNegotiator(options, prompter).negotiate(plugin, package.path)
        policy = build_sandbox_policy(output_dir, package.path, options, negotiated)
        writable = [str(d) for d in policy.writable_directories]

        search_dirs = tool_search_directories(config.compiler_path())
        resolver = ToolResolver(graph, package, build_system, runner.host_platform)
        tools = resolver.resolve(plugin.tools)

        descriptor = assemble_descriptor(
            plugin,
            package,
            verb,
            arguments,
            working_directory,
            output_dir,
            search_dirs,
            tools,
            policy,
        )
        result = InvocationCoordinator(runner, delegate).run(descriptor)
    except PermissionDeniedError as exc:
        _record(package.path, verb, "denied", plugin_name, str(exc), arguments, writable)
        raise
    except Exception as exc:
        _record(package.path, verb, "error", plugin_name, str(exc), arguments, writable)
        raise

    _record(
        package.path,
        verb,
        "ok",
        plugin_name,
        f"Plugin '{plugin_name}' completed with exit code {result.exit_code}",
        arguments,
        writable,
    )
    return result


def _record(
    package_root: Path,
    verb: str,
    status: str,
    plugin: str,
    detail: str,
    arguments: Sequence[str],
    writable: list[str],
) -> None:
    event = AuditEvent(
        verb=verb,
        status=status,
        plugin=plugin,
        detail=detail,
        arguments=list(arguments),
        writable_directories=writable,
    )
    try:
        write_audit(package_root, event)
    except OSError as exc:
        logger.warning("Could not write audit log under %s: %s", package_root, exc)
