"""pkgplugin CLI — Typer entry point with Rich formatting."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pkgplugin.audit import read_audit
from pkgplugin.config import DEFAULT_CONFIG, GrantedOptions, ProjectConfig, load_config
from pkgplugin.errors import MissingVerbError, PluginCommandError
from pkgplugin.locator import command_verb, list_command_plugins
from pkgplugin.models import NetworkPermission
from pkgplugin.permissions import ConsolePrompter
from pkgplugin.runner import run_plugin_command
from pkgplugin.script_runner import ConsoleDelegate, SubprocessScriptRunner

app = typer.Typer(
    name="pkgplugin",
    help="pkgplugin — run package command plugins inside a negotiated sandbox.",
    no_args_is_help=True,
)
console = Console()

_DEFAULT_CONFIG = Path(DEFAULT_CONFIG)

ConfigOption = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to pkgplugin.yaml"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Run package command plugins inside a negotiated sandbox."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


def _fail(title: str, message: str) -> typer.Exit:
    console.print(Panel(Text(message), title=f"[red]{title}[/red]", border_style="red"))
    return typer.Exit(code=1)


def _load(config_path: Path) -> ProjectConfig:
    try:
        return load_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise _fail("config", str(exc)) from exc


@app.command(name="plugin", context_settings={"allow_interspersed_args": False})
def plugin_cmd(
    verb: Annotated[str, typer.Argument(help="Verb of the command plugin to invoke")] = "",
    arguments: Annotated[
        list[str] | None,
        typer.Argument(help="Arguments to pass to the command plugin"),
    ] = None,
    list_commands: Annotated[
        bool, typer.Option("--list", help="List the available command plugins")
    ] = False,
    allow_writing_to_package_directory: Annotated[
        bool,
        typer.Option(
            "--allow-writing-to-package-directory",
            help="Allow the plugin to write to the package directory",
        ),
    ] = False,
    allow_writing_to_directory: Annotated[
        list[str] | None,
        typer.Option(
            "--allow-writing-to-directory",
            help="Allow the plugin to write to an additional directory",
        ),
    ] = None,
    allow_network_connections: Annotated[
        NetworkPermission,
        typer.Option(
            "--allow-network-connections",
            help="Allow the plugin to make network connections",
        ),
    ] = NetworkPermission.NONE,
    config: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """Invoke a command plugin or list the available ones."""
    if not verb and not list_commands:
        raise _fail("plugin", str(MissingVerbError()))

    cfg = _load(config)

    if list_commands:
        for listing in list_command_plugins(cfg.graph()):
            console.print(listing.describe(), markup=False, highlight=False)
        return

    options = GrantedOptions.from_flags(
        Path.cwd(),
        allow_writing_to_package_directory=allow_writing_to_package_directory,
        allow_writing_to_directory=allow_writing_to_directory,
        allow_network_connections=allow_network_connections,
    )

    try:
        result = run_plugin_command(
            cfg,
            verb,
            arguments or [],
            options,
            ConsolePrompter(),
            SubprocessScriptRunner(),
            ConsoleDelegate(console),
        )
    except (PluginCommandError, ValueError) as exc:
        raise _fail(verb, str(exc)) from exc

    console.print(f"[green]Plugin for '{verb}' completed (exit code {result.exit_code}).[/green]")


@app.command()
def audit(
    config: ConfigOption = _DEFAULT_CONFIG,
    count: Annotated[int, typer.Option("--count", "-n", help="Number of entries")] = 20,
) -> None:
    """Show recent plugin invocations from the audit log."""
    cfg = _load(config)
    try:
        package_root = cfg.graph().root_package.path
    except ValueError as exc:
        raise _fail("audit", str(exc)) from exc

    entries = read_audit(package_root, last_n=count)
    if not entries:
        console.print("[dim]No audit log entries found.[/dim]")
        return

    table = Table(title="Audit Log (most recent first)")
    table.add_column("Timestamp", style="cyan", no_wrap=True)
    table.add_column("Verb", style="magenta")
    table.add_column("Plugin")
    table.add_column("Status")
    table.add_column("Detail", max_width=60)

    for entry in entries:
        status = entry.get("status", "?")
        style = "green" if status == "ok" else "red"
        table.add_row(
            entry.get("timestamp", "?")[:19],
            entry.get("verb", "?"),
            entry.get("plugin", ""),
            f"[{style}]{status}[/{style}]",
            Text(entry.get("detail", "")[:60]),
        )

    console.print(table)


@app.command(name="config")
def show_config(
    config: ConfigOption = _DEFAULT_CONFIG,
) -> None:
    """Display the resolved project configuration."""
    cfg = _load(config)
    graph = cfg.graph()

    table = Table(title="pkgplugin Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Project root", str(cfg.root_path()))
    table.add_row(
        "Root package",
        f"{graph.packages[0].label} ({graph.packages[0].path})" if graph.packages else "(none)",
    )
    plugins = [
        f"{p.name} ({command_verb(p) or p.capability.kind})" for p in graph.plugins
    ]
    table.add_row("Plugins", Text(", ".join(plugins) or "(none)"))
    table.add_row("Binary tools", ", ".join(b.name for b in graph.binaries) or "(none)")
    table.add_row("Plugin working directory", str(cfg.plugin_working_directory()))
    table.add_row("Build command", Text(" ".join(cfg.build.command) or "(none)"))
    table.add_row("Products directory", str(cfg.products_path()))
    compiler = cfg.compiler_path()
    table.add_row("Compiler", str(compiler) if compiler else "[dim]not found[/dim]")

    console.print(table)
