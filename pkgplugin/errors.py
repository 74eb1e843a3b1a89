"""Exception hierarchy for plugin command execution."""

from __future__ import annotations


class PluginCommandError(Exception):
    """Base exception for plugin command errors."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(PluginCommandError):
    """Raised when the requested command cannot be mapped to a single plugin."""


class MissingVerbError(ValidationError):
    """Raised when no plugin verb was given."""

    def __init__(self) -> None:
        super().__init__("Missing expected plugin command")


class PluginNotFoundError(ValidationError):
    """Raised when no command plugin provides the requested verb."""

    def __init__(self, verb: str) -> None:
        super().__init__(f"No command plugins found for '{verb}'")
        self.verb = verb


class AmbiguousPluginError(ValidationError):
    """Raised when more than one command plugin provides the requested verb."""

    def __init__(self, verb: str, count: int) -> None:
        super().__init__(f"{count} plugins found for '{verb}'")
        self.verb = verb
        self.count = count


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


class PermissionDeniedError(PluginCommandError):
    """Raised when a plugin permission was declined or could not be requested."""


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class ToolResolutionError(PluginCommandError):
    """Raised when a tool referenced by the plugin cannot be located."""

    def __init__(self, tool: str, message: str = "") -> None:
        super().__init__(message or f"Could not resolve tool '{tool}'")
        self.tool = tool


class BuildError(ToolResolutionError):
    """Raised when building a tool product fails."""


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


class InvocationError(PluginCommandError):
    """Raised when the script runner reports a failed plugin invocation."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output
