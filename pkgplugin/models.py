"""Package graph and plugin models — pydantic discriminated unions."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Network scopes
# ---------------------------------------------------------------------------


class NetworkPermission(str, Enum):
    """Coarse network permission as accepted on the command line."""

    NONE = "none"
    LOCAL = "local"
    ALL = "all"
    DOCKER = "docker"
    UNIX_DOMAIN_SOCKET = "unix-domain-socket"

    def to_scope(self) -> NetworkScope:
        """Return the scope granted by this permission (all ports)."""
        scopes: dict[NetworkPermission, type[_Scope]] = {
            NetworkPermission.NONE: NoNetwork,
            NetworkPermission.LOCAL: LocalNetwork,
            NetworkPermission.ALL: AllNetwork,
            NetworkPermission.DOCKER: DockerNetwork,
            NetworkPermission.UNIX_DOMAIN_SOCKET: UnixSocketNetwork,
        }
        return scopes[self]()  # type: ignore[return-value]


_SCOPE_LABELS: dict[str, str] = {
    "none": "no",
    "local": "local",
    "all": "all",
    "docker": "docker unix domain socket",
    "unix-domain-socket": "unix domain socket",
}


class _Scope(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str

    @property
    def label(self) -> str:
        """Human-readable name used in permission prompts."""
        return _SCOPE_LABELS[self.kind]

    @property
    def permission(self) -> NetworkPermission:
        """The coarse permission that corresponds to this scope."""
        return NetworkPermission(self.kind)


class NoNetwork(_Scope):
    kind: Literal["none"] = "none"


class LocalNetwork(_Scope):
    kind: Literal["local"] = "local"
    ports: tuple[int, ...] = ()


class AllNetwork(_Scope):
    kind: Literal["all"] = "all"
    ports: tuple[int, ...] = ()


class DockerNetwork(_Scope):
    kind: Literal["docker"] = "docker"


class UnixSocketNetwork(_Scope):
    kind: Literal["unix-domain-socket"] = "unix-domain-socket"


NetworkScope = Annotated[
    Union[NoNetwork, LocalNetwork, AllNetwork, DockerNetwork, UnixSocketNetwork],
    Field(discriminator="kind"),
]

# ---------------------------------------------------------------------------
# Permission requests
# ---------------------------------------------------------------------------


class WriteToPackageDirectory(BaseModel):
    """The plugin wants to modify files inside the package."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["write-to-package-directory"] = "write-to-package-directory"
    reason: str


class AllowNetworkConnections(BaseModel):
    """The plugin wants to open network connections within *scope*."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["allow-network-connections"] = "allow-network-connections"
    scope: NetworkScope
    reason: str


PermissionRequest = Annotated[
    Union[WriteToPackageDirectory, AllowNetworkConnections],
    Field(discriminator="kind"),
]

# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class DocumentationGeneration(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["documentation-generation"] = "documentation-generation"

    @property
    def invocation_verb(self) -> str:
        return "generate-documentation"


class SourceCodeFormatting(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["source-code-formatting"] = "source-code-formatting"

    @property
    def invocation_verb(self) -> str:
        return "format-source-code"


class CustomIntent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["custom"] = "custom"
    verb: str
    description: str = ""

    @property
    def invocation_verb(self) -> str:
        return self.verb


CommandIntent = Annotated[
    Union[DocumentationGeneration, SourceCodeFormatting, CustomIntent],
    Field(discriminator="kind"),
]


class CommandCapability(BaseModel):
    """A plugin invoked directly by the user through a verb."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["command"] = "command"
    intent: CommandIntent
    permissions: tuple[PermissionRequest, ...] = ()


class BuildToolCapability(BaseModel):
    """A plugin run by the build system; not invocable as a command."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["build-tool"] = "build-tool"


Capability = Annotated[
    Union[CommandCapability, BuildToolCapability],
    Field(discriminator="kind"),
]

# ---------------------------------------------------------------------------
# Package graph
# ---------------------------------------------------------------------------


class Plugin(BaseModel):
    """A plugin target as resolved in the package graph."""

    model_config = ConfigDict(frozen=True)

    name: str
    capability: Capability
    tools: tuple[str, ...] = ()
    script: str = ""


class Product(BaseModel):
    name: str
    type: Literal["executable", "library"] = "executable"


class Package(BaseModel):
    """A package in the resolved graph."""

    name: str
    display_name: str = ""
    path: Path = Path(".")
    targets: list[str] = []
    products: list[Product] = []

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def executable_products(self) -> list[str]:
        """Names of the executable products this package vends."""
        return [p.name for p in self.products if p.type == "executable"]


class BinaryTool(BaseModel):
    """A prebuilt binary dependency known to the graph.

    An empty ``platforms`` list means the binary runs on any host.
    """

    name: str
    path: Path
    platforms: list[str] = []

    def supports(self, platform: str) -> bool:
        return not self.platforms or platform in self.platforms


class PackageGraph(BaseModel):
    """The subset of a resolved package graph that plugin commands need."""

    packages: list[Package] = []
    plugins: list[Plugin] = []
    binaries: list[BinaryTool] = []

    @property
    def root_package(self) -> Package:
        """The first package is the root package."""
        if not self.packages:
            raise ValueError("Package graph has no root package")
        return self.packages[0]

    def package_for(self, plugin: Plugin) -> Package | None:
        """Return the package that declares *plugin*, if any."""
        for package in self.packages:
            if plugin.name in package.targets:
                return package
        return None
