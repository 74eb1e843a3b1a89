"""Command-driven build system used to bring plugin tools up to date."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from pkgplugin.errors import BuildError

logger = logging.getLogger(__name__)


class CommandBuildSystem:
    """Build products by running a configured command.

    Each element of *command* may contain ``{product}``, which is replaced
    by the product name. Built executables are discovered in
    *products_dir* after the command succeeds.
    """

    def __init__(self, command: Sequence[str], products_dir: Path, cwd: Path) -> None:
        self._command = list(command)
        self._products_dir = products_dir
        self._cwd = cwd

    def build(self, subset: Sequence[str]) -> list[Path]:
        """Build every product in *subset*, blocking until done.

        Returns:
            The executables present in the products directory.

        Raises:
            BuildError: If no build command is configured or a build fails.
        """
        for product in subset:
            if not self._command:
                raise BuildError(product, f"No build command configured to build '{product}'")

            argv = [part.replace("{product}", product) for part in self._command]
            logger.debug("Running build command: %s", " ".join(argv))
            try:
                subprocess.run(argv, cwd=self._cwd, check=True, capture_output=True, text=True)
            except FileNotFoundError as exc:
                raise BuildError(product, f"Build command not found: {argv[0]}") from exc
            except subprocess.CalledProcessError as exc:
                detail = (exc.stderr or "").strip()
                raise BuildError(
                    product,
                    f"Building '{product}' failed with exit code {exc.returncode}: {detail}",
                ) from exc

        return self.built_products()

    def built_products(self) -> list[Path]:
        """Return executable files in the products directory, sorted by name."""
        if not self._products_dir.is_dir():
            return []
        return sorted(
            p for p in self._products_dir.iterdir() if p.is_file() and os.access(p, os.X_OK)
        )
