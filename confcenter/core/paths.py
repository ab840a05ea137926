"""Map logical (root, file name) pairs onto the installation directory."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from .errors import ConfigurationMissing

INSTALL_ROOT_PROPERTY = "apusic.home"
CONF_DIR = "conf"


class PathResolver:
    """Resolve destination files under a fixed installation root.

    Every path has the shape ``<install_root><sep><root><sep><name>``. Nothing
    is sanitized; names come from the trusted configuration store.
    """

    def __init__(self, install_root: Optional[str]):
        """Initialize PathResolver.

        Args:
            install_root: Value of the ``apusic.home`` property, or None
                when it is not set.
        """
        self.install_root = install_root

    def require_root(self) -> str:
        if not self.install_root:
            raise ConfigurationMissing(
                INSTALL_ROOT_PROPERTY,
                f"Did not set property '{INSTALL_ROOT_PROPERTY}'",
            )
        return self.install_root

    def resolve(self, root: Optional[str], name: str) -> Path:
        """Resolve ``name`` inside ``root`` under the installation root.

        Args:
            root: Directory relative to the installation root; the current
                working directory is used when None.
            name: File name, ``/`` separated.

        Returns:
            Absolute path of the file.

        Raises:
            ConfigurationMissing: If the installation root is not set.
        """
        if root is None:
            root = os.getcwd()
        if os.sep != "/":
            root = root.replace("/", os.sep)
            name = name.replace("/", os.sep)
        base = self.require_root()
        return Path(f"{base}{os.sep}{root}{os.sep}{name}")

    def conf_path(self, name: str) -> Path:
        return self.resolve(CONF_DIR, name)
