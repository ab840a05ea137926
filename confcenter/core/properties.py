"""Process properties loaded from confcenter.yaml and command-line overrides."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

PROPERTIES_FILE_NAME = "confcenter.yaml"


def iter_properties(data: Dict[str, Any], parent: str = "") -> Iterator[Tuple[str, str]]:
    """Flatten nested mappings into dot-separated property names.

    ``{"apusic": {"home": "/opt"}}`` yields ``("apusic.home", "/opt")``.
    Scalars are converted to strings; None values are dropped.
    """
    for key, value in data.items():
        full_key = str(key) if not parent else f"{parent}.{key}"
        if isinstance(value, dict):
            yield from iter_properties(value, full_key)
        elif value is not None:
            yield full_key, str(value)


def parse_overrides(items: Iterable[str]) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` strings as given to ``-D`` on the command line.

    Raises:
        ValueError: If an item has no ``=``.
    """
    overrides: Dict[str, str] = {}
    for item in items:
        if "=" not in item:
            raise ValueError(f"Property override must be KEY=VALUE, got {item!r}")
        key, value = item.split("=", 1)
        overrides[key.strip()] = value
    return overrides


class PropertiesLoader:
    """Handles loading of confcenter.yaml property files."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize properties loader.

        Args:
            config_path: Path to a properties file. If None, looks for
                confcenter.yaml in the current directory and its parents.
        """
        self.config_path = self._find_config_file(config_path)
        self._properties: Optional[Dict[str, str]] = None

    def _find_config_file(
        self, config_path: Optional[Union[str, Path]] = None
    ) -> Optional[Path]:
        if config_path is not None:
            path = Path(config_path)
            if path.exists():
                return path
            logger.warning("Properties file %s does not exist", path)
            return None

        current = Path.cwd()
        while True:
            candidate = current / PROPERTIES_FILE_NAME
            if candidate.exists():
                return candidate
            if current == current.parent:
                return None
            current = current.parent

    def load(self) -> Dict[str, str]:
        """Load the properties file.

        Returns:
            Flattened property mapping, or an empty dict without a file.

        Raises:
            ValueError: If the file is not valid YAML.
        """
        if self.config_path is None:
            return {}

        if self._properties is not None:
            return self._properties

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid properties file at {self.config_path}: {e}") from e
        except OSError as e:
            logger.warning("Could not read properties file %s: %s", self.config_path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Properties file %s is not a mapping; ignoring it", self.config_path)
            data = {}
        self._properties = dict(iter_properties(data))
        return self._properties
