"""Bootstrap settings for the sync service.

Each setting is looked up in the environment first, then in the process
properties under the same name, then falls back to its default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigurationMissing
from .paths import INSTALL_ROOT_PROPERTY

SERVER_ADDR_KEY = "CONFIG_CENTER_ADDR"
DATA_ID_KEY = "CONFIG_DATA_ID"
GROUP_KEY = "CONFIG_GROUP"
TIMEOUT_KEY = "CONFIG_TIMEOUT_MS"
FILE_NAME_KEY = "CONFIG_FILE_NAME"
INSTALL_ROOT_ENV = "APUSIC_HOME"

DEFAULT_DATA_ID = "configs.xml"
DEFAULT_GROUP = "DEFAULT_GROUP"
DEFAULT_TIMEOUT_MS = 3000
DEFAULT_FILE_NAME = "configs.xml"


def get_config_value(
    key: str,
    properties: Mapping[str, str],
    environ: Mapping[str, str],
    default: Optional[str] = None,
) -> Optional[str]:
    value = environ.get(key)
    if value is not None:
        return value
    return properties.get(key, default)


@dataclass(frozen=True)
class Settings:
    """Resolved bootstrap values.

    Attributes:
        server_addr: Address of the configuration store; required for any
            remote operation.
        data_id: Key of the composite document in the store.
        group: Store group of the composite document.
        timeout_ms: Fetch timeout in milliseconds.
        file_name: Name of the local copy of the composite under ``conf``.
        install_root: Installation root that anchors every written path.
    """

    server_addr: Optional[str] = None
    data_id: str = DEFAULT_DATA_ID
    group: str = DEFAULT_GROUP
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    file_name: str = DEFAULT_FILE_NAME
    install_root: Optional[str] = None

    @classmethod
    def from_environment(
        cls,
        properties: Optional[Mapping[str, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """Build settings from environment variables and process properties.

        Raises:
            ValueError: If ``CONFIG_TIMEOUT_MS`` is not an integer.
        """
        props = properties or {}
        env = os.environ if environ is None else environ

        timeout_raw = get_config_value(TIMEOUT_KEY, props, env, str(DEFAULT_TIMEOUT_MS))
        try:
            timeout_ms = int(timeout_raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{TIMEOUT_KEY} must be an integer, got {timeout_raw!r}") from e

        install_root = props.get(INSTALL_ROOT_PROPERTY) or env.get(INSTALL_ROOT_ENV)

        return cls(
            server_addr=get_config_value(SERVER_ADDR_KEY, props, env) or None,
            data_id=get_config_value(DATA_ID_KEY, props, env, DEFAULT_DATA_ID),
            group=get_config_value(GROUP_KEY, props, env, DEFAULT_GROUP),
            timeout_ms=timeout_ms,
            file_name=get_config_value(FILE_NAME_KEY, props, env, DEFAULT_FILE_NAME),
            install_root=install_root or None,
        )

    def require_server_addr(self) -> str:
        if not self.server_addr:
            raise ConfigurationMissing(SERVER_ADDR_KEY, "Configuration center address not set.")
        return self.server_addr
