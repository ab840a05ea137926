"""Protocol for remote configuration stores."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

Listener = Callable[[str], None]


class ConfigStore(Protocol):
    """Interface the sync service needs from a configuration store.

    Implementations own their connection handling and any reconnect/retry
    policy. Transport failures are raised as
    :class:`~confcenter.core.errors.RemoteError`.
    """

    def fetch(self, data_id: str, group: str, timeout_ms: int) -> Optional[str]:
        """Fetch a document.

        Args:
            data_id: Document key.
            group: Document group.
            timeout_ms: Request timeout in milliseconds.

        Returns:
            The document text, or None if the store holds no such document.
        """
        ...

    def publish(self, data_id: str, group: str, content: str) -> bool:
        """Store ``content`` under (data_id, group).

        Returns:
            True if the store accepted the document.
        """
        ...

    def subscribe(self, data_id: str, group: str, listener: Listener) -> None:
        """Call ``listener`` with the new text whenever the document changes.

        The listener runs on a thread owned by the store client.
        """
        ...

    def close(self) -> None:
        """Stop subscriptions and release connections."""
        ...


def create_store(address: str, timeout_ms: int) -> ConfigStore:
    """Create a store client for ``address``.

    ``redis://`` and ``rediss://`` URLs select the Redis store; anything else
    (``host:port`` or an ``http(s)://`` URL) is treated as a Nacos server.
    """
    if address.startswith(("redis://", "rediss://")):
        from ..stores.redis_kv import RedisConfigStore
        return RedisConfigStore(address, timeout_ms=timeout_ms)
    from ..stores.nacos_http import NacosConfigStore
    return NacosConfigStore(address, timeout_ms=timeout_ms)
