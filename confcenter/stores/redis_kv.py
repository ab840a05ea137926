from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

import redis

from ..core.errors import RemoteError
from ..core.store import Listener

logger = logging.getLogger(__name__)


class RedisConfigStore:
    """Redis used as a configuration store.

    A document lives at ``<prefix><group>:<data_id>``. Publishing sets the key
    and announces the new text on a pub/sub channel with the same name, which
    is what subscribers listen on.
    """

    def __init__(
        self,
        uri: str,
        prefix: str = "",
        timeout_ms: int = 3000,
        client: Optional[redis.Redis] = None,
    ):
        self.uri = uri
        self.client = client or redis.Redis.from_url(
            uri, decode_responses=True, socket_timeout=timeout_ms / 1000.0
        )
        self.prefix = prefix
        self._subscriptions: List[Tuple[Any, Any]] = []

    def _key(self, data_id: str, group: str) -> str:
        return f"{self.prefix}{group}:{data_id}"

    def fetch(self, data_id: str, group: str, timeout_ms: int) -> Optional[str]:
        try:
            return self.client.get(self._key(data_id, group))
        except redis.RedisError as exc:
            raise RemoteError(f"Fetching {data_id}/{group} failed: {exc}") from exc

    def publish(self, data_id: str, group: str, content: str) -> bool:
        key = self._key(data_id, group)
        try:
            pipe = self.client.pipeline()
            pipe.set(key, content)
            pipe.publish(key, content)
            stored, _ = pipe.execute()
        except redis.RedisError as exc:
            raise RemoteError(f"Publishing {data_id}/{group} failed: {exc}") from exc
        return bool(stored)

    def subscribe(self, data_id: str, group: str, listener: Listener) -> None:
        def handler(message: dict) -> None:
            data = message.get("data")
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            listener(data)

        try:
            pubsub = self.client.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(**{self._key(data_id, group): handler})
            thread = pubsub.run_in_thread(sleep_time=0.5, daemon=True)
        except redis.RedisError as exc:
            raise RemoteError(f"Subscribing to {data_id}/{group} failed: {exc}") from exc
        self._subscriptions.append((pubsub, thread))

    def close(self) -> None:
        for pubsub, thread in self._subscriptions:
            thread.stop()
            pubsub.close()
        self._subscriptions.clear()
        self.client.close()
