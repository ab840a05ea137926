from __future__ import annotations

import hashlib
import logging
import threading
from typing import Dict, List, Optional

import httpx

from ..core.errors import RemoteError
from ..core.store import Listener

logger = logging.getLogger(__name__)

CONFIGS_PATH = "/nacos/v1/cs/configs"
LISTENER_PATH = "/nacos/v1/cs/configs/listener"
WORD_SEPARATOR = "\x02"
LINE_SEPARATOR = "\x01"


def content_md5(content: Optional[str]) -> str:
    if not content:
        return ""
    return hashlib.md5(content.encode("utf-8")).hexdigest()


class NacosConfigStore:
    """Nacos configuration store spoken to over the v1 HTTP open API.

    Address format: ``host:port`` or ``http(s)://host:port``. A comma separated
    list is accepted; only the first server is used.
    Subscriptions long-poll the listener endpoint from a daemon thread and
    retry after ``retry_delay`` seconds when the server is unreachable.
    """

    def __init__(
        self,
        address: str,
        namespace: Optional[str] = None,
        timeout_ms: int = 3000,
        long_poll_ms: int = 30000,
        retry_delay: float = 2.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.address = address
        self.base_url = self._parse_address(address)
        self.namespace = namespace
        self.timeout_ms = timeout_ms
        self.long_poll_ms = long_poll_ms
        self.retry_delay = retry_delay
        self._stop = threading.Event()
        self._watchers: List[threading.Thread] = []
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout_ms / 1000.0,
            transport=transport,
        )

    def _parse_address(self, address: str) -> str:
        first = address.split(",", 1)[0].strip()
        if not first:
            raise ValueError("Nacos address must not be empty")
        if "://" not in first:
            first = f"http://{first}"
        return first.rstrip("/")

    def _params(self, data_id: str, group: str) -> Dict[str, str]:
        params = {"dataId": data_id, "group": group}
        if self.namespace:
            params["tenant"] = self.namespace
        return params

    # ---- API helpers ----
    def _poll(self, data_id: str, group: str, md5: str) -> bool:
        words = [data_id, group, md5]
        if self.namespace:
            words.append(self.namespace)
        listening = WORD_SEPARATOR.join(words) + LINE_SEPARATOR
        try:
            resp = self._client.post(
                LISTENER_PATH,
                data={"Listening-Configs": listening},
                headers={"Long-Pulling-Timeout": str(self.long_poll_ms)},
                timeout=self.long_poll_ms / 1000.0 + self.timeout_ms / 1000.0,
            )
        except httpx.HTTPError as exc:
            raise RemoteError(f"Listening on {data_id}/{group} failed: {exc}") from exc
        if resp.status_code != 200:
            raise RemoteError(f"Listening on {data_id}/{group} failed: HTTP {resp.status_code}")
        return bool(resp.text.strip())

    def _watch(self, data_id: str, group: str, listener: Listener) -> None:
        md5 = ""
        try:
            md5 = content_md5(self.fetch(data_id, group, self.timeout_ms))
        except RemoteError as exc:
            logger.warning("Initial fetch for %s/%s failed: %s", data_id, group, exc)

        while not self._stop.is_set():
            try:
                if not self._poll(data_id, group, md5):
                    continue
                content = self.fetch(data_id, group, self.timeout_ms)
            except RemoteError as exc:
                if self._stop.is_set():
                    break
                logger.warning("%s; retrying in %.1fs", exc, self.retry_delay)
                self._stop.wait(self.retry_delay)
                continue
            md5 = content_md5(content)
            if content is None:
                logger.warning("Configuration %s/%s was removed from the store", data_id, group)
                continue
            try:
                listener(content)
            except Exception:
                logger.exception("Listener for %s/%s failed", data_id, group)

    # ---- ConfigStore interface ----
    def fetch(self, data_id: str, group: str, timeout_ms: int) -> Optional[str]:
        try:
            resp = self._client.get(
                CONFIGS_PATH,
                params=self._params(data_id, group),
                timeout=timeout_ms / 1000.0,
            )
        except httpx.HTTPError as exc:
            raise RemoteError(f"Fetching {data_id}/{group} failed: {exc}") from exc
        if resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise RemoteError(f"Fetching {data_id}/{group} failed: HTTP {resp.status_code}")
        return resp.text

    def publish(self, data_id: str, group: str, content: str) -> bool:
        data = dict(self._params(data_id, group), content=content, type="xml")
        try:
            resp = self._client.post(CONFIGS_PATH, data=data)
        except httpx.HTTPError as exc:
            raise RemoteError(f"Publishing {data_id}/{group} failed: {exc}") from exc
        if resp.status_code != 200:
            raise RemoteError(f"Publishing {data_id}/{group} failed: HTTP {resp.status_code}")
        return resp.text.strip().lower() == "true"

    def subscribe(self, data_id: str, group: str, listener: Listener) -> None:
        thread = threading.Thread(
            target=self._watch,
            args=(data_id, group, listener),
            name=f"nacos-watch-{data_id}",
            daemon=True,
        )
        self._watchers.append(thread)
        thread.start()

    def close(self) -> None:
        self._stop.set()
        for thread in self._watchers:
            thread.join(timeout=1.0)
        self._watchers.clear()
        self._client.close()
