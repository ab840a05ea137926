"""Drive fetch, split and write against a configuration store."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional, Set, Tuple

from . import codec
from .errors import ConfigurationMissing, ParseError, RemoteError
from .extractor import extract_fragments
from .paths import PathResolver
from .settings import Settings
from .store import ConfigStore, create_store
from .types import SyncReport
from .writer import ConfigWriter

logger = logging.getLogger(__name__)

_STOP = object()


class SyncOrchestrator:
    """Keep the local configuration files in step with the store.

    One instance owns one store client, one listener per (data_id, group)
    and one worker thread. Change notifications arrive on the store client's
    thread and are queued; the worker applies them one at a time in arrival
    order, so a slow write never blocks the store client.
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[ConfigStore] = None,
        resolver: Optional[PathResolver] = None,
        writer: Optional[ConfigWriter] = None,
    ):
        self.settings = settings
        self.resolver = resolver or PathResolver(settings.install_root)
        self.writer = writer or ConfigWriter(self.resolver)
        self._store = store
        self._subscribed: Set[Tuple[str, str]] = set()
        self._queue: queue.Queue = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        logger.info("Config center client has been initialized.")

    @property
    def store(self) -> ConfigStore:
        """The store client, created on first use.

        Raises:
            ConfigurationMissing: If no store address is configured.
        """
        if self._store is None:
            address = self.settings.require_server_addr()
            self._store = create_store(address, self.settings.timeout_ms)
        return self._store

    def materialize(self, document: Optional[str]) -> SyncReport:
        """Write ``document`` and every fragment in it under ``conf``.

        An empty document leaves the local files alone.
        """
        if document is None or not document.strip():
            logger.warning("Configuration document is empty; local files left untouched")
            return SyncReport(skipped=True)

        report = SyncReport()
        try:
            composite_path = self.resolver.conf_path(self.settings.file_name)
        except ConfigurationMissing as exc:
            logger.error("Cannot materialize configuration: %s", exc)
            report.record_failure(None, exc)
            return report

        try:
            report.written.append(self.writer.write_file(composite_path, document))
        except OSError as exc:
            logger.warning("Failed to write %s: %s", composite_path, exc)
            report.record_failure(self.settings.file_name, exc)

        report.extend(self.writer.write_all(extract_fragments(document)))
        return report

    def pull(self) -> SyncReport:
        """Fetch the composite document and materialize it."""
        try:
            document = self.store.fetch(
                self.settings.data_id, self.settings.group, self.settings.timeout_ms
            )
        except (ConfigurationMissing, RemoteError) as exc:
            logger.error("Failed to fetch configuration: %s", exc)
            report = SyncReport(skipped=True)
            report.record_failure(None, exc)
            return report
        return self.materialize(document)

    def publish(self) -> bool:
        """Publish the local copy of the composite document to the store.

        Returns:
            True if the store accepted the document, False otherwise.
        """
        try:
            store = self.store
            path = self.resolver.conf_path(self.settings.file_name)
        except ConfigurationMissing as exc:
            logger.error("%s", exc)
            return False

        if not path.exists():
            logger.warning("The file %s does not exist.", path)
            return False
        try:
            content = codec.normalize(path.read_text(encoding="utf-8"))
        except (OSError, ParseError) as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return False

        try:
            published = store.publish(self.settings.data_id, self.settings.group, content)
        except RemoteError as exc:
            logger.error("Failed to publish configuration: %s", exc)
            return False
        if published:
            logger.info("Successfully published the configuration to the configuration center")
        else:
            logger.error("Configuration center rejected %s/%s", self.settings.data_id, self.settings.group)
        return published

    def subscribe(self, initial_pull: bool = True) -> bool:
        """Register the change listener for the configured document.

        Registering twice for the same (data_id, group) is a no-op.

        Args:
            initial_pull: Also materialize the current document right away.

        Returns:
            True once a listener is registered.
        """
        key = (self.settings.data_id, self.settings.group)
        with self._lock:
            if key in self._subscribed:
                logger.debug("Already listening on %s/%s", *key)
                return True
            try:
                store = self.store
            except ConfigurationMissing as exc:
                logger.error("%s", exc)
                return False

            self._start_worker()
            if initial_pull:
                try:
                    self.on_change(store.fetch(key[0], key[1], self.settings.timeout_ms))
                except RemoteError as exc:
                    logger.warning("Initial fetch failed: %s", exc)
            try:
                store.subscribe(key[0], key[1], self.on_change)
            except RemoteError as exc:
                logger.error("Failed to listen on %s/%s: %s", key[0], key[1], exc)
                if not self._subscribed:
                    self._stop_worker()
                return False
            self._subscribed.add(key)
        logger.info("Listening on configuration %s/%s", *key)
        return True

    def on_change(self, content: Optional[str]) -> None:
        """Queue a changed document for the worker."""
        self._queue.put(content)

    def wait_idle(self) -> None:
        """Block until every queued document has been applied."""
        self._queue.join()

    def _start_worker(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._run, name="confcenter-sync", daemon=True)
        self._worker.start()

    def _stop_worker(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            self._queue.put(_STOP)
            self._worker.join(timeout=5.0)
        self._worker = None

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                report = self.materialize(item)
                if not report.ok:
                    logger.warning(
                        "Configuration update finished with %d failure(s)", len(report.failures)
                    )
            except Exception:
                logger.exception("Configuration update failed")
            finally:
                self._queue.task_done()

    def close(self) -> None:
        """Stop the worker and release the store client."""
        self._stop_worker()
        if self._store is not None:
            self._store.close()
        self._subscribed.clear()

    def __enter__(self) -> "SyncOrchestrator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
