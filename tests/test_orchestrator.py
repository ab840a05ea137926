"""Unit tests for the SyncOrchestrator class."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from confcenter.core.codec import XML_DECLARATION
from confcenter.core.errors import RemoteError
from confcenter.core.orchestrator import SyncOrchestrator
from confcenter.core.settings import Settings

DOCUMENT = (
    '<config name="a.xml"><root><k>v</k></root></config>'
    '<config name="apusic.conf"><config name="apusic.conf"><p1>x</p1></config></config>'
)
KEY = ("configs.xml", "DEFAULT_GROUP")


class MockStore:
    """In-memory configuration store."""

    def __init__(self, documents: Optional[Dict[Tuple[str, str], str]] = None):
        self.documents = dict(documents or {})
        self.published: List[Tuple[str, str, str]] = []
        self.listeners: List[Tuple[str, str, object]] = []
        self.publish_result = True
        self.fail = False
        self.closed = False

    def fetch(self, data_id, group, timeout_ms):
        if self.fail:
            raise RemoteError("store unavailable")
        return self.documents.get((data_id, group))

    def publish(self, data_id, group, content):
        if self.fail:
            raise RemoteError("store unavailable")
        self.published.append((data_id, group, content))
        return self.publish_result

    def subscribe(self, data_id, group, listener):
        self.listeners.append((data_id, group, listener))

    def push(self, content):
        for _, _, listener in self.listeners:
            listener(content)

    def close(self):
        self.closed = True


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(server_addr="127.0.0.1:8848", install_root=str(tmp_path))


@pytest.fixture
def store() -> MockStore:
    return MockStore({KEY: DOCUMENT})


def conf(tmp_path: Path, name: str) -> Path:
    return tmp_path / "conf" / name


class TestPull:
    """Test fetch and materialize."""

    def test_pull_writes_composite_and_fragments(self, settings, store, tmp_path):
        """Test a pull writes the local composite copy and each fragment."""
        report = SyncOrchestrator(settings, store=store).pull()

        assert report.ok
        assert conf(tmp_path, "configs.xml").read_text(encoding="utf-8") == DOCUMENT
        assert conf(tmp_path, "a.xml").read_text(encoding="utf-8") == XML_DECLARATION + "<root><k>v</k></root>"
        assert conf(tmp_path, "apusic.conf").read_text(encoding="utf-8") == (
            XML_DECLARATION + "<config><p1>x</p1></config>"
        )

    def test_pull_uses_configured_file_name(self, tmp_path, store):
        """Test the composite copy is written under CONFIG_FILE_NAME."""
        settings = Settings(server_addr="x", install_root=str(tmp_path), file_name="all.xml")
        SyncOrchestrator(settings, store=store).pull()
        assert conf(tmp_path, "all.xml").exists()
        assert not conf(tmp_path, "configs.xml").exists()

    @pytest.mark.parametrize("fetched", [None, "", "  \n"])
    def test_empty_fetch_leaves_files_untouched(self, settings, tmp_path, fetched):
        """Test an empty document does not wipe existing files."""
        conf(tmp_path, "a.xml").parent.mkdir(parents=True)
        conf(tmp_path, "a.xml").write_text("old", encoding="utf-8")
        store = MockStore()
        if fetched is not None:
            store.documents[KEY] = fetched

        report = SyncOrchestrator(settings, store=store).pull()

        assert report.skipped
        assert report.written == []
        assert conf(tmp_path, "a.xml").read_text(encoding="utf-8") == "old"
        assert not conf(tmp_path, "configs.xml").exists()

    def test_missing_install_root_fails_closed(self, store, tmp_path, monkeypatch):
        """Test nothing is written without an installation root."""
        monkeypatch.chdir(tmp_path)
        report = SyncOrchestrator(Settings(server_addr="x"), store=store).pull()

        assert not report.ok
        assert report.failures[0].error == "ConfigurationMissing"
        assert list(tmp_path.iterdir()) == []

    def test_remote_error_is_reported(self, settings, store, tmp_path):
        """Test a store failure becomes a failed report."""
        store.fail = True
        report = SyncOrchestrator(settings, store=store).pull()

        assert not report.ok
        assert report.failures[0].error == "RemoteError"
        assert not (tmp_path / "conf").exists()

    def test_missing_address_is_reported(self, tmp_path):
        """Test pulling without a store address."""
        report = SyncOrchestrator(Settings(install_root=str(tmp_path))).pull()
        assert not report.ok
        assert report.failures[0].error == "ConfigurationMissing"

    def test_pull_is_idempotent(self, settings, store, tmp_path):
        """Test two pulls of the same document give identical files."""
        orchestrator = SyncOrchestrator(settings, store=store)
        orchestrator.pull()
        first = {p.name: p.read_bytes() for p in (tmp_path / "conf").iterdir()}
        orchestrator.pull()
        second = {p.name: p.read_bytes() for p in (tmp_path / "conf").iterdir()}
        assert first == second

    def test_partial_failure_reported(self, settings, tmp_path):
        """Test a malformed flat fragment does not stop the others."""
        document = (
            '<config name="a.xml"><a/></config>'
            '<config name="apusic.conf"><config name="apusic.conf"><p>x</q></config></config>'
            '<config name="b.xml"><b/></config>'
        )
        report = SyncOrchestrator(settings, store=MockStore({KEY: document})).pull()

        assert not report.ok
        assert len(report.failures) == 1
        assert conf(tmp_path, "a.xml").exists()
        assert conf(tmp_path, "b.xml").exists()
        assert not conf(tmp_path, "apusic.conf").exists()


class TestPublish:
    """Test publishing the local composite copy."""

    def test_publish_normalized_document(self, settings, store, tmp_path):
        """Test the local copy is normalized and sent to the store."""
        conf(tmp_path, "configs.xml").parent.mkdir(parents=True)
        conf(tmp_path, "configs.xml").write_text(
            '<configs>\n<config name="a.xml"><r/></config>\n</configs>', encoding="utf-8"
        )

        assert SyncOrchestrator(settings, store=store).publish() is True
        assert store.published == [
            (
                "configs.xml",
                "DEFAULT_GROUP",
                XML_DECLARATION + '<configs>\n<config name="a.xml"><r/></config>\n</configs>',
            )
        ]

    def test_publish_missing_file(self, settings, store):
        """Test publishing without a local copy."""
        assert SyncOrchestrator(settings, store=store).publish() is False
        assert store.published == []

    def test_publish_malformed_file(self, settings, store, tmp_path):
        """Test an unparseable local copy is not published."""
        conf(tmp_path, "configs.xml").parent.mkdir(parents=True)
        conf(tmp_path, "configs.xml").write_text("<configs>", encoding="utf-8")
        assert SyncOrchestrator(settings, store=store).publish() is False
        assert store.published == []

    def test_publish_without_address(self, tmp_path):
        """Test publishing fails fast without a store address."""
        assert SyncOrchestrator(Settings(install_root=str(tmp_path))).publish() is False

    def test_publish_remote_error(self, settings, store, tmp_path):
        """Test store failures are reported as False."""
        conf(tmp_path, "configs.xml").parent.mkdir(parents=True)
        conf(tmp_path, "configs.xml").write_text("<configs/>", encoding="utf-8")
        store.fail = True
        assert SyncOrchestrator(settings, store=store).publish() is False

    def test_publish_rejected(self, settings, store, tmp_path):
        """Test a store that refuses the document."""
        conf(tmp_path, "configs.xml").parent.mkdir(parents=True)
        conf(tmp_path, "configs.xml").write_text("<configs/>", encoding="utf-8")
        store.publish_result = False
        assert SyncOrchestrator(settings, store=store).publish() is False


class TestSubscribe:
    """Test change subscription."""

    def test_subscribe_materializes_initial_and_changes(self, settings, store, tmp_path):
        """Test the first fetch and later pushes are applied."""
        with SyncOrchestrator(settings, store=store) as orchestrator:
            assert orchestrator.subscribe() is True
            orchestrator.wait_idle()
            assert conf(tmp_path, "a.xml").read_text(encoding="utf-8") == (
                XML_DECLARATION + "<root><k>v</k></root>"
            )

            store.push('<config name="a.xml"><changed/></config>')
            orchestrator.wait_idle()
            assert conf(tmp_path, "a.xml").read_text(encoding="utf-8") == XML_DECLARATION + "<changed/>"
        assert store.closed

    def test_subscribe_once_per_key(self, settings, store):
        """Test a second subscribe does not register another listener."""
        with SyncOrchestrator(settings, store=store) as orchestrator:
            assert orchestrator.subscribe(initial_pull=False)
            assert orchestrator.subscribe(initial_pull=False)
        assert len(store.listeners) == 1
        assert store.listeners[0][:2] == KEY

    def test_updates_applied_in_order(self, settings, store, tmp_path):
        """Test the last pushed document wins."""
        with SyncOrchestrator(settings, store=store) as orchestrator:
            orchestrator.subscribe(initial_pull=False)
            for i in range(5):
                store.push(f'<config name="a.xml"><v{i}/></config>')
            orchestrator.wait_idle()
            assert conf(tmp_path, "a.xml").read_text(encoding="utf-8") == XML_DECLARATION + "<v4/>"

    def test_empty_push_is_ignored(self, settings, store, tmp_path):
        """Test an empty notification keeps the current files."""
        with SyncOrchestrator(settings, store=store) as orchestrator:
            orchestrator.subscribe()
            store.push("")
            orchestrator.wait_idle()
            assert conf(tmp_path, "a.xml").read_text(encoding="utf-8") == (
                XML_DECLARATION + "<root><k>v</k></root>"
            )

    def test_no_initial_pull(self, settings, store, tmp_path):
        """Test nothing is written before the first notification."""
        with SyncOrchestrator(settings, store=store) as orchestrator:
            orchestrator.subscribe(initial_pull=False)
            orchestrator.wait_idle()
            assert not (tmp_path / "conf").exists()

    def test_failed_registration_stops_worker(self, settings, store):
        """Test the worker does not outlive a listener that failed to register."""

        def refuse(data_id, group, listener):
            raise RemoteError("store unavailable")

        store.subscribe = refuse
        orchestrator = SyncOrchestrator(settings, store=store)
        assert orchestrator.subscribe(initial_pull=False) is False
        assert orchestrator._worker is None
        orchestrator.close()

    def test_subscribe_without_address(self, tmp_path):
        """Test subscribing fails without a store address."""
        orchestrator = SyncOrchestrator(Settings(install_root=str(tmp_path)))
        assert orchestrator.subscribe() is False
        orchestrator.close()
