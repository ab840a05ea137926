"""Write extracted fragments to their destination files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

from . import codec
from .errors import ExtractError, ParseError
from .extractor import FRAGMENT_TAG, NAME_ATTRIBUTE
from .paths import PathResolver
from .types import FLAT_TARGET_NAME, PROPERTIES_SUFFIX, Fragment, SyncReport, TargetFormat

logger = logging.getLogger(__name__)


class ConfigWriter:
    """Lay fragments down on disk.

    Markup fragments are written one file per fragment. Fragments addressed to
    the flat target are merged: every one of them seen in a pass contributes
    its ``config`` children, or itself when it has none, and the flat file is
    written once at the end.
    """

    def __init__(self, resolver: PathResolver):
        self.resolver = resolver

    def write_file(self, path: Path, content: str) -> Path:
        """Overwrite ``path`` with ``content`` encoded as UTF-8."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        logger.info("File is saved in %s", path)
        return path

    def render_markup(self, fragment: Fragment) -> str:
        name = fragment.destination_name or ""
        if name.endswith(PROPERTIES_SUFFIX):
            return fragment.inner_text
        return codec.XML_DECLARATION + fragment.inner_text

    def flatten(self, fragment: Fragment) -> List[str]:
        """Strip names from a flat-target fragment and serialize its blocks.

        Raises:
            ParseError: If the fragment is not well-formed markup.
        """
        root = codec.parse(fragment.raw_text)
        for element in root.iter(FRAGMENT_TAG):
            element.attrib.pop(NAME_ATTRIBUTE, None)
        blocks = [child for child in root if child.tag == FRAGMENT_TAG]
        if not blocks:
            blocks = [root]
        return [codec.serialize(block, omit_declaration=True) for block in blocks]

    def write_all(self, fragments: Iterable[Fragment]) -> SyncReport:
        """Write every fragment, continuing past per-fragment failures.

        Raises:
            ConfigurationMissing: If the installation root is not set. Nothing
                is written in that case.
        """
        self.resolver.require_root()
        report = SyncReport()
        flat_blocks: List[str] = []
        flat_seen = False

        for fragment in fragments:
            name = fragment.destination_name
            try:
                if name is None:
                    raise ExtractError(
                        f"Fragment has no '{NAME_ATTRIBUTE}' attribute: {fragment.raw_text[:80]!r}"
                    )
                if not fragment.complete:
                    raise ParseError(f"Fragment {name} has no matching closing tag")
                if fragment.target_format is TargetFormat.FLAT_PROPERTY:
                    flat_blocks.extend(self.flatten(fragment))
                    flat_seen = True
                    continue
                path = self.resolver.conf_path(name)
                report.written.append(self.write_file(path, self.render_markup(fragment)))
            except ExtractError as exc:
                logger.error("Rejected fragment: %s", exc)
                report.record_failure(name, exc)
            except ParseError as exc:
                logger.warning("Skipping fragment %s: %s", name, exc)
                report.record_failure(name, exc)
            except OSError as exc:
                logger.warning("Failed to write fragment %s: %s", name, exc)
                report.record_failure(name, exc)

        if flat_seen:
            path = self.resolver.conf_path(FLAT_TARGET_NAME)
            try:
                report.written.append(
                    self.write_file(path, codec.XML_DECLARATION + "".join(flat_blocks))
                )
            except OSError as exc:
                logger.warning("Failed to write %s: %s", FLAT_TARGET_NAME, exc)
                report.record_failure(FLAT_TARGET_NAME, exc)
        return report
