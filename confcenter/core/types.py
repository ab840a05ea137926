"""Value types shared by the extractor, writer and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

FLAT_TARGET_NAME = "apusic.conf"
PROPERTIES_SUFFIX = ".properties"


class TargetFormat(str, Enum):
    """How a fragment is laid down on disk."""

    MARKUP = "markup"
    FLAT_PROPERTY = "flat_property"


@dataclass(frozen=True)
class Fragment:
    """One named ``config`` block found in a composite document.

    Attributes:
        destination_name: Value of the ``name`` attribute, None when absent.
        raw_text: The element including its opening and closing tags.
        inner_text: The payload between the tags.
        complete: False when the opening tag had no matching closing tag.
    """

    destination_name: Optional[str]
    raw_text: str
    inner_text: str
    complete: bool = True

    @property
    def target_format(self) -> TargetFormat:
        if self.destination_name == FLAT_TARGET_NAME:
            return TargetFormat.FLAT_PROPERTY
        return TargetFormat.MARKUP


@dataclass(frozen=True)
class FragmentFailure:
    """A fragment that could not be written.

    Attributes:
        destination_name: Name of the fragment (None if it had none).
        reason: Human readable description of the failure.
        error: Class name of the underlying exception.
    """

    destination_name: Optional[str]
    reason: str
    error: str


@dataclass
class SyncReport:
    """Outcome of one materialize pass."""

    written: List[Path] = field(default_factory=list)
    failures: List[FragmentFailure] = field(default_factory=list)
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures

    def record_failure(self, name: Optional[str], exc: BaseException) -> None:
        self.failures.append(
            FragmentFailure(destination_name=name, reason=str(exc), error=type(exc).__name__)
        )

    def extend(self, other: "SyncReport") -> None:
        self.written.extend(other.written)
        self.failures.extend(other.failures)
