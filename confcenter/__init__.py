"""confcenter - keep local configuration files in sync with a config store.

A composite document fetched from the store is split into its named
``config`` fragments, and each fragment is written to its own file under the
installation's ``conf`` directory.
"""

from .core.orchestrator import SyncOrchestrator
from .core.settings import Settings
from .core.extractor import extract_fragments
from .core.writer import ConfigWriter
from .core.paths import PathResolver
from .core.types import Fragment, SyncReport

__all__ = [
    "SyncOrchestrator",
    "Settings",
    "extract_fragments",
    "ConfigWriter",
    "PathResolver",
    "Fragment",
    "SyncReport",
]
