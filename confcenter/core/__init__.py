from .orchestrator import SyncOrchestrator
from .settings import Settings
from .extractor import extract_fragments
from .writer import ConfigWriter
from .paths import PathResolver
from .types import Fragment, SyncReport

__all__ = [
    "SyncOrchestrator",
    "Settings",
    "extract_fragments",
    "ConfigWriter",
    "PathResolver",
    "Fragment",
    "SyncReport",
]
