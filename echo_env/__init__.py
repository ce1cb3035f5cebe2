"""Keep env template files in sync with the keys of real env files."""

from .config import Settings, load_settings
from .errors import (
    NoUsableSourceError,
    NoWorkspaceContextError,
    SyncError,
    SyncIOError,
)
from .extractor import extract_env, parse_line
from .merger import merge_template, render_placeholder
from .session import SyncSession, SyncStatus
from .sync import SyncOutcome, build_template, sync_env_files

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "load_settings",
    "SyncError",
    "NoUsableSourceError",
    "NoWorkspaceContextError",
    "SyncIOError",
    "extract_env",
    "parse_line",
    "merge_template",
    "render_placeholder",
    "SyncSession",
    "SyncStatus",
    "SyncOutcome",
    "build_template",
    "sync_env_files",
]
