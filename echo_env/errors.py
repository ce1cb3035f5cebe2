"""Errors raised by a sync attempt."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Raised when a sync attempt cannot complete."""


class NoUsableSourceError(SyncError):
    """None of the configured source files exist."""


class NoWorkspaceContextError(SyncError):
    """There is no workspace root to resolve relative paths against."""


class SyncIOError(SyncError):
    """Reading a source or writing the destination failed."""
