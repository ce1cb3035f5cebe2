"""Filesystem trigger sources backed by watchdog."""

from __future__ import annotations

import os
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .logging import get_logger

logger = get_logger(__name__)

ChangeCallback = Callable[[Path], None]

_RELEVANT_EVENTS = {
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
}


def matches_source(path: Path, patterns: Iterable[str]) -> bool:
    """True when the file name of ``path`` matches one of ``patterns``."""
    name = path.name
    return any(fnmatchcase(name, Path(pattern).name) for pattern in patterns)


class SourceFileHandler(FileSystemEventHandler):
    """Forward changes of matching files to a callback."""

    def __init__(
        self,
        patterns: Sequence[str],
        callback: ChangeCallback,
        *,
        ignore: Iterable[Path] = (),
        paths: Iterable[Path] = (),
    ) -> None:
        self.patterns = list(patterns)
        self.callback = callback
        self.ignore = {Path(path) for path in ignore}
        # When set, only these exact files count; name matches elsewhere are ignored.
        self.paths = {Path(path) for path in paths}

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return

        paths = [event.src_path]
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            paths.append(dest_path)

        for raw in paths:
            path = Path(os.fsdecode(raw))
            if path in self.ignore or not self._matches(path):
                continue
            logger.debug("Relevant change", path=str(path), event_type=event.event_type)
            self.callback(path)
            return

    def _matches(self, path: Path) -> bool:
        if self.paths:
            return path in self.paths
        return matches_source(path, self.patterns)


class WatchdogTriggerSource:
    """Calls back whenever a file matching ``patterns`` changes under ``root``."""

    def __init__(
        self,
        root: Path,
        patterns: Sequence[str],
        *,
        ignore: Iterable[Path] = (),
        recursive: bool = True,
        exact: bool = False,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self.root = root
        self.patterns = list(patterns)
        self.ignore = list(ignore)
        self.recursive = recursive
        self.exact = exact
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._handlers: List[SourceFileHandler] = []

    def on_relevant_change(self, callback: ChangeCallback) -> None:
        paths = [self.root / pattern for pattern in self.patterns] if self.exact else []
        handler = SourceFileHandler(
            self.patterns, callback, ignore=self.ignore, paths=paths
        )
        self._handlers.append(handler)
        if self._observer is None:
            self._observer = self._observer_factory()
            self._observer.schedule(handler, str(self.root), recursive=self.recursive)
            self._observer.start()
            logger.info(
                "Watching for changes",
                root=str(self.root),
                patterns=self.patterns,
            )
        else:
            self._observer.schedule(handler, str(self.root), recursive=self.recursive)

    def close(self) -> None:
        if self._observer is None:
            return
        observer, self._observer = self._observer, None
        observer.stop()
        observer.join()
        self._handlers.clear()
        logger.info("Stopped watching", root=str(self.root))
