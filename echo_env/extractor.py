"""Extract ``KEY=VALUE`` entries from environment files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import NoUsableSourceError, SyncIOError

EnvMap = Dict[str, str]

_GLOB_CHARS = set("*?[")


def parse_line(line: str, *, strict: bool = False) -> Optional[Tuple[str, str]]:
    """Return ``(key, value)`` for an assignment line, or None.

    Only the first ``=`` separates key from value, so values may contain ``=``.
    Lines with an empty key or value are ignored. In strict mode ``#`` comment
    lines are ignored as well.
    """
    if strict and line.strip().startswith("#"):
        return None
    key, sep, value = line.partition("=")
    if not sep:
        return None
    key = key.strip()
    value = value.strip()
    if not key or not value:
        return None
    return key, value


def extract_env(texts: Iterable[str], *, strict: bool = False) -> EnvMap:
    """Fold the entries of every text, in order, into one mapping.

    A later text wins for a shared key; the key keeps its first position.
    """
    env_map: EnvMap = {}
    for text in texts:
        for line in text.splitlines():
            entry = parse_line(line, strict=strict)
            if entry is None:
                continue
            key, value = entry
            env_map[key] = value
    return env_map


def resolve_source_paths(
    root: Path, source_files: Sequence[str], *, exclude: Iterable[Path] = ()
) -> List[Path]:
    """Existing source files under ``root``, in configured order.

    Files in ``exclude`` (the template candidates) are never sources.
    """
    excluded = {Path(path) for path in exclude}
    resolved: List[Path] = []
    for name in source_files:
        if _GLOB_CHARS & set(name):
            candidates = sorted(root.glob(name))
        else:
            candidates = [root / name]
        for path in candidates:
            if path in excluded or path in resolved:
                continue
            if path.is_file():
                resolved.append(path)
    return resolved


def read_sources(
    root: Path, source_files: Sequence[str], *, exclude: Iterable[Path] = ()
) -> List[Tuple[Path, str]]:
    paths = resolve_source_paths(root, source_files, exclude=exclude)
    if not paths:
        raise NoUsableSourceError(
            f"No source env file found in {root} (looked for: {', '.join(source_files)})."
        )

    sources: List[Tuple[Path, str]] = []
    for path in paths:
        try:
            sources.append((path, path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError) as exc:
            raise SyncIOError(f"Unable to read {path}: {exc}") from exc
    return sources
