"""Rewrite a template file so it carries exactly the current keys."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from .config import KEY_TOKEN
from .errors import SyncIOError

ATTRIBUTION_HEADER = "# Generated by echo-env. Values are placeholders, never real secrets."


@dataclass
class MergeResult:
    """Outcome of merging an env map into a template's lines."""

    content: str
    kept: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: bool = True


def render_placeholder(placeholder_format: str, key: str) -> str:
    return placeholder_format.replace(KEY_TOKEN, key.lower())


def line_key(line: str, *, strict: bool = False) -> Optional[str]:
    """Key of a template line, or None for blank and malformed lines.

    Keys are read the way sources are: outside strict mode a commented
    assignment such as ``#DEBUG=1`` is a key line for ``#DEBUG``.
    """
    stripped = line.strip()
    if not stripped or (strict and stripped.startswith("#")):
        return None
    key, sep, _ = stripped.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    return key


def merge_template(
    env_map: Mapping[str, str],
    existing: str,
    placeholder_format: str,
    *,
    strict: bool = False,
) -> MergeResult:
    """Merge ``env_map`` into the ``existing`` template content.

    Unmanaged lines (blank, comments) stay in place, key lines are rewritten
    with placeholders or dropped when their key is gone, and new keys are
    appended in ``env_map`` order. Source values never reach the output.
    """
    body = existing.strip()
    lines = body.splitlines() if body else []
    if strict:
        lines = [
            line for line in lines if line.strip() and line.strip() != ATTRIBUTION_HEADER
        ]

    merged: List[str] = []
    kept: List[str] = []
    removed: List[str] = []
    for line in lines:
        key = line_key(line, strict=strict)
        if key is None:
            merged.append(line)
            continue
        if key not in env_map:
            removed.append(key)
            continue
        if key in kept:
            continue
        kept.append(key)
        merged.append(f"{key}={render_placeholder(placeholder_format, key)}")

    added: List[str] = []
    for key in env_map:
        prefix = f"{key}="
        if any(line.startswith(prefix) for line in merged):
            continue
        added.append(key)
        merged.append(f"{prefix}{render_placeholder(placeholder_format, key)}")

    if strict:
        content = "\n".join([ATTRIBUTION_HEADER] + merged) + "\n"
    else:
        content = "\n".join(merged)

    return MergeResult(
        content=content,
        kept=kept,
        added=added,
        removed=removed,
        changed=content != existing,
    )


def select_destination(root: Path, candidates: Sequence[str]) -> Path:
    """First candidate that exists under ``root``, else the first candidate."""
    if not candidates:
        raise ValueError("No destination files configured.")
    for name in candidates:
        path = root / name
        if path.exists():
            return path
    return root / candidates[0]


def write_destination(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise SyncIOError(f"Unable to write {path}: {exc}") from exc
