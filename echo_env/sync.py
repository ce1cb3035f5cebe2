"""A single synchronisation pass over one workspace."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from .config import Settings
from .errors import NoWorkspaceContextError, SyncIOError
from .extractor import EnvMap, extract_env, read_sources
from .logging import get_logger
from .merger import MergeResult, merge_template, select_destination, write_destination

logger = get_logger(__name__)


@dataclass
class TemplatePlan:
    """Everything a pass computed before touching the destination."""

    destination: Path
    sources: List[Path]
    env_map: EnvMap
    merge: MergeResult


@dataclass
class SyncOutcome:
    destination: Path
    sources: List[Path]
    keys: List[str]
    added: List[str]
    removed: List[str]
    written: bool


def _read_destination(path: Path) -> str:
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SyncIOError(f"Unable to read {path}: {exc}") from exc


def build_template(settings: Settings) -> TemplatePlan:
    """Read the sources and destination and compute the new template content."""
    root = settings.workspace_root
    if not root.is_dir():
        raise NoWorkspaceContextError(f"Workspace folder not found: {root}")

    destinations = [root / name for name in settings.destination_files]
    sources = read_sources(root, settings.source_files, exclude=destinations)
    env_map = extract_env((text for _, text in sources), strict=settings.strict)

    destination = select_destination(root, settings.destination_files)
    existing = _read_destination(destination)
    merge = merge_template(
        env_map, existing, settings.placeholder_format, strict=settings.strict
    )
    return TemplatePlan(
        destination=destination,
        sources=[path for path, _ in sources],
        env_map=env_map,
        merge=merge,
    )


def sync_env_files(settings: Settings) -> SyncOutcome:
    """Bring the destination template in line with the configured sources."""
    plan = build_template(settings)
    logger.debug(
        "Computed template",
        destination=str(plan.destination),
        sources=[str(path) for path in plan.sources],
        keys=len(plan.env_map),
    )

    written = plan.merge.changed or not plan.destination.exists()
    if written:
        write_destination(plan.destination, plan.merge.content)
    else:
        logger.debug("Template already up to date", destination=str(plan.destination))

    outcome = SyncOutcome(
        destination=plan.destination,
        sources=plan.sources,
        keys=list(plan.env_map),
        added=plan.merge.added,
        removed=plan.merge.removed,
        written=written,
    )
    logger.info(
        "Sync finished",
        destination=str(outcome.destination),
        keys=len(outcome.keys),
        added=len(outcome.added),
        removed=len(outcome.removed),
        written=outcome.written,
    )
    return outcome
