from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from echo_env.config import Settings  # noqa: E402
from echo_env.errors import (  # noqa: E402
    NoUsableSourceError,
    NoWorkspaceContextError,
    SyncIOError,
)
from echo_env.sync import build_template, sync_env_files  # noqa: E402


def _settings(root: Path, **overrides) -> Settings:
    settings = Settings(
        workspace_root=root,
        source_files=[".env", ".env.local"],
        destination_files=[".env.template", ".env.example"],
        placeholder_format="${key}",
    )
    return settings.with_overrides(**overrides)


def test_sync_creates_first_destination_candidate(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("API_KEY=secret123\nPORT=3000\n", encoding="utf-8")

    outcome = sync_env_files(_settings(tmp_path))

    assert outcome.destination == tmp_path / ".env.template"
    assert outcome.written is True
    assert outcome.keys == ["API_KEY", "PORT"]
    assert (tmp_path / ".env.template").read_text(encoding="utf-8") == (
        "API_KEY=api_key\nPORT=port"
    )


def test_sync_updates_existing_candidate_and_merges_sources(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("API_KEY=a\nDB_URL=postgres://x\n", encoding="utf-8")
    (tmp_path / ".env.local").write_text("API_KEY=b\nDEBUG=true\n", encoding="utf-8")
    example = tmp_path / ".env.example"
    example.write_text("# Copy to .env\nOLD_KEY=placeholder_old\nAPI_KEY=\n", encoding="utf-8")

    outcome = sync_env_files(_settings(tmp_path, placeholder_format="your_${key}"))

    assert outcome.destination == example
    assert outcome.removed == ["OLD_KEY"]
    assert outcome.added == ["DB_URL", "DEBUG"]
    assert example.read_text(encoding="utf-8").splitlines() == [
        "# Copy to .env",
        "API_KEY=your_api_key",
        "DB_URL=your_db_url",
        "DEBUG=your_debug",
    ]
    assert not (tmp_path / ".env.template").exists()


def test_sync_skips_write_when_template_is_current(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=1\n", encoding="utf-8")
    settings = _settings(tmp_path)

    assert sync_env_files(settings).written is True
    second = sync_env_files(settings)

    assert second.written is False
    assert (tmp_path / ".env.template").read_text(encoding="utf-8") == "A=a"


def test_build_template_does_not_write(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=1\n", encoding="utf-8")

    plan = build_template(_settings(tmp_path, strict=True))

    assert plan.merge.content.endswith("A=a\n")
    assert plan.env_map == {"A": "1"}
    assert not plan.destination.exists()


def test_sync_without_sources_leaves_destination_untouched(tmp_path: Path) -> None:
    template = tmp_path / ".env.template"
    template.write_text("KEEP=keep", encoding="utf-8")

    with pytest.raises(NoUsableSourceError):
        sync_env_files(_settings(tmp_path))

    assert template.read_text(encoding="utf-8") == "KEEP=keep"


def test_sync_requires_workspace_folder(tmp_path: Path) -> None:
    with pytest.raises(NoWorkspaceContextError):
        sync_env_files(_settings(tmp_path / "missing"))


def test_sync_reports_write_failures(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / ".env").write_text("A=1\n", encoding="utf-8")

    def _boom(self, *args, **kwargs):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(Path, "write_text", _boom)

    with pytest.raises(SyncIOError, match="read-only filesystem"):
        sync_env_files(_settings(tmp_path))


def test_sync_never_reads_the_template_as_a_source(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=1\n", encoding="utf-8")
    example = tmp_path / ".env.example"
    example.write_text("OLD=old\n", encoding="utf-8")

    outcome = sync_env_files(_settings(tmp_path, source_files=[".env*"]))

    assert outcome.sources == [tmp_path / ".env"]
    assert outcome.removed == ["OLD"]
    assert example.read_text(encoding="utf-8") == "A=a"
