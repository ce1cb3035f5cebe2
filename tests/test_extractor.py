from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from echo_env.errors import NoUsableSourceError  # noqa: E402
from echo_env.extractor import (  # noqa: E402
    extract_env,
    parse_line,
    read_sources,
    resolve_source_paths,
)


def test_parse_line_splits_on_first_equals_only() -> None:
    assert parse_line("DATABASE_URL=postgres://u:p@h/db?sslmode=require") == (
        "DATABASE_URL",
        "postgres://u:p@h/db?sslmode=require",
    )
    assert parse_line("  TOKEN =  abc==  ") == ("TOKEN", "abc==")


@pytest.mark.parametrize("line", ["", "   ", "NO_SEPARATOR", "=value", "EMPTY=", "EMPTY=   "])
def test_parse_line_ignores_incomplete_lines(line: str) -> None:
    assert parse_line(line) is None


def test_parse_line_strict_skips_comments() -> None:
    assert parse_line("# API_KEY=commented", strict=True) is None
    assert parse_line("# API_KEY=commented") == ("# API_KEY", "commented")


def test_extract_env_later_sources_win_and_keep_first_position() -> None:
    env_map = extract_env(
        [
            "API_KEY=first\nPORT=3000\n",
            "DEBUG=1\nAPI_KEY=second\n",
        ]
    )

    assert env_map == {"API_KEY": "second", "PORT": "3000", "DEBUG": "1"}
    assert list(env_map) == ["API_KEY", "PORT", "DEBUG"]


def test_extract_env_handles_crlf_and_junk_lines() -> None:
    env_map = extract_env(["A=1\r\n\r\nnot a pair\r\nB = two words \r\n"])
    assert env_map == {"A": "1", "B": "two words"}


def test_resolve_source_paths_skips_missing_and_expands_globs(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=1\n", encoding="utf-8")
    (tmp_path / ".env.local").write_text("B=2\n", encoding="utf-8")
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "b.env").write_text("C=3\n", encoding="utf-8")
    (tmp_path / "config" / "a.env").write_text("D=4\n", encoding="utf-8")

    paths = resolve_source_paths(
        tmp_path, [".env.local", ".env.missing", "config/*.env", ".env", ".env.local"]
    )

    assert paths == [
        tmp_path / ".env.local",
        tmp_path / "config" / "a.env",
        tmp_path / "config" / "b.env",
        tmp_path / ".env",
    ]


def test_read_sources_requires_at_least_one_file(tmp_path: Path) -> None:
    with pytest.raises(NoUsableSourceError):
        read_sources(tmp_path, [".env", ".env.local"])


def test_read_sources_returns_contents_in_order(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=base\n", encoding="utf-8")
    (tmp_path / ".env.local").write_text("A=local\n", encoding="utf-8")

    sources = read_sources(tmp_path, [".env", ".env.local"])

    assert [path.name for path, _ in sources] == [".env", ".env.local"]
    assert extract_env(text for _, text in sources) == {"A": "local"}


def test_resolve_source_paths_skips_excluded_templates(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("A=1\n", encoding="utf-8")
    (tmp_path / ".env.example").write_text("OLD=old\n", encoding="utf-8")
    (tmp_path / ".env.local").write_text("B=2\n", encoding="utf-8")

    paths = resolve_source_paths(
        tmp_path, [".env*"], exclude=[tmp_path / ".env.example"]
    )

    assert paths == [tmp_path / ".env", tmp_path / ".env.local"]


def test_read_sources_fails_when_only_templates_match(tmp_path: Path) -> None:
    (tmp_path / ".env.example").write_text("OLD=old\n", encoding="utf-8")

    with pytest.raises(NoUsableSourceError):
        read_sources(tmp_path, [".env*"], exclude=[tmp_path / ".env.example"])
