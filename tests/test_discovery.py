"""Tests for codemap.discovery."""

from __future__ import annotations

from pathlib import Path

from codemap.config import CodeMapConfig
from codemap.discovery import build_ignore_rule, detect_language, discover, should_ignore


def _write(path: Path, content: str = "x\n") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_discover_walks_sorted_and_skips_excluded_directories(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "b.ts")
    _write(tmp_path / "src" / "a.ts")
    _write(tmp_path / "README.md")
    _write(tmp_path / "node_modules" / "lib" / "index.js")
    _write(tmp_path / ".git" / "HEAD")
    _write(tmp_path / ".codemap" / "index.json")
    _write(tmp_path / "CODEMAP.md")
    _write(tmp_path / ".DS_Store")

    result = discover(tmp_path, CodeMapConfig(root=tmp_path))

    assert [candidate.rel_path for candidate in result.candidates] == ["README.md", "src/a.ts", "src/b.ts"]
    assert result.candidates[1].language == "ts"
    assert result.candidates[1].size == 2
    assert result.skipped == []
    assert result.errors == []


def test_discover_honours_gitignore_and_globs(tmp_path: Path) -> None:
    _write(tmp_path / ".gitignore", "logs/\n*.tmp\n!keep.tmp\n")
    _write(tmp_path / "logs" / "app.log")
    _write(tmp_path / "scratch.tmp")
    _write(tmp_path / "keep.tmp")
    _write(tmp_path / "fixtures" / "data.json")
    _write(tmp_path / "main.py")

    config = CodeMapConfig(root=tmp_path, ignore_globs=["fixtures/"])
    paths = [candidate.rel_path for candidate in discover(tmp_path, config).candidates]

    assert paths == [".gitignore", "keep.tmp", "main.py"]


def test_discover_can_ignore_gitignore(tmp_path: Path) -> None:
    _write(tmp_path / ".gitignore", "*.tmp\n")
    _write(tmp_path / "scratch.tmp")

    config = CodeMapConfig(root=tmp_path, respect_gitignore=False)
    paths = [candidate.rel_path for candidate in discover(tmp_path, config).candidates]

    assert "scratch.tmp" in paths


def test_discover_marks_large_and_binary_files(tmp_path: Path) -> None:
    _write(tmp_path / "big.txt", "x" * 3000)
    (tmp_path / "font.woff2").write_bytes(b"\x00\x01")
    _write(tmp_path / "ok.txt")

    result = discover(tmp_path, CodeMapConfig(root=tmp_path, max_file_kb=2))

    assert [candidate.rel_path for candidate in result.candidates] == ["ok.txt"]
    assert [(item.path, item.size, item.reason) for item in result.skipped] == [
        ("big.txt", 3000, "too-large"),
        ("font.woff2", 2, "binary"),
    ]


def test_custom_output_file_is_not_a_candidate(tmp_path: Path) -> None:
    _write(tmp_path / "docs" / "MAP.md")
    _write(tmp_path / "docs" / "guide.md")

    config = CodeMapConfig(root=tmp_path)
    config.report.output_file = "docs/MAP.md"

    assert [candidate.rel_path for candidate in discover(tmp_path, config).candidates] == ["docs/guide.md"]


def test_nested_cache_dir_and_report_staging_file_are_excluded(tmp_path: Path) -> None:
    _write(tmp_path / "tools" / "cache" / "index.json", "{}")
    _write(tmp_path / "tools" / "build.py")
    _write(tmp_path / "lib" / "cache" / "notes.txt")
    _write(tmp_path / "docs" / ".MAP.md.tmp")

    config = CodeMapConfig(root=tmp_path)
    config.scan.cache_dir = "tools/cache"
    config.report.output_file = "docs/MAP.md"
    paths = [candidate.rel_path for candidate in discover(tmp_path, config).candidates]

    assert paths == ["lib/cache/notes.txt", "tools/build.py"]


def test_ignore_rule_semantics() -> None:
    anchored = build_ignore_rule("/build")
    nested = build_ignore_rule("docs/*.md")
    directory = build_ignore_rule("cache/")

    assert should_ignore("build", True, [anchored])
    assert not should_ignore("src/build", True, [anchored])
    assert should_ignore("docs/a.md", False, [nested])
    assert not should_ignore("guides/a.md", False, [nested])
    assert should_ignore("a/cache", True, [directory])
    assert not should_ignore("a/cache", False, [directory])
    assert build_ignore_rule("   ") is None


def test_detect_language() -> None:
    assert detect_language("src/App.TSX") == "tsx"
    assert detect_language("Dockerfile") == "dockerfile"
    assert detect_language(".env") == "env"
    assert detect_language("schema.prisma") == "prisma"
