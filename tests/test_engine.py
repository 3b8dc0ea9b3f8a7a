"""End-to-end tests for the scan pipeline."""

from __future__ import annotations

import hashlib
import inspect
import itertools
import json
import os
import threading
from pathlib import Path
from typing import List, Tuple

import pytest

from codemap.analyzers import Analyzer, LanguageDispatcher
from codemap.config import CodeMapConfig
from codemap.engine import (
    CodeMapEngine,
    analysis_signature,
    full_scan,
    read_git_head,
    single_file_update,
)
from codemap.errors import CodeMapError, ScanCancelled, WorkspaceNotFoundError
from codemap.models import PartialFileRecord
from codemap.report import ReportEmitter


def _seed(repo_builder) -> None:
    repo_builder.write(
        {
            "src/routes/users.js": """
            const express = require('express');
            const router = express.Router();
            router.get('/users', getUsers);
            module.exports = router;
            """,
            "src/types.ts": """
            interface User { id: string; name?: string }
            """,
            "README.md": """
            # Shop

            Demo workspace.
            """,
        }
    )


def _index(repo_builder) -> dict:
    path = repo_builder.path() / ".codemap" / "index.json"
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def ticking_clock(monkeypatch):
    counter = itertools.count(1_700_000_000_000, 1000)
    monkeypatch.setattr("codemap.engine.now_ms", lambda: next(counter))


def test_full_scan_writes_report_and_cache(repo_builder) -> None:
    _seed(repo_builder)

    report = repo_builder.scan()

    assert report.ok
    assert sorted(record.path for record in report.records) == [
        "README.md",
        "src/routes/users.js",
        "src/types.ts",
    ]
    codemap = repo_builder.codemap()
    assert codemap.startswith("# CODEMAP v1\nproject: repo   root: /")
    assert "- GET /users → getUsers (/src/routes/users.js:3)" in codemap
    assert "- User (interface) {id: string, name: string?} (/src/types.ts)" in codemap
    assert set(_index(repo_builder)["files"]) == {"README.md", "src/routes/users.js", "src/types.ts"}


def test_rescan_of_unchanged_tree_is_byte_identical(repo_builder, monkeypatch) -> None:
    _seed(repo_builder)
    repo_builder.scan()
    first_report = repo_builder.codemap()
    first_index = (repo_builder.path() / ".codemap" / "index.json").read_text(encoding="utf-8")

    writes: List[Path] = []
    original_write = ReportEmitter.write

    def _recording_write(self, markdown, path=None):
        writes.append(path)
        return original_write(self, markdown, path)

    monkeypatch.setattr(ReportEmitter, "write", _recording_write)
    second = repo_builder.scan()

    assert second.markdown == first_report
    assert repo_builder.codemap() == first_report
    assert (repo_builder.path() / ".codemap" / "index.json").read_text(encoding="utf-8") == first_index
    assert writes == []


def test_record_hash_is_sha256_of_file_bytes(repo_builder) -> None:
    _seed(repo_builder)
    report = repo_builder.scan()

    for record in report.records:
        data = (repo_builder.path() / record.path).read_bytes()
        assert record.hash == hashlib.sha256(data).hexdigest()
        assert record.size == len(data)


def test_single_change_only_touches_that_entry(repo_builder, ticking_clock) -> None:
    _seed(repo_builder)
    repo_builder.scan()
    before = _index(repo_builder)["files"]

    repo_builder.write({"src/types.ts": "interface User { id: string; email: string }\n"})
    report = repo_builder.scan()
    after = _index(repo_builder)["files"]

    assert after["src/types.ts"]["lastScan"] > before["src/types.ts"]["lastScan"]
    assert after["src/types.ts"]["hash"] != before["src/types.ts"]["hash"]
    for path in ("README.md", "src/routes/users.js"):
        assert after[path] == before[path]
    assert "- User (interface) {id: string, email: string} (/src/types.ts)" in report.markdown


def test_symbols_are_capped_and_flagged(repo_builder) -> None:
    body = "".join(f"function helper{i}() {{}}\n" for i in range(160))
    repo_builder.write({"src/many.js": body})

    report = repo_builder.scan()

    record = next(record for record in report.records if record.path == "src/many.js")
    assert len(record.symbols) == 150
    assert record.truncated is True
    assert record.symbols[0].name == "helper0"
    assert record.symbols[-1].name == "helper149"
    assert "truncated: true" in repo_builder.codemap()


def test_references_are_capped(repo_builder) -> None:
    body = "".join(f"import dep{i} from 'pkg{i}';\n" for i in range(60))
    repo_builder.write({"src/imports.js": body})

    report = repo_builder.scan(repo_builder.config(max_refs=50))

    record = report.records[0]
    assert len(record.references) == 50
    assert record.references[-1] == "pkg49"
    assert record.truncated is True


def test_unreadable_directory_does_not_abort_scan(repo_builder, monkeypatch) -> None:
    repo_builder.write(
        {
            "lib/a.py": "def run():\n    pass\n",
            "secret/keys.txt": "hidden\n",
            "web/app.js": "console.log('hi');\n",
        }
    )
    real_scandir = os.scandir

    def _scandir(path):
        if Path(path).name == "secret":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr("codemap.discovery.os.scandir", _scandir)
    report = repo_builder.scan()

    assert sorted(record.path for record in report.records) == ["lib/a.py", "web/app.js"]
    assert report.errors == ["Skipping unreadable directory secret: Permission denied"]
    assert not report.ok
    assert (repo_builder.path() / "CODEMAP.md").exists()


def test_large_and_binary_files_are_skipped(repo_builder) -> None:
    repo_builder.write({"notes/big.txt": "x" * 2048, "notes/small.txt": "ok\n"})
    repo_builder.write_bytes({"logo.png": b"\x89PNG\r\n\x1a\n"})

    report = repo_builder.scan(repo_builder.config(max_file_kb=1))

    assert [record.path for record in report.records] == ["notes/small.txt"]
    assert sorted((item.path, item.reason) for item in report.skipped) == [
        ("logo.png", "binary"),
        ("notes/big.txt", "too-large"),
    ]
    assert "- skipped: 2" in repo_builder.codemap()


def test_malformed_json_gets_generic_record(repo_builder) -> None:
    repo_builder.write({"package.json": '{"name": '})

    report = repo_builder.scan()

    record = report.records[0]
    assert record.summary == "could not parse JSON"
    assert record.detectors == ("json",)
    assert record.deep is False
    assert report.ok


class _ExplodingAnalyzer(Analyzer):
    name = "explode"
    languages = ("py",)

    def extract(self, content: str, path: str) -> PartialFileRecord:
        raise ValueError("boom")


def test_analyzer_failure_is_isolated_to_one_file(repo_builder) -> None:
    repo_builder.write({"app/main.py": "print('hi')\n", "app/other.js": "let x = 1;\n"})
    config = repo_builder.config()
    engine = CodeMapEngine(config, dispatcher=LanguageDispatcher([_ExplodingAnalyzer()]))

    report = engine.full_scan()

    assert sorted(record.path for record in report.records) == ["app/main.py", "app/other.js"]
    failed = next(record for record in report.records if record.path == "app/main.py")
    assert failed.summary == "print('hi')"
    assert failed.detectors == ("py",)
    assert report.errors == ["explode failed on app/main.py: boom"]


def test_cancelled_scan_writes_nothing(repo_builder) -> None:
    _seed(repo_builder)
    cancel = threading.Event()
    cancel.set()
    engine = CodeMapEngine(repo_builder.config(), cancel=cancel)

    with pytest.raises(ScanCancelled):
        engine.full_scan()

    assert not (repo_builder.path() / "CODEMAP.md").exists()
    assert not (repo_builder.path() / ".codemap" / "index.json").exists()


class _RecordingProgress:
    def __init__(self, cancel: threading.Event | None = None) -> None:
        self.calls: List[Tuple[int, int]] = []
        self.cancel = cancel

    def report(self, processed: int, total: int) -> None:
        self.calls.append((processed, total))
        if self.cancel is not None and processed >= 1:
            self.cancel.set()


def test_cancel_during_scan_leaves_previous_outputs(repo_builder) -> None:
    _seed(repo_builder)
    repo_builder.scan()
    previous = repo_builder.codemap()
    repo_builder.write({f"src/extra{i}.ts": f"export const value{i} = {i};\n" for i in range(20)})

    cancel = threading.Event()
    config = repo_builder.config()
    config.scan.max_workers = 1
    engine = CodeMapEngine(config, progress=_RecordingProgress(cancel), cancel=cancel)

    with pytest.raises(ScanCancelled):
        engine.full_scan()

    assert repo_builder.codemap() == previous
    assert "src/extra0.ts" not in _index(repo_builder)["files"]


def test_progress_reports_every_file(repo_builder) -> None:
    _seed(repo_builder)
    progress = _RecordingProgress()

    full_scan(repo_builder.path(), progress=progress)

    assert progress.calls[0] == (0, 3)
    assert progress.calls[-1] == (3, 3)
    assert [processed for processed, _ in progress.calls] == [0, 1, 2, 3]


def test_single_file_update_refreshes_one_record(repo_builder, ticking_clock) -> None:
    _seed(repo_builder)
    repo_builder.scan()
    before = _index(repo_builder)["files"]

    repo_builder.write({"src/types.ts": "interface Account { id: string }\n"})
    report = single_file_update("src/types.ts", root=repo_builder.path())
    after = _index(repo_builder)["files"]

    assert "- Account (interface) {id: string} (/src/types.ts)" in report.markdown
    assert report.markdown == repo_builder.codemap()
    assert after["README.md"] == before["README.md"]
    assert after["src/types.ts"]["lastScan"] > before["src/types.ts"]["lastScan"]
    assert len(report.records) == 3


def test_single_file_update_drops_deleted_file(repo_builder) -> None:
    _seed(repo_builder)
    repo_builder.scan()
    (repo_builder.path() / "src" / "types.ts").unlink()

    report = single_file_update(repo_builder.path() / "src" / "types.ts", root=repo_builder.path())

    assert sorted(record.path for record in report.records) == ["README.md", "src/routes/users.js"]
    assert "### /src/types.ts" not in repo_builder.codemap()
    assert "src/types.ts" not in _index(repo_builder)["files"]


def test_single_file_update_rejects_paths_outside_workspace(repo_builder, tmp_path: Path) -> None:
    _seed(repo_builder)
    outside = tmp_path / "elsewhere.ts"
    outside.write_text("export {};\n", encoding="utf-8")

    with pytest.raises(CodeMapError):
        single_file_update(outside, root=repo_builder.path())


def test_missing_workspace_raises(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceNotFoundError):
        full_scan(tmp_path / "missing")
    with pytest.raises(WorkspaceNotFoundError):
        single_file_update("a.ts", root=tmp_path / "missing")


def test_grouped_files_are_not_listed_individually(repo_builder) -> None:
    files = {f"fixtures/row{i}.txt": f"row {i}\n" for i in range(9)}
    files.update({f"fixtures/conf{i}.cfg": f"key={i}\n" for i in range(7)})
    repo_builder.write(files)

    report = repo_builder.scan()
    codemap = repo_builder.codemap()

    assert [group.description for group in report.groups] == ["9 TXT files"]
    assert "### /fixtures/row0.txt" not in codemap
    assert "### /fixtures/conf0.cfg" in codemap
    assert "- files: 16" in codemap
    assert "- grouped: 9 in 1 groups" in codemap


def test_git_head_is_included_when_enabled(repo_builder) -> None:
    _seed(repo_builder)
    git_dir = repo_builder.path() / ".git"
    (git_dir / "refs" / "heads").mkdir(parents=True)
    (git_dir / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    (git_dir / "refs" / "heads" / "main").write_text("0123456789abcdef\n", encoding="utf-8")

    report = repo_builder.scan()
    assert report.head == "0123456"
    assert "head: 0123456" in repo_builder.codemap()

    config = repo_builder.config()
    config.scan.git_integration = False
    assert repo_builder.scan(config).head is None


def test_read_git_head_variants(tmp_path: Path) -> None:
    assert read_git_head(tmp_path) is None

    packed = tmp_path / "packed"
    (packed / ".git").mkdir(parents=True)
    (packed / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    (packed / ".git" / "packed-refs").write_text(
        "# pack-refs with: peeled\nabcdef1234567890 refs/heads/main\n", encoding="utf-8"
    )
    assert read_git_head(packed) == "abcdef1"

    detached = tmp_path / "detached"
    (detached / ".git").mkdir(parents=True)
    (detached / ".git" / "HEAD").write_text("fedcba9876543210\n", encoding="utf-8")
    assert read_git_head(detached) == "fedcba9"

    worktree = tmp_path / "worktree"
    worktree.mkdir()
    (worktree / ".git").write_text("gitdir: ../detached/.git\n", encoding="utf-8")
    assert read_git_head(worktree) == "fedcba9"


def test_engine_uses_config_file_from_root(repo_builder) -> None:
    _seed(repo_builder)
    repo_builder.write({".codemap.yml": "output_file: docs/MAP.md\nemit_routes: false\n"})

    report = full_scan(repo_builder.path())

    output = repo_builder.path() / "docs" / "MAP.md"
    assert Path(report.output_path) == output.resolve()
    assert "## ROUTES" not in output.read_text(encoding="utf-8")


def test_nested_cache_dir_keeps_rescans_identical(repo_builder, ticking_clock) -> None:
    repo_builder.write({".codemap.yml": "cache_dir: tools/cache\n", "a.py": "def main():\n    pass\n"})

    first = full_scan(repo_builder.path())
    second = full_scan(repo_builder.path())

    assert (repo_builder.path() / "tools" / "cache" / "index.json").exists()
    assert [record.path for record in second.records] == [".codemap.yml", "a.py"]
    assert second.markdown == first.markdown


def test_cache_signature_change_forces_reanalysis(repo_builder, ticking_clock) -> None:
    _seed(repo_builder)
    repo_builder.scan()
    before = _index(repo_builder)["files"]

    repo_builder.scan(repo_builder.config(max_symbols=10))
    after = _index(repo_builder)["files"]

    assert all(after[path]["lastScan"] > before[path]["lastScan"] for path in before)


def test_explicit_config_is_rebased_on_root(repo_builder) -> None:
    _seed(repo_builder)
    config = CodeMapConfig(root=Path("/nonexistent"))

    report = full_scan(repo_builder.path(), config)

    assert report.root == str(repo_builder.path().resolve())


@pytest.mark.parametrize(
    "module_name",
    ["codemap.describer", "codemap.analyzers.utils", "codemap.analyzers.javascript"],
)
def test_signature_tracks_module_level_analysis_code(monkeypatch, tmp_path: Path, module_name: str) -> None:
    config = CodeMapConfig(root=tmp_path)
    dispatcher = LanguageDispatcher()
    before = analysis_signature(config, dispatcher)
    real_getsource = inspect.getsource

    def _edited_getsource(obj):
        source = real_getsource(obj)
        if getattr(obj, "__name__", None) == module_name:
            source += "\n_EXTRA_RULE = ('sync', 'Synchronizes')\n"
        return source

    monkeypatch.setattr(inspect, "getsource", _edited_getsource)

    assert analysis_signature(config, dispatcher) != before
