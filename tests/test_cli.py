"""CLI behaviour tests."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from codemap.cli import EXIT_SCAN_ERROR, EXIT_WORKSPACE_NOT_FOUND, _build_parser, main


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("codemap")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "scan"])
    assert args.verbose is True
    assert args.command == "scan"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["scan", "repo", "-v"])
    assert args.verbose is True
    assert args.path == "repo"


def test_cli_update_and_serve_arguments() -> None:
    parser = _build_parser()

    update = parser.parse_args(["update", "src/app.ts", "--root", "repo"])
    assert (update.file, update.root, update.verbose) == ("src/app.ts", "repo", False)

    serve = parser.parse_args(["serve", "--port", "9000"])
    assert (serve.host, serve.port) == ("127.0.0.1", 9000)


def test_cli_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


def test_scan_prints_summary(repo_builder, capsys) -> None:
    repo_builder.write({"src/index.ts": "export function main() {}\n", "README.md": "# Demo\n"})

    main(["scan", str(repo_builder.path())])

    out = capsys.readouterr().out
    assert "CODEMAP written to" in out
    assert "2 files, 0 grouped, 0 skipped" in out
    assert (repo_builder.path() / "CODEMAP.md").exists()


def test_update_command_refreshes_report(repo_builder, capsys) -> None:
    repo_builder.write({"src/index.ts": "export function main() {}\n"})
    main(["scan", str(repo_builder.path())])
    repo_builder.write({"src/index.ts": "export function start() {}\n"})

    main(["update", "src/index.ts", "--root", str(repo_builder.path())])

    assert "function start" in repo_builder.codemap()
    assert "1 files" in capsys.readouterr().out


def test_missing_workspace_exits_with_code_2(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(tmp_path / "missing")])

    assert excinfo.value.code == EXIT_WORKSPACE_NOT_FOUND
    assert "Workspace not found" in capsys.readouterr().err


def test_invalid_config_exits_with_code_1(repo_builder, capsys) -> None:
    repo_builder.write({".codemap.yml": "max_symbols: -1\n"})

    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(repo_builder.path())])

    assert excinfo.value.code == EXIT_SCAN_ERROR
    assert "Invalid configuration" in capsys.readouterr().err


def test_scan_errors_exit_with_code_1_after_writing(repo_builder, monkeypatch, capsys) -> None:
    repo_builder.write({"ok/a.txt": "fine\n", "locked/b.txt": "hidden\n"})
    real_scandir = os.scandir

    def _scandir(path):
        if Path(path).name == "locked":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr("codemap.discovery.os.scandir", _scandir)

    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(repo_builder.path())])

    assert excinfo.value.code == EXIT_SCAN_ERROR
    assert (repo_builder.path() / "CODEMAP.md").exists()
    assert "1 scan error(s)" in capsys.readouterr().err


def test_serve_delegates_to_service(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(
        "codemap.service.app.run_service",
        lambda host, port: calls.append((host, port)),
    )

    main(["serve", "--host", "0.0.0.0", "--port", "9001"])

    assert calls == [("0.0.0.0", 9001)]


def test_log_file_receives_messages(repo_builder, tmp_path: Path) -> None:
    repo_builder.write({"a.txt": "hello\n"})
    log_file = tmp_path / "codemap.log"

    main(["--log-file", str(log_file), "scan", str(repo_builder.path())])

    assert "Scanning" in log_file.read_text(encoding="utf-8")
