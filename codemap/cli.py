"""CLI entrypoints for codemap commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .engine import full_scan, single_file_update
from .errors import CodeMapError, ScanCancelled, WorkspaceNotFoundError
from .logging import ProgressLogger, configure_logging
from .models import Report

EXIT_OK = 0
EXIT_SCAN_ERROR = 1
EXIT_WORKSPACE_NOT_FOUND = 2


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codemap",
        description="Generate and refresh a CODEMAP.md index of a source tree.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan the workspace and write the report.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    scan_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the workspace root (defaults to current directory).",
    )

    update_parser = subparsers.add_parser(
        "update",
        help="Reanalyse a single file and re-render the report.",
    )
    _add_verbose_option(update_parser, suppress_default=True)
    update_parser.add_argument("file", help="File that changed, absolute or relative to the root.")
    update_parser.add_argument(
        "--root",
        default=".",
        help="Path to the workspace root (defaults to current directory).",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codemap commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        if args.command == "scan":
            report = full_scan(args.path, progress=ProgressLogger())
        elif args.command == "update":
            report = single_file_update(args.file, root=args.root, progress=ProgressLogger())
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(EXIT_SCAN_ERROR, "Unknown command\n")
    except WorkspaceNotFoundError as exc:
        parser.exit(EXIT_WORKSPACE_NOT_FOUND, f"{exc}\n")
    except ConfigError as exc:
        parser.exit(EXIT_SCAN_ERROR, f"Invalid configuration: {exc}\n")
    except ScanCancelled as exc:
        parser.exit(EXIT_SCAN_ERROR, f"{exc}\n")
    except CodeMapError as exc:
        parser.exit(EXIT_SCAN_ERROR, f"codemap {args.command} failed: {exc}\nRun with --verbose for more details.\n")

    _print_summary(report)
    if not report.ok:
        parser.exit(
            EXIT_SCAN_ERROR,
            f"Report written with {len(report.errors)} scan error(s); see log output above.\n",
        )


def _print_summary(report: Report) -> None:
    rel_path = _relativize(Path(report.output_path)) if report.output_path else "(not written)"
    grouped = sum(group.count for group in report.groups)
    print(
        f"CODEMAP written to {rel_path}: {len(report.records)} files, "
        f"{grouped} grouped, {len(report.skipped)} skipped"
    )


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
