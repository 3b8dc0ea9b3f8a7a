"""Workspace walking with exclusion rules."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Sequence

from .config import CodeMapConfig
from .logging import get_logger
from .models import SkippedFile

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    "node_modules",
    "bower_components",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".tox",
    ".idea",
    ".vscode",
    "dist",
    "build",
    "target",
    ".next",
    ".gradle",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

BINARY_EXTENSIONS = frozenset(
    {
        "exe", "dll", "so", "dylib", "bin", "o", "a", "lib", "class", "jar", "war",
        "pyc", "pyo", "zip", "tar", "gz", "tgz", "bz2", "xz", "7z", "rar",
        "jpg", "jpeg", "png", "gif", "bmp", "ico", "webp", "tiff",
        "pdf", "woff", "woff2", "ttf", "otf", "eot",
        "mp3", "mp4", "wav", "ogg", "mov", "avi", "webm",
        "sqlite", "db",
    }
)

logger = get_logger("discovery")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or ignore_globs."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


@dataclass(frozen=True)
class Candidate:
    """A file that passed every exclusion rule and will be hashed."""

    path: Path
    rel_path: str
    size: int
    language: str


@dataclass
class DiscoveryResult:
    candidates: List[Candidate] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def load_ignore_rules(root: Path, config: CodeMapConfig) -> List[IgnoreRule]:
    rules = _parse_gitignore(root / ".gitignore") if config.respect_gitignore else []
    for pattern in config.ignore_globs:
        rule = build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def extension_of(name: str) -> str:
    suffix = Path(name).suffix
    return suffix[1:].lower() if suffix else ""


def detect_language(path: str) -> str:
    """Return the language tag for a path: its lowercase extension, or its name."""
    name = path.rpartition("/")[2]
    ext = extension_of(name)
    if ext:
        return ext
    return name.lstrip(".").lower()


def discover(root: Path, config: CodeMapConfig) -> DiscoveryResult:
    """Walk `root` depth-first with siblings sorted, applying every exclusion rule."""
    result = DiscoveryResult()
    rules = load_ignore_rules(root, config)
    cache_dir = Path(config.scan.cache_dir).as_posix().strip("/")
    excluded_dirs = _EXCLUDED_DIRS if "/" in cache_dir else _EXCLUDED_DIRS | {cache_dir}
    report_file = Path(config.report.output_file)
    # write_atomic stages the report in a hidden sibling before renaming it.
    report_files = {report_file.as_posix(), report_file.with_name(f".{report_file.name}.tmp").as_posix()}
    max_bytes = config.max_file_kb * 1024

    def _walk(directory: Path, rel_dir: str) -> None:
        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            message = f"Skipping unreadable directory {rel_dir or '.'}: {exc.strerror or exc}"
            logger.warning(message)
            result.errors.append(message)
            return

        for entry in entries:
            rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False

            if is_dir:
                if entry.name in excluded_dirs or rel_path == cache_dir:
                    continue
                if should_ignore(rel_path, True, rules):
                    continue
                _walk(Path(entry.path), rel_path)
                continue

            if entry.name in _EXCLUDED_FILES or rel_path in report_files:
                continue
            if should_ignore(rel_path, False, rules):
                continue
            try:
                if not entry.is_file():
                    continue
                size = entry.stat().st_size
            except OSError as exc:
                message = f"Skipping unreadable file {rel_path}: {exc.strerror or exc}"
                logger.warning(message)
                result.errors.append(message)
                continue

            if size > max_bytes:
                result.skipped.append(SkippedFile(path=rel_path, size=size, reason="too-large"))
                continue
            if extension_of(entry.name) in BINARY_EXTENSIONS:
                result.skipped.append(SkippedFile(path=rel_path, size=size, reason="binary"))
                continue

            result.candidates.append(
                Candidate(
                    path=Path(entry.path),
                    rel_path=rel_path,
                    size=size,
                    language=detect_language(rel_path),
                )
            )

    _walk(root, "")
    logger.debug(
        "Discovered %d candidates, %d skipped under %s",
        len(result.candidates),
        len(result.skipped),
        root,
    )
    return result


__all__ = [
    "BINARY_EXTENSIONS",
    "Candidate",
    "DiscoveryResult",
    "IgnoreRule",
    "build_ignore_rule",
    "detect_language",
    "discover",
    "extension_of",
    "load_ignore_rules",
    "should_ignore",
]
