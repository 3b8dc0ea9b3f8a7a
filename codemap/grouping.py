"""Bulk-directory summarisation into FileGroups."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .discovery import extension_of
from .models import FileGroup, FileRecord, SkippedFile

_BINARY_EXTENSIONS = frozenset({"exe", "dll", "so", "dylib", "bin", "dat"})
_IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp", "svg", "ico", "bmp"})
_ASSET_HINTS = ("image", "upload", "asset")
_MIGRATION_HINTS = ("migration", "version")
_TEST_HINTS = ("test", "spec")
_TIMESTAMP_PREFIX = re.compile(r"^\d{8,}")

_MAJORITY = 0.8
_TEST_MAJORITY = 0.7
_MIN_TEST_FILES = 10
_MIN_BULK_FILES = 15
_MIN_EXTENSION_FILES = 8
_MAX_SAMPLES = 3


@dataclass(frozen=True)
class _Member:
    path: str
    size: int

    @property
    def name(self) -> str:
        return self.path.rpartition("/")[2]

    @property
    def extension(self) -> str:
        return extension_of(self.name)


@dataclass
class GroupingResult:
    """Groups plus whatever was left for per-file detail."""

    groups: List[FileGroup] = field(default_factory=list)
    records: List[FileRecord] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)

    @property
    def grouped_paths(self) -> List[str]:
        return [member for group in self.groups for member in group.members]


_Rule = Callable[[str, Sequence[_Member]], Optional[List[FileGroup]]]


def group_files(
    records: Iterable[FileRecord],
    skipped: Iterable[SkippedFile] = (),
) -> GroupingResult:
    """Partition records and binary skips into groups and ungrouped leftovers.

    Only skipped files whose reason is ``binary`` take part: oversized files
    are listed in the report on their own and never summarised.
    """
    by_directory: Dict[str, List[_Member]] = defaultdict(list)
    record_index: Dict[str, FileRecord] = {}
    skipped_index: Dict[str, SkippedFile] = {}

    for record in records:
        record_index[record.path] = record
        by_directory[record.directory].append(_Member(record.path, record.size))
    leftovers_skipped: List[SkippedFile] = []
    for item in skipped:
        if item.reason != "binary":
            leftovers_skipped.append(item)
            continue
        skipped_index[item.path] = item
        by_directory[item.path.rpartition("/")[0]].append(_Member(item.path, item.size))

    result = GroupingResult()
    grouped: set[str] = set()
    for directory in sorted(by_directory):
        members = sorted(by_directory[directory], key=lambda member: member.path)
        for group in _classify(directory, members):
            result.groups.append(group)
            grouped.update(group.members)

    result.records = [record_index[path] for path in sorted(record_index) if path not in grouped]
    result.skipped = sorted(
        [item for path, item in skipped_index.items() if path not in grouped] + leftovers_skipped,
        key=lambda item: item.path,
    )
    return result


def _classify(directory: str, members: Sequence[_Member]) -> List[FileGroup]:
    for rule in _RULES:
        groups = rule(directory, members)
        if groups:
            return groups
    return []


def _binary_rule(directory: str, members: Sequence[_Member]) -> Optional[List[FileGroup]]:
    binaries = sum(1 for member in members if member.extension in _BINARY_EXTENSIONS)
    if binaries < len(members) * _MAJORITY:
        return None
    return [
        _make_group(
            directory,
            members,
            pattern="*.{exe,dll,bin,so}",
            description=f"{len(members)} binary files",
        )
    ]


def _image_rule(directory: str, members: Sequence[_Member]) -> Optional[List[FileGroup]]:
    images = sum(1 for member in members if member.extension in _IMAGE_EXTENSIONS)
    lowered = directory.lower()
    asset_directory = any(hint in lowered for hint in _ASSET_HINTS)
    if images < len(members) * _MAJORITY and not (images > 5 and asset_directory):
        return None
    kinds = _unique(member.extension for member in members)
    return [
        _make_group(
            directory,
            members,
            pattern="*.{" + ",".join(kinds) + "}",
            description=f"{len(members)} images ({', '.join(kinds)})",
        )
    ]


def _migration_rule(directory: str, members: Sequence[_Member]) -> Optional[List[FileGroup]]:
    lowered = directory.lower()
    if not any(hint in lowered for hint in _MIGRATION_HINTS) and not all(
        _TIMESTAMP_PREFIX.match(member.name) for member in members
    ):
        return None
    return [
        _make_group(
            directory,
            members,
            pattern="migration_*",
            description=f"{len(members)} database migrations",
        )
    ]


def _test_rule(directory: str, members: Sequence[_Member]) -> Optional[List[FileGroup]]:
    if len(members) <= _MIN_TEST_FILES:
        return None
    lowered = directory.lower()
    marked = sum(1 for member in members if any(hint in member.name.lower() for hint in _TEST_HINTS))
    if not any(hint in lowered for hint in _TEST_HINTS) and marked <= len(members) * _TEST_MAJORITY:
        return None
    return [
        _make_group(
            directory,
            members,
            pattern="*test*",
            description=f"{len(members)} test files",
        )
    ]


def _extension_rule(directory: str, members: Sequence[_Member]) -> Optional[List[FileGroup]]:
    if len(members) <= _MIN_BULK_FILES:
        return None
    by_extension: Dict[str, List[_Member]] = defaultdict(list)
    for member in members:
        if member.extension:
            by_extension[member.extension].append(member)
    groups = [
        _make_group(
            directory,
            same,
            pattern=f"*.{extension}",
            description=f"{len(same)} {extension.upper()} files",
        )
        for extension, same in sorted(by_extension.items())
        if len(same) >= _MIN_EXTENSION_FILES
    ]
    return groups or None


_RULES: Tuple[_Rule, ...] = (
    _binary_rule,
    _image_rule,
    _migration_rule,
    _test_rule,
    _extension_rule,
)


def _make_group(
    directory: str,
    members: Sequence[_Member],
    *,
    pattern: str,
    description: str,
) -> FileGroup:
    return FileGroup(
        path=directory,
        pattern=pattern,
        count=len(members),
        total_size=sum(member.size for member in members),
        description=description,
        samples=tuple(member.name for member in members[:_MAX_SAMPLES]),
        members=tuple(member.path for member in members),
    )


def _unique(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


__all__ = ["GroupingResult", "group_files"]
