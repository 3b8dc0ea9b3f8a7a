"""Tests for bulk-directory grouping."""

from __future__ import annotations

from typing import Iterable, List

from codemap.grouping import group_files
from codemap.models import FileRecord, SkippedFile


def _records(paths: Iterable[str], size: int = 10) -> List[FileRecord]:
    return [
        FileRecord(path=path, language=path.rpartition(".")[2], hash="0" * 64, size=size)
        for path in paths
    ]


def test_binary_directory_absorbs_binary_skips() -> None:
    skipped = [SkippedFile(f"bin/tool{i}.exe", 100, "binary") for i in range(4)]
    result = group_files(_records(["bin/readme.txt"]), skipped)

    assert len(result.groups) == 1
    group = result.groups[0]
    assert group.path == "bin"
    assert group.description == "5 binary files"
    assert group.pattern == "*.{exe,dll,bin,so}"
    assert group.total_size == 410
    assert group.samples == ("readme.txt", "tool0.exe", "tool1.exe")
    assert result.records == []
    assert result.skipped == []


def test_oversized_skips_are_never_grouped() -> None:
    big = SkippedFile("logs/huge.log", 10_000_000, "too-large")
    result = group_files(_records(["logs/app.ts"]), [big])

    assert result.groups == []
    assert result.skipped == [big]
    assert [record.path for record in result.records] == ["logs/app.ts"]


def test_image_directory_lists_kinds_in_path_order() -> None:
    result = group_files(_records(["static/icons/a.png", "static/icons/b.svg", "static/icons/c.png", "static/icons/d.ico"]))

    group = result.groups[0]
    assert group.description == "4 images (png, svg, ico)"
    assert group.pattern == "*.{png,svg,ico}"


def test_asset_directory_groups_with_more_than_five_images() -> None:
    paths = [f"assets/uploads/a{i}.jpg" for i in range(6)] + [f"assets/uploads/notes{i}.md" for i in range(4)]
    result = group_files(_records(paths))

    assert [group.description for group in result.groups] == ["10 images (jpg, md)"]
    assert result.records == []


def test_migration_directory_and_timestamp_names() -> None:
    named = group_files(_records(["db/migrations/001_init.sql", "db/migrations/002_users.sql"]))
    stamped = group_files(_records(["scripts/20240101_init.sql", "scripts/20240202_users.sql"]))

    assert [group.description for group in named.groups] == ["2 database migrations"]
    assert named.groups[0].pattern == "migration_*"
    assert [group.path for group in stamped.groups] == ["scripts"]


def test_test_directory_needs_more_than_ten_files() -> None:
    eleven = group_files(_records(f"src/__tests__/case{i}.ts" for i in range(11)))
    ten = group_files(_records(f"src/__tests__/case{i}.ts" for i in range(10)))

    assert [group.description for group in eleven.groups] == ["11 test files"]
    assert ten.groups == []
    assert len(ten.records) == 10


def test_test_markers_in_file_names() -> None:
    paths = [f"src/checks/unit{i}.spec.ts" for i in range(8)] + [f"src/checks/helper{i}.ts" for i in range(3)]
    result = group_files(_records(paths))

    assert [group.count for group in result.groups] == [11]


def test_extension_bulk_groups_only_large_extensions() -> None:
    paths = [f"data/row{i}.txt" for i in range(9)] + [f"data/conf{i}.cfg" for i in range(7)]
    result = group_files(_records(paths, size=5))

    assert len(result.groups) == 1
    group = result.groups[0]
    assert group.description == "9 TXT files"
    assert group.pattern == "*.txt"
    assert group.count == 9
    assert group.total_size == 45
    assert sorted(record.path for record in result.records) == sorted(
        f"data/conf{i}.cfg" for i in range(7)
    )


def test_small_directories_stay_ungrouped_and_paths_are_disjoint() -> None:
    records = _records(["src/index.ts", "src/app.ts", "README.md"])
    result = group_files(records)

    assert result.groups == []
    assert [record.path for record in result.records] == ["README.md", "src/app.ts", "src/index.ts"]
    assert set(result.grouped_paths).isdisjoint(record.path for record in result.records)
