"""Renders the CODEMAP.md report from scan results."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..analyzers.base import IMPORTANT_NAME_KEYWORDS
from ..config import CodeMapConfig
from ..grouping import GroupingResult
from ..hashing import short_hash
from ..models import FileGroup, FileRecord, SkippedFile, SymbolKind, SymbolRecord
from ..stores import write_atomic

TEMPLATE_NAME = "codemap.md.j2"

_FRAMEWORKS = (
    "react",
    "nextjs",
    "express",
    "mongoose",
    "prisma",
    "flask",
    "django",
    "fastapi",
    "sqlalchemy",
    "pydantic",
    "celery",
    "spring",
    "aspnet",
    "graphql",
    "vscode-extension",
)

_DIRECTORY_ROLES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("route", "api"), "API routes"),
    (("component",), "components"),
    (("model", "entity"), "data models"),
    (("util", "helper"), "utilities"),
    (("test", "spec"), "tests"),
    (("config",), "configuration"),
)

_EXPORTED_KINDS = {
    SymbolKind.FUNCTION,
    SymbolKind.CLASS,
    SymbolKind.COMPONENT,
    SymbolKind.HOOK,
    SymbolKind.TYPE,
    SymbolKind.ENTITY,
}
_MODULE_LANGUAGES = {"js", "jsx", "ts", "tsx", "mjs", "cjs"}
_PROSE_LANGUAGES = {"md", "markdown", "mdx", "json", "txt"}


def format_bytes(size: int) -> str:
    """Human-readable size: bytes below 1 KiB, one decimal above."""
    if size < 1024:
        return f"{size}B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size / (1024 * 1024):.1f}MB"


def format_timestamp(epoch_ms: Optional[int]) -> str:
    if not epoch_ms:
        return "never"
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def importance(record: FileRecord) -> float:
    """Weighted ranking used to order per-file detail."""
    name = record.name.lower()
    score = 10.0 if any(keyword in name for keyword in IMPORTANT_NAME_KEYWORDS) else 0.0
    score += len(record.symbols)
    score += 3 * len(record.detectors)
    score += 0.5 * len(record.references)
    score += min(record.size / 1024, 10) / 2
    return score


def rank_records(records: Iterable[FileRecord]) -> List[FileRecord]:
    return sorted(records, key=lambda record: (-importance(record), record.path))


def describe_directory(path: str, records: Sequence[FileRecord]) -> str:
    """One-line description from the dominant language and the directory name."""
    languages = Counter(record.language for record in records)
    primary = min(languages.items(), key=lambda item: (-item[1], item[0]))[0] if languages else ""
    name = path.rpartition("/")[2].lower()
    for hints, role in _DIRECTORY_ROLES:
        if any(hint in name for hint in hints):
            return f"{primary} {role}".strip()
    if any(record.routes for record in records):
        return f"{primary} API routes".strip()
    if any(record.schemas for record in records):
        return f"{primary} data models".strip()
    return f"{primary} files".strip()


def display_path(path: str) -> str:
    return "/" + path if path else "/"


@dataclass
class ReportInputs:
    """Everything the report needs, already deterministic in order."""

    project: str
    records: List[FileRecord]
    grouping: GroupingResult
    skipped: List[SkippedFile] = field(default_factory=list)
    last_scan: Optional[int] = None
    head: Optional[str] = None


class ReportEmitter:
    """Renders report inputs through a Jinja2 template and writes the result."""

    def __init__(self, config: CodeMapConfig) -> None:
        self.config = config
        self._env = self._create_env(config.report.templates_dir)

    def render(self, inputs: ReportInputs) -> str:
        template = self._env.get_template(TEMPLATE_NAME)
        return template.render(**self.build_context(inputs)).strip() + "\n"

    def write(self, markdown: str, path: Path | None = None) -> Path:
        target = path or self.config.output_path
        target.parent.mkdir(parents=True, exist_ok=True)
        write_atomic(target, markdown)
        return target

    def build_context(self, inputs: ReportInputs) -> Dict[str, Any]:
        emit = self.config.emit
        detailed = rank_records(inputs.grouping.records)
        return {
            "header": self._header(inputs),
            "overview": self._overview(inputs, detailed),
            "directories": self._directories(inputs),
            "groups": [_group_line(group) for group in inputs.grouping.groups],
            "files": [_file_entry(record) for record in detailed],
            "routes": _route_lines(detailed) if emit.routes else None,
            "schemas": _schema_lines(detailed) if emit.schemas else None,
            "symbols": _exported_lines(detailed) if emit.symbols else None,
            "cross_references": _cross_reference_lines(detailed),
            "tech_stack": _tech_stack_lines(detailed),
        }

    # ------------------------------------------------------------------
    # Sections

    @staticmethod
    def _header(inputs: ReportInputs) -> str:
        parts = [
            f"project: {inputs.project}",
            "root: /",
            f"last_scan: {format_timestamp(inputs.last_scan)}",
        ]
        if inputs.head:
            parts.append(f"head: {inputs.head}")
        return "   ".join(parts)

    def _overview(self, inputs: ReportInputs, detailed: Sequence[FileRecord]) -> List[str]:
        records = inputs.records
        total_bytes = sum(record.size for record in records)
        if self.config.report.count_skipped_bytes:
            total_bytes += sum(item.size for item in inputs.skipped)
        languages = Counter(record.language for record in records)
        detectors = {tag for record in detailed for tag in record.detectors}
        frameworks = [name for name in _FRAMEWORKS if name in detectors]
        grouped = sum(group.count for group in inputs.grouping.groups)
        return [
            f"files: {len(records)}",
            f"size: {format_bytes(total_bytes)}",
            "languages: "
            + (
                ", ".join(
                    f"{language} ({count})"
                    for language, count in sorted(languages.items(), key=lambda item: (-item[1], item[0]))
                )
                or "none"
            ),
            "frameworks: " + (", ".join(frameworks) or "none"),
            f"deep analysed: {sum(1 for record in records if record.deep)}",
            f"grouped: {grouped} in {len(inputs.grouping.groups)} groups",
            f"skipped: {len(inputs.skipped)}",
        ]

    @staticmethod
    def _directories(inputs: ReportInputs) -> List[Dict[str, str]]:
        by_directory: Dict[str, List[FileRecord]] = defaultdict(list)
        for record in inputs.records:
            by_directory[record.directory].append(record)
        for group in inputs.grouping.groups:
            by_directory.setdefault(group.path, [])
        return [
            {"path": display_path(path), "description": describe_directory(path, by_directory[path])}
            for path in sorted(by_directory)
        ]

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


def _group_line(group: FileGroup) -> str:
    location = f"{group.path}/{group.pattern}" if group.path else group.pattern
    line = f"/{location} — {group.description}, {format_bytes(group.total_size)}"
    if group.samples:
        line += f" (e.g. {', '.join(group.samples)})"
    return line


def _symbol_label(symbol: SymbolRecord) -> str:
    label = f"{symbol.kind.value} {symbol.name}"
    if symbol.parameters:
        label += f"({', '.join(symbol.parameters)})"
    elif symbol.detail and symbol.kind in {SymbolKind.FUNCTION, SymbolKind.METHOD, SymbolKind.HOOK}:
        label += f"({symbol.detail})"
    return label


def _file_entry(record: FileRecord) -> Dict[str, Any]:
    fields: List[Tuple[str, str]] = []
    if record.summary:
        fields.append(("summary", record.summary))
    if record.symbols:
        fields.append(("symbols", ", ".join(_symbol_label(symbol) for symbol in record.symbols)))
    if record.references:
        fields.append(("refs", ", ".join(record.references)))
    if record.detectors:
        fields.append(("detectors", ", ".join(record.detectors)))
    if record.truncated:
        fields.append(("truncated", "true"))
    return {
        "path": display_path(record.path),
        "hash": short_hash(record.hash),
        "language": record.language,
        "size": format_bytes(record.size),
        "fields": fields,
    }


def _route_lines(records: Sequence[FileRecord]) -> List[str]:
    rows = []
    for record in records:
        for route in record.routes:
            line = f"{route.method} {route.path} → {route.handler}"
            if route.middleware:
                line += f" [{', '.join(route.middleware)}]"
            location = display_path(record.path)
            if route.line:
                location += f":{route.line}"
            line += f" ({location})"
            if route.description:
                line += f" — {route.description}"
            rows.append(((route.path, route.method, record.path, route.line or 0), line))
    return [line for _, line in sorted(rows, key=lambda row: row[0])]


def _schema_lines(records: Sequence[FileRecord]) -> List[str]:
    rows = []
    for record in records:
        for schema in record.schemas:
            fields = ", ".join(
                f"{item.name}: {item.type}{'?' if item.nullable else ''}" for item in schema.fields
            )
            line = f"{schema.name} ({schema.kind}) {{{fields}}}"
            if schema.relations:
                line += f" → {', '.join(schema.relations)}"
            line += f" ({display_path(record.path)})"
            rows.append(((schema.name, record.path), line))
    return [line for _, line in sorted(rows, key=lambda row: row[0])]


def _exported_symbols(record: FileRecord) -> List[SymbolRecord]:
    if record.language in _PROSE_LANGUAGES:
        return []
    if record.language in _MODULE_LANGUAGES:
        exported = {export.name for export in record.exports}
        return [symbol for symbol in record.symbols if symbol.name in exported]
    return [
        symbol
        for symbol in record.symbols
        if symbol.kind in _EXPORTED_KINDS and not symbol.name.startswith("_")
    ]


def _exported_lines(records: Sequence[FileRecord]) -> List[str]:
    lines = []
    for record in sorted(records, key=lambda item: item.path):
        entries: List[str] = []
        for symbol in _exported_symbols(record):
            entry = f"{symbol.name}: {symbol.description}" if symbol.description else symbol.name
            if entry not in entries:
                entries.append(entry)
        if entries:
            lines.append(f"{display_path(record.path)} → {'; '.join(entries)}")
    return lines


def _cross_reference_lines(records: Sequence[FileRecord]) -> List[str]:
    referrers: Dict[str, List[str]] = defaultdict(list)
    for record in sorted(records, key=lambda item: item.path):
        for module in record.references:
            referrers[module].append(display_path(record.path))
    shared = [(module, paths) for module, paths in referrers.items() if len(paths) > 1]
    shared.sort(key=lambda item: (-len(item[1]), item[0]))
    return [f"{module} ({len(paths)} files): {', '.join(paths)}" for module, paths in shared]


def _tech_stack_lines(records: Sequence[FileRecord]) -> List[str]:
    counts = Counter(tag for record in records for tag in record.detectors)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [f"{tag}: {count}" for tag, count in ordered]


__all__ = [
    "ReportEmitter",
    "ReportInputs",
    "TEMPLATE_NAME",
    "describe_directory",
    "display_path",
    "format_bytes",
    "format_timestamp",
    "importance",
    "rank_records",
]
