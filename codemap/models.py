"""Core data models shared across codemap components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SymbolKind(str, Enum):
    """Closed set of symbol kinds an analyzer may emit."""

    FUNCTION = "function"
    CLASS = "class"
    METHOD = "method"
    COMPONENT = "component"
    HOOK = "hook"
    TYPE = "type"
    VARIABLE = "variable"
    ROUTE = "route"
    ENTITY = "entity"


@dataclass(frozen=True)
class SymbolRecord:
    """One extracted code construct."""

    kind: SymbolKind
    name: str
    detail: Optional[str] = None
    description: Optional[str] = None
    line: Optional[int] = None
    parameters: Tuple[str, ...] = ()
    complexity: Optional[int] = None


@dataclass(frozen=True)
class RouteRecord:
    """HTTP route discovered in a source file."""

    method: str
    path: str
    handler: str
    middleware: Tuple[str, ...] = ()
    description: Optional[str] = None
    line: Optional[int] = None
    framework: Optional[str] = None


@dataclass(frozen=True)
class SchemaField:
    name: str
    type: str
    nullable: bool = False


@dataclass(frozen=True)
class SchemaRecord:
    """Block-delimited data shape (table, model, interface or type)."""

    name: str
    kind: str
    fields: Tuple[SchemaField, ...] = ()
    relations: Tuple[str, ...] = ()
    line: Optional[int] = None


@dataclass(frozen=True)
class ImportRecord:
    module: str
    items: Tuple[str, ...] = ()
    is_default: bool = False
    line: Optional[int] = None


@dataclass(frozen=True)
class ExportRecord:
    name: str
    kind: str
    line: Optional[int] = None


@dataclass
class PartialFileRecord:
    """Mutable analyzer output merged into a FileRecord by the engine."""

    symbols: List[SymbolRecord] = field(default_factory=list)
    routes: List[RouteRecord] = field(default_factory=list)
    schemas: List[SchemaRecord] = field(default_factory=list)
    imports: List[ImportRecord] = field(default_factory=list)
    exports: List[ExportRecord] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    detectors: List[str] = field(default_factory=list)
    summary: Optional[str] = None

    def add_detector(self, tag: str) -> None:
        if tag not in self.detectors:
            self.detectors.append(tag)

    def count(self, kind: SymbolKind) -> int:
        return sum(1 for symbol in self.symbols if symbol.kind is kind)


@dataclass(frozen=True)
class FileRecord:
    """Per-file analysis result. Owned by the scan that produced it."""

    path: str
    language: str
    hash: str
    size: int
    summary: str = ""
    symbols: Tuple[SymbolRecord, ...] = ()
    references: Tuple[str, ...] = ()
    detectors: Tuple[str, ...] = ()
    truncated: bool = False
    routes: Tuple[RouteRecord, ...] = ()
    schemas: Tuple[SchemaRecord, ...] = ()
    exports: Tuple[ExportRecord, ...] = ()
    deep: bool = False

    @property
    def directory(self) -> str:
        head, _, _ = self.path.rpartition("/")
        return head

    @property
    def name(self) -> str:
        return self.path.rpartition("/")[2]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["symbols"] = [
            {**item, "kind": symbol.kind.value}
            for item, symbol in zip(data["symbols"], self.symbols)
        ]
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FileRecord":
        symbols = tuple(
            SymbolRecord(
                kind=SymbolKind(item["kind"]),
                name=item["name"],
                detail=item.get("detail"),
                description=item.get("description"),
                line=item.get("line"),
                parameters=tuple(item.get("parameters") or ()),
                complexity=item.get("complexity"),
            )
            for item in payload.get("symbols", [])
        )
        routes = tuple(
            RouteRecord(
                method=item["method"],
                path=item["path"],
                handler=item["handler"],
                middleware=tuple(item.get("middleware") or ()),
                description=item.get("description"),
                line=item.get("line"),
                framework=item.get("framework"),
            )
            for item in payload.get("routes", [])
        )
        schemas = tuple(
            SchemaRecord(
                name=item["name"],
                kind=item["kind"],
                fields=tuple(SchemaField(**f) for f in item.get("fields", [])),
                relations=tuple(item.get("relations") or ()),
                line=item.get("line"),
            )
            for item in payload.get("schemas", [])
        )
        exports = tuple(ExportRecord(**item) for item in payload.get("exports", []))
        return cls(
            path=payload["path"],
            language=payload["language"],
            hash=payload["hash"],
            size=int(payload["size"]),
            summary=payload.get("summary", ""),
            symbols=symbols,
            references=tuple(payload.get("references", ())),
            detectors=tuple(payload.get("detectors", ())),
            truncated=bool(payload.get("truncated", False)),
            routes=routes,
            schemas=schemas,
            exports=exports,
            deep=bool(payload.get("deep", False)),
        )


@dataclass(frozen=True)
class SkippedFile:
    """File excluded by discovery before any read occurred."""

    path: str
    size: int
    reason: str


@dataclass(frozen=True)
class FileGroup:
    """Summarised cluster of similar files reported as a single entry."""

    path: str
    pattern: str
    count: int
    total_size: int
    description: str
    samples: Tuple[str, ...] = ()
    members: Tuple[str, ...] = ()


@dataclass
class Report:
    """Result of a scan: aggregated records plus the rendered document."""

    project: str
    root: str
    scanned_at: str
    records: List[FileRecord]
    groups: List[FileGroup]
    skipped: List[SkippedFile]
    markdown: str
    output_path: Optional[str] = None
    head: Optional[str] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


__all__ = [
    "ExportRecord",
    "FileGroup",
    "FileRecord",
    "ImportRecord",
    "PartialFileRecord",
    "Report",
    "RouteRecord",
    "SchemaField",
    "SchemaRecord",
    "SkippedFile",
    "SymbolKind",
    "SymbolRecord",
]
