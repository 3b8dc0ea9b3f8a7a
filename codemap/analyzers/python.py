"""Python analyzer covering Flask, FastAPI and Django idioms."""

from __future__ import annotations

import re
from typing import List, Sequence, Tuple

from ..describer import SymbolContext, describe
from ..models import ImportRecord, PartialFileRecord, RouteRecord, SymbolKind, SymbolRecord
from .base import Analyzer
from .routes import add_route
from .utils import (
    complexity,
    external_references,
    file_name,
    first_meaningful_line,
    indent_block_end,
    leading_comment,
    split_params,
)

_DETECTORS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^\s*(?:from\s+flask\b|import\s+flask\b)", re.MULTILINE), "flask"),
    (re.compile(r"^\s*(?:from\s+django\b|import\s+django\b)", re.MULTILINE), "django"),
    (re.compile(r"^\s*(?:from\s+fastapi\b|import\s+fastapi\b)", re.MULTILINE), "fastapi"),
    (re.compile(r"^\s*(?:from\s+sqlalchemy\b|import\s+sqlalchemy\b)", re.MULTILINE), "sqlalchemy"),
    (re.compile(r"^\s*(?:from\s+pydantic\b|import\s+pydantic\b)", re.MULTILINE), "pydantic"),
    (re.compile(r"^\s*(?:from\s+celery\b|import\s+celery\b)", re.MULTILINE), "celery"),
    (re.compile(r"^\s*import\s+pytest\b|^\s*from\s+pytest\b", re.MULTILINE), "pytest"),
    (re.compile(r"^if\s+__name__\s*==\s*['\"]__main__['\"]", re.MULTILINE), "entrypoint"),
)

_DEF = re.compile(r"^(\s*)(?:async\s+)?def\s+(\w+)\s*\(([^)]*)\)?")
_CLASS = re.compile(r"^(\s*)class\s+(\w+)\s*(?:\(([^)]*)\))?\s*:")
_ROUTE = re.compile(
    r"^\s*@(?:\w+\.)?route\(\s*['\"]([^'\"]+)['\"](?:.*methods\s*=\s*[\[(]([^\])]+)[\])])?"
)
_VERB_ROUTE = re.compile(r"^\s*@(\w+)\.(get|post|put|delete|patch|head|options)\(\s*['\"]([^'\"]+)['\"]")
_DJANGO_PATH = re.compile(r"\b(?:re_)?path\(\s*r?['\"]([^'\"]*)['\"]\s*,\s*([\w.]+)")
_IMPORT = re.compile(r"^\s*import\s+([\w.]+(?:\s+as\s+\w+)?(?:\s*,\s*[\w.]+(?:\s+as\s+\w+)?)*)")
_FROM = re.compile(r"^\s*from\s+(\.*[\w.]*)\s+import\s+\(?([^)#]*)")

_HANDLER_LOOKAHEAD = 5


class PythonAnalyzer(Analyzer):
    """Extract functions, classes, routes and imports from Python modules."""

    name = "python"
    languages = ("py", "pyw")
    comment_prefixes = ("#",)

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        lines = content.splitlines()
        language = "py"

        for pattern, tag in _DETECTORS:
            if pattern.search(content):
                partial.add_detector(tag)
        framework = "fastapi" if "fastapi" in partial.detectors else "flask"

        class_indents: List[Tuple[int, str]] = []
        for index, raw in enumerate(lines):
            stripped = raw.strip()
            if not stripped or stripped.startswith("#"):
                continue
            indent = len(raw) - len(raw.lstrip())
            while class_indents and indent <= class_indents[-1][0]:
                class_indents.pop()

            class_match = _CLASS.match(raw)
            if class_match:
                name, bases = class_match.group(2), class_match.group(3)
                partial.symbols.append(
                    SymbolRecord(
                        kind=SymbolKind.CLASS,
                        name=name,
                        detail=f"inherits {bases.strip()}" if bases and bases.strip() else None,
                        description=describe(SymbolContext(name, SymbolKind.CLASS, (), lines, index, language)),
                        line=index + 1,
                    )
                )
                class_indents.append((indent, name))
                continue

            def_match = _DEF.match(raw)
            if def_match:
                name = def_match.group(2)
                params = split_params(def_match.group(3) or "")
                owner = class_indents[-1][1] if class_indents else None
                kind = SymbolKind.METHOD if owner else SymbolKind.FUNCTION
                visible = tuple(p for p in params if p not in {"self", "cls"})
                end = indent_block_end(lines, index)
                partial.symbols.append(
                    SymbolRecord(
                        kind=kind,
                        name=name,
                        detail=f"{owner}.{name}" if owner else f"({', '.join(visible)})",
                        description=describe(SymbolContext(name, kind, visible, lines, index, language)),
                        line=index + 1,
                        parameters=visible,
                        complexity=complexity(lines, index, end),
                    )
                )
                continue

            self._match_routes(lines, index, raw, framework, partial)

        self._match_django_urls(lines, path, partial)
        self._extract_imports(lines, partial)
        partial.references = external_references(record.module for record in partial.imports)
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        functions = partial.count(SymbolKind.FUNCTION)
        classes = partial.count(SymbolKind.CLASS)
        routes = len(partial.routes)
        detectors = partial.detectors

        if "flask" in detectors and routes:
            return f"Flask API with {routes} routes"
        if "fastapi" in detectors and routes:
            return f"FastAPI app with {routes} routes"
        if "django" in detectors and routes:
            return f"Django URL configuration with {routes} routes"
        if "django" in detectors:
            return f"Django module with {functions} functions, {classes} classes"
        if routes:
            return f"HTTP API with {routes} routes"
        if functions or classes:
            return f"{functions} functions, {classes} classes"
        return first_meaningful_line(content, self.comment_prefixes) or file_name(path)

    def _match_routes(
        self, lines: Sequence[str], index: int, raw: str, framework: str, partial: PartialFileRecord
    ) -> None:
        route = _ROUTE.match(raw)
        if route:
            methods = ["GET"]
            if route.group(2):
                methods = [m.strip().strip("'\"").upper() for m in route.group(2).split(",") if m.strip()]
            handler = _next_handler(lines, index)
            for method in methods:
                add_route(
                    partial,
                    RouteRecord(
                        method=method,
                        path=route.group(1),
                        handler=handler,
                        description=leading_comment(lines, index) or None,
                        line=index + 1,
                        framework="flask",
                    ),
                )
            return

        verb = _VERB_ROUTE.match(raw)
        if verb:
            add_route(
                partial,
                RouteRecord(
                    method=verb.group(2).upper(),
                    path=verb.group(3),
                    handler=_next_handler(lines, index),
                    description=leading_comment(lines, index) or None,
                    line=index + 1,
                    framework=framework,
                ),
            )

    def _match_django_urls(self, lines: Sequence[str], path: str, partial: PartialFileRecord) -> None:
        if file_name(path) != "urls.py" or "django" not in partial.detectors:
            return
        for index, raw in enumerate(lines):
            for match in _DJANGO_PATH.finditer(raw):
                route_path = match.group(1).lstrip("^").rstrip("$")
                add_route(
                    partial,
                    RouteRecord(
                        method="ANY",
                        path="/" + route_path if not route_path.startswith("/") else route_path,
                        handler=match.group(2),
                        line=index + 1,
                        framework="django",
                    ),
                )

    def _extract_imports(self, lines: Sequence[str], partial: PartialFileRecord) -> None:
        for index, raw in enumerate(lines):
            from_match = _FROM.match(raw)
            if from_match:
                items = tuple(
                    item.strip().split(" as ")[0].strip()
                    for item in from_match.group(2).split(",")
                    if item.strip() and item.strip() != "\\"
                )
                partial.imports.append(ImportRecord(from_match.group(1), items, False, index + 1))
                continue
            import_match = _IMPORT.match(raw)
            if import_match:
                for module in import_match.group(1).split(","):
                    name = module.strip().split(" as ")[0].strip()
                    if name:
                        partial.imports.append(ImportRecord(name, (name,), True, index + 1))


def _next_handler(lines: Sequence[str], index: int) -> str:
    for offset in range(index + 1, min(len(lines), index + _HANDLER_LOOKAHEAD)):
        line = lines[offset].strip()
        if not line or line.startswith("@"):
            continue
        match = re.match(r"(?:async\s+)?def\s+(\w+)", line)
        if match:
            return match.group(1)
        break
    return "unknown"


__all__ = ["PythonAnalyzer"]
