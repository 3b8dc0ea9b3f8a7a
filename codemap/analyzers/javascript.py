"""JavaScript and TypeScript analyzer."""

from __future__ import annotations

import re
from typing import List, Sequence, Tuple

from ..describer import SymbolContext, describe
from ..models import (
    ExportRecord,
    ImportRecord,
    PartialFileRecord,
    RouteRecord,
    SchemaField,
    SchemaRecord,
    SymbolKind,
    SymbolRecord,
)
from .base import Analyzer
from .routes import HTTP_METHODS, add_route, call_arguments, next_route_path, split_route_arguments
from .utils import (
    block_body,
    block_depths,
    block_end,
    complexity,
    external_references,
    file_name,
    first_meaningful_line,
    leading_comment,
    split_params,
)

_DETECTORS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"import\s+React\b|from\s+['\"`]react['\"`]|require\(\s*['\"`]react['\"`]\s*\)"), "react"),
    (re.compile(r"from\s+['\"`]next(?:/[^'\"`]*)?['\"`]"), "nextjs"),
    (re.compile(r"from\s+['\"`]express['\"`]|require\(\s*['\"`]express['\"`]\s*\)|\bexpress\(\)"), "express"),
    (re.compile(r"['\"`]@prisma/client['\"`]"), "prisma"),
    (re.compile(r"['\"`]stripe['\"`]"), "stripe"),
    (re.compile(r"['\"`]axios['\"`]"), "axios"),
    (re.compile(r"['\"`]vscode['\"`]"), "vscode-extension"),
    (re.compile(r"['\"`]mongoose['\"`]"), "mongoose"),
    (re.compile(r"['\"`](?:socket\.io|ws)['\"`]"), "websocket"),
    (re.compile(r"\.use\("), "middleware"),
    (re.compile(r"\.(?:get|post|put|delete|patch)\(\s*['\"`]/"), "api-routes"),
)

_FUNCTION = re.compile(r"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)\s*(?:<[^>]*>)?\s*\(([^)]*)\)?")
_ARROW = re.compile(
    r"^(?:export\s+)?(?:const|let|var)\s+(\w+)\s*(?::\s*[^=]+)?=\s*(?:async\s+)?(?:\(([^)]*)\)|(\w+))\s*(?::\s*[^=]+)?=>"
)
_CLASS = re.compile(
    r"^(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(\w+)(?:<[^>]*>)?"
    r"(?:\s+extends\s+([\w.]+)(?:<[^>]*>)?)?(?:\s+implements\s+([\w,\s]+?))?\s*(?:\{|$)"
)
_METHOD = re.compile(r"^(?:(?:public|private|protected|static|async|get|set|override|readonly)\s+)*\*?\s*(#?\w+)\s*(?:<[^>]*>)?\s*\(([^)]*)\)?[^;]*\{?\s*$")
_COMPONENT = re.compile(r"^(?:export\s+)?(?:default\s+)?(?:const|function)\s+([A-Z]\w*)")
_COMPONENT_VALUE = re.compile(
    r"=\s*(?:async\s*)?\(|=\s*(?:async\s+)?\w+\s*=>|=\s*(?:React\.)?(?:memo|forwardRef)\(|:\s*(?:React\.)?FC\b|=\s*function\b"
)
_CLASS_COMPONENT = re.compile(r"class\s+([A-Z]\w*)\s+extends\s+(?:React\.)?(?:Pure)?Component\b")
_HOOK = re.compile(r"^(?:export\s+)?(?:const|function)\s+(use[A-Z0-9]\w*)")
_INTERFACE = re.compile(r"^(?:export\s+)?(?:declare\s+)?interface\s+(\w+)")
_TYPE_ALIAS = re.compile(r"^(?:export\s+)?(?:declare\s+)?type\s+(\w+)\s*(?:<[^>]*>)?\s*=")
_FIELD = re.compile(r"^\s*(?:readonly\s+)?['\"]?(\w+)['\"]?(\??)\s*:\s*(.+?)\s*$")
_ROUTE = re.compile(r"\b(\w+)\.(get|post|put|delete|patch|all)\s*\(\s*(['\"`])([^'\"`]+)\3\s*,")
_ROUTE_RECEIVERS = {"app", "router", "server", "api", "route", "routes", "r"}

_IMPORT_FROM = re.compile(r"^import\s+(?:type\s+)?(.+?)\s+from\s+['\"`]([^'\"`]+)['\"`]")
_IMPORT_BARE = re.compile(r"^import\s+['\"`]([^'\"`]+)['\"`]")
_REQUIRE = re.compile(r"^(?:const|let|var)\s+(.+?)\s*=\s*require\s*\(\s*['\"`]([^'\"`]+)['\"`]\s*\)")
_DYNAMIC_IMPORT = re.compile(r"\bimport\(\s*['\"`]([^'\"`]+)['\"`]\s*\)")

_EXPORT_FUNCTION = re.compile(r"^export\s+(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)")
_EXPORT_CLASS = re.compile(r"^export\s+(?:default\s+)?(?:abstract\s+)?class\s+(\w+)")
_EXPORT_VARIABLE = re.compile(r"^export\s+(?:const|let|var)\s+(\w+)")
_EXPORT_DEFAULT = re.compile(r"^export\s+default\s+(?!function\b|class\b|async\b|abstract\b)(\w+)")
_EXPORT_TYPE = re.compile(r"^export\s+(?:declare\s+)?(?:interface|type|enum)\s+(\w+)")

_NOT_METHODS = {"constructor", "if", "for", "while", "switch", "catch", "return", "function", "super"}


class JavaScriptAnalyzer(Analyzer):
    """Line-oriented extraction for JS/TS sources, React components and Express routes."""

    name = "javascript"
    languages = ("js", "jsx", "ts", "tsx", "mjs", "cjs")
    comment_prefixes = ("//", "/*", "*")

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        lines = content.splitlines()
        language = path.rsplit(".", 1)[-1].lower() if "." in file_name(path) else "js"

        for pattern, tag in _DETECTORS:
            if pattern.search(content):
                partial.add_detector(tag)
        jsx_capable = "react" in partial.detectors or language in {"jsx", "tsx"}

        self._extract_imports(lines, partial)
        self._extract_exports(lines, partial)

        for index, raw in enumerate(lines):
            line = raw.strip()
            if not line or line.startswith(("//", "*", "/*")):
                continue
            self._match_function(lines, index, line, language, partial)
            self._match_arrow(lines, index, line, language, partial)
            self._match_class(lines, index, line, language, partial)
            if jsx_capable:
                self._match_component(lines, index, line, language, partial)
            self._match_hook(index, line, partial)
            self._match_types(lines, index, line, partial)
            self._match_route(lines, index, raw, partial)

        self._extract_next_routes(lines, path, partial)
        partial.references = external_references(record.module for record in partial.imports)
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        components = partial.count(SymbolKind.COMPONENT)
        functions = partial.count(SymbolKind.FUNCTION)
        classes = partial.count(SymbolKind.CLASS)
        routes = len(partial.routes)
        detectors = partial.detectors

        if "react" in detectors and components:
            return f"React component file with {components} components"
        if "express" in detectors and routes:
            return f"Express API with {routes} routes"
        if "nextjs" in detectors and routes:
            return f"Next.js API route with {routes} handlers"
        if routes:
            return f"HTTP API with {routes} routes"
        if "nextjs" in detectors:
            return "Next.js page/component"
        if "react" in detectors and partial.count(SymbolKind.HOOK):
            return f"React hooks module with {partial.count(SymbolKind.HOOK)} hooks"
        if functions or classes:
            return f"{functions} functions, {classes} classes"
        return first_meaningful_line(content, self.comment_prefixes) or file_name(path)

    # ------------------------------------------------------------------
    # Declarations

    def _match_function(
        self, lines: Sequence[str], index: int, line: str, language: str, partial: PartialFileRecord
    ) -> None:
        match = _FUNCTION.match(line)
        if not match:
            return
        name = match.group(1)
        params = split_params(match.group(2) or "")
        end = block_end(lines, index)
        partial.symbols.append(
            SymbolRecord(
                kind=SymbolKind.FUNCTION,
                name=name,
                detail=f"({', '.join(params)})",
                description=describe(
                    SymbolContext(name, SymbolKind.FUNCTION, params, lines, index, language)
                ),
                line=index + 1,
                parameters=params,
                complexity=complexity(lines, index, end),
            )
        )

    def _match_arrow(
        self, lines: Sequence[str], index: int, line: str, language: str, partial: PartialFileRecord
    ) -> None:
        match = _ARROW.match(line)
        if not match:
            return
        name = match.group(1)
        params = split_params(match.group(2) or match.group(3) or "")
        end = block_end(lines, index)
        partial.symbols.append(
            SymbolRecord(
                kind=SymbolKind.FUNCTION,
                name=name,
                detail="arrow function",
                description=describe(
                    SymbolContext(name, SymbolKind.FUNCTION, params, lines, index, language)
                ),
                line=index + 1,
                parameters=params,
                complexity=complexity(lines, index, end),
            )
        )

    def _match_class(
        self, lines: Sequence[str], index: int, line: str, language: str, partial: PartialFileRecord
    ) -> None:
        match = _CLASS.match(line)
        if not match:
            return
        name, parent, interfaces = match.group(1), match.group(2), match.group(3)
        details: List[str] = []
        if parent:
            details.append(f"extends {parent}")
        if interfaces:
            details.append(f"implements {interfaces.strip()}")
        partial.symbols.append(
            SymbolRecord(
                kind=SymbolKind.CLASS,
                name=name,
                detail=", ".join(details) or None,
                description=describe(SymbolContext(name, SymbolKind.CLASS, (), lines, index, language)),
                line=index + 1,
            )
        )

        end = block_end(lines, index)
        depths = block_depths(lines, index, end)
        for offset, depth in enumerate(depths):
            member_index = index + offset
            if member_index == index or depth != 1:
                continue
            member = lines[member_index].strip()
            method = _METHOD.match(member)
            if not method or method.group(1) in _NOT_METHODS:
                continue
            method_name = method.group(1)
            params = split_params(method.group(2) or "")
            method_end = block_end(lines, member_index)
            partial.symbols.append(
                SymbolRecord(
                    kind=SymbolKind.METHOD,
                    name=method_name,
                    detail=f"{name}.{method_name}",
                    description=describe(
                        SymbolContext(method_name, SymbolKind.METHOD, params, lines, member_index, language)
                    ),
                    line=member_index + 1,
                    parameters=params,
                    complexity=complexity(lines, member_index, method_end),
                )
            )

    def _match_component(
        self, lines: Sequence[str], index: int, line: str, language: str, partial: PartialFileRecord
    ) -> None:
        match = _COMPONENT.match(line)
        if match and " function " not in f" {line} " and not _COMPONENT_VALUE.search(line):
            match = None
        match = match or _CLASS_COMPONENT.search(line)
        if not match:
            return
        name = match.group(1)
        if name == name.upper():
            return
        props = re.search(r"\(\s*\{\s*([^}]+?)\s*\}", line)
        partial.symbols.append(
            SymbolRecord(
                kind=SymbolKind.COMPONENT,
                name=name,
                detail=f"props: {{{props.group(1)}}}" if props else "React component",
                description=describe(SymbolContext(name, SymbolKind.COMPONENT, (), lines, index, language)),
                line=index + 1,
            )
        )

    def _match_hook(self, index: int, line: str, partial: PartialFileRecord) -> None:
        match = _HOOK.match(line)
        if not match:
            return
        name = match.group(1)
        partial.symbols.append(
            SymbolRecord(
                kind=SymbolKind.HOOK,
                name=name,
                detail="React hook",
                description=describe(SymbolContext(name, SymbolKind.HOOK)),
                line=index + 1,
            )
        )

    def _match_types(self, lines: Sequence[str], index: int, line: str, partial: PartialFileRecord) -> None:
        interface = _INTERFACE.match(line)
        if interface:
            name = interface.group(1)
            body, _ = block_body(lines, index)
            fields = tuple(_parse_fields(body))
            partial.schemas.append(
                SchemaRecord(name=name, kind="interface", fields=fields, line=index + 1)
            )
            partial.symbols.append(
                SymbolRecord(
                    kind=SymbolKind.TYPE,
                    name=name,
                    detail="interface",
                    description="TypeScript interface",
                    line=index + 1,
                )
            )
            return

        alias = _TYPE_ALIAS.match(line)
        if alias:
            name = alias.group(1)
            partial.symbols.append(
                SymbolRecord(
                    kind=SymbolKind.TYPE,
                    name=name,
                    detail="type alias",
                    description="TypeScript type alias",
                    line=index + 1,
                )
            )
            if line.rstrip().endswith("{"):
                body, _ = block_body(lines, index)
                partial.schemas.append(
                    SchemaRecord(name=name, kind="type", fields=tuple(_parse_fields(body)), line=index + 1)
                )

    # ------------------------------------------------------------------
    # Routes

    def _match_route(self, lines: Sequence[str], index: int, raw: str, partial: PartialFileRecord) -> None:
        for match in _ROUTE.finditer(raw):
            receiver = match.group(1)
            lowered = receiver.lower()
            if lowered not in _ROUTE_RECEIVERS and not lowered.endswith(("router", "app")):
                continue
            method = match.group(2).upper()
            route_path = match.group(4)
            handler, middleware = split_route_arguments(call_arguments(raw, match.end()))
            add_route(
                partial,
                RouteRecord(
                    method=method,
                    path=route_path,
                    handler=handler,
                    middleware=middleware,
                    description=leading_comment(lines, index) or None,
                    line=index + 1,
                    framework="express",
                ),
            )

    def _extract_next_routes(self, lines: Sequence[str], path: str, partial: PartialFileRecord) -> None:
        route_path = next_route_path(path)
        if route_path is None:
            return
        for index, raw in enumerate(lines):
            match = re.match(
                r"^export\s+(?:async\s+)?(?:function\s+(\w+)|const\s+(\w+)\s*=)", raw.strip()
            )
            if not match:
                continue
            verb = match.group(1) or match.group(2)
            if verb not in HTTP_METHODS:
                continue
            add_route(
                partial,
                RouteRecord(
                    method=verb,
                    path=route_path,
                    handler=verb,
                    description=leading_comment(lines, index) or "Next.js API route",
                    line=index + 1,
                    framework="nextjs",
                ),
            )

    # ------------------------------------------------------------------
    # Imports and exports

    def _extract_imports(self, lines: Sequence[str], partial: PartialFileRecord) -> None:
        for index, raw in enumerate(lines):
            line = raw.strip()
            match = _IMPORT_FROM.match(line)
            if match:
                clause, module = match.group(1), match.group(2)
                named = re.search(r"\{([^}]*)\}", clause)
                if named:
                    items = tuple(item.strip() for item in named.group(1).split(",") if item.strip())
                    default = clause.split("{", 1)[0].strip().rstrip(",").strip()
                    if default:
                        items = (default,) + items
                    partial.imports.append(ImportRecord(module, items, False, index + 1))
                else:
                    partial.imports.append(ImportRecord(module, (clause.strip(),), True, index + 1))
                continue
            match = _IMPORT_BARE.match(line)
            if match:
                partial.imports.append(ImportRecord(match.group(1), (), False, index + 1))
                continue
            match = _REQUIRE.match(line)
            if match:
                binding = match.group(1).strip()
                is_default = not binding.startswith("{")
                items = (binding,) if is_default else tuple(
                    item.strip() for item in binding.strip("{} ").split(",") if item.strip()
                )
                partial.imports.append(ImportRecord(match.group(2), items, is_default, index + 1))
                continue
            for dynamic in _DYNAMIC_IMPORT.finditer(line):
                partial.imports.append(ImportRecord(dynamic.group(1), (), False, index + 1))

    def _extract_exports(self, lines: Sequence[str], partial: PartialFileRecord) -> None:
        for index, raw in enumerate(lines):
            line = raw.strip()
            if not line.startswith("export"):
                continue
            for pattern, kind in (
                (_EXPORT_FUNCTION, "function"),
                (_EXPORT_CLASS, "class"),
                (_EXPORT_VARIABLE, "variable"),
                (_EXPORT_TYPE, "type"),
                (_EXPORT_DEFAULT, "default"),
            ):
                match = pattern.match(line)
                if match:
                    partial.exports.append(ExportRecord(match.group(1), kind, index + 1))
                    break


def _parse_fields(body: str) -> List[SchemaField]:
    fields: List[SchemaField] = []
    for segment in split_params(body, separators=";,\n"):
        match = _FIELD.match(segment)
        if not match:
            continue
        fields.append(
            SchemaField(
                name=match.group(1),
                type=match.group(3).strip().rstrip(";,").strip(),
                nullable=match.group(2) == "?",
            )
        )
    return fields


__all__ = ["JavaScriptAnalyzer"]
