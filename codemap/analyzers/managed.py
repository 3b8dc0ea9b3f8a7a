"""Java and C# analyzers sharing one declaration scanner."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from ..describer import SymbolContext, describe
from ..models import ImportRecord, PartialFileRecord, RouteRecord, SymbolKind, SymbolRecord
from .base import Analyzer
from .routes import add_route, join_paths
from .utils import block_end, complexity, external_references, split_params

_MODIFIERS = r"(?:public|private|protected|internal|static|final|abstract|sealed|partial|override|virtual|async|synchronized|readonly|extern|new|default)"
_TYPE_DECL = re.compile(
    rf"^\s*(?:\[[^\]]*\]\s*)*(?:{_MODIFIERS}\s+)*(class|interface|enum|record|struct)\s+(\w+)"
    r"(?:<[^>]*>)?(?:\s*(?:extends|:)\s*([\w.<>]+))?"
)
_METHOD = re.compile(
    rf"^\s*(?:{_MODIFIERS}\s+)+(?:<[^>]*>\s*)?([\w.<>\[\],?]+)\s+(\w+)\s*\(([^)]*)\)?"
)
_NOT_RETURN_TYPES = {"new", "return", "throw", "else", "class", "interface", "enum", "record", "struct"}

_SPRING_SHORT = re.compile(
    r"@(?P<verb>Get|Post|Put|Delete|Patch)Mapping\s*\(\s*(?:(?:value|path)\s*=\s*)?(?P<quote>['\"])(?P<path>[^'\"]*)(?P=quote)",
)
_SPRING_BARE = re.compile(r"@(?P<verb>Get|Post|Put|Delete|Patch)Mapping\b(?!\s*\()")
_SPRING_REQUEST = re.compile(r"@RequestMapping\s*\(\s*(?P<args>[^)]*)\)")
_ASPNET_VERB = re.compile(r"\[Http(?P<verb>Get|Post|Put|Delete|Patch)(?:\(\s*\"(?P<path>[^\"]*)\"\s*\))?\]")
_ASPNET_ROUTE = re.compile(r"\[Route\(\s*\"(?P<path>[^\"]*)\"\s*\)\]")

_LOOKAHEAD = 4


class _ManagedAnalyzer(Analyzer):
    label = ""
    import_pattern: re.Pattern[str]

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        partial.add_detector(self.name)
        lines = content.splitlines()
        language = self.languages[0]

        for index, raw in enumerate(lines):
            line = raw.strip()
            if not line or line.startswith(("//", "*", "/*")):
                continue
            imported = self.import_pattern.match(line)
            if imported:
                partial.imports.append(ImportRecord(imported.group(1), (), False, index + 1))
                continue

            declared = _TYPE_DECL.match(raw)
            if declared:
                keyword, name, parent = declared.groups()
                partial.symbols.append(
                    SymbolRecord(
                        kind=SymbolKind.TYPE if keyword in {"interface", "enum"} else SymbolKind.CLASS,
                        name=name,
                        detail=f"{self.label} {keyword}" + (f" extends {parent}" if parent else ""),
                        description=describe(SymbolContext(name, SymbolKind.CLASS, (), lines, index, language)),
                        line=index + 1,
                    )
                )
                continue

            method = _METHOD.match(raw)
            if method and method.group(1) not in _NOT_RETURN_TYPES:
                return_type, name = method.group(1), method.group(2)
                params = split_params(method.group(3) or "")
                partial.symbols.append(
                    SymbolRecord(
                        kind=SymbolKind.METHOD,
                        name=name,
                        detail=f"returns {return_type}",
                        description=describe(
                            SymbolContext(name, SymbolKind.METHOD, params, lines, index, language)
                        ),
                        line=index + 1,
                        parameters=params,
                        complexity=complexity(lines, index, block_end(lines, index)),
                    )
                )

        self._extract_routes(lines, partial)
        partial.references = external_references(record.module for record in partial.imports)
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        routes = len(partial.routes)
        if routes:
            framework = partial.routes[0].framework or self.label
            return f"{framework} controller with {routes} routes"
        types = partial.count(SymbolKind.CLASS) + partial.count(SymbolKind.TYPE)
        if not partial.symbols:
            return super().summarize(partial, content, path)
        noun = "class" if types <= 1 else f"{types} types"
        return f"{self.label} {noun} with {len(partial.symbols)} symbols"

    def _extract_routes(self, lines: Sequence[str], partial: PartialFileRecord) -> None:
        raise NotImplementedError


class JavaAnalyzer(_ManagedAnalyzer):
    """Java classes, methods and Spring MVC mappings."""

    name = "java"
    label = "Java"
    languages = ("java",)
    comment_prefixes = ("//", "/*", "*")
    import_pattern = re.compile(r"^import\s+(?:static\s+)?([\w.]+?)(?:\.\*)?\s*;")

    def _extract_routes(self, lines: Sequence[str], partial: PartialFileRecord) -> None:
        base = ""
        for index, raw in enumerate(lines):
            line = raw.strip()
            request = _SPRING_REQUEST.search(line)
            if request:
                route_path = _request_path(request.group("args"))
                verb = re.search(r"RequestMethod\.(GET|POST|PUT|DELETE|PATCH)", request.group("args"))
                if _declares_type(lines, index):
                    base = route_path or ""
                elif route_path is not None:
                    self._add(partial, lines, index, verb.group(1) if verb else "GET", join_paths(base, route_path))
                continue
            short = _SPRING_SHORT.search(line)
            if short:
                self._add(partial, lines, index, short.group("verb").upper(), join_paths(base, short.group("path")))
                continue
            bare = _SPRING_BARE.search(line)
            if bare:
                self._add(partial, lines, index, bare.group("verb").upper(), join_paths(base, ""))

    def _add(self, partial: PartialFileRecord, lines: Sequence[str], index: int, method: str, path: str) -> None:
        partial.add_detector("spring")
        add_route(
            partial,
            RouteRecord(
                method=method,
                path=path,
                handler=_next_method(lines, index),
                line=index + 1,
                framework="Spring",
            ),
        )


class CSharpAnalyzer(_ManagedAnalyzer):
    """C# classes, methods and ASP.NET attribute routes."""

    name = "csharp"
    label = "C#"
    languages = ("cs",)
    comment_prefixes = ("//", "/*", "*")
    import_pattern = re.compile(r"^using\s+(?:static\s+)?([\w.]+)\s*;")

    def _extract_routes(self, lines: Sequence[str], partial: PartialFileRecord) -> None:
        base = ""
        for index, raw in enumerate(lines):
            line = raw.strip()
            route = _ASPNET_ROUTE.search(line)
            if route and _declares_type(lines, index):
                base = route.group("path").replace("[controller]", _controller_name(lines, index))
                continue
            verb = _ASPNET_VERB.search(line)
            if verb:
                partial.add_detector("aspnet")
                add_route(
                    partial,
                    RouteRecord(
                        method=verb.group("verb").upper(),
                        path=join_paths(base, verb.group("path") or ""),
                        handler=_next_method(lines, index),
                        line=index + 1,
                        framework="ASP.NET",
                    ),
                )


def _declares_type(lines: Sequence[str], index: int) -> bool:
    """Return True when the annotation at `index` decorates a type declaration."""
    for offset in range(index, min(len(lines), index + _LOOKAHEAD)):
        if _TYPE_DECL.match(lines[offset]):
            return True
        if _METHOD.match(lines[offset]):
            return False
    return False


def _controller_name(lines: Sequence[str], index: int) -> str:
    for offset in range(index, min(len(lines), index + _LOOKAHEAD)):
        declared = _TYPE_DECL.match(lines[offset])
        if declared:
            return re.sub(r"Controller$", "", declared.group(2)).lower()
    return ""


def _next_method(lines: Sequence[str], index: int) -> str:
    for offset in range(index + 1, min(len(lines), index + _LOOKAHEAD + 1)):
        method = _METHOD.match(lines[offset])
        if method:
            return method.group(2)
    return "unknown"


def _request_path(args: str) -> Optional[str]:
    named = re.search(r"(?:value|path)\s*=\s*(?P<quote>['\"])(?P<path>[^'\"]*)(?P=quote)", args)
    if named:
        return named.group("path")
    positional = re.search(r"(?P<quote>['\"])(?P<path>[^'\"]*)(?P=quote)", args)
    if positional:
        return positional.group("path")
    return None


__all__ = ["CSharpAnalyzer", "JavaAnalyzer"]
