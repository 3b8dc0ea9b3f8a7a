"""Analyzer implementations, plugin discovery and language dispatch."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Dict, Iterable, List, Sequence, Set

from .base import Analyzer, is_important_file
from .generic import GenericAnalyzer
from .javascript import JavaScriptAnalyzer
from .json_files import JSONAnalyzer
from .managed import CSharpAnalyzer, JavaAnalyzer
from .markdown import MarkdownAnalyzer
from .python import PythonAnalyzer
from .schema_lang import GraphQLAnalyzer, PrismaAnalyzer
from .sql import SQLAnalyzer

_ENTRY_POINT_GROUP = "codemap.analyzers"

_BUILTIN_FACTORIES: dict[str, Callable[[], Analyzer]] = {
    "javascript": JavaScriptAnalyzer,
    "python": PythonAnalyzer,
    "java": JavaAnalyzer,
    "csharp": CSharpAnalyzer,
    "sql": SQLAnalyzer,
    "json": JSONAnalyzer,
    "prisma": PrismaAnalyzer,
    "graphql": GraphQLAnalyzer,
    "markdown": MarkdownAnalyzer,
}


def discover_analyzers(enabled: Sequence[str] | None = None) -> List[Analyzer]:
    """Instantiate built-in analyzers, then any registered under ``codemap.analyzers``.

    With ``enabled`` only the named analyzers (case-insensitive) are built and
    an unknown name raises ``ValueError``. A plugin registered under a
    built-in's name is ignored.
    """
    wanted: Set[str] | None = {name.lower() for name in enabled} if enabled is not None else None
    factories: Dict[str, Callable[[], Analyzer]] = dict(_BUILTIN_FACTORIES)
    for entry in _iter_entry_points():
        factories.setdefault(entry.name.lower(), _plugin_factory(entry))

    if wanted is not None:
        unknown = wanted - set(factories)
        if unknown:
            raise ValueError(f"Unknown analyzers requested: {', '.join(sorted(unknown))}")

    analyzers: List[Analyzer] = []
    for name, factory in factories.items():
        if wanted is not None and name not in wanted:
            continue
        instance = factory()
        if not isinstance(instance, Analyzer):
            raise TypeError(f"Analyzer factory for '{name}' did not return an Analyzer instance")
        analyzers.append(instance)
    return analyzers


def _plugin_factory(entry: metadata.EntryPoint) -> Callable[[], Analyzer]:
    def _factory() -> Analyzer:
        try:
            loaded = entry.load()
        except Exception as exc:  # pragma: no cover - depends on installed plugins
            raise RuntimeError(f"Failed to load analyzer entry point '{entry.name}': {exc}") from exc
        return _coerce_analyzer(loaded)

    return _factory


def _coerce_analyzer(obj: object) -> Analyzer:
    if isinstance(obj, Analyzer):
        return obj
    if isinstance(obj, type) and issubclass(obj, Analyzer):
        return obj()
    if callable(obj):
        instance = obj()
        if isinstance(instance, Analyzer):
            return instance
    raise TypeError("Analyzer entry point must be an Analyzer subclass or factory")


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points().select(group=_ENTRY_POINT_GROUP)


class LanguageDispatcher:
    """Pure mapping from a language tag to the analyzer that handles it.

    Earlier analyzers win when two declare the same language, so built-ins
    keep their tags unless a plugin is explicitly enabled ahead of them.
    """

    def __init__(
        self,
        analyzers: Sequence[Analyzer] | None = None,
        fallback: Analyzer | None = None,
    ) -> None:
        self.fallback = fallback or GenericAnalyzer()
        self._by_language: Dict[str, Analyzer] = {}
        for analyzer in analyzers if analyzers is not None else discover_analyzers():
            for language in analyzer.languages:
                self._by_language.setdefault(language.lower(), analyzer)

    @property
    def languages(self) -> List[str]:
        return sorted(self._by_language)

    def analyzer_for(self, language: str) -> Analyzer:
        return self._by_language.get(language.lower(), self.fallback)


__all__ = [
    "Analyzer",
    "GenericAnalyzer",
    "LanguageDispatcher",
    "discover_analyzers",
    "is_important_file",
]
