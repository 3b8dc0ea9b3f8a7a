"""Tests for analyzer discovery and language dispatch."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from codemap.analyzers import (
    Analyzer,
    GenericAnalyzer,
    LanguageDispatcher,
    discover_analyzers,
    is_important_file,
)
from codemap.analyzers.javascript import JavaScriptAnalyzer
from codemap.analyzers.python import PythonAnalyzer
from codemap.models import PartialFileRecord


class DummyAnalyzer(Analyzer):
    """Test analyzer used for plugin discovery validation."""

    name = "dummy"
    languages = ("rb",)

    def extract(self, content, path):  # pragma: no cover - unused
        return PartialFileRecord()


class ShadowAnalyzer(DummyAnalyzer):
    name = "shadow"
    languages = ("rb", "erb")


def test_discover_analyzers_returns_builtin_analyzers() -> None:
    analyzers = discover_analyzers()
    names = [analyzer.name for analyzer in analyzers]
    assert names[:9] == [
        "javascript",
        "python",
        "java",
        "csharp",
        "sql",
        "json",
        "prisma",
        "graphql",
        "markdown",
    ]


def test_discover_analyzers_respects_enabled_filter() -> None:
    analyzers = discover_analyzers(["Python"])
    assert len(analyzers) == 1
    assert isinstance(analyzers[0], PythonAnalyzer)


def test_discover_analyzers_loads_entry_points(monkeypatch) -> None:
    dummy_entry = SimpleNamespace(
        name="dummy",
        load=lambda: DummyAnalyzer,
    )

    class DummyEntryPoints(list):
        def select(self, **kwargs):
            if kwargs.get("group") == "codemap.analyzers":
                return self
            return []

    monkeypatch.setattr(
        "codemap.analyzers.metadata.entry_points",
        lambda: DummyEntryPoints([dummy_entry]),
        raising=False,
    )

    analyzers = discover_analyzers(["dummy"])
    assert len(analyzers) == 1
    assert isinstance(analyzers[0], DummyAnalyzer)


def test_discover_analyzers_raises_for_unknown_name() -> None:
    with pytest.raises(ValueError):
        discover_analyzers(["does-not-exist"])


def test_dispatcher_maps_languages_case_insensitively() -> None:
    dispatcher = LanguageDispatcher()

    assert isinstance(dispatcher.analyzer_for("TS"), JavaScriptAnalyzer)
    assert isinstance(dispatcher.analyzer_for("py"), PythonAnalyzer)
    assert "prisma" in dispatcher.languages


def test_dispatcher_falls_back_for_unmapped_languages() -> None:
    dispatcher = LanguageDispatcher([PythonAnalyzer()])

    assert isinstance(dispatcher.analyzer_for("go"), GenericAnalyzer)
    assert dispatcher.analyzer_for("") is dispatcher.fallback


def test_dispatcher_keeps_first_analyzer_for_shared_language() -> None:
    first, second = DummyAnalyzer(), ShadowAnalyzer()
    dispatcher = LanguageDispatcher([first, second])

    assert dispatcher.analyzer_for("rb") is first
    assert dispatcher.analyzer_for("erb") is second
    assert dispatcher.languages == ["erb", "rb"]


@pytest.mark.parametrize(
    ("path", "content", "expected"),
    [
        ("package.json", "{}", True),
        ("src/lib/math.ts", "x", True),
        ("scripts/tool.py", "x" * 201, True),
        ("scripts/tool.py", "x", False),
        ("docs/notes.txt", "short", False),
        ("docs/notes.txt", "export " + "x" * 1000, True),
    ],
)
def test_is_important_file(path: str, content: str, expected: bool) -> None:
    assert is_important_file(path, content) is expected
