"""Base classes for analyzer plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple

from ..models import PartialFileRecord
from .utils import file_name, first_meaningful_line

IMPORTANT_NAME_KEYWORDS = (
    "package.json",
    "tsconfig",
    "config",
    "env",
    "index",
    "main",
    "app",
    "server",
    "api",
    "readme",
    "changelog",
    "schema",
    "model",
    "prisma",
)

_IMPORTANT_DIRECTORIES = (
    "routes",
    "api",
    "controllers",
    "services",
    "models",
    "components",
    "pages",
    "hooks",
    "utils",
    "lib",
    "middleware",
    "auth",
    "database",
    "migrations",
    "src",
    "server",
    "client",
)

_CODE_EXTENSIONS = {"js", "jsx", "ts", "tsx", "py", "java", "cs"}

_STRUCTURE_HINTS = ("export", "function", "class", "route", "model", "component", "import")


class Analyzer(ABC):
    """Contract for analyzers that turn one file's content into a partial record."""

    name: str = "analyzer"
    languages: Tuple[str, ...] = ()
    comment_prefixes: Tuple[str, ...] = ("#", "//")

    @abstractmethod
    def extract(self, content: str, path: str) -> PartialFileRecord:
        """Return symbols, routes, schemas, imports and detectors found in `content`."""

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        """Return the one-line summary for a file; override per language."""
        return first_meaningful_line(content, self.comment_prefixes) or file_name(path)


def is_important_file(path: str, content: str) -> bool:
    """Return True when a file deserves the full language analyzer pass."""
    name = file_name(path).lower()
    if any(keyword in name for keyword in IMPORTANT_NAME_KEYWORDS):
        return True

    segments = path.lower().split("/")[:-1]
    for segment in segments:
        if any(directory in segment for directory in _IMPORTANT_DIRECTORIES):
            return True

    _, dot, ext = name.rpartition(".")
    if dot and ext in _CODE_EXTENSIONS and len(content) > 200:
        return True

    if len(content) > 1000 and any(hint in content for hint in _STRUCTURE_HINTS):
        return True
    return False


__all__ = ["IMPORTANT_NAME_KEYWORDS", "Analyzer", "is_important_file"]
