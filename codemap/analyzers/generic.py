"""Fallback analyzer for unmapped languages and unimportant files."""

from __future__ import annotations

from ..models import PartialFileRecord
from .base import Analyzer
from .utils import file_name


class GenericAnalyzer(Analyzer):
    """Summary line plus a detector equal to the file extension."""

    name = "generic"
    languages = ()

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        name = file_name(path)
        _, dot, ext = name.rpartition(".")
        partial.add_detector(ext.lower() if dot and ext else "unknown")
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        for raw in content.splitlines():
            line = raw.strip()
            if line:
                return line[:80]
        return f"{len(content.splitlines())} lines"


__all__ = ["GenericAnalyzer"]
