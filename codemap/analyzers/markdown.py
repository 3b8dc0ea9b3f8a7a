"""Markdown analyzer: headings become symbols."""

from __future__ import annotations

import re

from ..models import PartialFileRecord, SymbolKind, SymbolRecord
from .base import Analyzer
from .utils import file_name

_HEADING = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_FENCE = re.compile(r"^\s*(```|~~~)")


class MarkdownAnalyzer(Analyzer):
    name = "markdown"
    languages = ("md", "markdown", "mdx")
    comment_prefixes = ("#", "<!--")

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        in_fence = False
        for index, line in enumerate(content.splitlines()):
            if _FENCE.match(line):
                in_fence = not in_fence
                continue
            if in_fence:
                continue
            heading = _HEADING.match(line)
            if heading:
                level = len(heading.group(1))
                partial.symbols.append(
                    SymbolRecord(
                        kind=SymbolKind.FUNCTION,
                        name=heading.group(2),
                        detail=f"level {level} heading",
                        line=index + 1,
                    )
                )

        lowered = content.lower()
        if "api" in re.findall(r"[a-z]+", lowered) or "endpoint" in lowered:
            partial.add_detector("api-docs")
        if "readme" in lowered or file_name(path).lower().startswith("readme"):
            partial.add_detector("readme")
        if file_name(path).lower().startswith("changelog"):
            partial.add_detector("changelog")
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        for raw in content.splitlines():
            line = raw.strip()
            if line and not line.startswith(self.comment_prefixes) and not _FENCE.match(line):
                return line[:100]
        return f"{len(partial.symbols)} sections"


__all__ = ["MarkdownAnalyzer"]
