"""JSON analyzer for manifests and configuration files."""

from __future__ import annotations

import json
from typing import Any

from ..errors import MalformedInputError
from ..models import PartialFileRecord, SymbolKind, SymbolRecord
from .base import Analyzer
from .utils import file_name

_MAX_KEYS = 20

_JSON_TYPES = (
    (bool, "boolean"),
    (int, "number"),
    (float, "number"),
    (str, "string"),
    (list, "array"),
    (dict, "object"),
)


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    for python_type, label in _JSON_TYPES:
        if isinstance(value, python_type):
            return label
    return "unknown"


class JSONAnalyzer(Analyzer):
    """Recognise package manifests and config files; list top-level keys."""

    name = "json"
    languages = ("json",)
    comment_prefixes = ()

    def extract(self, content: str, path: str) -> PartialFileRecord:
        try:
            data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise MalformedInputError(path, "JSON", exc.msg) from exc

        partial = PartialFileRecord()
        name = file_name(path).lower()
        if not isinstance(data, dict):
            partial.summary = f"JSON {_json_type(data)}"
            if isinstance(data, list):
                partial.summary += f" with {len(data)} items"
            return partial

        if name == "package.json":
            partial.add_detector("npm-package")
            partial.summary = f"{data.get('name') or 'package'} v{data.get('version') or '?'}"
            dependencies = data.get("dependencies")
            if isinstance(dependencies, dict):
                partial.references = [str(key) for key in dependencies]
            scripts = data.get("scripts")
            if isinstance(scripts, dict) and scripts:
                partial.add_detector("npm-scripts")
        elif name.startswith("tsconfig") and name.endswith(".json"):
            partial.add_detector("typescript-config")
            partial.summary = "TypeScript configuration"
        elif name == "composer.json":
            partial.add_detector("composer-package")
            partial.summary = f"{data.get('name') or 'package'} (composer)"
        elif "config" in name or name.startswith("."):
            partial.add_detector("config")
            partial.summary = "Configuration file"

        for key in list(data)[:_MAX_KEYS]:
            partial.symbols.append(
                SymbolRecord(kind=SymbolKind.VARIABLE, name=str(key), detail=_json_type(data[key]))
            )
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        if partial.summary:
            return partial.summary
        return f"JSON object with {len(partial.symbols)} keys" if partial.symbols else file_name(path)


__all__ = ["JSONAnalyzer"]
