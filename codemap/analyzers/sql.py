"""SQL DDL analyzer."""

from __future__ import annotations

import re
from typing import List, Tuple

from ..models import PartialFileRecord, SchemaField, SchemaRecord, SymbolKind, SymbolRecord
from .base import Analyzer
from .routes import call_arguments
from .utils import file_name, first_meaningful_line, line_of, split_params

_CREATE_TABLE = re.compile(
    r"CREATE\s+(?:TEMP(?:ORARY)?\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?[`\"\[]?(?:\w+[`\"\]]?\.[`\"\[]?)?(\w+)[`\"\]]?\s*\(",
    re.IGNORECASE,
)
_COLUMN = re.compile(r"^[`\"\[]?(\w+)[`\"\]]?\s+([A-Za-z][\w ]*?(?:\s*\([^)]*\))?)(?=\s|$|,)", re.IGNORECASE)
_REFERENCES = re.compile(r"REFERENCES\s+[`\"\[]?(?:\w+[`\"\]]?\.[`\"\[]?)?(\w+)", re.IGNORECASE)
_CONSTRAINT = re.compile(r"^(?:PRIMARY|FOREIGN|CONSTRAINT|UNIQUE|KEY|INDEX|CHECK|EXCLUDE)\b", re.IGNORECASE)
_TYPE_STOP_WORDS = re.compile(
    r"\s+(?:NOT|NULL|PRIMARY|REFERENCES|DEFAULT|UNIQUE|CHECK|COLLATE|GENERATED|AUTO_INCREMENT|AUTOINCREMENT|CONSTRAINT)\b.*$",
    re.IGNORECASE,
)


class SQLAnalyzer(Analyzer):
    """Extract `CREATE TABLE` statements with their columns and foreign keys."""

    name = "sql"
    languages = ("sql",)
    comment_prefixes = ("--", "/*", "*")

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        partial.add_detector("sql")
        for match in _CREATE_TABLE.finditer(content):
            name = match.group(1)
            body = call_arguments(content, match.end())
            fields, relations = _parse_columns(body)
            line = line_of(content, match.start())
            partial.schemas.append(
                SchemaRecord(name=name, kind="table", fields=fields, relations=relations, line=line)
            )
            partial.symbols.append(
                SymbolRecord(
                    kind=SymbolKind.ENTITY,
                    name=name,
                    detail="table",
                    description=f"Table with {len(fields)} columns",
                    line=line,
                )
            )
        if re.search(r"\bCREATE\s+(?:OR\s+REPLACE\s+)?VIEW\b", content, re.IGNORECASE):
            partial.add_detector("sql-views")
        if re.search(r"\bALTER\s+TABLE\b", content, re.IGNORECASE):
            partial.add_detector("sql-migration")
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        if partial.schemas:
            return f"{len(partial.schemas)} tables defined"
        return first_meaningful_line(content, self.comment_prefixes) or file_name(path)


def _parse_columns(body: str) -> Tuple[Tuple[SchemaField, ...], Tuple[str, ...]]:
    fields: List[SchemaField] = []
    relations: List[str] = []
    for segment in split_params(body):
        definition = " ".join(segment.split())
        for reference in _REFERENCES.findall(definition):
            if reference not in relations:
                relations.append(reference)
        if _CONSTRAINT.match(definition):
            continue
        column = _COLUMN.match(definition)
        if not column:
            continue
        upper = definition.upper()
        column_type = _TYPE_STOP_WORDS.sub("", column.group(2)).strip()
        fields.append(
            SchemaField(
                name=column.group(1),
                type=column_type,
                nullable="NOT NULL" not in upper and "PRIMARY KEY" not in upper,
            )
        )
    return tuple(fields), tuple(relations)


__all__ = ["SQLAnalyzer"]
