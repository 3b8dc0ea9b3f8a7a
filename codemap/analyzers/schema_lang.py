"""Schema-definition languages: Prisma and GraphQL SDL."""

from __future__ import annotations

import re
from typing import List, Sequence, Set, Tuple

from ..models import PartialFileRecord, SchemaField, SchemaRecord, SymbolKind, SymbolRecord
from .base import Analyzer
from .utils import block_body, file_name, first_meaningful_line

_PRISMA_BLOCK = re.compile(r"^\s*(model|enum|view|type)\s+(\w+)\s*\{")
_PRISMA_FIELD = re.compile(r"^(\w+)\s+(\w+)(\[\])?(\?)?")
_PRISMA_DATASOURCE = re.compile(r"provider\s*=\s*\"(\w+)\"")
_PRISMA_SCALARS = {
    "String",
    "Boolean",
    "Int",
    "BigInt",
    "Float",
    "Decimal",
    "DateTime",
    "Json",
    "Bytes",
    "Unsupported",
}

_GRAPHQL_BLOCK = re.compile(r"^\s*(?:extend\s+)?(type|input|interface)\s+(\w+)[^{]*\{")
_GRAPHQL_FIELD = re.compile(r"^\s*(\w+)\s*(?:\([^)]*\))?\s*:\s*([\w\[\]!]+)")
_GRAPHQL_SCALARS = {"String", "Int", "Float", "Boolean", "ID"}
_GRAPHQL_ROOTS = {"Query", "Mutation", "Subscription"}


class PrismaAnalyzer(Analyzer):
    """Extract Prisma models with field types and model relations."""

    name = "prisma"
    languages = ("prisma",)
    comment_prefixes = ("//",)

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        partial.add_detector("prisma")
        lines = content.splitlines()
        provider = _PRISMA_DATASOURCE.search(content)
        if provider:
            partial.add_detector(provider.group(1))

        blocks: List[Tuple[int, str, str, str]] = []
        for index, raw in enumerate(lines):
            match = _PRISMA_BLOCK.match(raw)
            if match:
                body, _ = block_body(lines, index)
                blocks.append((index, match.group(1), match.group(2), body))
        model_names = {name for _, keyword, name, _ in blocks if keyword in {"model", "view", "type"}}

        for index, keyword, name, body in blocks:
            if keyword == "enum":
                partial.symbols.append(
                    SymbolRecord(kind=SymbolKind.TYPE, name=name, detail="enum", line=index + 1)
                )
                continue
            fields, relations = _prisma_fields(body.splitlines(), model_names)
            partial.schemas.append(
                SchemaRecord(name=name, kind="model", fields=fields, relations=relations, line=index + 1)
            )
            partial.symbols.append(
                SymbolRecord(
                    kind=SymbolKind.ENTITY,
                    name=name,
                    detail="model",
                    description=f"Prisma model with {len(fields)} fields",
                    line=index + 1,
                )
            )
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        return f"Prisma schema with {len(partial.schemas)} models"


def _prisma_fields(
    lines: Sequence[str], model_names: Set[str]
) -> Tuple[Tuple[SchemaField, ...], Tuple[str, ...]]:
    fields: List[SchemaField] = []
    relations: List[str] = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith(("//", "@@")):
            continue
        match = _PRISMA_FIELD.match(line)
        if not match:
            continue
        field_type = match.group(2) + (match.group(3) or "")
        fields.append(SchemaField(name=match.group(1), type=field_type, nullable=match.group(4) == "?"))
        target = match.group(2)
        if target not in _PRISMA_SCALARS and target in model_names and target not in relations:
            relations.append(target)
    return tuple(fields), tuple(relations)


class GraphQLAnalyzer(Analyzer):
    """Extract GraphQL object, input and interface types."""

    name = "graphql"
    languages = ("graphql", "gql")
    comment_prefixes = ("#",)

    def extract(self, content: str, path: str) -> PartialFileRecord:
        partial = PartialFileRecord()
        partial.add_detector("graphql")
        lines = content.splitlines()

        blocks: List[Tuple[int, str, str, str]] = []
        for index, raw in enumerate(lines):
            match = _GRAPHQL_BLOCK.match(raw)
            if match:
                body, _ = block_body(lines, index)
                blocks.append((index, match.group(1), match.group(2), body))
        type_names = {name for _, _, name, _ in blocks}

        for index, keyword, name, body in blocks:
            fields: List[SchemaField] = []
            relations: List[str] = []
            for line in body.splitlines():
                if line.strip().startswith("#"):
                    continue
                field = _GRAPHQL_FIELD.match(line)
                if not field:
                    continue
                field_type = field.group(2)
                fields.append(
                    SchemaField(name=field.group(1), type=field_type, nullable=not field_type.endswith("!"))
                )
                target = field_type.strip("[]!")
                if target in type_names and target not in _GRAPHQL_SCALARS and target not in relations:
                    relations.append(target)
            if name in _GRAPHQL_ROOTS:
                partial.add_detector(f"graphql-{name.lower()}")
            partial.schemas.append(
                SchemaRecord(
                    name=name,
                    kind="interface" if keyword == "interface" else "type",
                    fields=tuple(fields),
                    relations=tuple(relations),
                    line=index + 1,
                )
            )
            partial.symbols.append(
                SymbolRecord(
                    kind=SymbolKind.TYPE,
                    name=name,
                    detail=f"GraphQL {keyword}",
                    line=index + 1,
                )
            )
        return partial

    def summarize(self, partial: PartialFileRecord, content: str, path: str) -> str:
        if partial.schemas:
            return f"GraphQL schema with {len(partial.schemas)} types"
        return first_meaningful_line(content, self.comment_prefixes) or file_name(path)


__all__ = ["GraphQLAnalyzer", "PrismaAnalyzer"]
