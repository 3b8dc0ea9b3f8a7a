"""Rule-based descriptions for extracted symbols.

Rules are evaluated in order and the first one producing a non-empty string
wins. Each rule is a small ``(name, applies, generate)`` triple so it can be
exercised on its own in tests.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from .analyzers.utils import block_end, indent_block_end, param_name
from .models import SymbolKind

_IGNORED_COMMENT = re.compile(r"^(?:TODO|FIXME|HACK|XXX)\b", re.IGNORECASE)
_JSDOC_TAG = re.compile(r"^@\w+")
_REQ = re.compile(r"\breq\b")
_RES = re.compile(r"\bres\b")
_COMMENT_SPAN = 6
_BODY_SPAN = 20

_VERBS: Tuple[Tuple[str, str], ...] = (
    ("get", "Retrieves"),
    ("fetch", "Fetches"),
    ("load", "Loads"),
    ("read", "Reads"),
    ("find", "Finds"),
    ("search", "Searches for"),
    ("query", "Queries"),
    ("select", "Selects"),
    ("create", "Creates"),
    ("add", "Adds"),
    ("insert", "Inserts"),
    ("new", "Creates new"),
    ("make", "Creates"),
    ("build", "Builds"),
    ("generate", "Generates"),
    ("update", "Updates"),
    ("edit", "Edits"),
    ("modify", "Modifies"),
    ("change", "Changes"),
    ("set", "Sets"),
    ("delete", "Deletes"),
    ("remove", "Removes"),
    ("destroy", "Destroys"),
    ("clear", "Clears"),
    ("reset", "Resets"),
    ("validate", "Validates"),
    ("check", "Checks"),
    ("verify", "Verifies"),
    ("ensure", "Ensures"),
    ("confirm", "Confirms"),
    ("test", "Tests"),
    ("format", "Formats"),
    ("parse", "Parses"),
    ("convert", "Converts"),
    ("transform", "Transforms"),
    ("normalize", "Normalizes"),
    ("serialize", "Serializes"),
    ("deserialize", "Deserializes"),
    ("encode", "Encodes"),
    ("decode", "Decodes"),
    ("handle", "Handles"),
    ("on", "Handles"),
    ("render", "Renders"),
    ("display", "Displays"),
    ("show", "Shows"),
    ("hide", "Hides"),
    ("toggle", "Toggles"),
    ("open", "Opens"),
    ("close", "Closes"),
    ("use", "Hook for"),
    ("calculate", "Calculates"),
    ("compute", "Computes"),
    ("process", "Processes"),
    ("execute", "Executes"),
    ("run", "Runs"),
    ("start", "Starts"),
    ("stop", "Stops"),
    ("init", "Initializes"),
    ("setup", "Sets up"),
)

_VERB_DEFAULTS = {"use": "state management", "handle": "event", "on": "event"}

_IGNORED_PARAMS = {"req", "res", "next", "e", "event", "_", "self", "cls"}

_CLASS_ROLES: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"service", re.IGNORECASE), "Service class for"),
    (re.compile(r"util|helper", re.IGNORECASE), "Utility class for"),
    (re.compile(r"manager", re.IGNORECASE), "Manager class for"),
)

_DB_OPERATIONS = (
    ("create", "Database operation to create"),
    ("update", "Database operation to update"),
    ("delete", "Database operation to delete"),
    ("find", "Database query to find"),
)

_FUNCTION_KINDS = {SymbolKind.FUNCTION, SymbolKind.METHOD, SymbolKind.HOOK}
_JS_LANGUAGES = {"js", "jsx", "ts", "tsx", "mjs", "cjs"}


@dataclass(frozen=True)
class SymbolContext:
    """Everything a rule may inspect about one symbol."""

    name: str
    kind: SymbolKind
    parameters: Sequence[str] = ()
    lines: Sequence[str] = ()
    index: int = 0
    language: str = ""

    @property
    def indented(self) -> bool:
        return self.language in {"py", "pyw"}


@dataclass(frozen=True)
class DescriptionRule:
    name: str
    applies: Callable[[SymbolContext], bool]
    generate: Callable[[SymbolContext], Optional[str]]


def format_name(value: str) -> str:
    """Turn ``camelCase`` or ``snake_case`` into capitalised words."""
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", value)
    spaced = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", spaced)
    words = re.sub(r"[_\-\s]+", " ", spaced).strip().lower()
    return words[:1].upper() + words[1:]


def _subject(value: str) -> str:
    return format_name(value).lower()


def subject_from_params(params: Sequence[str]) -> str:
    for param in params:
        name = param_name(param)
        if name and name not in _IGNORED_PARAMS and re.match(r"^[A-Za-z_$][\w$]*$", name):
            return _subject(name)
    return ""


def _clean_comment(line: str) -> str:
    text = line.strip()
    for token in ("/**", "/*", "*/", "///", "//", '"""', "'''"):
        text = text.replace(token, " ")
    text = text.strip().lstrip("*#").strip()
    text = re.sub(r"^-\s*", "", text)
    return text


def _comment_block(ctx: SymbolContext) -> List[str]:
    """Return the contiguous comment lines directly above the symbol, top first."""
    block: List[str] = []
    in_block_comment = False
    for offset in range(ctx.index - 1, max(-1, ctx.index - _COMMENT_SPAN - 1), -1):
        line = ctx.lines[offset].strip()
        if not line:
            if block:
                break
            continue
        if line.startswith("@") or (line.startswith("[") and line.endswith("]")):
            continue
        if line.endswith("*/"):
            in_block_comment = not line.startswith(("/*", "/**"))
            block.append(line)
            continue
        if in_block_comment or line.startswith(("//", "#", "*", "/*")):
            if line.startswith("/*"):
                in_block_comment = False
            block.append(line)
            continue
        break
    block.reverse()
    return block


def _docstring(ctx: SymbolContext) -> str:
    for offset in range(ctx.index + 1, min(len(ctx.lines), ctx.index + 3)):
        line = ctx.lines[offset].strip()
        if not line:
            continue
        if line.startswith(('"""', "'''", 'r"""')):
            text = _clean_comment(line.lstrip("r"))
            if text:
                return text
            if offset + 1 < len(ctx.lines):
                return _clean_comment(ctx.lines[offset + 1])
        return ""
    return ""


def _from_comment(ctx: SymbolContext) -> Optional[str]:
    candidates = [_clean_comment(line) for line in _comment_block(ctx)]
    if ctx.indented:
        candidates.append(_docstring(ctx))
    for text in candidates:
        if not text or _JSDOC_TAG.match(text) or _IGNORED_COMMENT.match(text):
            continue
        return text
    return None


def _match_verb(name: str) -> Optional[Tuple[str, str, str]]:
    """Return `(verb, gloss, remainder)` when `name` starts with a known verb at a word boundary."""
    lowered = name.lower()
    best: Optional[Tuple[str, str, str]] = None
    for verb, gloss in _VERBS:
        if not lowered.startswith(verb):
            continue
        remainder = name[len(verb) :]
        if remainder and not (remainder[0].isupper() or remainder[0] in "_$" or remainder[0].isdigit()):
            continue
        if best is None or len(verb) > len(best[0]):
            best = (verb, gloss, remainder)
    return best


def _from_naming(ctx: SymbolContext) -> Optional[str]:
    matched = _match_verb(ctx.name)
    if matched is None:
        return None
    verb, gloss, remainder = matched
    subject = _subject(remainder) if remainder.strip("_$") else subject_from_params(ctx.parameters)
    return f"{gloss} {subject or _VERB_DEFAULTS.get(verb, 'data')}"


def _is_component_name(name: str) -> bool:
    return bool(re.match(r"^[A-Z]", name)) and name != name.upper()


def _from_component(ctx: SymbolContext) -> Optional[str]:
    return f"React component for {_subject(ctx.name)}"


def _from_class_role(ctx: SymbolContext) -> Optional[str]:
    for pattern, gloss in _CLASS_ROLES:
        if pattern.search(ctx.name):
            rest = _subject(pattern.sub("", ctx.name, count=1))
            return f"{gloss} {rest}" if rest else gloss
    return None


def _body_text(ctx: SymbolContext) -> str:
    if not ctx.lines:
        return ""
    if ctx.indented:
        end = indent_block_end(ctx.lines, ctx.index)
    else:
        end = block_end(ctx.lines, ctx.index)
    end = min(end, ctx.index + _BODY_SPAN - 1)
    return " ".join(line.strip() for line in ctx.lines[ctx.index : end + 1]).lower()


def _has(body: str, *words: str) -> bool:
    return any(re.search(rf"\b{re.escape(word)}", body) for word in words)


def _from_body(ctx: SymbolContext) -> Optional[str]:
    body = _body_text(ctx)
    if not body:
        return None
    subject = _subject(ctx.name)

    if _has(body, "fetch", "axios", "http", "requests."):
        for method in ("post", "put", "delete"):
            if _has(body, method):
                return f"Makes {method.upper()} API call for {subject}"
        return f"Makes API call for {subject}"
    if _has(body, "usestate", "setstate"):
        return f"React component managing {subject} state"
    if _has(body, "useeffect"):
        return f"React component with {subject} effects"
    if _has(body, "prisma", "database", "db.", "session.query", "cursor"):
        for keyword, gloss in _DB_OPERATIONS:
            if _has(body, keyword):
                return f"{gloss} {subject}"
        return f"Database operation for {subject}"
    if _has(body, "validation", "joi", "yup", "zod", "validate"):
        return f"Validates {subject} data"
    if _has(body, "encrypt", "decrypt", "bcrypt", "hashlib", "crypto"):
        return f"Cryptographic operation for {subject}"
    if _has(body, "middleware") or (_REQ.search(body) and _RES.search(body)):
        return f"Express middleware for {subject}"
    if _has(body, "socket", "websocket", "io."):
        return f"WebSocket handler for {subject}"
    if _has(body, "email", "mail", "smtp"):
        return f"Email service for {subject}"
    if _has(body, "upload", "multer", "multipart"):
        return f"File upload handler for {subject}"
    return None


def _fallback(ctx: SymbolContext) -> Optional[str]:
    params = f" ({', '.join(ctx.parameters)})" if ctx.parameters else ""
    return f"{format_name(ctx.name)} {ctx.kind.value}{params}"


RULES: Tuple[DescriptionRule, ...] = (
    DescriptionRule("comment", lambda ctx: bool(ctx.lines), _from_comment),
    DescriptionRule("naming", lambda ctx: ctx.kind in _FUNCTION_KINDS, _from_naming),
    DescriptionRule(
        "component",
        lambda ctx: ctx.kind is SymbolKind.COMPONENT
        or (
            ctx.kind is SymbolKind.FUNCTION
            and ctx.language in _JS_LANGUAGES
            and _is_component_name(ctx.name)
        ),
        _from_component,
    ),
    DescriptionRule("class-role", lambda ctx: ctx.kind is SymbolKind.CLASS, _from_class_role),
    DescriptionRule("body", lambda ctx: bool(ctx.lines), _from_body),
    DescriptionRule("fallback", lambda ctx: True, _fallback),
)


def describe(ctx: SymbolContext, rules: Sequence[DescriptionRule] = RULES) -> str:
    """Return the first non-empty description produced by `rules`."""
    for rule in rules:
        if not rule.applies(ctx):
            continue
        text = rule.generate(ctx)
        if text:
            return text
    return format_name(ctx.name)


__all__ = [
    "DescriptionRule",
    "RULES",
    "SymbolContext",
    "describe",
    "format_name",
    "subject_from_params",
]
