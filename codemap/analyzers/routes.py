"""Shared route detection helpers."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from ..models import PartialFileRecord, RouteRecord, SymbolKind, SymbolRecord
from .utils import split_params

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")

_PARAM_PATTERNS: List[Tuple[re.Pattern[str], str]] = [
    (re.compile(r"/\[\.\.\.([A-Za-z_][A-Za-z0-9_]*)\]"), r"/{\1*}"),
    (re.compile(r"/\[([A-Za-z_][A-Za-z0-9_]*)\]"), r"/{\1}"),
]

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$.]*$")
_INLINE_FUNCTION = re.compile(r"^(?:async\s*(?:\(|function\b|\w+\s*=>)|function\b)")
_NEXT_ROOTS = ("app", "pages")
_NEXT_ROUTE_FILES = {"route", "index"}


def normalize_path(path: str) -> str:
    """Return a canonical representation for route paths."""
    if not path:
        return "/"
    result = path.strip()
    if not result.startswith("/"):
        result = "/" + result
    for pattern, replacement in _PARAM_PATTERNS:
        result = pattern.sub(replacement, result)
    result = re.sub(r"/{2,}", "/", result)
    if len(result) > 1 and result.endswith("/"):
        result = result[:-1]
    return result or "/"


def join_paths(prefix: str, route: str) -> str:
    """Combine class-level and method-level paths."""
    prefix_norm = normalize_path(prefix) if prefix else ""
    route_norm = normalize_path(route)
    if not prefix_norm:
        return route_norm
    if route_norm == "/":
        return prefix_norm
    return normalize_path(f"{prefix_norm}{route_norm}")


def split_route_arguments(arguments: str) -> Tuple[str, Tuple[str, ...]]:
    """Return `(handler, middleware)` from the arguments following a route path.

    The last argument is the handler; identifiers before it are middleware.
    Inline functions are reported as ``anonymous``.
    """
    parts = split_params(arguments)
    if not parts:
        return "anonymous", ()
    handler = parts[-1]
    middleware = tuple(part for part in parts[:-1] if _IDENTIFIER.match(part))
    if not _IDENTIFIER.match(handler):
        call = re.match(r"^([A-Za-z_$][\w$.]*)\s*\(", handler)
        handler = call.group(1) if call and not _INLINE_FUNCTION.match(handler) else "anonymous"
    return handler, middleware


def call_arguments(text: str, start: int) -> str:
    """Return the argument text from `start` up to the parenthesis closing the call."""
    depth = 1
    for position in range(start, len(text)):
        char = text[position]
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
            if depth == 0:
                return text[start:position]
    return text[start:]


def add_route(partial: PartialFileRecord, route: RouteRecord) -> None:
    """Record `route` and mirror it as a route symbol."""
    partial.routes.append(route)
    partial.symbols.append(
        SymbolRecord(
            kind=SymbolKind.ROUTE,
            name=f"{route.method} {route.path}",
            detail=route.handler,
            description=route.description,
            line=route.line,
        )
    )


def next_route_path(path: str) -> Optional[str]:
    """Derive the URL of a Next.js route handler from its location under `app/` or `pages/`."""
    segments = path.split("/")
    for index, segment in enumerate(segments[:-1]):
        if segment in _NEXT_ROOTS:
            tail = segments[index + 1 :]
            break
    else:
        return None

    stem = tail[-1].rsplit(".", 1)[0]
    parts = [part for part in tail[:-1] if not (part.startswith("(") and part.endswith(")"))]
    if stem not in _NEXT_ROUTE_FILES:
        parts.append(stem)
    return normalize_path("/".join(parts))


__all__ = [
    "HTTP_METHODS",
    "add_route",
    "call_arguments",
    "join_paths",
    "next_route_path",
    "normalize_path",
    "split_route_arguments",
]
