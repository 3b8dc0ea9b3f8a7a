"""Shared helper utilities for analyzer implementations."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Tuple

_STRING_LITERAL = re.compile(r"'(?:\\.|[^'\\])*'|\"(?:\\.|[^\"\\])*\"|`(?:\\.|[^`\\])*`")
_LINE_COMMENT = re.compile(r"//.*$")
_COMPLEXITY = re.compile(r"\b(?:if|for|while|switch|catch|elif|except)\b|&&|\|\|")

_OPENERS = {"(": ")", "[": "]", "{": "}", "<": ">"}
_CLOSERS = {value: key for key, value in _OPENERS.items()}

# A declaration whose body has not opened after this many lines has none.
_MAX_HEADER_LINES = 8


def file_name(path: str) -> str:
    return path.rpartition("/")[2]


def first_meaningful_line(
    content: str, comment_prefixes: Sequence[str] = ("#", "//"), limit: int = 80
) -> str:
    """Return the first non-empty line that is not a comment, clipped to `limit`."""
    prefixes = tuple(comment_prefixes)
    for raw in content.splitlines():
        line = raw.strip()
        if not line:
            continue
        if prefixes and line.startswith(prefixes):
            continue
        return line[:limit]
    return ""


def code_only(line: str) -> str:
    """Strip string literals and trailing `//` comments so delimiters can be counted."""
    return _LINE_COMMENT.sub("", _STRING_LITERAL.sub('""', line))


def block_end(lines: Sequence[str], start: int, opener: str = "{", closer: str = "}") -> int:
    """Return the index of the line closing the block opened at or after `start`.

    Depth is tracked per character so nested blocks on one line balance
    correctly. A block that never opens ends at `start`; one that never closes
    runs to the last line.
    """
    depth = 0
    opened = False
    for index in range(start, len(lines)):
        code = code_only(lines[index])
        for char in code:
            if char == opener:
                depth += 1
                opened = True
            elif char == closer and opened:
                depth -= 1
                if depth == 0:
                    return index
        if not opened and (code.rstrip().endswith(";") or index - start >= _MAX_HEADER_LINES):
            return start
    return len(lines) - 1 if opened else start


def block_body(
    lines: Sequence[str], start: int, opener: str = "{", closer: str = "}"
) -> Tuple[str, int]:
    """Return the text between the block delimiters opened at or after `start` and its end line."""
    end = block_end(lines, start, opener, closer)
    text = "\n".join(lines[start : end + 1])
    begin = text.find(opener)
    if begin == -1:
        return "", end
    depth = 0
    for position in range(begin, len(text)):
        char = text[position]
        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[begin + 1 : position], end
    return text[begin + 1 :], end


def block_depths(lines: Sequence[str], start: int, end: int, opener: str = "{", closer: str = "}") -> List[int]:
    """Return the nesting depth in effect at the start of each line in `[start, end]`."""
    depths: List[int] = []
    depth = 0
    for index in range(start, end + 1):
        depths.append(depth)
        for char in code_only(lines[index]):
            if char == opener:
                depth += 1
            elif char == closer:
                depth = max(depth - 1, 0)
    return depths


def indent_block_end(lines: Sequence[str], start: int) -> int:
    """Return the last line index of the indentation block headed by `lines[start]`."""
    header = lines[start]
    base = len(header) - len(header.lstrip())
    end = start
    for index in range(start + 1, len(lines)):
        line = lines[index]
        if not line.strip():
            continue
        indent = len(line) - len(line.lstrip())
        if indent <= base:
            break
        end = index
    return end


def complexity(lines: Sequence[str], start: int, end: int) -> int:
    """Return 1 plus the number of lines in `[start, end]` containing a branch keyword."""
    score = 1
    for index in range(start, end + 1):
        if _COMPLEXITY.search(code_only(lines[index])):
            score += 1
    return score


def split_params(text: str, separators: str = ",") -> Tuple[str, ...]:
    """Split a parameter list on top-level `separators` (commas by default)."""
    params: List[str] = []
    depth = 0
    current: List[str] = []
    for char in text:
        if char in _OPENERS:
            depth += 1
        elif char in _CLOSERS and depth > 0:
            depth -= 1
        if char in separators and depth == 0:
            params.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    params.append("".join(current).strip())
    return tuple(param for param in params if param)


def param_name(param: str) -> str:
    """Return the bare binding name of a parameter, dropping types and defaults."""
    name = param.strip().lstrip("*").lstrip(".")
    for separator in (":", "="):
        name = name.split(separator, 1)[0]
    return name.strip().rstrip("?")


def external_references(modules: Iterable[str]) -> List[str]:
    """Return non-relative module names, deduplicated, in first-seen order."""
    seen: List[str] = []
    for module in modules:
        if not module or module.startswith((".", "/")) or module in seen:
            continue
        seen.append(module)
    return seen


def line_of(text: str, index: int) -> int:
    """Return 1-based line number for a character index."""
    return text.count("\n", 0, index) + 1


def leading_comment(lines: Sequence[str], index: int, span: int = 3) -> str:
    """Return the nearest `//` or `#` comment within `span` lines above `index`."""
    for offset in range(index - 1, max(-1, index - span - 1), -1):
        line = lines[offset].strip()
        if line.startswith("//"):
            return line[2:].strip()
        if line.startswith("#") and not line.startswith("#!"):
            return line[1:].strip()
        if line and not line.startswith("@"):
            break
    return ""


__all__ = [
    "block_body",
    "block_depths",
    "block_end",
    "code_only",
    "complexity",
    "external_references",
    "file_name",
    "first_meaningful_line",
    "indent_block_end",
    "leading_comment",
    "line_of",
    "param_name",
    "split_params",
]
