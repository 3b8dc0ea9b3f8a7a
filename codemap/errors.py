"""Error taxonomy for codemap scans."""

from __future__ import annotations


class CodeMapError(RuntimeError):
    """Base class for codemap failures."""


class WorkspaceNotFoundError(CodeMapError, FileNotFoundError):
    """Raised when the workspace root is missing or not a directory."""


class FileSystemError(CodeMapError):
    """A file or directory could not be read; the entry is skipped."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class MalformedInputError(CodeMapError):
    """File content could not be parsed in its declared format."""

    def __init__(self, path: str, fmt: str, detail: str = "") -> None:
        super().__init__(f"{path}: could not parse {fmt}" + (f" ({detail})" if detail else ""))
        self.path = path
        self.fmt = fmt

    @property
    def summary(self) -> str:
        return f"could not parse {self.fmt}"


class AnalyzerFailure(CodeMapError):
    """An analyzer raised unexpectedly while processing a single file."""

    def __init__(self, path: str, analyzer: str, cause: BaseException) -> None:
        super().__init__(f"{analyzer} failed on {path}: {cause}")
        self.path = path
        self.analyzer = analyzer
        self.cause = cause


class CacheCorruption(CodeMapError):
    """The persisted index cache was unreadable and has been discarded."""


class ScanCancelled(CodeMapError):
    """The scan was cancelled before completion; nothing was written."""


__all__ = [
    "AnalyzerFailure",
    "CacheCorruption",
    "CodeMapError",
    "FileSystemError",
    "MalformedInputError",
    "ScanCancelled",
    "WorkspaceNotFoundError",
]
