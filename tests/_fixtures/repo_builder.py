"""Helper utilities for constructing temporary repositories in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from codemap.config import CodeMapConfig
from codemap.engine import full_scan
from codemap.models import Report


class RepoBuilder:
    """Utility for writing files into a throwaway workspace and rescanning it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the workspace."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_bytes(self, files: Mapping[str, bytes]) -> None:
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

    def scan(self, config: CodeMapConfig | None = None) -> Report:
        """Run a full scan of the workspace and return the report."""
        return full_scan(self.root, config)

    def config(self, **overrides: object) -> CodeMapConfig:
        config = CodeMapConfig(root=self.root)
        for key, value in overrides.items():
            setattr(config, key, value)
        return config

    def path(self) -> Path:
        """Return the workspace root path."""
        return self.root

    def codemap(self) -> str:
        return (self.root / "CODEMAP.md").read_text(encoding="utf-8")


__all__ = ["RepoBuilder"]
