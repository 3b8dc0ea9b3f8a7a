"""codemap: incremental source-tree index written as CODEMAP.md."""

from .engine import CodeMapEngine, full_scan, single_file_update

__all__ = ["CodeMapEngine", "full_scan", "single_file_update"]
