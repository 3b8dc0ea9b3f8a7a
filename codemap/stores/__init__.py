"""Persistent stores backing incremental scans."""

from .index_cache import IndexCache, now_ms, write_atomic

__all__ = ["IndexCache", "now_ms", "write_atomic"]
