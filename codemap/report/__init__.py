"""Report rendering for codemap scans."""

from .emitter import (
    ReportEmitter,
    ReportInputs,
    describe_directory,
    format_bytes,
    format_timestamp,
    importance,
    rank_records,
)

__all__ = [
    "ReportEmitter",
    "ReportInputs",
    "describe_directory",
    "format_bytes",
    "format_timestamp",
    "importance",
    "rank_records",
]
