"""Persistent per-path index of content hashes and analysis results."""

from __future__ import annotations

import json
import os
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..errors import CacheCorruption
from ..logging import get_logger
from ..models import FileRecord

_CACHE_VERSION = 1

logger = get_logger("cache")


def now_ms() -> int:
    return int(time.time() * 1000)


class IndexCache:
    """Maps relative paths to `{hash, lang, lastScan, record}` entries.

    Reads may happen from any worker thread; every mutation takes the lock so
    parallel workers never lose each other's updates. Nothing touches disk
    until :meth:`persist`, which replaces the file atomically.
    """

    def __init__(self, path: Path | None, *, signature: str = "") -> None:
        self._path = path
        self._signature = signature
        self._entries: Dict[str, Dict[str, object]] = {}
        self._head: Optional[str] = None
        self._dirty = False
        self._lock = threading.Lock()
        if self._path is not None:
            try:
                self._load(self._path)
            except CacheCorruption as exc:
                logger.warning("%s; starting with an empty cache", exc)
                self._entries = {}
                self._dirty = True

    @property
    def head(self) -> Optional[str]:
        return self._head

    @head.setter
    def head(self, value: Optional[str]) -> None:
        with self._lock:
            if value != self._head:
                self._head = value
                self._dirty = True

    @property
    def dirty(self) -> bool:
        return self._dirty

    def paths(self) -> List[str]:
        with self._lock:
            return sorted(self._entries)

    def entry(self, rel_path: str) -> Optional[Dict[str, object]]:
        with self._lock:
            entry = self._entries.get(rel_path)
            return dict(entry) if entry is not None else None

    def lookup(self, rel_path: str, file_hash: str) -> Optional[FileRecord]:
        """Return the stored record when `file_hash` matches the cached digest."""
        entry = self.entry(rel_path)
        if entry is None or entry.get("hash") != file_hash:
            return None
        return _record_from_entry(rel_path, entry)

    def record_for(self, rel_path: str) -> Optional[FileRecord]:
        """Return the stored record for `rel_path` regardless of the current file state."""
        entry = self.entry(rel_path)
        if entry is None:
            return None
        return _record_from_entry(rel_path, entry)

    def last_scan(self, rel_path: str) -> Optional[int]:
        entry = self.entry(rel_path)
        if entry is None:
            return None
        value = entry.get("lastScan")
        return value if isinstance(value, int) else None

    def store(self, record: FileRecord, *, timestamp: int | None = None) -> None:
        entry = {
            "hash": record.hash,
            "lang": record.language,
            "lastScan": timestamp if timestamp is not None else now_ms(),
            "record": record.to_dict(),
        }
        with self._lock:
            self._entries[record.path] = entry
            self._dirty = True

    def remove(self, rel_path: str) -> None:
        with self._lock:
            if self._entries.pop(rel_path, None) is not None:
                self._dirty = True

    def prune(self, keys_to_keep: Iterable[str]) -> None:
        keep = set(keys_to_keep)
        with self._lock:
            removed = [key for key in self._entries if key not in keep]
            for key in removed:
                self._entries.pop(key, None)
            if removed:
                self._dirty = True

    def persist(self) -> None:
        """Write the cache through a temp file and rename so a crash never truncates it."""
        if self._path is None:
            return
        with self._lock:
            if not self._dirty:
                return
            payload: Dict[str, object] = {
                "version": _CACHE_VERSION,
                "signature": self._signature,
                "files": self._entries,
            }
            if self._head:
                payload["head"] = self._head
            text = json.dumps(payload, indent=2, sort_keys=True)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            write_atomic(self._path, text)
            self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheCorruption(f"Cache file {path} is unreadable: {exc}") from exc
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            raise CacheCorruption(f"Cache file {path} has an unsupported layout")
        files = data.get("files")
        if not isinstance(files, dict):
            raise CacheCorruption(f"Cache file {path} has no files mapping")

        signature_matches = data.get("signature") == self._signature
        valid: Dict[str, Dict[str, object]] = {}
        for rel_path, raw in files.items():
            if not isinstance(rel_path, str) or not isinstance(raw, dict):
                continue
            file_hash = raw.get("hash")
            lang = raw.get("lang")
            last_scan = raw.get("lastScan")
            if not isinstance(file_hash, str) or not isinstance(lang, str):
                continue
            entry: Dict[str, object] = {
                "hash": file_hash,
                "lang": lang,
                "lastScan": last_scan if isinstance(last_scan, int) else 0,
            }
            # Records produced under other limits or engine versions are recomputed.
            if signature_matches and isinstance(raw.get("record"), dict):
                entry["record"] = raw["record"]
            valid[rel_path] = entry

        head = data.get("head")
        self._head = head if isinstance(head, str) else None
        self._entries = valid
        self._dirty = not signature_matches


def _record_from_entry(rel_path: str, entry: Dict[str, object]) -> Optional[FileRecord]:
    payload = entry.get("record")
    if not isinstance(payload, dict):
        return None
    try:
        record = FileRecord.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        logger.debug("Discarding malformed cached record for %s: %s", rel_path, exc)
        return None
    if record.path != rel_path or record.hash != entry.get("hash"):
        return None
    return record


def write_atomic(path: Path, text: str) -> None:
    """Write `text` next to `path` and rename it into place."""
    temp_path = path.with_name(f".{path.name}.tmp")
    with temp_path.open("w", encoding="utf-8", newline="\n") as handle:
        handle.write(text)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(temp_path, path)


__all__ = ["IndexCache", "now_ms", "write_atomic"]
