"""Scan pipeline: discover, hash, analyse, group, render, persist."""

from __future__ import annotations

import hashlib
import inspect
import logging
import os
import threading
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from .analyzers import Analyzer, LanguageDispatcher, is_important_file
from .analyzers import base as analyzer_base
from .analyzers import routes as analyzer_routes
from .analyzers import utils as analyzer_utils
from . import describer
from .config import CodeMapConfig, load_config
from .discovery import Candidate, DiscoveryResult, discover
from .errors import (
    AnalyzerFailure,
    CodeMapError,
    FileSystemError,
    MalformedInputError,
    ScanCancelled,
    WorkspaceNotFoundError,
)
from .grouping import group_files
from .hashing import hash_bytes
from .logging import get_logger
from .models import FileRecord, PartialFileRecord, Report, SkippedFile
from .report import ReportEmitter, ReportInputs, format_timestamp
from .stores import IndexCache, now_ms

ENGINE_VERSION = "1"

# Modules every analyzer leans on; their source is part of the analysis signature.
_SHARED_ANALYSIS_MODULES = (analyzer_base, analyzer_routes, analyzer_utils, describer)


class ProgressSink(Protocol):
    """Receives `(processed, total)` updates as files complete."""

    def report(self, processed: int, total: int) -> None:
        ...


class _SilentProgress:
    def report(self, processed: int, total: int) -> None:
        return None


@dataclass
class _Outcome:
    record: Optional[FileRecord]
    error: Optional[str] = None
    reused: bool = False


class CodeMapEngine:
    """Runs scans for one workspace with explicit logger, progress and cancel handles."""

    def __init__(
        self,
        config: CodeMapConfig,
        *,
        dispatcher: LanguageDispatcher | None = None,
        logger: logging.Logger | None = None,
        progress: ProgressSink | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher or LanguageDispatcher()
        self.logger = logger or get_logger("engine")
        self.progress = progress or _SilentProgress()
        self.cancel = cancel or threading.Event()
        self.signature = analysis_signature(config, self.dispatcher)

    @property
    def root(self) -> Path:
        return self.config.root

    def full_scan(self) -> Report:
        """Scan every candidate, reusing cached records whose hash is unchanged."""
        root = self._require_root()
        self.logger.info("Scanning %s", root)
        cache = IndexCache(self.config.cache_path, signature=self.signature)
        discovery = discover(root, self.config)
        outcomes = self._run(discovery.candidates, cache)
        return self._finish(root, discovery, outcomes, cache)

    def single_file_update(self, path: Path | str) -> Report:
        """Reanalyse one file and re-render the report from cached records for the rest."""
        root = self._require_root()
        rel_path = self._relative(path)
        self.logger.info("Updating %s", rel_path)
        cache = IndexCache(self.config.cache_path, signature=self.signature)
        discovery = discover(root, self.config)

        target = next((item for item in discovery.candidates if item.rel_path == rel_path), None)
        if target is None:
            self.logger.debug("%s is no longer a candidate; dropping it", rel_path)
            cache.remove(rel_path)

        pending: List[Candidate] = []
        reused: Dict[str, FileRecord] = {}
        for candidate in discovery.candidates:
            if candidate is not target:
                record = cache.record_for(candidate.rel_path)
                if record is not None:
                    reused[candidate.rel_path] = record
                    continue
            pending.append(candidate)

        computed = dict(
            zip(
                (candidate.rel_path for candidate in pending),
                self._run(pending, cache, force=rel_path),
            )
        )
        outcomes = [
            _Outcome(reused[candidate.rel_path], reused=True)
            if candidate.rel_path in reused
            else computed[candidate.rel_path]
            for candidate in discovery.candidates
        ]
        return self._finish(root, discovery, outcomes, cache)

    def analyze(
        self, rel_path: str, language: str, data: bytes, file_hash: str
    ) -> Tuple[FileRecord, Optional[str]]:
        """Build a FileRecord from raw bytes. Returns the record and any scan error."""
        content = data.decode("utf-8", errors="replace")
        fallback = self.dispatcher.fallback
        analyzer = self.dispatcher.analyzer_for(language) if is_important_file(rel_path, content) else fallback
        deep = analyzer is not fallback
        error: Optional[str] = None
        try:
            partial = analyzer.extract(content, rel_path)
            summary = analyzer.summarize(partial, content, rel_path)
        except MalformedInputError as exc:
            self.logger.warning("%s", exc)
            partial = fallback.extract(content, rel_path)
            summary = exc.summary
            deep = False
        except Exception as exc:
            failure = AnalyzerFailure(rel_path, analyzer.name, exc)
            self.logger.warning("%s; using generic record", failure)
            self.logger.debug("Analyzer traceback for %s", rel_path, exc_info=True)
            error = str(failure)
            partial = fallback.extract(content, rel_path)
            summary = fallback.summarize(partial, content, rel_path)
            deep = False
        record = build_record(
            partial,
            path=rel_path,
            language=language,
            file_hash=file_hash,
            size=len(data),
            summary=summary,
            deep=deep,
            max_symbols=self.config.max_symbols,
            max_refs=self.config.max_refs,
        )
        return record, error

    # ------------------------------------------------------------------
    # Pipeline stages

    def _run(
        self,
        candidates: Sequence[Candidate],
        cache: IndexCache,
        *,
        force: str | None = None,
    ) -> List[_Outcome]:
        total = len(candidates)
        slots: List[Optional[_Outcome]] = [None] * total
        self.progress.report(0, total)
        if not candidates:
            return []

        workers = self.config.scan.max_workers or os.cpu_count() or 1
        processed = 0
        with ThreadPoolExecutor(max_workers=min(workers, total)) as pool:
            futures: Dict[Future[_Outcome], int] = {
                pool.submit(self._process, candidate, cache, candidate.rel_path == force): index
                for index, candidate in enumerate(candidates)
            }
            pending = set(futures)
            while pending:
                done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                for future in done:
                    try:
                        slots[futures[future]] = future.result()
                    except ScanCancelled:
                        for other in pending:
                            other.cancel()
                        self.logger.info("Scan cancelled after %d of %d files", processed, total)
                        raise
                    processed += 1
                    self.progress.report(processed, total)

        if self.cancel.is_set():
            raise ScanCancelled("Scan cancelled before the report was written")
        return [slot for slot in slots if slot is not None]

    def _process(self, candidate: Candidate, cache: IndexCache, force: bool) -> _Outcome:
        if self.cancel.is_set():
            raise ScanCancelled(f"Scan cancelled before {candidate.rel_path}")
        try:
            data = candidate.path.read_bytes()
        except OSError as exc:
            failure = FileSystemError(candidate.rel_path, exc.strerror or str(exc))
            self.logger.warning("Skipping unreadable file %s", failure)
            return _Outcome(None, error=str(failure))

        file_hash = hash_bytes(data)
        if not force:
            cached = cache.lookup(candidate.rel_path, file_hash)
            if cached is not None:
                return _Outcome(cached, reused=True)

        record, error = self.analyze(candidate.rel_path, candidate.language, data, file_hash)
        cache.store(record, timestamp=now_ms())
        return _Outcome(record, error=error)

    def _finish(
        self,
        root: Path,
        discovery: DiscoveryResult,
        outcomes: Sequence[_Outcome],
        cache: IndexCache,
    ) -> Report:
        records = [outcome.record for outcome in outcomes if outcome.record is not None]
        errors = list(discovery.errors) + [outcome.error for outcome in outcomes if outcome.error]
        reused = sum(1 for outcome in outcomes if outcome.reused)
        self.logger.info(
            "Analysed %d files (%d reused from cache, %d skipped)",
            len(records),
            reused,
            len(discovery.skipped),
        )

        cache.prune(record.path for record in records)
        head = read_git_head(root, self.logger) if self.config.scan.git_integration else None
        cache.head = head

        report = self._render(root, records, discovery.skipped, cache, head, errors)
        if self.cancel.is_set():
            raise ScanCancelled("Scan cancelled before the report was written")
        self._write_report(report)
        cache.persist()
        return report

    def _render(
        self,
        root: Path,
        records: List[FileRecord],
        skipped: List[SkippedFile],
        cache: IndexCache,
        head: Optional[str],
        errors: List[str],
    ) -> Report:
        grouping = group_files(records, skipped)
        stamps = [cache.last_scan(record.path) or 0 for record in records]
        last_scan = max(stamps, default=0) or None
        emitter = ReportEmitter(self.config)
        markdown = emitter.render(
            ReportInputs(
                project=root.name,
                records=records,
                grouping=grouping,
                skipped=list(skipped),
                last_scan=last_scan,
                head=head,
            )
        )
        return Report(
            project=root.name,
            root=str(root),
            scanned_at=format_timestamp(last_scan),
            records=records,
            groups=grouping.groups,
            skipped=list(skipped),
            markdown=markdown,
            output_path=str(self.config.output_path),
            head=head,
            errors=errors,
        )

    def _write_report(self, report: Report) -> None:
        output_path = self.config.output_path
        try:
            existing = output_path.read_text(encoding="utf-8")
        except (FileNotFoundError, UnicodeDecodeError):
            existing = None
        if existing == report.markdown:
            self.logger.debug("%s already up to date", output_path.name)
            return
        ReportEmitter(self.config).write(report.markdown, output_path)
        self.logger.info("Wrote %s", output_path)

    def _require_root(self) -> Path:
        root = self.config.root
        if not root.is_dir():
            raise WorkspaceNotFoundError(f"Workspace not found: {root}")
        return root

    def _relative(self, path: Path | str) -> str:
        target = Path(path).expanduser()
        if not target.is_absolute():
            target = self.root / target
        try:
            return target.resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError as exc:
            raise CodeMapError(f"{path} is outside the workspace {self.root}") from exc


def build_record(
    partial: PartialFileRecord,
    *,
    path: str,
    language: str,
    file_hash: str,
    size: int,
    summary: str,
    deep: bool,
    max_symbols: int,
    max_refs: int,
) -> FileRecord:
    """Freeze analyzer output, keeping the first N symbols and references in source order."""
    # Routes are appended after the main scan, so order by line before cutting.
    symbols = sorted(partial.symbols, key=lambda symbol: (symbol.line is None, symbol.line or 0))
    references: List[str] = []
    for reference in partial.references:
        if reference not in references:
            references.append(reference)
    truncated = len(symbols) > max_symbols or len(references) > max_refs
    return FileRecord(
        path=path,
        language=language,
        hash=file_hash,
        size=size,
        summary=summary,
        symbols=tuple(symbols[:max_symbols]),
        references=tuple(references[:max_refs]),
        detectors=tuple(partial.detectors),
        truncated=truncated,
        routes=tuple(partial.routes),
        schemas=tuple(partial.schemas),
        exports=tuple(partial.exports),
        deep=deep,
    )


def analysis_signature(config: CodeMapConfig, dispatcher: LanguageDispatcher) -> str:
    """Digest of everything that changes a record for unchanged bytes."""
    analyzers: List[Analyzer] = [dispatcher.fallback]
    for language in dispatcher.languages:
        analyzer = dispatcher.analyzer_for(language)
        if analyzer not in analyzers:
            analyzers.append(analyzer)
    digest = hashlib.sha256()
    digest.update(f"{ENGINE_VERSION}:{config.max_symbols}:{config.max_refs}".encode("utf-8"))
    for module in _SHARED_ANALYSIS_MODULES:
        digest.update(b"\0")
        digest.update(f"{module.__name__}:{_source_digest(module)}".encode("utf-8"))
    for analyzer in analyzers:
        digest.update(b"\0")
        digest.update(_analyzer_signature(analyzer).encode("utf-8"))
    return digest.hexdigest()


def _analyzer_signature(analyzer: Analyzer) -> str:
    """Class name plus the source of the whole module, so detector tables count."""
    cls = analyzer.__class__
    module = inspect.getmodule(cls)
    return f"{cls.__module__}.{cls.__qualname__}:{_source_digest(module or cls)}"


def _source_digest(obj: object) -> str:
    try:
        source = inspect.getsource(obj)  # type: ignore[arg-type]
    except (OSError, TypeError):
        return "unavailable"
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def read_git_head(root: Path, logger: logging.Logger | None = None) -> Optional[str]:
    """Return the short commit id checked out at `root`, read straight from `.git`."""
    log = logger or get_logger("engine")
    git_dir = root / ".git"
    try:
        if git_dir.is_file():
            pointer = git_dir.read_text(encoding="utf-8").strip()
            if not pointer.startswith("gitdir:"):
                return None
            git_dir = (root / pointer[len("gitdir:"):].strip()).resolve()
        head = (git_dir / "HEAD").read_text(encoding="utf-8").strip()
        if not head.startswith("ref:"):
            return head[:7] or None
        ref = head[len("ref:"):].strip()
        ref_file = git_dir / ref
        if ref_file.is_file():
            return ref_file.read_text(encoding="utf-8").strip()[:7] or None
        packed = git_dir / "packed-refs"
        if packed.is_file():
            for line in packed.read_text(encoding="utf-8").splitlines():
                sha, _, name = line.partition(" ")
                if name.strip() == ref:
                    return sha[:7]
    except (OSError, UnicodeDecodeError) as exc:
        log.debug("Could not read git head under %s: %s", root, exc)
    return None


def full_scan(
    root: Path | str,
    config: CodeMapConfig | None = None,
    *,
    logger: logging.Logger | None = None,
    progress: ProgressSink | None = None,
    cancel: threading.Event | None = None,
) -> Report:
    """Scan the workspace at `root` and write its report."""
    root_path = Path(root).expanduser().resolve()
    if not root_path.is_dir():
        raise WorkspaceNotFoundError(f"Workspace not found: {root_path}")
    effective = config.with_root(root_path) if config is not None else load_config(root_path)
    engine = CodeMapEngine(effective, logger=logger, progress=progress, cancel=cancel)
    return engine.full_scan()


def single_file_update(
    path: Path | str,
    config: CodeMapConfig | None = None,
    *,
    root: Path | str | None = None,
    logger: logging.Logger | None = None,
    progress: ProgressSink | None = None,
) -> Report:
    """Refresh one file's record and re-render every aggregate section."""
    if config is None:
        root_path = Path(root or Path.cwd()).expanduser().resolve()
        if not root_path.is_dir():
            raise WorkspaceNotFoundError(f"Workspace not found: {root_path}")
        config = load_config(root_path)
    engine = CodeMapEngine(config, logger=logger, progress=progress)
    return engine.single_file_update(path)


__all__ = [
    "ENGINE_VERSION",
    "CodeMapEngine",
    "ProgressSink",
    "analysis_signature",
    "build_record",
    "full_scan",
    "read_git_head",
    "single_file_update",
]
