"""Configuration loading for codemap (.codemap.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".codemap.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class EmitConfig:
    """Toggles for optional report sections."""

    routes: bool = True
    schemas: bool = True
    symbols: bool = True


@dataclass
class ReportConfig:
    """Where and how the report is written."""

    output_file: str = "CODEMAP.md"
    templates_dir: Optional[Path] = None
    count_skipped_bytes: bool = False


@dataclass
class ScanConfig:
    """Scan pipeline settings. `debounce_ms` belongs to whichever layer triggers scans."""

    max_workers: Optional[int] = None
    debounce_ms: int = 750
    cache_dir: str = ".codemap"
    git_integration: bool = True


@dataclass
class CodeMapConfig:
    """Represents the settings defined in .codemap.yml."""

    root: Path
    max_file_kb: int = 800
    max_symbols: int = 150
    max_refs: int = 50
    ignore_globs: List[str] = field(default_factory=list)
    respect_gitignore: bool = True
    emit: EmitConfig = field(default_factory=EmitConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)

    @property
    def cache_path(self) -> Path:
        return self.root / self.scan.cache_dir / "index.json"

    @property
    def output_path(self) -> Path:
        return self.root / self.report.output_file

    def with_root(self, root: Path) -> "CodeMapConfig":
        return replace(self, root=root)


def load_config(config_path: Path) -> CodeMapConfig:
    """Load configuration from disk, returning defaults when no file exists."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CodeMapConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = CodeMapConfig(root=root)
    config.max_file_kb = _positive_int(data, "max_file_kb", config.max_file_kb)
    config.max_symbols = _positive_int(data, "max_symbols", config.max_symbols)
    config.max_refs = _positive_int(data, "max_refs", config.max_refs)
    config.ignore_globs = _as_str_list(data.get("ignore_globs"))
    respect = _as_bool(data.get("respect_gitignore"))
    if respect is not None:
        config.respect_gitignore = respect

    emit_data = _as_dict(data.get("emit"))
    if emit_data:
        config.emit = EmitConfig(
            routes=_bool_or(emit_data.get("routes"), True),
            schemas=_bool_or(emit_data.get("schemas", emit_data.get("database")), True),
            symbols=_bool_or(emit_data.get("symbols"), True),
        )

    report_data = _as_dict(data.get("report"))
    if report_data:
        templates_dir = _as_str(report_data.get("templates_dir"))
        config.report = ReportConfig(
            output_file=_as_str(report_data.get("output_file")) or "CODEMAP.md",
            templates_dir=root / templates_dir if templates_dir else None,
            count_skipped_bytes=_bool_or(report_data.get("count_skipped_bytes"), False),
        )

    scan_data = _as_dict(data.get("scan"))
    if scan_data:
        debounce_ms = _as_int(scan_data.get("debounce_ms"))
        if debounce_ms is not None and debounce_ms < 0:
            raise ConfigError("scan.debounce_ms must be a non-negative integer")
        config.scan = ScanConfig(
            max_workers=_as_int(scan_data.get("max_workers")),
            debounce_ms=750 if debounce_ms is None else debounce_ms,
            cache_dir=_as_str(scan_data.get("cache_dir")) or ".codemap",
            git_integration=_bool_or(scan_data.get("git_integration"), True),
        )
        if config.scan.max_workers is not None and config.scan.max_workers < 1:
            raise ConfigError("scan.max_workers must be a positive integer")

    _apply_flat_keys(config, data, root)
    return config


_FLAT_BOOLEANS = (
    ("emit_routes", "emit", "routes"),
    ("emit_schemas", "emit", "schemas"),
    ("emit_symbols", "emit", "symbols"),
    ("count_skipped_bytes", "report", "count_skipped_bytes"),
    ("enable_git_integration", "scan", "git_integration"),
)


def _apply_flat_keys(config: CodeMapConfig, data: Dict[str, Any], root: Path) -> None:
    """Accept the flat top-level spelling of every sectioned setting."""
    for key, section, attribute in _FLAT_BOOLEANS:
        if key not in data:
            continue
        value = _as_bool(data[key])
        if value is None:
            raise ConfigError(f"{key} must be a boolean, got {data[key]!r}")
        setattr(getattr(config, section), attribute, value)

    if "output_file" in data:
        output_file = _as_str(data["output_file"])
        if not output_file:
            raise ConfigError(f"output_file must be a string, got {data['output_file']!r}")
        config.report.output_file = output_file
    if "templates_dir" in data and data["templates_dir"] is not None:
        templates_dir = _as_str(data["templates_dir"])
        if not templates_dir:
            raise ConfigError(f"templates_dir must be a string, got {data['templates_dir']!r}")
        config.report.templates_dir = root / templates_dir
    if "cache_dir" in data:
        cache_dir = _as_str(data["cache_dir"])
        if not cache_dir:
            raise ConfigError(f"cache_dir must be a string, got {data['cache_dir']!r}")
        config.scan.cache_dir = cache_dir
    if "debounce_ms" in data:
        debounce = _as_int(data["debounce_ms"])
        if debounce is None or debounce < 0:
            raise ConfigError(f"debounce_ms must be a non-negative integer, got {data['debounce_ms']!r}")
        config.scan.debounce_ms = debounce
    if "max_workers" in data and data["max_workers"] is not None:
        config.scan.max_workers = _positive_int(data, "max_workers", 1)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _positive_int(data: Dict[str, Any], key: str, default: int) -> int:
    if key not in data or data[key] is None:
        return default
    value = _as_int(data[key])
    if value is None or value < 1:
        raise ConfigError(f"{key} must be a positive integer, got {data[key]!r}")
    return value


def _bool_or(value: Any, default: bool) -> bool:
    parsed = _as_bool(value)
    return default if parsed is None else parsed


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CodeMapConfig",
    "ConfigError",
    "EmitConfig",
    "ReportConfig",
    "ScanConfig",
    "load_config",
]
