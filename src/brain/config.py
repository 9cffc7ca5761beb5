"""Brain configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (BRAIN_EMBEDDING_MODEL, BRAIN_TIMEZONE, BRAIN_DATA_DIR)
  3. Per-project brain.yaml  (config directory, defaults to CWD)
  4. Global ~/.brain/config.yaml  (no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import urllib.parse
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".brain"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "brain.yaml"

# Matches api_key, api-key, api_secret, *_token, token, *_secret, secret,
# password, passwd, credential(s). Does not match max_tokens or chunk_size.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    ["brain", "embedding", "storage", "sources", "scheduler"]
)

_ALLOWED_REMOTE_SCHEMES = {"https", "http"}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class ChunkingCfg:
    """Chunking parameters (brain.yaml: brain:). Units are whitespace tokens."""

    name: str = "brain"
    chunk_size: int = 512
    chunk_overlap: int = 50


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (brain.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1536
    timeout: float = 60.0
    num_retries: int = 3


@dataclass
class StorageCfg:
    """Vector store location (brain.yaml: storage:).

    Attributes:
        data_dir: Root for the database, clones and metadata.
        db_file: SQLite file name, relative to *data_dir*.
        timeout: Seconds to wait on a locked database before failing.
    """

    data_dir: str = str(_GLOBAL_CONFIG_DIR)
    db_file: str = "brain.db"
    timeout: float = 30.0


@dataclass
class DefaultRepo:
    """A repository indexed by ``brain index defaults``."""

    owner: str
    repo: str
    branch: str = "main"


@dataclass
class SourcesCfg:
    """Source discovery configuration (brain.yaml: sources:)."""

    repos_dir: str = "repos"
    remote_base: str = "https://github.com"
    git_timeout: float = 300.0
    exclude: list[str] = field(default_factory=list)
    defaults: list[DefaultRepo] = field(default_factory=list)


@dataclass
class SchedulerCfg:
    """Refresh cadence and quiet-hours window (brain.yaml: scheduler:).

    The window is ``[window_start, window_end)`` in *timezone*; when
    ``window_start > window_end`` it wraps midnight.
    """

    check_interval_hours: int = 24
    window_start: int = 22
    window_end: int = 8
    timezone: str = "Europe/Moscow"
    metadata_file: str = "sources.json"


@dataclass
class BrainConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    brain: ChunkingCfg = field(default_factory=ChunkingCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    storage: StorageCfg = field(default_factory=StorageCfg)
    sources: SourcesCfg = field(default_factory=SourcesCfg)
    scheduler: SchedulerCfg = field(default_factory=SchedulerCfg)

    @property
    def data_dir(self) -> Path:
        return Path(self.storage.data_dir).expanduser()

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.storage.db_file

    @property
    def repos_path(self) -> Path:
        return self.data_dir / self.sources.repos_dir

    @property
    def metadata_path(self) -> Path:
        return self.data_dir / self.scheduler.metadata_file


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def validate_remote_base(url: str) -> None:
    """Raise ConfigError if *url* is not an https://, http:// or git@ remote."""
    if url.startswith("git@"):
        return
    scheme = urllib.parse.urlparse(url).scheme
    if scheme not in _ALLOWED_REMOTE_SCHEMES:
        raise ConfigError(
            f"Unsupported remote scheme '{scheme}' in sources.remote_base: '{url}'\n"
            "  Allowed: https://, http://, git@"
        )


def validate(cfg: BrainConfig) -> BrainConfig:
    """Check value ranges; raise ConfigError on the first violation."""
    if cfg.brain.chunk_size < 1:
        raise ConfigError(f"brain.chunk_size must be >= 1, got {cfg.brain.chunk_size}")
    if cfg.brain.chunk_overlap < 0:
        raise ConfigError(f"brain.chunk_overlap must be >= 0, got {cfg.brain.chunk_overlap}")
    if cfg.brain.chunk_overlap >= cfg.brain.chunk_size:
        raise ConfigError(
            f"brain.chunk_overlap ({cfg.brain.chunk_overlap}) must be smaller than "
            f"brain.chunk_size ({cfg.brain.chunk_size})"
        )
    if cfg.embedding.dimensions < 1:
        raise ConfigError(f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}")
    sch = cfg.scheduler
    if sch.check_interval_hours < 0:
        raise ConfigError(
            f"scheduler.check_interval_hours must be >= 0, got {sch.check_interval_hours}"
        )
    for name in ("window_start", "window_end"):
        hour = getattr(sch, name)
        if not 0 <= hour <= 23:
            raise ConfigError(f"scheduler.{name} must be in 0-23, got {hour}")
    try:
        ZoneInfo(sch.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(
            f"scheduler.timezone is not a known IANA zone: '{sch.timezone}'\n"
            "  Example:  timezone: Europe/Moscow"
        ) from None
    validate_remote_base(cfg.sources.remote_base)
    return cfg


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _read_yaml(path: Path) -> dict[str, Any]:
    """Parse *path* with yaml.safe_load(); the top level must be a mapping."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> BrainConfig:
    """Build a *BrainConfig* from a merged raw YAML dict."""
    cfg = BrainConfig()

    if "brain" in data:
        b = data["brain"]
        cfg.brain = ChunkingCfg(
            name=str(b.get("name", cfg.brain.name)),
            chunk_size=int(b.get("chunk_size", cfg.brain.chunk_size)),
            chunk_overlap=int(b.get("chunk_overlap", cfg.brain.chunk_overlap)),
        )

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
            timeout=float(e.get("timeout", cfg.embedding.timeout)),
            num_retries=int(e.get("num_retries", cfg.embedding.num_retries)),
        )

    if "storage" in data:
        s = data["storage"]
        cfg.storage = StorageCfg(
            data_dir=str(s.get("data_dir", cfg.storage.data_dir)),
            db_file=str(s.get("db_file", cfg.storage.db_file)),
            timeout=float(s.get("timeout", cfg.storage.timeout)),
        )

    if "sources" in data:
        src = data["sources"]
        defaults = [
            DefaultRepo(
                owner=str(d["owner"]),
                repo=str(d["repo"]),
                branch=str(d.get("branch", "main")),
            )
            for d in src.get("defaults") or []
        ]
        cfg.sources = SourcesCfg(
            repos_dir=str(src.get("repos_dir", cfg.sources.repos_dir)),
            remote_base=str(src.get("remote_base", cfg.sources.remote_base)).rstrip("/"),
            git_timeout=float(src.get("git_timeout", cfg.sources.git_timeout)),
            exclude=[str(p) for p in src.get("exclude") or []],
            defaults=defaults,
        )

    if "scheduler" in data:
        sc = data["scheduler"]
        cfg.scheduler = SchedulerCfg(
            check_interval_hours=int(
                sc.get("check_interval_hours", cfg.scheduler.check_interval_hours)
            ),
            window_start=int(sc.get("window_start", cfg.scheduler.window_start)),
            window_end=int(sc.get("window_end", cfg.scheduler.window_end)),
            timezone=str(sc.get("timezone", cfg.scheduler.timezone)),
            metadata_file=str(sc.get("metadata_file", cfg.scheduler.metadata_file)),
        )

    return cfg


def _apply_env_overrides(cfg: BrainConfig) -> BrainConfig:
    """Apply BRAIN_* environment variable overrides."""
    if model := os.environ.get("BRAIN_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if tz := os.environ.get("BRAIN_TIMEZONE"):
        cfg.scheduler.timezone = tz
    if data_dir := os.environ.get("BRAIN_DATA_DIR"):
        cfg.storage.data_dir = data_dir
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> BrainConfig:
    """Load and return a merged, validated *BrainConfig*.

    Args:
        project_dir: Directory to search for *brain.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: On API-key-like fields in the global config, or any
            out-of-range value.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    try:
        cfg = _cfg_from_dict(merged)
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise ConfigError(f"Invalid config value: {exc}") from exc
    cfg = _apply_env_overrides(cfg)
    return validate(cfg)
