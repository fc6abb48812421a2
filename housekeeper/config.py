import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping

from .default_rules import DEFAULT_DUPLICATES_DIR
from .errors import ConfigError
from .models import Category
from .planner import OrganizeMode
from .utils import is_within

MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 24 * 60 * 60
MAX_WORKERS = 64
REPORT_FORMATS = ("json", "csv", "html")

ENV_OVERRIDES = {
    "HOUSEKEEPER_SIMULATE": "simulate",
    "HOUSEKEEPER_TIMEOUT": "timeout_seconds",
    "HOUSEKEEPER_MAX_WORKERS": "max_workers",
    "HOUSEKEEPER_LOG_FILE": "log_file",
}

_TRUTHY = {"1", "true", "yes", "on"}


def _default_destinations() -> Dict[Category, Path]:
    home = Path.home()
    return {
        Category.DOCUMENT: home / "Documents" / "Sorted",
        Category.PHOTO: home / "Pictures" / "Sorted",
        Category.MUSIC: home / "Music" / "Library",
    }


@dataclass
class RunConfig:
    sources: List[Path] = field(default_factory=list)
    destinations: Dict[Category, Path] = field(default_factory=_default_destinations)
    mode: OrganizeMode = OrganizeMode.FLATTEN
    extension_overrides: Dict[str, str] = field(default_factory=dict)
    timeout_seconds: float = 3600
    max_workers: int = 1
    simulate: bool = False
    allow_overwrite: bool = False
    music_pass: bool = True
    cleanup_empty_dirs: bool = True
    duplicates_dir_name: str = DEFAULT_DUPLICATES_DIR
    log_file: Path | None = None
    report_path: Path | None = None
    report_format: str = "json"

    @property
    def music_root(self) -> Path | None:
        return self.destinations.get(Category.MUSIC)

    def validate(self) -> None:
        """Reject settings that would make the run unsafe. Called once, before any move."""
        if not self.sources:
            raise ConfigError("At least one source folder is required")
        if not (MIN_TIMEOUT_SECONDS <= self.timeout_seconds <= MAX_TIMEOUT_SECONDS):
            raise ConfigError(
                f"timeout_seconds must be between {MIN_TIMEOUT_SECONDS} and {MAX_TIMEOUT_SECONDS}"
            )
        if not (1 <= self.max_workers <= MAX_WORKERS):
            raise ConfigError(f"max_workers must be between 1 and {MAX_WORKERS}")
        if self.report_format not in REPORT_FORMATS:
            raise ConfigError(f"report_format must be one of {', '.join(REPORT_FORMATS)}")
        if not self.duplicates_dir_name or "/" in self.duplicates_dir_name \
                or self.duplicates_dir_name in {".", ".."}:
            raise ConfigError(f"Invalid duplicates folder name: {self.duplicates_dir_name!r}")
        for category in (Category.DOCUMENT, Category.PHOTO, Category.MUSIC):
            if category not in self.destinations:
                raise ConfigError(f"No destination folder for {category.value}")
        if Category.UNKNOWN in self.destinations:
            raise ConfigError("Unknown files have no destination folder")
        for category, dest in self.destinations.items():
            if not dest.is_absolute():
                raise ConfigError(f"Destination for {category.value} must be absolute: {dest}")
            if dest.exists() and not dest.is_dir():
                raise ConfigError(f"Destination for {category.value} is not a folder: {dest}")
            if dest in self.sources:
                raise ConfigError(f"Destination {dest} is also a source folder")
        self._check_music_root_overlap()
        for name in self.extension_overrides.values():
            try:
                Category.from_name(name)
            except ValueError as e:
                raise ConfigError(str(e)) from None

    def _check_music_root_overlap(self) -> None:
        # the music pass removes every folder without music below its root
        music = self.music_root
        for category, dest in self.destinations.items():
            if category is Category.MUSIC:
                continue
            if is_within(dest, music) or is_within(music, dest):
                raise ConfigError(
                    f"Destination for {category.value} ({dest}) overlaps the music folder {music}"
                )
        for src in self.sources:
            if is_within(src, music):
                raise ConfigError(f"Source {src} lies inside the music folder {music}")


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _resolve(p: Any) -> Path:
    return Path(str(p)).expanduser().resolve()


def config_from_mapping(data: Mapping[str, Any], base: RunConfig | None = None) -> RunConfig:
    """Build a RunConfig from plain JSON-ish data, layered over `base`."""
    cfg = replace(base) if base else RunConfig()
    try:
        if "sources" in data:
            cfg.sources = [_resolve(p) for p in data["sources"]]
        if "destinations" in data:
            dests = dict(cfg.destinations)
            for name, path in data["destinations"].items():
                dests[Category.from_name(name)] = _resolve(path)
            cfg.destinations = dests
        if "mode" in data:
            cfg.mode = OrganizeMode(str(data["mode"]).lower())
        if "extension_overrides" in data:
            cfg.extension_overrides = {str(k): str(v) for k, v in data["extension_overrides"].items()}
        if "timeout_seconds" in data:
            cfg.timeout_seconds = float(data["timeout_seconds"])
        if "max_workers" in data:
            cfg.max_workers = int(data["max_workers"])
        for key in ("simulate", "allow_overwrite", "music_pass", "cleanup_empty_dirs"):
            if key in data:
                setattr(cfg, key, _as_bool(data[key]))
        if "duplicates_dir_name" in data:
            cfg.duplicates_dir_name = str(data["duplicates_dir_name"])
        if data.get("log_file"):
            cfg.log_file = _resolve(data["log_file"])
        if data.get("report_path"):
            cfg.report_path = _resolve(data["report_path"])
        if "report_format" in data:
            cfg.report_format = str(data["report_format"]).lower()
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    return cfg


def apply_env_overrides(cfg: RunConfig, environ: Mapping[str, str] | None = None) -> RunConfig:
    environ = os.environ if environ is None else environ
    updates = {}
    for env_key, cfg_key in ENV_OVERRIDES.items():
        value = environ.get(env_key)
        if value:
            updates[cfg_key] = value
    return config_from_mapping(updates, cfg) if updates else cfg


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> RunConfig:
    cfg = RunConfig()
    if path:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        cfg = config_from_mapping(data, cfg)
    return apply_env_overrides(cfg, environ)
