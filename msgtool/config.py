"""
Configuration for the msg tool.

Settings come in two layers: the base document shipped with the
package (``data/config.yaml``) and an optional custom overlay under
``$MSG_HOME/config/custom_config.yaml``.  Both are read once at startup,
validated, and merged into a single immutable :class:`EffectiveConfig`
that is passed explicitly through the pipeline.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from .errors import ConfigError
from .models import CATEGORY_ORDER, Category, category_for_name

# Paths
PACKAGE_DIR = Path(__file__).resolve().parent
PACKAGE_DATA_DIR = PACKAGE_DIR / "data"
BASE_CONFIG_PATH = PACKAGE_DATA_DIR / "config.yaml"
BASE_SOURCES_DIR = PACKAGE_DATA_DIR / "response_files"

DEFAULT_MSG_HOME = Path.home() / ".msg"

# Scoring weights per match mode
EXACT_WEIGHT = 3
STEM_WEIGHT = 2
DECOMPOSED_WEIGHT = 1

# Result policy
FALLBACK_RESULT_LIMIT = 10
FALLBACK_CATEGORIES: Tuple[Category, ...] = (Category.RESPONSE,)

# Loading
MAX_LOAD_WORKERS = 4

# Compound tags split on these; "ai-studio" -> ["ai", "studio"]
TAG_SEPARATORS_RE = re.compile(r"[-_./:\s]+")

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

# Exit codes
EXIT_OK = 0
EXIT_FATAL = 1
EXIT_WARNINGS = 2


@dataclass(frozen=True)
class AppPaths:
    base_config: Path
    custom_config: Path
    base_sources_dir: Path
    custom_sources_dir: Path


def default_paths() -> AppPaths:
    """Resolve file locations from ``MSG_HOME`` and the base overrides."""
    home = Path(os.getenv("MSG_HOME") or DEFAULT_MSG_HOME).expanduser()
    base_config = Path(os.getenv("MSG_BASE_CONFIG") or BASE_CONFIG_PATH).expanduser()
    base_sources = Path(os.getenv("MSG_BASE_SOURCES") or BASE_SOURCES_DIR).expanduser()
    return AppPaths(
        base_config=base_config,
        custom_config=home / "config" / "custom_config.yaml",
        base_sources_dir=base_sources,
        custom_sources_dir=home / "custom_load",
    )


# ---------------------------
# Settings layers
# ---------------------------

class SettingsLayer(BaseModel):
    """One settings document.  Every key is optional; unset keys fall through."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    default_loaded_response_files: Optional[List[Category]] = None
    max_display_results: Optional[int] = Field(default=None, gt=0)
    enable_stemming: Optional[bool] = None
    log_level: Optional[str] = None

    @field_validator("default_loaded_response_files", mode="before")
    @classmethod
    def _parse_categories(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("expected a list of response file names")
        cats: List[Category] = []
        for name in value:
            cat = category_for_name(name)
            if cat is None:
                raise ValueError(f"unknown response file {name!r}")
            if cat not in cats:
                cats.append(cat)
        return cats

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level


KNOWN_KEYS = set(SettingsLayer.model_fields)


@dataclass(frozen=True)
class EffectiveConfig:
    default_categories: Tuple[Category, ...]
    max_display_results: int
    enable_stemming: bool = True
    log_level: str = "WARNING"

    def resolve_limit(self, cli_limit: Optional[int]) -> int:
        """CLI override beats the configured cap."""
        if cli_limit is not None:
            return max(0, cli_limit)
        return self.max_display_results

    def resolve_categories(self, flags: Iterable[Category] = (), all_files: bool = False) -> List[Category]:
        """Explicit flags (canonical order), else every category, else the defaults."""
        if all_files:
            return list(CATEGORY_ORDER)
        chosen = set(flags)
        if chosen:
            return [c for c in CATEGORY_ORDER if c in chosen]
        return list(self.default_categories) or list(FALLBACK_CATEGORIES)


def read_settings_layer(path: Path, required: bool = False) -> SettingsLayer:
    """
    Parse one YAML settings document.

    A missing optional document is an empty layer.  Anything that
    cannot be read or validated raises :class:`ConfigError`.
    """
    if not path.exists():
        if required:
            raise ConfigError(f"settings file not found: {path}")
        logger.debug("No settings at {}; using an empty layer", path)
        return SettingsLayer()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML: {e}") from e

    if raw is None:
        return SettingsLayer()
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    unknown = sorted(str(k) for k in raw if k not in KNOWN_KEYS)
    if unknown:
        logger.warning("Ignoring unknown settings in {}: {}", path.name, unknown)

    try:
        return SettingsLayer.model_validate(raw)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"invalid settings in {path}: {problems}") from e


def merge_layers(base: SettingsLayer, custom: SettingsLayer) -> EffectiveConfig:
    """Overlay values win; unset or empty overlay values fall through to base."""

    def pick(name: str):
        over = getattr(custom, name)
        if over is not None and over != []:
            return over
        return getattr(base, name)

    categories: Sequence[Category] = pick("default_loaded_response_files") or FALLBACK_CATEGORIES
    limit = pick("max_display_results")
    stemming = pick("enable_stemming")
    level = pick("log_level")
    return EffectiveConfig(
        default_categories=tuple(categories),
        max_display_results=limit if limit is not None else FALLBACK_RESULT_LIMIT,
        enable_stemming=True if stemming is None else stemming,
        log_level=level or "WARNING",
    )


def load_config(base_path: Path = BASE_CONFIG_PATH, custom_path: Optional[Path] = None) -> EffectiveConfig:
    base = read_settings_layer(base_path, required=True)
    custom = read_settings_layer(custom_path) if custom_path is not None else SettingsLayer()
    cfg = merge_layers(base, custom)
    logger.info(
        "Effective config: categories={}, max_display_results={}, stemming={}",
        [c.value for c in cfg.default_categories],
        cfg.max_display_results,
        cfg.enable_stemming,
    )
    return cfg
