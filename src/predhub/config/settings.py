"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

import structlog

# Search order: explicit argument, $PREDHUB_CONFIG_DIR, ./config, repository config/
_REPO_CONFIG = Path(__file__).resolve().parents[3] / "config"
CONFIG_DIR_ENV = "PREDHUB_CONFIG_DIR"


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay override onto a copy of base; nested tables merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        merged[key] = _deep_merge(current, value) if isinstance(current, dict) and isinstance(value, dict) else value
    return merged


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return Path(config_dir)
    env_dir = os.environ.get(CONFIG_DIR_ENV)
    if env_dir:
        return Path(env_dir)
    cwd_dir = Path.cwd() / "config"
    return cwd_dir if cwd_dir.is_dir() else _REPO_CONFIG


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """default.toml with <profile>.toml overlaid. Missing files contribute nothing."""
    directory = _find_config_dir(config_dir)
    default_path = directory / "default.toml"
    if not default_path.is_file():
        return {}
    config = _read_toml(default_path)
    profile_path = directory / f"{profile}.toml" if profile else None
    if profile_path is not None and profile_path.is_file():
        config = _deep_merge(config, _read_toml(profile_path))
    return config


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    return Settings.from_dict(load_config(profile, config_dir))


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        aggregator: dict[str, Any] | None = None,
        polymarket: dict[str, Any] | None = None,
        polkamarkets: dict[str, Any] | None = None,
        limitless: dict[str, Any] | None = None,
        series: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.aggregator = aggregator or {}
        self.polymarket = polymarket or {}
        self.polkamarkets = polkamarkets or {}
        self.limitless = limitless or {}
        self.series = series or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            aggregator=raw.get("aggregator"),
            polymarket=raw.get("polymarket"),
            polkamarkets=raw.get("polkamarkets"),
            limitless=raw.get("limitless"),
            series=raw.get("series"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def adapter_timeout_sec(self) -> float:
        return float(self.aggregator.get("adapter_timeout_sec", 12.0))

    @property
    def default_limit(self) -> int:
        return int(self.aggregator.get("default_limit", 50))

    @property
    def max_limit(self) -> int:
        return int(self.aggregator.get("max_limit", 500))

    @property
    def polymarket_enabled(self) -> bool:
        return bool(self.polymarket.get("enabled", True))

    @property
    def gamma_api_base(self) -> str:
        return self.polymarket.get("gamma_api_base", "https://gamma-api.polymarket.com")

    @property
    def clob_api_base(self) -> str:
        return self.polymarket.get("clob_api_base", "https://clob.polymarket.com")

    @property
    def polymarket_timeout_sec(self) -> float:
        return float(self.polymarket.get("timeout_sec", 15.0))

    @property
    def polkamarkets_enabled(self) -> bool:
        return bool(self.polkamarkets.get("enabled", True))

    @property
    def polkamarkets_catalog_size(self) -> int:
        return int(self.polkamarkets.get("catalog_size", 200))

    @property
    def limitless_enabled(self) -> bool:
        return bool(self.limitless.get("enabled", True))

    @property
    def limitless_api_base(self) -> str:
        return self.limitless.get("api_base", "https://api.limitless.exchange")

    @property
    def limitless_page_size(self) -> int:
        return int(self.limitless.get("page_size", 25))

    @property
    def limitless_timeout_sec(self) -> float:
        return float(self.limitless.get("timeout_sec", 10.0))

    @property
    def min_real_points(self) -> int:
        return int(self.series.get("min_real_points", 10))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Set up structlog once at process entry: console or JSON lines, filtered by level."""
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
