"""Environment-driven configuration loader."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from dotenv import load_dotenv

from .gitops import repo_root
from .models import ConfigError, ZoneMapping

DEFAULT_API_BASE = "https://api.cloudflare.com/client/v4"
DUPLICATE_POLICIES = {"first", "fail"}


@dataclass(frozen=True)
class AppConfig:
    """Application-wide configuration values."""

    api_base: str = DEFAULT_API_BASE
    page_size: int = 100
    timeout: float = 30.0
    log_level: str = "INFO"
    skip_names: tuple[str, ...] = field(default_factory=tuple)
    duplicate_policy: str = "first"
    max_workers: int = 1
    manifest_glob: str = "*.yaml"
    manifest_root: Path = field(default_factory=Path.cwd)
    templating: bool = True


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Return a boolean parsed from a string."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_int(name: str, value: str, minimum: int = 1) -> int:
    """Parse a bounded integer environment value."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got '{value}'.") from exc
    if parsed < minimum:
        raise ConfigError(f"{name} must be >= {minimum}.")
    return parsed


def _parse_patterns(value: str | None) -> tuple[str, ...]:
    """Split a comma-separated pattern list."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_config() -> AppConfig:
    """Load configuration values from the environment (and .env)."""
    load_dotenv()
    duplicate_policy = os.getenv("DUPLICATE_POLICY", "first").strip().lower()
    if duplicate_policy not in DUPLICATE_POLICIES:
        raise ConfigError("DUPLICATE_POLICY must be either 'first' or 'fail'.")

    timeout_raw = os.getenv("CF_TIMEOUT", "30")
    try:
        timeout = float(timeout_raw)
    except ValueError as exc:
        raise ConfigError(f"CF_TIMEOUT must be a number, got '{timeout_raw}'.") from exc

    root_override = os.getenv("MANIFEST_ROOT")
    manifest_root = Path(root_override).resolve() if root_override else (repo_root() or Path.cwd())

    return AppConfig(
        api_base=os.getenv("CF_API_BASE", DEFAULT_API_BASE).rstrip("/"),
        page_size=_parse_int("CF_PAGE_SIZE", os.getenv("CF_PAGE_SIZE", "100")),
        timeout=timeout,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        skip_names=_parse_patterns(os.getenv("SKIP_NAMES")),
        duplicate_policy=duplicate_policy,
        max_workers=_parse_int("SYNC_MAX_WORKERS", os.getenv("SYNC_MAX_WORKERS", "1")),
        manifest_glob=os.getenv("MANIFEST_GLOB", "*.yaml"),
        manifest_root=manifest_root,
        templating=_parse_bool(os.getenv("MANIFEST_TEMPLATING"), default=True),
    )


def parse_zone_mappings(values: Iterable[str]) -> list[ZoneMapping]:
    """Convert ``<domain_dir>=<zone_id>`` strings into mappings."""
    mappings: list[ZoneMapping] = []
    for value in values:
        if "=" not in value:
            raise ConfigError(f"Invalid mapping '{value}'. Use <domain_dir>=<zone_id>.")
        directory, zone_id = value.split("=", 1)
        directory, zone_id = directory.strip(), zone_id.strip()
        if not directory or not zone_id:
            raise ConfigError(f"Invalid mapping '{value}'. Directory and zone id must be non-empty.")
        mappings.append(ZoneMapping(directory=directory, zone_id=zone_id))
    if not mappings:
        raise ConfigError("At least one <domain_dir>=<zone_id> mapping is required.")
    return mappings
