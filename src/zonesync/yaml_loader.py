"""Load desired-state record manifests."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError
from pydantic import BaseModel, ValidationError, field_validator

from .config import AppConfig
from .gitops import relative_to_root
from .models import ALLOWED_TYPES, DesiredRecord, ManifestError, RecordKey, matches_skip_list

LOG = logging.getLogger("zonesync")


class ManifestRecord(BaseModel):
    """The ``record`` section of a manifest, as needed for reconciliation."""

    name: str
    type: str
    value: str
    ttl: int
    proxied: bool | None = None
    priority: int | None = None
    comment: str | None = None

    @field_validator("type")
    @classmethod
    def _uppercase_type(cls, value: str) -> str:
        """Normalise RR type to uppercase."""
        return value.strip().upper()


@dataclass
class LoadResult:
    """Records loaded from a manifest directory plus per-file failures."""

    records: list[DesiredRecord] = field(default_factory=list)
    errors: list[ManifestError] = field(default_factory=list)


def render_manifest(path: Path, extra_context: dict[str, Any] | None = None) -> str:
    """Render a manifest through Jinja2."""
    env = Environment(
        loader=FileSystemLoader(str(path.parent)),
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )
    template = env.get_template(path.name)
    context = {"env": os.environ}
    if extra_context:
        context.update(extra_context)
    return template.render(**context)


def read_manifest(path: Path, templating: bool = True, label: str | None = None) -> dict[str, Any]:
    """Return the parsed YAML document of a manifest file."""
    label = label or str(path)
    try:
        text = render_manifest(path) if templating else path.read_text(encoding="utf-8")
    except TemplateError as exc:
        raise ManifestError(label, f"Failed to render template: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(label, f"Failed to read file: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(label, f"Failed to parse YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(label, "Manifest must be a mapping.")
    return data


def parse_manifest(path: Path, source_file: str, templating: bool = True) -> DesiredRecord:
    """Extract the desired record from a single manifest file."""
    data = read_manifest(path, templating=templating, label=source_file)
    section = data.get("record")
    if not isinstance(section, dict):
        raise ManifestError(source_file, "`record` section must be a mapping.")
    try:
        spec = ManifestRecord(**section)
    except ValidationError as exc:
        raise ManifestError(source_file, f"Invalid record section: {exc}") from exc
    return DesiredRecord(
        type=spec.type,
        name=spec.name.strip(),
        content=spec.value,
        ttl=spec.ttl,
        proxied=spec.proxied,
        priority=spec.priority,
        comment=spec.comment,
        source_file=source_file,
    )


def discover_manifests(directory: Path, pattern: str) -> list[Path]:
    """Return manifest files below ``directory`` ordered by path."""
    return sorted(path for path in directory.rglob(pattern) if path.is_file())


def load_manifests(directory: Path, config: AppConfig) -> LoadResult:
    """Load every manifest in ``directory`` into desired records."""
    result = LoadResult()
    seen: dict[RecordKey, str] = {}
    for path in discover_manifests(directory, config.manifest_glob):
        source_file = relative_to_root(path, config.manifest_root)
        try:
            record = parse_manifest(path, source_file, templating=config.templating)
        except ManifestError as exc:
            LOG.warning("Skipping manifest %s", exc)
            result.errors.append(exc)
            continue

        if record.type not in ALLOWED_TYPES:
            LOG.warning("Skipping %s: record type %s is not managed", source_file, record.type)
            continue
        if matches_skip_list(record.name, config.skip_names):
            LOG.debug("Skipping %s: %s matches the skip-list", source_file, record.name)
            continue

        key = record.key()
        if key in seen:
            error = ManifestError(source_file, f"{record.type} {record.name} is already declared by {seen[key]}")
            LOG.warning("Skipping manifest %s", error)
            result.errors.append(error)
            continue
        seen[key] = source_file
        result.records.append(record)
    return result
