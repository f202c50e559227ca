"""Utilities to serialise live records and diffs into declarative formats."""

from __future__ import annotations

import json
import logging
import re
from datetime import date
from pathlib import Path
from typing import Any, Iterable

import yaml

from .models import DesiredRecord, DiffResult, LiveRecord, canonical_name, supports_proxy

LOG = logging.getLogger("zonesync")

UNSAFE_FILENAME = re.compile(r"[^a-z0-9._-]+")


def _record_to_dict(record: LiveRecord | DesiredRecord) -> dict[str, Any]:
    """Convert a record into a manifest-style dictionary."""
    entry: dict[str, Any] = {
        "name": record.name,
        "type": record.type,
        "value": record.content,
        "ttl": record.ttl,
    }
    if supports_proxy(record.type):
        entry["proxied"] = bool(record.proxied)
    if record.priority is not None:
        entry["priority"] = record.priority
    if record.comment:
        entry["comment"] = record.comment
    if isinstance(record, LiveRecord):
        entry["id"] = record.id
    else:
        entry["file"] = record.source_file
    return entry


def live_records_to_dict(zone_id: str, records: Iterable[LiveRecord]) -> dict[str, Any]:
    """Create a dictionary describing the managed records of a zone."""
    ordered = sorted(records, key=lambda rec: (rec.name, rec.type, rec.content))
    return {
        "zone_id": zone_id,
        "records": [_record_to_dict(record) for record in ordered],
    }


def live_records_to_yaml(zone_id: str, records: Iterable[LiveRecord]) -> str:
    """Return YAML representation of a zone's live records."""
    return yaml.safe_dump(live_records_to_dict(zone_id, records), sort_keys=False)


def live_records_to_json(zone_id: str, records: Iterable[LiveRecord]) -> str:
    """Return JSON representation of a zone's live records."""
    return json.dumps(live_records_to_dict(zone_id, records), indent=2)


def diff_to_dict(label: str, zone_id: str, diff: DiffResult) -> dict[str, Any]:
    """Create a serialisable description of a planned diff."""
    return {
        "zone": label,
        "zone_id": zone_id,
        "create": [_record_to_dict(record) for record in diff.create],
        "update": [
            {"existing": _record_to_dict(change.existing), "desired": _record_to_dict(change.desired)}
            for change in diff.update
        ],
        "delete": [_record_to_dict(record) for record in diff.delete],
        "duplicates": [_record_to_dict(record) for record in diff.duplicates],
    }


def write_output(path: Path, content: str) -> None:
    """Write content to the given path, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def manifest_skeleton(record: LiveRecord, today: date | None = None) -> dict[str, Any]:
    """Return a manifest for a live record with the ownership fields left blank."""
    section: dict[str, Any] = {
        "name": record.name,
        "type": record.type,
        "value": record.content,
        "ttl": record.ttl,
    }
    if supports_proxy(record.type):
        section["proxied"] = bool(record.proxied)
    if record.priority is not None:
        section["priority"] = record.priority
    section["comment"] = record.comment or ""
    return {
        "meta": {
            "owner": "",
            "purpose": "",
            "registered_at": (today or date.today()).isoformat(),
            "valid_until": "",
        },
        "record": section,
        "maintainers": [{"name": "", "email": "", "url": ""}],
    }


def skeleton_filename(record: LiveRecord) -> str:
    """Return a filesystem-safe manifest name such as ``www.example.com.cname.yaml``."""
    stem = f"{canonical_name(record.name)}.{record.type.lower()}"
    return f"{UNSAFE_FILENAME.sub('_', stem)}.yaml"


def write_manifest_skeletons(
    directory: Path,
    records: Iterable[LiveRecord],
    today: date | None = None,
) -> list[Path]:
    """Write one manifest per live record and return the paths written.

    Records sharing a file name get their record id appended. Existing files
    are left untouched so a previous export that was filled in survives.
    """
    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    used: set[str] = set()
    for record in sorted(records, key=lambda rec: (canonical_name(rec.name), rec.type, rec.id)):
        filename = skeleton_filename(record)
        if filename in used:
            filename = f"{filename[:-len('.yaml')]}.{UNSAFE_FILENAME.sub('_', record.id.lower())}.yaml"
        used.add(filename)
        path = directory / filename
        if path.exists():
            LOG.warning("Not overwriting existing manifest %s", path)
            continue
        content = yaml.safe_dump(manifest_skeleton(record, today), sort_keys=False)
        write_output(path, content)
        LOG.debug("Wrote manifest skeleton %s", path)
        written.append(path)
    return written
