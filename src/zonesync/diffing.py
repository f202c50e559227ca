"""Diff utilities for desired versus live DNS records."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import (
    DesiredRecord,
    DiffResult,
    DuplicateRecordError,
    LiveRecord,
    RecordKey,
    RecordUpdate,
    supports_proxy,
)

LOG = logging.getLogger("zonesync")


def _index_live(live: Iterable[LiveRecord]) -> tuple[dict[RecordKey, LiveRecord], list[LiveRecord]]:
    """Index live records by key; later records sharing a key are returned separately."""
    index: dict[RecordKey, LiveRecord] = {}
    duplicates: list[LiveRecord] = []
    for record in live:
        key = record.key()
        if key in index:
            duplicates.append(record)
        else:
            index[key] = record
    return index, duplicates


def _index_desired(desired: Iterable[DesiredRecord]) -> dict[RecordKey, DesiredRecord]:
    """Index desired records by key, keeping the first record of each key."""
    index: dict[RecordKey, DesiredRecord] = {}
    for record in desired:
        key = record.key()
        if key in index:
            LOG.warning(
                "Ignoring %s %s from %s: already declared by %s",
                record.type,
                record.name,
                record.source_file,
                index[key].source_file,
            )
            continue
        index[key] = record
    return index


def records_differ(existing: LiveRecord, desired: DesiredRecord) -> bool:
    """Return True when any compared value field differs."""
    if existing.content != desired.content:
        return True
    if existing.ttl != desired.ttl:
        return True
    if supports_proxy(desired.type) and bool(existing.proxied) != bool(desired.proxied):
        return True
    if existing.priority != desired.priority:
        return True
    return (existing.comment or "") != (desired.comment or "")


def diff_records(
    desired: Iterable[DesiredRecord],
    live: Iterable[LiveRecord],
    duplicate_policy: str = "first",
) -> DiffResult:
    """Produce the create/update/delete sets converging live onto desired.

    Live records sharing a key with an earlier record are deleted when no
    manifest declares that key. When the key is declared, the first record is
    matched for update and the rest are reported in ``duplicates`` (or raise
    under the ``fail`` policy).
    """
    desired_index = _index_desired(desired)
    live_index, extra = _index_live(live)

    diff = DiffResult()
    for record in extra:
        if record.key() in desired_index:
            diff.duplicates.append(record)

    if diff.duplicates:
        described = ", ".join(f"{record.type} {record.name} ({record.id})" for record in diff.duplicates)
        if duplicate_policy == "fail":
            raise DuplicateRecordError(f"Live records share a (type, name) key: {described}")
        LOG.warning("Duplicate live records ignored in favour of the first match: %s", described)

    for key, record in desired_index.items():
        current = live_index.get(key)
        if current is None:
            diff.create.append(record)
        elif records_differ(current, record):
            diff.update.append(RecordUpdate(existing=current, desired=record))

    for key, record in live_index.items():
        if key not in desired_index:
            diff.delete.append(record)
    for record in extra:
        if record.key() not in desired_index:
            diff.delete.append(record)

    return diff
