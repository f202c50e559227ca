"""Apply a computed diff to the provider, one call per operation."""

from __future__ import annotations

import logging
from typing import Any

from .cloudflare import CloudflareClient
from .models import ApplyCounts, ApplyError, DesiredRecord, DiffResult, ProviderError, supports_proxy

LOG = logging.getLogger("zonesync")


def build_payload(record: DesiredRecord) -> dict[str, Any]:
    """Return the API body for creating or overwriting a record."""
    payload: dict[str, Any] = {
        "type": record.type,
        "name": record.name,
        "content": record.content,
        "ttl": record.ttl,
    }
    if record.comment:
        payload["comment"] = record.comment
    if record.priority is not None:
        payload["priority"] = record.priority
    if supports_proxy(record.type):
        payload["proxied"] = bool(record.proxied)
    return payload


def apply_diff(
    client: CloudflareClient,
    zone_id: str,
    diff: DiffResult,
    dry_run: bool = False,
) -> ApplyCounts:
    """Run deletes, then updates, then creates, stopping at the first failure."""
    deleted = updated = created = 0
    prefix = "[dry-run] " if dry_run else ""

    def _fail(operation: str, exc: ProviderError) -> ApplyError:
        return ApplyError(operation, str(exc), ApplyCounts(deleted=deleted, updated=updated, created=created))

    if diff.delete:
        LOG.info("%sDeleting %s records in zone %s", prefix, len(diff.delete), zone_id)
    for record in diff.delete:
        LOG.info("%sDELETE %s %s", prefix, record.type, record.name)
        if not dry_run:
            try:
                client.delete_record(zone_id, record.id)
            except ProviderError as exc:
                raise _fail(f"delete {record.type} {record.name}", exc) from exc
        deleted += 1

    if diff.update:
        LOG.info("%sUpdating %s records in zone %s", prefix, len(diff.update), zone_id)
    for change in diff.update:
        desired = change.desired
        LOG.info("%sUPDATE %s %s (from %s)", prefix, desired.type, desired.name, desired.source_file)
        if not dry_run:
            try:
                client.update_record(zone_id, change.existing.id, build_payload(desired))
            except ProviderError as exc:
                raise _fail(f"update {desired.type} {desired.name}", exc) from exc
        updated += 1

    if diff.create:
        LOG.info("%sCreating %s records in zone %s", prefix, len(diff.create), zone_id)
    for record in diff.create:
        LOG.info("%sCREATE %s %s (from %s)", prefix, record.type, record.name, record.source_file)
        if not dry_run:
            try:
                client.create_record(zone_id, build_payload(record))
            except ProviderError as exc:
                raise _fail(f"create {record.type} {record.name}", exc) from exc
        created += 1

    return ApplyCounts(deleted=deleted, updated=updated, created=created)
