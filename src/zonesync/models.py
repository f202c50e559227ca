"""Core data models used by zonesync."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from typing import Iterable

ALLOWED_TYPES = frozenset({"A", "AAAA", "CNAME", "TXT"})
PROXIABLE_TYPES = frozenset({"A", "AAAA", "CNAME"})

RecordKey = tuple[str, str]


def canonical_name(name: str) -> str:
    """Return a lowercase owner name without the trailing dot."""
    return name.strip().rstrip(".").lower()


def record_key(rtype: str, name: str) -> RecordKey:
    """Return the identity key joining desired and live records."""
    return (rtype.strip().upper(), canonical_name(name))


def supports_proxy(rtype: str) -> bool:
    """Return True when the provider can proxy records of this type."""
    return rtype.upper() in PROXIABLE_TYPES


def matches_skip_list(name: str, patterns: Iterable[str]) -> bool:
    """Return True if name matches any skip pattern."""
    lowered = canonical_name(name)
    return any(fnmatch.fnmatch(lowered, pattern.lower()) for pattern in patterns)


@dataclass(frozen=True)
class DesiredRecord:
    """A record as declared by one manifest file."""

    type: str
    name: str
    content: str
    ttl: int
    proxied: bool | None = None
    priority: int | None = None
    comment: str | None = None
    source_file: str = ""

    def key(self) -> RecordKey:
        """Return the (type, name) identity key."""
        return record_key(self.type, self.name)


@dataclass(frozen=True)
class LiveRecord:
    """A record currently hosted by the provider."""

    id: str
    type: str
    name: str
    content: str
    ttl: int
    proxied: bool | None = None
    priority: int | None = None
    comment: str | None = None

    def key(self) -> RecordKey:
        """Return the (type, name) identity key."""
        return record_key(self.type, self.name)


@dataclass(frozen=True)
class RecordUpdate:
    """A live record paired with the desired record that replaces it."""

    existing: LiveRecord
    desired: DesiredRecord


@dataclass
class DiffResult:
    """Operations required to converge live state onto desired state."""

    create: list[DesiredRecord] = field(default_factory=list)
    update: list[RecordUpdate] = field(default_factory=list)
    delete: list[LiveRecord] = field(default_factory=list)
    duplicates: list[LiveRecord] = field(default_factory=list)

    def has_changes(self) -> bool:
        """Return True when at least one operation is pending."""
        return bool(self.create or self.update or self.delete)

    def total(self) -> int:
        """Return the number of pending operations."""
        return len(self.create) + len(self.update) + len(self.delete)


@dataclass(frozen=True)
class ApplyCounts:
    """Number of operations applied per phase."""

    deleted: int = 0
    updated: int = 0
    created: int = 0


@dataclass(frozen=True)
class ZoneMapping:
    """A manifest directory bound to the zone it describes."""

    directory: str
    zone_id: str


@dataclass
class SyncReport:
    """Outcome of reconciling one zone."""

    zone_label: str
    zone_id: str
    created: int = 0
    updated: int = 0
    deleted: int = 0
    failed: bool = False
    skipped: bool = False
    error: str | None = None


class ZoneSyncError(Exception):
    """Base exception for zonesync."""


class ConfigError(ZoneSyncError):
    """Raised when configuration or CLI mappings are invalid."""


class ManifestError(ZoneSyncError):
    """Raised when a manifest file cannot be read or parsed."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ProviderError(ZoneSyncError):
    """Raised when the provider API reports a failure."""


class FetchError(ZoneSyncError):
    """Raised when the live record set cannot be retrieved."""


class DuplicateRecordError(ZoneSyncError):
    """Raised when live records share a key and duplicates are not tolerated."""


class ApplyError(ZoneSyncError):
    """Raised when a create/update/delete call fails."""

    def __init__(self, operation: str, message: str, counts: ApplyCounts | None = None):
        super().__init__(f"Failed to {operation}: {message}")
        self.operation = operation
        self.message = message
        self.counts = counts or ApplyCounts()
