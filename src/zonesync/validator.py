"""Schema validation for record manifests.

This is the gate run before any sync: it is stricter than the loader, which
only extracts what reconciliation needs. Every problem is collected so a
single run reports all broken manifests at once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Iterable

import dns.exception
import dns.ipv4
import dns.ipv6
import dns.name
from pydantic import (
    BaseModel,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from .gitops import relative_to_root
from .models import ALLOWED_TYPES, ManifestError, supports_proxy
from .yaml_loader import discover_manifests, read_manifest

DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


class MetaSpec(BaseModel):
    """Ownership metadata of a manifest."""

    owner: StrictStr = Field(min_length=1)
    purpose: StrictStr
    registered_at: str
    valid_until: str

    @field_validator("registered_at", "valid_until", mode="before")
    @classmethod
    def _date_format(cls, value: Any) -> str:
        """Require YYYY-MM-DD dates."""
        # YAML loads unquoted dates as date objects.
        if isinstance(value, date):
            value = value.isoformat()
        if not isinstance(value, str) or not DATE_PATTERN.match(value):
            raise ValueError("must follow YYYY-MM-DD format")
        return value


class RecordSpec(BaseModel):
    """Schema for a desired DNS record."""

    name: StrictStr = Field(min_length=1)
    type: StrictStr
    value: StrictStr = Field(min_length=1)
    ttl: StrictInt = Field(gt=0)
    proxied: StrictBool | None = None
    priority: StrictInt | None = None
    comment: StrictStr = Field(min_length=1)

    @field_validator("type")
    @classmethod
    def _allowed_type(cls, value: str) -> str:
        """Restrict types to the managed allow-list."""
        if value not in ALLOWED_TYPES:
            raise ValueError(f"must be one of {' '.join(sorted(ALLOWED_TYPES))}")
        return value

    @model_validator(mode="after")
    def _check_proxied(self) -> "RecordSpec":
        """Require proxied for proxiable types and forbid it for TXT."""
        if supports_proxy(self.type):
            if "proxied" not in self.model_fields_set or self.proxied is None:
                raise ValueError(f"`proxied` is required for {self.type} records")
        elif self.proxied:
            raise ValueError(f"`proxied` should not be true for {self.type} records")
        return self


class MaintainerSpec(BaseModel):
    """A person responsible for a record."""

    name: StrictStr = Field(min_length=1)
    email: StrictStr = Field(min_length=1)
    url: StrictStr = Field(min_length=1)


class ManifestSpec(BaseModel):
    """Schema for a whole manifest document."""

    meta: MetaSpec
    record: RecordSpec
    maintainers: list[MaintainerSpec] = Field(min_length=1)


@dataclass
class ValidationReport:
    """Outcome of validating a set of manifests."""

    checked: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Return True when no manifest failed validation."""
        return not self.errors


def _format_errors(label: str, exc: ValidationError) -> list[str]:
    """Render pydantic errors as ``file: location message`` lines."""
    lines = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        message = error["msg"].removeprefix("Value error, ")
        lines.append(f"{label}: `{location}` {message}" if location else f"{label}: {message}")
    return lines


def check_record_content(record: RecordSpec) -> list[str]:
    """Return DNS-level problems with a record's name and value."""
    problems: list[str] = []
    try:
        dns.name.from_text(record.name)
    except dns.exception.DNSException as exc:
        problems.append(f"`record.name` is not a valid DNS name: {exc}")
    try:
        if record.type == "A":
            dns.ipv4.inet_aton(record.value)
        elif record.type == "AAAA":
            dns.ipv6.inet_aton(record.value)
        elif record.type == "CNAME":
            dns.name.from_text(record.value)
    except (dns.exception.DNSException, ValueError) as exc:
        problems.append(f"`record.value` is not a valid {record.type} target: {exc}")
    return problems


def validate_manifest(path: Path, label: str, templating: bool = False) -> list[str]:
    """Validate one manifest file and return its problems."""
    try:
        data = read_manifest(path, templating=templating, label=label)
    except ManifestError as exc:
        return [str(exc)]
    try:
        spec = ManifestSpec(**data)
    except ValidationError as exc:
        return _format_errors(label, exc)
    return [f"{label}: {problem}" for problem in check_record_content(spec.record)]


def validate_manifests(
    paths: Iterable[Path],
    root: Path,
    pattern: str = "*.yaml",
    templating: bool = False,
) -> ValidationReport:
    """Validate every manifest file found under ``paths``."""
    report = ValidationReport()
    for base in paths:
        files = [base] if base.is_file() else discover_manifests(base, pattern)
        for path in files:
            report.checked += 1
            report.errors.extend(validate_manifest(path, relative_to_root(path, root), templating=templating))
    return report
