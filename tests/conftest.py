"""Pytest configuration and fixtures."""

from __future__ import annotations

import textwrap
from pathlib import Path
from unittest.mock import Mock

import pytest

from zonesync.config import AppConfig
from zonesync.models import LiveRecord, ProviderError


class FakeCloudflare:
    """In-memory provider with call tracking and injectable failures."""

    def __init__(self, records: list[dict] | None = None, fail_on: dict[tuple[str, str], str] | None = None):
        self.records: list[dict] = [dict(item) for item in records or []]
        self.calls: list[tuple[str, str]] = []
        self.fail_on = fail_on or {}
        self.list_error: str | None = None
        self._next_id = 1

    def _maybe_fail(self, verb: str, target: str) -> None:
        self.calls.append((verb, target))
        message = self.fail_on.get((verb, target))
        if message:
            raise ProviderError(message)

    def list_records(self, zone_id: str, page_size: int = 100) -> list[dict]:
        if self.list_error:
            raise ProviderError(self.list_error)
        return [dict(item) for item in self.records]

    def delete_record(self, zone_id: str, record_id: str) -> dict:
        self._maybe_fail("DELETE", record_id)
        self.records = [item for item in self.records if item["id"] != record_id]
        return {"success": True}

    def update_record(self, zone_id: str, record_id: str, payload: dict) -> dict:
        self._maybe_fail("PUT", record_id)
        for item in self.records:
            if item["id"] == record_id:
                item.clear()
                item.update(payload, id=record_id)
        return {"success": True}

    def create_record(self, zone_id: str, payload: dict) -> dict:
        self._maybe_fail("POST", payload["name"])
        record_id = f"new-{self._next_id}"
        self._next_id += 1
        self.records.append({**payload, "id": record_id})
        return {"success": True, "result": {"id": record_id}}


def make_response(payload: dict) -> Mock:
    """Build a mocked requests.Response returning ``payload`` as JSON."""
    response = Mock()
    response.status_code = 200 if payload.get("success") else 400
    response.json.return_value = payload
    return response


def live(record_id: str, rtype: str, name: str, content: str, ttl: int = 300, **extra) -> LiveRecord:
    """Shorthand for building a LiveRecord."""
    return LiveRecord(id=record_id, type=rtype, name=name, content=content, ttl=ttl, **extra)


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    """Configuration rooted at a temporary manifest repository."""
    return AppConfig(api_base="https://api.test/client/v4", manifest_root=tmp_path)


@pytest.fixture
def write_manifest(tmp_path: Path):
    """Write a manifest file below the temporary repository."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def record_manifest(write_manifest):
    """Write a complete, valid manifest for one record."""

    def _write(relative: str, name: str, rtype: str = "A", value: str = "1.2.3.4", ttl: int = 300, extra: str = "") -> Path:
        proxied = "" if rtype == "TXT" else "  proxied: false\n"
        body = (
            "meta:\n"
            "  owner: platform\n"
            "  purpose: test record\n"
            '  registered_at: "2024-01-01"\n'
            '  valid_until: "2030-01-01"\n'
            "record:\n"
            f"  name: {name}\n"
            f"  type: {rtype}\n"
            f'  value: "{value}"\n'
            f"  ttl: {ttl}\n"
            f"{proxied}"
            "  comment: managed by test\n"
            f"{extra}"
            "maintainers:\n"
            "  - name: Jane Doe\n"
            "    email: jane@example.com\n"
            "    url: https://example.com/jane\n"
        )
        return write_manifest(relative, body)

    return _write
