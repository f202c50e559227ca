"""Cloudflare DNS API client and live-state helpers built on requests."""

from __future__ import annotations

import logging
from typing import Any

import requests

from .config import AppConfig
from .models import ALLOWED_TYPES, FetchError, LiveRecord, ProviderError, matches_skip_list

LOG = logging.getLogger("zonesync")


def _error_message(payload: dict[str, Any]) -> str:
    """Join the provider's error messages into one string."""
    errors = payload.get("errors") or []
    messages = [str(error.get("message", "")) for error in errors if isinstance(error, dict)]
    message = "; ".join(item for item in messages if item)
    return message or "unknown error"


class CloudflareClient:
    """Thin wrapper around the zone DNS records endpoints."""

    def __init__(self, token: str, api_base: str, timeout: float = 30.0):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            }
        )

    @classmethod
    def from_config(cls, token: str, config: AppConfig) -> "CloudflareClient":
        """Build a client using the configured endpoint and timeout."""
        return cls(token, config.api_base, timeout=config.timeout)

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue a request and return the envelope, raising on failure."""
        url = f"{self.api_base}{path}"
        try:
            response = self._session.request(method, url, params=params, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(f"{method} {path} failed: {exc}") from exc
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(f"{method} {path} returned a non-JSON response (HTTP {response.status_code})") from exc
        if not isinstance(body, dict) or body.get("success") is not True:
            raise ProviderError(_error_message(body if isinstance(body, dict) else {}))
        return body

    def list_records(self, zone_id: str, page_size: int = 100) -> list[dict[str, Any]]:
        """Return every DNS record in the zone, following pagination."""
        records: list[dict[str, Any]] = []
        page = 1
        total_pages = 1
        while page <= total_pages:
            body = self._request(
                "GET",
                f"/zones/{zone_id}/dns_records",
                params={"per_page": page_size, "page": page},
            )
            records.extend(body.get("result") or [])
            total_pages = int((body.get("result_info") or {}).get("total_pages") or 1)
            page += 1
        return records

    def create_record(self, zone_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a DNS record."""
        return self._request("POST", f"/zones/{zone_id}/dns_records", payload=payload)

    def update_record(self, zone_id: str, record_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Overwrite an existing DNS record."""
        return self._request("PUT", f"/zones/{zone_id}/dns_records/{record_id}", payload=payload)

    def delete_record(self, zone_id: str, record_id: str) -> dict[str, Any]:
        """Delete a DNS record."""
        return self._request("DELETE", f"/zones/{zone_id}/dns_records/{record_id}")


def to_live_record(item: dict[str, Any]) -> LiveRecord:
    """Normalise a provider record into a LiveRecord."""
    return LiveRecord(
        id=str(item["id"]),
        type=str(item["type"]).upper(),
        name=str(item["name"]),
        content=str(item.get("content", "")),
        ttl=int(item.get("ttl", 1)),
        proxied=item.get("proxied"),
        priority=item.get("priority"),
        comment=item.get("comment") or None,
    )


def fetch_live_records(client: CloudflareClient, zone_id: str, config: AppConfig) -> list[LiveRecord]:
    """Return the complete allow-listed live record set of a zone."""
    try:
        items = client.list_records(zone_id, page_size=config.page_size)
    except ProviderError as exc:
        raise FetchError(f"Failed to fetch DNS records for zone {zone_id}: {exc}") from exc

    records: list[LiveRecord] = []
    for item in items:
        if not isinstance(item, dict) or str(item.get("type", "")).upper() not in ALLOWED_TYPES:
            continue
        try:
            record = to_live_record(item)
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"Malformed DNS record in zone {zone_id}: {item!r} ({exc!r})") from exc
        if matches_skip_list(record.name, config.skip_names):
            LOG.debug("Ignoring %s %s (skip-list)", record.type, record.name)
            continue
        records.append(record)
    LOG.debug("Fetched %s managed records for zone %s", len(records), zone_id)
    return records
