"""Tests for cloudflare.py - the provider client and live-state fetcher."""

import dataclasses
from unittest.mock import patch

import pytest
import requests

from conftest import make_response
from zonesync.cloudflare import CloudflareClient, fetch_live_records, to_live_record
from zonesync.models import FetchError, LiveRecord, ProviderError


def page(records, page_number, total_pages):
    return {
        "success": True,
        "errors": [],
        "result": records,
        "result_info": {"page": page_number, "total_pages": total_pages},
    }


def raw(record_id, rtype, name, content, **extra):
    return {"id": record_id, "type": rtype, "name": name, "content": content, "ttl": 300, **extra}


@pytest.fixture
def client(config):
    return CloudflareClient.from_config("secret-token", config)


class TestCloudflareClient:
    """Tests for the HTTP wrapper."""

    def test_bearer_token_header(self, client):
        assert client._session.headers["Authorization"] == "Bearer secret-token"

    def test_list_records_follows_pagination(self, client):
        with patch.object(client._session, "request") as mock_request:
            mock_request.side_effect = [
                make_response(page([raw("1", "A", "a", "1.1.1.1")], 1, 3)),
                make_response(page([raw("2", "A", "b", "2.2.2.2")], 2, 3)),
                make_response(page([raw("3", "A", "c", "3.3.3.3")], 3, 3)),
            ]

            records = client.list_records("zone-1", page_size=50)

        assert [item["id"] for item in records] == ["1", "2", "3"]
        assert mock_request.call_count == 3
        pages = [call.kwargs["params"]["page"] for call in mock_request.call_args_list]
        assert pages == [1, 2, 3]
        first = mock_request.call_args_list[0]
        assert first.args == ("GET", "https://api.test/client/v4/zones/zone-1/dns_records")
        assert first.kwargs["params"]["per_page"] == 50

    def test_missing_result_info_means_single_page(self, client):
        with patch.object(client._session, "request") as mock_request:
            mock_request.return_value = make_response({"success": True, "result": [raw("1", "A", "a", "1.1.1.1")]})
            records = client.list_records("zone-1")
        assert len(records) == 1
        assert mock_request.call_count == 1

    def test_failed_page_aborts_listing(self, client):
        with patch.object(client._session, "request") as mock_request:
            mock_request.side_effect = [
                make_response(page([raw("1", "A", "a", "1.1.1.1")], 1, 3)),
                make_response({"success": False, "errors": [{"message": "rate limited"}, {"message": "slow down"}]}),
            ]
            with pytest.raises(ProviderError, match="rate limited; slow down"):
                client.list_records("zone-1")
        assert mock_request.call_count == 2

    def test_transport_error_is_provider_error(self, client):
        with patch.object(client._session, "request") as mock_request:
            mock_request.side_effect = requests.ConnectionError("connection reset")
            with pytest.raises(ProviderError, match="connection reset"):
                client.delete_record("zone-1", "abc")

    def test_non_json_body_is_provider_error(self, client):
        with patch.object(client._session, "request") as mock_request:
            response = make_response({})
            response.status_code = 502
            response.json.side_effect = ValueError("not json")
            mock_request.return_value = response
            with pytest.raises(ProviderError, match="HTTP 502"):
                client.create_record("zone-1", {"type": "A"})

    def test_failure_without_messages(self, client):
        with patch.object(client._session, "request") as mock_request:
            mock_request.return_value = make_response({"success": False, "errors": []})
            with pytest.raises(ProviderError, match="unknown error"):
                client.update_record("zone-1", "abc", {"type": "A"})

    def test_mutating_verbs(self, client):
        with patch.object(client._session, "request") as mock_request:
            mock_request.return_value = make_response({"success": True, "errors": []})
            client.create_record("z", {"type": "A"})
            client.update_record("z", "r1", {"type": "A"})
            client.delete_record("z", "r2")
        calls = [(call.args[0], call.args[1]) for call in mock_request.call_args_list]
        base = "https://api.test/client/v4/zones/z/dns_records"
        assert calls == [("POST", base), ("PUT", f"{base}/r1"), ("DELETE", f"{base}/r2")]
        assert mock_request.call_args_list[0].kwargs["json"] == {"type": "A"}


class TestFetchLiveRecords:
    """Tests for fetch_live_records."""

    def test_filters_types_and_normalises(self, client, config):
        items = [
            raw("1", "A", "app.example.com", "1.2.3.4", proxied=True),
            raw("2", "MX", "example.com", "mail.example.com", priority=10),
            raw("3", "TXT", "example.com", "v=spf1 -all", comment=""),
            raw("4", "AAAA", "app.example.com", "::1", proxied=False, comment="v6"),
        ]
        with patch.object(client, "list_records", return_value=items):
            records = fetch_live_records(client, "zone-1", config)

        assert [record.id for record in records] == ["1", "3", "4"]
        assert records[0] == LiveRecord(id="1", type="A", name="app.example.com", content="1.2.3.4", ttl=300, proxied=True)
        assert records[1].comment is None
        assert records[2].comment == "v6"

    def test_skip_list_hides_records(self, client, config):
        config = dataclasses.replace(config, skip_names=("_dmarc.*", "*._domainkey.example.com"))
        items = [
            raw("1", "TXT", "_dmarc.example.com", "v=DMARC1"),
            raw("2", "TXT", "google._domainkey.example.com", "k=rsa"),
            raw("3", "TXT", "example.com", "keep"),
        ]
        with patch.object(client, "list_records", return_value=items):
            records = fetch_live_records(client, "zone-1", config)
        assert [record.id for record in records] == ["3"]

    def test_provider_failure_becomes_fetch_error(self, client, config):
        with patch.object(client, "list_records", side_effect=ProviderError("Invalid zone")):
            with pytest.raises(FetchError, match="Invalid zone"):
                fetch_live_records(client, "zone-1", config)

    @pytest.mark.parametrize(
        "item",
        [
            {"type": "A", "name": "app", "content": "1.2.3.4"},
            {"id": "1", "type": "A", "content": "1.2.3.4"},
            {"id": "1", "type": "A", "name": "app", "content": "1.2.3.4", "ttl": "auto"},
            {"id": "1", "type": "A", "name": "app", "content": "1.2.3.4", "ttl": None},
        ],
    )
    def test_malformed_record_becomes_fetch_error(self, client, config, item):
        with patch.object(client, "list_records", return_value=[item]):
            with pytest.raises(FetchError, match="Malformed DNS record in zone zone-1"):
                fetch_live_records(client, "zone-1", config)

    def test_to_live_record_defaults(self):
        record = to_live_record({"id": 7, "type": "cname", "name": "www", "content": "host"})
        assert record.id == "7"
        assert record.type == "CNAME"
        assert record.ttl == 1
        assert record.proxied is None
        assert record.priority is None
