"""
Tests for the MCP tool bodies in apidex.mcp.server.
"""

import json

import pytest

from apidex.client import Apidex
from apidex.mcp.server import (
    create_server,
    endpoint_docs_json,
    list_services_json,
    search_docs_json,
    service_docs_json,
)


@pytest.fixture
def client(config):
    return Apidex(config=config)


class TestSearchTool:

    def test_search(self, client):
        data = json.loads(search_docs_json(client, "send a text message"))
        assert data["query"] == "send a text message"
        assert data["results"][0]["service"] == "Twilio"
        assert data["results"][0]["matches"][0]["path"] == "/v3/messages"

    @pytest.mark.parametrize("query", ["", "  ", None])
    def test_blank_query_yields_no_results(self, client, query):
        data = json.loads(search_docs_json(client, query))
        assert data == {"query": "", "results": []}

    def test_invalid_limit_is_reported(self, client):
        data = json.loads(search_docs_json(client, "send", max_matches=0))
        assert "max_matches" in data["error"]
        assert data["results"] == []

    def test_limits(self, client):
        data = json.loads(search_docs_json(client, "send", max_services=1, max_matches=1))
        assert len(data["results"]) == 1
        assert len(data["results"][0]["matches"]) == 1


class TestServiceDocsTool:

    def test_found(self, client):
        data = json.loads(service_docs_json(client, "twilio", method="GET"))
        assert data["success"] is True
        assert [e["path"] for e in data["data"]["endpoints"]] == ["/v3/accounts"]

    def test_missing(self, client):
        data = json.loads(service_docs_json(client, "stripe"))
        assert data == {
            "success": False,
            "error": "Documentation for stripe not found or could not be retrieved.",
        }


class TestEndpointDocsTool:

    def test_found(self, client):
        data = json.loads(endpoint_docs_json(client, "sendgrid", "mail/send"))
        assert data["docs"]["method"] == "POST"

    def test_miss(self, client):
        data = json.loads(endpoint_docs_json(client, "sendgrid", "webhooks"))
        assert "webhooks" in data["error"]
        assert [e["path"] for e in data["available_endpoints"]] == ["/v3/stats", "/v3/mail/send"]

    def test_unknown_service(self, client):
        data = json.loads(endpoint_docs_json(client, "stripe", "charges"))
        assert data == {"error": "Documentation for stripe not found"}


class TestListServicesTool:

    def test_list(self, client):
        data = json.loads(list_services_json(client))
        assert [s["service"] for s in data["services"]] == ["sendgrid", "twilio"]
        assert data["suggestion"]

    def test_empty(self, tmp_path):
        data = json.loads(list_services_json(Apidex(data_dir=tmp_path)))
        assert data["services"] == []
        assert "apidex import" in data["suggestion"]


def test_create_server(config):
    server = create_server(config)
    assert server.name == "Apidex"
