"""
Tests for apidex.core.models — loading persisted documents.
"""

from datetime import datetime, timezone

import pytest

from apidex.core.models import Category, Document, Endpoint, Match, Parameter, ServiceResult
from apidex.exceptions import MalformedDocumentError


class TestDocumentFromDict:

    def test_full_document(self, twilio_doc):
        doc = Document.from_dict(twilio_doc, service_id="twilio")
        assert doc.name == "Twilio"
        assert doc.base_url == "https://api.twilio.com/"
        assert doc.categories == (Category(name="Messaging", description="SMS and MMS"),)
        assert doc.last_updated == datetime(2024, 5, 1, tzinfo=timezone.utc)
        messages = doc.endpoints[1]
        assert messages.category == "Messaging"
        assert messages.parameters[0] == Parameter(
            name="To", description="Destination phone number", required=True, type="string",
        )

    def test_optional_fields_default(self):
        doc = Document.from_dict({"endpoints": [{"method": "get", "path": "/x"}]}, service_id="svc")
        assert doc.name == "svc"
        assert doc.description == ""
        assert doc.base_url == ""
        assert doc.last_updated is None
        ep = doc.endpoints[0]
        assert ep.method == "GET"
        assert ep.description == ""
        assert ep.category is None
        assert ep.parameters == ()

    def test_name_falls_back_to_title(self):
        doc = Document.from_dict({"title": "Stripe API", "endpoints": []}, service_id="stripe")
        assert doc.name == "Stripe API"

    def test_string_categories(self):
        doc = Document.from_dict({"endpoints": [], "categories": ["Mail", "Stats"]})
        assert [c.name for c in doc.categories] == ["Mail", "Stats"]

    def test_bad_timestamp_is_ignored(self):
        doc = Document.from_dict({"endpoints": [], "lastUpdated": "yesterday"})
        assert doc.last_updated is None

    @pytest.mark.parametrize("payload", [
        None,
        [],
        "text",
        {"name": "no endpoints"},
        {"endpoints": "not a list"},
        {"endpoints": ["not an object"]},
        {"endpoints": [{"method": "GET", "path": "/x", "parameters": "q"}]},
        {"endpoints": [{"method": "GET", "path": "/x", "parameters": [3]}]},
        {"endpoints": [], "categories": {"a": 1}},
    ])
    def test_malformed(self, payload):
        with pytest.raises(MalformedDocumentError):
            Document.from_dict(payload, service_id="bad")

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            Document.from_dict({}, service_id="bad")

    def test_to_dict_uses_persisted_keys(self, twilio_doc):
        data = Document.from_dict(twilio_doc).to_dict()
        assert data["baseUrl"] == "https://api.twilio.com/"
        assert data["lastUpdated"].startswith("2024-05-01T00:00:00")
        assert data["endpoints"][1]["parameters"][0]["type"] == "string"
        assert "category" not in data["endpoints"][0]

    def test_reload_from_to_dict(self, twilio_doc):
        doc = Document.from_dict(twilio_doc)
        assert Document.from_dict(doc.to_dict()) == doc


class TestEndpoint:

    def test_searchable_needs_method_and_path(self):
        assert Endpoint(method="GET", path="/x").is_searchable
        assert not Endpoint(method="", path="/x").is_searchable
        assert not Endpoint(method="GET", path="").is_searchable

    def test_example_passes_through(self):
        ep = Endpoint.from_dict({"method": "POST", "path": "/x", "example": {"curl": "curl -X POST"}})
        assert ep.to_dict()["example"] == {"curl": "curl -X POST"}

    def test_is_immutable(self):
        ep = Endpoint(method="GET", path="/x")
        with pytest.raises(AttributeError):
            ep.path = "/y"


class TestServiceResult:

    def test_best_score(self):
        ep = Endpoint(method="GET", path="/x")
        result = ServiceResult("svc", "Svc", "", "", [Match(ep, 3), Match(ep, 7)])
        assert result.best_score == 7

    def test_to_dict(self):
        ep = Endpoint(method="GET", path="/x")
        data = ServiceResult("svc", "Svc", "desc", "https://x", [Match(ep, 3)]).to_dict()
        assert data["service"] == "Svc"
        assert data["serviceId"] == "svc"
        assert data["matches"][0]["relevance"] == 3
        assert "explanation" not in data["matches"][0]
