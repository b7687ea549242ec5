"""
Tests for apidex.core.search — cross-service ranking, failure isolation,
exact retrieval, and result formatting.
"""

import json
import threading
import time

import pytest

from apidex.core.config import ApidexConfig
from apidex.core.models import Document
from apidex.core.search import (
    DocumentSearchEngine,
    ResultFormatter,
    filter_endpoints,
    find_endpoint,
)
from apidex.exceptions import (
    DocumentNotFoundError,
    EndpointNotFoundError,
    MalformedDocumentError,
    SearchError,
)


class FakeSource:
    """In-memory DocumentSource; ids mapped to an exception are raised on fetch."""

    def __init__(self, documents: dict, failures: dict | None = None,
                 delays: dict | None = None):
        self.documents = documents
        self.failures = failures or {}
        self.delays = delays or {}
        self.fetched = []
        self._lock = threading.Lock()

    def list_service_ids(self):
        return list(self.documents) + [k for k in self.failures if k not in self.documents]

    def fetch_document(self, service_id):
        with self._lock:
            self.fetched.append(service_id)
        if service_id in self.delays:
            time.sleep(self.delays[service_id])
        if service_id in self.failures:
            raise self.failures[service_id]
        return Document.from_dict(self.documents[service_id], service_id=service_id)


class BrokenListing:
    def list_service_ids(self):
        raise OSError("directory unreadable")

    def fetch_document(self, service_id):
        raise AssertionError("should not be called")


def _engine(source, **overrides) -> DocumentSearchEngine:
    cfg = ApidexConfig(max_concurrent_fetches=4, fetch_timeout_seconds=2.0)
    for key, value in overrides.items():
        setattr(cfg, key, value)
    return DocumentSearchEngine(source, config=cfg)


def _endpoint(method, path, description, category=None):
    ep = {"method": method, "path": path, "description": description}
    if category:
        ep["category"] = category
    return ep


# Scores for the query "refund invoice": weak = 4, strong = 9
WEAK_DOC = {
    "name": "Weak",
    "endpoints": [_endpoint("POST", "/refunds", "Issue a refund for an invoice")],
}
STRONG_DOC = {
    "name": "Strong",
    "endpoints": [_endpoint("POST", "/v1/payments", "Refund invoice", "Invoice refunds")],
}


# =============================================================================
# Cross-service aggregation
# =============================================================================

class TestDocumentSearchEngine:
    """Aggregation across services."""

    def test_services_ranked_by_best_score(self):
        source = FakeSource({"weak": WEAK_DOC, "strong": STRONG_DOC})
        results = _engine(source).search("refund invoice")
        assert [r.service_id for r in results] == ["strong", "weak"]
        assert [r.best_score for r in results] == [9, 4]

    def test_equal_best_scores_keep_enumeration_order(self):
        source = FakeSource({"b": WEAK_DOC, "a": WEAK_DOC, "c": WEAK_DOC})
        results = _engine(source).search("refund invoice")
        assert [r.service_id for r in results] == ["b", "a", "c"]

    def test_services_without_matches_are_omitted(self, store):
        results = DocumentSearchEngine(store, config=ApidexConfig()).search("send a text message")
        assert [r.service_id for r in results] == ["twilio", "sendgrid"]
        twilio = results[0]
        assert twilio.service_name == "Twilio"
        assert twilio.base_url == "https://api.twilio.com/"
        assert twilio.matches[0].endpoint.path == "/v3/messages"
        assert "/v3/accounts" not in [m.endpoint.path for m in twilio.matches]

    def test_stats_scenario(self, store, config):
        results = DocumentSearchEngine(store, config=config).search("stats")
        assert results[0].service_id == "sendgrid"
        top = results[0].matches[0]
        assert top.endpoint.path == "/v3/stats"
        assert top.score >= 3

    def test_failing_service_does_not_affect_others(self):
        docs = {name: STRONG_DOC for name in ("one", "two", "three")}
        source = FakeSource(docs, failures={"down": ConnectionError("unreachable")})
        results = _engine(source).search("refund invoice")
        assert [r.service_id for r in results] == ["one", "two", "three"]
        assert "down" in source.fetched

    @pytest.mark.parametrize("error", [
        DocumentNotFoundError("gone"),
        MalformedDocumentError("bad shape"),
        RuntimeError("boom"),
    ])
    def test_any_fetch_error_skips_service(self, error):
        source = FakeSource({"ok": WEAK_DOC}, failures={"bad": error})
        results = _engine(source).search("refund invoice")
        assert [r.service_id for r in results] == ["ok"]

    def test_malformed_file_is_skipped(self, store, data_dir):
        (data_dir / "broken.json").write_text("{not json", encoding="utf-8")
        (data_dir / "shapeless.json").write_text(json.dumps({"name": "x"}), encoding="utf-8")
        results = DocumentSearchEngine(store, config=ApidexConfig()).search("send email")
        assert "broken" not in [r.service_id for r in results]
        assert "shapeless" not in [r.service_id for r in results]
        assert "sendgrid" in [r.service_id for r in results]

    def test_slow_fetch_times_out(self):
        source = FakeSource({"slow": STRONG_DOC, "fast": WEAK_DOC}, delays={"slow": 1.0})
        engine = _engine(source, fetch_timeout_seconds=0.2)
        t0 = time.perf_counter()
        results = engine.search("refund invoice")
        assert [r.service_id for r in results] == ["fast"]
        assert time.perf_counter() - t0 < 1.0

    def test_slow_service_does_not_starve_queued_ones(self):
        source = FakeSource(
            {"slow": STRONG_DOC, "fast": WEAK_DOC, "fast2": WEAK_DOC},
            delays={"slow": 1.5},
        )
        engine = _engine(source, max_concurrent_fetches=1, fetch_timeout_seconds=0.2)
        t0 = time.perf_counter()
        results = engine.search("refund invoice")
        assert [r.service_id for r in results] == ["fast", "fast2"]
        assert time.perf_counter() - t0 < 1.0

    def test_timeout_counts_from_fetch_start(self):
        # two workers, each fetch takes longer than half the timeout
        docs = {f"s{i}": WEAK_DOC for i in range(4)}
        source = FakeSource(docs, delays={k: 0.3 for k in docs})
        engine = _engine(source, max_concurrent_fetches=2, fetch_timeout_seconds=0.5)
        assert [r.service_id for r in engine.search("refund invoice")] == ["s0", "s1", "s2", "s3"]

    def test_hung_services_free_their_slots(self):
        source = FakeSource(
            {"hung": STRONG_DOC, "hung2": STRONG_DOC, "ok": WEAK_DOC},
            delays={"hung": 1.5, "hung2": 1.5},
        )
        engine = _engine(source, max_concurrent_fetches=2, fetch_timeout_seconds=0.2)
        assert [r.service_id for r in engine.search("refund invoice")] == ["ok"]

    def test_fetches_run_concurrently(self):
        docs = {f"s{i}": WEAK_DOC for i in range(4)}
        source = FakeSource(docs, delays={k: 0.3 for k in docs})
        t0 = time.perf_counter()
        results = _engine(source, max_concurrent_fetches=4).search("refund invoice")
        assert len(results) == 4
        assert time.perf_counter() - t0 < 1.0

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_returns_nothing(self, query):
        source = FakeSource({"weak": WEAK_DOC})
        assert _engine(source).search(query) == []
        assert source.fetched == []

    def test_enumeration_failure_raises_search_error(self):
        with pytest.raises(SearchError):
            _engine(BrokenListing()).search("refund invoice")

    def test_no_services(self):
        assert _engine(FakeSource({})).search("refund invoice") == []

    def test_explicit_service_ids(self):
        source = FakeSource({"weak": WEAK_DOC, "strong": STRONG_DOC})
        results = _engine(source).search("refund invoice", service_ids=["weak"])
        assert [r.service_id for r in results] == ["weak"]
        assert source.fetched == ["weak"]

    def test_max_services_cap(self):
        source = FakeSource({"weak": WEAK_DOC, "strong": STRONG_DOC})
        results = _engine(source).search("refund invoice", max_services=1)
        assert [r.service_id for r in results] == ["strong"]

    @pytest.mark.parametrize("overrides", [
        {"max_matches": 0},
        {"max_matches": -1},
        {"max_services": -1},
    ])
    def test_out_of_range_limits_are_rejected(self, overrides):
        source = FakeSource({"weak": WEAK_DOC})
        with pytest.raises(SearchError):
            _engine(source).search("refund invoice", **overrides)
        assert source.fetched == []

    def test_configured_service_cap(self):
        source = FakeSource({"weak": WEAK_DOC, "strong": STRONG_DOC})
        results = _engine(source, max_search_services=1).search("refund invoice")
        assert len(results) == 1

    def test_max_matches_per_service(self):
        doc = {"name": "Many", "endpoints": [
            _endpoint("GET", f"/sms/{i}", "sms") for i in range(9)
        ]}
        engine = _engine(FakeSource({"many": doc}))
        assert len(engine.search("sms")[0].matches) == 5
        assert len(engine.search("sms", max_matches=2)[0].matches) == 2

    def test_explain_attaches_breakdown(self):
        results = _engine(FakeSource({"weak": WEAK_DOC})).search("refund invoice", explain=True)
        match = results[0].matches[0]
        assert sum(match.explanation.values()) == match.score

    def test_records_elapsed_time(self):
        engine = _engine(FakeSource({"weak": WEAK_DOC}))
        engine.search("refund invoice")
        assert engine.last_search_elapsed_seconds > 0


# =============================================================================
# Exact retrieval
# =============================================================================

class TestFilterEndpoints:

    @pytest.fixture
    def doc(self, twilio_doc):
        return Document.from_dict(twilio_doc, service_id="twilio")

    def test_no_filters_returns_document(self, doc):
        assert filter_endpoints(doc) is doc

    def test_method_is_case_insensitive(self, doc):
        result = filter_endpoints(doc, method="post")
        assert [e.path for e in result.endpoints] == ["/v3/messages", "/v3/calls"]

    def test_path_fragment(self, doc):
        result = filter_endpoints(doc, path="/MESSAGES")
        assert [e.path for e in result.endpoints] == ["/v3/messages"]

    def test_query_searches_description_and_category(self, doc):
        assert [e.path for e in filter_endpoints(doc, query="voice").endpoints] == ["/v3/calls"]
        assert [e.path for e in filter_endpoints(doc, query="outbound").endpoints] == ["/v3/calls"]

    def test_filters_combine(self, doc):
        assert filter_endpoints(doc, method="GET", path="/messages").endpoints == ()

    def test_original_is_untouched(self, doc):
        filter_endpoints(doc, method="GET")
        assert len(doc.endpoints) == 3

    def test_other_fields_carried_over(self, doc):
        result = filter_endpoints(doc, method="GET")
        assert result.name == "Twilio"
        assert result.base_url == doc.base_url


class TestFindEndpoint:

    @pytest.fixture
    def doc(self, sendgrid_doc):
        return Document.from_dict(sendgrid_doc, service_id="sendgrid")

    def test_path_fragment(self, doc):
        assert find_endpoint(doc, "mail/send").path == "/v3/mail/send"

    def test_description_fragment(self, doc):
        assert find_endpoint(doc, "Statistics").path == "/v3/stats"

    def test_first_match_wins(self, doc):
        assert find_endpoint(doc, "/v3").path == "/v3/stats"

    def test_miss_lists_available(self, doc):
        with pytest.raises(EndpointNotFoundError) as excinfo:
            find_endpoint(doc, "webhooks")
        assert "webhooks" in str(excinfo.value)
        assert excinfo.value.available == [
            {"path": "/v3/stats", "description": "Retrieve global email statistics"},
            {"path": "/v3/mail/send", "description": "Send an email"},
        ]

    def test_blank_fragment_is_a_miss(self, doc):
        with pytest.raises(EndpointNotFoundError):
            find_endpoint(doc, "  ")


# =============================================================================
# Formatting
# =============================================================================

class TestResultFormatter:

    @pytest.fixture
    def results(self):
        return _engine(FakeSource({"weak": WEAK_DOC, "strong": STRONG_DOC})).search("refund invoice")

    def test_console(self, results):
        out = ResultFormatter.format_console(results, elapsed_time=0.01)
        assert "2 endpoints in 2 services" in out
        assert "#1  Strong" in out
        assert "/v1/payments" in out

    def test_console_empty(self):
        assert "No matching endpoints found." in ResultFormatter.format_console([])

    def test_json_with_query(self, results):
        data = json.loads(ResultFormatter.format_json(results, query="refund invoice"))
        assert data["query"] == "refund invoice"
        assert data["results"][0]["serviceId"] == "strong"
        assert data["results"][0]["matches"][0]["relevance"] == 9

    def test_json_without_query(self, results):
        data = json.loads(ResultFormatter.format_json(results))
        assert isinstance(data, list)
        assert len(data) == 2

    def test_compact(self, results):
        lines = ResultFormatter.format_compact(results).splitlines()
        assert lines == [
            "strong  POST /v1/payments  [9]",
            "weak  POST /refunds  [4]",
        ]

    def test_compact_empty(self):
        assert ResultFormatter.format_compact([]) == "No matching endpoints found."

    def test_document(self, twilio_doc):
        out = ResultFormatter.format_document(Document.from_dict(twilio_doc))
        assert "Twilio" in out
        assert "Endpoints: 3" in out
        assert "- To <string> (required): Destination phone number" in out
