"""
Shared fixtures for the Apidex test suite.
"""

import json
import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is on the import path so that
# apidex.core.engine / apidex.core.search / etc. can be imported.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from apidex.core.config import ApidexConfig  # noqa: E402
from apidex.core.storage import DocumentStore  # noqa: E402


# =============================================================================
# Fixtures: sample service documents
# =============================================================================

@pytest.fixture
def twilio_doc() -> dict:
    """Twilio-like document with a messaging endpoint and an unrelated one."""
    return {
        "name": "Twilio",
        "description": "Cloud communications platform",
        "baseUrl": "https://api.twilio.com/",
        "categories": [{"name": "Messaging", "description": "SMS and MMS"}],
        "lastUpdated": "2024-05-01T00:00:00Z",
        "endpoints": [
            {
                "method": "GET",
                "path": "/v3/accounts",
                "description": "List accounts",
            },
            {
                "method": "POST",
                "path": "/v3/messages",
                "description": "Send an SMS text message",
                "category": "Messaging",
                "parameters": [
                    {"name": "To", "description": "Destination phone number", "required": True, "type": "string"},
                    {"name": "Body", "description": "Text of the message", "required": False},
                ],
            },
            {
                "method": "POST",
                "path": "/v3/calls",
                "description": "Place an outbound voice call",
                "category": "Voice",
            },
        ],
    }


@pytest.fixture
def sendgrid_doc() -> dict:
    """SendGrid-like document with a stats endpoint."""
    return {
        "name": "SendGrid",
        "description": "Email delivery service",
        "baseUrl": "https://api.sendgrid.com",
        "endpoints": [
            {
                "method": "GET",
                "path": "/v3/stats",
                "description": "Retrieve global email statistics",
            },
            {
                "method": "POST",
                "path": "/v3/mail/send",
                "description": "Send an email",
                "category": "Mail Send",
            },
        ],
    }


@pytest.fixture
def data_dir(tmp_path: Path, twilio_doc: dict, sendgrid_doc: dict) -> Path:
    """A data directory holding twilio.json and sendgrid.json."""
    d = tmp_path / "data"
    d.mkdir()
    (d / "twilio.json").write_text(json.dumps(twilio_doc), encoding="utf-8")
    (d / "sendgrid.json").write_text(json.dumps(sendgrid_doc), encoding="utf-8")
    return d


@pytest.fixture
def config(data_dir: Path) -> ApidexConfig:
    """ApidexConfig pointing at the sample data directory."""
    return ApidexConfig(data_dir=data_dir, max_concurrent_fetches=2, fetch_timeout_seconds=2.0)


@pytest.fixture
def store(config: ApidexConfig) -> DocumentStore:
    return DocumentStore(config=config)
