"""
Apidex — search across the API reference documentation of many services.

The ``apidex`` package stores normalized API-reference documents (one per
service: Twilio, SendGrid, ...) and answers two kinds of lookups: exact
retrieval of one service's endpoints, and natural-language search ranked
across every stored service.

Quick start (programmatic API)::

    from apidex import Apidex

    client = Apidex(data_dir="./data")
    client.import_document("twilio.json")
    results = client.search("send a text message")

Quick start (CLI)::

    apidex import twilio.json
    apidex search "send a text message"
"""

__version__ = "1.0.0"

# Primary public API: the Apidex facade
from apidex.client import Apidex

# Configuration
from apidex.core.config import ApidexConfig

# Core data types that callers interact with
from apidex.core.models import Document, Endpoint, Match, ServiceResult, ServiceSummary

# Exception hierarchy
from apidex.exceptions import (
    ApidexError,
    ConfigError,
    DocumentNotFoundError,
    EndpointNotFoundError,
    MalformedDocumentError,
    SearchError,
)


def health(config: ApidexConfig | None = None) -> dict:
    """
    Return a small status dict for agents or REST health checks (no document reads).

    When *config* is None, uses :meth:`ApidexConfig.from_env()` for the snapshot.
    """
    return Apidex(config=config or ApidexConfig.from_env()).health()


__all__ = [
    "__version__",
    # Facade
    "Apidex",
    # Config
    "ApidexConfig",
    # Data types
    "Document",
    "Endpoint",
    "Match",
    "ServiceResult",
    "ServiceSummary",
    # Exceptions
    "ApidexError",
    "ConfigError",
    "DocumentNotFoundError",
    "EndpointNotFoundError",
    "MalformedDocumentError",
    "SearchError",
    # Helpers
    "health",
]
