"""
Apidex Core — configuration, data models, storage, scoring, and search.

Re-exports the primary classes for convenience::

    from apidex.core import DocumentStore, DocumentSearchEngine, extract_keywords
"""

from apidex.core.config import ApidexConfig, Vocabulary
from apidex.core.engine import (
    build_haystack,
    extract_keywords,
    match_service,
    normalize_query,
    score_endpoint,
)
from apidex.core.models import (
    Category,
    Document,
    Endpoint,
    Match,
    Parameter,
    ServiceResult,
    ServiceSummary,
)
from apidex.core.search import (
    DocumentSearchEngine,
    ResultFormatter,
    filter_endpoints,
    find_endpoint,
)
from apidex.core.storage import DocumentSource, DocumentStore

__all__ = [
    "ApidexConfig",
    "Vocabulary",
    "build_haystack",
    "extract_keywords",
    "match_service",
    "normalize_query",
    "score_endpoint",
    "Category",
    "Document",
    "Endpoint",
    "Match",
    "Parameter",
    "ServiceResult",
    "ServiceSummary",
    "DocumentSearchEngine",
    "ResultFormatter",
    "filter_endpoints",
    "find_endpoint",
    "DocumentSource",
    "DocumentStore",
]
