"""
Apidex Core Engine

Keyword extraction, endpoint scoring, and per-service matching.

Every function here is pure: inputs are read-only documents and a query,
outputs are fresh values.  The cross-service aggregation that fetches
documents lives in :mod:`apidex.core.search`.
"""

import logging
import re
from typing import Dict, FrozenSet, Iterable, List, Optional

from apidex.core.config import ApidexConfig, Vocabulary
from apidex.core.models import Document, Endpoint, Match

# NOTE: Application code (CLI, MCP server) is responsible for configuring
# logging; importing apidex as a library has no side effects.
logger = logging.getLogger(__name__)

# Anything that is not a letter, digit, or whitespace becomes a separator.
_PUNCTUATION = re.compile(r"[^\w\s]|_")

DEFAULT_MATCH_LIMIT = 5


def _default_weights() -> Dict[str, int]:
    return ApidexConfig().ranking_weights


# =============================================================================
# Keyword Extraction
# =============================================================================

def normalize_query(query: str) -> str:
    """Lower-case and trim *query*; this is the string used for phrase matching."""
    return (query or "").strip().lower()


def extract_keywords(query: str) -> FrozenSet[str]:
    """
    Turn a free-text query into the set of significant lower-case terms.

    Punctuation is replaced by spaces (so ``"e-mail/send"`` yields
    ``{"mail", "send"}``), single-character tokens are dropped, and stop
    words are removed unless they are domain words.

    >>> sorted(extract_keywords("How do I send a text message?"))
    ['message', 'send', 'text']
    """
    cleaned = _PUNCTUATION.sub(" ", (query or "").lower())
    return frozenset(
        token for token in cleaned.split()
        if len(token) > 1 and Vocabulary.is_significant(token)
    )


# =============================================================================
# Endpoint Scoring
# =============================================================================

def build_haystack(endpoint: Endpoint) -> str:
    """Searchable text of an endpoint: path, description, category, then parameters."""
    parts = [endpoint.path, endpoint.description, endpoint.category or ""]
    parts.extend(f"{p.name} {p.description}" for p in endpoint.parameters)
    return " ".join(parts).lower()


def score_endpoint(
    endpoint: Endpoint,
    keywords: Iterable[str],
    normalized_query: str,
    weights: Optional[Dict[str, int]] = None,
    explain: bool = False,
) -> int | tuple[int, dict]:
    """
    Calculate the relevance of *endpoint* for one query.

    Scoring components, per keyword:
      - keyword anywhere in the haystack       (+1)
      - keyword inside the path                (+2)
      - keyword equals the HTTP method         (+3)
      - keyword inside the category            (+1)
    plus, once per query:
      - full normalized query inside haystack  (+5)

    The point values come from *weights* (``ApidexConfig.ranking_weights``).

    Args:
        endpoint: The endpoint to score.
        keywords: Output of :func:`extract_keywords`.
        normalized_query: Output of :func:`normalize_query`.
        weights: Point values; defaults to the stock configuration.
        explain: If True, return (score, explanation_dict) with breakdown.

    Returns:
        A non-negative integer score, or ``(score, explanation)``.
    """
    w = weights or _default_weights()
    haystack = build_haystack(endpoint)
    path = endpoint.path.lower()
    method = endpoint.method.lower()
    category = (endpoint.category or "").lower()

    score = 0
    breakdown: Dict[str, int] = {}

    def _award(component: str) -> None:
        nonlocal score
        points = w.get(component, 0)
        score += points
        breakdown[component] = breakdown.get(component, 0) + points

    for keyword in keywords:
        if keyword in haystack:
            _award("keyword_match")
        if keyword in path:
            _award("path_match")
        if keyword == method:
            _award("method_match")
        if category and keyword in category:
            _award("category_match")

    # An empty query would be a substring of everything.
    if normalized_query and normalized_query in haystack:
        _award("phrase_match")

    score = max(score, 0)
    if explain:
        return score, breakdown
    return score


# =============================================================================
# Service Matching
# =============================================================================

def match_service(
    document: Document,
    keywords: Iterable[str],
    normalized_query: str,
    limit: int = DEFAULT_MATCH_LIMIT,
    weights: Optional[Dict[str, int]] = None,
    explain: bool = False,
) -> List[Match]:
    """
    Score every searchable endpoint of *document* and keep the best ones.

    Endpoints scoring 0 are dropped.  The rest are ordered by score,
    highest first; ties keep document order.  At most *limit* matches are
    returned (``limit <= 0`` means no cap).
    """
    keywords = frozenset(keywords)
    matches: List[Match] = []
    for endpoint in document.endpoints:
        if not endpoint.is_searchable:
            continue
        if explain:
            score, breakdown = score_endpoint(
                endpoint, keywords, normalized_query, weights=weights, explain=True,
            )
        else:
            score = score_endpoint(endpoint, keywords, normalized_query, weights=weights)
            breakdown = None
        if score > 0:
            matches.append(Match(endpoint=endpoint, score=score, explanation=breakdown))

    # list.sort is stable, so equal scores stay in document order
    matches.sort(key=lambda m: m.score, reverse=True)
    if limit and limit > 0:
        matches = matches[:limit]

    logger.debug(f"{document.name}: {len(matches)} matching endpoints")
    return matches
