"""
Apidex Search Engine

Cross-service search and exact retrieval over stored API documentation.

- Natural-language search ranked across every stored service
- Concurrent document fetches with per-fetch timeout and per-service isolation
- Exact retrieval filtered by method, path fragment, or text
- Multiple output formats (console, JSON, compact)
"""

import json
import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from apidex.core.config import ApidexConfig
from apidex.core.engine import extract_keywords, match_service, normalize_query
from apidex.core.models import Document, Endpoint, ServiceResult
from apidex.core.storage import DocumentSource
from apidex.exceptions import (
    DocumentNotFoundError,
    EndpointNotFoundError,
    MalformedDocumentError,
    SearchError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Search Engine
# =============================================================================

class DocumentSearchEngine:
    """
    Ranks endpoints across all services known to a :class:`DocumentSource`.

    One search runs in three steps:

    1. **Extract** keywords and the normalized query once.
    2. **Match** every service: fetch its document and score each endpoint.
       Fetches fan out over a thread pool; a service whose fetch fails,
       times out, or yields a malformed document is skipped.
    3. **Rank** services by their best match, ties in enumeration order.

    The engine keeps no per-query state, so one instance may serve
    concurrent searches.
    """

    def __init__(self, source: DocumentSource, config: ApidexConfig | None = None):
        self._config = config or ApidexConfig.from_env()
        self.source = source
        # Time (seconds) of the last search, from keyword extraction to ranked list
        self._last_elapsed_seconds: float = 0.0

    @property
    def last_search_elapsed_seconds(self) -> float:
        """Elapsed time (seconds) of the last :meth:`search` call."""
        return self._last_elapsed_seconds

    # ── Public API ────────────────────────────────────────────────

    def search(self, query: str,
               service_ids: Optional[Sequence[str]] = None,
               max_matches: Optional[int] = None,
               max_services: Optional[int] = None,
               explain: bool = False) -> List[ServiceResult]:
        """
        Rank endpoints of all services against a free-text *query*.

        Args:
            query: Natural-language query (e.g. "send a text message").
            service_ids: Services to search; defaults to every stored service.
            max_matches: Matches kept per service (default from config, 5).
            max_services: Services returned (default from config; 0 = all).
            explain: Attach a scoring breakdown to each match.

        Returns:
            Services with at least one match, best first.

        Raises:
            SearchError: If the list of services cannot be obtained, or
                *max_matches* is below 1 or *max_services* below 0.
        """
        if not query or not query.strip():
            logger.debug("Blank query: nothing to search")
            self._last_elapsed_seconds = 0.0
            return []

        limit = max_matches if max_matches is not None else self._config.max_matches_per_service
        cap = max_services if max_services is not None else self._config.max_search_services
        if limit < 1:
            raise SearchError(f"max_matches must be >= 1 (got {limit})")
        if cap < 0:
            raise SearchError(f"max_services must be >= 0 (got {cap})")

        t0 = time.perf_counter()
        keywords = extract_keywords(query)
        normalized = normalize_query(query)
        logger.info(f"Query: '{query}' → keywords: {sorted(keywords)}")

        if service_ids is None:
            try:
                service_ids = self.source.list_service_ids()
            except Exception as exc:
                raise SearchError(f"Could not list stored services: {exc}") from exc

        results = self._match_all(list(service_ids), keywords, normalized, limit, explain)

        # sort is stable: equal best scores keep enumeration order
        results.sort(key=lambda r: r.best_score, reverse=True)
        if cap and cap > 0:
            results = results[:cap]

        self._last_elapsed_seconds = time.perf_counter() - t0
        logger.debug(
            f"{len(results)} services matched in {self._last_elapsed_seconds:.4f}s"
        )
        return results

    # ── Per-service matching ──────────────────────────────────────

    def _match_one(self, service_id: str, keywords, normalized: str,
                   limit: int, explain: bool) -> Optional[ServiceResult]:
        """Fetch one document and build its result (None when nothing matches)."""
        document = self.source.fetch_document(service_id)
        matches = match_service(
            document, keywords, normalized,
            limit=limit, weights=self._config.ranking_weights, explain=explain,
        )
        if not matches:
            return None
        return ServiceResult(
            service_id=service_id,
            service_name=document.name,
            description=document.description,
            base_url=document.base_url,
            matches=matches,
        )

    def _match_all(self, service_ids: List[str], keywords, normalized: str,
                   limit: int, explain: bool) -> List[ServiceResult]:
        """
        Run :meth:`_match_one` for every service and collect results in
        *service_ids* order, skipping services that fail.
        """
        if not service_ids:
            return []

        timeout = self._config.fetch_timeout_seconds
        slots = max(1, min(self._config.max_concurrent_fetches, len(service_ids)))
        # One thread per service so an abandoned fetch never holds a slot;
        # at most `slots` fetches are live at any time.
        executor = ThreadPoolExecutor(max_workers=len(service_ids),
                                      thread_name_prefix="apidex-fetch")
        queue = list(enumerate(service_ids))
        queue.reverse()
        running: Dict[Future, Tuple[int, str, float]] = {}
        outcomes: Dict[int, ServiceResult] = {}
        try:
            while queue or running:
                while queue and len(running) < slots:
                    idx, sid = queue.pop()
                    future = executor.submit(
                        self._match_one, sid, keywords, normalized, limit, explain,
                    )
                    running[future] = (idx, sid, time.perf_counter())

                earliest = min(started for _, _, started in running.values())
                wait_for = max(0.0, earliest + timeout - time.perf_counter())
                done, _ = wait(running, timeout=wait_for, return_when=FIRST_COMPLETED)

                for future in done:
                    idx, sid, _ = running.pop(future)
                    result = self._collect(sid, future)
                    if result is not None:
                        outcomes[idx] = result

                now = time.perf_counter()
                for future, (idx, sid, started) in list(running.items()):
                    if now - started >= timeout:
                        del running[future]
                        logger.warning(f"Skipping {sid}: fetch timed out after {timeout}s")
        finally:
            # Do not block on fetches that timed out
            executor.shutdown(wait=False, cancel_futures=True)
        return [outcomes[idx] for idx in sorted(outcomes)]

    @staticmethod
    def _collect(sid: str, future: Future) -> Optional[ServiceResult]:
        """Return a finished fetch's result, logging and dropping failures."""
        try:
            return future.result()
        except (DocumentNotFoundError, MalformedDocumentError) as exc:
            logger.warning(f"Skipping {sid}: {exc}")
        except Exception as exc:
            logger.warning(f"Skipping {sid}: error while searching ({exc!r})")
        return None


# =============================================================================
# Exact Retrieval
# =============================================================================

def filter_endpoints(document: Document, method: Optional[str] = None,
                     path: Optional[str] = None,
                     query: Optional[str] = None) -> Document:
    """
    Return a copy of *document* keeping only endpoints that pass every filter.

    Args:
        method: HTTP verb, compared case-insensitively.
        path: Fragment that must appear in the endpoint path (case-insensitive).
        query: Text that must appear in the path, description, or category.
    """
    method = (method or "").strip().lower()
    path = (path or "").strip().lower()
    query = (query or "").strip().lower()
    if not (method or path or query):
        return document

    def _keep(endpoint: Endpoint) -> bool:
        if method and endpoint.method.lower() != method:
            return False
        if path and path not in endpoint.path.lower():
            return False
        if query and not (
            query in endpoint.path.lower()
            or query in endpoint.description.lower()
            or query in (endpoint.category or "").lower()
        ):
            return False
        return True

    return replace(document, endpoints=tuple(e for e in document.endpoints if _keep(e)))


def find_endpoint(document: Document, fragment: str) -> Endpoint:
    """
    Return the first endpoint whose path or description contains *fragment*.

    Raises:
        EndpointNotFoundError: No endpoint matches; ``available`` lists
            the document's endpoints.
    """
    needle = (fragment or "").strip().lower()
    if needle:
        for endpoint in document.endpoints:
            if needle in endpoint.path.lower() or needle in endpoint.description.lower():
                return endpoint
    raise EndpointNotFoundError(
        f"Endpoint {fragment} not found in {document.name} documentation",
        available=[{"path": e.path, "description": e.description} for e in document.endpoints],
    )


# =============================================================================
# Result Formatting
# =============================================================================

class ResultFormatter:
    """Format search results and documents for different output modes."""

    # ── Console (human-friendly) ──────────────────────────────────

    @staticmethod
    def format_console(results: List[ServiceResult],
                       elapsed_time: float | None = None) -> str:
        """
        Console output: one block per service, one line per matching
        endpoint with its relevance and (when present) scoring breakdown.
        """
        if not results:
            return "\n  No matching endpoints found.\n"

        import shutil
        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width

        total = sum(len(r.matches) for r in results)
        header = (
            f"  APIDEX — {total} endpoint{'s' if total != 1 else ''} "
            f"in {len(results)} service{'s' if len(results) != 1 else ''}"
        )
        if elapsed_time is not None:
            header += f" ({f'{elapsed_time:.4f}'.replace(',', '.')} seconds)"

        out: List[str] = [f"\n{thin}", header, thin]
        for idx, r in enumerate(results, start=1):
            out.append("")
            out.append(f"  #{idx}  {r.service_name}  (best: {r.best_score})")
            if r.base_url:
                out.append(f"      {r.base_url}")
            out.append(f"  {'─' * (width - 2)}")
            for m in r.matches:
                e = m.endpoint
                out.append(f"    [{m.score:>3}] {e.method:<6} {e.path}")
                if e.description:
                    out.append(f"          {e.description}")
                if m.explanation:
                    parts = [f"{k.replace('_match', '')}(+{v})" for k, v in m.explanation.items()]
                    out.append(f"          Explain: {' '.join(parts)}")
        out.append(f"\n{thin}")
        return "\n".join(out)

    # ── JSON ──────────────────────────────────────────────────────

    @staticmethod
    def format_json(results: List[ServiceResult], query: str | None = None) -> str:
        """Format results as JSON; wraps them with the query when one is given."""
        payload = [r.to_dict() for r in results]
        if query is not None:
            return json.dumps({"query": query, "results": payload}, indent=2, allow_nan=False)
        return json.dumps(payload, indent=2, allow_nan=False)

    # ── Compact (one line per endpoint) ───────────────────────────

    @staticmethod
    def format_compact(results: List[ServiceResult]) -> str:
        """One line per matching endpoint: ``service  METHOD path  relevance``."""
        if not results:
            return "No matching endpoints found."
        lines: List[str] = []
        for r in results:
            for m in r.matches:
                lines.append(f"{r.service_id}  {m.endpoint.method} {m.endpoint.path}  [{m.score}]")
        return "\n".join(lines)

    # ── Documents ─────────────────────────────────────────────────

    @staticmethod
    def format_document(document: Document) -> str:
        """Console rendering of one service document and its endpoints."""
        thin = "─" * 60
        out = [thin, f"  {document.name}", thin]
        if document.description:
            out.append(f"  {document.description}")
        if document.base_url:
            out.append(f"  Base URL : {document.base_url}")
        out.append(f"  Endpoints: {len(document.endpoints)}")
        for e in document.endpoints:
            out.append("")
            out.append(f"  {e.method:<6} {e.path}")
            if e.category:
                out.append(f"         Category: {e.category}")
            if e.description:
                out.append(f"         {e.description}")
            for p in e.parameters:
                flag = " (required)" if p.required else ""
                kind = f" <{p.type}>" if p.type else ""
                out.append(f"           - {p.name}{kind}{flag}: {p.description}")
        out.append(thin)
        return "\n".join(out)
