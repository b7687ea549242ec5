"""
Apidex Client Facade

Single entry point for programmatic use of Apidex.  Wraps the document
store, exact retrieval, and cross-service search behind one
instance-based API with optional async support.  The CLI and the MCP
server are thin adapters over this class.

Usage::

    from apidex import Apidex

    # From environment variables (APIDEX_DATA_DIR, ...)
    client = Apidex()

    # With explicit configuration
    from apidex.core.config import ApidexConfig
    client = Apidex(config=ApidexConfig(data_dir=Path("./data")))

    # Search every stored service
    for service in client.search("send a text message"):
        for match in service.matches:
            print(service.service_name, match.endpoint.method, match.endpoint.path, match.score)

    # Exact retrieval
    doc = client.get_documentation("twilio", method="POST", path="/messages")

    # Async variants (for FastAPI / Django async views)
    results = await client.asearch("send a text message")
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List

from apidex.core.config import ApidexConfig
from apidex.core.models import Document, Endpoint, ServiceResult, ServiceSummary
from apidex.core.search import DocumentSearchEngine, filter_endpoints, find_endpoint
from apidex.core.storage import DocumentSource, DocumentStore

logger = logging.getLogger(__name__)


class Apidex:
    """
    High-level Apidex client.

    Each instance carries its own :class:`ApidexConfig` and never touches
    global state, making it safe for multi-tenant services and testing.

    Args:
        config: Explicit configuration object.  When *None*, a config
            is built from environment variables or keyword overrides.
        source: Document source to search.  Defaults to a
            :class:`DocumentStore` over ``config.data_dir``.
        validate_on_init: If True, call :meth:`ApidexConfig.validate` in
            __init__ so invalid limits surface immediately.
        **kwargs: Forwarded to :class:`ApidexConfig` when *config* is
            ``None`` (e.g. ``data_dir="./data"``).
    """

    def __init__(
        self,
        config: ApidexConfig | None = None,
        *,
        source: DocumentSource | None = None,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = ApidexConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            merged["data_dir"] = Path(merged["data_dir"])
            self._config = ApidexConfig(**merged)
        else:
            self._config = ApidexConfig.from_env()

        if validate_on_init:
            self._config.validate()

        self._source = source
        self._engine: DocumentSearchEngine | None = None

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> ApidexConfig:
        """The active configuration for this client."""
        return self._config

    @property
    def source(self) -> DocumentSource:
        """Document source in use (created lazily)."""
        if self._source is None:
            self._source = DocumentStore(config=self._config)
        return self._source

    @property
    def store(self) -> DocumentStore:
        """The writable :class:`DocumentStore`; only available for file-backed clients."""
        if not isinstance(self.source, DocumentStore):
            raise TypeError("This client searches a custom source, not a DocumentStore")
        return self.source

    # ── Search ────────────────────────────────────────────────────

    def search(
        self,
        query: str,
        *,
        max_services: int | None = None,
        max_matches: int | None = None,
        explain: bool = False,
    ) -> List[ServiceResult]:
        """
        Rank endpoints of every stored service against *query*.

        Args:
            query: Free-text description of the task (e.g. "send an email").
            max_services: Maximum services to return (default: all).
            max_matches: Matches per service (default: 5).
            explain: Attach a scoring breakdown to every match.

        Returns:
            Services with at least one matching endpoint, best first.
            A blank query yields an empty list.

        Raises:
            SearchError: If the stored services cannot be enumerated.
        """
        return self._get_engine().search(
            query, max_matches=max_matches, max_services=max_services, explain=explain,
        )

    # ── Exact retrieval ───────────────────────────────────────────

    def get_documentation(
        self,
        service: str,
        *,
        method: str | None = None,
        path: str | None = None,
        query: str | None = None,
    ) -> Document:
        """
        Return the document of *service*, optionally narrowed to matching endpoints.

        Args:
            service: Service id (case-insensitive), e.g. ``"twilio"``.
            method: Keep endpoints with this HTTP verb.
            path: Keep endpoints whose path contains this fragment.
            query: Keep endpoints whose path, description, or category contains this text.

        Raises:
            DocumentNotFoundError: If nothing is stored for *service*.
            MalformedDocumentError: If the stored document is unreadable.
        """
        document = self.source.fetch_document(service.lower())
        return filter_endpoints(document, method=method, path=path, query=query)

    def find_endpoint(self, service: str, fragment: str) -> Endpoint:
        """
        Return the first endpoint of *service* whose path or description
        contains *fragment*.

        Raises:
            DocumentNotFoundError: If nothing is stored for *service*.
            EndpointNotFoundError: If no endpoint matches.
        """
        return find_endpoint(self.source.fetch_document(service.lower()), fragment)

    def list_services(self) -> List[ServiceSummary]:
        """Return a summary of every stored document."""
        if isinstance(self.source, DocumentStore):
            return self.source.list_summaries()
        summaries: List[ServiceSummary] = []
        for service_id in self.source.list_service_ids():
            doc = self.source.fetch_document(service_id)
            summaries.append(ServiceSummary(
                service=service_id, name=doc.name, title=doc.title or service_id,
                description=doc.description, version=doc.version,
                endpoint_count=len(doc.endpoints), last_updated=doc.last_updated,
            ))
        return summaries

    # ── Storage ───────────────────────────────────────────────────

    def import_document(self, path: str | Path, service_id: str | None = None) -> Path:
        """
        Validate a normalized JSON document and copy it into the store.

        Returns:
            Path of the stored file.
        """
        return self.store.import_file(Path(path), service_id=service_id)

    # ── Async variants ────────────────────────────────────────────
    # These use asyncio.to_thread() to run sync operations off the
    # event loop. They raise the same exceptions as the sync methods.

    async def asearch(
        self,
        query: str,
        *,
        max_services: int | None = None,
        max_matches: int | None = None,
        explain: bool = False,
    ) -> List[ServiceResult]:
        """Async variant of :meth:`search`. Raises same exceptions as sync."""
        return await asyncio.to_thread(
            self.search, query,
            max_services=max_services, max_matches=max_matches, explain=explain,
        )

    async def aget_documentation(
        self,
        service: str,
        *,
        method: str | None = None,
        path: str | None = None,
        query: str | None = None,
    ) -> Document:
        """Async variant of :meth:`get_documentation`. Raises same exceptions as sync."""
        return await asyncio.to_thread(
            self.get_documentation, service, method=method, path=path, query=query,
        )

    async def alist_services(self) -> List[ServiceSummary]:
        """Async variant of :meth:`list_services`."""
        return await asyncio.to_thread(self.list_services)

    # ── Health (for agents / status endpoints) ─────────────────────

    def health(self) -> Dict[str, object]:
        """
        Return a small status dict for agents or REST health checks.

        Reads only the service list, never a full document.
        """
        from apidex import __version__

        return {
            "version": __version__,
            "data_dir": str(self._config.data_dir),
            "services": len(self.source.list_service_ids()),
        }

    # ── Internal helpers ──────────────────────────────────────────

    def _get_engine(self) -> DocumentSearchEngine:
        """Return the search engine, creating it on first use."""
        if self._engine is None:
            self._engine = DocumentSearchEngine(self.source, config=self._config)
        return self._engine
