"""
Apidex MCP Server

Exposes Apidex search and retrieval as tools that AI agents (Claude,
Cursor, Windsurf) can invoke natively via the Model Context Protocol.

Also exposes **resources** (stored services, query vocabulary) and
**prompt templates** for common lookup workflows.

Start with::

    apidex mcp                              # stdio transport (default for Cursor)
    apidex mcp --transport streamable-http  # HTTP (Streamable) for remote clients
    apidex mcp --transport sse              # SSE transport (legacy)

Or programmatically::

    from apidex.mcp.server import create_server
    server = create_server()
    server.run()
"""

from __future__ import annotations

import json
import logging
from typing import Annotated

# FastMCP uses pydantic for validation, so Field should be available
# If ImportError occurs, it indicates the apidex[mcp] extra wasn't installed
from pydantic import Field  # type: ignore[import-untyped]

from apidex.client import Apidex
from apidex.core.config import ApidexConfig, Vocabulary
from apidex.exceptions import (
    ApidexError,
    DocumentNotFoundError,
    EndpointNotFoundError,
)

logger = logging.getLogger(__name__)


# ======================================================================
# Tool bodies: plain functions returning JSON, shared by the MCP tools
# ======================================================================

def search_docs_json(client: Apidex, query: str,
                     max_services: int | None = None,
                     max_matches: int | None = None) -> str:
    """Run a cross-service search and return ``{"query", "results"}`` as JSON.

    A blank query is not an error: it yields an empty ``results`` list.
    """
    query = str(query).strip() if query is not None else ""
    try:
        results = client.search(query, max_services=max_services, max_matches=max_matches)
    except ApidexError as exc:
        return json.dumps({"error": str(exc), "results": []})
    return json.dumps({
        "query": query,
        "results": [r.to_dict() for r in results],
    }, indent=2, allow_nan=False)


def service_docs_json(client: Apidex, service: str, method: str | None = None,
                      path: str | None = None, query: str | None = None) -> str:
    """Return one service's (optionally filtered) document as JSON."""
    try:
        document = client.get_documentation(service, method=method, path=path, query=query)
    except DocumentNotFoundError:
        return json.dumps({
            "success": False,
            "error": f"Documentation for {service} not found or could not be retrieved.",
        })
    except ApidexError as exc:
        return json.dumps({"success": False, "error": str(exc)})
    return json.dumps({"success": True, "data": document.to_dict()}, indent=2, allow_nan=False)


def endpoint_docs_json(client: Apidex, api: str, endpoint: str) -> str:
    """Return the first endpoint of *api* matching *endpoint*, or the alternatives."""
    try:
        found = client.find_endpoint(api, endpoint)
    except DocumentNotFoundError:
        return json.dumps({"error": f"Documentation for {api} not found"})
    except EndpointNotFoundError as exc:
        return json.dumps({
            "error": str(exc),
            "available_endpoints": exc.available,
        }, indent=2)
    except ApidexError as exc:
        return json.dumps({"error": str(exc)})
    return json.dumps({"docs": found.to_dict()}, indent=2, allow_nan=False)


def list_services_json(client: Apidex) -> str:
    """Return summaries of all stored services; suggests a next step when empty."""
    summaries = [s.to_dict() for s in client.list_services()]
    payload: dict = {"services": summaries}
    if not summaries:
        payload["suggestion"] = "No documentation stored yet. Import a document with 'apidex import <file.json>'."
    else:
        payload["suggestion"] = "Try search_api_docs with a task description, or get_service_docs for one service."
    return json.dumps(payload, indent=2, allow_nan=False)


def create_server(config: ApidexConfig | None = None):
    """
    Build and return a configured FastMCP server instance.

    Uses a **single config for the whole server**: all tool invocations
    share the same data directory and limits.

    Args:
        config: Instance-based configuration.  Defaults to
            ``ApidexConfig.from_env()`` so that the server respects
            the same environment variables as the CLI.

    Raises ``ImportError`` if ``fastmcp`` is not installed (install
    via ``pip install 'apidex[mcp]'``).
    """
    from fastmcp import FastMCP  # type: ignore[import-untyped]

    cfg = config or ApidexConfig.from_env()
    client = Apidex(config=cfg)

    mcp = FastMCP("Apidex")

    # ==================================================================
    # Tool: search_api_docs
    # ==================================================================

    @mcp.tool()
    def search_api_docs(
        query: Annotated[
            str,
            Field(description="Natural-language description of what you want to do (e.g., 'send a text message', 'email statistics'). Keywords such as HTTP verbs (GET, POST) boost endpoints using that verb.")
        ] = "",
        max_services: Annotated[
            int | None,
            Field(ge=0, description="Maximum number of services to return. If None, every service with a match is returned.")
        ] = None,
        max_matches: Annotated[
            int | None,
            Field(ge=1, description="Maximum endpoints per service. If None, uses the config default (5).")
        ] = None,
    ) -> str:
        """Search the API documentation of every stored service and rank
        endpoints by relevance to a natural-language query.

        **When to use this tool:**
        - You need an API endpoint for a task but do not know which service offers it
        - You want to compare how several providers expose the same feature

        **When NOT to use:**
        - You already know the service: use get_service_docs with filters
        - You know the service and part of the endpoint path: use get_endpoint_docs

        Returns:
            JSON object with the query and a ``results`` array, one entry
            per service (best first), each with up to ``max_matches``
            endpoints carrying a ``relevance`` score.
        """
        return search_docs_json(client, query, max_services=max_services, max_matches=max_matches)

    # ==================================================================
    # Tool: get_service_docs
    # ==================================================================

    @mcp.tool()
    def get_service_docs(
        service: Annotated[
            str,
            Field(description="Service id as listed by list_services (e.g., 'twilio', 'sendgrid'). Case-insensitive.")
        ],
        method: Annotated[
            str | None,
            Field(description="Keep only endpoints using this HTTP method (e.g., 'POST').")
        ] = None,
        path: Annotated[
            str | None,
            Field(description="Keep only endpoints whose path contains this fragment (e.g., '/messages').")
        ] = None,
        query: Annotated[
            str | None,
            Field(description="Keep only endpoints whose path, description, or category contains this text.")
        ] = None,
    ) -> str:
        """Return the stored documentation of one service, optionally
        narrowed by HTTP method, path fragment, or text.

        Returns:
            JSON object ``{"success": true, "data": {...document...}}`` or
            ``{"success": false, "error": ...}`` when the service is unknown.
        """
        return service_docs_json(client, service, method=method, path=path, query=query)

    # ==================================================================
    # Tool: get_endpoint_docs
    # ==================================================================

    @mcp.tool()
    def get_endpoint_docs(
        api: Annotated[
            str,
            Field(description="Service id (e.g., 'sendgrid').")
        ],
        endpoint: Annotated[
            str,
            Field(description="Fragment of the endpoint path or description (e.g., 'mail/send' or 'validate').")
        ],
    ) -> str:
        """Return the documentation of a single endpoint: the first one in
        the service whose path or description contains the fragment.

        When nothing matches, the response lists the service's available
        endpoints so you can retry with a better fragment.
        """
        return endpoint_docs_json(client, api, endpoint)

    # ==================================================================
    # Tool: list_services
    # ==================================================================

    @mcp.tool()
    def list_services() -> str:
        """List every service with stored documentation.

        **Use this first** to learn which service ids exist.

        Returns:
            JSON with a ``services`` array (name, description, endpoint
            count, last update) and a ``suggestion`` for the next step.
        """
        return list_services_json(client)

    # ==================================================================
    # Tool: health (readiness check)
    # ==================================================================

    @mcp.tool()
    def health() -> str:
        """Check that the Apidex MCP server is running and responsive.

        Returns:
            JSON with status, version, data directory, and service count.
        """
        return json.dumps({"status": "ok", **client.health()})

    # ==================================================================
    # Resources
    # ==================================================================

    @mcp.resource("apidex://services")
    def services_resource() -> str:
        """Return summaries of all stored service documents."""
        return json.dumps([s.to_dict() for s in client.list_services()], indent=2)

    @mcp.resource("apidex://vocabulary")
    def vocabulary_resource() -> str:
        """Return the stop words, domain words, and ranking weights used by search."""
        return json.dumps({
            **Vocabulary.as_dict(),
            "ranking_weights": cfg.ranking_weights,
            "max_matches_per_service": cfg.max_matches_per_service,
        }, indent=2)

    # ==================================================================
    # Prompt templates
    # ==================================================================

    @mcp.prompt()
    def find_endpoint_for_task(task: str) -> str:
        """Pre-built prompt: find the best endpoint for a task across all services."""
        return (
            f"Call search_api_docs with the query '{task}'. For the top service, "
            "call get_endpoint_docs with the path of its best match and explain "
            "which parameters are required and how to call it."
        )

    @mcp.prompt()
    def compare_services(feature: str) -> str:
        """Pre-built prompt: compare how stored services expose one feature."""
        return (
            "Call list_services to see the stored services, then search_api_docs "
            f"with the query '{feature}'. For each service that matches, summarize "
            "the relevant endpoint (method, path, required parameters) and point "
            "out the differences between providers."
        )

    return mcp
