"""
Apidex Data Models

Typed, read-only views over the JSON documents kept by the store.
Persisted documents use camelCase keys (``baseUrl``, ``lastUpdated``) and
may omit optional fields; :meth:`Document.from_dict` normalizes them once so
the rest of the code never has to second-guess the shape.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from apidex.exceptions import MalformedDocumentError

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    """Coerce an optional JSON scalar to a stripped string."""
    if value is None:
        return ""
    return str(value).strip()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed); None when absent or invalid."""
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp: {value!r}")
        return None


# =============================================================================
# Document components
# =============================================================================

@dataclass(frozen=True)
class Parameter:
    """One documented request parameter of an endpoint."""
    name: str
    description: str = ""
    required: bool = False
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Parameter":
        if not isinstance(data, dict):
            raise MalformedDocumentError(f"Parameter must be an object, got {type(data).__name__}")
        return cls(
            name=_text(data.get("name")),
            description=_text(data.get("description")),
            required=bool(data.get("required", False)),
            type=_text(data.get("type")) or None,
        )

    def to_dict(self) -> dict:
        obj = {
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }
        if self.type:
            obj["type"] = self.type
        return obj


@dataclass(frozen=True)
class Endpoint:
    """One documented HTTP operation (method + path) of a service."""
    method: str
    path: str
    description: str = ""
    category: Optional[str] = None
    parameters: tuple = ()
    """Ordered :class:`Parameter` entries."""
    example: Any = None
    """Free-form request example, passed through untouched."""

    @property
    def is_searchable(self) -> bool:
        """Only endpoints with both a method and a path take part in search."""
        return bool(self.method) and bool(self.path)

    @classmethod
    def from_dict(cls, data: Any) -> "Endpoint":
        if not isinstance(data, dict):
            raise MalformedDocumentError(f"Endpoint must be an object, got {type(data).__name__}")
        raw_params = data.get("parameters") or []
        if not isinstance(raw_params, list):
            raise MalformedDocumentError(
                f"Endpoint {data.get('path')!r}: 'parameters' must be a list"
            )
        return cls(
            method=_text(data.get("method")).upper(),
            path=_text(data.get("path")),
            description=_text(data.get("description")),
            category=_text(data.get("category")) or None,
            parameters=tuple(Parameter.from_dict(p) for p in raw_params),
            example=data.get("example"),
        )

    def to_dict(self) -> dict:
        obj = {
            "method": self.method,
            "path": self.path,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
        }
        if self.category:
            obj["category"] = self.category
        if self.example is not None:
            obj["example"] = self.example
        return obj


@dataclass(frozen=True)
class Category:
    """A named group of endpoints, as listed in the source documentation."""
    name: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Category":
        if isinstance(data, str):
            return cls(name=data.strip())
        if not isinstance(data, dict):
            raise MalformedDocumentError(f"Category must be an object, got {type(data).__name__}")
        return cls(name=_text(data.get("name")), description=_text(data.get("description")))

    def to_dict(self) -> dict:
        return {"name": self.name, "description": self.description}


@dataclass(frozen=True)
class Document:
    """The normalized documentation of one service (e.g. Twilio)."""
    name: str
    description: str = ""
    base_url: str = ""
    endpoints: tuple = ()
    """Ordered :class:`Endpoint` entries; document order is the tie-break for ranking."""
    categories: tuple = ()
    last_updated: Optional[datetime] = None
    version: str = ""
    title: str = ""

    @classmethod
    def from_dict(cls, data: Any, service_id: str = "") -> "Document":
        """
        Build a :class:`Document` from its persisted JSON form.

        Args:
            data: Decoded JSON payload.
            service_id: Store key, used as the name of last resort.

        Raises:
            MalformedDocumentError: If *data* is not an object, has no
                ``endpoints`` list, or contains a malformed entry.
        """
        label = service_id or "document"
        if not isinstance(data, dict):
            raise MalformedDocumentError(f"{label}: expected a JSON object, got {type(data).__name__}")
        if "endpoints" not in data:
            raise MalformedDocumentError(f"{label}: missing 'endpoints' field")
        raw_endpoints = data["endpoints"]
        if not isinstance(raw_endpoints, list):
            raise MalformedDocumentError(f"{label}: 'endpoints' must be a list")
        raw_categories = data.get("categories") or []
        if not isinstance(raw_categories, list):
            raise MalformedDocumentError(f"{label}: 'categories' must be a list")

        title = _text(data.get("title"))
        return cls(
            name=_text(data.get("name")) or title or service_id,
            description=_text(data.get("description")),
            base_url=_text(data.get("baseUrl")),
            endpoints=tuple(Endpoint.from_dict(e) for e in raw_endpoints),
            categories=tuple(Category.from_dict(c) for c in raw_categories),
            last_updated=_parse_timestamp(data.get("lastUpdated")),
            version=_text(data.get("version")),
            title=title,
        )

    def to_dict(self) -> dict:
        """Return the persisted (camelCase) JSON form."""
        obj = {
            "name": self.name,
            "description": self.description,
            "baseUrl": self.base_url,
            "endpoints": [e.to_dict() for e in self.endpoints],
            "categories": [c.to_dict() for c in self.categories],
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }
        if self.version:
            obj["version"] = self.version
        if self.title:
            obj["title"] = self.title
        return obj


# =============================================================================
# Search results
# =============================================================================

@dataclass(frozen=True)
class Match:
    """An endpoint paired with its relevance score for one query."""
    endpoint: Endpoint
    score: int
    explanation: dict | None = None
    """Optional scoring breakdown (when explain=True)."""

    def to_dict(self) -> dict:
        obj = self.endpoint.to_dict()
        obj["relevance"] = self.score
        if self.explanation:
            obj["explanation"] = dict(self.explanation)
        return obj


@dataclass
class ServiceResult:
    """The top matches of one service for one query."""
    service_id: str
    service_name: str
    description: str
    base_url: str
    matches: List[Match] = field(default_factory=list)

    @property
    def best_score(self) -> int:
        return max((m.score for m in self.matches), default=0)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict for API/agent pipelines."""
        return {
            "service": self.service_name,
            "serviceId": self.service_id,
            "description": self.description,
            "baseUrl": self.base_url,
            "matches": [m.to_dict() for m in self.matches],
        }


@dataclass
class ServiceSummary:
    """Headline information about one stored document (no endpoints)."""
    service: str
    name: str
    title: str = ""
    description: str = ""
    version: str = ""
    endpoint_count: int = 0
    last_updated: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "version": self.version,
            "endpointCount": self.endpoint_count,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }
