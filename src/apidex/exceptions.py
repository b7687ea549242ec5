"""
Apidex Exception Hierarchy

Structured exceptions for clear error handling across CLI, API, and MCP
consumers.  Each exception type maps to a specific failure mode so that
callers can handle errors precisely without parsing message strings.

Usage::

    from apidex.exceptions import ApidexError, DocumentNotFoundError

    try:
        doc = client.get_documentation("twilio")
    except DocumentNotFoundError:
        print("Run 'apidex import twilio.json' first.")
    except ApidexError as exc:
        print(f"Apidex error: {exc}")
"""

from typing import Dict, List, Optional


class ApidexError(Exception):
    """Base exception for all Apidex errors."""


class ConfigError(ApidexError, ValueError):
    """Configuration is invalid or incomplete (e.g. negative match limit)."""


class DocumentNotFoundError(ApidexError, FileNotFoundError):
    """No stored documentation exists for the requested service.

    Inherits from ``FileNotFoundError`` for intuitive exception handling.
    """


class MalformedDocumentError(ApidexError, ValueError):
    """A stored document is unreadable or does not have the expected shape."""


class EndpointNotFoundError(ApidexError, LookupError):
    """No endpoint in a service document matches the requested fragment.

    Carries the service's endpoints as ``{path, description}`` dicts so
    callers can suggest alternatives.
    """

    def __init__(self, message: str, available: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.available = available or []


class SearchError(ApidexError):
    """Error during search execution (e.g. service enumeration failed)."""
