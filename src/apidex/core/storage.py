"""
Apidex Document Store

Flat-file JSON persistence: one ``<service>.json`` per service inside the
configured data directory.  The store is the collaborator the search engine
depends on; it knows how to enumerate service ids and how to load one
normalized :class:`~apidex.core.models.Document`.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Protocol, Union

from apidex.core.config import ApidexConfig
from apidex.core.models import Document, ServiceSummary
from apidex.exceptions import DocumentNotFoundError, MalformedDocumentError

logger = logging.getLogger(__name__)


class DocumentSource(Protocol):
    """Anything that can enumerate services and load their documents."""

    def list_service_ids(self) -> List[str]:
        ...

    def fetch_document(self, service_id: str) -> Document:
        ...


class DocumentStore:
    """
    Read and write service documents under a data directory.

    Args:
        data_dir: Directory holding ``<service>.json`` files.  Defaults to
            ``config.data_dir``.
        config: Instance-based configuration.
    """

    def __init__(self, data_dir: Path | None = None, config: ApidexConfig | None = None):
        self._config = config or ApidexConfig.from_env()
        self.data_dir = Path(data_dir) if data_dir is not None else Path(self._config.data_dir)
        self._suffix = self._config.document_suffix

    # ── Lookup ────────────────────────────────────────────────────

    def _path_for(self, service_id: str) -> Path:
        """Map a service id to its file, rejecting ids that escape the data directory."""
        key = (service_id or "").strip().lower()
        if not key or os.sep in key or "/" in key or key in (".", ".."):
            raise DocumentNotFoundError(f"Documentation for {service_id!r} not found")
        return self.data_dir / f"{key}{self._suffix}"

    def _document_files(self) -> Dict[str, Path]:
        """Map lower-cased service ids to their files; the first name in sort order wins."""
        if not self.data_dir.is_dir():
            return {}
        files: Dict[str, Path] = {}
        for p in sorted(self.data_dir.iterdir()):
            if p.is_file() and p.name.lower().endswith(self._suffix):
                files.setdefault(p.name[: -len(self._suffix)].lower(), p)
        return files

    def _locate(self, service_id: str) -> Path:
        """Return the stored file for *service_id*, whatever the case of its name on disk."""
        path = self._path_for(service_id)
        if path.is_file():
            return path
        return self._document_files().get(path.name[: -len(self._suffix)], path)

    def list_service_ids(self) -> List[str]:
        """Return the (lower-case) ids of all stored documents, sorted."""
        return sorted(self._document_files())

    def exists(self, service_id: str) -> bool:
        try:
            return self._locate(service_id).is_file()
        except DocumentNotFoundError:
            return False

    def _read_json(self, path: Path, service_id: str):
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise MalformedDocumentError(f"{service_id}: invalid JSON ({exc})") from exc

    def fetch_document(self, service_id: str) -> Document:
        """
        Load and normalize the document stored for *service_id*.

        Raises:
            DocumentNotFoundError: No file exists for this id.
            MalformedDocumentError: The file is not valid JSON or has the wrong shape.
        """
        path = self._locate(service_id)
        if not path.is_file():
            raise DocumentNotFoundError(f"Documentation for {service_id} not found")
        key = path.name[: -len(self._suffix)].lower()
        return Document.from_dict(self._read_json(path, key), service_id=key)

    # ── Listing ───────────────────────────────────────────────────

    def list_summaries(self) -> List[ServiceSummary]:
        """
        Return headline information for every stored document.

        Documents that cannot be read are logged and left out.
        """
        summaries: List[ServiceSummary] = []
        for service_id in self.list_service_ids():
            path = self._locate(service_id)
            try:
                doc = self.fetch_document(service_id)
            except (OSError, MalformedDocumentError) as exc:
                logger.warning(f"Skipping {service_id} in listing: {exc}")
                continue
            last_updated = doc.last_updated or datetime.fromtimestamp(
                path.stat().st_mtime, tz=timezone.utc,
            )
            summaries.append(ServiceSummary(
                service=service_id,
                name=doc.name,
                title=doc.title or service_id,
                description=doc.description,
                version=doc.version,
                endpoint_count=len(doc.endpoints),
                last_updated=last_updated,
            ))
        return summaries

    # ── Writing ───────────────────────────────────────────────────

    def save_document(self, service_id: str, document: Union[Document, dict]) -> Path:
        """
        Persist *document* as ``<service_id>.json`` and return its path.

        Plain dicts are validated through :meth:`Document.from_dict` first.
        ``lastUpdated`` is stamped with the current UTC time when absent.
        """
        path = self._path_for(service_id)
        if isinstance(document, Document):
            payload = document.to_dict()
        else:
            Document.from_dict(document, service_id=service_id)
            payload = dict(document)
        if not payload.get("lastUpdated"):
            payload["lastUpdated"] = datetime.now(timezone.utc).isoformat()

        self.data_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info(f"Documentation for {service_id} saved to {path}")
        return path

    def import_file(self, source: Path, service_id: str | None = None) -> Path:
        """
        Copy a normalized JSON document from *source* into the store.

        The service id defaults to the file stem.
        """
        source = Path(source)
        key = (service_id or source.stem).lower()
        if not source.is_file():
            raise DocumentNotFoundError(f"No such file: {source}")
        return self.save_document(key, self._read_json(source, key))
