"""Local copies of uploaded documents with JSON metadata sidecars."""

from __future__ import annotations

import json
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from app.core.errors import NotFoundError
from app.core.logging import get_logger
from app.models.workspace import StoredDocumentMetadata

logger = get_logger(__name__)

METADATA_SUFFIX = ".meta.json"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
CONTENT_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}

_UNSAFE_ID_RE = re.compile(r"[^a-zA-Z0-9\-_]")
_DOCUMENT_UUID_RE = re.compile(
    r"-([a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})\.json$",
    re.IGNORECASE,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_content_type(filename: str, explicit: str | None = None) -> str:
    if explicit:
        return explicit
    return CONTENT_TYPES.get(Path(filename).suffix.lower(), DEFAULT_CONTENT_TYPE)


def split_document_filename(filename: str) -> tuple[str | None, str]:
    """Split ``name-<uuid>.json`` into ``(uuid, name)``."""

    match = _DOCUMENT_UUID_RE.search(filename)
    if match:
        return match.group(1), filename[: match.start()]
    return None, re.sub(r"\.json$", "", filename, flags=re.IGNORECASE)


@dataclass(slots=True)
class StoredFile:
    path: Path
    download_name: str
    content_type: str
    metadata: StoredDocumentMetadata | None


class DocumentStore:
    """Per-workspace directory of ``<id><ext>`` files plus ``<id>.meta.json`` records."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def workspace_dir(self, workspace_slug: str) -> Path:
        return self.root / Path(workspace_slug).name

    def save(
        self,
        workspace_slug: str,
        original_name: str,
        content: bytes,
        *,
        mime_type: str | None = None,
        doc_filename: str | None = None,
        doc_path: str | None = None,
        doc_id: str | None = None,
        metadata_id: str | None = None,
    ) -> StoredDocumentMetadata:
        directory = self.workspace_dir(workspace_slug)
        directory.mkdir(parents=True, exist_ok=True)

        unique_id = _UNSAFE_ID_RE.sub("", metadata_id or doc_id or "") or str(uuid.uuid4())
        stored_name = f"{unique_id}{Path(original_name).suffix.lower()}"
        (directory / stored_name).write_bytes(content)

        metadata = StoredDocumentMetadata(
            original_name=original_name,
            stored_name=stored_name,
            doc_filename=doc_filename,
            doc_path=doc_path,
            doc_id=doc_id,
            metadata_id=metadata_id,
            mime_type=mime_type,
        )
        self._write_metadata(directory / f"{unique_id}{METADATA_SUFFIX}", metadata)
        logger.info("storage.document.saved", workspace=workspace_slug, stored_name=stored_name)
        return metadata

    def locate(self, workspace_slug: str, filename: str, *, doc_id: str | None = None) -> StoredFile:
        """Resolve the local copy of a workspace document, backfilling identifiers on the way."""

        directory = self.workspace_dir(workspace_slug)
        requested = Path(filename.replace("\\", "/")).name
        document_uuid, bare_name = split_document_filename(requested)

        entry = self._read_metadata(directory, doc_id)
        if entry is None and document_uuid:
            entry = self._read_metadata(directory, document_uuid)
        if entry is None:
            entry = self._scan_metadata(
                directory,
                metadata_id=document_uuid,
                doc_filename=requested,
                original_name=bare_name,
            )

        if entry is not None:
            metadata_path, metadata = entry
            stored = directory / metadata.stored_name
            if stored.is_file():
                self._backfill(
                    metadata_path,
                    metadata,
                    metadata_id=document_uuid,
                    doc_filename=requested if document_uuid else None,
                )
                return StoredFile(
                    path=stored,
                    download_name=metadata.original_name,
                    content_type=resolve_content_type(metadata.original_name, metadata.mime_type),
                    metadata=metadata,
                )

        legacy = self._find_legacy_file(directory, document_uuid, bare_name)
        if legacy is None:
            logger.warning(
                "storage.document.missing",
                workspace=workspace_slug,
                filename=requested,
                document_uuid=document_uuid,
                doc_id=doc_id,
            )
            raise NotFoundError("File not found")

        return StoredFile(path=legacy, download_name=bare_name, content_type=resolve_content_type(legacy.name), metadata=None)

    def delete(self, workspace_slug: str, filename: str | None, *, doc_id: str | None = None) -> bool:
        """Remove the stored bytes and sidecar; returns ``False`` when nothing was stored."""

        if not filename and not doc_id:
            return False

        directory = self.workspace_dir(workspace_slug)
        try:
            stored = self.locate(workspace_slug, filename or "", doc_id=doc_id)
        except NotFoundError:
            return False

        stored.path.unlink(missing_ok=True)
        if stored.metadata is not None:
            unique_id = Path(stored.metadata.stored_name).stem
            (directory / f"{unique_id}{METADATA_SUFFIX}").unlink(missing_ok=True)

        logger.info("storage.document.deleted", workspace=workspace_slug, stored_name=stored.path.name)
        return True

    @staticmethod
    def _write_metadata(path: Path, metadata: StoredDocumentMetadata) -> None:
        path.write_text(
            json.dumps(metadata.model_dump(mode="json", by_alias=True), indent=2),
            encoding="utf-8",
        )

    @staticmethod
    def _load(path: Path) -> StoredDocumentMetadata | None:
        try:
            return StoredDocumentMetadata.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as exc:
            logger.warning("storage.metadata.unreadable", path=str(path), error=str(exc))
            return None

    def _read_metadata(self, directory: Path, identifier: str | None) -> tuple[Path, StoredDocumentMetadata] | None:
        if not identifier:
            return None
        safe = _UNSAFE_ID_RE.sub("", identifier)
        if not safe:
            return None
        path = directory / f"{safe}{METADATA_SUFFIX}"
        if not path.is_file():
            return None
        metadata = self._load(path)
        return (path, metadata) if metadata else None

    def _scan_metadata(
        self,
        directory: Path,
        *,
        metadata_id: str | None,
        doc_filename: str | None,
        original_name: str | None,
    ) -> tuple[Path, StoredDocumentMetadata] | None:
        if not directory.is_dir():
            return None

        for path in sorted(directory.glob(f"*{METADATA_SUFFIX}")):
            metadata = self._load(path)
            if metadata is None:
                continue
            if metadata_id and metadata.metadata_id and metadata.metadata_id.lower() == metadata_id.lower():
                return path, metadata
            if doc_filename and metadata.doc_filename == doc_filename:
                return path, metadata
            if original_name and metadata.original_name == original_name:
                return path, metadata
        return None

    def _backfill(
        self,
        path: Path,
        metadata: StoredDocumentMetadata,
        *,
        metadata_id: str | None,
        doc_filename: str | None,
    ) -> None:
        updates: dict[str, object] = {}
        if metadata_id and not metadata.metadata_id:
            updates["metadata_id"] = metadata_id
        if doc_filename and not metadata.doc_filename:
            updates["doc_filename"] = doc_filename
        if not updates:
            return

        updates["updated_at"] = _utcnow()
        for key, value in updates.items():
            setattr(metadata, key, value)
        self._write_metadata(path, metadata)
        logger.info("storage.metadata.backfilled", path=str(path), fields=sorted(updates))

    @staticmethod
    def _find_legacy_file(directory: Path, document_uuid: str | None, bare_name: str) -> Path | None:
        if not directory.is_dir():
            return None

        candidates = [path for path in directory.iterdir() if path.is_file() and not path.name.endswith(METADATA_SUFFIX)]
        if document_uuid:
            for path in candidates:
                if path.name.lower().startswith(document_uuid.lower()):
                    return path

        target = re.sub(r"\s+", "-", bare_name)
        for path in candidates:
            if re.sub(r"\s+", "-", path.name) == target:
                return path
        return None
