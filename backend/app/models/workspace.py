"""Pydantic schemas for workspace service interactions and stored documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .extraction import SourceCitation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatReply(BaseModel):
    """Normalized answer from a workspace chat round-trip."""

    model_config = ConfigDict(populate_by_name=True)

    text_response: str = Field(default="", alias="textResponse")
    sources: list[SourceCitation] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)


class WorkspaceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)


class StoredDocumentMetadata(BaseModel):
    """Sidecar record joining a workspace document to its local bytes."""

    model_config = ConfigDict(populate_by_name=True)

    original_name: str = Field(..., alias="originalName")
    stored_name: str = Field(..., alias="storedName")
    doc_filename: str | None = Field(default=None, alias="docFilename")
    doc_path: str | None = Field(default=None, alias="docPath")
    doc_id: str | None = Field(default=None, alias="docId")
    metadata_id: str | None = Field(default=None, alias="metadataId")
    mime_type: str | None = Field(default=None, alias="mimeType")
    saved_at: datetime = Field(default_factory=_utcnow, alias="savedAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")


class UploadedDocument(BaseModel):
    workspace_slug: str
    filename: str
    document_path: str
    workspace_document: dict[str, Any] | None = None
    stored: StoredDocumentMetadata | None = None


class NotesUploadRequest(BaseModel):
    workspace_slug: str = Field(..., min_length=1)
    title: str = Field(default="notes", min_length=1)
    content: str = Field(..., min_length=1)


class DocumentDeleteRequest(BaseModel):
    workspace_slug: str = Field(..., min_length=1)
    document_path: str = Field(..., min_length=1, description="Workspace docpath, e.g. custom-documents/x.json.")
    doc_id: str | None = None
    metadata_id: str | None = None
    doc_filename: str | None = None
