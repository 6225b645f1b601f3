"""Document upload, download and removal endpoints."""

from __future__ import annotations

import asyncio
import re
from typing import Any

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse

from app.api import deps
from app.core.logging import get_logger
from app.models.workspace import DocumentDeleteRequest, NotesUploadRequest, UploadedDocument
from app.services.storage import DocumentStore, resolve_content_type
from app.services.workspace_client import WorkspaceClient, document_metadata_id

logger = get_logger(__name__)

router = APIRouter()

_NOTES_FILENAME_RE = re.compile(r"[^A-Za-z0-9\-_ ]+")


async def _upload_and_store(
    client: WorkspaceClient,
    store: DocumentStore,
    *,
    workspace_slug: str,
    filename: str,
    content: bytes,
    content_type: str,
) -> UploadedDocument:
    uploaded = await client.upload_document(workspace_slug, filename, content, content_type)

    workspace_document: dict[str, Any] = uploaded.workspace_document or {}
    docpath = str(workspace_document.get("docpath") or uploaded.document_path)
    try:
        uploaded.stored = await asyncio.to_thread(
            store.save,
            workspace_slug,
            filename,
            content,
            mime_type=content_type,
            doc_filename=docpath.replace("\\", "/").rsplit("/", 1)[-1],
            doc_path=docpath,
            doc_id=workspace_document.get("docId"),
            metadata_id=document_metadata_id(workspace_document),
        )
    except OSError as exc:
        logger.warning("documents.local_copy_failed", workspace=workspace_slug, filename=filename, error=str(exc))

    return uploaded


@router.post(
    "/documents/upload",
    response_model=UploadedDocument,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a file into a workspace.",
)
async def upload_document(
    workspace_slug: str = Form(...),
    file: UploadFile = File(...),
    client: WorkspaceClient = Depends(deps.get_workspace_client),
    store: DocumentStore = Depends(deps.get_document_store),
) -> UploadedDocument:
    filename = file.filename or "document"
    return await _upload_and_store(
        client,
        store,
        workspace_slug=workspace_slug,
        filename=filename,
        content=await file.read(),
        content_type=resolve_content_type(filename, file.content_type),
    )


@router.post(
    "/documents/notes",
    response_model=UploadedDocument,
    status_code=status.HTTP_201_CREATED,
    summary="Store free-text notes as a plain-text workspace document.",
)
async def upload_notes(
    request: NotesUploadRequest,
    client: WorkspaceClient = Depends(deps.get_workspace_client),
    store: DocumentStore = Depends(deps.get_document_store),
) -> UploadedDocument:
    title = _NOTES_FILENAME_RE.sub("", request.title).strip() or "notes"
    return await _upload_and_store(
        client,
        store,
        workspace_slug=request.workspace_slug,
        filename=f"{title}.txt",
        content=request.content.encode("utf-8"),
        content_type="text/plain",
    )


@router.get("/documents/download", summary="Download the local copy of a workspace document.")
async def download_document(
    workspace_slug: str,
    filename: str,
    doc_id: str | None = None,
    store: DocumentStore = Depends(deps.get_document_store),
) -> FileResponse:
    stored = await asyncio.to_thread(store.locate, workspace_slug, filename, doc_id=doc_id)
    return FileResponse(stored.path, media_type=stored.content_type, filename=stored.download_name)


@router.delete("/documents", summary="Remove a document from the workspace and local storage.")
async def delete_document(
    request: DocumentDeleteRequest,
    client: WorkspaceClient = Depends(deps.get_workspace_client),
    store: DocumentStore = Depends(deps.get_document_store),
) -> dict[str, Any]:
    await client.remove_document(request.workspace_slug, request.document_path)

    filename = request.doc_filename or request.document_path.replace("\\", "/").rsplit("/", 1)[-1]
    removed_local = await asyncio.to_thread(
        store.delete,
        request.workspace_slug,
        filename,
        doc_id=request.doc_id or request.metadata_id,
    )
    logger.info(
        "documents.deleted",
        workspace=request.workspace_slug,
        document_path=request.document_path,
        removed_local=removed_local,
    )
    return {"success": True, "removed_local_copy": removed_local}
