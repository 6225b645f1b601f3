"""Workspace listing and creation endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from app.api import deps
from app.core.errors import NotFoundError
from app.models.workspace import WorkspaceCreateRequest
from app.services.workspace_client import WorkspaceClient

router = APIRouter()

_NO_STORE = "no-store, max-age=0"


@router.get("/workspaces", summary="List workspaces.")
async def list_workspaces(
    response: Response,
    client: WorkspaceClient = Depends(deps.get_workspace_client),
) -> dict[str, list[dict[str, Any]]]:
    response.headers["Cache-Control"] = _NO_STORE
    return {"workspaces": await client.list_workspaces()}


@router.post("/workspaces", status_code=status.HTTP_201_CREATED, summary="Create a workspace.")
async def create_workspace(
    request: WorkspaceCreateRequest,
    client: WorkspaceClient = Depends(deps.get_workspace_client),
) -> dict[str, Any]:
    return {"workspace": await client.create_workspace(request.name)}


@router.get("/workspaces/{slug}", summary="Workspace details including documents.")
async def get_workspace(
    slug: str,
    response: Response,
    client: WorkspaceClient = Depends(deps.get_workspace_client),
) -> dict[str, Any]:
    workspace = await client.get_workspace(slug)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    response.headers["Cache-Control"] = _NO_STORE
    return {"workspace": workspace}
