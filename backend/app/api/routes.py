"""Primary API route definitions."""

from fastapi import APIRouter, Depends

from app.api import deps
from app.services.workspace_client import WorkspaceClient

health_router = APIRouter()


@health_router.get("/", summary="Readiness probe", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Report service readiness for liveness probes."""

    return {"status": "ok"}


@health_router.get("/workspace", summary="Workspace service reachability", tags=["health"])
async def workspace_health(client: WorkspaceClient = Depends(deps.get_workspace_client)) -> dict[str, bool]:
    """Report whether the workspace service answers its health endpoint."""

    return {"workspace_available": await client.check_health()}
