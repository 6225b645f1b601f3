"""API routers for the backend service."""

from fastapi import APIRouter, Depends

from .deps import require_session
from .routes import health_router
from .v1 import analyze, auth, documents, figures, finance, settings_documents, workspaces

protected = [Depends(require_session)]

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(figures.router, prefix="", tags=["figures"], dependencies=protected)
api_router.include_router(finance.router, prefix="", tags=["finance"], dependencies=protected)
api_router.include_router(analyze.router, prefix="", tags=["analysis"], dependencies=protected)
api_router.include_router(settings_documents.router, prefix="", tags=["config"], dependencies=protected)
api_router.include_router(workspaces.router, prefix="", tags=["workspaces"], dependencies=protected)
api_router.include_router(documents.router, prefix="", tags=["documents"], dependencies=protected)

__all__ = ["api_router"]
