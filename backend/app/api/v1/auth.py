"""Login and logout endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from app.api import deps
from app.core.config import AppSettings
from app.models.auth import LoginRequest, LoginResponse
from app.services.sessions import SESSION_COOKIE, SessionStore

router = APIRouter()


@router.post("/login", response_model=LoginResponse, summary="Start a session and set the auth cookie.")
async def login(
    request: LoginRequest,
    response: Response,
    settings: AppSettings = Depends(deps.get_app_settings),
    sessions: SessionStore = Depends(deps.get_session_store),
) -> LoginResponse:
    token = sessions.login(request.username, request.password)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "prod",
        path="/",
    )
    return LoginResponse(success=True, username=request.username)


@router.post("/logout", summary="End the current session.")
async def logout(
    request: Request,
    response: Response,
    sessions: SessionStore = Depends(deps.get_session_store),
) -> dict[str, bool]:
    sessions.logout(request.cookies.get(SESSION_COOKIE))
    response.delete_cookie(SESSION_COOKIE, path="/")
    return {"success": True}
