import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from tripboard.core.errors import ApiError
from tripboard.core.schemas import LoginRequest, SessionInfo
from tripboard.core.security import (
    Workspace,
    WorkspaceRegistry,
    get_optional_workspace,
    get_registry,
    get_session_id,
)

logger = logging.getLogger(__name__)

# Create the router
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/login", response_model=SessionInfo)
async def login(
    credentials: LoginRequest,
    registry: WorkspaceRegistry = Depends(get_registry),
    previous: Optional[str] = Depends(get_session_id),
):
    """
    Sign in against the backend and start a planner session.

    The backend token stays server-side. The response carries a planner
    session id which the caller sends back as ``Authorization: Bearer <id>``.
    """
    workspace = registry.new()
    try:
        info = await workspace.auth.login(credentials)
    except ApiError as e:
        await workspace.api.aclose()
        if e.status in (status.HTTP_400_BAD_REQUEST, status.HTTP_401_UNAUTHORIZED):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
        logger.error(f"Login failed: {e!r}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    if previous is not None:
        await registry.discard(previous)
    session_id = registry.register(workspace)
    return info.model_copy(update={"session_id": session_id})


@router.post("/logout", response_model=SessionInfo)
async def logout(
    registry: WorkspaceRegistry = Depends(get_registry),
    session_id: Optional[str] = Depends(get_session_id),
):
    """End the caller's planner session. Other sessions are untouched."""
    if session_id is not None:
        await registry.discard(session_id)
    return SessionInfo(authenticated=False)


@router.get("/session", response_model=SessionInfo)
async def get_session(workspace: Optional[Workspace] = Depends(get_optional_workspace)):
    if workspace is None:
        return SessionInfo(authenticated=False)
    return workspace.session.info()
