import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tripboard.core.api_client import ApiClient
from tripboard.core.detail_resolver import DetailResolver
from tripboard.core.itinerary_editor import ItineraryEditor
from tripboard.core.itinerary_store import ItineraryStore
from tripboard.core.session import AuthService, Session
from tripboard.core.settings import Settings

logger = logging.getLogger(__name__)

# Planner session id, issued by /auth/login
security = HTTPBearer(auto_error=False)


@dataclass
class Workspace:
    """Everything one signed-in planner session works with."""

    settings: Settings
    session: Session
    api: ApiClient
    auth: AuthService
    editor: ItineraryEditor


def build_workspace(settings: Settings, transport=None) -> Workspace:
    session = Session()
    api = ApiClient(
        settings.api_base_url,
        session,
        timeout=settings.request_timeout,
        transport=transport,
    )
    store = ItineraryStore(empty_day_policy=settings.empty_day_policy)
    resolver = DetailResolver(api.fetch_poi, timeout=settings.lookup_timeout)
    editor = ItineraryEditor(api, store, resolver, default_title=settings.default_title)
    return Workspace(
        settings=settings,
        session=session,
        api=api,
        auth=AuthService(api, session),
        editor=editor,
    )


class WorkspaceRegistry:
    """
    Signed-in workspaces keyed by an opaque session id.

    Each login gets its own session, API client and editor, so one caller's
    backend token and open itinerary are never visible to another.
    """

    def __init__(self, settings: Settings, transport=None):
        self.settings = settings
        self.transport = transport
        self._workspaces: dict[str, Workspace] = {}

    def new(self) -> Workspace:
        return build_workspace(self.settings, transport=self.transport)

    def register(self, workspace: Workspace) -> str:
        session_id = f"tbs_{secrets.token_urlsafe(24)}"
        self._workspaces[session_id] = workspace
        logger.info(f"Registered planner session ({len(self._workspaces)} active)")
        return session_id

    def get(self, session_id: str | None) -> Workspace | None:
        if not session_id:
            return None
        return self._workspaces.get(session_id)

    async def discard(self, session_id: str) -> None:
        workspace = self._workspaces.pop(session_id, None)
        if workspace is not None:
            workspace.auth.logout()
            await workspace.api.aclose()
            logger.info(f"Closed planner session ({len(self._workspaces)} active)")

    async def aclose(self) -> None:
        for session_id in list(self._workspaces):
            await self.discard(session_id)

    def __len__(self) -> int:
        return len(self._workspaces)


def get_registry(request: Request) -> WorkspaceRegistry:
    return request.app.state.workspaces


def get_session_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    if credentials is None:
        return None
    return credentials.credentials


def get_optional_workspace(
    session_id: Optional[str] = Depends(get_session_id),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> Optional[Workspace]:
    """The caller's workspace, or None for anonymous or unknown session ids."""
    return registry.get(session_id)


def get_workspace(
    workspace: Optional[Workspace] = Depends(get_optional_workspace),
) -> Workspace:
    """
    Dependency requiring a signed-in planner session.

    Raises:
        HTTPException: 401 Unauthorized if the session id is missing or unknown
    """
    if workspace is None or not workspace.session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return workspace


def get_editor(workspace: Workspace = Depends(get_workspace)) -> ItineraryEditor:
    return workspace.editor
