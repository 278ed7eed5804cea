"""
Explicit login session, passed to the API client instead of living in
ambient storage.
"""

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from tripboard.core.errors import ApiError
from tripboard.core.schemas import LoginRequest, SessionInfo, SessionUser

if TYPE_CHECKING:
    from tripboard.core.api_client import ApiClient

logger = logging.getLogger(__name__)


class Session:
    """Bearer token and user for the signed-in traveller. Empty until login."""

    def __init__(self) -> None:
        self.token: str | None = None
        self.user: SessionUser | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def start(self, token: str, user: SessionUser | None = None) -> None:
        self.token = token
        self.user = user

    def clear(self) -> None:
        self.token = None
        self.user = None

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def info(self) -> SessionInfo:
        return SessionInfo(authenticated=self.is_authenticated, user=self.user)


class AuthService:
    def __init__(self, api: "ApiClient", session: Session):
        self.api = api
        self.session = session

    async def login(self, credentials: LoginRequest) -> SessionInfo:
        """
        Sign in against the backend and start the session.

        Raises:
            ApiError: backend rejected the credentials or returned no token
        """
        data: Any = await self.api.login(credentials.email, credentials.password)

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ApiError("Login response did not include token", status=None, data=data)

        user = None
        raw_user = data.get("user")
        if isinstance(raw_user, dict):
            try:
                user = SessionUser.model_validate(raw_user)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed user record in login response: {e}")

        self.session.start(token, user)
        logger.info(f"Session started for {credentials.email}")
        return self.session.info()

    def logout(self) -> SessionInfo:
        self.session.clear()
        logger.info("Session cleared")
        return self.session.info()
