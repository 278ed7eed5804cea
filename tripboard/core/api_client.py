"""
Async client for the external trip-planning REST backend.
"""

import logging
from typing import Any

import httpx

from tripboard.core.errors import ApiError
from tripboard.core.session import Session

logger = logging.getLogger(__name__)


def _error_message(payload: Any, status: int) -> str:
    if isinstance(payload, str) and payload:
        return payload
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if message:
            return str(message)
    return f"HTTP {status}"


def unwrap_envelope(payload: Any) -> Any:
    """
    Strip the backend's ``{"success": ..., "data": ...}`` wrapper.

    Payloads without a ``success`` key are returned unchanged.

    Raises:
        ApiError: the envelope reports ``success: false``
    """
    if not isinstance(payload, dict) or "success" not in payload:
        return payload
    if not payload.get("success"):
        raise ApiError(_error_message(payload, 200), status=200, data=payload)
    return payload.get("data")


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` that attaches the session token."""

    def __init__(
        self,
        base_url: str,
        session: Session,
        timeout: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, path: str, method: str = "GET", body: Any = None) -> Any:
        """
        Send a request and return the parsed body.

        JSON responses are decoded (an undecodable JSON body becomes ``{}``),
        anything else is returned as text.

        Raises:
            ApiError: non-2xx status, or the backend could not be reached
        """
        try:
            response = await self._client.request(
                method,
                path,
                json=body,
                headers=self.session.auth_headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e!r}")
            raise ApiError(f"Request to {path} failed: {e}", status=None) from e

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                payload: Any = response.json()
            except ValueError:
                payload = {}
        else:
            payload = response.text

        if not response.is_success:
            message = _error_message(payload, response.status_code)
            logger.warning(f"{method} {path} returned {response.status_code}: {message}")
            raise ApiError(message, status=response.status_code, data=payload)

        return payload

    async def login(self, email: str, password: str) -> Any:
        return await self.request(
            "/auth/login", method="POST", body={"email": email, "password": password}
        )

    async def list_trips(self) -> Any:
        return unwrap_envelope(await self.request("/itineraries"))

    async def fetch_itinerary_content(self, itinerary_id: str) -> Any:
        content = unwrap_envelope(await self.request(f"/itineraries/{itinerary_id}/content"))
        # Content is sometimes wrapped once more as {"data": {...}}
        while isinstance(content, dict) and "days" not in content and "data" in content:
            content = content["data"]
        return content

    async def save_itinerary_content(self, itinerary_id: str, payload: dict[str, Any]) -> Any:
        return unwrap_envelope(
            await self.request(f"/itineraries/{itinerary_id}/content", method="PUT", body=payload)
        )

    async def fetch_poi(self, poi_id: str | int) -> Any:
        return unwrap_envelope(await self.request(f"/pois/{poi_id}"))
