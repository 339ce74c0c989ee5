"""HTTP API client — typed async wrapper over the FocusGuard JSON API.

Used by the client controller; any script or UI can use it directly. Every
method maps one endpoint. Non-2xx responses and transport failures raise
ApiClientError, so callers handle exactly one exception type.

Usage:
    async with StatusApiClient("http://localhost:5000/api") as api:
        snapshot = await api.get_status("student_123")
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from focusguard.schemas import StatusSnapshot

logger = logging.getLogger("focusguard.client")

DEFAULT_BASE_URL = "http://localhost:5000/api"


class ApiClientError(Exception):
    """A request failed.

    Attributes:
        status_code: HTTP status, or None when no response arrived.
        message: The server's ``error`` field, or a transport description.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(message if status_code is None else f"{status_code}: {message}")


class StatusApiClient:
    """Async client for the student status API.

    Args:
        base_url: API root including the ``/api`` prefix.
        client: Optional pre-built httpx.AsyncClient (tests pass one with a
            MockTransport or ASGITransport). When given, its base_url is
            used as-is and it is not closed by aclose().
        timeout_seconds: Request timeout for the owned client.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout_seconds
        )

    async def __aenter__(self) -> StatusApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- Plumbing ----------------------------------------------------------

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiClientError(str(exc) or type(exc).__name__) from exc

        if response.is_error:
            try:
                message = response.json().get("error", response.reason_phrase)
            except (ValueError, AttributeError):
                message = response.reason_phrase
            raise ApiClientError(str(message), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiClientError(
                "Invalid JSON in response", status_code=response.status_code
            ) from exc

    # -- Endpoints ---------------------------------------------------------

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/health")

    async def get_status(self, student_id: str) -> StatusSnapshot:
        """GET /student/{id}/status, parsed into a StatusSnapshot."""
        data = await self._request("GET", f"/student/{quote(student_id, safe='')}/status")
        return StatusSnapshot.model_validate(data)

    async def daily_checkin(
        self,
        student_id: str,
        quiz_score: int,
        focus_minutes: int,
        focus_duration: str | None = None,
    ) -> dict[str, Any]:
        """POST /daily-checkin. Returns ``{status, warning?}``."""
        body: dict[str, Any] = {
            "student_id": student_id,
            "quiz_score": quiz_score,
            "focus_minutes": focus_minutes,
        }
        if focus_duration is not None:
            body["focus_duration"] = focus_duration
        return await self._request("POST", "/daily-checkin", json=body)

    async def report_violation(
        self,
        student_id: str,
        focus_minutes: int,
        focus_duration: str,
        reason: str | None = None,
    ) -> dict[str, Any]:
        """POST /report-cheat. Returns ``{status, warning?}``."""
        body: dict[str, Any] = {
            "student_id": student_id,
            "focus_minutes": focus_minutes,
            "focus_duration": focus_duration,
        }
        if reason:
            body["reason"] = reason
        return await self._request("POST", "/report-cheat", json=body)

    async def assign_intervention(self, student_id: str, task_description: str) -> int:
        """POST /assign-intervention. Returns the new intervention id."""
        data = await self._request(
            "POST",
            "/assign-intervention",
            json={"student_id": student_id, "task_description": task_description},
        )
        return int(data["intervention_id"])

    async def complete_intervention(self, student_id: str, intervention_id: int) -> None:
        """POST /complete-intervention. Raises ApiClientError(404) on mismatch."""
        await self._request(
            "POST",
            "/complete-intervention",
            json={"student_id": student_id, "intervention_id": intervention_id},
        )
