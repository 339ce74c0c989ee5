"""Tests for focusguard.client.api — StatusApiClient request shapes and errors.

Uses httpx.MockTransport, so every request is inspected in-process.
"""

import json

import httpx
import pytest

from focusguard.client.api import ApiClientError, StatusApiClient

BASE_URL = "http://test/api"


def _client(handler) -> StatusApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return StatusApiClient(client=http)


class TestRequests:
    """Each method maps to one endpoint with the documented body."""

    @pytest.mark.asyncio
    async def test_get_status_quotes_id(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "student": {
                        "id": "student 123",
                        "name": "",
                        "email": "",
                        "status": "remedial",
                        "created_at": "2026-01-01T00:00:00Z",
                        "updated_at": "2026-01-01T00:00:00Z",
                    },
                    "intervention": {
                        "id": 4,
                        "student_id": "student 123",
                        "task_description": "Redo quiz",
                        "status": "pending",
                        "assigned_at": "2026-01-01T00:00:00Z",
                        "completed_at": None,
                    },
                },
            )

        snapshot = await _client(handler).get_status("student 123")

        assert seen[0].url.raw_path == b"/api/student/student%20123/status"
        assert snapshot.student.status == "remedial"
        assert snapshot.intervention is not None
        assert snapshot.intervention.id == 4

    @pytest.mark.asyncio
    async def test_report_violation_body(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"status": "Logged cheat and notified mentor"})

        result = await _client(handler).report_violation(
            "student_123", 25, "25:42", "window_blur"
        )

        assert result == {"status": "Logged cheat and notified mentor"}
        assert bodies == [
            {
                "student_id": "student_123",
                "focus_minutes": 25,
                "focus_duration": "25:42",
                "reason": "window_blur",
            }
        ]

    @pytest.mark.asyncio
    async def test_daily_checkin_body(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"status": "On Track"})

        await _client(handler).daily_checkin("student_123", 9, 75)

        assert bodies == [{"student_id": "student_123", "quiz_score": 9, "focus_minutes": 75}]

    @pytest.mark.asyncio
    async def test_assign_returns_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "intervention_id": 7})

        assert await _client(handler).assign_intervention("student_123", "Redo quiz") == 7


class TestErrors:
    """Failures surface as ApiClientError."""

    @pytest.mark.asyncio
    async def test_error_body_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404, json={"error": "Intervention not found", "code": "INTERVENTION_NOT_FOUND"}
            )

        with pytest.raises(ApiClientError) as exc_info:
            await _client(handler).complete_intervention("student_123", 3)

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Intervention not found"

    @pytest.mark.asyncio
    async def test_non_json_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>bad gateway</html>")

        with pytest.raises(ApiClientError) as exc_info:
            await _client(handler).health()

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"

    @pytest.mark.asyncio
    async def test_non_json_success_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>captive portal</html>")

        with pytest.raises(ApiClientError) as exc_info:
            await _client(handler).get_status("student_123")

        assert exc_info.value.status_code == 200
        assert exc_info.value.message == "Invalid JSON in response"

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ApiClientError) as exc_info:
            await _client(handler).get_status("student_123")

        assert exc_info.value.status_code is None
