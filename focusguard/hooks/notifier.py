"""Mentor webhook notifier — Notifier implementation over httpx.

POSTs ``{student_id, quiz_score, focus_minutes, timestamp}`` to the configured
webhook (an n8n workflow in the reference deployment).

Failure policy:
- No URL, or the template placeholder URL: skipped, warned once per process.
- 4xx from the webhook: skipped, message taken from the response's ``hint``
  or ``message`` field when present.
- Redirects are followed. Anything else that is not 2xx (5xx, an
  unresolved 3xx, timeout, connection error): NotificationError.

Tier 2 service module: imports from focusguard.hooks.interfaces (Tier 1),
focusguard.schemas (Tier 1) and focusguard.errors (Tier 1).

Usage:
    from focusguard.hooks.notifier import WebhookNotifier

    notifier = WebhookNotifier("https://n8n.example.com/webhook/mentor")
    result = await notifier.notify_mentor("student_123", 5, 40)
"""

import logging

import httpx

from focusguard.errors import NotificationError
from focusguard.hooks.interfaces import Notifier
from focusguard.schemas import NotificationResult, utcnow

logger = logging.getLogger("focusguard.notifier")

PLACEHOLDER_HOST = "your-n8n-instance.com"
NOT_CONFIGURED_MESSAGE = "Webhook URL is not configured"

_missing_webhook_warned = False


def _response_message(response: httpx.Response) -> str:
    """Extracts a hint/message from a JSON error body, else the reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("hint", "message"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase or f"HTTP {response.status_code}"


class WebhookNotifier(Notifier):
    """Posts mentor notifications to a webhook URL.

    Args:
        webhook_url: Target URL. Empty or placeholder means "skip".
        timeout_seconds: Per-request timeout.
        client: Optional shared httpx.AsyncClient (tests inject one with a
            MockTransport). When omitted, a client is created per call.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._webhook_url = webhook_url.strip()
        self._timeout = timeout_seconds
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self._webhook_url) and PLACEHOLDER_HOST not in self._webhook_url

    async def notify_mentor(
        self, student_id: str, quiz_score: int, focus_minutes: int
    ) -> NotificationResult:
        """Sends one notification. See module docstring for the failure policy.

        Raises:
            NotificationError: On a non-2xx, non-4xx reply or a transport failure.
        """
        global _missing_webhook_warned

        if not self.is_configured:
            if not _missing_webhook_warned:
                logger.warning(
                    "Skipping mentor webhook: set N8N_WEBHOOK_URL to a reachable "
                    "webhook to enable."
                )
                _missing_webhook_warned = True
            return NotificationResult(skipped=True, message=NOT_CONFIGURED_MESSAGE)

        payload = {
            "student_id": student_id,
            "quiz_score": quiz_score,
            "focus_minutes": focus_minutes,
            "timestamp": utcnow().isoformat(),
        }

        try:
            if self._client is not None:
                response = await self._client.post(
                    self._webhook_url,
                    json=payload,
                    timeout=self._timeout,
                    follow_redirects=True,
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self._timeout, follow_redirects=True
                ) as client:
                    response = await client.post(self._webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Failed to trigger mentor notification: %s", exc)
            raise NotificationError(str(exc) or type(exc).__name__) from exc

        if 400 <= response.status_code < 500:
            message = _response_message(response)
            logger.warning(
                "Mentor webhook responded with %d. Continuing without blocking. %s",
                response.status_code,
                message,
            )
            return NotificationResult(
                skipped=True, status_code=response.status_code, message=message
            )

        if not response.is_success:
            message = _response_message(response)
            logger.error(
                "Failed to trigger mentor notification: %d %s",
                response.status_code,
                message,
            )
            raise NotificationError(message, status_code=response.status_code)

        logger.info("Mentor notification triggered for %s", student_id)
        return NotificationResult(success=True, status_code=response.status_code)
