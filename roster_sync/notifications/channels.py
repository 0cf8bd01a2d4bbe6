"""Delivery channels for shift change notifications.

A channel reports how many deliveries it made. Zero means the recipient
could not be reached on that channel (no device, no address) and is not
an error. A channel raises DeliveryError only when nothing it attempted
got through, so a partially delivered notification is never sent twice.
"""

from typing import Protocol

import httpx
import structlog

from roster_sync.config import settings
from roster_sync.errors import UpstreamServiceError
from roster_sync.repositories.identity_repo import Recipient

logger = structlog.get_logger()

FCM_SEND_URL = "https://fcm.googleapis.com/fcm/send"


class DeliveryError(UpstreamServiceError):
    """A delivery channel rejected or failed to send a notification."""


class DeliveryChannel(Protocol):
    """Sends a title/body notification to one recipient."""

    name: str

    async def send(self, recipient: Recipient, title: str, body: str) -> int:
        """Deliver a notification.

        Returns:
            Number of deliveries made (e.g. devices reached). Zero when
            the recipient has nothing to deliver to on this channel.

        Raises:
            DeliveryError: If every attempted delivery failed
        """
        ...


async def _post(
    http: httpx.AsyncClient, url: str, payload: dict, headers: dict[str, str]
) -> str | None:
    """POST one delivery request. Returns an error description, or None."""
    try:
        response = await http.post(url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        return f"request failed: {e}"
    if not response.is_success:
        return f"rejected ({response.status_code}): {response.text[:200]}"
    return None


class PushChannel:
    """Push notifications through Firebase Cloud Messaging.

    One request per registered device token. The push counts as delivered
    once any device accepts it; rejected devices are logged.
    """

    name = "push"

    def __init__(
        self,
        server_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        send_url: str = FCM_SEND_URL,
    ):
        """Initialize push channel.

        Args:
            server_key: FCM server key. Defaults to settings.
            http_client: Optional httpx client for dependency injection
            send_url: FCM send endpoint
        """
        self._server_key = server_key or settings.fcm_server_key
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.http_timeout_seconds
        )
        self._send_url = send_url

    async def send(self, recipient: Recipient, title: str, body: str) -> int:
        """Send a push to every device registered for the recipient.

        Args:
            recipient: Notification target with device tokens
            title: Push title
            body: Push body

        Returns:
            Number of devices the push was accepted for

        Raises:
            DeliveryError: If FCM accepted the push for no device
        """
        if not recipient.device_tokens:
            logger.info("no device tokens, skipping push", user_id=recipient.user_id)
            return 0

        headers = {"Content-Type": "application/json"}
        if self._server_key:
            headers["Authorization"] = f"key={self._server_key}"

        accepted = 0
        errors: list[str] = []
        for platform, token in recipient.device_tokens:
            error = await _post(
                self._http,
                self._send_url,
                {
                    "to": token,
                    "notification": {"title": title, "body": body},
                    "priority": "high",
                },
                headers,
            )
            if error is None:
                accepted += 1
                continue
            logger.warning(
                "push to device failed",
                user_id=recipient.user_id,
                platform=platform,
                error=error,
            )
            errors.append(f"{platform} device {error}")

        if not accepted:
            raise DeliveryError("FCM push failed: " + "; ".join(errors))

        logger.info(
            "push sent",
            user_id=recipient.user_id,
            devices=accepted,
            failed_devices=len(errors),
        )
        return accepted

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()


class EmailChannel:
    """Plain-text email through a transactional email HTTP API."""

    name = "email"

    def __init__(
        self,
        api_key: str | None = None,
        sender: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        send_url: str | None = None,
    ):
        """Initialize email channel.

        Args:
            api_key: Bearer token for the email API. Defaults to settings.
            sender: From address. Defaults to settings.
            http_client: Optional httpx client for dependency injection
            send_url: Email API endpoint. Defaults to settings.
        """
        self._api_key = api_key or settings.email_api_key
        self._sender = sender or settings.email_from
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.http_timeout_seconds
        )
        self._send_url = send_url or settings.email_api_url

    async def send(self, recipient: Recipient, title: str, body: str) -> int:
        """Email the notification to the recipient's address.

        Returns:
            1 when sent, 0 when the recipient has no email address

        Raises:
            DeliveryError: If the email API is unreachable or rejects it
        """
        if not recipient.email:
            logger.info("no email address, skipping email", user_id=recipient.user_id)
            return 0

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        error = await _post(
            self._http,
            self._send_url,
            {
                "from": self._sender,
                "to": [recipient.email],
                "subject": title,
                "text": f"Hi {recipient.display_name},\n\n{body}\n",
            },
            headers,
        )
        if error is not None:
            raise DeliveryError(f"Email {error}")

        logger.info("email sent", user_id=recipient.user_id)
        return 1

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
