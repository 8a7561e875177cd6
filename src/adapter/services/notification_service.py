"""Notification Service Implementations

Provides concrete implementations for delivering notifications.
"""

import logging
from typing import Any, Iterable, Optional
import httpx
from src.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs notifications

    Useful for development and testing, or as a fallback.
    """

    async def notify(
        self,
        actor_id: int,
        actor_type: str,
        category: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> bool:
        logger.info(
            f"[NOTIFY] {actor_type} {actor_id} ({category}): {message}"
        )
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that delivers via HTTP webhook

    channel="push" posts user notifications to the push gateway;
    channel="chat" posts system messages into the reservation chat.
    """

    def __init__(self, webhook_url: str, channel: str = "push", timeout: float = 10.0):
        """
        Initialize webhook notification service

        Args:
            webhook_url: URL to POST notifications to
            channel: "push" or "chat"
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.channel = channel
        self.timeout = timeout

    async def notify(
        self,
        actor_id: int,
        actor_type: str,
        category: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Send notification via webhook

        Returns:
            True if webhook call succeeded, False otherwise
        """
        payload = {
            "channel": self.channel,
            "actor_id": actor_id,
            "actor_type": actor_type,
            "category": category,
            "message": message,
            "context": context or {},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                logger.info(
                    f"{self.channel} notification {category} sent to {actor_type} {actor_id}"
                )
                return True
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to send {self.channel} notification {category} to {actor_type} {actor_id}: {e}"
            )
            return False


class CompositeNotificationService(NotificationService):
    """
    Notification service that delegates to multiple services

    Useful for sending to multiple channels (e.g., log + push + chat).
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def notify(
        self,
        actor_id: int,
        actor_type: str,
        category: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.notify(actor_id, actor_type, category, message, context):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


class PreferenceFilteredNotificationService(NotificationService):
    """
    Drops notifications whose category the platform has muted

    Wraps another service; muted categories are reported as not delivered.
    """

    def __init__(self, inner: NotificationService, muted_categories: Iterable[str] = ()):
        self.inner = inner
        self.muted_categories = set(muted_categories)

    async def notify(
        self,
        actor_id: int,
        actor_type: str,
        category: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> bool:
        if category in self.muted_categories:
            logger.debug(f"Notification {category} muted for {actor_type} {actor_id}")
            return False
        return await self.inner.notify(actor_id, actor_type, category, message, context)


def create_notification_service(
    push_webhook_url: Optional[str] = None,
    chat_webhook_url: Optional[str] = None,
    muted_categories: Optional[Iterable[str]] = None,
) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        push_webhook_url: Optional push gateway webhook
        chat_webhook_url: Optional chat system-message webhook
        muted_categories: Categories that are never delivered

    Returns:
        Configured NotificationService
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if push_webhook_url:
        services.append(WebhookNotificationService(push_webhook_url, channel="push"))
    if chat_webhook_url:
        services.append(WebhookNotificationService(chat_webhook_url, channel="chat"))

    service: NotificationService
    if len(services) == 1:
        service = services[0]
    else:
        service = CompositeNotificationService(services)

    if muted_categories:
        service = PreferenceFilteredNotificationService(service, muted_categories)
    return service
