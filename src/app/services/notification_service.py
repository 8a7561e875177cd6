"""Notification Service Interface

Defines the contract for delivering user-facing notifications about
payments and payouts.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

logger = logging.getLogger(__name__)


class NotificationCategory:
    """Notification categories, used for delivery preferences"""
    PAYMENT_FAILED = "automatic_payment_failed"
    PAYMENT_SCHEDULED = "automatic_payment_created"
    PAYMENT_CAPTURED = "automatic_payment_captured"
    PAYMENT_CAPTURE_FAILED = "automatic_payment_capture_failed"
    RESERVATION_PAYMENT_FAILED = "reservation_payment_failed"
    CHAT_SYSTEM = "chat_system_message"
    PAYOUT_REQUESTED = "payout_requested"
    PAYOUT_PROCESSING = "payout_processing"
    PAYOUT_PAID = "payout_paid"
    PAYOUT_FAILED = "payout_failed"
    PAYOUT_CANCELLED = "payout_cancelled"
    PAYOUT_REJECTED = "payout_rejected"
    GRADE_UPGRADED = "grade_upgraded"


class NotificationService(ABC):
    """
    Abstract notification service

    Implementations can deliver via:
    - Logging
    - Push webhook
    - Chat webhook (system message in a reservation chat)
    """

    @abstractmethod
    async def notify(
        self,
        actor_id: int,
        actor_type: str,
        category: str,
        message: str,
        context: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Deliver a notification

        Args:
            actor_id: Guest or cast ID
            actor_type: "guest" or "cast"
            category: NotificationCategory value
            message: Human readable text
            context: Optional structured payload

        Returns:
            True if delivered, False otherwise
        """
        pass


async def notify_safely(
    notifier: Optional[NotificationService],
    actor_id: Optional[int],
    actor_type: str,
    category: str,
    message: str,
    context: Optional[dict[str, Any]] = None,
) -> bool:
    """Best-effort delivery: errors are logged, never raised"""
    if notifier is None or actor_id is None:
        return False
    try:
        return await notifier.notify(actor_id, actor_type, category, message, context)
    except Exception as e:
        logger.error(f"Notification {category} to {actor_type} {actor_id} failed: {e}")
        return False
