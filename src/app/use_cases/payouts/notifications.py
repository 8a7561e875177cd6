"""Cast-facing payout notifications"""

from typing import Optional
from src.app.services.notification_service import NotificationService, notify_safely
from src.domain.cast_payout import CastPayout


async def notify_cast(
    notifier: Optional[NotificationService],
    payout: CastPayout,
    category: str,
    message: str,
) -> bool:
    return await notify_safely(
        notifier,
        payout.cast_id,
        "cast",
        category,
        message,
        {
            "payout_id": payout.id,
            "type": payout.type.value,
            "status": payout.status.value,
            "net_amount_yen": payout.net_amount_yen,
        },
    )
