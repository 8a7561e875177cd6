from .unit_of_work import SqlAlchemyUnitOfWork
from .notification_service import (
    LoggingNotificationService,
    WebhookNotificationService,
    CompositeNotificationService,
    PreferenceFilteredNotificationService,
    create_notification_service,
)
from .stripe_gateway import StripePaymentGateway

__all__ = [
    "SqlAlchemyUnitOfWork",
    "LoggingNotificationService",
    "WebhookNotificationService",
    "CompositeNotificationService",
    "PreferenceFilteredNotificationService",
    "create_notification_service",
    "StripePaymentGateway",
]
