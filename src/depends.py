from functools import lru_cache
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.stripe_gateway import StripePaymentGateway
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import PaymentGateway
from src.domain.payout_policy import PayoutPolicy

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


@lru_cache
def get_payout_policy() -> PayoutPolicy:
    return PayoutPolicy.from_config(ApplicationConfig)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    return StripePaymentGateway(
        secret_key=ApplicationConfig.STRIPE_SECRET_KEY,
        webhook_secret=ApplicationConfig.STRIPE_WEBHOOK_SECRET,
    )


@lru_cache
def get_notification_service() -> NotificationService:
    return create_notification_service(
        push_webhook_url=ApplicationConfig.NOTIFICATION_PUSH_WEBHOOK,
        chat_webhook_url=ApplicationConfig.NOTIFICATION_CHAT_WEBHOOK,
        muted_categories=ApplicationConfig.NOTIFICATION_MUTED_CATEGORIES,
    )
