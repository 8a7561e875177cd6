import json
from decimal import Decimal
from typing import Any, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.depends import (
    get_notification_service,
    get_payment_gateway,
    get_payout_policy,
    get_session,
)
from src.app.services.notification_service import NotificationService
from src.app.services.payment_gateway import (
    CaptureResult,
    ChargeResult,
    ConnectedAccountStatus,
    PaymentGateway,
    PaymentGatewayError,
    PaymentMethodInfo,
    PayoutResult,
    PlatformBalance,
    TransferResult,
)
from src.domain.payout_policy import PayoutPolicy

# Registers every table on SQLModel.metadata
from src.domain import cast, cast_payout, guest, payment, point_transaction, reservation  # noqa: F401


class FakePaymentGateway(PaymentGateway):
    """In-memory gateway recording every call"""

    webhook_signature = "t=1,v1=valid"

    def __init__(self):
        self.cards: list[PaymentMethodInfo] = [PaymentMethodInfo(id="pm_1", card_last4="4242")]
        self.declined: set[str] = set()
        self.transfer_error: Optional[str] = None
        self.payout_error: Optional[str] = None
        self.capture_success = True
        self.available_yen = 10_000_000
        self.account_status: dict[str, bool] = {}
        self.authorizations: list[dict[str, Any]] = []
        self.captures: list[str] = []
        self.cancellations: list[str] = []
        self.transfers: list[dict[str, Any]] = []
        self.payouts: list[dict[str, Any]] = []

    async def create_customer(self, email, metadata):
        return "cus_fake"

    async def list_payment_methods(self, customer_id):
        return list(self.cards)

    async def authorize_charge(self, customer_id, payment_method_id, amount, currency, description, metadata):
        self.authorizations.append({"payment_method_id": payment_method_id, "amount": amount})
        if payment_method_id in self.declined:
            return ChargeResult(success=False, status="failed", error_message="Your card was declined.")
        intent_id = f"pi_{len(self.authorizations)}"
        return ChargeResult(success=True, payment_intent_id=intent_id, status="requires_capture")

    async def capture_charge(self, payment_intent_id):
        self.captures.append(payment_intent_id)
        if self.capture_success:
            return CaptureResult(success=True, status="succeeded")
        return CaptureResult(success=False, status="failed", error_message="Authorization expired")

    async def cancel_charge(self, payment_intent_id):
        self.cancellations.append(payment_intent_id)
        return CaptureResult(success=True, status="canceled")

    async def create_transfer(self, amount, currency, destination, metadata):
        if self.transfer_error:
            raise PaymentGatewayError(self.transfer_error)
        self.transfers.append({"amount": amount, "destination": destination, "metadata": metadata})
        return TransferResult(transfer_id=f"tr_{len(self.transfers)}", amount=amount)

    async def create_payout(self, amount, currency, connected_account_id, instant, metadata):
        if self.payout_error:
            raise PaymentGatewayError(self.payout_error)
        self.payouts.append({"amount": amount, "account": connected_account_id, "instant": instant})
        return PayoutResult(payout_id=f"po_{len(self.payouts)}", amount=amount, status="pending")

    async def get_platform_balance(self):
        return PlatformBalance(available={"jpy": self.available_yen})

    async def get_connected_account_status(self, account_id):
        enabled = self.account_status.get(account_id, False)
        return ConnectedAccountStatus(account_id=account_id, payouts_enabled=enabled, charges_enabled=enabled)

    def construct_event(self, payload, signature):
        if signature != self.webhook_signature:
            raise PaymentGatewayError("No signatures found matching the expected signature for payload")
        return json.loads(payload)


class RecordingNotificationService(NotificationService):

    def __init__(self):
        self.sent: list[dict[str, Any]] = []

    async def notify(self, actor_id, actor_type, category, message, context=None):
        self.sent.append({
            "actor_id": actor_id,
            "actor_type": actor_type,
            "category": category,
            "message": message,
            "context": context,
        })
        return True

    def categories(self) -> list[str]:
        return [item["category"] for item in self.sent]


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Fresh in-memory SQLite database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
def gateway():
    return FakePaymentGateway()


@pytest_asyncio.fixture
def notifier():
    return RecordingNotificationService()


@pytest_asyncio.fixture
def policy():
    """Default fee tables, flat 1.2 yen per point, no business-day shift"""
    return PayoutPolicy(yen_per_point=Decimal("1.2"), business_day_adjustment=False)


@pytest_asyncio.fixture
def app(db_session, gateway, notifier, policy):
    """App with database session, gateway, notifier and policy overrides"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_payout_policy] = lambda: policy
    return app


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
