"""
Integration tests for the cast payout and admin API endpoints
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from httpx import AsyncClient

from src.depends import get_payout_policy
from src.domain.cast import Cast
from src.domain.guest import Guest
from src.domain.point_transaction import PointTransaction, PointTransactionType


async def seed_cast(db_session, payouts_enabled=True, amounts=(3000, 4000, 5000, 8000)):
    db_session.add(Cast(
        id=7, nickname="cast7", points=sum(amounts), grade="bronze",
        stripe_connect_account_id="acct_7", payouts_enabled=payouts_enabled,
    ))
    now = datetime.utcnow()
    db_session.add_all([
        PointTransaction(cast_id=7, transaction_type=PointTransactionType.GIFT, amount=amount,
                         created_at=now - timedelta(days=len(amounts) - index))
        for index, amount in enumerate(amounts)
    ])
    await db_session.commit()


async def seed_january(db_session, payouts_enabled=True):
    db_session.add(Cast(
        id=7, nickname="cast7", points=60000, grade="bronze",
        stripe_connect_account_id="acct_7", payouts_enabled=payouts_enabled,
    ))
    db_session.add_all([
        PointTransaction(cast_id=7, transaction_type=PointTransactionType.TRANSFER,
                         amount=amount, created_at=datetime(2025, 1, day, 3, 0))
        for day, amount in ((10, 10000), (18, 20000), (30, 30000))
    ])
    await db_session.commit()


@pytest.mark.asyncio
class TestCastPayoutAPIIntegration:

    async def test_summary(self, client: AsyncClient, db_session):
        # Arrange
        await seed_cast(db_session)

        # Act
        response = await client.get("/api/casts/7/payouts/summary")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["grade"] == "bronze"
        assert Decimal(data["scheduled_fee_rate"]) == Decimal("0.02")
        assert Decimal(data["instant_fee_rate"]) == Decimal("0.07")
        assert data["unsettled_points"] == 20000
        assert data["instant_available_points"] == 10000
        assert data["instant_available_amount_yen"] == 12000
        assert data["upcoming_payout"] is None
        assert data["recent_history"] == []

    async def test_summary_unknown_cast_returns_404(self, client: AsyncClient):
        # Act
        response = await client.get("/api/casts/999/payouts/summary")

        # Assert
        assert response.status_code == 404

    async def test_instant_payout_created(self, client: AsyncClient, db_session, gateway):
        """
        Given: Cast 7 with 20000 unsettled points and a ready connected account
        When: POST /api/casts/7/payouts/instant for 10000 yen
        Then: 201, processing, 9300 yen transferred and 8000 points left unsettled
        """
        # Arrange
        await seed_cast(db_session)

        # Act
        response = await client.post("/api/casts/7/payouts/instant", json={"amount_yen": 10000, "memo": "Rent"})

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["type"] == "instant"
        assert data["status"] == "processing"
        assert data["net_amount_yen"] == 9300
        assert data["metadata"]["memo"] == "Rent"
        assert gateway.transfers[0]["destination"] == "acct_7"

        balance = await client.get("/api/casts/7/points/unsettled")
        assert balance.json()["unsettled_points"] == 8000

    @pytest.mark.parametrize(
        "amount_yen,status_code,code",
        [
            (4000, 400, "INSTANT_AMOUNT_TOO_LOW"),
            (13000, 400, "INSTANT_LIMIT_EXCEEDED"),
        ],
    )
    async def test_instant_payout_rejected(self, client: AsyncClient, db_session, amount_yen, status_code, code):
        # Arrange
        await seed_cast(db_session)

        # Act
        response = await client.post("/api/casts/7/payouts/instant", json={"amount_yen": amount_yen})

        # Assert
        assert response.status_code == status_code
        assert response.json()["error"]["code"] == code

    async def test_instant_payout_with_few_points_returns_402(self, client: AsyncClient, db_session):
        # Arrange
        await seed_cast(db_session, amounts=(1500,))

        # Act
        response = await client.post("/api/casts/7/payouts/instant", json={"amount_yen": 5000})

        # Assert
        assert response.status_code == 402
        assert response.json()["error"]["code"] == "INSUFFICIENT_POINTS"

    async def test_platform_balance_short_returns_402(self, client: AsyncClient, db_session, gateway):
        # Arrange
        await seed_cast(db_session)
        gateway.transfer_error = "You have insufficient available funds in your Stripe account"

        # Act
        response = await client.post("/api/casts/7/payouts/instant", json={"amount_yen": 10000})

        # Assert
        assert response.status_code == 402
        assert response.json()["error"]["code"] == "INSUFFICIENT_PLATFORM_BALANCE"


@pytest.mark.asyncio
class TestAdminPayoutAPIIntegration:

    async def test_close_then_process_due(self, client: AsyncClient, db_session, gateway):
        """
        Given: 60000 points earned in January 2025
        When: January is closed twice and due payouts run on 2025-02-28
        Then: One payout is created and dispatched for 70560 yen
        """
        # Arrange
        await seed_january(db_session)

        # Act
        first = await client.post("/api/admin/payouts/close", json={"year": 2025, "month": 1})
        second = await client.post("/api/admin/payouts/close", json={"year": 2025, "month": 1})
        due = await client.post("/api/admin/payouts/process-due", params={"run_date": "2025-02-28"})

        # Assert
        assert first.status_code == 200
        assert first.json()["created"] == 1
        assert first.json()["closing_month"] == "2025-01"
        assert second.json()["created"] == 0
        assert due.json()["dispatched"] == 1
        assert gateway.transfers[0]["amount"] == 70560

        summary = (await client.get("/api/casts/7/payouts/summary")).json()
        assert summary["recent_history"][0]["status"] == "processing"

    async def test_account_not_ready_then_mark_paid_conflict(self, client: AsyncClient, db_session):
        # Arrange
        await seed_january(db_session, payouts_enabled=False)
        closed = await client.post("/api/admin/payouts/close", json={"year": 2025, "month": 1})
        payout_id = closed.json()["payout_ids"][0]

        # Act
        due = await client.post("/api/admin/payouts/process-due", params={"run_date": "2025-02-28"})
        mark_paid = await client.post(f"/api/admin/payouts/{payout_id}/mark-paid")

        # Assert
        assert due.json()["waiting"] == 1
        assert mark_paid.status_code == 409
        assert mark_paid.json()["error"]["code"] == "INVALID_PAYOUT_STATE"

    async def test_failed_payout_retried_and_marked_paid(self, client: AsyncClient, db_session, gateway):
        # Arrange
        await seed_january(db_session)
        closed = await client.post("/api/admin/payouts/close", json={"year": 2025, "month": 1})
        payout_id = closed.json()["payout_ids"][0]
        gateway.payout_error = "Bank account closed"
        await client.post("/api/admin/payouts/process-due", params={"run_date": "2025-02-28"})
        gateway.payout_error = None

        # Act
        retried = await client.post(f"/api/admin/payouts/{payout_id}/retry")
        paid = await client.post(f"/api/admin/payouts/{payout_id}/mark-paid", json={"note": "Confirmed with bank"})

        # Assert
        assert retried.status_code == 200
        assert retried.json()["status"] == "processing"
        assert retried.json()["metadata"]["retry_count"] == 1
        assert paid.status_code == 200
        assert paid.json()["status"] == "paid"
        assert paid.json()["metadata"]["paid_note"] == "Confirmed with bank"

    async def test_cancel_scheduled_payout(self, client: AsyncClient, db_session):
        # Arrange
        await seed_january(db_session)
        closed = await client.post("/api/admin/payouts/close", json={"year": 2025, "month": 1})
        payout_id = closed.json()["payout_ids"][0]

        # Act
        response = await client.post(f"/api/admin/payouts/{payout_id}/cancel", json={"reason": "dispute"})

        # Assert
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        balance = await client.get("/api/casts/7/points/unsettled")
        assert balance.json()["unsettled_points"] == 60000

    @pytest.mark.parametrize("action", ["retry", "approve", "reject", "mark-paid"])
    async def test_action_on_scheduled_payout_returns_409(self, client: AsyncClient, db_session, action):
        """
        Given: A freshly closed scheduled payout
        When: An action that needs a different status is posted
        Then: 409 INVALID_PAYOUT_STATE naming the current status
        """
        # Arrange
        await seed_january(db_session)
        closed = await client.post("/api/admin/payouts/close", json={"year": 2025, "month": 1})
        payout_id = closed.json()["payout_ids"][0]

        # Act
        response = await client.post(f"/api/admin/payouts/{payout_id}/{action}")

        # Assert
        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "INVALID_PAYOUT_STATE"
        assert "scheduled" in error["message"]

    async def test_cancel_twice_returns_409(self, client: AsyncClient, db_session):
        # Arrange
        await seed_january(db_session)
        closed = await client.post("/api/admin/payouts/close", json={"year": 2025, "month": 1})
        payout_id = closed.json()["payout_ids"][0]
        await client.post(f"/api/admin/payouts/{payout_id}/cancel")

        # Act
        response = await client.post(f"/api/admin/payouts/{payout_id}/cancel")

        # Assert
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_PAYOUT_STATE"
        assert "cancelled" in response.json()["error"]["message"]

    async def test_unknown_payout_returns_404(self, client: AsyncClient):
        # Act
        response = await client.post("/api/admin/payouts/999/cancel")

        # Assert
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PAYOUT_NOT_FOUND"

    async def test_approve_instant_request(self, app, client: AsyncClient, db_session, gateway, policy):
        # Arrange
        await seed_cast(db_session)
        policy_with_approval = policy.model_copy(update={"instant_requires_approval": True})
        app.dependency_overrides[get_payout_policy] = lambda: policy_with_approval
        requested = await client.post("/api/casts/7/payouts/instant", json={"amount_yen": 10000})

        # Act
        approved = await client.post(f"/api/admin/payouts/{requested.json()['id']}/approve")

        # Assert
        assert requested.json()["status"] == "pending_approval"
        assert approved.status_code == 200
        assert approved.json()["status"] == "processing"
        assert len(gateway.transfers) == 1

    async def test_guest_grade_recalculated(self, client: AsyncClient, db_session):
        # Arrange
        db_session.add(Guest(id=42, nickname="guest42", points=0))
        db_session.add(PointTransaction(guest_id=42, transaction_type=PointTransactionType.BUY, amount=350000))
        await db_session.commit()

        # Act
        response = await client.post("/api/admin/guests/42/grade")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["grade"] == "bronze"
        assert data["grade_points"] == 350000
        assert data["upgraded"] is True

    async def test_reconciliation_reports_drift(self, client: AsyncClient, db_session):
        # Arrange
        await seed_cast(db_session, amounts=(1000, 2000))
        db_session.add(Cast(id=8, nickname="cast8", points=900))
        db_session.add(PointTransaction(cast_id=8, transaction_type=PointTransactionType.GIFT, amount=1000))
        await db_session.commit()

        # Act
        response = await client.get("/api/admin/points/reconciliation")

        # Assert
        assert response.status_code == 200
        data = response.json()
        assert data["total_casts_checked"] == 2
        assert data["discrepancies_found"] == 1
        assert data["discrepancies"][0]["cast_id"] == 8
        assert data["discrepancies"][0]["discrepancy"] == -100

    async def test_exceeded_pending_transferred_to_cast(self, client: AsyncClient, db_session):
        """
        Given: A 3 day old 800 point exceeded_pending charge against guest 42 for cast 7
        When: The transfer is triggered twice
        Then: Cast 7 gains 800 unsettled points once
        """
        # Arrange
        await seed_cast(db_session, amounts=(1000,))
        db_session.add(PointTransaction(
            guest_id=42, cast_id=7, transaction_type=PointTransactionType.EXCEEDED_PENDING,
            amount=-800, reservation_id=1001, created_at=datetime.utcnow() - timedelta(days=3),
        ))
        await db_session.commit()

        # Act
        first = await client.post("/api/admin/points/exceeded-pending/transfer")
        second = await client.post("/api/admin/points/exceeded-pending/transfer")

        # Assert
        assert first.status_code == 200
        assert first.json()["processed"] == 1
        assert first.json()["transferred_points"] == 800
        assert second.json()["total"] == 0
        balance = await client.get("/api/casts/7/points/unsettled")
        assert balance.json()["unsettled_points"] == 1800
