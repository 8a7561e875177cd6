"""RecordPointEntry Use Case

Appends one row to the points ledger and keeps the owner's denormalized
balance in step, in a single unit of work.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.point_transaction_repository import PointTransactionRepository
from src.app.repositories.guest_repository import GuestRepository
from src.app.repositories.cast_repository import CastRepository
from src.domain.point_transaction import EARNABLE_TYPES, PointTransaction
from .dtos import RecordPointEntryCommandDTO, RecordPointEntryResponseDTO, to_transaction_dto

logger = logging.getLogger(__name__)


class RecordPointEntry:
    """
    Use Case: Record a ledger entry

    Business Rules:
    1. Earnable rows (transfer, gift) belong to a cast and must be positive;
       cast.points += amount
    2. Every other row belongs to a guest; guest.points += amount (signed)
    3. A guest deduction below zero is rejected (INSUFFICIENT_POINTS)
    4. Owner row is locked (SELECT FOR UPDATE) before the balance changes
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transaction_repo: PointTransactionRepository,
        guest_repo: GuestRepository,
        cast_repo: CastRepository,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.guest_repo = guest_repo
        self.cast_repo = cast_repo

    async def execute(self, command: RecordPointEntryCommandDTO) -> Result[RecordPointEntryResponseDTO]:
        try:
            if command.amount == 0:
                return Return.err(Error(code="INVALID_AMOUNT", message="Amount must not be zero"))

            if command.transaction_type in EARNABLE_TYPES:
                if command.cast_id is None:
                    return Return.err(Error(
                        code="VALIDATION_ERROR",
                        message=f"{command.transaction_type.value} entries require cast_id",
                    ))
                if command.amount < 0:
                    return Return.err(Error(
                        code="INVALID_AMOUNT",
                        message="Earnings must be positive",
                    ))

                cast = await self.cast_repo.get_by_id(command.cast_id, for_update=True)
                if not cast:
                    return Return.err(Error(
                        code="CAST_NOT_FOUND",
                        message=f"Cast {command.cast_id} not found",
                    ))
                cast.points = (cast.points or 0) + command.amount
                await self.cast_repo.save(cast)
                balance_after = cast.points
            else:
                if command.guest_id is None:
                    return Return.err(Error(
                        code="VALIDATION_ERROR",
                        message=f"{command.transaction_type.value} entries require guest_id",
                    ))

                guest = await self.guest_repo.get_by_id(command.guest_id, for_update=True)
                if not guest:
                    return Return.err(Error(
                        code="GUEST_NOT_FOUND",
                        message=f"Guest {command.guest_id} not found",
                    ))
                balance_after = (guest.points or 0) + command.amount
                if balance_after < 0:
                    return Return.err(Error(
                        code="INSUFFICIENT_POINTS",
                        message=f"Insufficient points. Required: {-command.amount}, Available: {guest.points}",
                    ))
                guest.points = balance_after
                await self.guest_repo.save(guest)

            transaction = await self.transaction_repo.create(
                PointTransaction(
                    guest_id=command.guest_id,
                    cast_id=command.cast_id,
                    transaction_type=command.transaction_type,
                    amount=command.amount,
                    reservation_id=command.reservation_id,
                    payment_id=command.payment_id,
                    description=command.description,
                )
            )

            await self.uow.commit()

            logger.info(
                f"Recorded {command.transaction_type.value} entry {transaction.id} "
                f"amount={command.amount} balance_after={balance_after}"
            )

            return Return.ok(
                RecordPointEntryResponseDTO(
                    transaction=to_transaction_dto(transaction),
                    balance_after=balance_after,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RECORD_POINT_ENTRY_FAILED",
                    message="Failed to record point entry",
                    reason=str(e),
                )
            )
