"""Taking credited points back when a charge does not settle"""

from src.app.repositories.guest_repository import GuestRepository
from src.app.repositories.payment_repository import PaymentRepository
from src.domain.payment import Payment


async def take_back_points(
    payment: Payment,
    guest_repo: GuestRepository,
    payment_repo: PaymentRepository,
) -> int:
    """
    Remove the points credited for a payment from the guest's balance

    The balance is floored at 0. Returns the number of points taken back,
    0 when nothing had been credited.
    """
    if not payment.points_credited:
        return 0
    points = int((payment.meta or {}).get("required_points", 0))
    guest = await guest_repo.get_by_id(payment.user_id, for_update=True)
    if not guest or points <= 0:
        return 0
    guest.points = max(0, (guest.points or 0) - points)
    await guest_repo.save(guest)
    payment.merge_metadata(points_credited=False, points_returned=points)
    await payment_repo.save(payment)
    return points
