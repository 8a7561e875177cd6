"""Ledger description markers for delayed-capture payments"""

from typing import Optional

CAPTURE_SCHEDULED = "(capture scheduled)"
PAYMENT_COMPLETED = "(payment completed)"
PAYMENT_FAILED_RETURNED = "(payment failed - points returned)"

_MARKERS = (CAPTURE_SCHEDULED, PAYMENT_COMPLETED, PAYMENT_FAILED_RETURNED)


def relabel(description: Optional[str], marker: str) -> str:
    text = description or ""
    for existing in _MARKERS:
        if existing in text:
            return text.replace(existing, marker)
    return f"{text} {marker}".strip()


async def relabel_payment_rows(transaction_repo, payment_id: int, marker: str) -> int:
    """Swap the status marker on every ledger row tied to a payment"""
    rows = await transaction_repo.list_by_payment(payment_id)
    for row in rows:
        row.description = relabel(row.description, marker)
        await transaction_repo.save(row)
    return len(rows)
