"""
Autofill pool split policy.

Each recipient gets the pool divided evenly, rounded down to the cent.
The rounding remainder goes to the last recipient so the pool is always
distributed exactly: nothing is left behind and nothing is overpaid.
"""

from decimal import Decimal

from lotqueue.domain.trading.entities import AutofillShare
from lotqueue.domain.trading.packages import money_floor


def split_pool(pool: Decimal, recipient_ids: list[int]) -> list[AutofillShare]:
    """Split a pool across recipients.

    Args:
        pool: Positive amount to distribute, in cents.
        recipient_ids: User ids in distribution order.

    Returns:
        One share per recipient; the shares sum to exactly pool.
    """
    if not recipient_ids:
        return []

    base = money_floor(pool / len(recipient_ids))
    shares = [AutofillShare(user_id=uid, amount=base) for uid in recipient_ids]
    shares[-1].amount += pool - base * len(recipient_ids)
    return shares
