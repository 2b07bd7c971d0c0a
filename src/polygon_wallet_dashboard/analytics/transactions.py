"""Transaction list filtering."""

from collections.abc import Iterable
from enum import StrEnum

from polygon_wallet_dashboard.core.models import Transaction
from polygon_wallet_dashboard.formatters import addresses_equal


class Direction(StrEnum):
    ALL = "all"
    SENT = "sent"
    RECEIVED = "received"


class StatusFilter(StrEnum):
    ALL = "all"
    SUCCESS = "success"
    FAILED = "failed"


def filter_transactions(
    transactions: Iterable[Transaction],
    owner: str,
    direction: Direction | str = Direction.ALL,
    status: StatusFilter | str = StatusFilter.ALL,
    search: str | None = None,
) -> list[Transaction]:
    """
    Filter transactions by direction, status and a free-text search.

    Parameters
    ----------
    transactions : Iterable[Transaction]
        Transactions in display order
    owner : str
        Wallet address; a transaction is "sent" when its sender is the owner
    direction : Direction | str
        'all', 'sent' or 'received'
    status : StatusFilter | str
        'all', 'success' or 'failed'
    search : str | None
        Case-insensitive substring matched against hash, sender, recipient and value

    Returns
    -------
    list[Transaction]
        Matching transactions, order preserved

    """
    direction = Direction(direction)
    status = StatusFilter(status)
    needle = search.strip().lower() if search else ""

    matched = []
    for tx in transactions:
        if direction is not Direction.ALL:
            outgoing = addresses_equal(tx.from_address, owner)
            if outgoing != (direction is Direction.SENT):
                continue
        if status is not StatusFilter.ALL and tx.status != status.value:
            continue
        if needle and not _matches(tx, needle):
            continue
        matched.append(tx)
    return matched


def _matches(tx: Transaction, needle: str) -> bool:
    haystack = (tx.hash, tx.from_address, tx.to_address or "", tx.raw_value, str(tx.value))
    return any(needle in field.lower() for field in haystack)
