"""Portfolio valuation and asset distribution."""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from polygon_wallet_dashboard.core.models import DefiPosition, TokenHolding

DISPLAY_LIMIT = 10
LEGEND_LIMIT = 6


class DistributionEntry(BaseModel):
    """
    One token's share of the portfolio.

    Attributes
    ----------
    symbol : str
        Token symbol
    name : str
        Token display name
    value_usd : Decimal
        Token value in USD
    percentage : Decimal
        Share of the total value, 0-100, unrounded

    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    name: str
    value_usd: Decimal
    percentage: Decimal


def total_value(tokens: Iterable[TokenHolding]) -> Decimal:
    """
    Sum the USD value of every token; unpriced tokens count as 0.

    Parameters
    ----------
    tokens : Iterable[TokenHolding]
        Token holdings

    Returns
    -------
    Decimal
        Total value in USD (0 for an empty list)

    """
    return sum((token.value_usd for token in tokens), Decimal(0))


def distribution(tokens: Sequence[TokenHolding], limit: int | None = None) -> list[DistributionEntry]:
    """
    Compute each token's percentage of the total value.

    Entries with a non-positive value are excluded. The result is sorted by value,
    descending; ties keep their fetch order.

    Parameters
    ----------
    tokens : Sequence[TokenHolding]
        Token holdings in fetch order
    limit : int | None
        Keep only the first ``limit`` entries (``DISPLAY_LIMIT`` for charts,
        ``LEGEND_LIMIT`` for compact legends)

    Returns
    -------
    list[DistributionEntry]
        Distribution entries

    """
    valued = [(token, token.value_usd) for token in tokens]
    valued = [(token, value) for token, value in valued if value > 0]
    total = sum((value for _, value in valued), Decimal(0))
    if total <= 0:
        return []

    valued.sort(key=lambda pair: -pair[1])
    entries = [
        DistributionEntry(symbol=token.symbol, name=token.name, value_usd=value, percentage=value / total * 100)
        for token, value in valued
    ]
    return entries if limit is None else entries[:limit]


def defi_total_value(positions: Iterable[DefiPosition]) -> Decimal:
    """Sum the net USD value of DeFi positions; positions without a value count as 0."""
    return sum((position.net_value_usd or Decimal(0) for position in positions), Decimal(0))
