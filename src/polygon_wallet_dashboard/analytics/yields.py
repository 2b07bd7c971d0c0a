"""Yield estimate from flat-rate assumptions per DeFi position type."""

from collections.abc import Sequence
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from polygon_wallet_dashboard.config import YieldAssumptions
from polygon_wallet_dashboard.core.models import DefiPosition, LendingPosition, PositionType


class YieldSource(BaseModel):
    """Estimated yearly yield of one DeFi position."""

    model_config = ConfigDict(frozen=True)

    protocol: str
    protocol_name: str
    position_type: PositionType
    yearly_yield_usd: Decimal
    apy: Decimal


class YieldReport(BaseModel):
    """
    Result of ``estimate_yield``.

    Attributes
    ----------
    total_yield_usd : Decimal
        Sum of every source's yearly yield
    average_apy : Decimal
        Arithmetic mean of the sources' quoted APY; 0 without sources
    sources : list[YieldSource]
        Per-position estimates in position order

    """

    model_config = ConfigDict(frozen=True)

    total_yield_usd: Decimal = Decimal(0)
    average_apy: Decimal = Decimal(0)
    sources: list[YieldSource] = Field(default_factory=list)


def estimate_yield(
    positions: Sequence[DefiPosition],
    assumptions: YieldAssumptions | None = None,
) -> YieldReport:
    """
    Estimate yearly yield of DeFi positions.

    These are placeholder heuristics, not live rates: lending positions earn
    ``lending_rate`` of their net collateral, liquidity positions
    ``liquidity_rate`` of their net value (0 when unknown).

    Parameters
    ----------
    positions : Sequence[DefiPosition]
        DeFi positions
    assumptions : YieldAssumptions | None
        Rate assumptions; defaults to ``YieldAssumptions()``

    Returns
    -------
    YieldReport
        Total, average APY and per-position sources

    """
    assumptions = assumptions or YieldAssumptions()
    sources = []

    for position in positions:
        if isinstance(position, LendingPosition):
            rate, apy = assumptions.lending_rate, assumptions.lending_apy
        else:
            rate, apy = assumptions.liquidity_rate, assumptions.liquidity_apy
        net_value = position.net_value_usd or Decimal(0)
        sources.append(
            YieldSource(
                protocol=position.protocol,
                protocol_name=position.protocol_name,
                position_type=position.position_type,
                yearly_yield_usd=net_value * rate,
                apy=apy,
            )
        )

    if not sources:
        return YieldReport()

    return YieldReport(
        total_yield_usd=sum((s.yearly_yield_usd for s in sources), Decimal(0)),
        average_apy=sum((s.apy for s in sources), Decimal(0)) / len(sources),
        sources=sources,
    )
