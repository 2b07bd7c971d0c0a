"""On-chain achievements: a fixed catalog of predicates over the normalized model."""

import time
from collections.abc import Callable
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from polygon_wallet_dashboard.analytics.valuation import total_value
from polygon_wallet_dashboard.core.models import NormalizedModel

LONG_TERM_SECONDS = 30 * 24 * 60 * 60


class Rarity(StrEnum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


RARITY_COLORS = {
    Rarity.COMMON: "#95a5a6",
    Rarity.RARE: "#3498db",
    Rarity.EPIC: "#9b59b6",
    Rarity.LEGENDARY: "#f39c12",
}


class Achievement(BaseModel):
    """An unlockable achievement."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    icon: str
    rarity: Rarity


class AchievementContext(BaseModel):
    """Facts the catalog predicates read, computed once per check."""

    model_config = ConfigDict(frozen=True)

    token_count: int
    nft_count: int
    defi_count: int
    transaction_count: int
    total_value_usd: Decimal
    oldest_transaction_age: float | None


def _oldest_age(model: NormalizedModel, now: float) -> float | None:
    timestamps = [tx.timestamp for tx in model.transactions if tx.timestamp is not None]
    if not timestamps:
        return None
    return now - min(timestamps)


Predicate = Callable[[AchievementContext], bool]

CATALOG: list[tuple[Achievement, Predicate]] = [
    (
        Achievement(id="first-token", title="Token Holder", description="First time holding tokens", icon="🪙",
                    rarity=Rarity.COMMON),
        lambda c: c.token_count >= 1,
    ),
    (
        Achievement(id="thousandaire", title="Thousandaire", description="Asset value exceeds $1,000", icon="💰",
                    rarity=Rarity.COMMON),
        lambda c: c.total_value_usd >= 1_000,
    ),
    (
        Achievement(id="ten-thousandaire", title="Ten Thousandaire", description="Asset value exceeds $10,000",
                    icon="💎", rarity=Rarity.RARE),
        lambda c: c.total_value_usd >= 10_000,
    ),
    (
        Achievement(id="hundred-thousandaire", title="Hundred Thousandaire",
                    description="Asset value exceeds $100,000", icon="👑", rarity=Rarity.EPIC),
        lambda c: c.total_value_usd >= 100_000,
    ),
    (
        Achievement(id="nft-collector", title="NFT Collector", description="Own at least 1 NFT", icon="🖼️",
                    rarity=Rarity.COMMON),
        lambda c: c.nft_count >= 1,
    ),
    (
        Achievement(id="nft-enthusiast", title="NFT Enthusiast", description="Own at least 10 NFTs", icon="🎨",
                    rarity=Rarity.RARE),
        lambda c: c.nft_count >= 10,
    ),
    (
        Achievement(id="nft-whale", title="NFT Whale", description="Own at least 50 NFTs", icon="🐋",
                    rarity=Rarity.EPIC),
        lambda c: c.nft_count >= 50,
    ),
    (
        Achievement(id="defi-participant", title="DeFi Participant", description="Participate in DeFi protocols",
                    icon="🏦", rarity=Rarity.COMMON),
        lambda c: c.defi_count >= 1,
    ),
    (
        Achievement(id="active-trader", title="Active Trader", description="Complete at least 10 transactions",
                    icon="📊", rarity=Rarity.COMMON),
        lambda c: c.transaction_count >= 10,
    ),
    (
        Achievement(id="power-trader", title="Power Trader", description="Complete at least 100 transactions",
                    icon="⚡", rarity=Rarity.RARE),
        lambda c: c.transaction_count >= 100,
    ),
    (
        Achievement(id="diversified", title="Diversified", description="Hold at least 5 different tokens",
                    icon="🌈", rarity=Rarity.RARE),
        lambda c: c.token_count >= 5,
    ),
    (
        Achievement(id="long-term-holder", title="Long-term Holder",
                    description="Hold assets for more than 30 days", icon="⏰", rarity=Rarity.COMMON),
        lambda c: c.oldest_transaction_age is not None and c.oldest_transaction_age >= LONG_TERM_SECONDS,
    ),
]


def check_achievements(model: NormalizedModel, now: float | None = None) -> list[Achievement]:
    """
    Return every unlocked achievement, in catalog order.

    Each predicate is independent; more data never unlocks fewer achievements.

    Parameters
    ----------
    model : NormalizedModel
        Normalized snapshot
    now : float | None
        Reference time in unix seconds; defaults to the current time

    Returns
    -------
    list[Achievement]
        Unlocked achievements

    """
    now = time.time() if now is None else now
    context = AchievementContext(
        token_count=len(model.tokens),
        nft_count=len(model.nfts),
        defi_count=len(model.defi_positions),
        transaction_count=len(model.transactions),
        total_value_usd=total_value(model.tokens),
        oldest_transaction_age=_oldest_age(model, now),
    )
    return [achievement for achievement, predicate in CATALOG if predicate(context)]


def rarity_color(rarity: str) -> str:
    """Hex color of a rarity; unknown rarities use the common color."""
    try:
        return RARITY_COLORS[Rarity(rarity)]
    except ValueError:
        return RARITY_COLORS[Rarity.COMMON]
