"""Core models, degradation policy and protocol registry.

The aggregation session lives in ``core.aggregator`` and is imported from there;
it depends on the source adapters, which themselves depend on ``core.models``.
"""

from polygon_wallet_dashboard.core.degradation import Disposition, decide, domain_error_message
from polygon_wallet_dashboard.core.models import (
    AdapterResult,
    DashboardSnapshot,
    DefiPosition,
    Domain,
    DomainError,
    DomainState,
    DomainStatus,
    LendingPosition,
    LiquidityPosition,
    NFTItem,
    NormalizedModel,
    PositionType,
    Skipped,
    TokenHolding,
    Transaction,
    TxSource,
    TxStatus,
)
from polygon_wallet_dashboard.core.registry import ProtocolRegistry

__all__ = [
    "AdapterResult",
    "DashboardSnapshot",
    "DefiPosition",
    "Disposition",
    "Domain",
    "DomainError",
    "DomainState",
    "DomainStatus",
    "LendingPosition",
    "LiquidityPosition",
    "NFTItem",
    "NormalizedModel",
    "PositionType",
    "ProtocolRegistry",
    "Skipped",
    "TokenHolding",
    "Transaction",
    "TxSource",
    "TxStatus",
    "decide",
    "domain_error_message",
]
