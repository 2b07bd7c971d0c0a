"""Source adapters and the upstream HTTP clients they share."""

from polygon_wallet_dashboard.sources.alchemy import AlchemyClient
from polygon_wallet_dashboard.sources.base import SourceAdapter
from polygon_wallet_dashboard.sources.explorer import ExplorerResponse, PolygonScanClient
from polygon_wallet_dashboard.sources.native import NativeBalanceAdapter
from polygon_wallet_dashboard.sources.nfts import NFTAdapter, normalize_nft
from polygon_wallet_dashboard.sources.tokens import TokenBalanceAdapter, select_candidates
from polygon_wallet_dashboard.sources.transactions import (
    ExplorerTransactionAdapter,
    IndexerTransactionAdapter,
    normalize_explorer_tx,
    normalize_token_transfer,
    normalize_transfer,
)

__all__ = [
    "AlchemyClient",
    "ExplorerResponse",
    "ExplorerTransactionAdapter",
    "IndexerTransactionAdapter",
    "NFTAdapter",
    "NativeBalanceAdapter",
    "PolygonScanClient",
    "SourceAdapter",
    "TokenBalanceAdapter",
    "normalize_explorer_tx",
    "normalize_nft",
    "normalize_token_transfer",
    "normalize_transfer",
    "select_candidates",
]
