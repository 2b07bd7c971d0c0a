"""Protocol handlers for DeFi protocols."""

# Import all handlers to trigger auto-registration
from polygon_wallet_dashboard.protocols.aave import AaveHandler
from polygon_wallet_dashboard.protocols.base import BaseProtocolHandler
from polygon_wallet_dashboard.protocols.quickswap import QuickSwapHandler

__all__ = [
    "AaveHandler",
    "BaseProtocolHandler",
    "QuickSwapHandler",
]
