"""Pricing services for token USD value enrichment."""

from polygon_wallet_dashboard.pricing.coingecko import CoinGeckoPricing

__all__ = [
    "CoinGeckoPricing",
]
