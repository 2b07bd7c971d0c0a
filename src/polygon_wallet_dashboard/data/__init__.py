"""Packaged chain configuration."""

from polygon_wallet_dashboard.data.loader import (
    get_all_supported_chains,
    get_chain_config,
    get_price_ids,
    get_pricing_base_url,
    get_protocol_addresses,
    get_protocol_catalog,
    load_chain_config,
)

__all__ = [
    "get_all_supported_chains",
    "get_chain_config",
    "get_price_ids",
    "get_pricing_base_url",
    "get_protocol_addresses",
    "get_protocol_catalog",
    "load_chain_config",
]
