"""Chain configuration loader."""

from functools import cache
from pathlib import Path
from typing import Any

import yaml


@cache
def load_chain_config() -> dict[str, Any]:
    """
    Load the packaged chains.yaml.

    Returns
    -------
    dict[str, Any]
        Chain, protocol catalog and pricing configuration

    """
    path = Path(__file__).parent / "chains.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def get_chain_config(chain: str) -> dict[str, Any]:
    """
    Get configuration for a specific chain.

    Parameters
    ----------
    chain : str
        Chain name (e.g., 'polygon')

    Returns
    -------
    dict[str, Any]
        Chain configuration including endpoints and protocol addresses

    Raises
    ------
    KeyError
        If chain is not found in configuration

    """
    return load_chain_config()["chains"][chain]


def get_all_supported_chains() -> list[str]:
    """Get list of all configured chain names."""
    return list(load_chain_config()["chains"].keys())


def get_protocol_addresses(chain: str, protocol: str) -> dict[str, str]:
    """
    Get all contract addresses/endpoints for a protocol on a chain.

    Parameters
    ----------
    chain : str
        Chain name
    protocol : str
        Protocol name (e.g., 'aave_v3', 'quickswap')

    Returns
    -------
    dict[str, str]
        Mapping of contract names to addresses; empty if unknown

    """
    try:
        return dict(get_chain_config(chain)["protocols"].get(protocol, {}))
    except KeyError:
        return {}


def get_protocol_catalog(protocol: str) -> dict[str, str]:
    """
    Get display metadata (name, logo glyph, type) for a protocol.

    Parameters
    ----------
    protocol : str
        Protocol name

    Returns
    -------
    dict[str, str]
        Catalog entry; falls back to the raw protocol name

    """
    catalog = load_chain_config().get("protocol_catalog", {})
    return dict(catalog.get(protocol, {"name": protocol, "logo": "", "type": "unknown"}))


def get_price_ids() -> dict[str, str]:
    """Get the static symbol -> price-provider id table (symbols upper-cased)."""
    ids = load_chain_config()["pricing"]["ids"]
    return {symbol.upper(): coin_id for symbol, coin_id in ids.items()}


def get_pricing_base_url() -> str:
    """Get the default price API base URL."""
    return load_chain_config()["pricing"]["base_url"]
