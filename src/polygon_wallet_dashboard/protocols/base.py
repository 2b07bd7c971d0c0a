"""Shared plumbing for DeFi position handlers."""

from abc import ABC, abstractmethod
from typing import ClassVar

import httpx

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core.models import AdapterResult, DefiPosition
from polygon_wallet_dashboard.data import get_protocol_addresses, get_protocol_catalog


class BaseProtocolHandler(ABC):
    """
    One DeFi protocol on one chain.

    A handler is the DeFi flavour of a source adapter: it reads one protocol's
    contracts or indexing graph and returns normalized positions.

    Attributes
    ----------
    name : str
        Registry key, also the catalog key in chains.yaml
    supported_chains : list[str]
        Chain names the handler can read

    Parameters
    ----------
    settings : Settings
        Dashboard settings
    client : httpx.AsyncClient
        Shared HTTP client

    """

    name: ClassVar[str] = ""
    supported_chains: ClassVar[list[str]] = []

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        if not self.name:
            msg = f"{type(self).__name__} has no protocol name"
            raise ValueError(msg)
        if not self.supported_chains:
            msg = f"{type(self).__name__} declares no supported_chains"
            raise ValueError(msg)
        self.settings = settings
        self.client = client

    @property
    def chain(self) -> str:
        return self.settings.chain

    @property
    def display_name(self) -> str:
        """Protocol display name from the packaged catalog."""
        return get_protocol_catalog(self.name)["name"]

    @property
    def logo(self) -> str:
        """Protocol logo glyph from the packaged catalog."""
        return get_protocol_catalog(self.name).get("logo", "")

    def get_contract_addresses(self) -> dict[str, str]:
        """
        Get all contract addresses and endpoints for this protocol on the configured chain.

        Returns
        -------
        dict[str, str]
            Contract role (or endpoint name) to address

        """
        return get_protocol_addresses(self.chain, self.name)

    def is_supported_on_chain(self, chain: str) -> bool:
        return chain in self.supported_chains

    @abstractmethod
    async def get_positions(self, user_address: str) -> AdapterResult[DefiPosition]:
        """
        Read the wallet's positions on this protocol.

        Parameters
        ----------
        user_address : str
            Validated wallet address

        Returns
        -------
        AdapterResult[DefiPosition]
            Positions found plus skipped records

        Raises
        ------
        DashboardError
            If the protocol cannot be queried at all

        """
        ...
