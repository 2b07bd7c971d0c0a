"""Alchemy-style indexer client (REST + JSON-RPC hybrid)."""

import logging
from typing import Any

import httpx

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.errors import UpstreamError, classify_http_error
from polygon_wallet_dashboard.rpc.client import JsonRpcClient

logger = logging.getLogger(__name__)

TRANSFER_CATEGORIES = ["external", "erc20", "erc721", "erc1155"]


class AlchemyClient:
    """
    Client for the indexer API.

    The API key is part of the base URL, so it is resolved per call; a missing key
    raises ``ConfigError`` at the first request rather than at construction.

    Parameters
    ----------
    settings : Settings
        Dashboard settings
    client : httpx.AsyncClient
        Shared HTTP client

    """

    source = "alchemy"

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self.settings = settings
        self.client = client

    def _rpc(self) -> JsonRpcClient:
        return JsonRpcClient(self.settings.require_alchemy_url(), self.client, source=self.source)

    async def get_token_balances(self, owner: str) -> list[dict[str, Any]]:
        """
        List ERC-20 balances held by ``owner``.

        Returns
        -------
        list[dict[str, Any]]
            Raw entries: ``{"contractAddress", "tokenBalance", "error"}``

        """
        result = await self._rpc().request("alchemy_getTokenBalances", [owner])
        balances = (result or {}).get("tokenBalances") or []
        logger.debug("alchemy returned %d token balance entries for %s", len(balances), owner)
        return balances

    async def get_asset_transfers(
        self,
        from_address: str,
        max_count: int = 50,
        page_key: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch outgoing asset transfers (transfer-log view of the history).

        Parameters
        ----------
        from_address : str
            Wallet address
        max_count : int
            Maximum number of transfers
        page_key : str | None
            Pagination key from a previous call

        Returns
        -------
        dict[str, Any]
            ``{"transfers": [...], "pageKey": str | None}``

        """
        params: dict[str, Any] = {
            "fromBlock": "0x0",
            "toBlock": "latest",
            "fromAddress": from_address,
            "maxCount": hex(max_count),
            "excludeZeroValue": False,
            "withMetadata": True,
            "category": TRANSFER_CATEGORIES,
        }
        if page_key:
            params["pageKey"] = page_key

        result = await self._rpc().request("alchemy_getAssetTransfers", [params])
        return result or {}

    async def get_nfts(
        self,
        owner: str,
        page_size: int = 100,
        page_key: str | None = None,
        contract_addresses: list[str] | None = None,
    ) -> dict[str, Any]:
        """
        Fetch one page of NFTs owned by ``owner``.

        Returns
        -------
        dict[str, Any]
            Raw response with ``ownedNfts`` and optional ``pageKey``

        """
        params: dict[str, Any] = {"owner": owner, "pageSize": page_size, "withMetadata": "true"}
        if contract_addresses:
            params["contractAddresses[]"] = contract_addresses
        if page_key:
            params["pageKey"] = page_key

        url = f"{self.settings.require_alchemy_url()}/getNFTs"
        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise classify_http_error(e, self.source) from e

        if not isinstance(data, dict):
            msg = "alchemy getNFTs returned a malformed response"
            raise UpstreamError(msg, source=self.source)
        return data
