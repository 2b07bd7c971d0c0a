"""PolygonScan-style explorer client."""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.errors import UpstreamError, classify_http_error

logger = logging.getLogger(__name__)

EMPTY_MESSAGES = {"No transactions found", "No token transfers found"}


class ExplorerResponse(BaseModel):
    """
    Explorer envelope.

    ``status != "1"`` is a recoverable empty result; ``rows`` is then empty.

    """

    status: str = "0"
    message: str = ""
    result: list[dict[str, Any]] | str = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "1" and isinstance(self.result, list)

    @property
    def rows(self) -> list[dict[str, Any]]:
        return self.result if self.ok else []


class PolygonScanClient:
    """
    Client for the explorer ``account`` module.

    Parameters
    ----------
    settings : Settings
        Dashboard settings (API key and endpoint)
    client : httpx.AsyncClient
        Shared HTTP client

    """

    source = "polygonscan"

    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self.settings = settings
        self.client = client

    async def get_transactions(
        self,
        address: str,
        page: int = 1,
        offset: int = 20,
        sort: str = "desc",
    ) -> ExplorerResponse:
        """
        Fetch one page of normal transactions (``action=txlist``).

        Raises
        ------
        ConfigError
            If the explorer API key is not configured

        """
        return await self._account_query("txlist", address, page, offset, sort)

    async def get_token_transfers(
        self,
        address: str,
        contract_address: str | None = None,
        page: int = 1,
        offset: int = 20,
        sort: str = "desc",
    ) -> ExplorerResponse:
        """Fetch one page of ERC-20 transfers (``action=tokentx``)."""
        extra = {"contractaddress": contract_address} if contract_address else None
        return await self._account_query("tokentx", address, page, offset, sort, extra)

    async def _account_query(
        self,
        action: str,
        address: str,
        page: int,
        offset: int,
        sort: str,
        extra: dict[str, str] | None = None,
    ) -> ExplorerResponse:
        params: dict[str, Any] = {
            "module": "account",
            "action": action,
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "page": page,
            "offset": offset,
            "sort": sort,
            "apikey": self.settings.require_explorer_key(),
        }
        if extra:
            params.update(extra)

        try:
            response = await self.client.get(self.settings.explorer_api_url, params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise classify_http_error(e, self.source) from e

        if not isinstance(data, dict):
            msg = f"polygonscan {action} returned a malformed response"
            raise UpstreamError(msg, source=self.source)

        envelope = ExplorerResponse.model_validate(data)
        if not envelope.ok and envelope.message not in EMPTY_MESSAGES:
            logger.warning("polygonscan %s returned status %s: %s", action, envelope.status, envelope.message)
        return envelope
