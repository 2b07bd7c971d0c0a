"""Native-coin balance adapter."""

import logging
from typing import Any

from polygon_wallet_dashboard.core.models import NATIVE, AdapterResult, TokenHolding
from polygon_wallet_dashboard.rpc.client import JsonRpcClient
from polygon_wallet_dashboard.sources.base import SourceAdapter

logger = logging.getLogger(__name__)


class NativeBalanceAdapter(SourceAdapter):
    """Reads the chain's native balance with a single ``eth_getBalance`` call."""

    name = "native_balance"

    async def fetch(self, address: str, **kwargs: Any) -> AdapterResult[TokenHolding]:
        rpc = JsonRpcClient(self.settings.require_rpc_url(), self.client, source="rpc")
        balance = await rpc.get_balance(address)
        logger.debug("native balance for %s: %d", address, balance)

        holding = TokenHolding(
            contract_address=NATIVE,
            symbol=self.settings.native_symbol,
            name=self.settings.native_name,
            raw_balance=str(balance),
            decimals=18,
        )
        return AdapterResult[TokenHolding](items=[holding])
