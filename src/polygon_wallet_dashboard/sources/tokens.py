"""ERC-20 balance adapter: indexer candidate list, then per-token RPC detail reads."""

import asyncio
import logging
from typing import Any

import httpx

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core.models import AdapterResult, Skipped, TokenHolding
from polygon_wallet_dashboard.errors import UpstreamError
from polygon_wallet_dashboard.rpc.abi import ERC20_SELECTORS, decode_result, decode_string, encode_call
from polygon_wallet_dashboard.rpc.client import JsonRpcClient, parse_quantity
from polygon_wallet_dashboard.sources.alchemy import AlchemyClient
from polygon_wallet_dashboard.sources.base import SourceAdapter

logger = logging.getLogger(__name__)


def select_candidates(entries: list[dict[str, Any]]) -> tuple[list[str], list[Skipped]]:
    """
    Pick contract addresses with a non-zero balance from indexer entries.

    Balances are compared as integers, never floats.

    Parameters
    ----------
    entries : list[dict[str, Any]]
        Raw ``tokenBalances`` entries

    Returns
    -------
    tuple[list[str], list[Skipped]]
        Candidate contract addresses in upstream order, and dropped entries

    """
    candidates: list[str] = []
    skipped: list[Skipped] = []

    for index, entry in enumerate(entries):
        contract = entry.get("contractAddress") or (entry.get("contract") or {}).get("address")
        if not contract:
            skipped.append(Skipped(key=f"#{index}", reason="missing_contract_address"))
            continue
        if entry.get("error"):
            skipped.append(Skipped(key=contract, reason="indexer_error", detail=str(entry["error"])))
            continue
        try:
            balance = parse_quantity(entry.get("tokenBalance") or "0", "alchemy")
        except UpstreamError as e:
            skipped.append(Skipped(key=contract, reason="malformed_balance", detail=str(e)))
            continue
        if balance <= 0:
            continue
        candidates.append(contract)

    return candidates, skipped


class TokenBalanceAdapter(SourceAdapter):
    """
    Two-phase ERC-20 adapter.

    Phase one lists candidate contracts from the indexer and fails the whole
    adapter if it cannot (e.g., missing API key). Phase two reads
    ``balanceOf``/``decimals``/``symbol``/``name`` for every candidate at once;
    a failed token is skipped without affecting its siblings.

    """

    name = "token_balances"

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        indexer: AlchemyClient | None = None,
    ) -> None:
        super().__init__(settings, client)
        self.indexer = indexer or AlchemyClient(settings, client)

    async def fetch(self, address: str, **kwargs: Any) -> AdapterResult[TokenHolding]:
        entries = await self.indexer.get_token_balances(address)
        candidates, skipped = select_candidates(entries)

        if not candidates:
            logger.info("No ERC-20 tokens found for %s", address)
            return AdapterResult[TokenHolding](skipped=skipped)

        rpc = JsonRpcClient(self.settings.require_rpc_url(), self.client, source="rpc")
        results = await asyncio.gather(
            *(self._fetch_token(rpc, contract, address) for contract in candidates),
            return_exceptions=True,
        )

        items: list[TokenHolding] = []
        for contract, result in zip(candidates, results, strict=True):
            if isinstance(result, Exception):
                logger.debug("Dropping token %s: %s", contract, result)
                skipped.append(Skipped(key=contract, reason="detail_fetch_failed", detail=str(result)))
            elif isinstance(result, BaseException):
                raise result
            elif result.raw_balance == "0":
                skipped.append(Skipped(key=contract, reason="zero_balance"))
            else:
                items.append(result)

        logger.info("Fetched details for %d of %d tokens", len(items), len(candidates))
        return AdapterResult[TokenHolding](items=items, skipped=skipped)

    async def _fetch_token(self, rpc: JsonRpcClient, contract: str, owner: str) -> TokenHolding:
        balance_data, decimals_data, symbol_data, name_data = await asyncio.gather(
            rpc.eth_call(contract, encode_call(ERC20_SELECTORS["balanceOf"], ["address"], [owner.lower()])),
            rpc.eth_call(contract, encode_call(ERC20_SELECTORS["decimals"])),
            rpc.eth_call(contract, encode_call(ERC20_SELECTORS["symbol"])),
            rpc.eth_call(contract, encode_call(ERC20_SELECTORS["name"])),
        )
        (balance,) = decode_result(["uint256"], balance_data)
        (decimals,) = decode_result(["uint8"], decimals_data)

        return TokenHolding(
            contract_address=contract,
            symbol=decode_string(symbol_data) or "UNKNOWN",
            name=decode_string(name_data) or "Unknown Token",
            raw_balance=str(balance),
            decimals=decimals,
        )
