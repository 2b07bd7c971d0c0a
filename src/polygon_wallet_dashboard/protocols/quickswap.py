"""QuickSwap liquidity protocol handler."""

import logging
from typing import Any

import httpx

from polygon_wallet_dashboard.core.models import AdapterResult, DefiPosition, LiquidityPosition, Skipped
from polygon_wallet_dashboard.core.registry import ProtocolRegistry
from polygon_wallet_dashboard.errors import ConfigError, UpstreamError, classify_http_error
from polygon_wallet_dashboard.protocols.base import BaseProtocolHandler

logger = logging.getLogger(__name__)

LIQUIDITY_POSITIONS_QUERY = """
query LiquidityPositions($id: ID!) {
  user(id: $id) {
    liquidityPositions {
      pair {
        token0 { symbol }
        token1 { symbol }
      }
      liquidityTokenBalance
    }
  }
}
"""


def pair_label(raw: dict[str, Any]) -> str | None:
    """Return ``"TOKEN0/TOKEN1"`` for a graph liquidity position, or None if incomplete."""
    pair = raw.get("pair") if isinstance(raw, dict) else None
    if not isinstance(pair, dict):
        return None
    token0 = (pair.get("token0") or {}).get("symbol")
    token1 = (pair.get("token1") or {}).get("symbol")
    if not token0 or not token1:
        return None
    return f"{token0}/{token1}"


@ProtocolRegistry.register
class QuickSwapHandler(BaseProtocolHandler):
    """
    Handler for QuickSwap liquidity-pool positions.

    Queries the protocol's indexing graph. The graph gives pairs and balances but
    no USD valuation, so ``net_value_usd`` stays unset.

    """

    name = "quickswap"
    supported_chains = ["polygon"]

    async def get_positions(self, user_address: str) -> AdapterResult[DefiPosition]:
        if not self.is_supported_on_chain(self.chain):
            return AdapterResult[DefiPosition]()

        graph_url = self.settings.liquidity_graph_url or self.get_contract_addresses().get("subgraph_url")
        if not graph_url:
            msg = "QuickSwap subgraph URL not configured, set QUICKSWAP_SUBGRAPH_URL"
            raise ConfigError(msg, source=self.name)

        payload = {"query": LIQUIDITY_POSITIONS_QUERY, "variables": {"id": user_address.lower()}}
        try:
            response = await self.client.post(graph_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise classify_http_error(e, self.name) from e

        if not isinstance(body, dict):
            msg = "QuickSwap subgraph returned a malformed response"
            raise UpstreamError(msg, source=self.name)
        if body.get("errors"):
            msg = f"QuickSwap subgraph query failed: {body['errors']}"
            raise UpstreamError(msg, source=self.name, details={"errors": body["errors"]})

        user = (body.get("data") or {}).get("user") or {}
        raw_positions = user.get("liquidityPositions") or []

        pairs: list[str] = []
        skipped: list[Skipped] = []
        for index, raw in enumerate(raw_positions):
            label = pair_label(raw)
            if label is None:
                skipped.append(Skipped(key=f"#{index}", reason="missing_pair"))
                continue
            pairs.append(label)

        if not pairs:
            return AdapterResult[DefiPosition](skipped=skipped)

        position = LiquidityPosition(
            protocol=self.name,
            protocol_name=self.display_name,
            logo=self.logo,
            pairs=tuple(pairs),
            position_count=len(pairs),
        )
        logger.debug("Found %d QuickSwap positions for %s", len(pairs), user_address)
        return AdapterResult[DefiPosition](items=[position], skipped=skipped)
