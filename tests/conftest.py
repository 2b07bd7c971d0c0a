"""Pytest configuration and fake upstreams for polygon-wallet-dashboard tests."""

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from eth_abi import encode

from polygon_wallet_dashboard.config import Settings

WALLET = "0xAbC1230000000000000000000000000000004567"
OTHER_WALLET = "0x9999999999999999999999999999999999999999"

ALCHEMY_URL = "https://polygon-mainnet.g.alchemy.com/v2/test-key"
RPC_URL = "https://rpc.test"
EXPLORER_URL = "https://api.polygonscan.com/api"
PRICE_URL = "https://prices.test/api/v3"
GRAPH_URL = "https://graph.test/quickswap"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    """Settings with every credential configured and test endpoints."""
    return Settings(
        chain="polygon",
        alchemy_api_key="test-key",
        explorer_api_key="scan-key",
        rpc_url=RPC_URL,
        price_api_url=PRICE_URL,
        liquidity_graph_url=GRAPH_URL,
        request_timeout=5.0,
    )


@pytest.fixture
def bare_settings() -> Settings:
    """Settings without any credential or endpoint."""
    return Settings(chain="polygon", price_api_url=PRICE_URL, request_timeout=5.0)


def make_client(handler: Handler) -> httpx.AsyncClient:
    """Build an AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def rpc_call(request: httpx.Request) -> tuple[str, list[Any], int]:
    """Return (method, params, id) of a JSON-RPC request."""
    body = json.loads(request.content)
    return body["method"], body["params"], body["id"]


def rpc_response(request: httpx.Request, result: Any = None, error: dict[str, Any] | None = None) -> httpx.Response:
    """Build a JSON-RPC response for ``request``."""
    _, _, request_id = rpc_call(request)
    payload: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
    if error is not None:
        payload["error"] = error
    else:
        payload["result"] = result
    return httpx.Response(200, json=payload)


def abi_hex(types: list[str], values: list[Any]) -> str:
    """ABI-encode ``values`` as 0x-prefixed return data."""
    return "0x" + encode(types, values).hex()


class FakeToken:
    """ERC-20 contract answering balanceOf/decimals/symbol/name."""

    def __init__(self, address: str, symbol: str, name: str, decimals: int, balance: int) -> None:
        self.address = address
        self.symbol = symbol
        self.name = name
        self.decimals = decimals
        self.balance = balance

    def answer(self, data: str) -> str:
        selector = data[:10]
        if selector == "0x70a08231":
            return abi_hex(["uint256"], [self.balance])
        if selector == "0x313ce567":
            return abi_hex(["uint8"], [self.decimals])
        if selector == "0x95d89b41":
            return abi_hex(["string"], [self.symbol])
        if selector == "0x06fdde03":
            return abi_hex(["string"], [self.name])
        raise AssertionError(f"unexpected selector {selector}")


def alchemy_transfer(
    tx_hash: str | None,
    asset: str = "MATIC",
    category: str = "external",
    raw_value: str | None = "0xde0b6b3a7640000",
    decimal: str | None = "0x12",
    timestamp: str = "2024-01-01T00:00:00.000Z",
) -> dict[str, Any]:
    """Build an indexer asset transfer record."""
    record: dict[str, Any] = {
        "uniqueId": f"{tx_hash}:external",
        "blockNum": "0x10",
        "from": WALLET.lower(),
        "to": OTHER_WALLET,
        "asset": asset,
        "category": category,
        "value": 1.0,
        "metadata": {"blockTimestamp": timestamp},
    }
    if tx_hash is not None:
        record["hash"] = tx_hash
    if raw_value is not None:
        record["rawContract"] = {"value": raw_value, "address": None, "decimal": decimal}
    return record


def explorer_tx(
    tx_hash: str,
    is_error: str = "0",
    receipt_status: str = "1",
    value: str = "1000000000000000000",
    timestamp: str = "1700000000",
) -> dict[str, Any]:
    """Build an explorer txlist row."""
    return {
        "blockNumber": "123",
        "timeStamp": timestamp,
        "hash": tx_hash,
        "nonce": "1",
        "from": WALLET.lower(),
        "to": OTHER_WALLET,
        "value": value,
        "gas": "21000",
        "gasPrice": "30000000000",
        "gasUsed": "21000",
        "isError": is_error,
        "txreceipt_status": receipt_status,
    }
