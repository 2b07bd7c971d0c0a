"""Tests for the JSON-RPC client and ABI helpers."""

import httpx
import pytest
from conftest import RPC_URL, abi_hex, make_client, rpc_call, rpc_response

from polygon_wallet_dashboard.errors import NetworkError, UpstreamError
from polygon_wallet_dashboard.rpc import JsonRpcClient, decode_result, decode_string, encode_call, parse_quantity
from polygon_wallet_dashboard.rpc.abi import ERC20_SELECTORS


class TestParseQuantity:
    """Hex and decimal quantity parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [("0x0", 0), ("0x", 0), ("0xde0b6b3a7640000", 10**18), ("42", 42), (7, 7)],
    )
    def test_valid(self, value, expected):
        assert parse_quantity(value) == expected

    @pytest.mark.parametrize("value", ["0xzz", "abc", None, "1.5"])
    def test_invalid(self, value):
        """Malformed quantities are upstream errors."""
        with pytest.raises(UpstreamError):
            parse_quantity(value, "alchemy")


class TestAbi:
    """Call encoding and result decoding."""

    def test_encode_balance_of(self):
        """balanceOf(address) pads the address to 32 bytes."""
        data = encode_call(ERC20_SELECTORS["balanceOf"], ["address"], ["0x" + "ab" * 20])
        assert data.startswith("0x70a08231")
        assert data.endswith("ab" * 20)
        assert len(data) == 10 + 64

    def test_encode_without_args(self):
        """Calls without arguments are just the selector."""
        assert encode_call(ERC20_SELECTORS["decimals"]) == "0x313ce567"

    def test_decode_uint(self):
        assert decode_result(["uint256"], abi_hex(["uint256"], [123])) == (123,)

    def test_decode_string(self):
        """Standard ERC-20 string returns."""
        assert decode_string(abi_hex(["string"], ["USD Coin"])) == "USD Coin"

    def test_decode_bytes32_symbol(self):
        """Legacy tokens return a null-padded bytes32 symbol."""
        data = "0x" + b"MKR".ljust(32, b"\x00").hex()
        assert decode_string(data) == "MKR"

    def test_decode_empty_data(self):
        """Empty return data cannot be decoded."""
        with pytest.raises(ValueError):
            decode_string("0x")


@pytest.mark.asyncio
async def test_get_balance():
    """eth_getBalance results are parsed from hex."""

    def handler(request: httpx.Request) -> httpx.Response:
        method, params, _ = rpc_call(request)
        assert method == "eth_getBalance"
        assert params[1] == "latest"
        return rpc_response(request, "0x1bc16d674ec80000")

    async with make_client(handler) as client:
        assert await JsonRpcClient(RPC_URL, client).get_balance("0x" + "11" * 20) == 2 * 10**18


@pytest.mark.asyncio
async def test_rpc_error_member_is_upstream_error():
    """A JSON-RPC error member raises UpstreamError with the provider message."""

    def handler(request: httpx.Request) -> httpx.Response:
        return rpc_response(request, error={"code": -32000, "message": "execution reverted"})

    async with make_client(handler) as client:
        with pytest.raises(UpstreamError, match="execution reverted"):
            await JsonRpcClient(RPC_URL, client).eth_call("0x" + "22" * 20, "0x313ce567")


@pytest.mark.asyncio
async def test_rpc_timeout_is_network_error():
    """Transport timeouts are classified as NetworkError."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    async with make_client(handler) as client:
        with pytest.raises(NetworkError):
            await JsonRpcClient(RPC_URL, client, source="rpc").get_balance("0x" + "11" * 20)


@pytest.mark.asyncio
async def test_rpc_http_status_is_upstream_error():
    """HTTP error statuses are upstream errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="oops")

    async with make_client(handler) as client:
        with pytest.raises(UpstreamError) as exc_info:
            await JsonRpcClient(RPC_URL, client).request("eth_blockNumber", [])
    assert exc_info.value.status_code == 500
