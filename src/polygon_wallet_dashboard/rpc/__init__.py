"""RPC layer: async JSON-RPC client and ABI helpers."""

from polygon_wallet_dashboard.rpc.abi import decode_result, decode_string, encode_call
from polygon_wallet_dashboard.rpc.client import JsonRpcClient, parse_quantity

__all__ = [
    "JsonRpcClient",
    "decode_result",
    "decode_string",
    "encode_call",
    "parse_quantity",
]
