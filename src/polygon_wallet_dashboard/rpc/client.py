"""Async JSON-RPC client over HTTPS."""

import itertools
import logging
from typing import Any

import httpx

from polygon_wallet_dashboard.errors import UpstreamError, classify_http_error

logger = logging.getLogger(__name__)


class JsonRpcClient:
    """
    Minimal JSON-RPC 2.0 client sharing an ``httpx.AsyncClient``.

    Used both for the chain RPC node and for indexer JSON-RPC methods
    (``alchemy_getTokenBalances``, ``alchemy_getAssetTransfers``).

    Parameters
    ----------
    url : str
        Endpoint URL
    client : httpx.AsyncClient
        Shared HTTP client (owns timeouts and connection pooling)
    source : str
        Upstream name used when classifying errors

    """

    def __init__(self, url: str, client: httpx.AsyncClient, source: str = "rpc") -> None:
        self.url = url
        self.client = client
        self.source = source
        self._ids = itertools.count(1)

    async def request(self, method: str, params: list[Any]) -> Any:
        """
        Make a JSON-RPC request.

        Parameters
        ----------
        method : str
            RPC method name (e.g., 'eth_call', 'eth_getBalance')
        params : list[Any]
            Method parameters

        Returns
        -------
        Any
            The ``result`` member of the response

        Raises
        ------
        NetworkError
            On timeout, connection failure or rate limiting
        UpstreamError
            On HTTP error status or a JSON-RPC ``error`` member

        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self.client.post(self.url, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise classify_http_error(e, self.source) from e

        if not isinstance(body, dict):
            msg = f"{self.source} returned a malformed JSON-RPC response for {method}"
            raise UpstreamError(msg, source=self.source)

        if body.get("error"):
            error = body["error"]
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            msg = f"{self.source} {method} failed: {message}"
            raise UpstreamError(msg, source=self.source, details={"error": error})

        logger.debug("%s %s ok", self.source, method)
        return body.get("result")

    async def get_balance(self, address: str, block: str = "latest") -> int:
        """
        Get the native balance of ``address`` in wei.

        Returns
        -------
        int
            Balance as an integer

        """
        result = await self.request("eth_getBalance", [address, block])
        return parse_quantity(result, self.source)

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        """
        Execute a read-only contract call.

        Parameters
        ----------
        to : str
            Contract address
        data : str
            0x-prefixed ABI-encoded call data

        Returns
        -------
        str
            0x-prefixed return data

        """
        result = await self.request("eth_call", [{"to": to, "data": data}, block])
        if not isinstance(result, str):
            msg = f"{self.source} eth_call returned no data for {to}"
            raise UpstreamError(msg, source=self.source)
        return result


def parse_quantity(value: Any, source: str = "rpc") -> int:
    """
    Parse a hex (``0x..``) or decimal quantity into an int.

    Raises
    ------
    UpstreamError
        If the value is not a quantity

    """
    try:
        if isinstance(value, int):
            return value
        text = str(value).strip()
        if text.lower().startswith("0x"):
            return int(text, 16) if len(text) > 2 else 0
        return int(text)
    except (TypeError, ValueError) as e:
        msg = f"{source} returned a malformed quantity: {value!r}"
        raise UpstreamError(msg, source=source) from e
