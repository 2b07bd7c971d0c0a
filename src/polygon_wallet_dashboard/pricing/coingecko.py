"""CoinGecko-style pricing service for token USD prices."""

import asyncio
import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.data import get_price_ids
from polygon_wallet_dashboard.errors import DashboardError, UpstreamError, classify_http_error

logger = logging.getLogger(__name__)


class CoinGeckoPricing:
    """
    Resolves token symbols to USD prices.

    Symbols are mapped to provider ids through a static table. Unmapped symbols are
    left out of the upstream request and of the result; optionally, a free-text
    search is tried for each of them and a unique exact symbol match is used.

    Parameters
    ----------
    settings : Settings
        Dashboard settings (price API base URL)
    client : httpx.AsyncClient
        Shared HTTP client
    price_ids : dict[str, str] | None
        Symbol -> provider id table; defaults to the packaged table
    search_unmapped : bool
        Whether to look up unmapped symbols with the search endpoint

    """

    source = "coingecko"

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        price_ids: dict[str, str] | None = None,
        search_unmapped: bool = True,
    ) -> None:
        self.base_url = settings.price_api_url.rstrip("/")
        self.client = client
        self.price_ids = {k.upper(): v for k, v in (price_ids if price_ids is not None else get_price_ids()).items()}
        self.search_unmapped = search_unmapped

    async def resolve(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """
        Fetch USD prices for a set of symbols in one batched request.

        Parameters
        ----------
        symbols : Iterable[str]
            Token symbols (any case)

        Returns
        -------
        dict[str, Decimal]
            Mapping of input symbol to USD price; symbols without a price are absent

        Raises
        ------
        NetworkError
            If the price request times out or is rate limited
        UpstreamError
            If the price API answers with an error

        Examples
        --------
        >>> prices = await pricing.resolve({"MATIC", "UNKNOWN_SYM"})
        >>> sorted(prices)
        ['MATIC']

        """
        wanted = sorted({s for s in symbols if s})
        if not wanted:
            return {}

        ids_by_symbol = {s: self.price_ids[s.upper()] for s in wanted if s.upper() in self.price_ids}
        unmapped = [s for s in wanted if s not in ids_by_symbol]

        if unmapped and self.search_unmapped:
            found = await asyncio.gather(*(self.search_id(s) for s in unmapped))
            ids_by_symbol.update({s: coin_id for s, coin_id in zip(unmapped, found, strict=True) if coin_id})
        elif unmapped:
            logger.debug("Dropping unmapped symbols: %s", ", ".join(unmapped))

        if not ids_by_symbol:
            return {}

        quotes = await self._fetch_simple_prices(sorted(set(ids_by_symbol.values())))

        prices: dict[str, Decimal] = {}
        for symbol, coin_id in ids_by_symbol.items():
            usd = (quotes.get(coin_id) or {}).get("usd")
            if usd is None:
                continue
            try:
                prices[symbol] = Decimal(str(usd))
            except InvalidOperation:
                logger.debug("Ignoring malformed price %r for %s", usd, symbol)

        logger.debug("Resolved %d of %d prices", len(prices), len(wanted))
        return prices

    async def get_price(self, symbol: str) -> Decimal | None:
        """Fetch the USD price of one symbol, or None when it cannot be priced."""
        prices = await self.resolve([symbol])
        return prices.get(symbol)

    async def search_id(self, symbol: str) -> str | None:
        """
        Look up a provider id for ``symbol`` with the search endpoint.

        Only a single exact (case-insensitive) symbol match is accepted. Any
        failure returns None.

        """
        try:
            data = await self._get("/search", {"query": symbol})
        except DashboardError as e:
            logger.debug("Price search for %s failed: %s", symbol, e)
            return None

        matches = [
            coin.get("id")
            for coin in data.get("coins") or []
            if isinstance(coin, dict) and str(coin.get("symbol", "")).upper() == symbol.upper() and coin.get("id")
        ]
        if len(matches) != 1:
            logger.debug("Price search for %s found %d exact matches", symbol, len(matches))
            return None
        return matches[0]

    async def _fetch_simple_prices(self, coin_ids: list[str]) -> dict[str, Any]:
        return await self._get("/simple/price", {"ids": ",".join(coin_ids), "vs_currencies": "usd"})

    async def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self.client.get(f"{self.base_url}{path}", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise classify_http_error(e, self.source) from e

        if not isinstance(data, dict):
            msg = f"{self.source} {path} returned a malformed response"
            raise UpstreamError(msg, source=self.source)
        return data
