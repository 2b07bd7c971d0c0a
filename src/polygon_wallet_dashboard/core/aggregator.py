"""Aggregation session: fans out to every source for one address and owns the normalized model."""

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

import httpx

from polygon_wallet_dashboard import protocols  # noqa: F401  (registers protocol handlers)
from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core.degradation import (
    NATIVE_SOURCE,
    NFTS_SOURCE,
    PRICES_SOURCE,
    TOKENS_SOURCE,
    TX_FALLBACK_SOURCE,
    TX_PRIMARY_SOURCE,
    Disposition,
    decide,
    domain_error_message,
)
from polygon_wallet_dashboard.core.models import (
    DashboardSnapshot,
    Domain,
    DomainError,
    DomainState,
    DomainStatus,
    NormalizedModel,
    Skipped,
    TokenHolding,
    TxSource,
)
from polygon_wallet_dashboard.core.registry import ProtocolRegistry
from polygon_wallet_dashboard.errors import DashboardError, NetworkError, ValidationError, classify_http_error
from polygon_wallet_dashboard.formatters import validate_address
from polygon_wallet_dashboard.pricing import CoinGeckoPricing
from polygon_wallet_dashboard.protocols.base import BaseProtocolHandler
from polygon_wallet_dashboard.sources import (
    ExplorerTransactionAdapter,
    IndexerTransactionAdapter,
    NativeBalanceAdapter,
    NFTAdapter,
    TokenBalanceAdapter,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


class DashboardSession:
    """
    Owns the normalized model of the active address.

    Every domain (balances, NFTs, DeFi, transactions) is fetched concurrently and
    fails independently. Each ``load`` bumps an epoch; results from an older epoch
    are discarded on arrival so a slow fetch for a previous address can never leak
    into the current model. Consumers only ever see frozen snapshots.

    Parameters
    ----------
    settings : Settings
        Dashboard settings
    client : httpx.AsyncClient
        Shared HTTP client
    native, tokens, nfts : SourceAdapter | None
        Adapter overrides; built from ``settings`` when omitted
    defi_handlers : list[BaseProtocolHandler] | None
        Protocol handlers; defaults to every handler registered for the chain
    tx_primary : IndexerTransactionAdapter | None
        Primary history source
    tx_fallback : ExplorerTransactionAdapter | None
        Fallback history source
    pricing : CoinGeckoPricing | None
        Price resolver

    Examples
    --------
    >>> async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
    ...     session = DashboardSession(settings, client)
    ...     snapshot = await session.load("0x...")

    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        native: NativeBalanceAdapter | None = None,
        tokens: TokenBalanceAdapter | None = None,
        nfts: NFTAdapter | None = None,
        defi_handlers: list[BaseProtocolHandler] | None = None,
        tx_primary: IndexerTransactionAdapter | None = None,
        tx_fallback: ExplorerTransactionAdapter | None = None,
        pricing: CoinGeckoPricing | None = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.native = native or NativeBalanceAdapter(settings, client)
        self.tokens = tokens or TokenBalanceAdapter(settings, client)
        self.nfts = nfts or NFTAdapter(settings, client)
        if defi_handlers is None:
            defi_handlers = ProtocolRegistry.create_handlers(settings, client)
        self.defi_handlers = defi_handlers
        self.tx_primary = tx_primary or IndexerTransactionAdapter(settings, client)
        self.tx_fallback = tx_fallback or ExplorerTransactionAdapter(settings, client)
        self.pricing = pricing or CoinGeckoPricing(settings, client)

        self._epoch = 0
        self._model = NormalizedModel(address="")
        self._states: dict[Domain, DomainState] = {domain: DomainState() for domain in Domain}
        self._tx_cursor: str | int | None = None
        self._nft_cursor: str | int | None = None

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def address(self) -> str | None:
        return self._model.address or None

    def snapshot(self) -> DashboardSnapshot:
        """Return a read-only view of the current model and domain states."""
        return DashboardSnapshot(model=self._model, states=dict(self._states), epoch=self._epoch)

    async def load(self, address: str, domains: Iterable[Domain] | None = None) -> DashboardSnapshot | None:
        """
        Load every domain for ``address``, discarding the previous model.

        Parameters
        ----------
        address : str
            Wallet address (validated before any request is made)
        domains : Iterable[Domain] | None
            Restrict the load to these domains; the others stay idle

        Returns
        -------
        DashboardSnapshot | None
            Final snapshot, or None if another ``load`` superseded this one

        Raises
        ------
        ValidationError
            If ``address`` is not a 0x-prefixed 40-hex-character string

        """
        address = validate_address(address)

        self._epoch += 1
        epoch = self._epoch
        self._model = NormalizedModel(address=address)
        wanted = set(Domain) if domains is None else set(domains)
        self._states = {
            domain: DomainState(status=DomainStatus.FETCHING if domain in wanted else DomainStatus.IDLE)
            for domain in Domain
        }
        self._tx_cursor = None
        self._nft_cursor = None
        logger.info("Loading dashboard for %s (epoch %d)", address, epoch)

        loaders = {
            Domain.BALANCES: self._load_balances,
            Domain.NFTS: self._load_nfts,
            Domain.DEFI: self._load_defi,
            Domain.TRANSACTIONS: self._load_transactions,
        }
        await asyncio.gather(*(loader(epoch, address) for domain, loader in loaders.items() if domain in wanted))

        if epoch != self._epoch:
            logger.info("Load for %s was superseded by epoch %d", address, self._epoch)
            return None
        return self.snapshot()

    async def refresh(self) -> DashboardSnapshot | None:
        """Re-run every domain for the current address."""
        if not self.address:
            msg = "No address loaded"
            raise ValidationError(msg)
        return await self.load(self.address)

    async def load_more_transactions(self) -> DashboardSnapshot | None:
        """
        Append the next page of transaction history.

        Uses whichever source produced the current history. Already known hashes
        are skipped. Returns None if the address changed while the page was loading.

        """
        state = self._states[Domain.TRANSACTIONS]
        if not state.has_more or self._tx_cursor is None:
            return self.snapshot()

        epoch, address = self._epoch, self._model.address
        if state.source == TxSource.EXPLORER:
            source = TX_FALLBACK_SOURCE
            call = self.tx_fallback.fetch(address, page=self._tx_cursor)
        else:
            source = TX_PRIMARY_SOURCE
            call = self.tx_primary.fetch(address, page_key=self._tx_cursor)

        result, error = await self._attempt(source, call)
        if epoch != self._epoch:
            logger.info("Discarding stale transaction page for %s", address)
            return None

        if error is not None:
            message = domain_error_message(Domain.TRANSACTIONS, error)
            logger.warning(message)
            self._states[Domain.TRANSACTIONS] = state.model_copy(
                update={"error": DomainError.from_exception(error, message)}
            )
            return self.snapshot()

        known = {tx.hash for tx in self._model.transactions}
        added, skipped = [], list(result.skipped)
        for tx in result.items:
            if tx.hash in known:
                skipped.append(Skipped(key=tx.hash, reason="duplicate"))
                continue
            known.add(tx.hash)
            added.append(tx)

        self._model = self._model.model_copy(update={"transactions": self._model.transactions + tuple(added)})
        self._states[Domain.TRANSACTIONS] = state.model_copy(
            update={"skipped": state.skipped + tuple(skipped), "has_more": result.has_more, "error": None}
        )
        self._tx_cursor = result.cursor
        return self.snapshot()

    async def load_more_nfts(self) -> DashboardSnapshot | None:
        """Append the next page of NFTs, de-duplicated by (contract, token id)."""
        state = self._states[Domain.NFTS]
        if not state.has_more or self._nft_cursor is None:
            return self.snapshot()

        epoch, address = self._epoch, self._model.address
        result, error = await self._attempt(NFTS_SOURCE, self.nfts.fetch(address, page_key=self._nft_cursor))
        if epoch != self._epoch:
            logger.info("Discarding stale NFT page for %s", address)
            return None

        if error is not None:
            message = domain_error_message(Domain.NFTS, error)
            logger.warning(message)
            self._states[Domain.NFTS] = state.model_copy(update={"error": DomainError.from_exception(error, message)})
            return self.snapshot()

        known = {nft.identity for nft in self._model.nfts}
        added, skipped = [], list(result.skipped)
        for nft in result.items:
            if nft.identity in known:
                skipped.append(Skipped(key=f"{nft.contract_address}:{nft.token_id}", reason="duplicate"))
                continue
            known.add(nft.identity)
            added.append(nft)

        self._model = self._model.model_copy(update={"nfts": self._model.nfts + tuple(added)})
        self._states[Domain.NFTS] = state.model_copy(
            update={"skipped": state.skipped + tuple(skipped), "has_more": result.has_more, "error": None}
        )
        self._nft_cursor = result.cursor
        return self.snapshot()

    async def _load_balances(self, epoch: int, address: str) -> None:
        (native, native_error), (tokens, tokens_error) = await asyncio.gather(
            self._attempt(NATIVE_SOURCE, self.native.fetch(address)),
            self._attempt(TOKENS_SOURCE, self.tokens.fetch(address)),
        )

        holdings: list[TokenHolding] = []
        skipped: list[Skipped] = []
        failures: list[tuple[str, DashboardError]] = []
        for source, result, error in (
            (NATIVE_SOURCE, native, native_error),
            (TOKENS_SOURCE, tokens, tokens_error),
        ):
            if error is not None:
                failures.append((source, error))
            else:
                holdings.extend(result.items)
                skipped.extend(result.skipped)

        if epoch != self._epoch:
            logger.debug("Skipping price lookup for stale epoch %d", epoch)
            return

        if holdings:
            holdings = await self._attach_prices(holdings)

        status, domain_error = self._settle(Domain.BALANCES, failures, bool(holdings))
        self._apply(
            epoch,
            Domain.BALANCES,
            DomainState(status=status, error=domain_error, skipped=tuple(skipped)),
            tokens=tuple(holdings),
        )

    async def _attach_prices(self, holdings: list[TokenHolding]) -> list[TokenHolding]:
        prices, error = await self._attempt(PRICES_SOURCE, self.pricing.resolve({h.symbol for h in holdings}))
        if error is not None:
            decide(Domain.BALANCES, PRICES_SOURCE, error)
            logger.warning("Price lookup failed, tokens stay unpriced: %s", error.message)
            return holdings
        return [h.with_price(prices[h.symbol]) if h.symbol in prices else h for h in holdings]

    async def _load_nfts(self, epoch: int, address: str) -> None:
        result, error = await self._attempt(NFTS_SOURCE, self.nfts.fetch(address))

        if error is not None:
            status, domain_error = self._settle(Domain.NFTS, [(NFTS_SOURCE, error)], False)
            self._apply(epoch, Domain.NFTS, DomainState(status=status, error=domain_error), nfts=())
            return

        if self._apply(
            epoch,
            Domain.NFTS,
            DomainState(status=DomainStatus.SUCCEEDED, skipped=tuple(result.skipped), has_more=result.has_more),
            nfts=tuple(result.items),
        ):
            self._nft_cursor = result.cursor

    async def _load_defi(self, epoch: int, address: str) -> None:
        outcomes = await asyncio.gather(
            *(self._attempt(handler.name, handler.get_positions(address)) for handler in self.defi_handlers)
        )

        positions: list[Any] = []
        skipped: list[Skipped] = []
        failures: list[tuple[str, DashboardError]] = []
        for handler, (result, error) in zip(self.defi_handlers, outcomes, strict=True):
            if error is not None:
                failures.append((handler.name, error))
            else:
                positions.extend(result.items)
                skipped.extend(result.skipped)

        status, domain_error = self._settle(Domain.DEFI, failures, bool(positions))
        self._apply(
            epoch,
            Domain.DEFI,
            DomainState(status=status, error=domain_error, skipped=tuple(skipped)),
            defi_positions=tuple(positions),
        )

    async def _load_transactions(self, epoch: int, address: str) -> None:
        result, error = await self._attempt(TX_PRIMARY_SOURCE, self.tx_primary.fetch(address))
        source = TxSource.INDEXER

        if error is not None and decide(Domain.TRANSACTIONS, TX_PRIMARY_SOURCE, error) is Disposition.FALLBACK:
            logger.info("Transaction indexer failed (%s), falling back to explorer", error.message)
            result, error = await self._attempt(TX_FALLBACK_SOURCE, self.tx_fallback.fetch(address))
            source = TxSource.EXPLORER

        if error is not None:
            _, domain_error = self._settle(Domain.TRANSACTIONS, [(TX_FALLBACK_SOURCE, error)], False)
            self._apply(
                epoch,
                Domain.TRANSACTIONS,
                DomainState(status=DomainStatus.FAILED, error=domain_error, source=source),
                transactions=(),
            )
            return

        if self._apply(
            epoch,
            Domain.TRANSACTIONS,
            DomainState(
                status=DomainStatus.SUCCEEDED,
                skipped=tuple(result.skipped),
                source=source,
                has_more=result.has_more,
            ),
            transactions=tuple(result.items),
        ):
            self._tx_cursor = result.cursor

    def _settle(
        self,
        domain: Domain,
        failures: list[tuple[str, DashboardError]],
        has_data: bool,
    ) -> tuple[DomainStatus, DomainError | None]:
        """Apply the degradation policy to a domain's failures; the first surfaced error wins."""
        surfaced: DashboardError | None = None
        for source, error in failures:
            if decide(domain, source, error) is Disposition.SURFACE:
                surfaced = surfaced or error
            else:
                logger.warning("%s degraded, continuing with partial data", domain_error_message(domain, error))

        if surfaced is None:
            return DomainStatus.SUCCEEDED, None

        message = domain_error_message(domain, surfaced)
        logger.warning(message)
        status = DomainStatus.SUCCEEDED if has_data else DomainStatus.FAILED
        return status, DomainError.from_exception(surfaced, message)

    def _apply(self, epoch: int, domain: Domain, state: DomainState, **model_update: Any) -> bool:
        if epoch != self._epoch:
            logger.info("Discarding stale %s result from epoch %d", domain, epoch)
            return False
        self._model = self._model.model_copy(update=model_update)
        self._states[domain] = state
        return True

    async def _attempt(self, source: str, awaitable: Awaitable[R]) -> tuple[R | None, DashboardError | None]:
        try:
            return await self._guard(source, awaitable), None
        except DashboardError as e:
            return None, e

    async def _guard(self, source: str, awaitable: Awaitable[R]) -> R:
        """Run one adapter call under the configured timeout, classifying any failure."""
        timeout = self.settings.request_timeout
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except DashboardError:
            raise
        except TimeoutError as e:
            msg = f"{source} timed out after {timeout:g}s"
            raise NetworkError(msg, source=source) from e
        except Exception as e:
            logger.warning("Unexpected failure in %s", source, exc_info=True)
            raise classify_http_error(e, source) from e
