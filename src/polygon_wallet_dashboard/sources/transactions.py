"""Transaction-history adapters: indexer transfer log (primary) and explorer tx-list (fallback)."""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core.models import AdapterResult, Skipped, Transaction, TxSource, TxStatus
from polygon_wallet_dashboard.errors import UpstreamError
from polygon_wallet_dashboard.rpc.client import parse_quantity
from polygon_wallet_dashboard.sources.alchemy import AlchemyClient
from polygon_wallet_dashboard.sources.base import SourceAdapter
from polygon_wallet_dashboard.sources.explorer import PolygonScanClient

logger = logging.getLogger(__name__)

NATIVE_CATEGORIES = {"external", "internal"}


def _parse_iso_timestamp(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
    except ValueError:
        return None


def _optional_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return parse_quantity(value)
    except UpstreamError:
        return None


def normalize_transfer(raw: dict[str, Any], native_symbol: str) -> Transaction | Skipped:
    """
    Normalize one indexer asset transfer.

    The exact integer value comes from ``rawContract`` when present; otherwise the
    indexer's decimal ``value`` is kept with ``decimals=None``.

    """
    tx_hash = raw.get("hash") if isinstance(raw, dict) else None
    if not tx_hash:
        return Skipped(key=str(raw.get("uniqueId", "?")) if isinstance(raw, dict) else "?", reason="missing_hash")

    category = raw.get("category") or "external"
    raw_contract = raw.get("rawContract") or {}

    raw_value, decimals = "0", 0
    if raw_contract.get("value"):
        try:
            raw_value = str(parse_quantity(raw_contract["value"], "alchemy"))
        except UpstreamError:
            return Skipped(key=tx_hash, reason="malformed_value", detail=str(raw_contract["value"]))
        decimal_hint = _optional_int(raw_contract.get("decimal"))
        decimals = decimal_hint if decimal_hint is not None else (18 if category in NATIVE_CATEGORIES else 0)
    elif raw.get("value") is not None:
        try:
            raw_value, decimals = str(Decimal(str(raw["value"]))), None
        except InvalidOperation:
            return Skipped(key=tx_hash, reason="malformed_value", detail=str(raw["value"]))

    return Transaction(
        hash=tx_hash,
        from_address=raw.get("from") or "",
        to_address=raw.get("to") or None,
        asset_symbol=raw.get("asset") or native_symbol,
        raw_value=raw_value,
        decimals=decimals,
        category=category,
        timestamp=_parse_iso_timestamp((raw.get("metadata") or {}).get("blockTimestamp")),
        status=TxStatus.SUCCESS,
        block_number=_optional_int(raw.get("blockNum")),
        source=TxSource.INDEXER,
    )


def normalize_explorer_tx(raw: dict[str, Any], native_symbol: str) -> Transaction | Skipped:
    """Normalize one explorer ``txlist`` row."""
    tx_hash = raw.get("hash") if isinstance(raw, dict) else None
    if not tx_hash:
        return Skipped(key=str(raw.get("nonce", "?")) if isinstance(raw, dict) else "?", reason="missing_hash")

    failed = raw.get("isError") == "1" or raw.get("txreceipt_status") != "1"
    return Transaction(
        hash=tx_hash,
        from_address=raw.get("from") or "",
        to_address=raw.get("to") or None,
        asset_symbol=native_symbol,
        raw_value=str(_optional_int(raw.get("value")) or 0),
        decimals=18,
        category="external",
        timestamp=_optional_int(raw.get("timeStamp")),
        status=TxStatus.FAILED if failed else TxStatus.SUCCESS,
        block_number=_optional_int(raw.get("blockNumber")),
        gas_used=raw.get("gasUsed") or None,
        gas_price=raw.get("gasPrice") or None,
        source=TxSource.EXPLORER,
    )


def normalize_token_transfer(raw: dict[str, Any]) -> Transaction | Skipped:
    """Normalize one explorer ``tokentx`` row."""
    tx_hash = raw.get("hash") if isinstance(raw, dict) else None
    if not tx_hash:
        return Skipped(key="?", reason="missing_hash")

    return Transaction(
        hash=tx_hash,
        from_address=raw.get("from") or "",
        to_address=raw.get("to") or None,
        asset_symbol=raw.get("tokenSymbol") or "UNKNOWN",
        raw_value=str(_optional_int(raw.get("value")) or 0),
        decimals=_optional_int(raw.get("tokenDecimal")) or 0,
        category="erc20",
        timestamp=_optional_int(raw.get("timeStamp")),
        status=TxStatus.SUCCESS,
        block_number=_optional_int(raw.get("blockNumber")),
        gas_used=raw.get("gasUsed") or None,
        gas_price=raw.get("gasPrice") or None,
        source=TxSource.EXPLORER,
    )


def _collect(rows: list[Any], normalize: Any) -> tuple[list[Transaction], list[Skipped]]:
    items: list[Transaction] = []
    skipped: list[Skipped] = []
    for row in rows:
        try:
            normalized = normalize(row)
        except PydanticValidationError as e:
            key = row.get("hash") if isinstance(row, dict) else None
            normalized = Skipped(key=str(key or "?"), reason="malformed_record", detail=str(e.errors()[0]["msg"]))
        if isinstance(normalized, Skipped):
            logger.debug("Dropping transaction %s: %s", normalized.key, normalized.reason)
            skipped.append(normalized)
        else:
            items.append(normalized)
    return items, skipped


class IndexerTransactionAdapter(SourceAdapter):
    """Primary history source: the indexer's transfer log with asset categories."""

    name = "indexer_transactions"

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        max_count: int = 50,
        indexer: AlchemyClient | None = None,
    ) -> None:
        super().__init__(settings, client)
        self.max_count = max_count
        self.indexer = indexer or AlchemyClient(settings, client)

    async def fetch(self, address: str, page_key: str | None = None, **kwargs: Any) -> AdapterResult[Transaction]:
        result = await self.indexer.get_asset_transfers(address, self.max_count, page_key)
        transfers = result.get("transfers") or []
        items, skipped = _collect(transfers, lambda raw: normalize_transfer(raw, self.settings.native_symbol))

        next_key = result.get("pageKey") or None
        logger.info("Fetched %d transfers for %s from the indexer", len(items), address)
        return AdapterResult[Transaction](items=items, skipped=skipped, cursor=next_key, has_more=next_key is not None)


class ExplorerTransactionAdapter(SourceAdapter):
    """
    Fallback history source: the explorer's paginated tx-list.

    A missing API key raises ``ConfigError`` so callers can tell "could not check"
    from "no transactions"; a non-"1" status is an empty page.

    """

    name = "explorer_transactions"

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        offset: int = 20,
        explorer: PolygonScanClient | None = None,
    ) -> None:
        super().__init__(settings, client)
        self.offset = offset
        self.explorer = explorer or PolygonScanClient(settings, client)

    async def fetch(self, address: str, page: int = 1, **kwargs: Any) -> AdapterResult[Transaction]:
        response = await self.explorer.get_transactions(address, page=page, offset=self.offset)
        rows = response.rows
        items, skipped = _collect(rows, lambda raw: normalize_explorer_tx(raw, self.settings.native_symbol))

        has_more = len(rows) == self.offset
        logger.info("Fetched %d transactions for %s from the explorer (page %d)", len(items), address, page)
        return AdapterResult[Transaction](
            items=items,
            skipped=skipped,
            cursor=page + 1 if has_more else None,
            has_more=has_more,
        )

    async def fetch_token_transfers(
        self,
        address: str,
        contract_address: str | None = None,
        page: int = 1,
    ) -> AdapterResult[Transaction]:
        """Fetch one page of ERC-20 transfers from the explorer."""
        response = await self.explorer.get_token_transfers(address, contract_address, page=page, offset=self.offset)
        rows = response.rows
        items, skipped = _collect(rows, normalize_token_transfer)

        has_more = len(rows) == self.offset
        return AdapterResult[Transaction](
            items=items,
            skipped=skipped,
            cursor=page + 1 if has_more else None,
            has_more=has_more,
        )
