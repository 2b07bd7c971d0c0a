"""NFT adapter with per-field fallback chains for heterogeneous indexer payloads."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core.models import AdapterResult, NFTItem, Skipped
from polygon_wallet_dashboard.sources.alchemy import AlchemyClient
from polygon_wallet_dashboard.sources.base import SourceAdapter

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100

# Dotted paths tried in order; the first non-empty value wins.
NFT_FIELD_PATHS: dict[str, tuple[str, ...]] = {
    "token_id": ("id.tokenId", "tokenId", "token_id"),
    "contract_address": ("contract.address", "contractAddress"),
    "title": ("title", "name", "metadata.name"),
    "image_uri": ("media.0.gateway", "media.0.raw", "image", "metadata.image"),
    "collection_name": ("contract.name", "contractMetadata.name", "collectionName"),
    "token_standard": ("id.tokenMetadata.tokenType", "tokenType", "contractMetadata.tokenType"),
    "description": ("description", "metadata.description"),
}


def pick(raw: dict[str, Any], paths: tuple[str, ...], text: bool = False) -> Any:
    """
    Return the first non-empty value found under any of ``paths``.

    Numeric path segments index into lists. With ``text`` only strings and numbers
    are accepted (returned as ``str``); objects and lists fall through to the next path.

    """
    for path in paths:
        value: Any = raw
        for part in path.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
                value = value[int(part)]
            else:
                value = None
            if value is None:
                break
        if text:
            if isinstance(value, bool) or not isinstance(value, str | int | float):
                continue
            value = str(value)
        if value not in (None, "", [], {}):
            return value
    return None


def normalize_nft(raw: dict[str, Any], index: int = 0) -> NFTItem | Skipped:
    """
    Normalize one indexer NFT record.

    Parameters
    ----------
    raw : dict[str, Any]
        Raw ``ownedNfts`` entry
    index : int
        Position in the page, used to key skipped records

    Returns
    -------
    NFTItem | Skipped
        Normalized item, or the reason it was dropped

    """
    if not isinstance(raw, dict):
        return Skipped(key=f"#{index}", reason="malformed_record")

    contract_address = pick(raw, NFT_FIELD_PATHS["contract_address"], text=True)
    if not contract_address:
        return Skipped(key=f"#{index}", reason="missing_contract_address")

    token_id = pick(raw, NFT_FIELD_PATHS["token_id"], text=True)
    if token_id is None:
        return Skipped(key=f"{contract_address}#{index}", reason="missing_token_id")

    return NFTItem(
        contract_address=contract_address,
        token_id=token_id,
        title=pick(raw, NFT_FIELD_PATHS["title"], text=True) or f"#{token_id}",
        image_uri=pick(raw, NFT_FIELD_PATHS["image_uri"], text=True),
        collection_name=pick(raw, NFT_FIELD_PATHS["collection_name"], text=True) or "Unknown Collection",
        token_standard=pick(raw, NFT_FIELD_PATHS["token_standard"], text=True) or "ERC721",
        description=pick(raw, NFT_FIELD_PATHS["description"], text=True) or "",
    )


class NFTAdapter(SourceAdapter):
    """
    Paginated NFT reader.

    Parameters
    ----------
    settings : Settings
        Dashboard settings
    client : httpx.AsyncClient
        Shared HTTP client
    page_size : int
        Items per page, capped at 100
    indexer : AlchemyClient | None
        Indexer client override

    """

    name = "nfts"

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient,
        page_size: int = DEFAULT_PAGE_SIZE,
        indexer: AlchemyClient | None = None,
    ) -> None:
        super().__init__(settings, client)
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.indexer = indexer or AlchemyClient(settings, client)

    async def fetch(self, address: str, page_key: str | None = None, **kwargs: Any) -> AdapterResult[NFTItem]:
        data = await self.indexer.get_nfts(address, page_size=self.page_size, page_key=page_key)
        owned = data.get("ownedNfts") or []

        items: list[NFTItem] = []
        skipped: list[Skipped] = []
        seen: set[tuple[str, str]] = set()

        for index, raw in enumerate(owned):
            try:
                normalized = normalize_nft(raw, index)
            except PydanticValidationError as e:
                normalized = Skipped(key=f"#{index}", reason="malformed_record", detail=str(e.errors()[0]["msg"]))
            if isinstance(normalized, Skipped):
                logger.debug("Dropping NFT %s: %s", normalized.key, normalized.reason)
                skipped.append(normalized)
                continue
            if normalized.identity in seen:
                skipped.append(Skipped(key=f"{normalized.contract_address}:{normalized.token_id}", reason="duplicate"))
                continue
            seen.add(normalized.identity)
            items.append(normalized)

        next_key = data.get("pageKey") or None
        logger.info("Fetched %d NFTs for %s", len(items), address)
        return AdapterResult[NFTItem](items=items, skipped=skipped, cursor=next_key, has_more=next_key is not None)
