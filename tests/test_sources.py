"""Tests for source adapters against mocked upstreams."""

from decimal import Decimal

import httpx
import pytest
from conftest import (
    ALCHEMY_URL,
    EXPLORER_URL,
    RPC_URL,
    WALLET,
    FakeToken,
    alchemy_transfer,
    explorer_tx,
    make_client,
    rpc_call,
    rpc_response,
)

from polygon_wallet_dashboard.core.models import NATIVE, Skipped, TxSource, TxStatus
from polygon_wallet_dashboard.errors import ConfigError, UpstreamError
from polygon_wallet_dashboard.sources import (
    ExplorerTransactionAdapter,
    IndexerTransactionAdapter,
    NativeBalanceAdapter,
    NFTAdapter,
    TokenBalanceAdapter,
    normalize_explorer_tx,
    normalize_nft,
    normalize_token_transfer,
    normalize_transfer,
    select_candidates,
)

USDC = FakeToken("0x2791bca1f2de4661ed88a30c99a7a9449aa84174", "USDC", "USD Coin", 6, 2_500_000)
WETH = FakeToken("0x7ceb23fd6bc0add59e62ac25578270cff1b9f619", "WETH", "Wrapped Ether", 18, 10**18)
BROKEN = "0x0000000000000000000000000000000000000bad"


def token_handler(tokens: list[FakeToken], balances: list[dict] | None = None):
    """Answer indexer balance listings and per-token RPC reads."""
    by_address = {token.address: token for token in tokens}
    entries = balances
    if entries is None:
        entries = [{"contractAddress": token.address, "tokenBalance": hex(token.balance)} for token in tokens]

    def handler(request: httpx.Request) -> httpx.Response:
        method, params, _ = rpc_call(request)
        if str(request.url) == ALCHEMY_URL:
            assert method == "alchemy_getTokenBalances"
            return rpc_response(request, {"address": params[0], "tokenBalances": entries})
        assert str(request.url).startswith(RPC_URL)
        call = params[0]
        token = by_address.get(call["to"])
        if token is None:
            return rpc_response(request, error={"code": 3, "message": "execution reverted"})
        return rpc_response(request, token.answer(call["data"]))

    return handler


@pytest.mark.asyncio
async def test_native_balance(settings):
    """The native balance becomes a holding at the sentinel address."""

    def handler(request: httpx.Request) -> httpx.Response:
        method, params, _ = rpc_call(request)
        assert method == "eth_getBalance"
        assert params[0] == WALLET
        return rpc_response(request, "0x1bc16d674ec80000")

    async with make_client(handler) as client:
        result = await NativeBalanceAdapter(settings, client).fetch(WALLET)

    (holding,) = result.items
    assert holding.contract_address == NATIVE
    assert holding.symbol == "MATIC"
    assert holding.quantity == Decimal(2)


@pytest.mark.asyncio
async def test_native_balance_without_rpc_url(bare_settings):
    """No RPC endpoint is a configuration error."""
    async with make_client(lambda request: httpx.Response(500)) as client:
        with pytest.raises(ConfigError):
            await NativeBalanceAdapter(bare_settings, client).fetch(WALLET)


class TestSelectCandidates:
    """Candidate filtering of indexer balance entries."""

    def test_non_zero_only(self):
        """Zero balances are not candidates; large hex balances compare as integers."""
        entries = [
            {"contractAddress": "0xa", "tokenBalance": "0x" + "0" * 64},
            {"contractAddress": "0xb", "tokenBalance": "0x" + "f" * 64},
            {"contractAddress": "0xc", "tokenBalance": None},
        ]
        candidates, skipped = select_candidates(entries)
        assert candidates == ["0xb"]
        assert skipped == []

    def test_skips_errors_and_malformed(self):
        """Indexer errors, missing contracts and garbage balances are recorded."""
        entries = [
            {"tokenBalance": "0x1"},
            {"contractAddress": "0xd", "tokenBalance": None, "error": "boom"},
            {"contractAddress": "0xe", "tokenBalance": "garbage"},
        ]
        candidates, skipped = select_candidates(entries)
        assert candidates == []
        assert [s.reason for s in skipped] == ["missing_contract_address", "indexer_error", "malformed_balance"]


@pytest.mark.asyncio
async def test_token_balances(settings):
    """Every candidate is read over RPC and normalized."""
    async with make_client(token_handler([USDC, WETH])) as client:
        result = await TokenBalanceAdapter(settings, client).fetch(WALLET)

    by_symbol = {token.symbol: token for token in result.items}
    assert set(by_symbol) == {"USDC", "WETH"}
    assert by_symbol["USDC"].quantity == Decimal("2.5")
    assert by_symbol["USDC"].decimals == 6
    assert by_symbol["WETH"].name == "Wrapped Ether"
    assert by_symbol["WETH"].raw_balance == str(10**18)


@pytest.mark.asyncio
async def test_token_balances_partial_failure(settings):
    """A failing token is skipped; its siblings keep their balances."""
    entries = [
        {"contractAddress": USDC.address, "tokenBalance": hex(USDC.balance)},
        {"contractAddress": BROKEN, "tokenBalance": "0x5"},
        {"contractAddress": WETH.address, "tokenBalance": hex(WETH.balance)},
    ]
    async with make_client(token_handler([USDC, WETH], entries)) as client:
        result = await TokenBalanceAdapter(settings, client).fetch(WALLET)

    assert [token.symbol for token in result.items] == ["USDC", "WETH"]
    assert result.items[0].raw_balance == "2500000"
    (skipped,) = result.skipped
    assert skipped.key == BROKEN
    assert skipped.reason == "detail_fetch_failed"


@pytest.mark.asyncio
async def test_token_balances_missing_key(bare_settings):
    """Without an indexer key the token list cannot be produced."""
    async with make_client(lambda request: httpx.Response(500)) as client:
        with pytest.raises(ConfigError):
            await TokenBalanceAdapter(bare_settings, client).fetch(WALLET)


@pytest.mark.asyncio
async def test_token_balances_empty(settings):
    """A wallet with no candidates makes no RPC calls."""
    async with make_client(token_handler([], [])) as client:
        result = await TokenBalanceAdapter(settings, client).fetch(WALLET)
    assert result.items == []


class TestNormalizeNft:
    """Field fallback chains for heterogeneous NFT records."""

    def test_primary_fields(self):
        """The first path of each chain is used when present."""
        raw = {
            "contract": {"address": "0xnft", "name": "Punks"},
            "id": {"tokenId": "0x01", "tokenMetadata": {"tokenType": "ERC1155"}},
            "title": "Punk #1",
            "media": [{"gateway": "https://img/1.png", "raw": "ipfs://1"}],
            "description": "first",
        }
        item = normalize_nft(raw)
        assert item.contract_address == "0xnft"
        assert item.token_id == "0x01"
        assert item.title == "Punk #1"
        assert item.image_uri == "https://img/1.png"
        assert item.collection_name == "Punks"
        assert item.token_standard == "ERC1155"
        assert item.description == "first"

    def test_fallback_fields(self):
        """Later paths fill in when earlier ones are missing or empty."""
        raw = {
            "contractAddress": "0xnft",
            "tokenId": 7,
            "title": "",
            "metadata": {"name": "Meta name", "image": "ipfs://7"},
            "contractMetadata": {"name": "Collection", "tokenType": "ERC721"},
            "media": [],
        }
        item = normalize_nft(raw)
        assert item.token_id == "7"
        assert item.title == "Meta name"
        assert item.image_uri == "ipfs://7"
        assert item.collection_name == "Collection"

    def test_defaults(self):
        """Title and collection fall back to placeholders."""
        item = normalize_nft({"contractAddress": "0xnft", "tokenId": "3"})
        assert item.title == "#3"
        assert item.collection_name == "Unknown Collection"
        assert item.image_uri is None

    def test_missing_identity(self):
        """Records without contract or token id are skipped with a reason."""
        assert normalize_nft({"tokenId": "1"}, 4) == Skipped(key="#4", reason="missing_contract_address")
        skipped = normalize_nft({"contractAddress": "0xnft"}, 2)
        assert skipped.reason == "missing_token_id"

    def test_non_text_fields_fall_through(self):
        """Object-valued fields are ignored in favour of the next path or the default."""
        raw = {
            "contractAddress": "0xnft",
            "tokenId": "5",
            "title": {"en": "Five"},
            "media": [{"gateway": ["https://img/5.png"], "raw": "ipfs://5"}],
            "metadata": {"image": {"url": "https://img/5b.png"}},
        }
        item = normalize_nft(raw)
        assert item.title == "#5"
        assert item.image_uri == "ipfs://5"

        item = normalize_nft({"contractAddress": "0xnft", "tokenId": "6", "metadata": {"image": {"url": "x"}}})
        assert item.image_uri is None


@pytest.mark.asyncio
async def test_nft_adapter_pagination_and_duplicates(settings):
    """The page key is returned as cursor; duplicates within a page are dropped."""
    seen_params: list[httpx.QueryParams] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/getNFTs")
        seen_params.append(request.url.params)
        return httpx.Response(
            200,
            json={
                "ownedNfts": [
                    {"contractAddress": "0xNFT", "tokenId": "1"},
                    {"contractAddress": "0xnft", "tokenId": "1"},
                    {"contractAddress": "0xnft"},
                ],
                "pageKey": "next-page",
            },
        )

    async with make_client(handler) as client:
        result = await NFTAdapter(settings, client, page_size=500).fetch(WALLET, page_key="abc")

    assert len(result.items) == 1
    assert [s.reason for s in result.skipped] == ["duplicate", "missing_token_id"]
    assert result.cursor == "next-page"
    assert result.has_more is True
    assert seen_params[0]["pageSize"] == "100"
    assert seen_params[0]["pageKey"] == "abc"


@pytest.mark.asyncio
async def test_nft_adapter_upstream_error(settings):
    """HTTP failures are classified."""
    async with make_client(lambda request: httpx.Response(503, text="down")) as client:
        with pytest.raises(UpstreamError):
            await NFTAdapter(settings, client).fetch(WALLET)


class TestNormalizeTransactions:
    """Normalization of both history sources."""

    def test_transfer_with_raw_contract(self):
        """rawContract supplies the exact integer and decimals."""
        tx = normalize_transfer(alchemy_transfer("0xaa"), "MATIC")
        assert tx.hash == "0xaa"
        assert tx.raw_value == str(10**18)
        assert tx.decimals == 18
        assert tx.value == Decimal(1)
        assert tx.timestamp == 1704067200
        assert tx.block_number == 16
        assert tx.source == TxSource.INDEXER

    def test_transfer_native_default_decimals(self):
        """Native transfers without a decimal hint use 18."""
        tx = normalize_transfer(alchemy_transfer("0xab", decimal=None), "MATIC")
        assert tx.decimals == 18

    def test_transfer_decimal_value_fallback(self):
        """Without rawContract the decimal value is kept as is."""
        raw = alchemy_transfer("0xac", asset="USDC", category="erc20", raw_value=None)
        raw["value"] = 12.5
        tx = normalize_transfer(raw, "MATIC")
        assert tx.decimals is None
        assert tx.value == Decimal("12.5")
        assert tx.asset_symbol == "USDC"

    def test_transfer_missing_hash(self):
        assert normalize_transfer(alchemy_transfer(None), "MATIC").reason == "missing_hash"

    def test_transfer_malformed_raw_value(self):
        """A rawContract value that is not hex drops only that transfer."""
        skipped = normalize_transfer(alchemy_transfer("0xad", raw_value="0xnothex"), "MATIC")
        assert skipped == Skipped(key="0xad", reason="malformed_value", detail="0xnothex")

    def test_explorer_status(self):
        """isError or a non-1 receipt status marks the transaction failed."""
        assert normalize_explorer_tx(explorer_tx("0x1"), "MATIC").status == TxStatus.SUCCESS
        assert normalize_explorer_tx(explorer_tx("0x2", is_error="1"), "MATIC").status == TxStatus.FAILED
        assert normalize_explorer_tx(explorer_tx("0x3", receipt_status="0"), "MATIC").status == TxStatus.FAILED

    def test_explorer_fields(self):
        """Explorer rows carry timestamp, gas and a native value."""
        tx = normalize_explorer_tx(explorer_tx("0x1", value="2500000000000000000"), "MATIC")
        assert tx.value == Decimal("2.5")
        assert tx.asset_symbol == "MATIC"
        assert tx.timestamp == 1700000000
        assert tx.gas_used == "21000"
        assert tx.source == TxSource.EXPLORER

    def test_token_transfer(self):
        """tokentx rows take symbol and decimals from the row."""
        row = explorer_tx("0x9", value="3000000") | {"tokenSymbol": "USDC", "tokenDecimal": "6"}
        tx = normalize_token_transfer(row)
        assert tx.asset_symbol == "USDC"
        assert tx.value == Decimal(3)
        assert tx.category == "erc20"


@pytest.mark.asyncio
async def test_indexer_transactions(settings):
    """Transfers are normalized and the page key becomes the cursor."""

    def handler(request: httpx.Request) -> httpx.Response:
        method, params, _ = rpc_call(request)
        assert method == "alchemy_getAssetTransfers"
        assert params[0]["fromAddress"] == WALLET
        assert params[0]["pageKey"] == "p1"
        return rpc_response(request, {"transfers": [alchemy_transfer("0x1"), alchemy_transfer(None)], "pageKey": "p2"})

    async with make_client(handler) as client:
        result = await IndexerTransactionAdapter(settings, client).fetch(WALLET, page_key="p1")

    assert [tx.hash for tx in result.items] == ["0x1"]
    assert len(result.skipped) == 1
    assert result.cursor == "p2"
    assert result.has_more


class TestExplorerTransactions:
    """Explorer tx-list pagination and envelopes."""

    @pytest.mark.asyncio
    async def test_full_page_has_more(self, settings):
        """A full page means another page may exist."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url).startswith(EXPLORER_URL)
            params = request.url.params
            assert params["action"] == "txlist"
            assert params["apikey"] == "scan-key"
            assert params["page"] == "2"
            rows = [explorer_tx(f"0x{i}") for i in range(2)]
            return httpx.Response(200, json={"status": "1", "message": "OK", "result": rows})

        async with make_client(handler) as client:
            result = await ExplorerTransactionAdapter(settings, client, offset=2).fetch(WALLET, page=2)

        assert len(result.items) == 2
        assert result.has_more
        assert result.cursor == 3

    @pytest.mark.asyncio
    async def test_empty_status_is_empty_page(self, settings):
        """A non-1 status is an empty result, not an error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "0", "message": "No transactions found", "result": []})

        async with make_client(handler) as client:
            result = await ExplorerTransactionAdapter(settings, client).fetch(WALLET)

        assert result.items == []
        assert not result.has_more
        assert result.cursor is None

    @pytest.mark.asyncio
    async def test_missing_key(self, bare_settings):
        """A missing key is a ConfigError, never an empty list."""
        async with make_client(lambda request: httpx.Response(200, json={})) as client:
            with pytest.raises(ConfigError):
                await ExplorerTransactionAdapter(bare_settings, client).fetch(WALLET)

    @pytest.mark.asyncio
    async def test_token_transfers(self, settings):
        """tokentx passes the contract filter."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["action"] == "tokentx"
            assert request.url.params["contractaddress"] == USDC.address
            row = explorer_tx("0x5", value="1000000") | {"tokenSymbol": "USDC", "tokenDecimal": "6"}
            return httpx.Response(200, json={"status": "1", "message": "OK", "result": [row]})

        async with make_client(handler) as client:
            adapter = ExplorerTransactionAdapter(settings, client)
            result = await adapter.fetch_token_transfers(WALLET, USDC.address)

        assert result.items[0].value == Decimal(1)
        assert not result.has_more


@pytest.mark.asyncio
async def test_nft_adapter_keeps_page_with_odd_record(settings):
    """One record with an object-valued image does not lose the rest of the page."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "ownedNfts": [
                    {"contractAddress": "0xnft", "tokenId": "0x1", "metadata": {"image": "ipfs://1"}},
                    {"contractAddress": "0xnft", "tokenId": "0x2", "metadata": {"image": {"url": "ipfs://2"}}},
                ]
            },
        )

    async with make_client(handler) as client:
        result = await NFTAdapter(settings, client).fetch(WALLET)

    assert [item.token_id for item in result.items] == ["0x1", "0x2"]
    assert [item.image_uri for item in result.items] == ["ipfs://1", None]
    assert result.has_more is False


@pytest.mark.asyncio
async def test_indexer_transactions_skip_malformed_value(settings):
    """A transfer with an unparseable raw value is skipped, the page survives."""

    def handler(request: httpx.Request) -> httpx.Response:
        bad = alchemy_transfer("0x2", raw_value="0xnothex")
        return rpc_response(request, {"transfers": [alchemy_transfer("0x1"), bad]})

    async with make_client(handler) as client:
        result = await IndexerTransactionAdapter(settings, client).fetch(WALLET)

    assert [tx.hash for tx in result.items] == ["0x1"]
    assert [(s.key, s.reason) for s in result.skipped] == [("0x2", "malformed_value")]
    assert result.has_more is False
