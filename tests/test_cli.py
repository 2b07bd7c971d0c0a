"""Tests for the CLI."""

import json
from decimal import Decimal

import pytest
from conftest import OTHER_WALLET, WALLET
from typer.testing import CliRunner

from polygon_wallet_dashboard.cli import main
from polygon_wallet_dashboard.core.models import (
    NATIVE,
    DashboardSnapshot,
    Domain,
    DomainError,
    DomainState,
    DomainStatus,
    NormalizedModel,
    TokenHolding,
    Transaction,
    TxSource,
    TxStatus,
)

runner = CliRunner()


def snapshot_with(states: dict[Domain, DomainState] | None = None, **model_fields) -> DashboardSnapshot:
    default = {domain: DomainState(status=DomainStatus.SUCCEEDED) for domain in Domain}
    default[Domain.TRANSACTIONS] = DomainState(status=DomainStatus.SUCCEEDED, source=TxSource.INDEXER)
    return DashboardSnapshot(
        model=NormalizedModel(address=WALLET, **model_fields),
        states=default | (states or {}),
        epoch=1,
    )


SNAPSHOT = snapshot_with(
    tokens=(
        TokenHolding(
            contract_address=NATIVE,
            symbol="MATIC",
            name="Polygon",
            raw_balance="2000000000000000000",
            unit_price_usd=Decimal("0.5"),
        ),
    ),
    transactions=(
        Transaction(
            hash="0xsent",
            from_address=WALLET,
            to_address=OTHER_WALLET,
            asset_symbol="MATIC",
            raw_value="1000000000000000000",
            decimals=18,
            source=TxSource.INDEXER,
        ),
        Transaction(
            hash="0xrecv",
            from_address=OTHER_WALLET,
            to_address=WALLET,
            asset_symbol="MATIC",
            raw_value="1000000000000000000",
            decimals=18,
            status=TxStatus.FAILED,
            source=TxSource.INDEXER,
        ),
    ),
)


@pytest.fixture
def fake_load(monkeypatch):
    """Replace the network load with a canned snapshot and record the call."""
    calls = []

    def install(snapshot: DashboardSnapshot):
        async def _load(settings, address, domains=None, transaction_pages=1):
            calls.append({"address": address, "domains": domains, "pages": transaction_pages})
            return snapshot

        monkeypatch.setattr(main, "_load", _load)
        return calls

    return install


def test_invalid_address_exits():
    """A malformed address is rejected before anything is loaded."""
    result = runner.invoke(main.app, ["report", "0x123"])
    assert result.exit_code == 1
    assert "Invalid address" in result.output


def test_list_protocols():
    result = runner.invoke(main.app, ["list-protocols"])
    assert result.exit_code == 0
    assert "aave_v3" in result.output
    assert "quickswap" in result.output
    assert "lending" in result.output


def test_report_json(fake_load):
    """The JSON report carries tokens, totals and domain states."""
    fake_load(SNAPSHOT)
    result = runner.invoke(main.app, ["report", WALLET, "--format", "json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output[result.output.index("{") :])
    assert payload["address"] == WALLET
    assert Decimal(payload["total_value_usd"]) == 1
    assert payload["tokens"][0]["symbol"] == "MATIC"
    assert payload["states"]["balances"]["status"] == "succeeded"
    assert [t["hash"] for t in payload["transactions"]] == ["0xsent", "0xrecv"]


def test_report_table_shows_domain_errors(fake_load):
    """A failed domain prints its error while the others still render."""
    failed = snapshot_with(
        {
            Domain.NFTS: DomainState(
                status=DomainStatus.FAILED,
                error=DomainError(kind="config", message="NFTs failed: Alchemy API key not configured"),
            )
        },
        tokens=SNAPSHOT.model.tokens,
    )
    fake_load(failed)
    result = runner.invoke(main.app, ["report", WALLET])

    assert result.exit_code == 0, result.output
    assert "NFTs failed: Alchemy API key not configured" in result.output
    assert "MATIC" in result.output


def test_transactions_filters(fake_load):
    """Only the requested direction is listed; only history is loaded."""
    calls = fake_load(SNAPSHOT)
    result = runner.invoke(main.app, ["transactions", WALLET, "--direction", "received", "--pages", "2"])

    assert result.exit_code == 0, result.output
    assert "0xrecv" in result.output
    assert "0xsent" not in result.output
    assert calls == [{"address": WALLET, "domains": [Domain.TRANSACTIONS], "pages": 2}]


def test_transactions_failure_exits(fake_load):
    failed = snapshot_with(
        {
            Domain.TRANSACTIONS: DomainState(
                status=DomainStatus.FAILED,
                error=DomainError(kind="config", message="Transactions failed: PolygonScan API key not configured"),
            )
        }
    )
    fake_load(failed)
    result = runner.invoke(main.app, ["transactions", WALLET])

    assert result.exit_code == 1
    assert "PolygonScan API key not configured" in result.output


class FakePricing:
    """Records which lookup the prices command used."""

    calls: list[tuple[str, object]] = []

    def __init__(self, settings, client) -> None:
        pass

    async def get_price(self, symbol):
        FakePricing.calls.append(("get_price", symbol))
        return Decimal("0.9") if symbol == "MATIC" else None

    async def resolve(self, symbols):
        FakePricing.calls.append(("resolve", list(symbols)))
        return {"MATIC": Decimal("0.9")}


@pytest.fixture
def fake_pricing(monkeypatch):
    monkeypatch.setattr(main, "CoinGeckoPricing", FakePricing)
    monkeypatch.setattr(FakePricing, "calls", [])
    return FakePricing


def test_prices_single_symbol(fake_pricing):
    """One symbol is priced with a single lookup."""
    result = runner.invoke(main.app, ["prices", "MATIC"])

    assert result.exit_code == 0, result.output
    assert "MATIC" in result.output
    assert fake_pricing.calls == [("get_price", "MATIC")]


def test_prices_batch(fake_pricing):
    """Several symbols go out in one batched lookup; unpriced ones still get a row."""
    result = runner.invoke(main.app, ["prices", "MATIC", "NOPE"])

    assert result.exit_code == 0, result.output
    assert "NOPE" in result.output
    assert fake_pricing.calls == [("resolve", ["MATIC", "NOPE"])]
