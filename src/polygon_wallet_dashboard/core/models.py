"""Data models for the normalized per-address wallet snapshot."""

from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from polygon_wallet_dashboard.errors import DashboardError

NATIVE = "native"

T = TypeVar("T")


class Domain(StrEnum):
    """Independently loaded dashboard domain."""

    BALANCES = "balances"
    NFTS = "nfts"
    DEFI = "defi"
    TRANSACTIONS = "transactions"


class DomainStatus(StrEnum):
    """Lifecycle of one domain fetch."""

    IDLE = "idle"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PositionType(StrEnum):
    """Type of DeFi position."""

    LENDING = "lending"
    LIQUIDITY = "liquidity"


class TxStatus(StrEnum):
    """Execution status of a transaction."""

    SUCCESS = "success"
    FAILED = "failed"


class TxSource(StrEnum):
    """Provenance of a normalized transaction."""

    INDEXER = "indexer"
    EXPLORER = "explorer"


class TokenHolding(BaseModel):
    """
    Fungible balance held by the wallet.

    Attributes
    ----------
    contract_address : str
        Token contract address, or ``"native"`` for the chain's native coin
    symbol : str
        Token symbol (e.g., 'MATIC', 'USDC')
    name : str
        Display name
    raw_balance : str
        Fixed-point balance as a non-negative integer string
    decimals : int
        Scaling exponent for ``raw_balance``
    unit_price_usd : Decimal | None
        USD price, absent until the price resolver runs or when unmapped

    """

    model_config = ConfigDict(frozen=True)

    contract_address: str
    symbol: str
    name: str
    raw_balance: str
    decimals: int = Field(default=18, ge=0)
    unit_price_usd: Decimal | None = None

    @field_validator("raw_balance")
    @classmethod
    def _check_raw_balance(cls, value: str) -> str:
        if not value.isdigit():
            msg = f"raw_balance must be a non-negative integer string, got {value!r}"
            raise ValueError(msg)
        return value

    @property
    def is_native(self) -> bool:
        return self.contract_address == NATIVE

    @property
    def quantity(self) -> Decimal:
        """Human-readable quantity (raw_balance / 10**decimals)."""
        return Decimal(int(self.raw_balance)).scaleb(-self.decimals)

    @property
    def value_usd(self) -> Decimal:
        """Quantity times unit price; 0 when unpriced."""
        if self.unit_price_usd is None:
            return Decimal(0)
        return self.quantity * self.unit_price_usd

    def with_price(self, price: Decimal) -> "TokenHolding":
        """Return a copy carrying ``price`` as its unit price."""
        return self.model_copy(update={"unit_price_usd": price})


class NFTItem(BaseModel):
    """
    Non-fungible token owned by the wallet.

    ``(contract_address, token_id)`` is the identity within one fetch.

    """

    model_config = ConfigDict(frozen=True)

    contract_address: str
    token_id: str
    title: str
    collection_name: str
    token_standard: str = "ERC721"
    image_uri: str | None = None
    description: str = ""

    @property
    def identity(self) -> tuple[str, str]:
        return (self.contract_address.lower(), self.token_id)


class LendingPosition(BaseModel):
    """
    Lending protocol account summary.

    Attributes
    ----------
    protocol : str
        Protocol identifier (e.g., 'aave_v3')
    protocol_name : str
        Display name
    logo : str
        Logo glyph
    total_collateral_usd : Decimal
        Collateral value in USD
    total_debt_usd : Decimal
        Debt value in USD
    available_borrow_usd : Decimal
        Remaining borrowing power in USD
    health_factor : Decimal | None
        Liquidation ratio; None when there is no debt
    loan_to_value : Decimal
        LTV as a ratio (0.75 = 75%)
    liquidation_threshold : Decimal
        Liquidation threshold as a ratio

    """

    model_config = ConfigDict(frozen=True)

    position_type: Literal[PositionType.LENDING] = PositionType.LENDING
    protocol: str
    protocol_name: str
    logo: str = ""
    total_collateral_usd: Decimal
    total_debt_usd: Decimal
    available_borrow_usd: Decimal
    health_factor: Decimal | None = None
    loan_to_value: Decimal
    liquidation_threshold: Decimal

    @property
    def net_value_usd(self) -> Decimal:
        return self.total_collateral_usd - self.total_debt_usd


class LiquidityPosition(BaseModel):
    """
    Liquidity-pool positions on a DEX.

    ``net_value_usd`` is only set when the upstream supplies one; the graph
    queried today does not, so it is usually None.

    """

    model_config = ConfigDict(frozen=True)

    position_type: Literal[PositionType.LIQUIDITY] = PositionType.LIQUIDITY
    protocol: str
    protocol_name: str
    logo: str = ""
    pairs: tuple[str, ...] = ()
    position_count: int = 0
    net_value_usd: Decimal | None = None


DefiPosition = Annotated[LendingPosition | LiquidityPosition, Field(discriminator="position_type")]


class Transaction(BaseModel):
    """
    Transaction normalized from either the indexer or the explorer.

    Attributes
    ----------
    hash : str
        Transaction hash (identity key)
    from_address : str
        Sender
    to_address : str | None
        Recipient; None for contract creation
    asset_symbol : str
        Transferred asset symbol
    raw_value : str
        Value as an integer string when ``decimals`` is known, else a decimal string
    decimals : int | None
        Scaling exponent for ``raw_value``; None when the upstream gave a decimal value
    category : str
        external, internal, erc20, erc721 or erc1155
    timestamp : int | None
        Unix seconds; some sources omit it
    status : TxStatus
        Execution status
    block_number : int | None
        Block height
    gas_used : str | None
        Gas used (explorer only)
    gas_price : str | None
        Gas price in wei (explorer only)
    source : TxSource
        Provenance

    """

    model_config = ConfigDict(frozen=True)

    hash: str
    from_address: str = ""
    to_address: str | None = None
    asset_symbol: str
    raw_value: str = "0"
    decimals: int | None = None
    category: str = "external"
    timestamp: int | None = None
    status: TxStatus = TxStatus.SUCCESS
    block_number: int | None = None
    gas_used: str | None = None
    gas_price: str | None = None
    source: TxSource

    @property
    def value(self) -> Decimal:
        """Human-readable value."""
        if self.decimals is None:
            return Decimal(self.raw_value)
        return Decimal(int(self.raw_value)).scaleb(-self.decimals)


class Skipped(BaseModel):
    """
    A record dropped at normalization time, and why.

    Attributes
    ----------
    key : str
        Identifier of the dropped record (contract address, hash, index)
    reason : str
        Short machine-checkable reason (e.g., 'missing_contract_address')
    detail : str
        Free-form context

    """

    model_config = ConfigDict(frozen=True)

    key: str
    reason: str
    detail: str = ""


class AdapterResult(BaseModel, Generic[T]):
    """
    Normalized output of one adapter call.

    Attributes
    ----------
    items : list[T]
        Normalized entities in upstream order
    skipped : list[Skipped]
        Records dropped during normalization
    cursor : str | int | None
        Pagination cursor for the next page (page key or page number)
    has_more : bool
        Whether another page is available

    """

    items: list[T] = Field(default_factory=list)
    skipped: list[Skipped] = Field(default_factory=list)
    cursor: str | int | None = None
    has_more: bool = False


class NormalizedModel(BaseModel):
    """
    Per-address snapshot used by every derived metric.

    Fully replaced whenever the address changes; consumers only get read-only copies.

    """

    model_config = ConfigDict(frozen=True)

    address: str
    tokens: tuple[TokenHolding, ...] = ()
    nfts: tuple[NFTItem, ...] = ()
    defi_positions: tuple[DefiPosition, ...] = ()
    transactions: tuple[Transaction, ...] = ()


class DomainError(BaseModel):
    """User-facing error of one domain."""

    model_config = ConfigDict(frozen=True)

    kind: str
    message: str
    source: str | None = None

    @classmethod
    def from_exception(cls, error: DashboardError, message: str | None = None) -> "DomainError":
        return cls(kind=error.kind, message=message or error.message, source=error.source)


class DomainState(BaseModel):
    """
    Loading state of one domain.

    Attributes
    ----------
    status : DomainStatus
        Current lifecycle state
    error : DomainError | None
        Surfaced error, if any; a succeeded domain may still carry one when it
        returned partial data
    skipped : list[Skipped]
        Records dropped while building this domain
    source : str | None
        Upstream that produced the data (e.g., 'indexer' or 'explorer')
    has_more : bool
        Whether a further page can be loaded

    """

    model_config = ConfigDict(frozen=True)

    status: DomainStatus = DomainStatus.IDLE
    error: DomainError | None = None
    skipped: tuple[Skipped, ...] = ()
    source: str | None = None
    has_more: bool = False


class DashboardSnapshot(BaseModel):
    """Read-only view of the session: the model plus each domain's state."""

    model_config = ConfigDict(frozen=True)

    model: NormalizedModel
    states: dict[Domain, DomainState]
    epoch: int
