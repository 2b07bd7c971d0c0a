"""Explicit runtime settings, built once at startup and handed to every adapter."""

import os
from collections.abc import Mapping
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from polygon_wallet_dashboard.data import get_chain_config, get_pricing_base_url, get_protocol_addresses
from polygon_wallet_dashboard.errors import ConfigError

DEFAULT_CHAIN = "polygon"
DEFAULT_TIMEOUT = 30.0

# Each setting accepts its plain name first, then the legacy front-end name.
ENV_ALIASES: dict[str, tuple[str, ...]] = {
    "alchemy_api_key": ("ALCHEMY_API_KEY", "REACT_APP_ALCHEMY_API_KEY"),
    "explorer_api_key": ("POLYGONSCAN_API_KEY", "REACT_APP_POLYGONSCAN_API_KEY"),
    "rpc_url": ("POLYGON_RPC_URL", "REACT_APP_POLYGON_RPC_URL"),
    "infura_project_id": (
        "INFURA_PROJECT_ID",
        "REACT_APP_INFURA_PROJECT_ID",
        "INFURA_API_KEY",
        "REACT_APP_INFURA_API_KEY",
    ),
    "price_api_url": ("COINGECKO_API_URL",),
    "liquidity_graph_url": ("QUICKSWAP_SUBGRAPH_URL",),
    "request_timeout": ("DASHBOARD_REQUEST_TIMEOUT",),
}


class YieldAssumptions(BaseModel):
    """
    Flat-rate yield heuristics per DeFi position type.

    ``*_rate`` is applied to the position's net value to estimate yearly yield,
    ``*_apy`` is the quoted percentage shown and averaged. Neither is a live rate.

    """

    model_config = ConfigDict(frozen=True)

    lending_rate: Decimal = Decimal("0.05")
    lending_apy: Decimal = Decimal("5.2")
    liquidity_rate: Decimal = Decimal("0.15")
    liquidity_apy: Decimal = Decimal("15.5")


class Settings(BaseModel):
    """
    Dashboard settings.

    Attributes
    ----------
    chain : str
        Chain name from chains.yaml
    alchemy_api_key : str | None
        Indexer credential (token list, NFTs, asset transfers)
    explorer_api_key : str | None
        Explorer credential (tx-list fallback)
    rpc_url : str | None
        JSON-RPC endpoint; resolved from override, Infura id, or chain default
    price_api_url : str
        Price API base URL
    liquidity_graph_url : str | None
        Liquidity indexing graph endpoint
    request_timeout : float
        Timeout in seconds for every request and adapter call
    yield_assumptions : YieldAssumptions
        Flat-rate yield heuristics

    """

    model_config = ConfigDict(frozen=True)

    chain: str = DEFAULT_CHAIN
    alchemy_api_key: str | None = None
    explorer_api_key: str | None = None
    rpc_url: str | None = None
    price_api_url: str = Field(default_factory=get_pricing_base_url)
    liquidity_graph_url: str | None = None
    request_timeout: float = DEFAULT_TIMEOUT
    yield_assumptions: YieldAssumptions = Field(default_factory=YieldAssumptions)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, chain: str = DEFAULT_CHAIN) -> "Settings":
        """
        Build settings from environment variables.

        Parameters
        ----------
        env : Mapping[str, str] | None
            Environment mapping; defaults to ``os.environ``
        chain : str
            Chain name

        Returns
        -------
        Settings
            Resolved settings

        Raises
        ------
        ConfigError
            If a numeric setting cannot be parsed

        """
        env = os.environ if env is None else env
        raw = {field: _first(env, names) for field, names in ENV_ALIASES.items()}
        chain_config = get_chain_config(chain)

        rpc_url = raw["rpc_url"]
        if not rpc_url and raw["infura_project_id"]:
            rpc_url = chain_config["infura_url"].format(project_id=raw["infura_project_id"])
        if not rpc_url:
            rpc_url = chain_config.get("rpc_url")

        timeout = DEFAULT_TIMEOUT
        if raw["request_timeout"]:
            try:
                timeout = float(raw["request_timeout"])
            except ValueError as e:
                msg = f"DASHBOARD_REQUEST_TIMEOUT must be a number, got {raw['request_timeout']!r}"
                raise ConfigError(msg, source="config") from e

        graph_url = raw["liquidity_graph_url"] or get_protocol_addresses(chain, "quickswap").get("subgraph_url")

        return cls(
            chain=chain,
            alchemy_api_key=raw["alchemy_api_key"],
            explorer_api_key=raw["explorer_api_key"],
            rpc_url=rpc_url,
            price_api_url=raw["price_api_url"] or get_pricing_base_url(),
            liquidity_graph_url=graph_url,
            request_timeout=timeout,
        )

    @property
    def native_symbol(self) -> str:
        """Native token symbol of the configured chain."""
        return get_chain_config(self.chain)["native"]["symbol"]

    @property
    def native_name(self) -> str:
        """Native token display name of the configured chain."""
        return get_chain_config(self.chain)["native"]["name"]

    def require_alchemy_url(self) -> str:
        """
        Get the indexer base URL, which embeds the API key.

        Raises
        ------
        ConfigError
            If ALCHEMY_API_KEY is not set

        """
        if not self.alchemy_api_key:
            msg = "Alchemy API key not configured, set ALCHEMY_API_KEY"
            raise ConfigError(msg, source="alchemy")
        return get_chain_config(self.chain)["alchemy_url"].format(api_key=self.alchemy_api_key)

    def require_explorer_key(self) -> str:
        """
        Get the explorer API key.

        Raises
        ------
        ConfigError
            If POLYGONSCAN_API_KEY is not set

        """
        if not self.explorer_api_key:
            msg = "PolygonScan API key not configured, set POLYGONSCAN_API_KEY"
            raise ConfigError(msg, source="polygonscan")
        return self.explorer_api_key

    def require_rpc_url(self) -> str:
        """
        Get the JSON-RPC endpoint.

        Raises
        ------
        ConfigError
            If no RPC endpoint is configured

        """
        if not self.rpc_url:
            msg = "No RPC endpoint configured, set POLYGON_RPC_URL or INFURA_PROJECT_ID"
            raise ConfigError(msg, source="rpc")
        return self.rpc_url

    @property
    def explorer_api_url(self) -> str:
        """Explorer REST endpoint of the configured chain."""
        return get_chain_config(self.chain)["explorer_api_url"]


def _first(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = env.get(name)
        if value:
            return value.strip()
    return None
