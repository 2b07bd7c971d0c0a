"""Aave v3 lending protocol handler."""

import logging
from decimal import Decimal

from eth_abi.exceptions import DecodingError

from polygon_wallet_dashboard.core.models import AdapterResult, DefiPosition, LendingPosition
from polygon_wallet_dashboard.core.registry import ProtocolRegistry
from polygon_wallet_dashboard.errors import ConfigError, UpstreamError
from polygon_wallet_dashboard.protocols.base import BaseProtocolHandler
from polygon_wallet_dashboard.rpc.abi import GET_USER_ACCOUNT_DATA, USER_ACCOUNT_DATA_TYPES, decode_result, encode_call
from polygon_wallet_dashboard.rpc.client import JsonRpcClient

logger = logging.getLogger(__name__)

# Fixed-point exponents of getUserAccountData fields
BASE_CURRENCY_DECIMALS = 8
PERCENTAGE_DECIMALS = 4
WAD_DECIMALS = 18


def parse_account_data(values: tuple[int, ...]) -> dict[str, Decimal | None]:
    """
    Rescale a raw ``getUserAccountData`` tuple.

    Base-currency amounts carry 8 decimals, LTV and liquidation threshold are in
    basis points (4 decimals) and the health factor is a WAD (18 decimals).

    Parameters
    ----------
    values : tuple[int, ...]
        (totalCollateralBase, totalDebtBase, availableBorrowsBase,
        currentLiquidationThreshold, ltv, healthFactor)

    Returns
    -------
    dict[str, Decimal | None]
        Rescaled fields; ``health_factor`` is None when there is no debt

    """
    collateral, debt, available, threshold, ltv, health_factor = values

    total_debt = Decimal(debt).scaleb(-BASE_CURRENCY_DECIMALS)
    # The pool reports uint256 max as the health factor of a debt-free account
    health = None if debt == 0 else Decimal(health_factor).scaleb(-WAD_DECIMALS)

    return {
        "total_collateral_usd": Decimal(collateral).scaleb(-BASE_CURRENCY_DECIMALS),
        "total_debt_usd": total_debt,
        "available_borrow_usd": Decimal(available).scaleb(-BASE_CURRENCY_DECIMALS),
        "liquidation_threshold": Decimal(threshold).scaleb(-PERCENTAGE_DECIMALS),
        "loan_to_value": Decimal(ltv).scaleb(-PERCENTAGE_DECIMALS),
        "health_factor": health,
    }


@ProtocolRegistry.register
class AaveHandler(BaseProtocolHandler):
    """
    Handler for Aave v3 lending positions.

    Reads the pool's account summary for the user. Per-asset reserves are not
    fetched; the summary becomes one ``LendingPosition``.

    """

    name = "aave_v3"
    supported_chains = ["polygon"]

    async def get_positions(self, user_address: str) -> AdapterResult[DefiPosition]:
        if not self.is_supported_on_chain(self.chain):
            return AdapterResult[DefiPosition]()

        pool_address = self.get_contract_addresses().get("pool")
        if not pool_address:
            msg = f"Aave v3 pool address not configured for {self.chain}"
            raise ConfigError(msg, source=self.name)

        rpc = JsonRpcClient(self.settings.require_rpc_url(), self.client, source="rpc")
        data = await rpc.eth_call(
            pool_address,
            encode_call(GET_USER_ACCOUNT_DATA, ["address"], [user_address.lower()]),
        )

        try:
            values = decode_result(USER_ACCOUNT_DATA_TYPES, data)
        except (DecodingError, ValueError) as e:
            msg = f"Aave v3 returned malformed account data: {e}"
            raise UpstreamError(msg, source=self.name) from e

        account = parse_account_data(values)
        if account["total_collateral_usd"] == 0 and account["total_debt_usd"] == 0:
            logger.debug("No Aave v3 position for %s", user_address)
            return AdapterResult[DefiPosition]()

        position = LendingPosition(
            protocol=self.name,
            protocol_name=self.display_name,
            logo=self.logo,
            **account,
        )
        return AdapterResult[DefiPosition](items=[position])
