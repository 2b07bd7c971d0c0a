"""Diagnostic script: run every registered DeFi handler for a wallet and print the raw results."""

import asyncio
import sys

import httpx

from polygon_wallet_dashboard import protocols  # noqa: F401
from polygon_wallet_dashboard.config import Settings
from polygon_wallet_dashboard.core.models import LendingPosition
from polygon_wallet_dashboard.core.registry import ProtocolRegistry
from polygon_wallet_dashboard.errors import DashboardError
from polygon_wallet_dashboard.formatters import validate_address

TARGET_ADDRESS = "0x0000000000000000000000000000000000001010"


async def fetch_positions(settings: Settings, user_address: str) -> None:
    """Fetch and print positions for every handler on the configured chain."""
    async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
        for handler in ProtocolRegistry.create_handlers(settings, client):
            print(f"\n{'='*60}")
            print(f"  Protocol: {handler.display_name} ({handler.name})")
            print(f"  Contracts: {handler.get_contract_addresses()}")
            print(f"{'='*60}")

            try:
                result = await handler.get_positions(user_address)
            except DashboardError as e:
                print(f"\n  ERROR [{e.kind}]: {e.message}")
                continue

            if not result.items:
                print("\n  No positions.")
            for position in result.items:
                if isinstance(position, LendingPosition):
                    print(f"    Total Collateral:  ${position.total_collateral_usd:,.2f}")
                    print(f"    Total Debt:        ${position.total_debt_usd:,.2f}")
                    print(f"    Available Borrows: ${position.available_borrow_usd:,.2f}")
                    print(f"    Liq. Threshold:    {position.liquidation_threshold:.2%}")
                    print(f"    LTV:               {position.loan_to_value:.2%}")
                    if position.health_factor is not None:
                        print(f"    Health Factor:     {position.health_factor:.4f}")
                    else:
                        print("    Health Factor:     N/A (no debt)")
                else:
                    print(f"    Pools: {', '.join(position.pairs)}")
            for skipped in result.skipped:
                print(f"    skipped {skipped.key}: {skipped.reason}")


def main() -> None:
    address = validate_address(sys.argv[1] if len(sys.argv) > 1 else TARGET_ADDRESS)
    settings = Settings.from_env()
    print(f"Fetching DeFi positions for: {address} on {settings.chain}")
    asyncio.run(fetch_positions(settings, address))

    print(f"\n{'='*60}")
    print("  Scan complete.")
    print(f"{'='*60}")


if __name__ == "__main__":
    main()
