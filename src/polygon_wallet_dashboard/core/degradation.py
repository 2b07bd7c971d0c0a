"""Degradation policy: what to do when an adapter fails."""

import logging
from enum import StrEnum

from polygon_wallet_dashboard.core.models import Domain
from polygon_wallet_dashboard.errors import ConfigError, DashboardError

logger = logging.getLogger(__name__)

DOMAIN_LABELS = {
    Domain.BALANCES: "Balances",
    Domain.NFTS: "NFTs",
    Domain.DEFI: "DeFi positions",
    Domain.TRANSACTIONS: "Transactions",
}

# Source names used by the session when asking for a decision
NATIVE_SOURCE = "native_balance"
TOKENS_SOURCE = "token_balances"
NFTS_SOURCE = "nfts"
TX_PRIMARY_SOURCE = "indexer_transactions"
TX_FALLBACK_SOURCE = "explorer_transactions"
PRICES_SOURCE = "prices"


class Disposition(StrEnum):
    """Reaction to one adapter failure."""

    SURFACE = "surface"
    FALLBACK = "fallback"
    CONTINUE = "continue"


def decide(domain: Domain, source: str, error: DashboardError) -> Disposition:
    """
    Decide how a failed adapter degrades its domain.

    Parameters
    ----------
    domain : Domain
        Domain the adapter feeds
    source : str
        Adapter or protocol handler name
    error : DashboardError
        Classified failure

    Returns
    -------
    Disposition
        SURFACE to show a domain-level error, FALLBACK to try the alternate
        source, CONTINUE to keep whatever partial data the domain has

    """
    if source == PRICES_SOURCE:
        disposition = Disposition.CONTINUE
    elif domain is Domain.TRANSACTIONS:
        disposition = Disposition.FALLBACK if source == TX_PRIMARY_SOURCE else Disposition.SURFACE
    elif source == NATIVE_SOURCE:
        disposition = Disposition.SURFACE
    elif isinstance(error, ConfigError):
        disposition = Disposition.SURFACE
    else:
        disposition = Disposition.CONTINUE

    logger.debug("%s/%s failed with %s error: %s", domain, source, error.kind, disposition)
    return disposition


def domain_error_message(domain: Domain, error: DashboardError) -> str:
    """Render a domain-level error as ``"<Domain label> failed: <message>"``."""
    return f"{DOMAIN_LABELS[domain]} failed: {error.message}"
