"""Derived metrics over the normalized model. Pure functions, no I/O."""

from polygon_wallet_dashboard.analytics.achievements import Achievement, Rarity, check_achievements, rarity_color
from polygon_wallet_dashboard.analytics.health import HealthReport, health_report, score_label
from polygon_wallet_dashboard.analytics.transactions import Direction, StatusFilter, filter_transactions
from polygon_wallet_dashboard.analytics.valuation import (
    DISPLAY_LIMIT,
    LEGEND_LIMIT,
    DistributionEntry,
    defi_total_value,
    distribution,
    total_value,
)
from polygon_wallet_dashboard.analytics.yields import YieldReport, YieldSource, estimate_yield

__all__ = [
    "DISPLAY_LIMIT",
    "LEGEND_LIMIT",
    "Achievement",
    "Direction",
    "DistributionEntry",
    "HealthReport",
    "Rarity",
    "StatusFilter",
    "YieldReport",
    "YieldSource",
    "check_achievements",
    "defi_total_value",
    "distribution",
    "estimate_yield",
    "filter_transactions",
    "health_report",
    "rarity_color",
    "score_label",
    "total_value",
]
