"""Asset health report: a 0-100 score from diversity, DeFi share, activity and risk."""

import time
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict

from polygon_wallet_dashboard.analytics.valuation import defi_total_value, total_value
from polygon_wallet_dashboard.core.models import LendingPosition, NormalizedModel

DIVERSITY_WEIGHT = Decimal("0.3")
DEFI_WEIGHT = Decimal("0.2")
ACTIVITY_WEIGHT = Decimal("0.3")
RISK_WEIGHT = Decimal("0.2")

DIVERSITY_TARGET_TOKENS = 10
ACTIVITY_TARGET_TRANSACTIONS = 20
ACTIVITY_WINDOW_SECONDS = 30 * 24 * 60 * 60
LOW_HEALTH_FACTOR = Decimal("1.5")

LOW_HEALTH_FACTOR_RISK = "Low DeFi health factor"
CONCENTRATION_RISK = "High asset concentration"

HUNDRED = Decimal(100)


class HealthReport(BaseModel):
    """
    Result of ``health_report``.

    Attributes
    ----------
    total_value_usd : Decimal
        Token value in USD
    diversity : Decimal
        Diversity component, 0-100
    defi_ratio : Decimal
        DeFi value as a percentage of token value, clamped to 0-100
    activity : Decimal
        Activity component, 0-100
    risk_level : str
        'Low', 'Medium' or 'High'
    risk_factors : list[str]
        Detected risk factors
    score : int
        Weighted score, 0-100
    label : str
        'Excellent', 'Good' or 'Needs Improvement'
    recommendations : list[str]
        Suggestions derived from the components

    """

    model_config = ConfigDict(frozen=True)

    total_value_usd: Decimal
    diversity: Decimal
    defi_ratio: Decimal
    activity: Decimal
    risk_level: str
    risk_factors: list[str]
    score: int
    label: str
    recommendations: list[str]


def risk_factors(model: NormalizedModel) -> list[str]:
    """Detect risk factors: a lending health factor below 1.5, or a single held token."""
    factors = []
    if any(
        isinstance(position, LendingPosition)
        and position.health_factor is not None
        and position.health_factor < LOW_HEALTH_FACTOR
        for position in model.defi_positions
    ):
        factors.append(LOW_HEALTH_FACTOR_RISK)
    if len(model.tokens) == 1:
        factors.append(CONCENTRATION_RISK)
    return factors


def risk_level(factors: list[str]) -> str:
    if not factors:
        return "Low"
    return "Medium" if len(factors) == 1 else "High"


def score_label(score: int) -> str:
    """Map a score to its label."""
    if score >= 80:
        return "Excellent"
    if score >= 60:
        return "Good"
    return "Needs Improvement"


def health_report(model: NormalizedModel, now: float | None = None) -> HealthReport:
    """
    Compute the health report of a normalized model.

    Parameters
    ----------
    model : NormalizedModel
        Normalized snapshot
    now : float | None
        Reference time in unix seconds; defaults to the current time

    Returns
    -------
    HealthReport
        Components, score and recommendations

    """
    now = time.time() if now is None else now
    value = total_value(model.tokens)

    diversity = min(HUNDRED, Decimal(len(model.tokens)) / DIVERSITY_TARGET_TOKENS * HUNDRED)

    defi_ratio = Decimal(0)
    if value > 0:
        defi_ratio = defi_total_value(model.defi_positions) / value * HUNDRED
    defi_ratio = max(Decimal(0), min(HUNDRED, defi_ratio))

    recent = sum(
        1
        for tx in model.transactions
        if tx.timestamp is not None and now - tx.timestamp <= ACTIVITY_WINDOW_SECONDS
    )
    activity = min(HUNDRED, Decimal(recent) / ACTIVITY_TARGET_TRANSACTIONS * HUNDRED)

    factors = risk_factors(model)
    level = risk_level(factors)
    risk_component = {"Low": HUNDRED, "Medium": Decimal(60), "High": Decimal(30)}[level]

    weighted = (
        diversity * DIVERSITY_WEIGHT
        + defi_ratio * DEFI_WEIGHT
        + activity * ACTIVITY_WEIGHT
        + risk_component * RISK_WEIGHT
    )
    score = int(weighted.quantize(Decimal(1), rounding=ROUND_HALF_UP))

    return HealthReport(
        total_value_usd=value,
        diversity=diversity,
        defi_ratio=defi_ratio,
        activity=activity,
        risk_level=level,
        risk_factors=factors,
        score=score,
        label=score_label(score),
        recommendations=recommendations(diversity, defi_ratio, activity, level, score),
    )


def recommendations(diversity: Decimal, defi_ratio: Decimal, activity: Decimal, level: str, score: int) -> list[str]:
    tips = []
    if diversity < 50:
        tips.append("Consider increasing asset diversity to reduce concentration risk")
    if defi_ratio < 20:
        tips.append("Consider participating in DeFi protocols to earn yield")
    if activity < 50:
        tips.append("Increasing transaction activity can improve asset liquidity")
    if level == "High":
        tips.append("Pay attention to risk factors and optimize asset allocation")
    if score >= 80:
        tips.append("Asset allocation is good, keep it up")
    return tips
