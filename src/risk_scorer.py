"""
Composite risk scoring for CRM contacts.
Shared between the scoring API, batch scoring and any downstream consumers.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

RISK_LEVEL_HIGH = "Alto"
RISK_LEVEL_MEDIUM = "Medio"
RISK_LEVEL_LOW = "Bajo"
RISK_LEVELS = (RISK_LEVEL_HIGH, RISK_LEVEL_MEDIUM, RISK_LEVEL_LOW)

HIGH_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40

MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class RiskThresholds:
    """Score boundaries for risk level assignment (inclusive lower bounds)."""
    high: int = HIGH_RISK_THRESHOLD
    medium: int = MEDIUM_RISK_THRESHOLD


@dataclass
class ScoredRisk:
    score: int
    risk_level: str
    risk_factors: List[str] = field(default_factory=list)


def risk_level(score: float, thresholds: RiskThresholds = RiskThresholds()) -> str:
    """
    Map a 0-100 score to a risk level.

    - Alto:  score >= 70
    - Medio: 40 <= score < 70
    - Bajo:  score < 40
    """
    if score >= thresholds.high:
        return RISK_LEVEL_HIGH
    elif score >= thresholds.medium:
        return RISK_LEVEL_MEDIUM
    else:
        return RISK_LEVEL_LOW


def clamp_score(value: float) -> int:
    """Round half up and clamp into [0, 100]."""
    rounded = int(math.floor(value + 0.5))
    return max(MIN_SCORE, min(MAX_SCORE, rounded))


def score_risk(
    base_risk_score: float,
    risk_multiplier: float = 1.0,
    base_risk_factors: Iterable[str] = (),
    specific_concerns: Iterable[str] = (),
    thresholds: RiskThresholds = RiskThresholds(),
) -> ScoredRisk:
    """
    Combine a base score with the non-purchase multiplier.

    Args:
        base_risk_score: Weighted blend of contact signals (0-100)
        risk_multiplier: Compounded non-purchase multiplier (>= 1.0)
        base_risk_factors: Factors explaining the base score
        specific_concerns: Non-purchase concern tags, appended after base factors
        thresholds: Level boundaries

    Returns:
        ScoredRisk with the clamped integer score, its level and the factor list
    """
    score = clamp_score(base_risk_score * risk_multiplier)
    factors = list(base_risk_factors) + list(specific_concerns)
    return ScoredRisk(
        score=score,
        risk_level=risk_level(score, thresholds),
        risk_factors=factors,
    )


def score_with_assessment(
    base_risk_score: Optional[float],
    assessment,
    base_risk_factors: Iterable[str] = (),
) -> ScoredRisk:
    """Score using a NonPurchaseAssessment; a missing base score counts as 0."""
    base = base_risk_score if base_risk_score is not None else 0
    return score_risk(
        base,
        risk_multiplier=assessment.risk_multiplier,
        base_risk_factors=base_risk_factors,
        specific_concerns=assessment.specific_concerns,
    )
