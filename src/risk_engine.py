"""
Contact risk assessment pipeline.

Non-purchase assessment -> risk scorer -> recommendation generator -> alert
policy. Every step is a pure function over the signal, so contacts can be
scored in any order or in parallel with identical results.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from alert_policy import Alert, evaluate_alert
from base_risk import RiskComponent, compute_base_risk
from non_purchase import NonPurchaseAssessment, assess_non_purchase
from recommendations import Recommendation, generate_recommendations, recommendation_actions
from risk_scorer import score_with_assessment

logger = logging.getLogger(__name__)


@dataclass
class ContactSignal:
    """Per-contact inputs supplied by the persistence layer."""
    contact_id: str
    current_stage: str
    days_since_last_contact: int = 0
    interaction_frequency_per_week: float = 0.0
    engagement_score: float = 0.0
    non_purchase_reason_texts: List[str] = field(default_factory=list)
    contact_name: str = ""


@dataclass
class RiskResult:
    score: int
    risk_level: str
    risk_factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


@dataclass
class ContactAssessment:
    contact_id: str
    result: RiskResult
    alert: Optional[Alert]
    non_purchase: NonPurchaseAssessment
    base_risk_score: float
    breakdown: List[RiskComponent] = field(default_factory=list)
    recommendation_details: List[Recommendation] = field(default_factory=list)

    def to_metrics_record(self, signal: ContactSignal) -> dict:
        """Row shape for the client_risk_metrics upsert."""
        return {
            "contact_id": self.contact_id,
            "risk_score": self.result.score,
            "last_contact_days": signal.days_since_last_contact,
            "interaction_frequency": signal.interaction_frequency_per_week,
            "engagement_score": signal.engagement_score,
            "risk_factors": list(self.result.risk_factors),
            "recommendations": list(self.result.recommendations),
        }


def assess_contact(
    signal: ContactSignal,
    base_risk_score: Optional[float] = None,
    base_risk_factors: Optional[Iterable[str]] = None,
) -> ContactAssessment:
    """
    Score one contact end to end.

    Args:
        signal: Raw contact signals
        base_risk_score: Precomputed base score; blended from the signal when None
        base_risk_factors: Factors that accompany a precomputed base score

    Returns:
        ContactAssessment with the result, optional alert and breakdown
    """
    base = compute_base_risk(signal)
    if base_risk_score is None:
        base_score = base.score
        base_factors = base.risk_factors
    else:
        base_score = base_risk_score
        base_factors = list(base_risk_factors or [])

    reasons = list(signal.non_purchase_reason_texts or [])
    non_purchase = assess_non_purchase(reasons)
    scored = score_with_assessment(base_score, non_purchase, base_factors)

    days = max(0, signal.days_since_last_contact)
    details = generate_recommendations(
        signal.current_stage,
        scored.risk_level,
        days_since_last_contact=days,
        weeks_since_last_contact=days // 7,
        non_purchase_reason_texts=reasons,
    )
    alert = evaluate_alert(signal.contact_name, scored.score, non_purchase.specific_concerns)

    logger.debug(
        f"assessed contact_id={signal.contact_id} stage={signal.current_stage} "
        f"base={base_score} multiplier={non_purchase.risk_multiplier:.4f} "
        f"score={scored.score} alert={alert.alert_type if alert else None}"
    )

    return ContactAssessment(
        contact_id=signal.contact_id,
        result=RiskResult(
            score=scored.score,
            risk_level=scored.risk_level,
            risk_factors=scored.risk_factors,
            recommendations=recommendation_actions(details),
        ),
        alert=alert,
        non_purchase=non_purchase,
        base_risk_score=base_score,
        breakdown=base.components,
        recommendation_details=details,
    )


def assess_contacts(signals: Iterable[ContactSignal]) -> List[ContactAssessment]:
    """Score contacts independently, preserving input order."""
    return [assess_contact(signal) for signal in signals]
