"""
Stage-specific recommended actions.

Normal funnel stages read their templates from the stage catalog. The lost
stage uses a closed decision table keyed on the recorded non-purchase
reasons: the first matching rule wins and rule sets are never blended.
"""

from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional, Tuple

from non_purchase import NON_PURCHASE_CATEGORIES, TIMING_KEYWORDS, matches_keywords
from stage_catalog import (
    LOST_STAGE_ID,
    PRIORITY_HIGH,
    PRIORITY_LOW,
    PRIORITY_MEDIUM,
    PRIORITY_RANK,
    STAGE_CATALOG,
    get_stage,
)

CRITICAL_CONTACT_GAP_DAYS = 14
FOLLOW_UP_CONTACT_GAP_DAYS = 7


@dataclass(frozen=True)
class Recommendation:
    priority: str
    action: str
    reason: str
    timeframe: str

    def to_dict(self) -> dict:
        return asdict(self)


_PRICE_KEYWORDS = next(c.keywords for c in NON_PURCHASE_CATEGORIES if c.key == "price")

PRICE_RECOVERY = (
    Recommendation(PRIORITY_HIGH, "Present properties within the client's budget",
                   "Client rejected the offer on price", "Within 7 days"),
    Recommendation(PRIORITY_MEDIUM, "Offer alternative payment plans or a discount",
                   "Lower entry cost can revive the deal", "Within 14 days"),
)

TIMING_RECHECK = (
    Recommendation(PRIORITY_MEDIUM, "Schedule a check-in call in 3 months",
                   "Client was not ready to buy yet", "In 3 months"),
    Recommendation(PRIORITY_LOW, "Send periodic market updates",
                   "Keeps the client informed until the timing is right", "Monthly"),
)

# The lost stage's own catalog templates are the nurture fallback.
LONG_TERM_NURTURE = tuple(
    Recommendation(t.priority, t.action, t.reason, t.timeframe)
    for t in STAGE_CATALOG[LOST_STAGE_ID].recommendation_templates
)

# First match wins; LONG_TERM_NURTURE is the fallback.
LOST_STAGE_RULES: Tuple[Tuple[str, Tuple[str, ...], Tuple[Recommendation, ...]], ...] = (
    ("price", _PRICE_KEYWORDS, PRICE_RECOVERY),
    ("timing", TIMING_KEYWORDS, TIMING_RECHECK),
)


def lost_stage_recommendations(reason_texts: Iterable[str]) -> List[Recommendation]:
    texts = list(reason_texts or [])
    if texts:
        for _key, keywords, recommendations in LOST_STAGE_RULES:
            if matches_keywords(texts, keywords):
                return list(recommendations)
    return list(LONG_TERM_NURTURE)


def _recency_recommendation(days: int, weeks: int) -> Optional[Recommendation]:
    if days > CRITICAL_CONTACT_GAP_DAYS:
        return Recommendation(
            PRIORITY_HIGH,
            "Re-establish contact immediately",
            f"{weeks} weeks without communication",
            "Today",
        )
    elif days > FOLLOW_UP_CONTACT_GAP_DAYS:
        return Recommendation(
            PRIORITY_MEDIUM,
            "Contact the client this week",
            f"{days} days since the last contact",
            "This week",
        )
    return None


def generate_recommendations(
    stage_id: str,
    risk_level: str,
    days_since_last_contact: int = 0,
    weeks_since_last_contact: Optional[int] = None,
    non_purchase_reason_texts: Iterable[str] = (),
) -> List[Recommendation]:
    """
    Build the ordered action list for a contact.

    Args:
        stage_id: Current funnel stage id
        risk_level: Alto, Medio or Bajo
        days_since_last_contact: Days since the last recorded interaction
        weeks_since_last_contact: Defaults to days // 7
        non_purchase_reason_texts: Only consulted for the lost stage

    Returns:
        Recommendations, highest priority first; empty for an unknown stage
    """
    stage = get_stage(stage_id)
    if stage is None:
        return []

    if stage.id == LOST_STAGE_ID:
        return lost_stage_recommendations(non_purchase_reason_texts)

    days = max(0, int(days_since_last_contact or 0))
    weeks = weeks_since_last_contact if weeks_since_last_contact is not None else days // 7

    recommendations = [
        Recommendation(t.priority, t.action, t.reason, t.timeframe)
        for t in stage.templates_for(risk_level)
    ]
    recency = _recency_recommendation(days, weeks)
    if recency is not None:
        recommendations.insert(0, recency)

    # sorted() is stable, so the recency item leads its priority band
    return sorted(recommendations, key=lambda r: PRIORITY_RANK.get(r.priority, len(PRIORITY_RANK)))


def recommendation_actions(recommendations: Iterable[Recommendation]) -> List[str]:
    return [r.action for r in recommendations]
