"""
Base risk blend from raw contact signals.

Used when the persistence layer has not supplied a precomputed base score.
Each component is a 0-100 sub-score; the base score is their weighted sum.
The component list doubles as the breakdown shown in the risk detail view.
"""

from dataclasses import dataclass, field
from typing import List

from stage_catalog import get_stage

COMPONENT_WEIGHTS = {
    "days_since_contact": 0.30,
    "interaction_frequency": 0.25,
    "engagement": 0.25,
    "stage_position": 0.20,
}

DAYS_SINCE_CONTACT_FACTOR = 3
FREQUENCY_FACTOR = 20

CRITICAL_GAP_DAYS = 14
FOLLOW_UP_GAP_DAYS = 7
LOW_FREQUENCY_PER_WEEK = 1.0
LOW_ENGAGEMENT_SCORE = 40
STAGE_FACTOR_MIN_WEIGHT = 0.5


@dataclass
class RiskComponent:
    name: str
    value: float
    weight: float
    description: str

    @property
    def contribution(self) -> float:
        return self.value * self.weight


@dataclass
class BaseRisk:
    score: float
    risk_factors: List[str] = field(default_factory=list)
    components: List[RiskComponent] = field(default_factory=list)


def _components(signal) -> List[RiskComponent]:
    days = max(0, signal.days_since_last_contact)
    frequency = max(0.0, signal.interaction_frequency_per_week)
    engagement = min(100.0, max(0.0, signal.engagement_score))
    stage = get_stage(signal.current_stage)
    stage_value = round(100 * stage.max_factor_weight, 2) if stage else 0.0
    stage_label = stage.display_name if stage else "unknown stage"

    return [
        RiskComponent(
            "days_since_contact",
            min(100.0, float(days * DAYS_SINCE_CONTACT_FACTOR)),
            COMPONENT_WEIGHTS["days_since_contact"],
            f"{days} days since the last contact",
        ),
        RiskComponent(
            "interaction_frequency",
            max(0.0, 100.0 - frequency * FREQUENCY_FACTOR),
            COMPONENT_WEIGHTS["interaction_frequency"],
            f"{frequency:.1f} interactions per week",
        ),
        RiskComponent(
            "engagement",
            100.0 - engagement,
            COMPONENT_WEIGHTS["engagement"],
            f"{engagement:.0f}% current engagement",
        ),
        RiskComponent(
            "stage_position",
            stage_value,
            COMPONENT_WEIGHTS["stage_position"],
            f"Currently in: {stage_label}",
        ),
    ]


def _factors(signal) -> List[str]:
    factors = []
    days = signal.days_since_last_contact

    if days > CRITICAL_GAP_DAYS:
        factors.append(f"{days} days without contact - critical abandonment risk")
    elif days > FOLLOW_UP_GAP_DAYS:
        factors.append(f"{days} days without contact - follow-up needed")

    if signal.interaction_frequency_per_week < LOW_FREQUENCY_PER_WEEK:
        factors.append(
            f"Low communication frequency ({signal.interaction_frequency_per_week:.1f} per week)"
        )

    if signal.engagement_score < LOW_ENGAGEMENT_SCORE:
        factors.append(f"Low engagement ({signal.engagement_score:.0f}%)")

    stage = get_stage(signal.current_stage)
    if stage is not None and stage.risk_factors:
        top = max(stage.risk_factors, key=lambda f: f.weight)
        if top.weight >= STAGE_FACTOR_MIN_WEIGHT:
            factors.append(top.text)

    return factors


def compute_base_risk(signal) -> BaseRisk:
    """Blend a ContactSignal into a 0-100 base score with explanations."""
    components = _components(signal)
    score = sum(c.contribution for c in components)
    return BaseRisk(
        score=round(min(100.0, max(0.0, score)), 2),
        risk_factors=_factors(signal),
        components=components,
    )
