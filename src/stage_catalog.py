"""
Sales funnel stage catalog.

Static, ordered definitions of every funnel stage: display name, position,
the risk factors a contact carries while sitting in the stage, and the
recommended actions per risk level. Built once at import and never mutated.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, List, Mapping, Optional, Tuple

from risk_scorer import RISK_LEVEL_HIGH, RISK_LEVEL_LOW, RISK_LEVEL_MEDIUM, RISK_LEVELS

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"
PRIORITY_RANK = {PRIORITY_HIGH: 0, PRIORITY_MEDIUM: 1, PRIORITY_LOW: 2}

ALL_LEVELS = frozenset(RISK_LEVELS)
HIGH_ONLY = frozenset({RISK_LEVEL_HIGH})
NOT_HIGH = frozenset({RISK_LEVEL_MEDIUM, RISK_LEVEL_LOW})

LOST_STAGE_ID = "no_compra"


@dataclass(frozen=True)
class RiskFactor:
    text: str
    weight: float


@dataclass(frozen=True)
class RecommendationTemplate:
    priority: str
    action: str
    reason: str
    timeframe: str
    risk_levels: FrozenSet[str] = ALL_LEVELS


@dataclass(frozen=True)
class Stage:
    id: str
    display_name: str
    order: int
    risk_factors: Tuple[RiskFactor, ...] = ()
    recommendation_templates: Tuple[RecommendationTemplate, ...] = ()

    def templates_for(self, level: str) -> List[RecommendationTemplate]:
        return [t for t in self.recommendation_templates if level in t.risk_levels]

    @property
    def max_factor_weight(self) -> float:
        return max((f.weight for f in self.risk_factors), default=0.0)


def _t(priority, action, reason, timeframe, levels=ALL_LEVELS):
    return RecommendationTemplate(priority, action, reason, timeframe, levels)


STAGES = (
    Stage(
        id="contacto_inicial_recibido",
        display_name="Contacto inicial recibido",
        order=1,
        risk_factors=(RiskFactor("New lead not yet engaged", 0.6),),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Call the lead within the next 2 hours",
               "Recent leads cool down quickly", "Within 2 hours", HIGH_ONLY),
            _t(PRIORITY_HIGH, "Send a personalised welcome message",
               "Sets the tone before a competitor does", "Today", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Make the first call within 24 hours",
               "First contact drives conversion", "Within 24 hours", NOT_HIGH),
            _t(PRIORITY_LOW, "Send basic company information",
               "Builds trust with a new lead", "Within 48 hours", NOT_HIGH),
        ),
    ),
    Stage(
        id="primer_contacto_activo",
        display_name="Primer contacto activo",
        order=2,
        risk_factors=(RiskFactor("Early relationship, interest not confirmed", 0.5),),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Schedule an urgent in-person meeting",
               "Interest is fading after first contact", "Within 48 hours", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Offer an incentive for a quick reply",
               "Creates urgency to keep the conversation going", "This week", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Schedule a second follow-up call",
               "Keeps the relationship active", "Within 3 days", NOT_HIGH),
            _t(PRIORITY_LOW, "Send a catalogue of relevant properties",
               "Gives the client options to react to", "This week", NOT_HIGH),
        ),
    ),
    Stage(
        id="llenado_ficha",
        display_name="Llenado de ficha",
        order=3,
        risk_factors=(
            RiskFactor("Profile form incomplete", 0.45),
            RiskFactor("Requirements not yet qualified", 0.3),
        ),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Offer to complete the profile form by phone",
               "A long form is stalling the process", "Within 48 hours", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Simplify the profile form",
               "Fewer fields means faster completion", "This week",
               frozenset({RISK_LEVEL_HIGH, RISK_LEVEL_MEDIUM})),
            _t(PRIORITY_LOW, "Remind the client why the profile matters",
               "A complete profile yields better property matches", "Next contact"),
        ),
    ),
    Stage(
        id="seguimiento_inicial",
        display_name="Seguimiento inicial",
        order=4,
        risk_factors=(RiskFactor("Follow-up cadence not established", 0.4),),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Intensify follow-up with daily calls",
               "Engagement is dropping during follow-up", "Daily", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Share testimonials from satisfied clients",
               "Social proof rebuilds confidence", "This week", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Keep in touch every 2-3 days",
               "Steady cadence keeps the client warm", "Every 2-3 days", NOT_HIGH),
            _t(PRIORITY_LOW, "Share local market news",
               "Keeps the agent top of mind", "Weekly", NOT_HIGH),
        ),
    ),
    Stage(
        id="agendamiento_visitas",
        display_name="Agendamiento de visitas",
        order=5,
        risk_factors=(RiskFactor("Property visit not yet confirmed", 0.35),),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Offer several flexible visit slots",
               "Scheduling friction is blocking the visit", "Within 24 hours", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Propose a virtual tour as an alternative",
               "Removes the need to travel", "This week", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Assign a senior agent to the visit",
               "Experienced agents close hesitant clients", "Before the visit", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Confirm the visit 24 hours ahead",
               "Reduces no-shows", "24 hours before the visit", NOT_HIGH),
            _t(PRIORITY_LOW, "Prepare property-specific information",
               "Answers questions on the spot", "Before the visit", NOT_HIGH),
        ),
    ),
    Stage(
        id="presentacion_personalizada",
        display_name="Presentación personalizada",
        order=6,
        risk_factors=(RiskFactor("Comparing alternatives after presentation", 0.3),),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Focus the pitch on the client's specific benefits",
               "Generic presentations lose hesitant clients", "Next meeting", HIGH_ONLY),
            _t(PRIORITY_HIGH, "Offer special financing conditions",
               "Affordability is the most common blocker", "This week", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Include comparisons with other options",
               "Pre-empts comparison shopping", "Next meeting", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Prepare a detailed presentation",
               "Shows commitment to the client's needs", "Next meeting", NOT_HIGH),
            _t(PRIORITY_LOW, "Include appreciation projections",
               "Frames the purchase as an investment", "Next meeting", NOT_HIGH),
        ),
    ),
    Stage(
        id="negociacion",
        display_name="Negociación",
        order=7,
        risk_factors=(RiskFactor("Open price or terms negotiation", 0.55),),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Escalate to the sales manager",
               "Negotiation is at risk of breaking down", "Within 24 hours", HIGH_ONLY),
            _t(PRIORITY_HIGH, "Offer a discount for immediate closing",
               "Converts hesitation into a decision", "This week", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Make payment conditions more flexible",
               "Removes the remaining financial objection", "This week", HIGH_ONLY),
            _t(PRIORITY_HIGH, "Speed up the approval process",
               "Long approvals give room for doubts", "Within 3 days",
               frozenset({RISK_LEVEL_MEDIUM})),
            _t(PRIORITY_MEDIUM, "Offer additional benefits",
               "Adds value without cutting the price", "This week",
               frozenset({RISK_LEVEL_MEDIUM})),
            _t(PRIORITY_MEDIUM, "Keep the negotiation active",
               "Momentum prevents second thoughts", "Every 2-3 days",
               frozenset({RISK_LEVEL_LOW})),
            _t(PRIORITY_LOW, "Document every agreement",
               "Avoids misunderstandings at signing", "Ongoing",
               frozenset({RISK_LEVEL_LOW})),
        ),
    ),
    Stage(
        id="cierre_firma_contrato",
        display_name="Cierre / Firma de contrato",
        order=8,
        risk_factors=(RiskFactor("Pending paperwork before signing", 0.2),),
        recommendation_templates=(
            _t(PRIORITY_HIGH, "Contact the client daily until signing",
               "Late-stage drop-outs are the most costly", "Daily", HIGH_ONLY),
            _t(PRIORITY_HIGH, "Assist with pending paperwork",
               "Bureaucracy is delaying the signature", "Within 48 hours", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Offer signing at a convenient location",
               "Removes the last logistical obstacle", "Before signing", HIGH_ONLY),
            _t(PRIORITY_MEDIUM, "Confirm the signing date",
               "A fixed date keeps the close on track", "This week", NOT_HIGH),
            _t(PRIORITY_LOW, "Prepare the complete documentation",
               "Avoids last-minute delays", "Before signing", NOT_HIGH),
        ),
    ),
    Stage(
        id="postventa_fidelizacion",
        display_name="Postventa y fidelización",
        order=9,
        risk_factors=(RiskFactor("Post-sale follow-up pending", 0.1),),
        recommendation_templates=(
            _t(PRIORITY_MEDIUM, "Schedule a post-delivery follow-up",
               "Satisfied clients become referrers", "Within 30 days"),
            _t(PRIORITY_LOW, "Ask for referrals and testimonials",
               "Referrals are the cheapest lead source", "Within 60 days"),
            _t(PRIORITY_LOW, "Stay in touch for future opportunities",
               "Repeat buyers and investors", "Quarterly"),
        ),
    ),
    Stage(
        id=LOST_STAGE_ID,
        display_name="No compra",
        order=10,
        risk_factors=(RiskFactor("Client declined to purchase", 0.9),),
        recommendation_templates=(
            _t(PRIORITY_MEDIUM, "Add the client to a long-term nurture campaign",
               "Lost clients often return when circumstances change", "Monthly"),
            _t(PRIORITY_LOW, "Share new listings matching the client's profile",
               "Keeps the door open without pressure", "As listings appear"),
        ),
    ),
)

STAGE_CATALOG: Mapping[str, Stage] = MappingProxyType({s.id: s for s in STAGES})

# Ids the CRM writes when a non-purchase reason is recorded.
STAGE_ALIASES: Mapping[str, str] = MappingProxyType({
    "no_compra_registrada": LOST_STAGE_ID,
    "seguimiento_futuro": LOST_STAGE_ID,
})


def get_stage(stage_id: Optional[str]) -> Optional[Stage]:
    """Look up a stage, following aliases; unknown or empty ids return None."""
    if not stage_id:
        return None
    return STAGE_CATALOG.get(STAGE_ALIASES.get(stage_id, stage_id))


def stage_display_name(stage_id: str) -> str:
    stage = get_stage(stage_id)
    if stage is not None:
        return stage.display_name
    return (stage_id or "").replace("_", " ")


def ordered_stages() -> List[Stage]:
    return sorted(STAGE_CATALOG.values(), key=lambda s: s.order)


def validate_catalog(catalog: Mapping[str, Stage] = STAGE_CATALOG) -> List[str]:
    """
    Check catalog integrity.

    Returns:
        List of problems; empty when every stage has a unique order, factor
        weights in [0, 1], known priorities and a template for every risk level.
    """
    problems = []
    seen_orders = {}

    for stage_id, stage in catalog.items():
        if stage_id != stage.id:
            problems.append(f"{stage_id}: key does not match stage id {stage.id}")
        if stage.order in seen_orders:
            problems.append(
                f"{stage_id}: order {stage.order} already used by {seen_orders[stage.order]}"
            )
        seen_orders[stage.order] = stage_id

        for factor in stage.risk_factors:
            if not 0.0 <= factor.weight <= 1.0:
                problems.append(f"{stage_id}: weight {factor.weight} out of range")

        for template in stage.recommendation_templates:
            if template.priority not in PRIORITY_RANK:
                problems.append(f"{stage_id}: unknown priority {template.priority}")

        for level in RISK_LEVELS:
            if not stage.templates_for(level):
                problems.append(f"{stage_id}: no recommendation for level {level}")

    return problems
