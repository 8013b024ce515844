"""
Non-purchase reason assessment.

Maps the free-text reasons a contact gave for not buying ("precio: muy caro",
"ubicacion: lejos", ...) to a compounded risk multiplier, concern tags and a
recovery strategy.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Tuple


@dataclass(frozen=True)
class NonPurchaseCategory:
    key: str
    keywords: Tuple[str, ...]
    multiplier: float
    concern: str
    recovery_strategy: str


# Check order matters: the last matching category sets the recovery strategy.
NON_PURCHASE_CATEGORIES = (
    NonPurchaseCategory(
        key="price",
        keywords=("precio", "price"),
        multiplier=1.20,
        concern="Price objection",
        recovery_strategy="Offer flexible payment terms or present lower-priced alternatives",
    ),
    NonPurchaseCategory(
        key="location",
        keywords=("ubicación", "ubicacion", "location"),
        multiplier=1.10,
        concern="Location mismatch",
        recovery_strategy="Search listings in the client's preferred districts",
    ),
    NonPurchaseCategory(
        key="size",
        keywords=("tamaño", "tamano", "size"),
        multiplier=1.15,
        concern="Size mismatch",
        recovery_strategy="Re-qualify space requirements and propose better-sized units",
    ),
    NonPurchaseCategory(
        key="financing",
        keywords=("financiación", "financiacion", "financiamiento", "financing"),
        multiplier=1.25,
        concern="Financing difficulties",
        recovery_strategy="Connect the client with a mortgage advisor and review financing options",
    ),
)

TIMING_KEYWORDS = ("timing", "momento")

DEFAULT_RECOVERY_STRATEGY = "no strategy defined"


@dataclass
class NonPurchaseAssessment:
    risk_multiplier: float = 1.0
    specific_concerns: List[str] = field(default_factory=list)
    recovery_strategy: str = DEFAULT_RECOVERY_STRATEGY


def matches_keywords(reason_texts: Iterable[str], keywords: Iterable[str]) -> bool:
    """True when any reason contains any keyword, ignoring case."""
    lowered = [text.lower() for text in reason_texts if text]
    return any(keyword.lower() in text for text in lowered for keyword in keywords)


def assess_non_purchase(reason_texts: Iterable[str]) -> NonPurchaseAssessment:
    """
    Assess recorded non-purchase reasons.

    Every category is checked independently in NON_PURCHASE_CATEGORIES order;
    matching multipliers compound and the last match's strategy wins.
    An empty list yields the identity multiplier and the default strategy.
    """
    texts = [text for text in (reason_texts or []) if isinstance(text, str)]
    assessment = NonPurchaseAssessment()

    for category in NON_PURCHASE_CATEGORIES:
        if matches_keywords(texts, category.keywords):
            assessment.risk_multiplier *= category.multiplier
            assessment.specific_concerns.append(category.concern)
            assessment.recovery_strategy = category.recovery_strategy

    return assessment


def reason_texts_from_records(records: Iterable[Mapping[str, str]]) -> List[str]:
    """Format persisted reason rows as "category: details" strings."""
    texts = []
    for record in records:
        category = (record.get("reason_category") or "").strip()
        details = (record.get("reason_details") or "").strip()
        if category and details:
            texts.append(f"{category}: {details}")
        elif category or details:
            texts.append(category or details)
    return texts
