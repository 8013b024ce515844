"""
Alert threshold policy.

Decides whether a computed score warrants an alert and formats its message.
Persisting or notifying is left to the caller.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

ALERT_HIGH_RISK = "high_risk"
ALERT_STAGE_STAGNATION = "stage_stagnation"

HIGH_RISK_ALERT_THRESHOLD = 80
STAGNATION_ALERT_THRESHOLD = 70

DEFAULT_CONTACT_NAME = "Client"


@dataclass(frozen=True)
class Alert:
    alert_type: str
    message: str
    risk_score: int

    def to_record(self) -> dict:
        """Row shape expected by the risk_alerts table."""
        return {
            "alert_type": self.alert_type,
            "alert_message": self.message,
            "risk_score": self.risk_score,
        }


def _concerns_suffix(specific_concerns: Optional[Iterable[str]]) -> str:
    concerns = [c for c in (specific_concerns or []) if c]
    if not concerns:
        return ""
    return f". Concerns: {', '.join(concerns)}"


def evaluate_alert(
    contact_name: Optional[str],
    score: int,
    specific_concerns: Optional[Iterable[str]] = None,
) -> Optional[Alert]:
    """
    Map a score to an alert.

    - score >= 80:       high_risk
    - 70 <= score < 80:  stage_stagnation
    - score < 70:        no alert (None)
    """
    if score < STAGNATION_ALERT_THRESHOLD:
        return None

    name = (contact_name or "").strip() or DEFAULT_CONTACT_NAME
    suffix = _concerns_suffix(specific_concerns)

    if score >= HIGH_RISK_ALERT_THRESHOLD:
        return Alert(
            alert_type=ALERT_HIGH_RISK,
            message=f"{name} has critical risk ({score}%) of abandoning{suffix}",
            risk_score=score,
        )
    return Alert(
        alert_type=ALERT_STAGE_STAGNATION,
        message=f"{name} shows signs of disinterest ({score}%){suffix}",
        risk_score=score,
    )
