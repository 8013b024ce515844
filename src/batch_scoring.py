"""
Batch scoring: score every contact in a CSV export and write a scores table.

Usage:
    python src/batch_scoring.py --input contacts.csv --output risk_scores.csv

Input columns: contact_id, current_stage, days_since_last_contact,
interaction_frequency_per_week, engagement_score. Optional: contact_name,
base_risk_score, non_purchase_reasons (reasons separated by ";").
"""

import argparse
import logging
from typing import Dict, List, Mapping, Optional

import pandas as pd

from risk_engine import ContactSignal, assess_contact
from risk_scorer import RISK_LEVELS

logger = logging.getLogger("batch-scoring")

REQUIRED_COLUMNS = [
    "contact_id",
    "current_stage",
    "days_since_last_contact",
    "interaction_frequency_per_week",
    "engagement_score",
]
REASON_SEPARATOR = ";"


def _split_reasons(value) -> List[str]:
    if not isinstance(value, str):
        return []
    return [part.strip() for part in value.split(REASON_SEPARATOR) if part.strip()]


def _optional_str(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def score_contacts_frame(
    df: pd.DataFrame,
    reasons_by_contact: Optional[Mapping[str, List[str]]] = None,
) -> pd.DataFrame:
    """
    Score each row of a contacts DataFrame.

    Args:
        df: One row per contact with REQUIRED_COLUMNS
        reasons_by_contact: Extra non-purchase reasons keyed by contact_id

    Returns:
        Copy of df with risk_score, risk_level, alert_type, alert_message,
        risk_factors and recommendations columns
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    blank = df[REQUIRED_COLUMNS].isna().any(axis=1)
    if blank.any():
        ids = df.loc[blank, "contact_id"].astype(str).tolist()
        raise ValueError(f"Blank required values for contacts: {ids}")

    reasons_by_contact = reasons_by_contact or {}
    rows: List[Dict] = []

    for record in df.to_dict(orient="records"):
        contact_id = str(record["contact_id"])
        reasons = _split_reasons(record.get("non_purchase_reasons"))
        reasons.extend(reasons_by_contact.get(contact_id, []))

        signal = ContactSignal(
            contact_id=contact_id,
            current_stage=str(record["current_stage"]),
            days_since_last_contact=int(record["days_since_last_contact"]),
            interaction_frequency_per_week=float(record["interaction_frequency_per_week"]),
            engagement_score=float(record["engagement_score"]),
            non_purchase_reason_texts=reasons,
            contact_name=_optional_str(record.get("contact_name")),
        )
        assessment = assess_contact(
            signal, base_risk_score=_optional_float(record.get("base_risk_score"))
        )
        alert = assessment.alert
        rows.append({
            "risk_score": assessment.result.score,
            "risk_level": assessment.result.risk_level,
            "alert_type": alert.alert_type if alert else None,
            "alert_message": alert.message if alert else None,
            "risk_factors": assessment.result.risk_factors,
            "recommendations": assessment.result.recommendations,
        })

    scores = pd.DataFrame(
        rows,
        columns=["risk_score", "risk_level", "alert_type", "alert_message",
                 "risk_factors", "recommendations"],
        index=df.index,
    )
    return pd.concat([df, scores], axis=1)


def level_summary(scored: pd.DataFrame) -> pd.Series:
    """Contacts per risk level, in Alto/Medio/Bajo order."""
    return scored["risk_level"].value_counts().reindex(list(RISK_LEVELS), fill_value=0)


def run(input_path: str, output_path: str) -> pd.DataFrame:
    contacts = pd.read_csv(input_path)
    logger.info(f"Scoring {len(contacts):,} contacts from {input_path}")

    scored = score_contacts_frame(contacts)
    out = scored.copy()
    for col in ("risk_factors", "recommendations"):
        out[col] = out[col].apply(REASON_SEPARATOR.join)
    out.to_csv(output_path, index=False)

    summary = level_summary(scored)
    alerts = int(scored["alert_type"].notna().sum())
    logger.info(
        f"Wrote {output_path}: "
        + ", ".join(f"{level}={count}" for level, count in summary.items())
        + f", alerts={alerts}"
    )
    return scored


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Score CRM contacts for non-purchase risk")
    parser.add_argument("--input", required=True, help="Contacts CSV")
    parser.add_argument("--output", required=True, help="Scores CSV to write")
    args = parser.parse_args()

    run(args.input, args.output)
    logger.info("Batch scoring complete.")
