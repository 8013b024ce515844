"""CRM Client Risk: REST API scoring contacts for risk of non-purchase."""
from __future__ import annotations

import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from pydantic import BaseModel, Field, field_validator

from alert_policy import HIGH_RISK_ALERT_THRESHOLD, STAGNATION_ALERT_THRESHOLD
from non_purchase import assess_non_purchase
from risk_engine import ContactAssessment, ContactSignal, assess_contact
from risk_scorer import HIGH_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD
from stage_catalog import STAGE_CATALOG, ordered_stages, validate_catalog

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("risk-api")

# Upper bound enforced by the request schema; the env var can only lower it.
BATCH_HARD_LIMIT = 1000
MAX_BATCH_SIZE = min(int(os.getenv("MAX_BATCH_SIZE", str(BATCH_HARD_LIMIT))), BATCH_HARD_LIMIT)
MAX_REASONS = 50

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS",
        "http://crm-frontend-service:8080,http://localhost:8080",
    ).split(",")
]

REQUEST_COUNT = Counter(
    "risk_api_requests_total", "Total scoring requests", ["endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "risk_api_request_duration_seconds",
    "Request latency",
    ["endpoint"],
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)
CONTACTS_SCORED = Counter(
    "risk_api_contacts_scored_total", "Total contacts scored"
)
LEVEL_COUNT = Counter(
    "risk_api_risk_level_total", "Risk level distribution", ["level"]
)
ALERT_COUNT = Counter(
    "risk_api_alerts_total", "Alerts raised", ["alert_type"]
)
CATALOG_STAGES = Gauge(
    "risk_api_catalog_stages", "Number of stages in the validated catalog"
)


catalog_metadata: Dict[str, str] = {}
catalog_problems: List[str] = []


def load_catalog():
    """Validate the static stage catalog and record readiness metadata."""
    global catalog_problems
    catalog_problems = validate_catalog(STAGE_CATALOG)

    for problem in catalog_problems:
        logger.error(f"Stage catalog problem: {problem}")

    CATALOG_STAGES.set(len(STAGE_CATALOG))
    catalog_metadata["loaded_at"] = datetime.now(timezone.utc).isoformat()
    catalog_metadata["stage_count"] = str(len(STAGE_CATALOG))
    catalog_metadata["valid"] = str(not catalog_problems)
    logger.info(
        f"Stage catalog ready: {len(STAGE_CATALOG)} stages, "
        f"{len(catalog_problems)} problems"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_catalog()
    yield
    catalog_metadata.clear()
    logger.info("Risk API stopped")


app = FastAPI(
    title="CRM Client Risk API",
    description="Risk of non-purchase scoring with stage-specific recommendations and alerts",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["POST", "GET"],
    allow_headers=["Content-Type", "Accept"],
)


class ContactSignalRequest(BaseModel):
    """Signals for a single contact."""
    contact_id: str = Field(
        ..., min_length=1, max_length=50, description="Unique contact identifier"
    )
    contact_name: str = Field("", max_length=200)
    current_stage: str = Field(
        ..., max_length=100, description="Sales funnel stage id"
    )
    days_since_last_contact: int = Field(0, ge=0, le=36500)
    interaction_frequency_per_week: float = Field(0, ge=0, le=1000)
    engagement_score: float = Field(0, ge=0, le=100)
    non_purchase_reasons: List[str] = Field(
        default_factory=list,
        max_length=MAX_REASONS,
        description='Reasons as "category: details"',
    )
    base_risk_score: Optional[float] = Field(
        None, ge=0, le=100, description="Precomputed base score; blended from signals when absent"
    )
    base_risk_factors: List[str] = Field(default_factory=list)

    @field_validator("non_purchase_reasons")
    @classmethod
    def validate_reasons(cls, v: List[str]) -> List[str]:
        for reason in v:
            if len(reason) > 1000:
                raise ValueError("Non-purchase reason exceeds 1000 characters")
        return v


class RecommendationItem(BaseModel):
    priority: str
    action: str
    reason: str
    timeframe: str


class AlertItem(BaseModel):
    alert_type: str
    alert_message: str
    risk_score: int


class ComponentItem(BaseModel):
    name: str
    value: float
    weight: float
    description: str


class RiskResponse(BaseModel):
    contact_id: str
    risk_score: int
    risk_level: str
    risk_factors: List[str]
    recommendations: List[str]
    recommendation_details: List[RecommendationItem]
    alert: Optional[AlertItem]
    risk_multiplier: float
    specific_concerns: List[str]
    recovery_strategy: str
    breakdown: List[ComponentItem]
    scored_at: str
    request_id: str


class BatchRequest(BaseModel):
    contacts: List[ContactSignalRequest] = Field(..., max_length=BATCH_HARD_LIMIT)


class BatchResponse(BaseModel):
    results: List[RiskResponse]
    batch_size: int
    alerts_raised: int
    scored_at: str
    request_id: str


class NonPurchaseRequest(BaseModel):
    reasons: List[str] = Field(default_factory=list, max_length=MAX_REASONS)


class NonPurchaseResponse(BaseModel):
    risk_multiplier: float
    specific_concerns: List[str]
    recovery_strategy: str


class StageItem(BaseModel):
    id: str
    display_name: str
    order: int
    risk_factors: List[str]


class ConfigInfo(BaseModel):
    loaded_at: str
    stage_count: int
    risk_level_thresholds: Dict[str, int]
    alert_thresholds: Dict[str, int]
    max_batch_size: int


def request_to_signal(contact: ContactSignalRequest) -> ContactSignal:
    """Convert a request model into the engine's ContactSignal."""
    return ContactSignal(
        contact_id=contact.contact_id,
        current_stage=contact.current_stage,
        days_since_last_contact=contact.days_since_last_contact,
        interaction_frequency_per_week=contact.interaction_frequency_per_week,
        engagement_score=contact.engagement_score,
        non_purchase_reason_texts=list(contact.non_purchase_reasons),
        contact_name=contact.contact_name,
    )


def assessment_to_response(assessment: ContactAssessment, request_id: str) -> RiskResponse:
    alert = assessment.alert
    return RiskResponse(
        contact_id=assessment.contact_id,
        risk_score=assessment.result.score,
        risk_level=assessment.result.risk_level,
        risk_factors=assessment.result.risk_factors,
        recommendations=assessment.result.recommendations,
        recommendation_details=[
            RecommendationItem(**r.to_dict()) for r in assessment.recommendation_details
        ],
        alert=AlertItem(**alert.to_record()) if alert else None,
        risk_multiplier=round(assessment.non_purchase.risk_multiplier, 6),
        specific_concerns=assessment.non_purchase.specific_concerns,
        recovery_strategy=assessment.non_purchase.recovery_strategy,
        breakdown=[
            ComponentItem(
                name=c.name, value=c.value, weight=c.weight, description=c.description
            )
            for c in assessment.breakdown
        ],
        scored_at=datetime.now(timezone.utc).isoformat(),
        request_id=request_id,
    )


def score_single(contact: ContactSignalRequest, request_id: str) -> RiskResponse:
    """Run the assessment pipeline for one contact and record metrics."""
    assessment = assess_contact(
        request_to_signal(contact),
        base_risk_score=contact.base_risk_score,
        base_risk_factors=contact.base_risk_factors,
    )
    CONTACTS_SCORED.inc()
    LEVEL_COUNT.labels(level=assessment.result.risk_level).inc()
    if assessment.alert:
        ALERT_COUNT.labels(alert_type=assessment.alert.alert_type).inc()
    return assessment_to_response(assessment, request_id)


@app.post("/risk/score", response_model=RiskResponse)
async def score(contact: ContactSignalRequest):
    """Score a single contact."""
    request_id = str(uuid.uuid4())[:8]
    start = time.time()
    try:
        result = score_single(contact, request_id)
        REQUEST_COUNT.labels(endpoint="/risk/score", status="success").inc()
        logger.info(
            f"scoring_success request_id={request_id} "
            f"contact_id={contact.contact_id} "
            f"level={result.risk_level} score={result.risk_score} "
            f"duration_ms={int((time.time() - start) * 1000)}"
        )
        return result
    except HTTPException:
        REQUEST_COUNT.labels(endpoint="/risk/score", status="error").inc()
        raise
    except Exception as e:
        REQUEST_COUNT.labels(endpoint="/risk/score", status="error").inc()
        logger.error(
            f"scoring_failed request_id={request_id} "
            f"contact_id={contact.contact_id} "
            f"error={type(e).__name__}"
        )
        raise HTTPException(status_code=500, detail="Scoring failed")
    finally:
        REQUEST_LATENCY.labels(endpoint="/risk/score").observe(time.time() - start)


@app.post("/risk/score/batch", response_model=BatchResponse)
async def score_batch(batch: BatchRequest):
    """Score multiple contacts in a single request (max 1000)."""
    request_id = str(uuid.uuid4())[:8]
    start = time.time()
    if len(batch.contacts) > MAX_BATCH_SIZE:
        REQUEST_COUNT.labels(endpoint="/risk/score/batch", status="error").inc()
        raise HTTPException(
            status_code=400,
            detail=f"Batch size {len(batch.contacts)} exceeds limit {MAX_BATCH_SIZE}",
        )
    try:
        results = [score_single(c, request_id) for c in batch.contacts]
        alerts_raised = sum(1 for r in results if r.alert is not None)
        REQUEST_COUNT.labels(endpoint="/risk/score/batch", status="success").inc()
        logger.info(
            f"batch_success request_id={request_id} "
            f"batch_size={len(results)} alerts={alerts_raised} "
            f"duration_ms={int((time.time() - start) * 1000)}"
        )
        return BatchResponse(
            results=results,
            batch_size=len(results),
            alerts_raised=alerts_raised,
            scored_at=datetime.now(timezone.utc).isoformat(),
            request_id=request_id,
        )
    except HTTPException:
        REQUEST_COUNT.labels(endpoint="/risk/score/batch", status="error").inc()
        raise
    except Exception as e:
        REQUEST_COUNT.labels(endpoint="/risk/score/batch", status="error").inc()
        logger.error(
            f"batch_failed request_id={request_id} "
            f"batch_size={len(batch.contacts)} "
            f"error={type(e).__name__}"
        )
        raise HTTPException(status_code=500, detail="Batch scoring failed")
    finally:
        REQUEST_LATENCY.labels(endpoint="/risk/score/batch").observe(time.time() - start)


@app.post("/non-purchase/assess", response_model=NonPurchaseResponse)
async def non_purchase_assess(body: NonPurchaseRequest):
    """Assess recorded non-purchase reasons on their own."""
    assessment = assess_non_purchase(body.reasons)
    REQUEST_COUNT.labels(endpoint="/non-purchase/assess", status="success").inc()
    return NonPurchaseResponse(
        risk_multiplier=round(assessment.risk_multiplier, 6),
        specific_concerns=assessment.specific_concerns,
        recovery_strategy=assessment.recovery_strategy,
    )


@app.get("/stages", response_model=List[StageItem])
async def stages():
    """Funnel stages in order."""
    return [
        StageItem(
            id=s.id,
            display_name=s.display_name,
            order=s.order,
            risk_factors=[f.text for f in s.risk_factors],
        )
        for s in ordered_stages()
    ]


@app.get("/health")
async def health():
    """Liveness probe: always returns OK if the process is running."""
    return {"status": "healthy"}


@app.get("/ready")
async def ready():
    """Readiness probe: returns OK only once the stage catalog validated."""
    if not catalog_metadata or catalog_problems:
        raise HTTPException(
            status_code=503,
            detail=f"Stage catalog not ready. Problems: {catalog_problems}",
        )
    return {"status": "ready", "stages_loaded": len(STAGE_CATALOG)}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(generate_latest().decode("utf-8"))


@app.get("/config/info", response_model=ConfigInfo)
async def config_info():
    """Scoring thresholds and catalog metadata."""
    return ConfigInfo(
        loaded_at=catalog_metadata.get("loaded_at", "not loaded"),
        stage_count=len(STAGE_CATALOG),
        risk_level_thresholds={
            "alto": HIGH_RISK_THRESHOLD,
            "medio": MEDIUM_RISK_THRESHOLD,
        },
        alert_thresholds={
            "high_risk": HIGH_RISK_ALERT_THRESHOLD,
            "stage_stagnation": STAGNATION_ALERT_THRESHOLD,
        },
        max_batch_size=MAX_BATCH_SIZE,
    )
