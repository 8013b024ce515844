"""
Test API Error Handling & Validation
=====================================
Tests for FastAPI error scenarios, input validation, and edge cases.
"""

import os
import sys
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Add serving/api to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "serving", "api"))

from main import app

client = TestClient(app, raise_server_exceptions=False)


class TestCORSAndSecurity:
    def test_cors_allows_authorized_origin(self):
        """TestClient doesn't enforce CORS, so we check config."""
        from main import ALLOWED_ORIGINS
        assert "http://crm-frontend-service:8080" in ALLOWED_ORIGINS
        assert "*" not in ALLOWED_ORIGINS


class TestInputValidation:
    def test_missing_required_field(self):
        response = client.post("/risk/score", json={"current_stage": "negociacion"})
        assert response.status_code == 422
        assert "contact_id" in response.json()["detail"][0]["loc"]

    def test_contact_id_too_long(self):
        response = client.post(
            "/risk/score",
            json={"contact_id": "a" * 51, "current_stage": "negociacion"},
        )
        assert response.status_code == 422

    def test_engagement_out_of_range(self):
        response = client.post(
            "/risk/score",
            json={"contact_id": "x", "current_stage": "negociacion", "engagement_score": 150},
        )
        assert response.status_code == 422
        assert "engagement_score" in str(response.json())

    def test_negative_days(self):
        response = client.post(
            "/risk/score",
            json={"contact_id": "x", "current_stage": "negociacion", "days_since_last_contact": -3},
        )
        assert response.status_code == 422

    def test_reasons_must_be_strings(self):
        response = client.post("/non-purchase/assess", json={"reasons": [{"a": 1}]})
        assert response.status_code == 422


class TestErrorResponses:
    def test_health_endpoint_always_200(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_error_response_does_not_leak_internals(self):
        response = client.post(
            "/risk/score",
            content="not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

        response_text = response.text.lower()
        assert "traceback" not in response_text
        assert "/usr/" not in response_text

    def test_unexpected_failure_returns_500(self):
        with patch("main.assess_contact", side_effect=RuntimeError("boom")):
            response = client.post(
                "/risk/score",
                json={"contact_id": "x", "current_stage": "negociacion"},
            )
        assert response.status_code == 500
        assert response.json()["detail"] == "Scoring failed"
        assert "boom" not in response.text

    def test_batch_failure_returns_500(self):
        with patch("main.assess_contact", side_effect=RuntimeError("boom")):
            response = client.post(
                "/risk/score/batch",
                json={"contacts": [{"contact_id": "x", "current_stage": "negociacion"}]},
            )
        assert response.status_code == 500
        assert response.json()["detail"] == "Batch scoring failed"

    def test_batch_endpoint_size_limit(self):
        payload = {
            "contacts": [{"contact_id": f"c_{i}", "current_stage": "negociacion"} for i in range(1001)]
        }
        response = client.post("/risk/score/batch", json=payload)
        assert response.status_code == 422

    def test_batch_env_limit(self):
        with patch("main.MAX_BATCH_SIZE", 2):
            payload = {
                "contacts": [{"contact_id": f"c_{i}", "current_stage": "negociacion"} for i in range(3)]
            }
            response = client.post("/risk/score/batch", json=payload)
        assert response.status_code == 400


class TestPrometheusMetrics:
    def test_metrics_endpoint_returns_text(self):
        client.get("/health")
        client.post("/risk/score", json={"contact_id": "x", "current_stage": "negociacion"})
        response = client.get("/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"] == "text/plain; charset=utf-8"
        assert "risk_api_requests_total" in response.text
        assert "risk_api_request_duration_seconds" in response.text


class TestEdgeCases:
    @pytest.mark.parametrize("stage", ["", "nonexistent_stage_xyz", "NEGOCIACION"])
    def test_unrecognised_stages_score_without_recommendations(self, stage):
        response = client.post(
            "/risk/score",
            json={"contact_id": "x", "current_stage": stage, "base_risk_score": 50},
        )
        assert response.status_code == 200
        assert response.json()["recommendations"] == []

    def test_maximum_valid_values(self):
        payload = {
            "contact_id": "a" * 50,
            "current_stage": "no_compra",
            "days_since_last_contact": 36500,
            "interaction_frequency_per_week": 1000,
            "engagement_score": 100,
            "base_risk_score": 100,
            "non_purchase_reasons": ["precio", "ubicacion", "tamano", "financiacion"],
        }
        response = client.post("/risk/score", json=payload)
        assert response.status_code == 200
        assert response.json()["risk_score"] == 100


# Run with: pytest tests/test_api_error_handling.py -v
