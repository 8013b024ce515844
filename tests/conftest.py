"""
Shared test fixtures for the CRM client risk test suite.
"""

import os
import sys

import pytest

# ── Project paths ──
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
API_DIR = os.path.join(PROJECT_ROOT, "serving", "api")


def _ensure_path(path):
    if path not in sys.path:
        sys.path.insert(0, path)


# Ensure API and src dirs are on path so test-module-level imports work
_ensure_path(API_DIR)
_ensure_path(SRC_DIR)


@pytest.fixture
def sample_contact_payload():
    """Minimal valid contact JSON payload for API tests."""
    return {
        "contact_id": "CONT-001",
        "contact_name": "Ana Torres",
        "current_stage": "negociacion",
        "days_since_last_contact": 10,
        "interaction_frequency_per_week": 1.5,
        "engagement_score": 55.0,
        "non_purchase_reasons": [],
    }


@pytest.fixture
def make_signal():
    """Factory for ContactSignal with sensible defaults."""
    from risk_engine import ContactSignal

    def _make(**overrides):
        values = {
            "contact_id": "CONT-001",
            "current_stage": "seguimiento_inicial",
            "days_since_last_contact": 3,
            "interaction_frequency_per_week": 2.0,
            "engagement_score": 70.0,
            "non_purchase_reason_texts": [],
            "contact_name": "Ana Torres",
        }
        values.update(overrides)
        return ContactSignal(**values)

    return _make
