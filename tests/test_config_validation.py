"""
Tests to validate the YAML scoring configuration parses correctly
and matches the constants the scoring modules actually use.
"""

import os
import sys

import pytest
import yaml

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CONFIG_DIR = os.path.join(PROJECT_ROOT, "config")

sys.path.insert(0, os.path.join(PROJECT_ROOT, "src"))
from alert_policy import HIGH_RISK_ALERT_THRESHOLD, STAGNATION_ALERT_THRESHOLD
from base_risk import COMPONENT_WEIGHTS
from non_purchase import NON_PURCHASE_CATEGORIES
from risk_scorer import HIGH_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD, RISK_LEVELS
from stage_catalog import LOST_STAGE_ID, STAGE_CATALOG


def _load_yaml(path: str) -> dict:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


class TestRiskConfig:
    """Tests for config/risk_config.yaml."""

    @pytest.fixture
    def config(self):
        return _load_yaml(os.path.join(CONFIG_DIR, "risk_config.yaml"))

    def test_parseable(self, config):
        assert config is not None
        assert isinstance(config, dict)

    def test_risk_levels_match(self, config):
        levels = config["risk_levels"]
        assert levels["alto_threshold"] == HIGH_RISK_THRESHOLD
        assert levels["medio_threshold"] == MEDIUM_RISK_THRESHOLD
        assert tuple(levels["labels"]) == RISK_LEVELS

    def test_alert_thresholds_match(self, config):
        alerts = config["alerts"]
        assert alerts["high_risk_threshold"] == HIGH_RISK_ALERT_THRESHOLD
        assert alerts["stage_stagnation_threshold"] == STAGNATION_ALERT_THRESHOLD

    def test_alert_floor_not_below_high_level(self, config):
        """Every alerted score must already be Alto."""
        assert config["alerts"]["stage_stagnation_threshold"] >= config["risk_levels"]["alto_threshold"]

    def test_non_purchase_categories_match(self, config):
        configured = config["non_purchase_categories"]
        assert [c["key"] for c in configured] == [c.key for c in NON_PURCHASE_CATEGORIES]
        for entry, category in zip(configured, NON_PURCHASE_CATEGORIES):
            assert entry["multiplier"] == pytest.approx(category.multiplier)
            assert tuple(entry["keywords"]) == category.keywords

    def test_base_risk_weights_match(self, config):
        assert config["base_risk_weights"] == pytest.approx(COMPONENT_WEIGHTS)

    def test_lost_stage_in_catalog(self, config):
        assert config["lost_stage"] == LOST_STAGE_ID
        assert config["lost_stage"] in STAGE_CATALOG
