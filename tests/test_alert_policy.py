"""
Tests for src/alert_policy.py: alert thresholds and message formats.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from alert_policy import ALERT_HIGH_RISK, ALERT_STAGE_STAGNATION, evaluate_alert


class TestAlertThresholds:
    def test_69_no_alert(self):
        assert evaluate_alert("Ana", 69) is None

    def test_70_stagnation(self):
        assert evaluate_alert("Ana", 70).alert_type == ALERT_STAGE_STAGNATION

    def test_79_stagnation(self):
        assert evaluate_alert("Ana", 79).alert_type == ALERT_STAGE_STAGNATION

    def test_80_high_risk(self):
        assert evaluate_alert("Ana", 80).alert_type == ALERT_HIGH_RISK

    def test_100_high_risk(self):
        assert evaluate_alert("Ana", 100).alert_type == "high_risk"

    def test_zero_no_alert(self):
        assert evaluate_alert("Ana", 0) is None


class TestAlertMessages:
    def test_high_risk_message(self):
        alert = evaluate_alert("Ana Torres", 85)
        assert alert.message == "Ana Torres has critical risk (85%) of abandoning"
        assert alert.risk_score == 85

    def test_stagnation_message(self):
        alert = evaluate_alert("Luis", 72)
        assert alert.message == "Luis shows signs of disinterest (72%)"

    def test_concerns_suffix(self):
        alert = evaluate_alert("Luis", 72, ["Price objection", "Location mismatch"])
        assert alert.message.endswith("Concerns: Price objection, Location mismatch")

    def test_empty_concerns_no_suffix(self):
        assert "Concerns" not in evaluate_alert("Luis", 90, []).message

    def test_blank_name_falls_back(self):
        assert evaluate_alert("  ", 90).message.startswith("Client has critical risk")


class TestAlertRecord:
    def test_to_record_shape(self):
        record = evaluate_alert("Ana", 81).to_record()
        assert record == {
            "alert_type": "high_risk",
            "alert_message": "Ana has critical risk (81%) of abandoning",
            "risk_score": 81,
        }
