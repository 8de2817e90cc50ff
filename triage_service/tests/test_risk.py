"""Tests for risk scoring."""
import unittest

from triage_service.mock_responses import asthma_analysis, emergency_analysis
from triage_service.models import SymptomAnalysis
from triage_service.risk import RISK_DESCRIPTIONS, assess_risk, risk_level


def _analysis(urgency="LOW", red_flags=(), confidence=0.9):
    return SymptomAnalysis(
        urgency=urgency,
        confidence=confidence,
        conditions=[],
        red_flags=list(red_flags),
    )


class TestRiskLevel(unittest.TestCase):

    def test_high_urgency(self):
        self.assertEqual(risk_level("HIGH", 0, 0.9), "HIGH")

    def test_many_red_flags(self):
        self.assertEqual(risk_level("LOW", 3, 0.9), "HIGH")

    def test_two_red_flags_is_medium(self):
        self.assertEqual(risk_level("LOW", 2, 0.9), "MEDIUM")

    def test_medium_urgency(self):
        self.assertEqual(risk_level("MEDIUM", 0, 0.9), "MEDIUM")

    def test_low_confidence(self):
        self.assertEqual(risk_level("LOW", 0, 0.59), "MEDIUM")
        self.assertEqual(risk_level("LOW", 0, 0.6), "LOW")

    def test_low(self):
        self.assertEqual(risk_level("LOW", 0, 0.9), "LOW")


class TestAssessRisk(unittest.TestCase):

    def test_low_score(self):
        risk = assess_risk(_analysis())
        self.assertEqual(risk.level, "LOW")
        self.assertEqual(risk.score, 25)
        self.assertEqual(risk.description, RISK_DESCRIPTIONS["LOW"])
        self.assertEqual(risk.factors, [])

    def test_medium_score(self):
        risk = assess_risk(_analysis(red_flags=["Persistent vomiting"]))
        self.assertEqual(risk.level, "MEDIUM")
        self.assertEqual(risk.score, 55)
        self.assertEqual(risk.factors, ["Persistent vomiting"])

    def test_high_score_from_flags(self):
        risk = assess_risk(_analysis(red_flags=["a", "b", "c"]))
        self.assertEqual(risk.level, "HIGH")
        self.assertEqual(risk.score, 85)

    def test_emergency_payload_is_high(self):
        risk = assess_risk(emergency_analysis())
        self.assertEqual(risk.level, "HIGH")
        self.assertEqual(risk.confidence, 0.3)

    def test_asthma_mock_is_high(self):
        # Five red flags outweigh MEDIUM urgency
        self.assertEqual(assess_risk(asthma_analysis()).score, 85)


if __name__ == "__main__":
    unittest.main()
