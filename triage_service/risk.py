"""Risk scoring for symptom analyses."""
from .models import RiskAssessment, SymptomAnalysis

RISK_DESCRIPTIONS = {
    "LOW": "Low risk - Can be managed with basic care and routine monitoring",
    "MEDIUM": "Medium risk - Requires careful monitoring and possible follow-up within 24-48 hours",
    "HIGH": "High risk - Seek immediate medical attention or referral to hospital",
}

RISK_SCORES = {"LOW": 25, "MEDIUM": 55, "HIGH": 85}


def risk_level(urgency: str, red_flag_count: int, confidence: float) -> str:
    if urgency == "HIGH" or red_flag_count > 2:
        return "HIGH"
    if urgency == "MEDIUM" or red_flag_count > 0 or confidence < 0.6:
        return "MEDIUM"
    return "LOW"


def assess_risk(analysis: SymptomAnalysis) -> RiskAssessment:
    """Score an analysis from its urgency, red flags and confidence."""
    level = risk_level(analysis.urgency, len(analysis.red_flags), analysis.confidence)
    return RiskAssessment(
        level=level,
        score=RISK_SCORES[level],
        description=RISK_DESCRIPTIONS[level],
        factors=list(analysis.red_flags),
        confidence=analysis.confidence,
    )
