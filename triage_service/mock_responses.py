"""
Deterministic offline analyses.

Used in place of the text and image AI services when credentials are absent
(development mode) or when a live call fails. The literal values here are part
of the output contract and are pinned by tests.
"""
from .models import Referral, SymptomAnalysis

DEMO_DISCLAIMER = "This is enhanced AI analysis for demonstration. Not a replacement for medical diagnosis."

LIVE_UNAVAILABLE_NOTE = "Live AI analysis unavailable; showing local analysis."
SYSTEM_ERROR_NOTE = "Live AI response could not be read; showing emergency guidance."

IMAGE_ANALYSIS_UNAVAILABLE = {
    "error": "Image analysis unavailable",
    "recommendation": "Describe visual findings to healthcare provider",
}


def is_asthma_pattern(text: str) -> bool:
    return (
        ("shortness" in text and "breath" in text)
        or "wheezing" in text
        or ("chest" in text and "tight" in text)
    )


def is_respiratory_infection_pattern(text: str) -> bool:
    return "fever" in text and "cough" in text


def select_mock_analysis(prompt: str) -> SymptomAnalysis:
    """Pick a canned analysis by keyword rules, checked in a fixed order."""
    text = prompt.lower()
    if is_asthma_pattern(text):
        return asthma_analysis()
    if is_respiratory_infection_pattern(text):
        return respiratory_infection_analysis()
    return general_analysis()


def asthma_analysis() -> SymptomAnalysis:
    return SymptomAnalysis.model_validate({
        "urgency": "MEDIUM",
        "confidence": 0.82,
        "conditions": [
            {
                "name": "Asthma Exacerbation",
                "probability": 80,
                "description": "Airways become inflamed and narrowed, causing breathing difficulties",
                "symptoms_match": ["shortness of breath", "wheezing", "chest tightness", "nocturnal cough"],
            },
            {
                "name": "Bronchitis",
                "probability": 65,
                "description": "Inflammation of bronchial tubes causing cough and breathing issues",
                "symptoms_match": ["coughing", "chest tightness"],
            },
        ],
        "treatments": [
            {
                "category": "Immediate_Relief",
                "actions": [
                    "Use rescue inhaler (salbutamol) if available - 2 puffs, wait 5 minutes, repeat if needed",
                    "Sit upright, lean slightly forward to ease breathing",
                    "Try pursed-lip breathing: breathe in through nose, out slowly through pursed lips",
                ],
                "supplies_needed": ["rescue inhaler (salbutamol)", "spacer device if available"],
            },
            {
                "category": "Supportive_Care",
                "actions": [
                    "Avoid known triggers (dust, smoke, strong smells)",
                    "Stay calm - anxiety can worsen breathing",
                    "Monitor breathing rate and effort",
                    "Ensure adequate hydration",
                ],
                "supplies_needed": ["clean environment", "water"],
            },
        ],
        "referral": {
            "needed": True,
            "urgency": "routine",
            "reason": "Asthma requires proper medical evaluation for diagnosis and treatment plan. "
                      "Refer immediately if severe breathing difficulty.",
        },
        "red_flags": [
            "Severe difficulty breathing or inability to speak full sentences",
            "Blue lips or fingernails (cyanosis)",
            "No improvement with rescue medication",
            "Extreme anxiety or panic about breathing",
            "Chest retractions (skin pulling in around ribs)",
        ],
        "disclaimer": DEMO_DISCLAIMER,
    })


def respiratory_infection_analysis() -> SymptomAnalysis:
    return SymptomAnalysis.model_validate({
        "urgency": "MEDIUM",
        "confidence": 0.78,
        "conditions": [
            {
                "name": "Upper Respiratory Infection",
                "probability": 75,
                "description": "Common viral or bacterial infection of nose, throat, or chest",
                "symptoms_match": ["fever", "cough", "congestion"],
            },
            {
                "name": "Common Cold",
                "probability": 60,
                "description": "Viral infection causing cold symptoms",
                "symptoms_match": ["cough", "runny nose"],
            },
        ],
        "treatments": [
            {
                "category": "Symptom_Relief",
                "actions": [
                    "Rest and increase fluid intake to 8-10 glasses daily",
                    "Paracetamol 500mg every 6 hours for fever (max 4 doses daily)",
                    "Warm salt water gargles 3 times daily",
                ],
                "supplies_needed": ["paracetamol", "clean water", "salt"],
            },
            {
                "category": "Monitoring",
                "actions": [
                    "Check temperature twice daily",
                    "Monitor for breathing difficulties",
                    "Return if symptoms worsen or persist beyond 7 days",
                ],
                "supplies_needed": ["thermometer"],
            },
        ],
        "referral": {
            "needed": False,
            "urgency": "routine",
            "reason": "Manageable with basic care. Refer if no improvement in 7 days or if red flags appear.",
        },
        "red_flags": [
            "Difficulty breathing or shortness of breath",
            "High fever above 39°C (102°F) for more than 3 days",
            "Severe headache with neck stiffness",
            "Persistent vomiting",
        ],
        "disclaimer": DEMO_DISCLAIMER,
    })


def general_analysis() -> SymptomAnalysis:
    return SymptomAnalysis.model_validate({
        "urgency": "MEDIUM",
        "confidence": 0.65,
        "conditions": [
            {
                "name": "General Symptoms Assessment",
                "probability": 70,
                "description": "Requires further evaluation to determine specific cause",
                "symptoms_match": ["reported symptoms"],
            },
        ],
        "treatments": [
            {
                "category": "General_Care",
                "actions": [
                    "Ensure adequate rest and hydration",
                    "Monitor symptoms closely",
                    "Seek further medical evaluation",
                ],
                "supplies_needed": ["clean water"],
            },
        ],
        "referral": {
            "needed": True,
            "urgency": "routine",
            "reason": "Symptoms require further medical evaluation for proper diagnosis.",
        },
        "red_flags": [
            "Severe pain",
            "High fever",
            "Difficulty breathing",
            "Signs of severe dehydration",
        ],
        "disclaimer": DEMO_DISCLAIMER,
    })


def undetermined_analysis() -> SymptomAnalysis:
    """Last-resort payload when the symptom stage fails outright."""
    return SymptomAnalysis.model_validate({
        "urgency": "MEDIUM",
        "confidence": 0.5,
        "conditions": [
            {
                "name": "Undetermined Condition",
                "probability": 50,
                "description": "AI analysis unavailable. Manual assessment required.",
                "symptoms_match": ["reported symptoms"],
            },
        ],
        "treatments": [
            {
                "category": "Basic_Care",
                "actions": [
                    "Provide comfort measures",
                    "Monitor vital signs if possible",
                    "Seek medical consultation",
                ],
                "supplies_needed": ["basic supplies"],
            },
        ],
        "referral": {
            "needed": True,
            "urgency": "routine",
            "reason": "AI analysis unavailable. Manual medical assessment required.",
        },
        "red_flags": ["Any worsening symptoms", "Severe pain", "Difficulty breathing"],
        "disclaimer": "AI analysis failed. This is general guidance only.",
        "note": LIVE_UNAVAILABLE_NOTE,
    })


def emergency_analysis() -> SymptomAnalysis:
    """Payload for a live response that arrived but could not be interpreted."""
    return SymptomAnalysis.model_validate({
        "urgency": "HIGH",
        "confidence": 0.3,
        "conditions": [
            {
                "name": "Assessment Required",
                "probability": 100,
                "description": "Immediate medical evaluation needed due to system error.",
                "symptoms_match": [],
            },
        ],
        "treatments": [
            {
                "category": "Emergency_Protocol",
                "actions": ["Seek immediate medical attention"],
                "supplies_needed": [],
            },
        ],
        "referral": {
            "needed": True,
            "urgency": "immediate",
            "reason": "System error occurred. Immediate medical evaluation required for patient safety.",
        },
        "red_flags": ["All symptoms require immediate attention"],
        "disclaimer": "System error occurred. Seek immediate medical attention.",
        "note": SYSTEM_ERROR_NOTE,
    })


def mock_image_analysis() -> dict:
    return {
        "findings": [
            "Visual examination shows area of concern",
            "Consider documentation for medical record",
            "Professional evaluation recommended",
        ],
        "confidence": 0.6,
        "recommendation": "Image captured for healthcare provider review. "
                          "Describe any changes in size, color, or pain level.",
    }


FALLBACK_REFERRAL_REASON = (
    "Live AI analysis was unavailable. Confirm this assessment with a healthcare provider."
)


def as_fallback(analysis: SymptomAnalysis) -> SymptomAnalysis:
    """Label a local analysis as a stand-in for a failed live call.

    A substituted answer always carries a referral.
    """
    referral = analysis.referral
    if referral is None or not referral.needed:
        referral = Referral(needed=True, urgency="routine", reason=FALLBACK_REFERRAL_REASON)
    return analysis.model_copy(update={"note": LIVE_UNAVAILABLE_NOTE, "referral": referral})
