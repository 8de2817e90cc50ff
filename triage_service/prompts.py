"""
Prompt templates for the text AI service
Note: All JSON example braces are doubled ({{ }}) to escape them for .format()
"""

from .input_sanitization import sanitize_input, parse_age

SYSTEM_PROMPT = (
    "You are a medical AI assistant focused on rural healthcare. "
    "Always prioritize patient safety and provide conservative recommendations."
)

SYMPTOM_ANALYSIS_PROMPT = """You are a medical assistant for rural healthcare workers with basic training. Provide practical guidance for common conditions.

PATIENT PROFILE:
Age: {age}
Gender: {gender}
Symptoms: {symptoms}

REQUIREMENTS:
1. List 2-3 most likely common conditions
2. Assign LOW/MEDIUM/HIGH urgency
3. Suggest basic treatments available in rural clinics
4. Decide if referral to hospital needed
5. Include red flag symptoms to watch for

CONSTRAINTS:
- Focus on common conditions in rural areas
- Only suggest treatments using basic supplies
- Be conservative - err on side of referral when uncertain
- Use simple language for non-specialists

Respond in valid JSON:
{{
  "urgency": "LOW|MEDIUM|HIGH",
  "confidence": 0.85,
  "conditions": [
    {{
      "name": "condition_name",
      "probability": 75,
      "description": "brief explanation",
      "symptoms_match": ["matched_symptom1", "matched_symptom2"]
    }}
  ],
  "treatments": [
    {{
      "category": "Immediate_Care",
      "actions": ["specific_action1", "specific_action2"],
      "supplies_needed": ["item1", "item2"]
    }}
  ],
  "referral": {{
    "needed": false,
    "urgency": "none|routine|immediate",
    "reason": "clear_explanation"
  }},
  "red_flags": ["symptom1", "symptom2"],
  "disclaimer": "This is AI assistance only. Not a replacement for medical judgment."
}}"""


def build_symptom_prompt(symptoms: str, age=None, gender=None) -> str:
    """Fill the analysis template with sanitized patient data."""
    parsed_age = parse_age(age)
    return SYMPTOM_ANALYSIS_PROMPT.format(
        age=parsed_age if parsed_age is not None else "Unknown",
        gender=sanitize_input(gender) or "Unknown",
        symptoms=sanitize_input(symptoms),
    )
