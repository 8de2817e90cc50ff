"""
JSON extraction and validation for text AI output.

Handles: markdown code blocks, surrounding prose, literal newlines in
strings and trailing commas. Anything beyond that is a MalformedResponse.
"""
import json
import re
import logging

from pydantic import ValidationError

from .errors import MalformedResponse
from .models import SymptomAnalysis

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("urgency", "conditions")


def _fix_newlines_in_json_strings(text: str) -> str:
    """Replace literal newlines inside JSON string values with spaces.

    Walks the text character-by-character, tracking whether we're inside
    a quoted string. Any \\n found inside a string is replaced with a space.
    """
    result = []
    in_string = False
    i = 0
    while i < len(text):
        c = text[i]
        if c == '\\' and in_string and i + 1 < len(text):
            # Escaped character inside string - keep both chars as-is
            result.append(c)
            result.append(text[i + 1])
            i += 2
            continue
        if c == '"':
            in_string = not in_string
        if c == '\n' and in_string:
            result.append(' ')
        else:
            result.append(c)
        i += 1
    return ''.join(result)


def extract_json(text: str) -> dict:
    """Extract the JSON object from a model response.

    Raises:
        MalformedResponse: if no parseable JSON object is present
    """
    if not isinstance(text, str) or not text.strip():
        raise MalformedResponse("Model response was empty")

    # Try to find JSON in code blocks first
    json_match = re.search(r'```(?:json)?\s*([\s\S]*?)```', text)
    if json_match:
        text = json_match.group(1)

    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end < start:
        logger.error(f"No JSON object found in response: {text[:200]}...")
        raise MalformedResponse("Model response contained no JSON object")
    text = _fix_newlines_in_json_strings(text[start:end + 1])

    # Attempt 1: direct parse
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parse error (attempt 1 - direct): {e}")
        # Attempt 2: drop trailing commas before closing brackets
        fixed = re.sub(r',\s*([}\]])', r'\1', text)
        try:
            data = json.loads(fixed)
        except json.JSONDecodeError as e2:
            logger.error(f"JSON parse error (attempt 2 - comma fix): {e2}")
            raise MalformedResponse(f"Failed to parse model response as JSON: {e2}") from e2

    if not isinstance(data, dict):
        raise MalformedResponse("Model response JSON is not an object")
    return data


def parse_symptom_analysis(text: str) -> SymptomAnalysis:
    """Interpret a model reply as a SymptomAnalysis.

    Raises:
        MalformedResponse: if the JSON is unreadable, lacks urgency or
            conditions, or does not fit the schema
    """
    data = extract_json(text)

    missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
    if missing:
        raise MalformedResponse(f"Invalid AI response format: missing {', '.join(missing)}")

    # The note field is ours; never accept it from upstream
    data.pop("note", None)

    try:
        return SymptomAnalysis.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f"AI response failed schema validation: {e.error_count()} error(s)") from e
