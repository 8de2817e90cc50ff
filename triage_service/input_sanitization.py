"""
Input Sanitization Module for Triage Assist

Cleans and bounds-checks patient input before it reaches prompts or upstream
services.
"""

import re
from typing import Any


MIN_SYMPTOM_LENGTH = 10
MAX_SYMPTOM_LENGTH = 2000
MAX_AGE = 120
MAX_IMAGE_BYTES = 10 * 1024 * 1024

ALLOWED_IMAGE_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
})

_SCRIPT_BLOCK = re.compile(r'<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>', re.IGNORECASE)
_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


def sanitize_input(text: Any) -> str:
    """Sanitize free-text patient input.

    Removes script blocks, stray angle brackets and control characters,
    then trims surrounding whitespace. Never raises; anything that is not a
    non-empty string becomes "".
    """
    if not text or not isinstance(text, str):
        return ""

    text = _SCRIPT_BLOCK.sub('', text)
    text = re.sub(r'[<>]', '', text)
    text = _remove_control_chars(text)

    return text.strip()


def is_valid_symptom_text(text: Any) -> bool:
    """True iff text is a string whose trimmed length is within bounds."""
    if not isinstance(text, str):
        return False
    return MIN_SYMPTOM_LENGTH <= len(text.strip()) <= MAX_SYMPTOM_LENGTH


def parse_age(value: Any) -> int | None:
    """Parse an age the lenient way form inputs arrive: leading integer wins.

    "42", 42, "42 years" and 42.9 all give 42. Booleans, None and strings
    without a leading integer give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def is_valid_age(value: Any) -> bool:
    """True iff value parses to an integer in (0, 120]."""
    age = parse_age(value)
    return age is not None and 0 < age <= MAX_AGE


def is_acceptable_image(content_type: str | None, size: int) -> bool:
    """Validate an uploaded image by MIME type and byte size."""
    if not content_type:
        return False
    return content_type.lower() in ALLOWED_IMAGE_TYPES and 0 < size <= MAX_IMAGE_BYTES


def sanitize_filename(filename: str | None) -> str:
    """Sanitize an uploaded filename before forwarding it upstream.

    Args:
        filename: Original filename from the client

    Returns:
        Safe filename
    """
    if not filename:
        return "image"

    filename = filename.replace("\\", "/").split("/")[-1]
    filename = re.sub(r'[<>:"|?*]', '_', filename)
    filename = _remove_control_chars(filename)
    filename = re.sub(r'\.{2,}', '.', filename)
    filename = re.sub(r'^\.+', '', filename)

    if len(filename) > 255:
        name, dot, ext = filename.rpartition(".")
        if dot and len(ext) < 10:
            filename = name[:250] + "." + ext
        else:
            filename = filename[:255]

    return filename or "image"


def _remove_control_chars(text: str) -> str:
    """Remove control characters, keeping tabs and newlines."""
    return re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)
