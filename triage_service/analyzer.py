"""
Patient analysis pipeline.

Validates patient data, runs one symptom analysis and the image analyses
through the gateway, scores risk and keeps a bounded history of results.
"""
import asyncio
import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Optional

from .errors import InvalidInput
from .gateway import AIGateway, ResponseSource
from .input_sanitization import (
    MAX_SYMPTOM_LENGTH,
    MIN_SYMPTOM_LENGTH,
    is_acceptable_image,
    is_valid_age,
    is_valid_symptom_text,
    sanitize_input,
)
from .mock_responses import IMAGE_ANALYSIS_UNAVAILABLE, undetermined_analysis
from .models import AnalysisResult, PatientData, Referral, SymptomAnalysis
from .prompts import build_symptom_prompt
from .risk import assess_risk
from .structured_logging import set_analysis_id

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100
MAX_IMAGES = 5

DEFAULT_REFERRAL = Referral(
    needed=True,
    urgency="routine",
    reason="Recommend follow-up evaluation for proper diagnosis and treatment plan.",
)


def validate_patient_data(data: PatientData) -> None:
    """Reject patient data before any upstream call.

    Raises:
        InvalidInput: listing every problem found
    """
    reasons = []
    if not is_valid_symptom_text(data.symptoms):
        reasons.append(
            f"Symptom description must be between {MIN_SYMPTOM_LENGTH} "
            f"and {MAX_SYMPTOM_LENGTH} characters"
        )
    elif len(sanitize_input(data.symptoms)) < MIN_SYMPTOM_LENGTH:
        reasons.append("Symptom description is too short once markup is removed")
    if data.age not in (None, "") and not is_valid_age(data.age):
        reasons.append("Age must be a whole number between 1 and 120")
    if len(data.images) > MAX_IMAGES:
        reasons.append(f"At most {MAX_IMAGES} images can be analyzed at once")
    if reasons:
        raise InvalidInput(reasons)


class MedicalAnalyzer:
    """Runs patient analyses and keeps recent results."""

    def __init__(self, gateway: AIGateway, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.gateway = gateway
        self._history: deque[AnalysisResult] = deque(maxlen=history_limit)
        self._history_lock = asyncio.Lock()

    @property
    def history(self) -> tuple[AnalysisResult, ...]:
        return tuple(self._history)

    async def clear_history(self):
        async with self._history_lock:
            self._history.clear()

    async def analyze_patient(self, data: PatientData) -> AnalysisResult:
        """Analyze one patient.

        Raises:
            InvalidInput: if the patient data fails validation. Once the data
                is valid, this always returns a result.
        """
        validate_patient_data(data)

        session_id = uuid.uuid4().hex[:16]
        set_analysis_id(session_id)
        try:
            symptoms, degraded = await self._analyze_symptoms(data)
            images, images_degraded = await self._analyze_images(data)

            result = AnalysisResult(
                session_id=session_id,
                timestamp=datetime.now(timezone.utc),
                symptoms=symptoms,
                images=images,
                risk_assessment=assess_risk(symptoms),
                conditions=list(symptoms.conditions),
                treatments=list(symptoms.treatments),
                referral=symptoms.referral or DEFAULT_REFERRAL,
                degraded=degraded or images_degraded,
            )

            async with self._history_lock:
                self._history.append(result)

            logger.info(
                f"Analysis {session_id} complete: risk={result.risk_assessment.level}, "
                f"conditions={len(result.conditions)}, images={len(images or [])}, "
                f"degraded={result.degraded}"
            )
            return result
        finally:
            set_analysis_id(None)

    async def _analyze_symptoms(self, data: PatientData) -> tuple[SymptomAnalysis, bool]:
        prompt = build_symptom_prompt(data.symptoms, age=data.age, gender=data.gender)
        try:
            response = await self.gateway.analyze_text(prompt)
        except Exception:
            logger.exception("Symptom analysis failed unexpectedly, using undetermined result")
            return undetermined_analysis(), True
        return response.value, response.degraded

    async def _analyze_images(self, data: PatientData) -> tuple[Optional[list[dict]], bool]:
        """Analyze images one at a time, skipping unacceptable ones."""
        analyses = []
        degraded = False
        for upload in data.images:
            if not is_acceptable_image(upload.content_type, upload.size):
                logger.warning(f"Skipping image {upload.filename!r}: unsupported type or size")
                continue
            try:
                response = await self.gateway.analyze_image(upload)
            except InvalidInput as e:
                logger.warning(f"Skipping image {upload.filename!r}: {e}")
                continue
            except Exception:
                logger.exception(f"Image analysis failed unexpectedly for {upload.filename!r}")
                analyses.append(dict(IMAGE_ANALYSIS_UNAVAILABLE))
                degraded = True
                continue
            analyses.append(response.value)
            degraded = degraded or response.source is ResponseSource.FALLBACK

        return (analyses or None), degraded
