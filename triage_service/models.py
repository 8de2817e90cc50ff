"""
Pydantic request/response models for the Triage Assist service.
"""
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


Urgency = Literal["LOW", "MEDIUM", "HIGH"]
ReferralUrgency = Literal["none", "routine", "immediate"]


# --- Patient input ---

class ImageUpload(BaseModel):
    """An uploaded image held in memory."""
    model_config = ConfigDict(frozen=True)

    filename: str = "image"
    content_type: str
    data: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class PatientData(BaseModel):
    """One analysis request. Read-only once built."""
    model_config = ConfigDict(frozen=True)

    symptoms: str
    age: Optional[Any] = None
    gender: Optional[str] = None
    images: tuple[ImageUpload, ...] = ()
    language: str = "en"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("gender")
    @classmethod
    def blank_gender_is_unknown(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


# --- Symptom analysis (text AI output contract) ---

class Condition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    probability: int = Field(ge=0, le=100)
    description: str = ""
    symptoms_match: list[str] = []

    @field_validator("probability", mode="before")
    @classmethod
    def coerce_percent(cls, v: Any) -> Any:
        # Models sometimes answer "75%" or 75.0
        if isinstance(v, str):
            v = v.strip().rstrip("%").strip()
            try:
                v = float(v)
            except ValueError:
                return v
        if isinstance(v, float):
            return round(v)
        return v


class Treatment(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    actions: list[str] = []
    supplies_needed: list[str] = []


class Referral(BaseModel):
    model_config = ConfigDict(frozen=True)

    needed: bool
    urgency: ReferralUrgency = "routine"
    reason: str = ""

    @field_validator("urgency", mode="before")
    @classmethod
    def normalize_urgency(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class SymptomAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    urgency: Urgency
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    conditions: list[Condition]
    treatments: list[Treatment] = []
    referral: Optional[Referral] = None
    red_flags: list[str] = []
    disclaimer: str = ""
    note: Optional[str] = None  # Set when a substitute replaced live analysis

    @field_validator("urgency", mode="before")
    @classmethod
    def normalize_urgency(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("confidence", mode="before")
    @classmethod
    def percent_confidence(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and 1 < v <= 100:
            return v / 100
        return v


# --- Final result ---

class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: Urgency
    score: int
    description: str
    factors: list[str]
    confidence: float


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    timestamp: datetime
    symptoms: SymptomAnalysis
    images: Optional[list[dict]] = None
    risk_assessment: RiskAssessment
    conditions: list[Condition]
    treatments: list[Treatment]
    referral: Referral
    degraded: bool = False  # True when any part came from a fallback


# --- HTTP bodies ---

class TranslateRequest(BaseModel):
    text: str
    source: str = "en"
    target: str

    @field_validator("text")
    @classmethod
    def text_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Text to translate cannot be empty")
        return v.strip()


class TranslateResponse(BaseModel):
    translated_text: str
    source: str
    target: str
    translated: bool
