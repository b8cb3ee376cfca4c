from pydantic import BaseModel, ConfigDict, Field, StrictStr
from typing import Optional, List
from enum import Enum

from app.constants.languages import Language, DEFAULT_LANGUAGE


class SubjectKind(str, Enum):
    CROP = "CROP"
    SOIL = "SOIL"


class ScanState(str, Enum):
    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    CAPTURED = "CAPTURED"
    ANALYZING = "ANALYZING"
    RESULT_SUCCESS = "RESULT_SUCCESS"
    RESULT_FAILURE = "RESULT_FAILURE"
    SAVED = "SAVED"


# --- Gemini JSON Structure ---

class RemoteAnalysis(BaseModel):
    """Exact shape the model must return. Anything else is a protocol violation."""
    model_config = ConfigDict(extra="forbid", strict=True, str_strip_whitespace=True)

    condition: StrictStr = Field(min_length=1)
    recommendations: List[StrictStr] = Field(min_length=1)
    nextActions: List[StrictStr] = Field(min_length=1)


class AnalysisRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_bytes: bytes = Field(min_length=1, repr=False)
    mime_type: str = "image/jpeg"
    subject_kind: SubjectKind
    language: Language = DEFAULT_LANGUAGE
    weather_context: Optional[str] = None


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: str
    recommendations: List[str]
    next_actions: List[str]
    weather_context: Optional[str] = None


class WeatherData(BaseModel):
    temperature: float
    condition_code: int
    description: str

    def as_context(self) -> str:
        return f"{self.temperature:g}°C, {self.description}"


# --- API ---

class CapturedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes = Field(min_length=1, repr=False)
    mime_type: str = "image/jpeg"
    source: str = "file"


class Notice(BaseModel):
    code: int
    name: str
    message: str


class StartSessionRequest(BaseModel):
    subject_kind: SubjectKind
    language: Language = DEFAULT_LANGUAGE
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class SessionView(BaseModel):
    state: ScanState
    subject_kind: SubjectKind
    language: Language
    has_image: bool = False
    weather: Optional[WeatherData] = None
    result: Optional[AnalysisResult] = None
    saved_item_id: Optional[str] = None
    notice: Optional[Notice] = None
