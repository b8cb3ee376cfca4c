import base64
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.schemas.scan import AnalysisResult, SubjectKind


class HistoryItem(BaseModel):
    """One saved diagnosis. Immutable once stored."""
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    subject_kind: SubjectKind
    thumbnail: str  # base64 JPEG, longest side <= 150px
    result: AnalysisResult

    @property
    def thumbnail_bytes(self) -> bytes:
        return base64.b64decode(self.thumbnail)
