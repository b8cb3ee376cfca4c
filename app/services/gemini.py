from google import genai
from google.genai import types
from pydantic import ValidationError
from typing import Optional
import asyncio
import logging

from app.constants.languages import get_prompt_language
from app.exceptions.scan import AnalysisFailed
from app.schemas.scan import AnalysisRequest, AnalysisResult, RemoteAnalysis, SubjectKind

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = "You are an expert agricultural agronomist and soil scientist."

ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "condition": types.Schema(type=types.Type.STRING),
        "recommendations": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING)
        ),
        "nextActions": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING)
        ),
    },
    required=["condition", "recommendations", "nextActions"]
)

SUBJECT_TEXT = {
    SubjectKind.CROP: "crop plant",
    SubjectKind.SOIL: "soil sample",
}


class GeminiService:
    """
    Single-shot diagnosis call against Gemini.

    No retries happen here: any error, timeout, or response that does not match
    `RemoteAnalysis` exactly is raised as AnalysisFailed and the caller decides.
    """

    def __init__(self, api_key: Optional[str] = None, model: str = "gemini-2.5-flash",
                 timeout: Optional[float] = 60.0, client: Optional[genai.Client] = None):
        self.client = client or genai.Client(api_key=api_key)
        self.model = model
        self.timeout = timeout

    def build_prompt(self, request: AnalysisRequest) -> str:
        subject = SUBJECT_TEXT[request.subject_kind]
        lang_text = get_prompt_language(request.language)

        weather_line = ""
        if request.weather_context:
            weather_line = f"Current local weather: {request.weather_context}. Consider this in your analysis."

        return f"""
        Analyze this image of a {subject}.
        {weather_line}
        Provide a health assessment/condition, specific recommendations for improvement or treatment, and immediate next actions for the farmer.
        Output must be in {lang_text}.
        If the image does not look like a {subject}, state that in the condition field.
        """

    async def analyze(self, request: AnalysisRequest, timeout: Optional[float] = None) -> AnalysisResult:
        timeout = timeout if timeout is not None else self.timeout

        content_part = types.Part.from_bytes(data=request.image_bytes, mime_type=request.mime_type)
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
            system_instruction=SYSTEM_INSTRUCTION
        )

        logger.info(f"Analyzing {request.subject_kind.value} image with {self.model} (lang={request.language.value})")
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=[content_part, self.build_prompt(request)],
                    config=config
                ),
                timeout=timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"Gemini call timed out after {timeout}s")
            raise AnalysisFailed(f"Analysis timed out after {timeout}s") from e
        except Exception as e:
            logger.error(f"Gemini Analysis Error: {e}")
            raise AnalysisFailed(f"Analysis request failed: {e}") from e

        return self.parse_response(response.text, request.weather_context)

    @staticmethod
    def parse_response(text: Optional[str], weather_context: Optional[str] = None) -> AnalysisResult:
        if not text:
            logger.warning("Gemini returned an empty response")
            raise AnalysisFailed("No response from AI")

        try:
            remote = RemoteAnalysis.model_validate_json(text)
        except ValidationError as e:
            logger.warning(f"Gemini returned a malformed analysis: {e.error_count()} error(s)")
            raise AnalysisFailed("Malformed analysis response") from e

        return AnalysisResult(
            condition=remote.condition,
            recommendations=list(remote.recommendations),
            next_actions=list(remote.nextActions),
            weather_context=weather_context
        )
