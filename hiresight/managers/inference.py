from typing import Any, Dict, List, Optional

import openai
import structlog
from pydantic import ValidationError

from ..application.interview_session import AnalysisResult, Question, QuestionSet
from ..core.config import Settings, get_settings
from ..core.exceptions import AnalysisParseError, InferenceError
from ..core.interfaces import InferenceClient
from . import prompts

logger = structlog.get_logger(__name__)

FRAME_MIME_TYPE = "image/jpeg"


def strip_data_url(frame: str) -> str:
    """Return the base64 payload of a data URL; bare payloads pass through."""
    if frame.startswith("data:") and "," in frame:
        return frame.split(",", 1)[1]
    return frame


class OpenAIInferenceClient(InferenceClient):
    """
    Schema-constrained calls against the OpenAI Chat Completions API.

    The service is asked to conform to a declared JSON schema, but every
    response is still validated locally before it is trusted.
    """
    def __init__(self, settings: Optional[Settings] = None, client: Optional[Any] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.settings.OPENAI_API_KEY:
                raise InferenceError("OPENAI_API_KEY is not configured.")
            self._client = openai.AsyncOpenAI(
                api_key=self.settings.OPENAI_API_KEY,
                timeout=self.settings.REQUEST_TIMEOUT,
                max_retries=0,
            )
        return self._client

    async def generate_questions(self, resume: str, job_description: str) -> List[Question]:
        prompt = prompts.question_prompt(resume, job_description, self.settings.QUESTION_COUNT)
        content = await self._complete(
            [{"role": "user", "content": prompt}],
            schema_name="interview_questions",
            schema=prompts.QUESTIONS_SCHEMA,
            temperature=0.7,
        )

        try:
            question_set = QuestionSet.model_validate_json(content or "")
        except ValidationError as e:
            logger.warning("questions_parse_failed", errors=e.error_count())
            return []

        logger.info("questions_generated", count=len(question_set.questions))
        return question_set.questions

    async def analyze_response(self, question: Question, frames: List[str]) -> AnalysisResult:
        parts: List[Dict[str, Any]] = [{"type": "text", "text": prompts.analysis_prompt(question)}]
        parts.extend(
            {
                "type": "image_url",
                "image_url": {"url": f"data:{FRAME_MIME_TYPE};base64,{strip_data_url(frame)}"},
            }
            for frame in frames
        )

        content = await self._complete(
            [{"role": "user", "content": parts}],
            schema_name="interview_analysis",
            schema=prompts.ANALYSIS_SCHEMA,
            temperature=0.3,
        )

        try:
            analysis = AnalysisResult.model_validate_json(content or "")
        except ValidationError as e:
            logger.error("analysis_parse_failed", question_id=question.id, errors=e.error_count())
            raise AnalysisParseError() from e

        logger.info("analysis_completed",
                    question_id=question.id,
                    frames=len(frames),
                    overall_score=analysis.overall_score)
        return analysis

    async def _complete(self,
                        messages: List[Dict[str, Any]],
                        schema_name: str,
                        schema: Dict[str, Any],
                        temperature: float) -> Optional[str]:
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.AI_MODEL,
                messages=messages,
                temperature=temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": schema_name, "schema": schema, "strict": True},
                },
            )
        except openai.OpenAIError as e:
            logger.error("inference_request_failed", schema=schema_name, error=str(e))
            raise InferenceError() from e

        if not response.choices:
            return None
        return response.choices[0].message.content
