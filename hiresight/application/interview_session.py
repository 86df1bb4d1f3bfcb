from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict

from pydantic import BaseModel, ConfigDict, Field, model_validator


class QuestionCategory(str, Enum):
    BEHAVIORAL = "behavioral"
    TECHNICAL = "technical"
    SITUATIONAL = "situational"
    INTRO = "intro"


class Question(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True)

    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    category: QuestionCategory

    @property
    def is_technical(self) -> bool:
        return self.category == QuestionCategory.TECHNICAL

    @property
    def answer_tip(self) -> str:
        """Approach suggested to the candidate while recording."""
        if self.is_technical:
            return "Thinking Out Loud approach"
        return "STAR+R method"


class QuestionSet(BaseModel):
    model_config = ConfigDict(strict=True)

    questions: List[Question]

    @model_validator(mode="after")
    def check_unique_ids(self) -> "QuestionSet":
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique within a session")
        return self


class DimensionScore(BaseModel):
    model_config = ConfigDict(strict=True)

    label: str
    score: float = Field(ge=1, le=5)
    feedback: str


class AnalysisResult(BaseModel):
    model_config = ConfigDict(strict=True)

    dimensions: List[DimensionScore]
    body_language_notes: str
    key_strengths: List[str]
    areas_of_improvement: List[str]
    red_flags: List[str] = Field(default_factory=list)
    overall_feedback: str
    overall_score: float = Field(ge=1, le=5)


@dataclass
class InterviewSession:
    resume_text: str = ""
    job_description_text: str = ""
    questions: List[Question] = field(default_factory=list)
    current_index: int = 0
    analyses: Dict[str, AnalysisResult] = field(default_factory=dict)

    @property
    def current_question(self) -> Question | None:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def current_analysis(self) -> AnalysisResult | None:
        question = self.current_question
        if question is None:
            return None
        return self.analyses.get(question.id)

    @property
    def is_last_question(self) -> bool:
        return self.current_index + 1 >= len(self.questions)
