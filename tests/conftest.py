# tests/conftest.py
import asyncio
import os
from typing import List, Optional

import numpy as np
import pytest
from fastapi.testclient import TestClient

from hiresight.application.interview_session import (
    AnalysisResult,
    DimensionScore,
    Question,
    QuestionCategory,
)
from hiresight.core.exceptions import CaptureDeniedError
from hiresight.core.interfaces import CaptureConstraints, CaptureDevice, InferenceClient, MediaDevices


def make_question(qid: str, category: QuestionCategory = QuestionCategory.BEHAVIORAL) -> Question:
    return Question(id=qid, text=f"Question {qid}?", category=category)


def make_analysis(score: float = 4.0) -> AnalysisResult:
    return AnalysisResult(
        dimensions=[DimensionScore(label="Structure", score=score, feedback="Clear STAR flow.")],
        body_language_notes="Steady eye contact.",
        key_strengths=["Concise"],
        areas_of_improvement=["Quantify results"],
        red_flags=[],
        overall_feedback="Solid answer.",
        overall_score=score,
    )


class FakeCaptureDevice(CaptureDevice):
    def __init__(self):
        self.release_count = 0
        self.reads = 0

    def read_frame(self) -> Optional[np.ndarray]:
        self.reads += 1
        return np.full((48, 64, 3), self.reads % 255, dtype=np.uint8)

    def release(self) -> None:
        self.release_count += 1


class FakeMediaDevices(MediaDevices):
    def __init__(self, deny: bool = False):
        self.deny = deny
        self.devices: List[FakeCaptureDevice] = []

    @property
    def open_handles(self) -> int:
        return sum(1 for d in self.devices if d.release_count == 0)

    def acquire(self, constraints: CaptureConstraints) -> CaptureDevice:
        if self.deny:
            raise CaptureDeniedError()
        device = FakeCaptureDevice()
        self.devices.append(device)
        return device


class FakeInference(InferenceClient):
    """Records calls; optionally blocks analysis until `release` is set."""

    def __init__(self, questions=None, analysis=None):
        self.questions = questions if questions is not None else [
            make_question("q1"),
            make_question("q2", QuestionCategory.TECHNICAL),
            make_question("q3", QuestionCategory.SITUATIONAL),
            make_question("q4", QuestionCategory.INTRO),
        ]
        self.analysis = analysis if analysis is not None else make_analysis()
        self.generation_error: Optional[Exception] = None
        self.analysis_error: Optional[Exception] = None
        self.generate_calls = []
        self.analyze_calls = []
        self.release: Optional[asyncio.Event] = None

    async def generate_questions(self, resume, job_description):
        self.generate_calls.append((resume, job_description))
        if self.release is not None:
            await self.release.wait()
        if self.generation_error is not None:
            raise self.generation_error
        return list(self.questions)

    async def analyze_response(self, question, frames):
        self.analyze_calls.append((question, list(frames)))
        if self.release is not None:
            await self.release.wait()
        if self.analysis_error is not None:
            raise self.analysis_error
        return self.analysis


@pytest.fixture
def test_env_vars():
    """Set up test environment variables."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["DEBUG"] = "true"
    os.environ["APP_NAME"] = "HireSight Test"
    yield
    # Clean up
    os.environ.pop("ENVIRONMENT", None)
    os.environ.pop("DEBUG", None)
    os.environ.pop("APP_NAME", None)


@pytest.fixture
def settings(test_env_vars):
    """Get test settings."""
    from hiresight.core.config import get_settings
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def fake_inference():
    return FakeInference()


@pytest.fixture
def app(settings, fake_inference):
    """Create test app instance."""
    from hiresight.interface.api.main import create_app
    test_settings = settings.model_copy(update={"FRAME_CAPTURE_INTERVAL": 0.05})
    return create_app(test_settings, inference=fake_inference)


@pytest.fixture
def client(app):
    """Create test client."""
    with TestClient(app) as client:
        yield client
