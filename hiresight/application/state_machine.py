import asyncio
from enum import Enum
from typing import Any, Awaitable, Dict, Optional, TypeVar

import structlog

from ..core.exceptions import (
    AnalysisFailedError,
    CaptureDeniedError,
    HireSightError,
    InferenceError,
    InputValidationError,
    InvalidTransitionError,
    NoFramesCapturedError,
    QuestionGenerationError,
    SessionBusyError,
    StaleResponseError,
)
from ..core.interfaces import InferenceClient
from ..processors.video import FrameSampler
from .interview_session import InterviewSession

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class AppState(str, Enum):
    SETUP = "SETUP"
    PREPARING = "PREPARING"
    INTERVIEWING = "INTERVIEWING"
    ANALYZING = "ANALYZING"
    RESULTS = "RESULTS"


class RequestStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


GENERATION = "generation"
ANALYSIS = "analysis"


class InterviewStateMachine:
    """
    Sequences one practice run: Setup -> Preparing -> Interviewing -> Analyzing -> Results.

    The machine owns the session record and the frame sampler. The camera is
    held only while in the interviewing phase. At most one inference request is
    in flight; a response that arrives after a reset is discarded.
    """
    def __init__(self,
                 inference: InferenceClient,
                 sampler: FrameSampler,
                 session_id: Optional[str] = None):
        self.inference = inference
        self.sampler = sampler
        self.session_id = session_id
        self.log = logger.bind(session_id=session_id)

        self.state = AppState.SETUP
        self.session = InterviewSession()
        self.error: Optional[str] = None
        self.requests: Dict[str, RequestStatus] = {
            GENERATION: RequestStatus.IDLE,
            ANALYSIS: RequestStatus.IDLE,
        }

        self._epoch = 0
        self._pending: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return any(status == RequestStatus.IN_FLIGHT for status in self.requests.values())

    @property
    def camera_ready(self) -> bool:
        return self.sampler.is_started

    # ---- setup ----

    def update_inputs(self, resume: str, job_description: str) -> None:
        self._require(AppState.SETUP)
        self.session.resume_text = resume
        self.session.job_description_text = job_description

    async def prepare(self) -> None:
        self._require(AppState.SETUP)
        self._require_idle()

        resume = self.session.resume_text
        job_description = self.session.job_description_text
        if not resume.strip() or not job_description.strip():
            raise self._report(InputValidationError())

        self.error = None
        try:
            questions = await self._run(
                GENERATION, self.inference.generate_questions(resume, job_description)
            )
        except InferenceError as e:
            raise self._report(QuestionGenerationError()) from e

        if not questions:
            self.requests[GENERATION] = RequestStatus.FAILED
            raise self._report(QuestionGenerationError())

        self.session.questions = list(questions)
        self.session.current_index = 0
        self.session.analyses = {}
        self._transition(AppState.PREPARING)

    def start(self) -> None:
        self._require(AppState.PREPARING)
        self._enter_interviewing()

    # ---- interviewing ----

    async def begin_recording(self) -> None:
        self._require(AppState.INTERVIEWING)
        self._require_idle()

        if not self.sampler.is_started:
            try:
                self.sampler.start()
            except CaptureDeniedError as e:
                raise self._report(e)

        self.error = None
        self.sampler.begin_recording()
        self.log.info("answer_recording", question_index=self.session.current_index)

    async def finish_recording(self) -> None:
        self._require(AppState.INTERVIEWING)
        self._require_idle()

        frames = await self.sampler.end_recording()
        if not frames:
            raise self._report(NoFramesCapturedError())

        question = self.session.current_question
        await self._leave_interviewing()
        self._transition(AppState.ANALYZING)
        self.error = None

        try:
            analysis = await self._run(
                ANALYSIS, self.inference.analyze_response(question, frames)
            )
        except InferenceError as e:
            self._enter_interviewing()
            raise self._report(AnalysisFailedError()) from e
        except asyncio.CancelledError:
            if self.state == AppState.ANALYZING:
                self._enter_interviewing()
            raise

        self.session.analyses[question.id] = analysis
        self._transition(AppState.RESULTS)

    # ---- results ----

    async def next_question(self) -> bool:
        """Advance to the next question. Returns True when the run completed and was reset."""
        self._require(AppState.RESULTS)

        if not self.session.is_last_question:
            self.session.current_index += 1
            self._enter_interviewing()
            return False

        self.log.info("session_completed", questions=len(self.session.questions))
        await self.reset()
        return True

    def redo(self) -> None:
        self._require(AppState.RESULTS)
        self._enter_interviewing()

    # ---- lifecycle ----

    async def reset(self) -> None:
        await self.close()
        self.session = InterviewSession()
        self.error = None
        self.requests = {GENERATION: RequestStatus.IDLE, ANALYSIS: RequestStatus.IDLE}
        self._transition(AppState.SETUP)

    async def close(self) -> None:
        """Cancel any in-flight request and release the camera."""
        self._epoch += 1
        pending, self._pending = self._pending, None
        if pending is not None and not pending.done():
            pending.cancel()
            self.log.info("request_cancelled")
        await self.sampler.stop()

    def dismiss_error(self) -> None:
        self.error = None

    def snapshot(self) -> Dict[str, Any]:
        session = self.session
        question = session.current_question
        analysis = session.current_analysis
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "busy": self.busy,
            "requests": {name: status.value for name, status in self.requests.items()},
            "error": self.error,
            "camera_ready": self.camera_ready,
            "recording": self.sampler.is_recording,
            "resume_text": session.resume_text,
            "job_description_text": session.job_description_text,
            "questions": [self._question_view(q) for q in session.questions],
            "current_index": session.current_index,
            "current_question": self._question_view(question) if question else None,
            "is_last_question": session.is_last_question,
            "analyses": {qid: a.model_dump(mode="json") for qid, a in session.analyses.items()},
            "current_analysis": analysis.model_dump(mode="json") if analysis else None,
        }

    # ---- internals ----

    @staticmethod
    def _question_view(question) -> Dict[str, Any]:
        view = question.model_dump(mode="json")
        view["answer_tip"] = question.answer_tip
        return view

    def _require(self, *states: AppState) -> None:
        if self.state not in states:
            raise InvalidTransitionError(
                f"Cannot do that while {self.state.value.lower()}."
            )

    def _require_idle(self) -> None:
        if self.busy:
            raise SessionBusyError()

    def _report(self, exc: HireSightError) -> HireSightError:
        self.error = exc.message
        self.log.warning("session_error", state=self.state.value, error=type(exc).__name__)
        return exc

    def _transition(self, state: AppState) -> None:
        if state != self.state:
            self.log.info("state_changed", previous=self.state.value, current=state.value)
        self.state = state

    def _enter_interviewing(self) -> None:
        self._transition(AppState.INTERVIEWING)
        try:
            self.sampler.start()
        except CaptureDeniedError as e:
            self._report(e)

    async def _leave_interviewing(self) -> None:
        await self.sampler.stop()

    async def _run(self, name: str, call: Awaitable[T]) -> T:
        epoch = self._epoch
        self.requests[name] = RequestStatus.IN_FLIGHT
        task = asyncio.ensure_future(call)
        self._pending = task
        try:
            result = await task
        except asyncio.CancelledError:
            if epoch != self._epoch:
                self.log.info("stale_response_discarded", request=name)
                raise StaleResponseError() from None
            self.requests[name] = RequestStatus.FAILED
            raise
        except Exception:
            if epoch != self._epoch:
                raise StaleResponseError() from None
            self.requests[name] = RequestStatus.FAILED
            raise
        finally:
            if self._pending is task:
                self._pending = None

        if epoch != self._epoch:
            self.log.info("stale_response_discarded", request=name)
            raise StaleResponseError()
        self.requests[name] = RequestStatus.SUCCEEDED
        return result
