# tests/test_state_machine.py
import asyncio

import pytest

from conftest import FakeInference, FakeMediaDevices, make_analysis, make_question
from hiresight.application.interview_session import InterviewSession
from hiresight.application.state_machine import AppState, InterviewStateMachine, RequestStatus
from hiresight.core.exceptions import (
    AnalysisFailedError,
    AnalysisParseError,
    CaptureDeniedError,
    InferenceError,
    InputValidationError,
    InvalidTransitionError,
    NoFramesCapturedError,
    QuestionGenerationError,
    SessionBusyError,
    StaleResponseError,
)
from hiresight.processors.video import FrameSampler


def build(inference=None, devices=None):
    inference = inference or FakeInference()
    devices = devices or FakeMediaDevices()
    sampler = FrameSampler(devices, capture_interval=60)
    return InterviewStateMachine(inference, sampler, session_id="test"), inference, devices


async def record(machine, frames=3):
    await machine.begin_recording()
    for _ in range(frames):
        await machine.sampler.snapshot()
    await machine.finish_recording()


async def interviewing(machine):
    machine.update_inputs("X", "Y")
    await machine.prepare()
    machine.start()


@pytest.mark.asyncio
async def test_prepare_requires_both_inputs():
    machine, inference, _ = build()
    machine.update_inputs("Resume", "   ")

    with pytest.raises(InputValidationError):
        await machine.prepare()

    assert machine.state == AppState.SETUP
    assert machine.error == InputValidationError.default_message
    assert inference.generate_calls == []


@pytest.mark.asyncio
async def test_prepare_stores_questions_in_order():
    machine, inference, _ = build()
    machine.update_inputs("X", "Y")

    await machine.prepare()

    assert machine.state == AppState.PREPARING
    assert inference.generate_calls == [("X", "Y")]
    assert [q.id for q in machine.session.questions] == ["q1", "q2", "q3", "q4"]
    assert [q["category"] for q in machine.snapshot()["questions"]] == [
        "behavioral", "technical", "situational", "intro"
    ]
    assert machine.requests["generation"] == RequestStatus.SUCCEEDED


@pytest.mark.asyncio
async def test_empty_generation_keeps_setup_and_texts():
    machine, _, _ = build(FakeInference(questions=[]))
    machine.update_inputs("X", "Y")

    with pytest.raises(QuestionGenerationError):
        await machine.prepare()

    assert machine.state == AppState.SETUP
    assert machine.session.resume_text == "X"
    assert machine.session.job_description_text == "Y"
    assert machine.error is not None
    assert machine.requests["generation"] == RequestStatus.FAILED


@pytest.mark.asyncio
async def test_generation_transport_failure_keeps_setup():
    inference = FakeInference()
    inference.generation_error = InferenceError()
    machine, _, _ = build(inference)
    machine.update_inputs("X", "Y")

    with pytest.raises(QuestionGenerationError):
        await machine.prepare()
    assert machine.state == AppState.SETUP


@pytest.mark.asyncio
async def test_start_acquires_camera():
    machine, _, devices = build()
    await interviewing(machine)

    assert machine.state == AppState.INTERVIEWING
    assert machine.camera_ready
    assert devices.open_handles == 1


@pytest.mark.asyncio
async def test_zero_frames_never_reach_inference():
    machine, inference, devices = build()
    await interviewing(machine)

    await machine.begin_recording()
    with pytest.raises(NoFramesCapturedError):
        await machine.finish_recording()

    assert machine.state == AppState.INTERVIEWING
    assert inference.analyze_calls == []
    assert devices.open_handles == 1


@pytest.mark.asyncio
async def test_successful_analysis_moves_to_results_and_releases_camera():
    machine, inference, devices = build()
    await interviewing(machine)

    await record(machine, frames=12)

    assert machine.state == AppState.RESULTS
    question, frames = inference.analyze_calls[0]
    assert question.id == "q1"
    assert len(frames) == 8
    assert machine.session.analyses["q1"] == inference.analysis
    assert devices.open_handles == 0
    assert all(d.release_count == 1 for d in devices.devices)


@pytest.mark.asyncio
async def test_analysis_failure_returns_to_same_question():
    inference = FakeInference()
    machine, _, devices = build(inference)
    await interviewing(machine)
    await record(machine)
    await machine.next_question()

    inference.analysis_error = AnalysisParseError()
    with pytest.raises(AnalysisFailedError):
        await record(machine)

    assert machine.state == AppState.INTERVIEWING
    assert machine.session.current_index == 1
    assert list(machine.session.analyses) == ["q1"]
    assert machine.error == AnalysisFailedError.default_message
    assert machine.requests["analysis"] == RequestStatus.FAILED
    assert devices.open_handles == 1


@pytest.mark.asyncio
async def test_next_question_advances_index():
    machine, _, _ = build()
    await interviewing(machine)
    await record(machine)

    completed = await machine.next_question()

    assert completed is False
    assert machine.state == AppState.INTERVIEWING
    assert machine.session.current_index == 1
    assert machine.session.current_question.id == "q2"


@pytest.mark.asyncio
async def test_last_next_resets_to_fresh_session():
    machine, _, devices = build(FakeInference(questions=[make_question("a"), make_question("b")]))
    await interviewing(machine)

    await record(machine)
    assert await machine.next_question() is False
    await record(machine)
    assert await machine.next_question() is True

    assert machine.state == AppState.SETUP
    assert machine.session == InterviewSession()
    assert machine.session.resume_text == ""
    assert machine.session.questions == []
    assert machine.session.current_index == 0
    assert machine.session.analyses == {}
    assert devices.open_handles == 0


@pytest.mark.asyncio
async def test_redo_overwrites_only_that_analysis():
    inference = FakeInference()
    machine, _, _ = build(inference)
    await interviewing(machine)

    await record(machine)
    await machine.next_question()
    await record(machine)
    first = machine.session.analyses["q1"]

    machine.redo()
    assert machine.state == AppState.INTERVIEWING
    assert machine.session.analyses["q2"] == inference.analysis

    improved = make_analysis(score=5.0)
    inference.analysis = improved
    await record(machine)

    assert machine.session.current_index == 1
    assert machine.session.analyses["q2"] == improved
    assert machine.session.analyses["q1"] is first


@pytest.mark.asyncio
async def test_current_index_stays_valid_through_run():
    machine, _, _ = build()
    await interviewing(machine)
    for _ in range(3):
        await record(machine)
        assert 0 <= machine.session.current_index < len(machine.session.questions)
        await machine.next_question()
        assert 0 <= machine.session.current_index < len(machine.session.questions)


@pytest.mark.asyncio
async def test_invalid_transitions_are_rejected():
    machine, _, _ = build()

    with pytest.raises(InvalidTransitionError):
        machine.start()
    with pytest.raises(InvalidTransitionError):
        await machine.begin_recording()
    with pytest.raises(InvalidTransitionError):
        await machine.next_question()
    with pytest.raises(InvalidTransitionError):
        machine.redo()

    await interviewing(machine)
    with pytest.raises(InvalidTransitionError):
        machine.update_inputs("A", "B")


@pytest.mark.asyncio
async def test_camera_denial_blocks_recording_until_granted():
    devices = FakeMediaDevices(deny=True)
    machine, _, _ = build(devices=devices)
    await interviewing(machine)

    assert machine.state == AppState.INTERVIEWING
    assert not machine.camera_ready
    assert machine.error == CaptureDeniedError.default_message

    with pytest.raises(CaptureDeniedError):
        await machine.begin_recording()

    devices.deny = False
    await machine.begin_recording()
    assert machine.camera_ready
    assert machine.error is None


@pytest.mark.asyncio
async def test_busy_machine_refuses_duplicate_prepare():
    inference = FakeInference()
    inference.release = asyncio.Event()
    machine, _, _ = build(inference)
    machine.update_inputs("X", "Y")

    first = asyncio.create_task(machine.prepare())
    await asyncio.sleep(0)
    assert machine.busy
    assert machine.snapshot()["requests"]["generation"] == "in_flight"

    with pytest.raises(SessionBusyError):
        await machine.prepare()

    inference.release.set()
    await first
    assert machine.state == AppState.PREPARING
    assert not machine.busy
    assert len(inference.generate_calls) == 1


@pytest.mark.asyncio
async def test_reset_discards_late_analysis():
    inference = FakeInference()
    machine, _, devices = build(inference)
    await interviewing(machine)

    inference.release = asyncio.Event()
    await machine.begin_recording()
    await machine.sampler.snapshot()
    pending = asyncio.create_task(machine.finish_recording())
    await asyncio.sleep(0.05)
    assert machine.state == AppState.ANALYZING

    await machine.reset()
    with pytest.raises(StaleResponseError):
        await pending

    assert machine.state == AppState.SETUP
    assert machine.session == InterviewSession()
    assert not machine.busy
    assert devices.open_handles == 0


@pytest.mark.asyncio
async def test_close_releases_camera():
    machine, _, devices = build()
    await interviewing(machine)
    await machine.begin_recording()

    await machine.close()

    assert devices.open_handles == 0
    assert not machine.sampler.is_recording


@pytest.mark.asyncio
async def test_snapshot_exposes_answer_tip_and_analysis():
    machine, _, _ = build()
    await interviewing(machine)
    await record(machine)

    view = machine.snapshot()
    assert view["state"] == "RESULTS"
    assert view["current_question"]["answer_tip"] == "STAR+R method"
    assert view["current_analysis"]["overall_score"] == 4.0
    assert view["analyses"]["q1"]["key_strengths"] == ["Concise"]

    await machine.next_question()
    assert machine.snapshot()["current_question"]["answer_tip"] == "Thinking Out Loud approach"

    machine.dismiss_error()
    assert machine.snapshot()["error"] is None
