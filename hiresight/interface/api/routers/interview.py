import json
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, Request, Response, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel

from ....application.registry import SessionRegistry
from ....application.state_machine import InterviewStateMachine

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/sessions", tags=["interview"])
ws_router = APIRouter(tags=["interview"])


class SessionInputs(BaseModel):
    """Free-text inputs collected on the setup screen."""

    resume: str
    job_description: str


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_machine(session_id: str,
                registry: SessionRegistry = Depends(get_registry)) -> InterviewStateMachine:
    return registry.get(session_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(registry: SessionRegistry = Depends(get_registry)) -> Dict[str, Any]:
    return registry.create().snapshot()


@router.get("/{session_id}")
async def get_session(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    return machine.snapshot()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    await registry.remove(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{session_id}/inputs")
async def update_inputs(inputs: SessionInputs,
                        machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    machine.update_inputs(inputs.resume, inputs.job_description)
    return machine.snapshot()


@router.post("/{session_id}/prepare")
async def prepare_session(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    """Generate the question list from the stored resume and job description."""
    await machine.prepare()
    return machine.snapshot()


@router.post("/{session_id}/start")
async def start_interview(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    machine.start()
    return machine.snapshot()


@router.post("/{session_id}/recording/begin")
async def begin_recording(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    await machine.begin_recording()
    return machine.snapshot()


@router.post("/{session_id}/recording/end")
async def end_recording(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    """Stop recording and analyze the sampled frames for the current question."""
    await machine.finish_recording()
    return machine.snapshot()


@router.post("/{session_id}/next")
async def next_question(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    completed = await machine.next_question()
    return {"completed": completed, **machine.snapshot()}


@router.post("/{session_id}/redo")
async def redo_question(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    machine.redo()
    return machine.snapshot()


@router.post("/{session_id}/reset")
async def reset_session(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    await machine.reset()
    return machine.snapshot()


@router.post("/{session_id}/error/dismiss")
async def dismiss_error(machine: InterviewStateMachine = Depends(get_machine)) -> Dict[str, Any]:
    machine.dismiss_error()
    return machine.snapshot()


@ws_router.websocket("/{session_id}")
async def frame_stream(websocket: WebSocket, session_id: str):
    """Receive the browser's camera frames for a session."""
    registry: SessionRegistry = websocket.app.state.registry
    stream = registry.stream(session_id)
    if stream is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    stream.attach()
    logger.info("frame_stream_attached", session_id=session_id)

    try:
        await websocket.send_json({"type": "connection_established", "session_id": session_id})
        while True:
            try:
                data = json.loads(await websocket.receive_text())
            except json.JSONDecodeError:
                logger.error("frame_stream_invalid_json", session_id=session_id)
                continue

            if not isinstance(data, dict):
                continue

            if data.get("type") == "video_frame":
                if not stream.push(str(data.get("data", ""))):
                    await websocket.send_json({"type": "error", "data": "Could not decode video frame"})
    except WebSocketDisconnect:
        pass
    finally:
        stream.detach()
        logger.info("frame_stream_detached", session_id=session_id)
