import uuid
from typing import Dict, Optional, Tuple

import structlog

from ..core.config import CaptureBackend, Settings
from ..core.exceptions import SessionNotFoundError
from ..core.interfaces import CaptureConstraints, InferenceClient, MediaDevices
from ..processors.capture import BrowserFrameStream, BrowserMediaDevices, OpenCVMediaDevices
from ..processors.video import FrameSampler
from .state_machine import InterviewStateMachine

logger = structlog.get_logger(__name__)


class SessionRegistry:
    """In-memory sessions, one state machine (and camera handle) per browser tab."""

    def __init__(self, settings: Settings, inference: InferenceClient):
        self.settings = settings
        self.inference = inference
        self._sessions: Dict[str, Tuple[InterviewStateMachine, Optional[BrowserFrameStream]]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> InterviewStateMachine:
        session_id = uuid.uuid4().hex
        media_devices, stream = self._media_devices()
        sampler = FrameSampler(
            media_devices,
            constraints=CaptureConstraints(
                width=self.settings.CAMERA_WIDTH,
                height=self.settings.CAMERA_HEIGHT,
                facing_mode=self.settings.CAMERA_FACING_MODE,
            ),
            capture_interval=self.settings.FRAME_CAPTURE_INTERVAL,
            sample_size=self.settings.FRAME_SAMPLE_SIZE,
            jpeg_quality=self.settings.JPEG_QUALITY,
        )
        machine = InterviewStateMachine(self.inference, sampler, session_id=session_id)
        self._sessions[session_id] = (machine, stream)
        logger.info("session_created", session_id=session_id, backend=self.settings.CAPTURE_BACKEND.value)
        return machine

    def get(self, session_id: str) -> InterviewStateMachine:
        try:
            return self._sessions[session_id][0]
        except KeyError:
            raise SessionNotFoundError() from None

    def stream(self, session_id: str) -> Optional[BrowserFrameStream]:
        entry = self._sessions.get(session_id)
        return entry[1] if entry else None

    async def remove(self, session_id: str) -> None:
        machine = self.get(session_id)
        del self._sessions[session_id]
        await machine.close()
        logger.info("session_closed", session_id=session_id)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.remove(session_id)

    def _media_devices(self) -> Tuple[MediaDevices, Optional[BrowserFrameStream]]:
        if self.settings.CAPTURE_BACKEND == CaptureBackend.OPENCV:
            return OpenCVMediaDevices(self.settings.CAMERA_INDEX), None
        devices = BrowserMediaDevices()
        return devices, devices.stream
