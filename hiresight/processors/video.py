import asyncio
import base64
import contextlib
from typing import List, Optional, Sequence, TypeVar

import cv2
import numpy as np
import structlog

from ..core.interfaces import CaptureConstraints, CaptureDevice, MediaDevices

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_SAMPLE_SIZE = 8


def downsample(frames: Sequence[T], sample_size: int = DEFAULT_SAMPLE_SIZE) -> List[T]:
    """
    Reduce a capture to at most `sample_size` evenly spaced frames.

    Args:
        frames: Captured frames in temporal order
        sample_size: Upper bound on the number of frames returned

    Returns:
        The frames unchanged when there are no more than `sample_size` of them,
        otherwise the frames at indices floor(i * n / sample_size).
    """
    if sample_size <= 0:
        raise ValueError("sample_size must be positive")
    total = len(frames)
    if total <= sample_size:
        return list(frames)
    return [frames[(i * total) // sample_size] for i in range(sample_size)]


class FrameSampler:
    """
    Periodically snapshots a capture handle into JPEG data URLs.

    Features:
    - Acquires and releases the camera/microphone handle exactly once
    - Takes one snapshot per tick while recording
    - Downsamples the capture to a bounded set for a single inference call
    """
    def __init__(self,
                 media_devices: MediaDevices,
                 constraints: CaptureConstraints | None = None,
                 capture_interval: float = 1.0,
                 sample_size: int = DEFAULT_SAMPLE_SIZE,
                 jpeg_quality: int = 60):
        self.media_devices = media_devices
        self.constraints = constraints or CaptureConstraints()
        self.capture_interval = capture_interval
        self.sample_size = sample_size
        self.jpeg_quality = jpeg_quality

        self._handle: Optional[CaptureDevice] = None
        self._buffer: List[str] = []
        self._timer: Optional[asyncio.Task] = None

    @property
    def is_started(self) -> bool:
        return self._handle is not None

    @property
    def is_recording(self) -> bool:
        return self._timer is not None

    @property
    def frame_count(self) -> int:
        return len(self._buffer)

    def start(self) -> None:
        """Acquire the capture handle. Calling while started is a no-op."""
        if self._handle is not None:
            return
        self._handle = self.media_devices.acquire(self.constraints)
        logger.info("capture_started",
                    width=self.constraints.width,
                    height=self.constraints.height,
                    facing_mode=self.constraints.facing_mode)

    def begin_recording(self) -> None:
        if self._handle is None:
            raise RuntimeError("FrameSampler.start() must be called before recording")
        if self._timer is not None:
            self._timer.cancel()
        self._buffer = []
        self._timer = asyncio.create_task(self._capture_loop())
        logger.debug("recording_started", interval=self.capture_interval)

    async def end_recording(self) -> List[str]:
        """Stop the snapshot timer and return the sampled subset of the capture."""
        await self._cancel_timer()
        captured = len(self._buffer)
        sampled = downsample(self._buffer, self.sample_size)
        self._buffer = []
        logger.info("recording_finished", captured=captured, sampled=len(sampled))
        return sampled

    async def stop(self) -> None:
        await self._cancel_timer()
        self._buffer = []
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.release()
            logger.info("capture_released")

    async def snapshot(self) -> bool:
        """Encode the handle's current frame into the buffer. Returns False when skipped."""
        handle = self._handle
        if handle is None:
            return False
        frame = await asyncio.to_thread(handle.read_frame)
        if frame is None:
            logger.debug("snapshot_skipped", reason="no frame")
            return False
        encoded = self.encode_frame(frame)
        if encoded is None:
            logger.warning("snapshot_skipped", reason="encode failed")
            return False
        self._buffer.append(encoded)
        return True

    def encode_frame(self, frame: np.ndarray) -> Optional[str]:
        ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
        if not ok:
            return None
        return f"data:image/jpeg;base64,{base64.b64encode(buffer.tobytes()).decode('utf-8')}"

    async def _capture_loop(self) -> None:
        while True:
            await asyncio.sleep(self.capture_interval)
            await self.snapshot()

    async def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is None:
            return
        timer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await timer

    async def __aenter__(self) -> "FrameSampler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
