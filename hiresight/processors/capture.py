import base64
import threading
from typing import Optional

import cv2
import numpy as np
import structlog

from ..core.exceptions import CaptureDeniedError
from ..core.interfaces import CaptureConstraints, CaptureDevice, MediaDevices

logger = structlog.get_logger(__name__)


def decode_data_url(data_url: str) -> Optional[np.ndarray]:
    """Decode a `data:image/...;base64,` string (or bare base64) into a BGR frame."""
    payload = data_url.split(",", 1)[1] if "," in data_url else data_url
    try:
        frame_bytes = base64.b64decode(payload, validate=True)
    except ValueError:
        return None
    frame_array = np.frombuffer(frame_bytes, dtype=np.uint8)
    if frame_array.size == 0:
        return None
    return cv2.imdecode(frame_array, cv2.IMREAD_COLOR)


class BrowserFrameStream:
    """
    Latest-frame buffer fed by the browser over a WebSocket.

    The browser owns the real getUserMedia stream; the server only ever sees
    the frames it pushes, so "access granted" means a stream is attached.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self._attached = 0

    @property
    def attached(self) -> bool:
        return self._attached > 0

    def attach(self) -> None:
        with self._lock:
            self._attached += 1

    def detach(self) -> None:
        with self._lock:
            self._attached = max(0, self._attached - 1)
            if self._attached == 0:
                self._latest = None

    def push(self, data_url: str) -> bool:
        frame = decode_data_url(data_url)
        if frame is None:
            return False
        with self._lock:
            self._latest = frame
        return True

    def latest(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._latest is None else self._latest.copy()


class BrowserCaptureDevice(CaptureDevice):
    def __init__(self, stream: BrowserFrameStream):
        self._stream = stream
        self._released = False

    def read_frame(self) -> Optional[np.ndarray]:
        if self._released:
            return None
        return self._stream.latest()

    def release(self) -> None:
        self._released = True


class BrowserMediaDevices(MediaDevices):
    def __init__(self, stream: BrowserFrameStream | None = None):
        self.stream = stream or BrowserFrameStream()

    def acquire(self, constraints: CaptureConstraints) -> CaptureDevice:
        if not self.stream.attached:
            logger.warning("capture_denied", backend="browser", reason="no stream attached")
            raise CaptureDeniedError()
        return BrowserCaptureDevice(self.stream)


class OpenCVCaptureDevice(CaptureDevice):
    def __init__(self, capture: "cv2.VideoCapture"):
        self._capture = capture

    def read_frame(self) -> Optional[np.ndarray]:
        ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return frame

    def release(self) -> None:
        self._capture.release()


class OpenCVMediaDevices(MediaDevices):
    """Local webcam through OpenCV. Audio is not captured on this backend."""

    def __init__(self, camera_index: int = 0):
        self.camera_index = camera_index

    def acquire(self, constraints: CaptureConstraints) -> CaptureDevice:
        capture = cv2.VideoCapture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            logger.warning("capture_denied", backend="opencv", camera_index=self.camera_index)
            raise CaptureDeniedError()

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
        logger.info("camera_opened",
                    backend="opencv",
                    camera_index=self.camera_index,
                    width=constraints.width,
                    height=constraints.height)
        return OpenCVCaptureDevice(capture)
