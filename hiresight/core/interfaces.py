from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING
import numpy as np

if TYPE_CHECKING:
    from ..application.interview_session import AnalysisResult, Question


@dataclass(frozen=True)
class CaptureConstraints:
    width: int = 640
    height: int = 480
    facing_mode: str = "user"
    audio: bool = True


class CaptureDevice(ABC):
    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """Return the current BGR frame, or None when nothing is available yet."""
        pass

    @abstractmethod
    def release(self) -> None:
        """Release the underlying camera/microphone handle."""
        pass


class MediaDevices(ABC):
    @abstractmethod
    def acquire(self, constraints: CaptureConstraints) -> CaptureDevice:
        """Acquire a capture handle, raising CaptureDeniedError when access is refused."""
        pass


class InferenceClient(ABC):
    @abstractmethod
    async def generate_questions(self,
                                 resume: str,
                                 job_description: str) -> List["Question"]:
        """Generate interview questions; an empty list means generation failed."""
        pass

    @abstractmethod
    async def analyze_response(self,
                               question: "Question",
                               frames: List[str]) -> "AnalysisResult":
        """Analyze the recorded answer frames for a question."""
        pass
