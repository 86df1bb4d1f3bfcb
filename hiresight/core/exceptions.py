class HireSightError(Exception):
    """Base class for every error surfaced to the user."""

    status_code: int = 500
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SessionError(HireSightError):
    status_code = 409


class InputValidationError(SessionError):
    status_code = 422
    default_message = "Please enter both resume and job description."


class NoFramesCapturedError(SessionError):
    status_code = 422
    default_message = "No video data captured. Please try again."


class InvalidTransitionError(SessionError):
    default_message = "That action is not available right now."


class SessionBusyError(SessionError):
    default_message = "A request is already in progress."


class StaleResponseError(SessionError):
    default_message = "The session was reset before the response arrived."


class SessionNotFoundError(SessionError):
    status_code = 404
    default_message = "Session not found."


class QuestionGenerationError(HireSightError):
    status_code = 502
    default_message = "Failed to generate questions. Please try again."


class AnalysisFailedError(HireSightError):
    status_code = 502
    default_message = "Failed to analyze response. Please record your answer again."


class CaptureDeniedError(HireSightError):
    status_code = 403
    default_message = "Please grant camera/microphone permissions to continue."


class InferenceError(HireSightError):
    status_code = 502
    default_message = "The inference service request failed."


class AnalysisParseError(InferenceError):
    default_message = "Analysis failed."
