from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from enum import Enum
from pathlib import Path

class EnvironmentType(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"

class CaptureBackend(str, Enum):
    BROWSER = "browser"
    OPENCV = "opencv"

class Settings(BaseSettings):
    # Basic Settings
    APP_NAME: str = "HireSight Interview Coach"
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT
    DEBUG: bool = True
    API_PREFIX: str = "/api"
    WEBSOCKET_PATH: str = "/ws"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "DEBUG"

    # AI Settings
    OPENAI_API_KEY: str | None = None
    AI_MODEL: str = "gpt-4o-mini"
    REQUEST_TIMEOUT: float = 60.0
    QUESTION_COUNT: int = 4

    # Camera
    CAPTURE_BACKEND: CaptureBackend = CaptureBackend.BROWSER
    CAMERA_INDEX: int = 0
    CAMERA_WIDTH: int = 640
    CAMERA_HEIGHT: int = 480
    CAMERA_FACING_MODE: str = "user"

    # Frame Sampling
    FRAME_CAPTURE_INTERVAL: float = 1.0
    FRAME_SAMPLE_SIZE: int = 8
    JPEG_QUALITY: int = 60
    BROWSER_STREAM_FPS: int = 4

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra='ignore'
    )

@lru_cache
def get_settings() -> Settings:
    return Settings()
