"""Configuration settings for the face login service."""
from typing import List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RosterEntry(BaseModel):
    """One enrollable identity as configured.

    Reference images are expected at ``{dir}/{i}.jpg`` for ``i`` in ``1..samples``.
    """
    label: str = Field(..., min_length=1)
    dir: str = Field(..., min_length=1)
    samples: int = Field(..., ge=1)


class DetectorSettings(BaseModel):
    """Face detector sensitivity/speed trade-off for one input context."""
    INPUT_SIZE: int = 640
    SCORE_THRESHOLD: float = 0.5


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        ROSTER: Known identities and their reference sample counts
        MATCH_THRESHOLD: Maximum embedding distance accepted as a match (0-1]
        PROBE_INTERVAL_MS: Period of the live video probe timer
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # IMAGE_DETECTOR__INPUT_SIZE=...
    )

    # Core Settings
    PROJECT_NAME: str = "Face Login Service"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    # CORS Settings
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        """Get list of allowed origins."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Roster Settings
    ROSTER: List[RosterEntry] = [
        RosterEntry(label="kiet", dir="kiet", samples=3),
        RosterEntry(label="sonji", dir="sonji", samples=2),
    ]
    IMAGE_STORE: str = "local"  # local | http | s3
    FACES_ROOT: str = "faces"  # Directory, base URL or S3 prefix
    HTTP_TIMEOUT_SECONDS: float = 10.0
    MAX_IMAGE_PIXELS: int = 1920 * 1080  # ~2MP (Full HD)

    # Face matching settings
    # 0.45 = strict, 0.6 = loose
    MATCH_THRESHOLD: float = Field(0.5, gt=0.0, le=1.0)
    PROBE_INTERVAL_MS: int = Field(600, gt=0)

    # Engine Settings
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    ENGINE_READY_CHECK: bool = True
    ENGINE_READY_TIMEOUT_MS: int = 3000
    ENGINE_READY_POLL_MS: int = 16  # One animation frame at 60Hz

    # Reference images favor recall, live video favors latency
    IMAGE_DETECTOR: DetectorSettings = DetectorSettings(INPUT_SIZE=640, SCORE_THRESHOLD=0.3)
    VIDEO_DETECTOR: DetectorSettings = DetectorSettings(INPUT_SIZE=320, SCORE_THRESHOLD=0.5)

    # Camera Settings
    CAMERA_DEVICE_INDEX: int = 0
    CAMERA_FACING_MODE: str = "user"
    CAMERA_IDEAL_WIDTH: int = 720
    CAMERA_IDEAL_HEIGHT: int = 720

    # AWS Settings (only used when IMAGE_STORE=s3)
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    AWS_S3_BUCKET: str = ""

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

settings = Settings()
