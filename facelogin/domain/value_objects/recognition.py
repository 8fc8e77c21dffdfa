"""Face recognition value objects."""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from facelogin.domain.entities.identity import LabeledDescriptorSet

UNKNOWN_LABEL = "unknown"


class DetectorOptions(BaseModel):
    """Detector sensitivity/speed options passed to the engine on every call."""
    input_size: int = Field(..., gt=0, description="Square detector input size in pixels")
    score_threshold: float = Field(..., gt=0.0, lt=1.0, description="Minimum detection score")

    model_config = ConfigDict(frozen=True)

    @field_validator("input_size")
    @classmethod
    def validate_input_size(cls, v: int) -> int:
        """Detector strides require multiples of 32."""
        if v % 32:
            raise ValueError("input_size must be a multiple of 32")
        return v


class VideoConstraints(BaseModel):
    """Constraints used to acquire the camera."""
    facing_mode: str = Field("user", description="Requested camera orientation")
    ideal_width: int = Field(720, gt=0)
    ideal_height: int = Field(720, gt=0)
    device_index: int = Field(0, ge=0, description="Local capture device index")


class MatcherDatabase(BaseModel):
    """Immutable labeled embeddings plus the global acceptance threshold."""
    labeled_sets: Tuple[LabeledDescriptorSet, ...] = Field(..., description="Identities in construction order")
    threshold: float = Field(..., gt=0.0, le=1.0, description="Maximum accepted distance")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_sets(self) -> "MatcherDatabase":
        """Require a non-empty database with unique labels and one dimension."""
        if not self.labeled_sets:
            raise ValueError("A matcher database needs at least one identity")
        labels = [s.label for s in self.labeled_sets]
        if len(set(labels)) != len(labels):
            raise ValueError("Identity labels must be unique")
        if len({s.dimension for s in self.labeled_sets}) != 1:
            raise ValueError("All identities must share one embedding dimension")
        return self

    @property
    def dimension(self) -> int:
        return self.labeled_sets[0].dimension

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(s.label for s in self.labeled_sets)


class MatchResult(BaseModel):
    """Outcome of classifying one probe embedding."""
    label: str = Field(..., description="Matched identity or 'unknown'")
    distance: float = Field(..., description="Smallest distance found across all identities")

    model_config = ConfigDict(frozen=True)

    @property
    def is_unknown(self) -> bool:
        return self.label == UNKNOWN_LABEL


class SessionState(str, Enum):
    """Lifecycle of a recognition session."""
    IDLE = "idle"
    PROBING = "probing"
    LOCKED = "locked"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.LOCKED, SessionState.FAILED)


class LoginPhase(str, Enum):
    """User-visible phases of a login attempt, in order of occurrence."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    LOADING_MODELS = "loading_models"
    PREPARING_FACE_DATA = "preparing_face_data"
    LOOKING_FOR_FACE = "looking_for_face"
    RECOGNIZED = "recognized"
    STOPPED = "stopped"
    NO_ENROLLED_IDENTITIES = "no_enrolled_identities"
    CAMERA_UNAVAILABLE = "camera_unavailable"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    FAILED = "failed"

    @property
    def is_failure(self) -> bool:
        return self in (
            LoginPhase.NO_ENROLLED_IDENTITIES,
            LoginPhase.CAMERA_UNAVAILABLE,
            LoginPhase.ENGINE_UNAVAILABLE,
            LoginPhase.FAILED,
        )


PHASE_MESSAGES = {
    LoginPhase.IDLE: "Press start to sign in",
    LoginPhase.INITIALIZING: "Initializing…",
    LoginPhase.LOADING_MODELS: "Loading face models…",
    LoginPhase.PREPARING_FACE_DATA: "Preparing known faces…",
    LoginPhase.LOOKING_FOR_FACE: "Looking for your face…",
    LoginPhase.RECOGNIZED: "Recognized",
    LoginPhase.STOPPED: "Login stopped",
    LoginPhase.NO_ENROLLED_IDENTITIES: "Face data unavailable",
    LoginPhase.CAMERA_UNAVAILABLE: "Camera unavailable",
    LoginPhase.ENGINE_UNAVAILABLE: "Face models unavailable",
    LoginPhase.FAILED: "Login failed",
}


class LoginStatus(BaseModel):
    """One status update emitted to the status sink."""
    phase: LoginPhase = Field(..., description="Current phase of the login attempt")
    message: str = Field(..., description="Human-readable status line")
    label: Optional[str] = Field(None, description="Recognized identity, once locked")
    error: Optional[str] = Field(None, description="Underlying failure cause")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_phase(
        cls,
        phase: LoginPhase,
        label: Optional[str] = None,
        error: Optional[str] = None
    ) -> "LoginStatus":
        """Build a status with the default message for ``phase``."""
        message = PHASE_MESSAGES[phase]
        if phase is LoginPhase.RECOGNIZED and label:
            message = f"Welcome, {label}"
        elif error:
            message = f"{message}: {error}"
        return cls(phase=phase, message=message, label=label, error=error)
