"""API specific login models."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from facelogin.domain.value_objects.recognition import LoginPhase, LoginStatus, SessionState
from facelogin.services.login import LoginService


class StatusEntry(BaseModel):
    """API model for one status update."""
    phase: LoginPhase = Field(..., description="Phase of the login attempt")
    message: str = Field(..., description="Human-readable status line")
    timestamp: datetime = Field(..., description="When the status was emitted")

    @classmethod
    def from_status(cls, status: LoginStatus) -> "StatusEntry":
        return cls(phase=status.phase, message=status.message, timestamp=status.timestamp)


class LoginStatusResponse(BaseModel):
    """Response model for the /login endpoints."""
    phase: LoginPhase = Field(..., description="Current phase of the login attempt")
    message: str = Field(..., description="Human-readable status line")
    session_state: Optional[SessionState] = Field(None, description="Recognition session state")
    label: Optional[str] = Field(None, description="Recognized identity, once locked")
    error: Optional[str] = Field(None, description="Failure cause, if the attempt failed")
    retry_enabled: bool = Field(..., description="Whether a new attempt may be started")
    history: List[StatusEntry] = Field(default_factory=list, description="Status updates of this attempt")

    @classmethod
    def from_service(cls, service: LoginService) -> "LoginStatusResponse":
        """Create a response from the login service's observable state."""
        status = service.status
        session = service.session
        return cls(
            phase=status.phase,
            message=status.message,
            session_state=session.state if session else None,
            label=service.locked_label,
            error=status.error,
            retry_enabled=service.retry_enabled,
            history=[StatusEntry.from_status(s) for s in service.history],
        )
