"""Value objects package."""
from .recognition import (
    UNKNOWN_LABEL,
    DetectorOptions,
    LoginPhase,
    LoginStatus,
    MatcherDatabase,
    MatchResult,
    SessionState,
    VideoConstraints,
)

__all__ = [
    "UNKNOWN_LABEL",
    "DetectorOptions",
    "LoginPhase",
    "LoginStatus",
    "MatcherDatabase",
    "MatchResult",
    "SessionState",
    "VideoConstraints",
]
