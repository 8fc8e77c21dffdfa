"""Custom exceptions for the face login service."""
from typing import Optional


class FaceLoginError(Exception):
    """Base exception for face login operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face login error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.details = details or {}


class InvalidImageError(FaceLoginError):
    """Raised when the provided image is invalid or cannot be processed."""
    pass


class ImageFetchError(FaceLoginError):
    """Raised when a reference image cannot be retrieved from its store."""
    pass


class ModelLoadError(FaceLoginError):
    """Raised when the face embedding engine fails to load."""
    pass


class EngineReadinessTimeoutError(ModelLoadError):
    """Raised when the engine does not report ready within the configured bound."""
    pass


class CameraUnavailableError(FaceLoginError):
    """Raised when no camera can be opened or read."""
    pass


class InvalidRosterError(FaceLoginError):
    """Raised when the configured roster of identities is malformed."""
    pass


class SessionStateError(FaceLoginError):
    """Raised on an illegal recognition session transition."""
    pass


class LoginInProgressError(FaceLoginError):
    """Raised when a login attempt is requested while another is active."""
    pass


class ServiceNotInitializedError(FaceLoginError):
    """Raised when a service is requested before the container is initialized."""
    pass
