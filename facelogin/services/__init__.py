"""Service layer package."""
from .bootstrap import BootstrapOrchestrator
from .descriptor_database import DescriptorDatabaseBuilder, roster_from_settings
from .face_matcher import FaceMatcher, classify
from .login import LoginService
from .recognition_session import RecognitionSession

__all__ = [
    "BootstrapOrchestrator",
    "DescriptorDatabaseBuilder",
    "FaceMatcher",
    "LoginService",
    "RecognitionSession",
    "classify",
    "roster_from_settings",
]
