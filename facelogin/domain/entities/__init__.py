"""Domain entities package."""
from .identity import KnownIdentity, LabeledDescriptorSet

__all__ = ["KnownIdentity", "LabeledDescriptorSet"]
