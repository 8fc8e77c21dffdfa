"""Core identity domain entities."""
from typing import List, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


def sample_image_ref(directory: str, sample_index: int) -> str:
    """Reference of one sample image: ``{directory}/{sample_index}.jpg`` (1-indexed)."""
    if sample_index < 1:
        raise ValueError("Sample indices start at 1")
    return f"{directory.rstrip('/')}/{sample_index}.jpg"


def as_embedding(value) -> np.ndarray:
    """Convert an embedding-like value to a read-only 1-D float64 array."""
    vector = np.array(value, dtype=np.float64).reshape(-1)
    if vector.size == 0:
        raise ValueError("Embedding must not be empty")
    vector.setflags(write=False)
    return vector


class KnownIdentity(BaseModel):
    """One enrollable person and the reference images used to enroll them."""
    label: str = Field(..., min_length=1, description="Unique identity label")
    sample_image_refs: List[str] = Field(..., min_length=1, description="Ordered reference image refs")

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        """Reject blank labels."""
        v = v.strip()
        if not v:
            raise ValueError("Identity label must not be blank")
        return v

    @classmethod
    def from_directory(cls, label: str, directory: str, samples: int) -> "KnownIdentity":
        """Build an identity whose samples follow the ``{directory}/{i}.jpg`` convention."""
        return cls(
            label=label,
            sample_image_refs=[sample_image_ref(directory, i) for i in range(1, samples + 1)]
        )


class LabeledDescriptorSet(BaseModel):
    """All valid embeddings collected for one identity."""
    label: str = Field(..., min_length=1, description="Identity label")
    embeddings: Tuple[np.ndarray, ...] = Field(..., description="Embeddings in sample order")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("embeddings", mode="before")
    @classmethod
    def validate_embeddings(cls, v) -> Tuple[np.ndarray, ...]:
        """Convert to read-only vectors and enforce a non-empty, single-dimension set."""
        vectors = tuple(as_embedding(e) for e in v)
        if not vectors:
            raise ValueError("A labeled descriptor set needs at least one embedding")
        if len({e.shape[0] for e in vectors}) != 1:
            raise ValueError("All embeddings of an identity must share one dimension")
        return vectors

    @property
    def dimension(self) -> int:
        """Embedding dimension of this set."""
        return self.embeddings[0].shape[0]
