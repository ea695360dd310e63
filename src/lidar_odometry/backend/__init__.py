"""Backend and WorldModel collaborators."""

from .in_memory import InMemoryBackend, InMemoryWorldModel, StoredKeyframe
from .interfaces import (
    INVALID_FID,
    INVALID_ID,
    AddFactorResult,
    Backend,
    ProposeKeyframeRequest,
    ProposeKeyframeResult,
    RelativePoseFactor,
    WorldModel,
    commit_factor,
    commit_keyframe,
)

__all__ = [
    # Interfaces
    "Backend",
    "WorldModel",
    "INVALID_ID",
    "INVALID_FID",
    "RelativePoseFactor",
    "ProposeKeyframeRequest",
    "ProposeKeyframeResult",
    "AddFactorResult",
    "commit_keyframe",
    "commit_factor",
    # In-memory implementations
    "InMemoryBackend",
    "InMemoryWorldModel",
    "StoredKeyframe",
]
