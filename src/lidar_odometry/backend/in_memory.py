"""In-process Backend and WorldModel implementations.

Both are thread-safe and complete every request immediately, so the
futures they return are already resolved. Keyframe ids are contiguous
integers starting at 0.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from concurrent.futures import Future
from dataclasses import dataclass

from .interfaces import (
    AddFactorResult,
    ProposeKeyframeRequest,
    ProposeKeyframeResult,
    RelativePoseFactor,
)


@dataclass
class StoredKeyframe:
    """Keyframe as kept by the in-memory backend."""

    id: int
    timestamp_ns: int
    num_observations: int


class InMemoryWorldModel:
    """Entity graph: keyframe ids connected by factors."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entities: set[int] = set()
        self._neighbors: dict[int, set[int]] = defaultdict(set)

    def entities_lock(self) -> None:
        self._lock.acquire()

    def entities_unlock(self) -> None:
        self._lock.release()

    def add_entity(self, entity_id: int) -> None:
        with self._lock:
            self._entities.add(entity_id)

    def connect(self, a: int, b: int) -> None:
        """Record that a factor links entities a and b."""
        with self._lock:
            self._neighbors[a].add(b)
            self._neighbors[b].add(a)

    def entity_neighbors(self, entity_id: int) -> set[int]:
        """Return ids connected to entity_id (caller holds the lock)."""
        with self._lock:
            return set(self._neighbors.get(entity_id, ()))

    @property
    def num_entities(self) -> int:
        with self._lock:
            return len(self._entities)


class InMemoryBackend:
    """Keyframe and factor store kept in process memory."""

    def __init__(self, world_model: InMemoryWorldModel | None = None) -> None:
        """Initialize backend.

        Args:
            world_model: If given, committed keyframes and factors are
                mirrored into it
        """
        self._lock = threading.Lock()
        self._world_model = world_model
        self._keyframes: dict[int, StoredKeyframe] = {}
        self._factors: dict[int, RelativePoseFactor] = {}
        self._next_kf_id = 0
        self._next_factor_id = 0

    def propose_keyframe(
        self, request: ProposeKeyframeRequest
    ) -> Future[ProposeKeyframeResult]:
        with self._lock:
            kf_id = self._next_kf_id
            self._next_kf_id += 1
            self._keyframes[kf_id] = StoredKeyframe(
                id=kf_id,
                timestamp_ns=request.timestamp_ns,
                num_observations=len(request.observations),
            )

        if self._world_model is not None:
            self._world_model.add_entity(kf_id)

        future: Future[ProposeKeyframeResult] = Future()
        future.set_result(ProposeKeyframeResult(success=True, new_kf_id=kf_id))
        return future

    def add_factor(self, factor: RelativePoseFactor) -> Future[AddFactorResult]:
        future: Future[AddFactorResult] = Future()
        with self._lock:
            known = factor.from_id in self._keyframes and factor.to_id in self._keyframes
            if known:
                factor_id = self._next_factor_id
                self._next_factor_id += 1
                self._factors[factor_id] = factor

        if not known:
            future.set_result(AddFactorResult(success=False))
            return future

        if self._world_model is not None:
            self._world_model.connect(factor.from_id, factor.to_id)

        future.set_result(AddFactorResult(success=True, new_factor_id=factor_id))
        return future

    def get_keyframe(self, kf_id: int) -> StoredKeyframe | None:
        with self._lock:
            return self._keyframes.get(kf_id)

    @property
    def factors(self) -> list[RelativePoseFactor]:
        """Committed factors in insertion order."""
        with self._lock:
            return [self._factors[k] for k in sorted(self._factors)]

    @property
    def num_keyframes(self) -> int:
        with self._lock:
            return len(self._keyframes)

    @property
    def num_factors(self) -> int:
        with self._lock:
            return len(self._factors)
