"""Interfaces of the collaborators that own the global graph.

The front-end only owns a bounded local window. Keyframes and factors are
committed to a Backend, and the global entity graph is queried through an
optional WorldModel. Both are consumed through request/response calls
returning futures; the transport behind them is their own concern.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from ..errors import BackendContractError

if TYPE_CHECKING:
    from ..frontend.observation import Observation
    from ..frontend.pose import SE3

INVALID_ID = -1  # Reserved keyframe id
INVALID_FID = -1  # Reserved factor id


@dataclass
class RelativePoseFactor:
    """SE(3) constraint: pose of to_id expressed in the frame of from_id."""

    from_id: int
    to_id: int
    relative_pose: SE3


@dataclass
class ProposeKeyframeResult:
    """Backend reply to a keyframe proposal."""

    success: bool
    new_kf_id: int | None = None


@dataclass
class AddFactorResult:
    """Backend reply to a factor insertion."""

    success: bool
    new_factor_id: int | None = None


@dataclass
class ProposeKeyframeRequest:
    timestamp_ns: int
    observations: list[Observation] = field(default_factory=list)


class Backend(Protocol):
    """Persistent keyframe / factor store."""

    def propose_keyframe(
        self, request: ProposeKeyframeRequest
    ) -> Future[ProposeKeyframeResult]: ...

    def add_factor(self, factor: RelativePoseFactor) -> Future[AddFactorResult]: ...


class WorldModel(Protocol):
    """Queryable global entity graph."""

    def entities_lock(self) -> None: ...

    def entities_unlock(self) -> None: ...

    def entity_neighbors(self, entity_id: int) -> set[int]: ...


def commit_keyframe(backend: Backend, request: ProposeKeyframeRequest) -> int:
    """Propose a keyframe and block until the backend answers.

    Returns:
        Id of the new keyframe

    Raises:
        BackendContractError: If the backend rejects the keyframe or returns
            a missing/invalid id
    """
    result = backend.propose_keyframe(request).result()
    if not result.success:
        raise BackendContractError(
            f"Backend rejected keyframe at t={request.timestamp_ns}ns"
        )
    if result.new_kf_id is None or result.new_kf_id == INVALID_ID:
        raise BackendContractError(
            f"Backend returned invalid keyframe id: {result.new_kf_id}"
        )
    return result.new_kf_id


def commit_factor(backend: Backend, factor: RelativePoseFactor) -> int:
    """Add a factor and block until the backend answers.

    Returns:
        Id of the new factor

    Raises:
        BackendContractError: If the backend rejects the factor or returns
            a missing/invalid id
    """
    result = backend.add_factor(factor).result()
    if not result.success:
        raise BackendContractError(
            f"Backend rejected factor #{factor.from_id} -> #{factor.to_id}"
        )
    if result.new_factor_id is None or result.new_factor_id == INVALID_FID:
        raise BackendContractError(
            f"Backend returned invalid factor id: {result.new_factor_id}"
        )
    return result.new_factor_id
