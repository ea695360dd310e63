"""Selection and deduplication of local loop-closure checks.

After every window update, one member is proposed for alignment against
the root: the member at the median rank by distance. Nearest members are
already chained by odometry edges and the farthest ones are the least
likely to overlap; the median is a compromise between the two.

Each unordered pair is checked at most once. A pair enters the checked
set before its job is dispatched, so no two verification tasks can ever
run for the same pair, and it is never removed (no retries).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .local_window import LocalWindowGraph, pair_key
from .messages import VerificationJob

if TYPE_CHECKING:
    from ..backend.interfaces import WorldModel
    from ..frontend.pose import SE3
    from ..registration.oracle import RegistrationResult

logger = logging.getLogger(__name__)

# Keyframes whose ids differ by less than this are consecutive and
# already linked by an odometry edge. Assumes contiguous keyframe ids.
ADJACENT_ID_GAP = 2

MAX_CORRECTION_RATIO = 0.20
CORRECTION_EPSILON = 0.01  # meters


class CheckedPairSet:
    """Unordered keyframe pairs already dispatched or known connected.

    Grows monotonically; entries of evicted keyframes are kept.
    """

    def __init__(self) -> None:
        self._pairs: set[tuple[int, int]] = set()

    def add(self, a: int, b: int) -> bool:
        """Insert the pair; returns False if it was already present."""
        key = pair_key(a, b)
        if key in self._pairs:
            return False
        self._pairs.add(key)
        return True

    def contains(self, a: int, b: int) -> bool:
        return pair_key(a, b) in self._pairs

    def clear(self) -> None:
        self._pairs.clear()

    def __len__(self) -> int:
        return len(self._pairs)


@dataclass
class LoopClosureVerdict:
    """Outcome of checking a verified alignment."""

    accepted: bool
    goodness: float
    correction_percent: float


def correction_percent(estimated: SE3, initial_guess: SE3) -> float:
    """How much the alignment moved away from the guess, relative to it."""
    return (estimated - initial_guess).norm() / (initial_guess.norm() + CORRECTION_EPSILON)


def evaluate_loop_closure(
    result: RegistrationResult,
    initial_guess: SE3,
    min_icp_goodness: float,
) -> LoopClosureVerdict:
    """Accept an alignment if it is good and close to the window estimate."""
    correction = correction_percent(result.pose, initial_guess)
    return LoopClosureVerdict(
        accepted=result.goodness > min_icp_goodness and correction < MAX_CORRECTION_RATIO,
        goodness=result.goodness,
        correction_percent=correction,
    )


class LoopClosureScheduler:
    """Picks and deduplicates window pairs to verify."""

    def __init__(self, world_model: WorldModel | None = None) -> None:
        """Initialize scheduler.

        Args:
            world_model: Optional global entity graph used to skip pairs
                that are already connected by a factor
        """
        self._world_model = world_model
        self.checked_pairs = CheckedPairSet()

    def select_candidate(self, window: LocalWindowGraph) -> int | None:
        """Member at the median rank by distance from the root."""
        members = window.members_by_distance()
        if len(members) < 2:
            return None
        return members[len(members) // 2][0]

    def _already_neighbors(self, a: int, b: int) -> bool:
        if self._world_model is None:
            return False
        self._world_model.entities_lock()
        try:
            connected = self._world_model.entity_neighbors(a)
        finally:
            self._world_model.entities_unlock()
        return b in connected

    def next_job(self, window: LocalWindowGraph) -> VerificationJob | None:
        """Pick the next pair to verify, if any.

        The returned pair is already recorded in checked_pairs; the caller
        must dispatch it.
        """
        candidate = self.select_candidate(window)
        if candidate is None:
            return None
        root = window.root

        if abs(candidate - root) < ADJACENT_ID_GAP:
            self.checked_pairs.add(root, candidate)
            return None

        if self.checked_pairs.contains(root, candidate):
            logger.debug("Pair #%d <=> #%d already checked", root, candidate)
            return None

        if self._already_neighbors(candidate, root):
            logger.debug(
                "Discarding pair check since a factor already exists between "
                "#%d <=> #%d",
                candidate,
                root,
            )
            self.checked_pairs.add(root, candidate)
            return None

        job = VerificationJob(
            from_id=root,
            to_id=candidate,
            from_cloud=window.cloud(root),
            to_cloud=window.cloud(candidate),
            initial_guess=window.pose_of(candidate),
        )
        self.checked_pairs.add(root, candidate)
        return job

    def reset(self) -> None:
        self.checked_pairs.clear()
