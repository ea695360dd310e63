"""Adapter around the point-cloud registration oracle.

The oracle estimates the pose of one cloud with respect to another from
an initial guess. It is a black box with possibly large latency; a
non-converging alignment is reported as low goodness, not as an error.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Protocol

import numpy as np

from ..config import ICPParams
from ..errors import RegistrationError
from ..frontend.observation import PointCloud
from ..frontend.pose import SE3

logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
    """Output of one alignment.

    Attributes:
        pose: Estimated pose of the "to" cloud w.r.t. the "from" cloud
        covariance: 6x6 uncertainty of the estimate
        goodness: Quality score in [0, 1]
        iterations: Iterations used by the oracle
    """

    pose: SE3
    covariance: np.ndarray = field(default_factory=lambda: np.eye(6, dtype=np.float64))
    goodness: float = 0.0
    iterations: int = 0


class RegistrationOracle(Protocol):
    """Point-cloud registration algorithm."""

    def align(
        self,
        from_cloud: PointCloud,
        to_cloud: PointCloud,
        initial_guess: SE3,
        params: ICPParams,
    ) -> RegistrationResult: ...


class RegistrationAdapter:
    """Calls the oracle with per-call decimation and sanitizes its output."""

    def __init__(
        self,
        oracle: RegistrationOracle,
        params: ICPParams | None = None,
        decimate_to_point_count: int = 0,
    ) -> None:
        """Initialize adapter.

        Args:
            oracle: Registration algorithm to call
            params: Base oracle parameters
            decimate_to_point_count: Target number of points used for
                correspondences (0 disables decimation)
        """
        self._oracle = oracle
        self._params = params or ICPParams()
        self._decimate_to = decimate_to_point_count

    def decimation_for(self, to_cloud: PointCloud) -> int:
        """Correspondence decimation factor for a target cloud."""
        if self._decimate_to <= 0:
            return 1
        return max(1, len(to_cloud) // self._decimate_to)

    def align(
        self,
        from_cloud: PointCloud,
        to_cloud: PointCloud,
        initial_guess: SE3,
    ) -> RegistrationResult:
        """Align to_cloud against from_cloud.

        A non-finite pose is replaced by identity with zero goodness, so
        it is treated like any other poor alignment.

        Raises:
            RegistrationError: If the oracle result is malformed
        """
        params = replace(
            self._params,
            corresponding_points_decimation=self.decimation_for(to_cloud),
        )
        result = self._oracle.align(from_cloud, to_cloud, initial_guess, params)

        if result is None or not isinstance(result.pose, SE3):
            raise RegistrationError(f"Oracle returned no pose: {result!r}")

        # Non-finite poses must never reach the motion accumulators
        if not (
            np.isfinite(result.pose.rotation).all()
            and np.isfinite(result.pose.translation).all()
        ):
            logger.warning(
                "Oracle returned a non-finite pose after %d iterations; "
                "using identity with zero goodness",
                result.iterations,
            )
            return replace(result, pose=SE3.identity(), goodness=0.0)

        goodness = float(result.goodness)
        if math.isnan(goodness):
            goodness = 0.0
        result = replace(result, goodness=min(1.0, max(0.0, goodness)))

        logger.debug(
            "ICP: goodness=%.03f iters=%d decimation=%d rel_pose=%s",
            result.goodness,
            result.iterations,
            params.corresponding_points_decimation,
            result.pose.as_string(),
        )
        return result
