"""Shared fixtures: synthetic scans and scripted collaborators."""

from __future__ import annotations

from concurrent.futures import Future

import numpy as np
import pytest

from lidar_odometry.backend import AddFactorResult, ProposeKeyframeResult
from lidar_odometry.config import ICPParams, LidarOdometryConfig
from lidar_odometry.frontend import SE3, Observation, PointCloud
from lidar_odometry.registration import RegistrationResult

SCAN_PERIOD_NS = 100_000_000  # 10 Hz


def make_world(seed: int = 0, n: int = 300) -> np.ndarray:
    """Random static world points."""
    rng = np.random.default_rng(seed)
    return rng.uniform(-20.0, 20.0, size=(n, 3))


def scan_at(world: np.ndarray, x: float, y: float = 0.0, z: float = 0.0) -> PointCloud:
    """World points seen from a sensor at (x, y, z) with identity orientation."""
    return PointCloud(points=world - np.array([x, y, z]))


def make_observation(
    world: np.ndarray, index: int, step: float = 0.6, label: str = "lidar"
) -> Observation:
    """Scan number index of a sensor moving along +x at step meters per scan."""
    return Observation(
        sensor_label=label,
        timestamp_ns=index * SCAN_PERIOD_NS,
        payload=scan_at(world, index * step),
    )


class CentroidOracle:
    """Translation-only oracle: exact for clouds produced by scan_at().

    The pose of "to" w.r.t. "from" is the centroid difference.
    """

    def __init__(self, goodness: float = 0.9) -> None:
        self.goodness = goodness
        self.calls: list[tuple[PointCloud, PointCloud, SE3, ICPParams]] = []

    def align(
        self,
        from_cloud: PointCloud,
        to_cloud: PointCloud,
        initial_guess: SE3,
        params: ICPParams,
    ) -> RegistrationResult:
        self.calls.append((from_cloud, to_cloud, initial_guess, params))
        delta = from_cloud.points.mean(axis=0) - to_cloud.points.mean(axis=0)
        return RegistrationResult(
            pose=SE3.from_translation(*delta),
            goodness=self.goodness,
            iterations=1,
        )


class RejectingBackend:
    """Backend that refuses every request."""

    def __init__(self, kf_result: ProposeKeyframeResult | None = None) -> None:
        self._kf_result = kf_result or ProposeKeyframeResult(success=False)

    def propose_keyframe(self, request):
        future = Future()
        future.set_result(self._kf_result)
        return future

    def add_factor(self, factor):
        future = Future()
        future.set_result(AddFactorResult(success=False))
        return future


@pytest.fixture
def world() -> np.ndarray:
    return make_world()


@pytest.fixture
def config() -> LidarOdometryConfig:
    return LidarOdometryConfig(
        min_dist_xyz_between_keyframes=1.0,
        min_time_between_scans=0.05,
        min_icp_goodness=0.4,
        decimate_to_point_count=0,
        max_local_window_size=5,
    )
