"""Tests for the registration adapter and the reference ICP oracle."""

import numpy as np
import pytest

from lidar_odometry.config import ICPParams
from lidar_odometry.errors import RegistrationError
from lidar_odometry.frontend.observation import PointCloud
from lidar_odometry.frontend.pose import SE3
from lidar_odometry.registration import (
    PointToPointICP,
    RegistrationAdapter,
    RegistrationResult,
    best_fit_se3,
)


class FixedOracle:
    """Returns a preset result and records the params it was called with."""

    def __init__(self, result):
        self.result = result
        self.params = None

    def align(self, from_cloud, to_cloud, initial_guess, params):
        self.params = params
        return self.result


def grid_cloud() -> PointCloud:
    xs, ys, zs = np.meshgrid(np.arange(10.0), np.arange(8.0), np.arange(3.0), indexing="ij")
    return PointCloud(points=np.stack([xs.ravel(), ys.ravel(), zs.ravel()], axis=1))


class TestRegistrationAdapter:
    """Test suite for RegistrationAdapter."""

    def test_decimation_from_point_count(self):
        oracle = FixedOracle(RegistrationResult(pose=SE3.identity(), goodness=0.5))
        adapter = RegistrationAdapter(oracle, ICPParams(), decimate_to_point_count=50)
        cloud = PointCloud(points=np.zeros((240, 3)))

        adapter.align(cloud, cloud, SE3.identity())

        assert oracle.params.corresponding_points_decimation == 4

    def test_decimation_disabled(self):
        oracle = FixedOracle(RegistrationResult(pose=SE3.identity(), goodness=0.5))
        adapter = RegistrationAdapter(oracle, ICPParams(), decimate_to_point_count=0)
        assert adapter.decimation_for(PointCloud(points=np.zeros((1000, 3)))) == 1

    def test_decimation_never_below_one(self):
        adapter = RegistrationAdapter(FixedOracle(None), ICPParams(), decimate_to_point_count=500)
        assert adapter.decimation_for(PointCloud(points=np.zeros((10, 3)))) == 1

    def test_base_params_not_mutated(self):
        params = ICPParams()
        oracle = FixedOracle(RegistrationResult(pose=SE3.identity()))
        adapter = RegistrationAdapter(oracle, params, decimate_to_point_count=10)
        adapter.align(grid_cloud(), grid_cloud(), SE3.identity())
        assert params.corresponding_points_decimation == 1

    @pytest.mark.parametrize("raw, expected", [(1.7, 1.0), (-0.2, 0.0), (float("nan"), 0.0)])
    def test_goodness_is_clamped(self, raw, expected):
        oracle = FixedOracle(RegistrationResult(pose=SE3.identity(), goodness=raw))
        result = RegistrationAdapter(oracle).align(grid_cloud(), grid_cloud(), SE3.identity())
        assert result.goodness == expected

    def test_oracle_result_not_modified(self):
        raw = RegistrationResult(pose=SE3.identity(), goodness=1.7)
        result = RegistrationAdapter(FixedOracle(raw)).align(grid_cloud(), grid_cloud(), SE3.identity())
        assert result.goodness == 1.0
        assert raw.goodness == 1.7

    @pytest.mark.parametrize("bad", ["translation", "rotation"])
    def test_non_finite_pose_becomes_failed_alignment(self, bad):
        pose = SE3.from_translation(0.5, 0.0, 0.0)
        if bad == "translation":
            pose.translation[1] = np.nan
        else:
            pose.rotation[0, 0] = np.inf
        oracle = FixedOracle(RegistrationResult(pose=pose, goodness=0.9, iterations=7))

        result = RegistrationAdapter(oracle).align(grid_cloud(), grid_cloud(), SE3.identity())

        assert result.goodness == 0.0
        assert result.iterations == 7
        np.testing.assert_array_equal(result.pose.to_matrix(), np.eye(4))

    def test_malformed_result(self):
        adapter = RegistrationAdapter(FixedOracle(None))
        with pytest.raises(RegistrationError):
            adapter.align(grid_cloud(), grid_cloud(), SE3.identity())


class TestPointToPointICP:
    """Test suite for the reference ICP oracle."""

    def test_best_fit_recovers_transform(self):
        src = grid_cloud().points
        T = SE3.from_rvec_tvec(np.array([0.0, 0.0, 0.1]), np.array([0.5, -0.2, 0.1]))
        tgt = (T.rotation @ src.T).T + T.translation

        estimate = best_fit_se3(src, tgt)

        np.testing.assert_allclose(estimate.to_matrix(), T.to_matrix(), atol=1e-9)

    def test_recovers_translation(self):
        from_cloud = grid_cloud()
        # Sensor moved +0.2 m along x: the same points appear shifted by -0.2
        to_cloud = PointCloud(points=from_cloud.points - np.array([0.2, 0.0, 0.0]))

        result = PointToPointICP().align(from_cloud, to_cloud, SE3.identity(), ICPParams())

        np.testing.assert_allclose(result.pose.translation, [0.2, 0.0, 0.0], atol=1e-6)
        assert result.goodness == pytest.approx(1.0)
        assert result.covariance.shape == (6, 6)

    def test_no_overlap_gives_zero_goodness(self):
        from_cloud = grid_cloud()
        to_cloud = PointCloud(points=from_cloud.points + 100.0)

        result = PointToPointICP().align(from_cloud, to_cloud, SE3.identity(), ICPParams())

        assert result.goodness == 0.0

    def test_respects_decimation(self):
        from_cloud = grid_cloud()
        params = ICPParams(corresponding_points_decimation=3)
        result = PointToPointICP().align(from_cloud, from_cloud, SE3.identity(), params)
        assert result.goodness == pytest.approx(1.0)
        assert result.pose.norm() == pytest.approx(0.0, abs=1e-9)
