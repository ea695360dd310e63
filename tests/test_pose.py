"""Tests for SE3 and Twist."""

import numpy as np
import pytest

from lidar_odometry.frontend.pose import SE3, Twist


class TestSE3:
    """Test suite for SE3."""

    def test_identity(self):
        T = SE3.identity()
        np.testing.assert_allclose(T.to_matrix(), np.eye(4))
        assert T.norm() == 0.0

    def test_invalid_shapes(self):
        with pytest.raises(ValueError, match="Rotation must be 3x3"):
            SE3(rotation=np.eye(2), translation=np.zeros(3))
        with pytest.raises(ValueError, match="Translation must be"):
            SE3(rotation=np.eye(3), translation=np.zeros(4))

    def test_compose_and_inverse(self):
        T = SE3.from_rvec_tvec(np.array([0.0, 0.0, np.pi / 2]), np.array([1.0, 2.0, 0.0]))
        result = T @ T.inverse()
        np.testing.assert_allclose(result.to_matrix(), np.eye(4), atol=1e-12)

    def test_compose_translations(self):
        a = SE3.from_translation(1.0, 0.0, 0.0)
        b = SE3.from_translation(0.5, 2.0, 0.0)
        np.testing.assert_allclose((a @ b).translation, [1.5, 2.0, 0.0])

    def test_compose_applies_rotation(self):
        """A forward step after a 90 degree yaw moves along +y."""
        yaw = SE3.from_rvec_tvec(np.array([0.0, 0.0, np.pi / 2]), np.zeros(3))
        step = SE3.from_translation(1.0, 0.0, 0.0)
        np.testing.assert_allclose((yaw @ step).translation, [0.0, 1.0, 0.0], atol=1e-12)

    def test_inverse_composition(self):
        """a - b is a seen from b."""
        a = SE3.from_translation(3.0, 0.0, 0.0)
        b = SE3.from_translation(1.0, 0.0, 0.0)
        np.testing.assert_allclose((a - b).translation, [2.0, 0.0, 0.0])
        assert (a - a).norm() == pytest.approx(0.0)

    def test_norm_is_translational(self):
        T = SE3.from_rvec_tvec(np.array([0.3, 0.0, 0.0]), np.array([3.0, 4.0, 0.0]))
        assert T.norm() == pytest.approx(5.0)

    def test_rotation_angle(self):
        T = SE3.from_rvec_tvec(np.array([0.0, 0.2, 0.0]), np.zeros(3))
        assert T.rotation_angle == pytest.approx(0.2)

    def test_matrix_roundtrip(self):
        T = SE3.from_rvec_tvec(np.array([0.1, -0.2, 0.3]), np.array([1.0, 2.0, 3.0]))
        np.testing.assert_allclose(SE3.from_matrix(T.to_matrix()).to_matrix(), T.to_matrix())

    def test_from_matrix_rejects_bad_shape(self):
        with pytest.raises(ValueError, match="Transform must be 4x4"):
            SE3.from_matrix(np.eye(3))

    def test_as_string(self):
        s = SE3.from_translation(1.0, 2.0, 3.0).as_string()
        assert s.startswith("[1.000 2.000 3.000")


class TestTwist:
    def test_defaults_to_zero(self):
        twist = Twist()
        assert (twist.vx, twist.vy, twist.vz, twist.wx, twist.wy, twist.wz) == (0.0,) * 6
        assert "m/s" in twist.as_string()
