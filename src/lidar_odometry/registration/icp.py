"""Point-to-point ICP, a reference registration oracle.

Alternates between:
    - correspondences: nearest "from" point for each (decimated) "to"
      point, within threshold_dist
    - update: closed-form rigid fit of the matched pairs via SVD

and stops when the update step becomes negligible or max_iterations is
reached.
"""

from __future__ import annotations

import numpy as np
from scipy.spatial import cKDTree

from ..config import ICPParams
from ..frontend.observation import PointCloud
from ..frontend.pose import SE3
from .oracle import RegistrationResult

MIN_CORRESPONDENCES = 6  # SE(3) has 6 DOF
MIN_TRANSLATION_STEP = 1e-4  # meters


def best_fit_se3(src: np.ndarray, tgt: np.ndarray) -> SE3:
    """Least-squares rigid transform T minimizing ||T * src - tgt||.

    Args:
        src: (N, 3) source points
        tgt: (N, 3) matched target points

    Returns:
        SE3 mapping src onto tgt
    """
    src_cent = src.mean(axis=0)
    tgt_cent = tgt.mean(axis=0)
    H = (src - src_cent).T @ (tgt - tgt_cent)
    U, _, Vt = np.linalg.svd(H)
    R = Vt.T @ U.T

    # Reflection case
    if np.linalg.det(R) < 0.0:
        Vt[2, :] *= -1.0
        R = Vt.T @ U.T

    t = tgt_cent - R @ src_cent
    return SE3(rotation=R, translation=t)


class PointToPointICP:
    """Registration oracle based on point-to-point ICP."""

    def align(
        self,
        from_cloud: PointCloud,
        to_cloud: PointCloud,
        initial_guess: SE3,
        params: ICPParams,
    ) -> RegistrationResult:
        """Estimate the pose of to_cloud w.r.t. from_cloud.

        Goodness is the fraction of sampled "to" points that found a
        correspondence at the final estimate.
        """
        step = max(1, params.corresponding_points_decimation)
        source = to_cloud.points[::step]
        tree = cKDTree(from_cloud.points)

        pose = initial_guess
        goodness = 0.0
        mse = 0.0
        n_matched = 0
        iterations = 0

        for i in range(params.max_iterations):
            iterations = i + 1
            moved = (pose.rotation @ source.T).T + pose.translation
            dist, idx = tree.query(moved, distance_upper_bound=params.threshold_dist)
            matched = np.isfinite(dist)
            n_matched = int(matched.sum())
            goodness = n_matched / max(len(source), 1)

            if n_matched < MIN_CORRESPONDENCES:
                goodness = 0.0
                break

            mse = float(np.mean(dist[matched] ** 2))
            new_pose = best_fit_se3(source[matched], from_cloud.points[idx[matched]])
            delta = new_pose - pose
            pose = new_pose

            if (
                delta.norm() < MIN_TRANSLATION_STEP
                and delta.rotation_angle < params.threshold_ang
            ):
                break

        if params.skip_cov_calculation or n_matched == 0:
            covariance = np.eye(6, dtype=np.float64)
        else:
            covariance = np.eye(6, dtype=np.float64) * (mse / n_matched)

        return RegistrationResult(
            pose=pose,
            covariance=covariance,
            goodness=goodness,
            iterations=iterations,
        )
