"""LiDAR odometry front-end: keyframe decimation and local loop closure.

LidarOdometry combines:
- Primary worker: per-scan pipeline (rate gate, registration against the
  previous scan, motion model, keyframe decision, window update)
- Loop-closure worker: verification of non-adjacent keyframe pairs of the
  local window, off the critical path

Both workers share one FrontEndContext owned by the LidarOdometry
instance; several instances can run side by side in one process.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable

from .backend.interfaces import (
    Backend,
    ProposeKeyframeRequest,
    RelativePoseFactor,
    WorldModel,
    commit_factor,
    commit_keyframe,
)
from .config import LidarOdometryConfig
from .errors import NotInitializedError, WorkerPoolError
from .frontend.keyframe import KeyframeDecision, ProcessingState
from .frontend.motion_model import ConstantVelocityModel, RateGate, seconds_between
from .frontend.observation import Observation, PointCloud, points_from_observation
from .loop_closure.local_window import LocalWindowGraph
from .loop_closure.scheduler import (
    LoopClosureScheduler,
    LoopClosureVerdict,
    evaluate_loop_closure,
)
from .loop_closure.messages import VerificationJob
from .registration.oracle import RegistrationAdapter, RegistrationOracle
from .worker_pool import TaskResult, WorkerPool

logger = logging.getLogger(__name__)

# Observations are dropped when more than this many are already queued
MAX_QUEUED_OBSERVATIONS = 1
DROP_WARNING_PERIOD = 5.0  # seconds


class ObservationOutcome(Enum):
    """What the primary worker did with an observation."""

    RATE_LIMITED = "rate_limited"
    NO_POINTS = "no_points"
    FIRST_CLOUD = "first_cloud"
    REGISTERED = "registered"
    KEYFRAME_CREATED = "keyframe_created"


@dataclass
class FrontEndStats:
    """Counters of the front-end."""

    observations_received: int = 0
    ignored_sensor: int = 0
    dropped_busy: int = 0
    dropped_rate_limited: int = 0
    conversion_failures: int = 0
    registrations: int = 0
    keyframes: int = 0
    loop_closures_dispatched: int = 0
    loop_closures_accepted: int = 0
    loop_closures_rejected: int = 0
    task_failures: int = 0


@dataclass
class FrontEndContext:
    """Everything a task needs, owned by one LidarOdometry instance.

    ``lock`` guards the local window and the scheduler's checked pairs,
    which both workers touch.
    """

    config: LidarOdometryConfig
    registration: RegistrationAdapter
    backend: Backend
    cloud_builder: Callable[[Observation], PointCloud | None]
    scheduler: LoopClosureScheduler
    loop_pool: WorkerPool
    rate_gate: RateGate
    keyframe_decision: KeyframeDecision
    state: ProcessingState = field(default_factory=ProcessingState)
    window: LocalWindowGraph = field(default_factory=LocalWindowGraph)
    stats: FrontEndStats = field(default_factory=FrontEndStats)
    lock: threading.Lock = field(default_factory=threading.Lock)
    stats_lock: threading.Lock = field(default_factory=threading.Lock)

    def count(self, counter: str) -> None:
        with self.stats_lock:
            setattr(self.stats, counter, getattr(self.stats, counter) + 1)


def count_failures(
    ctx: FrontEndContext, future: Future[TaskResult]
) -> Future[TaskResult]:
    """Count the task in ``task_failures`` if it resolves with an error."""

    def on_done(done: Future[TaskResult]) -> None:
        if not done.cancelled() and not done.result().ok:
            ctx.count("task_failures")

    future.add_done_callback(on_done)
    return future


def process_observation_task(
    ctx: FrontEndContext, obs: Observation
) -> ObservationOutcome:
    """Run the per-scan pipeline for one observation.

    Raises:
        BackendContractError: If the backend rejects a keyframe or factor
    """
    state = ctx.state

    # Only process pointclouds that are sufficiently apart in time
    if not ctx.rate_gate.accept(state.last_obs_timestamp_ns, obs.timestamp_ns):
        ctx.count("dropped_rate_limited")
        logger.debug("Scan at t=%dns rate-limited", obs.timestamp_ns)
        return ObservationOutcome.RATE_LIMITED

    points = ctx.cloud_builder(obs)
    if points is None:
        ctx.count("conversion_failures")
        logger.warning(
            "Observation of type `%s` from `%s` could not be converted into a "
            "pointcloud. Doing nothing.",
            type(obs.payload).__name__,
            obs.sensor_label,
        )
        return ObservationOutcome.NO_POINTS

    last_timestamp_ns = state.last_obs_timestamp_ns
    last_points = state.last_points
    state.last_obs = obs
    state.last_obs_timestamp_ns = obs.timestamp_ns
    state.last_points = points

    # Registration needs two pointclouds
    if last_points is None:
        logger.debug("First pointcloud: skipping ICP.")
        return ObservationOutcome.FIRST_CLOUD

    dt = seconds_between(last_timestamp_ns, obs.timestamp_ns)
    initial_guess = ConstantVelocityModel.predict(state.twist, dt)
    result = ctx.registration.align(last_points, points, initial_guess)
    ctx.count("registrations")

    rel_pose = result.pose
    state.twist = ConstantVelocityModel.update(state.twist, rel_pose, dt)

    logger.debug(
        "Cur point count=%d last point count=%d",
        len(points),
        len(last_points),
    )
    logger.debug("Est.twist=%s", state.twist.as_string())
    logger.debug("Time since last scan=%.3fs", dt)

    dist = ctx.keyframe_decision.accumulate(state, rel_pose)
    logger.debug("Since last KF: dist=%5.03f m", dist)

    outcome = ObservationOutcome.REGISTERED
    if ctx.keyframe_decision.should_create(result.goodness, state.accum_since_last_kf):
        _create_keyframe(ctx, obs, points)
        outcome = ObservationOutcome.KEYFRAME_CREATED

    with ctx.lock:
        num_clouds = ctx.window.num_clouds
    if num_clouds > 1:
        check_for_nearby_keyframes(ctx)

    return outcome


def _create_keyframe(ctx: FrontEndContext, obs: Observation, points: PointCloud) -> None:
    state = ctx.state

    request = ProposeKeyframeRequest(timestamp_ns=obs.timestamp_ns, observations=[obs])
    new_kf_id = commit_keyframe(ctx.backend, request)

    with ctx.lock:
        ctx.window.add_keyframe(new_kf_id, points)

    # SE(3) constraint between consecutive keyframes
    if state.has_keyframe:
        factor = RelativePoseFactor(
            from_id=state.last_kf,
            to_id=new_kf_id,
            relative_pose=state.accum_since_last_kf,
        )
        commit_factor(ctx.backend, factor)
        with ctx.lock:
            ctx.window.add_edge(state.last_kf, new_kf_id, state.accum_since_last_kf)

    ctx.count("keyframes")
    logger.info(
        "New KF: ID=%d rel_pose=%s", new_kf_id, state.accum_since_last_kf.as_string()
    )
    ctx.keyframe_decision.on_keyframe_committed(state, new_kf_id)


def check_for_nearby_keyframes(ctx: FrontEndContext) -> Future[TaskResult] | None:
    """Re-root the window, evict distant members and dispatch one check.

    Returns:
        Future of the dispatched verification task, or None
    """
    with ctx.lock:
        ctx.window.shortest_path_poses(ctx.state.last_kf)
        evicted = ctx.window.prune(ctx.config.max_local_window_size)
        if evicted:
            logger.debug("Evicted KFs from local window: %s", evicted)

        job = ctx.scheduler.next_job(ctx.window)
        if job is None:
            return None
        future = ctx.loop_pool.enqueue(verify_loop_closure_task, ctx, job)

    ctx.count("loop_closures_dispatched")
    return count_failures(ctx, future)


def verify_loop_closure_task(
    ctx: FrontEndContext, job: VerificationJob
) -> LoopClosureVerdict:
    """Align a non-adjacent keyframe pair and keep the edge if it agrees.

    Raises:
        BackendContractError: If the backend rejects the new factor
    """
    result = ctx.registration.align(job.from_cloud, job.to_cloud, job.initial_guess)
    verdict = evaluate_loop_closure(result, job.initial_guess, ctx.config.min_icp_goodness)

    logger.debug(
        "Checking KFs: #%d ==> #%d goodness=%.03f rel_pose=%s init_guess=%s "
        "(changes %.1f%%)",
        job.from_id,
        job.to_id,
        verdict.goodness,
        result.pose.as_string(),
        job.initial_guess.as_string(),
        100 * verdict.correction_percent,
    )

    if not verdict.accepted:
        ctx.count("loop_closures_rejected")
        return verdict

    factor = RelativePoseFactor(
        from_id=job.from_id, to_id=job.to_id, relative_pose=result.pose
    )
    commit_factor(ctx.backend, factor)

    with ctx.lock:
        if ctx.window.contains(job.from_id) and ctx.window.contains(job.to_id):
            ctx.window.add_edge(job.from_id, job.to_id, result.pose, is_loop=True)
        else:
            logger.debug(
                "KF #%d or #%d left the window; edge not mirrored",
                job.from_id,
                job.to_id,
            )

    ctx.count("loop_closures_accepted")
    logger.info("New loop closure edge: #%d <=> #%d", job.from_id, job.to_id)
    return verdict


class LidarOdometry:
    """LiDAR odometry front-end with explicit lifecycle.

    create -> initialize(config) -> process_observation(...)* -> reset()
    -> shutdown()
    """

    def __init__(
        self,
        oracle: RegistrationOracle,
        backend: Backend,
        world_model: WorldModel | None = None,
        cloud_builder: Callable[[Observation], PointCloud | None] | None = None,
        config: LidarOdometryConfig | None = None,
    ) -> None:
        """Initialize front-end.

        Args:
            oracle: Point-cloud registration algorithm
            backend: Keyframe / factor store
            world_model: Optional global entity graph for pair deduplication
            cloud_builder: Observation to PointCloud conversion; defaults to
                points_from_observation
            config: Default configuration for initialize()
        """
        self._oracle = oracle
        self._backend = backend
        self._world_model = world_model
        self._cloud_builder = cloud_builder or points_from_observation
        self._config = config

        self._primary_pool = WorkerPool("lidar-odom")
        self._loop_pool = WorkerPool("lidar-odom-loops")
        self._ctx: FrontEndContext | None = None
        self._last_drop_warning = -math.inf

    def initialize(self, config: LidarOdometryConfig | None = None) -> None:
        """Validate config, build the context and start both workers.

        Raises:
            ConfigError: If the config is invalid
        """
        config = config or self._config or LidarOdometryConfig()
        config.validate()

        self._ctx = FrontEndContext(
            config=config,
            registration=RegistrationAdapter(
                self._oracle,
                params=config.icp,
                decimate_to_point_count=config.decimate_to_point_count,
            ),
            backend=self._backend,
            cloud_builder=self._cloud_builder,
            scheduler=LoopClosureScheduler(world_model=self._world_model),
            loop_pool=self._loop_pool,
            rate_gate=RateGate(config.min_time_between_scans),
            keyframe_decision=KeyframeDecision(
                min_dist_xyz_between_keyframes=config.min_dist_xyz_between_keyframes,
                min_icp_goodness=config.min_icp_goodness,
            ),
        )
        self._primary_pool.start()
        self._loop_pool.start()
        logger.info("LiDAR odometry initialized: %s", config)

    def process_observation(self, obs: Observation) -> Future[TaskResult] | None:
        """Queue an observation for processing.

        Returns:
            Future of the processing task, or None if the observation was
            ignored (other sensor) or dropped (workers too busy)

        Raises:
            NotInitializedError: If called before initialize()
        """
        ctx = self._require_context()
        ctx.count("observations_received")

        label = ctx.config.raw_sensor_label
        if label is not None and obs.sensor_label != label:
            ctx.count("ignored_sensor")
            return None

        if self._primary_pool.pending_tasks() > MAX_QUEUED_OBSERVATIONS:
            ctx.count("dropped_busy")
            now = time.monotonic()
            if now - self._last_drop_warning >= DROP_WARNING_PERIOD:
                self._last_drop_warning = now
                logger.warning("Dropping observation due to worker threads too busy.")
            return None

        future = self._primary_pool.enqueue(process_observation_task, ctx, obs)
        return count_failures(ctx, future)

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until both workers have no queued or running task.

        Returns:
            True if idle, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        def remaining() -> float | None:
            return None if deadline is None else max(0.0, deadline - time.monotonic())

        # Scan tasks can dispatch loop-closure checks, so drain them first
        if not self._primary_pool.wait_until_idle(remaining()):
            return False
        return self._loop_pool.wait_until_idle(remaining())

    def reset(self, timeout: float | None = None) -> None:
        """Clear processing state, local window and checked pairs.

        Scans already queued or running are processed first, so none of
        them writes into the cleared state.

        Args:
            timeout: Maximum time (s) to wait for the primary worker

        Raises:
            WorkerPoolError: If the primary worker is still busy after timeout
        """
        ctx = self._require_context()
        if not self._primary_pool.wait_until_idle(timeout):
            raise WorkerPoolError("Primary worker still busy; reset aborted")
        with ctx.lock:
            ctx.state = ProcessingState()
            ctx.window.clear()
            ctx.scheduler.reset()
        logger.info("LiDAR odometry reset")

    def shutdown(self, timeout: float | None = None) -> None:
        """Finish queued work and stop both workers."""
        self._primary_pool.stop(timeout=timeout)
        self._loop_pool.stop(timeout=timeout)
        self._ctx = None
        logger.info("LiDAR odometry shut down")

    def _require_context(self) -> FrontEndContext:
        if self._ctx is None:
            raise NotInitializedError("LidarOdometry.initialize() must be called first")
        return self._ctx

    @property
    def context(self) -> FrontEndContext:
        return self._require_context()

    @property
    def stats(self) -> FrontEndStats:
        """Snapshot of the front-end counters."""
        ctx = self._require_context()
        with ctx.stats_lock:
            return replace(ctx.stats)

    @property
    def is_running(self) -> bool:
        return self._ctx is not None and self._primary_pool.is_running
