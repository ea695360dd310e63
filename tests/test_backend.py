"""Tests for the backend interfaces and in-memory collaborators."""

from concurrent.futures import Future

import pytest

from lidar_odometry.backend import (
    INVALID_ID,
    AddFactorResult,
    InMemoryBackend,
    InMemoryWorldModel,
    ProposeKeyframeRequest,
    ProposeKeyframeResult,
    RelativePoseFactor,
    commit_factor,
    commit_keyframe,
)
from lidar_odometry.errors import BackendContractError
from lidar_odometry.frontend.pose import SE3

from conftest import RejectingBackend


class TestInMemoryBackend:
    """Test suite for InMemoryBackend."""

    def test_contiguous_keyframe_ids(self):
        backend = InMemoryBackend()
        ids = [commit_keyframe(backend, ProposeKeyframeRequest(timestamp_ns=t)) for t in range(3)]
        assert ids == [0, 1, 2]
        assert backend.num_keyframes == 3
        assert backend.get_keyframe(1).timestamp_ns == 1

    def test_factor_between_known_keyframes(self):
        world_model = InMemoryWorldModel()
        backend = InMemoryBackend(world_model=world_model)
        a = commit_keyframe(backend, ProposeKeyframeRequest(timestamp_ns=0))
        b = commit_keyframe(backend, ProposeKeyframeRequest(timestamp_ns=1))

        factor_id = commit_factor(backend, RelativePoseFactor(a, b, SE3.identity()))

        assert factor_id == 0
        assert backend.num_factors == 1
        assert world_model.entity_neighbors(a) == {b}
        assert world_model.entity_neighbors(b) == {a}
        assert world_model.num_entities == 2

    def test_factor_with_unknown_keyframe_fails(self):
        backend = InMemoryBackend()
        with pytest.raises(BackendContractError):
            commit_factor(backend, RelativePoseFactor(0, 1, SE3.identity()))


class TestCommitHelpers:
    """Backend replies that violate the contract are fatal."""

    def test_rejected_keyframe(self):
        with pytest.raises(BackendContractError, match="rejected keyframe"):
            commit_keyframe(RejectingBackend(), ProposeKeyframeRequest(timestamp_ns=0))

    @pytest.mark.parametrize("kf_id", [None, INVALID_ID])
    def test_missing_or_invalid_keyframe_id(self, kf_id):
        backend = RejectingBackend(ProposeKeyframeResult(success=True, new_kf_id=kf_id))
        with pytest.raises(BackendContractError, match="invalid keyframe id"):
            commit_keyframe(backend, ProposeKeyframeRequest(timestamp_ns=0))

    def test_rejected_factor(self):
        with pytest.raises(BackendContractError, match="rejected factor"):
            commit_factor(RejectingBackend(), RelativePoseFactor(0, 1, SE3.identity()))

    def test_missing_factor_id(self):
        class NoIdBackend:
            def add_factor(self, factor):
                future = Future()
                future.set_result(AddFactorResult(success=True))
                return future

        with pytest.raises(BackendContractError, match="invalid factor id"):
            commit_factor(NoIdBackend(), RelativePoseFactor(0, 1, SE3.identity()))
