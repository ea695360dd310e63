"""Bounded local pose graph of recent keyframes.

The window holds the point clouds of recent keyframes and the relative
pose edges between them. Poses are expressed with respect to a root (the
most recent keyframe) and are recomputed by propagating edges along
shortest paths from the root whenever it changes. Members that end up
too far from the root are evicted: distant history belongs to global
loop closure, not to odometry.

Not thread-safe; callers serialize access.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.sparse import lil_matrix
from scipy.sparse.csgraph import dijkstra

from ..backend.interfaces import INVALID_ID
from ..frontend.observation import PointCloud
from ..frontend.pose import SE3


def pair_key(a: int, b: int) -> tuple[int, int]:
    """Unordered keyframe pair as a sorted tuple."""
    return (a, b) if a <= b else (b, a)


@dataclass
class WindowEdge:
    """An edge in the local window.

    Attributes:
        from_id: Source keyframe ID
        to_id: Target keyframe ID
        measurement: Relative transform T_from_to
        is_loop: Whether this edge came from loop-closure verification
    """

    from_id: int
    to_id: int
    measurement: SE3
    is_loop: bool = False

    def pose_from(self, kf_id: int) -> SE3:
        """Pose of the other endpoint seen from kf_id."""
        if kf_id == self.from_id:
            return self.measurement
        return self.measurement.inverse()

    def other(self, kf_id: int) -> int:
        return self.to_id if kf_id == self.from_id else self.from_id


class LocalWindowGraph:
    """Keyframe window: cached clouds, edges, and poses relative to root."""

    def __init__(self) -> None:
        self.root: int = INVALID_ID
        self._nodes: dict[int, SE3] = {}
        self._edges: dict[tuple[int, int], WindowEdge] = {}
        self._clouds: dict[int, PointCloud] = {}

    def add_keyframe(self, kf_id: int, cloud: PointCloud) -> None:
        """Cache the point cloud of a newly committed keyframe."""
        self._clouds[kf_id] = cloud

    def add_edge(
        self,
        from_id: int,
        to_id: int,
        relative_pose: SE3,
        is_loop: bool = False,
    ) -> None:
        """Insert (or replace) the edge between two keyframes.

        Args:
            from_id: Source keyframe ID
            to_id: Target keyframe ID
            relative_pose: Pose of to_id expressed in the frame of from_id
            is_loop: Whether this is a loop closure edge
        """
        self._edges[pair_key(from_id, to_id)] = WindowEdge(
            from_id=from_id,
            to_id=to_id,
            measurement=relative_pose,
            is_loop=is_loop,
        )

    def has_edge(self, a: int, b: int) -> bool:
        return pair_key(a, b) in self._edges

    def contains(self, kf_id: int) -> bool:
        """True if kf_id still has a cached cloud in the window."""
        return kf_id in self._clouds

    def neighbors_of(self, kf_id: int) -> set[int]:
        """Keyframes sharing an edge with kf_id."""
        return {e.other(kf_id) for e in self._edges.values() if kf_id in (e.from_id, e.to_id)}

    def cloud(self, kf_id: int) -> PointCloud | None:
        return self._clouds.get(kf_id)

    def shortest_path_poses(self, root: int) -> dict[int, SE3]:
        """Recompute member poses relative to a new root.

        Edges are traversed with unit weight; each reachable member's pose
        is the composition of edge measurements along its shortest path
        from the root. Members not reachable from the root get no pose.

        Returns:
            Mapping keyframe id -> pose relative to root
        """
        self.root = root
        self._nodes = {}
        if root not in self._clouds:
            return {}

        ids = sorted(set(self._clouds) | {i for k in self._edges for i in k})
        index = {kf_id: i for i, kf_id in enumerate(ids)}

        adjacency = lil_matrix((len(ids), len(ids)), dtype=np.float64)
        for a, b in self._edges:
            adjacency[index[a], index[b]] = 1.0
            adjacency[index[b], index[a]] = 1.0

        _, predecessors = dijkstra(
            adjacency.tocsr(),
            directed=False,
            indices=index[root],
            unweighted=True,
            return_predecessors=True,
        )

        poses: dict[int, SE3] = {root: SE3.identity()}

        def resolve(kf_id: int) -> SE3:
            # Walk back to the nearest resolved ancestor, then compose forward
            chain = []
            while kf_id not in poses:
                chain.append(kf_id)
                kf_id = ids[predecessors[index[kf_id]]]
            for child in reversed(chain):
                edge = self._edges[pair_key(kf_id, child)]
                poses[child] = poses[kf_id].compose(edge.pose_from(kf_id))
                kf_id = child
            return poses[kf_id]

        for kf_id in self._clouds:
            if kf_id == root or predecessors[index[kf_id]] < 0:
                continue
            resolve(kf_id)

        self._nodes = {k: v for k, v in poses.items() if k in self._clouds}
        return dict(self._nodes)

    def members_by_distance(self) -> list[tuple[int, float]]:
        """Members with their distance to the root, nearest first.

        The root always comes first; ties are broken by keyframe id.
        """
        return sorted(
            ((kf_id, pose.norm()) for kf_id, pose in self._nodes.items()),
            key=lambda item: (item[1], item[0] != self.root, item[0]),
        )

    def pose_of(self, kf_id: int) -> SE3 | None:
        """Pose of kf_id relative to the current root."""
        return self._nodes.get(kf_id)

    def remove_keyframe(self, kf_id: int) -> None:
        """Drop a member together with its cloud and incident edges."""
        self._nodes.pop(kf_id, None)
        self._clouds.pop(kf_id, None)
        for key in [k for k in self._edges if kf_id in k]:
            del self._edges[key]

    def prune(self, max_size: int) -> list[int]:
        """Evict members until at most max_size remain.

        Members unreachable from the root go first, then the ones with the
        largest distance to the root.

        Returns:
            Evicted keyframe ids, in eviction order
        """
        evicted = [kf_id for kf_id in self._clouds if kf_id not in self._nodes]
        for kf_id in evicted:
            self.remove_keyframe(kf_id)

        by_distance = self.members_by_distance()
        while len(self._nodes) > max_size:
            kf_id, _ = by_distance.pop()
            self.remove_keyframe(kf_id)
            evicted.append(kf_id)
        return evicted

    def clear(self) -> None:
        self.root = INVALID_ID
        self._nodes.clear()
        self._edges.clear()
        self._clouds.clear()

    @property
    def nodes(self) -> dict[int, SE3]:
        """Poses relative to root (read-only copy)."""
        return dict(self._nodes)

    @property
    def edges(self) -> list[WindowEdge]:
        return list(self._edges.values())

    @property
    def num_members(self) -> int:
        return len(self._nodes)

    @property
    def num_clouds(self) -> int:
        return len(self._clouds)

    def __len__(self) -> int:
        return len(self._nodes)
