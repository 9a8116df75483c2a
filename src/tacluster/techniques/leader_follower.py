"""Leader-follower: single-pass clustering with adaptive thresholds."""

from __future__ import annotations

import logging
import math

import numpy as np

from tacluster.core.cluster import Cluster
from tacluster.core.mathutils import max_index
from tacluster.core.types import ClusteringParams, Voxel
from tacluster.core.volume import VoxelSource, iter_voxels
from tacluster.techniques.base import ClusteringTechnique, ProgressCallback, report
from tacluster.techniques.ranking import prune, weakest_index
from tacluster.techniques.registry import register_technique

logger = logging.getLogger(__name__)


@register_technique("leader_follower")
class LeaderFollowerTechnique(ClusteringTechnique):
    """Online clustering in one pass over the voxels.

    Every voxel joins the most similar cluster whose similarity
    (``1 - distance``) exceeds that cluster's threshold, or starts a new
    cluster. Each cluster starts at ``threshold`` and tightens its own limit
    by ``threshold_increment`` whenever it admits a member, so busy clusters
    become harder to join. A limit never drops below ``threshold``. With
    ``peak_gate`` a voxel is only admitted when its peak exceeds the mean
    peak of the chosen cluster. With ``sort_by_peak`` the voxels are visited by
    descending peak amplitude, earlier peak time first on equal amplitude,
    original order otherwise.
    """

    description = "Single-pass leader-follower clustering with adaptive thresholds."
    recommended_for = "Unknown number of kinetic classes, large volumes."
    uses_metric = True
    default_metric = "pearson"

    def init(self) -> None:
        super().init()
        self.limits: list[float] = []
        self.created = 0
        self.dropped = 0

    def process(
        self,
        source: VoxelSource,
        params: ClusteringParams,
        progress: ProgressCallback | None = None,
    ) -> None:
        report(progress, "Collecting voxels...")
        voxels = iter_voxels(source, params.skip_noisy)
        if params.sort_by_peak:
            voxels = sort_by_peak(voxels)

        total = len(voxels)
        step = max(1, total // 100)
        for i, voxel in enumerate(voxels):
            if i % step == 0:
                report(progress, "Leader-follower: assigning voxels", i, total)
            self._place(voxel, params)
        report(progress, "Leader-follower: assigning voxels", total, total)

        logger.info(f"{self.created} clusters created, {self.dropped} voxels dropped")
        self.clusters = prune(self.clusters, params.keep_clusters, params.ranking)
        logger.info(f"{len(self.clusters)} clusters kept")

    def _place(self, voxel: Voxel, params: ClusteringParams) -> None:
        if not self.clusters:
            self._new_cluster(voxel, params)
            return

        candidates = []
        for i, cluster in enumerate(self.clusters):
            score = 1.0 - self.metric.distance(voxel.curve, cluster.centroid)
            if score > params.threshold and score > self.limits[i]:
                candidates.append((i, score))

        if not candidates:
            if len(self.clusters) < params.max_clusters:
                self._new_cluster(voxel, params)
            elif params.discard_weakest:
                weakest = weakest_index(self.clusters, params.ranking)
                del self.clusters[weakest]
                del self.limits[weakest]
                self._new_cluster(voxel, params)
            else:
                self.dropped += 1
            return

        if len(candidates) == 1:
            index = candidates[0][0]
        else:
            index = self._break_tie(voxel, candidates, params.weighted_tie_break)

        chosen = self.clusters[index]
        if params.peak_gate and not voxel.peak > chosen.peak_mean:
            self.dropped += 1
            return

        chosen.add(voxel)
        self.limits[index] = tighten(self.limits[index], params.threshold_increment)

    def _break_tie(
        self, voxel: Voxel, candidates: list[tuple[int, float]], weighted: bool
    ) -> int:
        """Closest candidate by Euclidean distance, optionally scaled by exp(-score)."""
        best, best_value = candidates[0][0], float("inf")
        for i, score in candidates:
            value = float(np.linalg.norm(voxel.curve - self.clusters[i].centroid))
            if weighted:
                value *= math.exp(-score)
            if value < best_value:
                best, best_value = i, value
        return best

    def _new_cluster(self, voxel: Voxel, params: ClusteringParams) -> None:
        self.clusters.append(Cluster.from_voxel(voxel))
        self.limits.append(params.threshold)
        self.created += 1


def tighten(limit: float, increment: float) -> float:
    """Move a similarity limit towards stricter values by ``increment``.

    Positive limits are multiplied and negative ones divided, so the limit
    rises for any sign.
    """
    if limit < 0:
        return limit / increment
    return limit * increment


def sort_by_peak(voxels: list[Voxel]) -> list[Voxel]:
    """Order by descending peak, then ascending peak time. The sort is stable."""
    return sorted(voxels, key=lambda v: (-v.peak, max_index(v.curve)))
