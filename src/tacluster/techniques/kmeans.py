"""K-means: seeded Lloyd-style iterative refinement."""

from __future__ import annotations

import logging
import time

import numpy as np

from tacluster.core.cluster import Cluster
from tacluster.core.mathutils import sse
from tacluster.core.types import ClusteringParams, Voxel
from tacluster.core.volume import VoxelSource
from tacluster.techniques.base import ClusteringTechnique, ProgressCallback, report
from tacluster.techniques.registry import register_technique
from tacluster.techniques.seeding import choose_seeds, format_seeds

logger = logging.getLogger(__name__)


@register_technique("kmeans")
class KMeansTechnique(ClusteringTechnique):
    """Iterative centroid refinement from k seed voxels.

    Each round assigns every voxel to the nearest fixed centroid, then uses
    the mean curve of every non-empty cluster as the next round's centroid.
    Empty clusters are dropped. Iteration stops when the ratio between the
    centroid movement of two consecutive rounds exceeds
    ``1 - threshold_percent / 100``, when no centroid moves, or after
    ``max_iterations`` rounds. The ratio is only evaluated while the cluster
    count stays the same.
    """

    description = "K-means with random, k-means++ or deterministic seeding."
    recommended_for = "A known number of kinetic classes."
    uses_metric = True
    default_metric = "rmsd"

    def init(self) -> None:
        super().init()
        self.seeds: list[tuple[int, int, int]] = []
        self.iterations = 0
        self.sse_ratio: float | None = None

    def process(
        self,
        source: VoxelSource,
        params: ClusteringParams,
        progress: ProgressCallback | None = None,
    ) -> list[str]:
        warnings = []
        rng = np.random.default_rng(params.random_state)

        report(progress, "Selecting initial centroids...")
        all_voxels = list(source)
        voxels = all_voxels
        if params.skip_noisy:
            voxels = [v for v in all_voxels if not source.is_noise(v.curve)]

        init_start = time.time()
        self.seeds = choose_seeds(source, all_voxels, params, self.metric, rng)
        logger.info(f"Initialization time: {time.time() - init_start:.3f} seconds")
        logger.info("Initial points used:")
        for coords in self.seeds:
            logger.info(f"   * {list(coords)}")
        logger.info("If you wish to use same initialization, use values below:")
        logger.info(format_seeds(self.seeds))

        current = [Cluster.fixed(source.get_tac(*coords)) for coords in self.seeds]
        assigned: list[Cluster] = current
        previous_sse = float("inf")
        converged = False

        while not converged and self.iterations < params.max_iterations:
            self.iterations += 1
            report(
                progress,
                f"K-means: iteration {self.iterations}, clusters: {len(current)}",
                self.iterations,
                params.max_iterations,
            )

            assigned = self._assign(voxels, current)
            following = [
                Cluster.fixed(c.mean_curve) for c in assigned if not c.is_empty
            ]

            if len(following) == len(current):
                new_sse = sum(
                    sse(nxt.centroid, cur.centroid) for nxt, cur in zip(following, assigned)
                )
                if new_sse == 0.0:
                    # No centroid moved.
                    self.sse_ratio = 1.0
                    converged = True
                else:
                    self.sse_ratio = new_sse / previous_sse
                    converged = self.sse_ratio > 1.0 - params.threshold_percent / 100.0
                previous_sse = new_sse
                logger.debug(
                    f"Iteration {self.iterations}: SSE={new_sse:.6g}, ratio={self.sse_ratio:.6g}"
                )
            else:
                logger.debug(
                    f"Iteration {self.iterations}: cluster count changed "
                    f"{len(current)} -> {len(following)}"
                )

            current = following

        if not converged:
            warnings.append(
                f"K-means stopped after {self.iterations} iterations without converging"
            )
        logger.info(f"{self.iterations} iterations needed. {len(current)} clusters formed.")

        self.clusters = [c for c in assigned if not c.is_empty]
        return warnings

    def _assign(self, voxels: list[Voxel], centroids: list[Cluster]) -> list[Cluster]:
        """Add every voxel to a fresh copy of its nearest cluster."""
        result = [Cluster.fixed(c.centroid) for c in centroids]
        for voxel in voxels:
            index, _ = self.nearest_cluster(voxel.curve, result)
            if index == -1:
                continue
            result[index].add(voxel)
        return result
