"""Abstract base class for clustering techniques."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import numpy as np

from tacluster.core.cluster import Cluster
from tacluster.core.types import AuxiliaryInfo, ClusteringParams, ClusteringResult, Voxel
from tacluster.core.volume import VoxelSource
from tacluster.metrics.base import DistanceMetric

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]
"""Callback for reporting clustering progress.

Args:
    description: Human-readable step description.
    current: Current step number (None for indeterminate).
    total: Total number of steps (None for indeterminate).
"""


class ClusteringTechnique(ABC):
    """Base class for all clustering techniques.

    A technique owns the cluster collection of the run in progress and,
    when ``uses_metric`` is set, a distance metric. Nothing but the tunable
    parameters survives between runs.
    """

    name: str = ""
    description: str = ""
    recommended_for: str = ""
    uses_metric: bool = False
    default_metric: str | None = None

    def __init__(self, metric: DistanceMetric | None = None):
        self.metric = metric
        self.clusters: list[Cluster] = []
        self.additional_info: AuxiliaryInfo | None = None

    def compute(
        self,
        source: VoxelSource,
        params: ClusteringParams | None = None,
        progress: ProgressCallback | None = None,
    ) -> ClusteringResult:
        """Run the technique over ``source`` and return the finished clusters."""
        params = params or ClusteringParams()
        start = time.time()

        self.init()
        if self.uses_metric:
            if self.metric is None:
                raise ValueError(f"Technique '{self.name}' requires a distance metric")
            report(progress, "Initializing metric...")
            self.metric.init(source, skip_noisy=params.skip_noisy)

        warnings = self.process(source, params, progress) or []

        return ClusteringResult(
            clusters=self.clusters,
            technique_name=self.name,
            metric_name=self.metric.name if self.uses_metric and self.metric else None,
            processing_time=time.time() - start,
            additional_info=self.additional_info,
            warnings=warnings,
        )

    @abstractmethod
    def process(
        self,
        source: VoxelSource,
        params: ClusteringParams,
        progress: ProgressCallback | None = None,
    ) -> list[str] | None:
        """Fill ``self.clusters``; optionally return warnings for the caller."""
        ...

    def init(self) -> None:
        """Reset per-run state."""
        self.clusters = []
        self.additional_info = None

    @classmethod
    def check_dependencies(cls) -> tuple[bool, str]:
        """Check if required dependencies are installed.

        Returns (available, message).
        """
        return True, "No additional dependencies required."

    def get_cluster_at(self, index: int) -> Cluster:
        """Return cluster number ``index`` (1-based), creating empty ones as needed."""
        if index < 1:
            raise ValueError(f"Cluster numbers start at 1, got {index}")
        while len(self.clusters) < index:
            self.clusters.append(Cluster())
        return self.clusters[index - 1]

    def add_to_cluster(self, voxel: Voxel, index: int) -> None:
        self.get_cluster_at(index).add(voxel)

    def add_cluster(self, centroid: np.ndarray) -> Cluster:
        """Append an empty cluster around a fixed reference curve."""
        cluster = Cluster.fixed(centroid)
        self.clusters.append(cluster)
        return cluster

    def nearest_cluster(
        self, curve: np.ndarray, clusters: list[Cluster] | None = None
    ) -> tuple[int, float]:
        """Return ``(index, distance)`` of the closest centroid, or ``(-1, inf)``."""
        clusters = self.clusters if clusters is None else clusters
        best, best_distance = -1, float("inf")
        for i, cluster in enumerate(clusters):
            if cluster.centroid is None:
                continue
            d = self.metric.distance(curve, cluster.centroid)
            if d < best_distance:
                best, best_distance = i, d
        return best, best_distance


def report(progress: ProgressCallback | None, desc: str, current=None, total=None) -> None:
    if progress is not None:
        progress(desc, current, total)
