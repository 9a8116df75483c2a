"""Incrementally updated cluster of time-activity curves."""

from __future__ import annotations

import math
from enum import Enum

import numpy as np

from tacluster.core.types import Coordinates, Voxel


class ClusterMode(str, Enum):
    """How a cluster treats its centroid when members are added."""

    GROWING = "growing"  # centroid is the running mean of the members
    FIXED = "fixed"  # centroid is a reference; members accumulate separately


class Cluster:
    """Accumulates member curves, peak statistics and coordinates.

    A cluster never shrinks. In ``GROWING`` mode every addition updates
    ``centroid``; in ``FIXED`` mode the centroid is left untouched and the
    running mean is kept in ``member_mean``.

    Peak amplitude statistics follow Welford's online algorithm. The peak
    standard deviation is the sample standard deviation and is 0.0 for a
    single-member cluster.
    """

    def __init__(
        self,
        centroid: np.ndarray | None = None,
        mode: ClusterMode = ClusterMode.GROWING,
    ):
        self.mode = ClusterMode(mode)
        self.centroid = None if centroid is None else np.asarray(centroid, dtype=np.float64)
        self.member_mean: np.ndarray | None = None
        self.size = 0
        self.coordinates: list[Coordinates] = []
        self._spatial = np.zeros(3, dtype=np.float64)
        self._peak_mean = 0.0
        self._peak_m2 = 0.0

    @classmethod
    def from_voxel(cls, voxel: Voxel) -> Cluster:
        """Create a growing cluster seeded with ``voxel`` as its first member."""
        cluster = cls(mode=ClusterMode.GROWING)
        cluster.add(voxel)
        return cluster

    @classmethod
    def fixed(cls, centroid: np.ndarray) -> Cluster:
        """Create an empty cluster around a caller-supplied reference curve."""
        return cls(centroid=centroid, mode=ClusterMode.FIXED)

    def add(self, voxel: Voxel) -> None:
        """Add a member voxel, updating every running statistic."""
        curve = np.asarray(voxel.curve, dtype=np.float64)
        n = self.size

        if self.mode is ClusterMode.GROWING:
            self.centroid = _running_mean(self.centroid, curve, n)
        else:
            self.member_mean = _running_mean(self.member_mean, curve, n)

        peak = float(np.max(curve))
        delta = peak - self._peak_mean
        self._peak_mean += delta / (n + 1)
        self._peak_m2 += delta * (peak - self._peak_mean)

        coords = voxel.coordinates
        self._spatial = (self._spatial * n + np.asarray(coords, dtype=np.float64)) / (n + 1)
        self.coordinates.append(coords)
        self.size = n + 1

    @property
    def is_empty(self) -> bool:
        return self.size == 0

    @property
    def mean_curve(self) -> np.ndarray | None:
        """Running mean of the member curves, whatever the mode."""
        if self.mode is ClusterMode.GROWING:
            return self.centroid if self.size else None
        return self.member_mean

    @property
    def peak_mean(self) -> float:
        if self.size == 0:
            raise ValueError("Peak statistics are undefined for an empty cluster")
        return self._peak_mean

    @property
    def peak_stdev(self) -> float:
        if self.size == 0:
            raise ValueError("Peak statistics are undefined for an empty cluster")
        if self.size == 1:
            return 0.0
        return math.sqrt(self._peak_m2 / (self.size - 1))

    @property
    def spatial_centroid(self) -> tuple[float, float, float]:
        return (float(self._spatial[0]), float(self._spatial[1]), float(self._spatial[2]))

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"Cluster(mode={self.mode.value}, size={self.size})"


def _running_mean(mean: np.ndarray | None, value: np.ndarray, n: int) -> np.ndarray:
    """m' = (m * n + v) / (n + 1); the first value is copied."""
    if mean is None or n == 0:
        return value.copy()
    return (mean * n + value) / (n + 1)
