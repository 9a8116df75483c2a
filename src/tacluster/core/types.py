"""Core data types for the tacluster engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from tacluster.core.cluster import Cluster

Coordinates = tuple[int, int, int]


@dataclass(frozen=True, eq=False)
class Voxel:
    """One spatial location and its time-activity curve."""

    x: int
    y: int
    slice: int  # 1-based
    curve: np.ndarray  # float64 [T]

    @property
    def coordinates(self) -> Coordinates:
        return (self.x, self.y, self.slice)

    @property
    def peak(self) -> float:
        return float(np.max(self.curve))


class SeedingStrategy(str, Enum):
    """Initial centroid selection for iterative refinement."""

    RANDOM = "random"
    PLUSPLUS = "plusplus"
    LEGACY_PLUSPLUS = "legacy_plusplus"
    DETERMINISTIC = "deterministic"


class RankingScore(str, Enum):
    """Strength score used when pruning clusters."""

    SIZE_PEAK = "size_peak"
    SIZE = "size"


class MatrixType(str, Enum):
    """Matrix decomposed by principal component analysis."""

    COVARIANCE = "covariance"
    CORRELATION = "correlation"


@dataclass
class ClusteringParams:
    """Configuration parameters for a clustering technique.

    Each technique reads only the fields relevant to it.
    """

    # Iterative refinement
    n_clusters: int = 5
    seeding: SeedingStrategy = SeedingStrategy.RANDOM
    initial_points: list[Coordinates] | None = None
    seed_spec: str | None = None
    threshold_percent: float = 0.0
    max_iterations: int = 100
    max_seed_attempts: int = 10000
    random_state: int | None = None

    # Leader-follower
    max_clusters: int = 1000
    keep_clusters: int = 50
    threshold: float = 0.3
    threshold_increment: float = 1.0
    discard_weakest: bool = False
    sort_by_peak: bool = False
    weighted_tie_break: bool = True
    peak_gate: bool = False
    ranking: RankingScore = RankingScore.SIZE_PEAK

    # Decomposition
    matrix: MatrixType = MatrixType.COVARIANCE
    n_components: int = 5
    ica_max_iterations: int = 200
    ica_tolerance: float = 1e-4

    skip_noisy: bool = False

    def __post_init__(self):
        self.seeding = SeedingStrategy(self.seeding)
        self.ranking = RankingScore(self.ranking)
        self.matrix = MatrixType(self.matrix)

        if self.n_clusters < 1:
            raise ValueError(f"n_clusters must be >= 1, got {self.n_clusters}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.max_seed_attempts < 1:
            raise ValueError(
                f"max_seed_attempts must be >= 1, got {self.max_seed_attempts}"
            )
        if not 0.0 <= self.threshold_percent <= 100.0:
            raise ValueError(
                f"threshold_percent must be within [0, 100], got {self.threshold_percent}"
            )
        if self.max_clusters < 1:
            raise ValueError(f"max_clusters must be >= 1, got {self.max_clusters}")
        if self.keep_clusters < 1:
            raise ValueError(f"keep_clusters must be >= 1, got {self.keep_clusters}")
        if self.threshold_increment < 1.0:
            raise ValueError(
                f"threshold_increment must be >= 1.0, got {self.threshold_increment}"
            )
        if self.n_components < 1:
            raise ValueError(f"n_components must be >= 1, got {self.n_components}")
        if self.initial_points is not None:
            self.initial_points = [tuple(int(c) for c in p) for p in self.initial_points]


@dataclass
class AuxiliaryInfo:
    """Secondary textual output of a run (e.g. a decomposition basis)."""

    name: str
    text: str


@dataclass
class ClusteringResult:
    """Output from a clustering technique."""

    clusters: list[Cluster]
    technique_name: str
    metric_name: str | None = None
    processing_time: float = 0.0
    additional_info: AuxiliaryInfo | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def total_voxels(self) -> int:
        return sum(c.size for c in self.clusters)

    def labels(self) -> dict[Coordinates, int]:
        """Map each member coordinate to its 1-based cluster number."""
        return {
            coords: number
            for number, cluster in enumerate(self.clusters, start=1)
            for coords in cluster.coordinates
        }
