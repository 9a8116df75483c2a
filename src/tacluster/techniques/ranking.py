"""Cluster strength scores and pruning."""

from __future__ import annotations

from tacluster.core.cluster import Cluster
from tacluster.core.types import RankingScore


def strength(cluster: Cluster, score: RankingScore = RankingScore.SIZE_PEAK) -> float:
    """Ranking value of a cluster; empty clusters score 0."""
    if cluster.is_empty:
        return 0.0
    if RankingScore(score) is RankingScore.SIZE:
        return float(cluster.size)
    return cluster.size * cluster.peak_mean


def prune(
    clusters: list[Cluster],
    keep: int,
    score: RankingScore = RankingScore.SIZE_PEAK,
) -> list[Cluster]:
    """Keep the ``keep`` strongest clusters, strongest first.

    Among equal scores the earlier-created cluster ranks higher, so when the
    cut falls inside a tie the older clusters survive. The returned list is
    new; the position of a cluster in it is its 1-based cluster number minus
    one.
    """
    order = sorted(
        range(len(clusters)),
        key=lambda i: (-strength(clusters[i], score), i),
    )
    return [clusters[i] for i in order[:keep]]


def weakest_index(
    clusters: list[Cluster], score: RankingScore = RankingScore.SIZE_PEAK
) -> int:
    """Index of the lowest-scoring cluster (first one on ties), -1 if none."""
    index, lowest = -1, float("inf")
    for i, cluster in enumerate(clusters):
        s = strength(cluster, score)
        if s < lowest:
            index, lowest = i, s
    return index
