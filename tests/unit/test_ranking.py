"""Tests for techniques/ranking.py."""

from __future__ import annotations

from conftest import make_voxel
from tacluster.core.cluster import Cluster
from tacluster.core.types import RankingScore
from tacluster.techniques.ranking import prune, strength, weakest_index


def _cluster(size: int, peak: float = 1.0) -> Cluster:
    cluster = Cluster()
    for _ in range(size):
        cluster.add(make_voxel([0.0, peak]))
    return cluster


def test_strength_scores():
    cluster = _cluster(3, peak=2.0)
    assert strength(cluster) == 6.0
    assert strength(cluster, RankingScore.SIZE) == 3.0
    assert strength(Cluster()) == 0.0


def test_prune_keeps_strongest():
    clusters = [_cluster(s) for s in [1, 2, 3, 4, 5]]
    kept = prune(clusters, keep=2)
    assert [c.size for c in kept] == [5, 4]
    assert len(clusters) == 5


def test_prune_orders_by_peak_weighted_size():
    small_bright = _cluster(2, peak=10.0)
    large_faint = _cluster(5, peak=1.0)
    assert prune([large_faint, small_bright], keep=2) == [small_bright, large_faint]
    assert prune([large_faint, small_bright], 2, RankingScore.SIZE) == [large_faint, small_bright]


def test_prune_ties_keep_insertion_order():
    clusters = [_cluster(2), _cluster(3), _cluster(2)]
    kept = prune(clusters, keep=3)
    assert kept == [clusters[1], clusters[0], clusters[2]]


def test_prune_keep_larger_than_count():
    clusters = [_cluster(1), _cluster(2)]
    assert len(prune(clusters, keep=10)) == 2


def test_weakest_index():
    clusters = [_cluster(3), _cluster(1), _cluster(1), _cluster(2)]
    assert weakest_index(clusters) == 1
    assert weakest_index([]) == -1
