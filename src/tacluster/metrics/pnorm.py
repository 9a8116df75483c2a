"""Minkowski (p-norm) distance."""

from __future__ import annotations

import numpy as np

from tacluster.metrics.base import DistanceMetric, finite_or_max, same_curve
from tacluster.metrics.registry import register_metric


@register_metric("pnorm")
class PNormMetric(DistanceMetric):
    """(sum |a_i - b_i|^p)^(1/p); p = 2 is the Euclidean distance."""

    description = "Minkowski distance of configurable order p (default 2)."

    def __init__(self, p: float = 2.0):
        p = float(p)
        if not p > 0:
            raise ValueError(f"p must be positive, got {p}")
        self.p = p

    def distance(self, data: np.ndarray, centroid: np.ndarray) -> float:
        if len(data) != len(centroid) or same_curve(data, centroid):
            return 0.0
        diff = np.abs(np.asarray(data, dtype=np.float64) - np.asarray(centroid, dtype=np.float64))
        with np.errstate(over="ignore", invalid="ignore"):
            return finite_or_max(float(np.sum(diff ** self.p) ** (1.0 / self.p)))

    def __repr__(self) -> str:
        return f"PNormMetric(p={self.p})"
