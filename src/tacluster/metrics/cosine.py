"""Cosine distance."""

from __future__ import annotations

import numpy as np

from tacluster.metrics.base import DistanceMetric, finite_or_max, same_curve
from tacluster.metrics.registry import register_metric


@register_metric("cosine")
class CosineMetric(DistanceMetric):
    description = "One minus the cosine of the angle between curves."

    def distance(self, data: np.ndarray, centroid: np.ndarray) -> float:
        if same_curve(data, centroid):
            return 0.0
        a = np.asarray(data, dtype=np.float64)
        b = np.asarray(centroid, dtype=np.float64)
        with np.errstate(invalid="ignore", divide="ignore"):
            cos = np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b))
        value = finite_or_max(1.0 - float(cos))
        # Rounding can push identical directions slightly below zero.
        return max(0.0, value)
