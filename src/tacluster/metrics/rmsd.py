"""Root-mean-square deviation distance."""

from __future__ import annotations

import numpy as np

from tacluster.core.mathutils import rmsd
from tacluster.metrics.base import DistanceMetric, finite_or_max, same_curve
from tacluster.metrics.registry import register_metric


@register_metric("rmsd")
class RMSDMetric(DistanceMetric):
    description = "Root-mean-square deviation between curves."

    def distance(self, data: np.ndarray, centroid: np.ndarray) -> float:
        if same_curve(data, centroid):
            return 0.0
        with np.errstate(invalid="ignore", over="ignore"):
            return finite_or_max(rmsd(data, centroid))
