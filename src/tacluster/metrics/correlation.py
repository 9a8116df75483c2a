"""Correlation-based distances: Pearson and Spearman."""

from __future__ import annotations

import warnings

import numpy as np
from scipy import stats

from tacluster.metrics.base import MAX_DISTANCE, DistanceMetric, finite_or_max, same_curve
from tacluster.metrics.registry import register_metric


def _correlation_distance(correlate, a: np.ndarray, b: np.ndarray) -> float:
    if same_curve(a, b):
        return 0.0
    if len(a) < 2:
        return MAX_DISTANCE
    with warnings.catch_warnings():
        # Constant curves have no defined correlation; NaN maps to the sentinel.
        warnings.simplefilter("ignore", stats.ConstantInputWarning)
        with np.errstate(invalid="ignore", divide="ignore"):
            r = correlate(a, b)[0]
    return finite_or_max(1.0 - float(r))


@register_metric("pearson")
class PearsonMetric(DistanceMetric):
    """1 - Pearson's r."""

    description = "One minus Pearson's linear correlation coefficient."

    def distance(self, data: np.ndarray, centroid: np.ndarray) -> float:
        return _correlation_distance(stats.pearsonr, data, centroid)


@register_metric("spearman")
class SpearmanMetric(DistanceMetric):
    """1 - Spearman's rank correlation."""

    description = "One minus Spearman's rank correlation coefficient."

    def distance(self, data: np.ndarray, centroid: np.ndarray) -> float:
        return _correlation_distance(stats.spearmanr, data, centroid)
