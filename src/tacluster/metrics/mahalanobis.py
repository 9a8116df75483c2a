"""Mahalanobis distance over the image-wide curve covariance."""

from __future__ import annotations

import logging

import numpy as np

from tacluster.core.volume import VoxelSource, curve_matrix
from tacluster.errors import MetricNotInitializedError
from tacluster.metrics.base import DistanceMetric, finite_or_max, same_curve
from tacluster.metrics.registry import register_metric

logger = logging.getLogger(__name__)


@register_metric("mahalanobis")
class MahalanobisMetric(DistanceMetric):
    """sqrt((a - b)^T S^-1 (a - b)), S being the frame covariance of the image.

    ``init`` must run once per clustering run before any distance is computed.
    """

    description = "Mahalanobis distance using the covariance of all image curves."
    requires_init = True

    def __init__(self):
        self.inverse_covariance: np.ndarray | None = None

    def init(self, source: VoxelSource, skip_noisy: bool = False) -> None:
        _, matrix = curve_matrix(source, skip_noisy)
        if matrix.shape[0] < 2:
            raise ValueError(
                "Mahalanobis metric needs at least two voxels to estimate a covariance"
            )
        covariance = np.atleast_2d(np.cov(matrix, rowvar=False))
        if np.linalg.matrix_rank(covariance) < covariance.shape[0]:
            logger.warning(
                "Curve covariance is singular; using its pseudo-inverse instead"
            )
            self.inverse_covariance = np.linalg.pinv(covariance)
        else:
            self.inverse_covariance = np.linalg.inv(covariance)
        logger.debug(f"Mahalanobis metric initialized from {matrix.shape[0]} voxels")

    def distance(self, data: np.ndarray, centroid: np.ndarray) -> float:
        if self.inverse_covariance is None:
            raise MetricNotInitializedError(
                "Mahalanobis metric used before init(); call init(source) first"
            )
        if same_curve(data, centroid):
            return 0.0
        diff = np.asarray(data, dtype=np.float64) - np.asarray(centroid, dtype=np.float64)
        # Clamp tiny negative values produced by an ill-conditioned inverse.
        value = max(0.0, float(diff @ self.inverse_covariance @ diff))
        return finite_or_max(np.sqrt(value))
