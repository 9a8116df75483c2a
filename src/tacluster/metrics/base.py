"""Abstract base class for distance metrics."""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod

import numpy as np

from tacluster.core.volume import VoxelSource

MAX_DISTANCE = sys.float_info.max
"""Returned whenever a distance is numerically undefined."""


class DistanceMetric(ABC):
    """Scores the dissimilarity of two curves of equal length.

    ``distance`` never raises for well-formed curves. Metrics holding
    precomputed state override ``init`` and must be initialised once per
    run before the first ``distance`` call.
    """

    name: str = ""
    description: str = ""
    requires_init: bool = False

    @abstractmethod
    def distance(self, data: np.ndarray, centroid: np.ndarray) -> float:
        """Return a non-negative distance between ``data`` and ``centroid``."""
        ...

    def init(self, source: VoxelSource, skip_noisy: bool = False) -> None:
        """Build any state derived from the whole image."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def same_curve(a: np.ndarray, b: np.ndarray) -> bool:
    """Exact element-wise equality, used to short-circuit to zero distance."""
    return np.array_equal(a, b)


def finite_or_max(value: float) -> float:
    """Replace an undefined distance with the sentinel."""
    if np.isnan(value):
        return MAX_DISTANCE
    return float(value)
