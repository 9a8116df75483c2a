"""Numeric helpers for time-activity curves."""

from __future__ import annotations

import numpy as np

SMOOTHING_KERNEL = np.array([0.13, 0.185, 0.37, 0.185, 0.13])


def smooth(curve: np.ndarray) -> np.ndarray:
    """Smooth a curve with a centre-weighted 5-tap kernel.

    The first and last two samples are left unsmoothed. Each sample is
    computed from the partially smoothed curve, so earlier outputs feed
    later ones.
    """
    res = np.array(curve, dtype=np.float64, copy=True)
    for i in range(2, len(res) - 2):
        res[i] = float(np.dot(res[i - 2:i + 3], SMOOTHING_KERNEL))
    return res


def rmsd(a: np.ndarray, b: np.ndarray) -> float:
    """Root-mean-square deviation between two curves."""
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sqrt(np.mean(diff * diff)))


def max_index(values: np.ndarray) -> int:
    """Index of the first maximum value."""
    return int(np.argmax(values))


def is_masked(curve: np.ndarray | None, zero: float = 0.0) -> bool:
    """A curve is masked when every sample equals the calibrated zero."""
    if curve is None:
        return True
    return bool(np.all(np.asarray(curve) == zero))


def sse(a: np.ndarray, b: np.ndarray) -> float:
    """Sum of squared differences between two curves."""
    diff = np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)
    return float(np.sum(diff * diff))
