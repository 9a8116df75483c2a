"""Voxel sources for dynamic image data."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from functools import cached_property
from typing import Protocol, runtime_checkable

import numpy as np

from tacluster.core.mathutils import is_masked
from tacluster.core.types import Voxel


@runtime_checkable
class VoxelSource(Protocol):
    """What a clustering technique needs from a dynamic image.

    Iteration must be deterministic and repeatable and must already exclude
    masked voxels.
    """

    @property
    def dimensions(self) -> tuple[int, int, int, int]:
        """Return ``(x, y, slices, frames)``."""
        ...

    def __iter__(self) -> Iterator[Voxel]: ...

    def get_tac(self, x: int, y: int, slice: int) -> np.ndarray | None: ...

    def is_masked(self, curve: np.ndarray | None) -> bool: ...

    def is_noise(self, curve: np.ndarray) -> bool: ...


@dataclass
class DynamicVolume:
    """4D array of calibrated activity values, indexed ``[T, Z, Y, X]``.

    Slices are 1-based at the API boundary.
    """

    data: np.ndarray  # float64 [T, Z, Y, X]
    calibration_zero: float = 0.0
    voxel_spacing: tuple[float, float, float] = (1.0, 1.0, 1.0)  # (x, y, z) mm

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.float64)
        if self.data.ndim != 4:
            raise ValueError(
                f"Dynamic volume must be 4D [T, Z, Y, X], got shape {self.data.shape}"
            )

    @property
    def dimensions(self) -> tuple[int, int, int, int]:
        frames, slices, rows, cols = self.data.shape
        return (cols, rows, slices, frames)

    @property
    def n_frames(self) -> int:
        return self.data.shape[0]

    @cached_property
    def mean_amplitude(self) -> float:
        """Mean value over every voxel and frame of the image."""
        return float(self.data.mean())

    def contains(self, x: int, y: int, slice: int) -> bool:
        cols, rows, slices, _ = self.dimensions
        return 0 <= x < cols and 0 <= y < rows and 1 <= slice <= slices

    def get_tac(self, x: int, y: int, slice: int) -> np.ndarray | None:
        """Return the curve at the given coordinates, or None if out of range."""
        if not self.contains(x, y, slice):
            return None
        return self.data[:, slice - 1, y, x].copy()

    def to_physical(self, x: float, y: float, slice: float) -> tuple[float, float, float]:
        """Millimetre position of (possibly fractional) voxel coordinates."""
        sx, sy, sz = self.voxel_spacing
        return (x * sx, y * sy, (slice - 1) * sz)

    def is_masked(self, curve: np.ndarray | None) -> bool:
        return is_masked(curve, self.calibration_zero)

    def is_noise(self, curve: np.ndarray) -> bool:
        """Low-signal heuristic: erratic, faint or non-positive curves."""
        curve = np.asarray(curve, dtype=np.float64)
        mean = float(np.mean(curve))
        sd = float(np.std(curve, ddof=1)) if curve.size > 1 else 0.0
        return (
            sd > 100 * mean
            or mean < self.mean_amplitude / 3
            or abs(float(np.min(curve))) >= float(np.max(curve))
        )

    def __iter__(self) -> Iterator[Voxel]:
        cols, rows, slices, _ = self.dimensions
        for z in range(slices):
            for y in range(rows):
                for x in range(cols):
                    curve = self.data[:, z, y, x]
                    if self.is_masked(curve):
                        continue
                    yield Voxel(x, y, z + 1, curve.copy())

    def curve_matrix(self, skip_noisy: bool = False) -> tuple[list[Voxel], np.ndarray]:
        """Return the voxels and their curves stacked as a ``[voxels, frames]`` matrix."""
        return curve_matrix(self, skip_noisy)


def iter_voxels(source: VoxelSource, skip_noisy: bool = False) -> list[Voxel]:
    """Collect the voxels of any source, honouring the noise predicate."""
    if not skip_noisy:
        return list(source)
    return [v for v in source if not source.is_noise(v.curve)]


def curve_matrix(
    source: VoxelSource, skip_noisy: bool = False
) -> tuple[list[Voxel], np.ndarray]:
    voxels = iter_voxels(source, skip_noisy)
    frames = source.dimensions[3]
    if not voxels:
        return voxels, np.empty((0, frames), dtype=np.float64)
    return voxels, np.vstack([v.curve for v in voxels]).astype(np.float64)
