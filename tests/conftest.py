"""Shared test fixtures: synthetic dynamic volumes."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from tacluster.core.types import Voxel
from tacluster.core.volume import DynamicVolume

RISING = np.array([1.0, 2.0, 4.0, 6.0, 8.0, 9.0, 9.5, 10.0])
FALLING = RISING[::-1].copy()


def make_voxel(curve, x=0, y=0, slice=1) -> Voxel:
    return Voxel(x, y, slice, np.asarray(curve, dtype=np.float64))


@pytest.fixture
def abcd_volume() -> DynamicVolume:
    """Four voxels in a row: A, B (same as A), C (reversed A), D (A scaled by 10)."""
    curves = [[1, 2, 3], [1, 2, 3], [3, 2, 1], [10, 20, 30]]
    data = np.array(curves, dtype=np.float64).T.reshape(3, 1, 1, 4)
    return DynamicVolume(data=data)


@pytest.fixture
def two_group_volume() -> DynamicVolume:
    """2 slices of 4x4 voxels: left half rising, right half falling.

    Amplitudes vary per voxel; voxel (3, 3) of slice 2 is masked.
    """
    frames, slices, rows, cols = len(RISING), 2, 4, 4
    data = np.zeros((frames, slices, rows, cols))
    for z in range(slices):
        for y in range(rows):
            for x in range(cols):
                scale = 1.0 + 0.1 * (x + y + z)
                data[:, z, y, x] = (RISING if x < 2 else FALLING) * scale
    data[:, 1, 3, 3] = 0.0
    return DynamicVolume(data=data)


@pytest.fixture
def flat_group_volume() -> DynamicVolume:
    """Two groups of identical curves; each group's mean equals its members."""
    data = np.zeros((len(RISING), 1, 2, 4))
    data[:, 0, :, :2] = RISING[:, None, None]
    data[:, 0, :, 2:] = FALLING[:, None, None] * 3.0
    return DynamicVolume(data=data)


@pytest.fixture
def mixed_source_volume() -> DynamicVolume:
    """Voxels mixing three distinct kinetic sources, plus a little noise."""
    rng = np.random.default_rng(0)
    t = np.linspace(0.0, 1.0, 12)
    sources = np.vstack([
        np.exp(-5 * t),
        t ** 2,
        np.sin(np.pi * t),
    ])
    weights = rng.uniform(0.0, 1.0, size=(8 * 8, 3))
    weights[np.arange(64), rng.integers(0, 3, 64)] += 3.0
    curves = weights @ sources + rng.normal(0.0, 0.01, size=(64, 12))
    data = curves.T.reshape(12, 1, 8, 8) + 1.0
    return DynamicVolume(data=data)


@pytest.fixture
def volume_file(two_group_volume, tmp_path) -> Path:
    path = tmp_path / "dynamic.npy"
    np.save(path, two_group_volume.data)
    return path


@pytest.fixture
def noisy_volume(two_group_volume) -> DynamicVolume:
    """The two-group volume with two faint voxels: (0, 0, 1) and (3, 0, 2)."""
    data = two_group_volume.data.copy()
    data[:, 0, 0, 0] = RISING * 0.01
    data[:, 1, 0, 3] = FALLING * 0.01
    return DynamicVolume(data=data)
