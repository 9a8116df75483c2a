"""Tests for core/volume.py and core/mathutils.py."""

from __future__ import annotations

import numpy as np
import pytest

from tacluster.core.mathutils import is_masked, smooth, sse
from tacluster.core.volume import DynamicVolume, VoxelSource, curve_matrix


def test_dimensions_are_x_y_slices_frames(two_group_volume):
    assert two_group_volume.dimensions == (4, 4, 2, 8)
    assert isinstance(two_group_volume, VoxelSource)


def test_rejects_non_4d_data():
    with pytest.raises(ValueError, match="4D"):
        DynamicVolume(data=np.zeros((3, 4, 4)))


def test_iteration_order_and_masking(two_group_volume):
    coords = [v.coordinates for v in two_group_volume]
    assert len(coords) == 4 * 4 * 2 - 1
    assert coords[:3] == [(0, 0, 1), (1, 0, 1), (2, 0, 1)]
    assert coords[4] == (0, 1, 1)
    assert (3, 3, 2) not in coords
    # Repeatable
    assert coords == [v.coordinates for v in two_group_volume]


def test_get_tac(two_group_volume):
    tac = two_group_volume.get_tac(1, 2, 2)
    np.testing.assert_array_equal(tac, two_group_volume.data[:, 1, 2, 1])
    assert two_group_volume.get_tac(4, 0, 1) is None
    assert two_group_volume.get_tac(0, 0, 0) is None
    assert two_group_volume.is_masked(two_group_volume.get_tac(3, 3, 2))


def test_calibration_zero_defines_mask():
    data = np.full((3, 1, 1, 2), -1000.0)
    data[:, 0, 0, 1] = [1.0, 2.0, 3.0]
    volume = DynamicVolume(data=data, calibration_zero=-1000.0)
    assert [v.coordinates for v in volume] == [(1, 0, 1)]


def test_is_noise():
    data = np.ones((4, 1, 1, 3)) * 10.0
    volume = DynamicVolume(data=data)
    assert not volume.is_noise(np.array([10.0, 11.0, 9.0, 10.0]))
    # Faint compared with the image mean
    assert volume.is_noise(np.array([1.0, 2.0, 1.0, 2.0]))
    # Negative swing as large as the peak
    assert volume.is_noise(np.array([-30.0, 20.0, 30.0, 20.0]))


def test_curve_matrix_skips_noise(two_group_volume):
    voxels, matrix = curve_matrix(two_group_volume)
    assert matrix.shape == (31, 8)
    np.testing.assert_array_equal(matrix[0], voxels[0].curve)
    noisy, _ = two_group_volume.curve_matrix(skip_noisy=True)
    assert len(noisy) <= len(voxels)


class TestMathUtils:
    def test_smooth_keeps_edges(self):
        curve = np.array([0.0, 0.0, 10.0, 0.0, 0.0, 0.0])
        result = smooth(curve)
        assert result[0] == 0.0 and result[1] == 0.0
        assert result[-1] == 0.0 and result[-2] == 0.0
        assert result[2] == pytest.approx(3.7)
        # Uses the already smoothed sample at index 2
        assert result[3] == pytest.approx(0.185 * 3.7)

    def test_smooth_short_curve_is_copy(self):
        curve = np.array([1.0, 2.0, 3.0])
        result = smooth(curve)
        np.testing.assert_array_equal(result, curve)
        assert result is not curve

    def test_is_masked(self):
        assert is_masked(None)
        assert is_masked(np.zeros(4))
        assert not is_masked(np.array([0.0, 1.0]))
        assert is_masked(np.full(3, 5.0), zero=5.0)

    def test_sse(self):
        assert sse(np.array([1.0, 2.0]), np.array([2.0, 4.0])) == 5.0


def test_to_physical_uses_spacing():
    volume = DynamicVolume(data=np.ones((2, 3, 2, 2)), voxel_spacing=(2.0, 2.5, 4.0))
    assert volume.to_physical(1, 1, 1) == (2.0, 2.5, 0.0)
    assert volume.to_physical(0.5, 0.0, 2.5) == (1.0, 0.0, 6.0)
