"""Tests for io/loader.py and io/exporters.py."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from conftest import make_voxel
from tacluster.core.cluster import Cluster
from tacluster.core.types import AuxiliaryInfo, ClusteringResult
from tacluster.io.exporters import (
    cluster_tacs,
    export_auxiliary,
    export_labels,
    export_tacs,
    label_volume,
)
from tacluster.io.loader import load_volume, read_time_vector


@pytest.fixture
def clusters():
    first = Cluster()
    first.add(make_voxel([1.0, 2.0, 3.0], x=0, y=0, slice=1))
    first.add(make_voxel([3.0, 4.0, 5.0], x=1, y=0, slice=2))
    second = Cluster.fixed(np.array([9.0, 9.0, 9.0]))
    second.add(make_voxel([0.0, 1.0, 0.0], x=2, y=1, slice=1))
    return [first, second]


class TestLoader:
    def test_npy_4d(self, volume_file, two_group_volume):
        volume = load_volume(volume_file)
        np.testing.assert_array_equal(volume.data, two_group_volume.data)

    def test_npy_3d_becomes_single_slice(self, tmp_path):
        path = tmp_path / "single.npy"
        np.save(path, np.ones((5, 3, 4)))
        volume = load_volume(path)
        assert volume.dimensions == (4, 3, 1, 5)

    def test_npz_with_calibration(self, tmp_path):
        path = tmp_path / "dyn.npz"
        np.savez(
            path,
            data=np.full((2, 1, 1, 2), -5.0),
            calibration_zero=-5.0,
            voxel_spacing=[2.0, 2.0, 3.0],
        )
        volume = load_volume(path)
        assert volume.calibration_zero == -5.0
        assert volume.voxel_spacing == (2.0, 2.0, 3.0)
        assert list(volume) == []

    def test_npz_without_data(self, tmp_path):
        path = tmp_path / "bad.npz"
        np.savez(path, other=np.zeros(3))
        with pytest.raises(ValueError, match="no 'data' array"):
            load_volume(path)

    def test_missing_and_unsupported(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_volume(tmp_path / "missing.npy")
        path = tmp_path / "volume.nii"
        path.write_text("")
        with pytest.raises(ValueError, match="Unsupported"):
            load_volume(path)


class TestTimeVector:
    def test_whitespace_columns(self, tmp_path):
        path = tmp_path / "times.txt"
        path.write_text("0 10\n10 20\n\n20   40\n")
        np.testing.assert_array_equal(
            read_time_vector(path), [[0.0, 10.0, 20.0], [10.0, 20.0, 40.0]]
        )

    def test_pmod_acqtimes(self, tmp_path):
        path = tmp_path / "scan.acqtimes"
        path.write_text("# acquisition times (start end) in seconds\n# 2\n0.0\t30.0\n30.0\t60.0\n")
        np.testing.assert_array_equal(read_time_vector(path), [[0.0, 30.0], [30.0, 60.0]])

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("nothing here\n")
        with pytest.raises(ValueError):
            read_time_vector(path)


class TestTacExport:
    def test_cluster_tacs_use_member_mean(self, clusters):
        tacs = cluster_tacs(clusters, 3)
        np.testing.assert_allclose(tacs[:, 0], [2.0, 3.0, 4.0])
        np.testing.assert_allclose(tacs[:, 1], [0.0, 1.0, 0.0])

    def test_empty_cluster_uses_centroid(self):
        tacs = cluster_tacs([Cluster.fixed(np.array([1.0, 2.0])), Cluster()], 2)
        np.testing.assert_array_equal(tacs, [[1.0, 0.0], [2.0, 0.0]])

    def test_csv(self, clusters, tmp_path):
        path = tmp_path / "out" / "tacs.csv"
        export_tacs(clusters, path, 3)
        table = np.loadtxt(path, delimiter=",")
        assert table.shape == (3, 2)

    def test_tsv_with_time_vector(self, clusters, tmp_path):
        path = tmp_path / "tacs.tsv"
        times = np.array([[0.0, 1.0, 2.0], [1.0, 2.0, 4.0]])
        export_tacs(clusters, path, 3, fmt="tsv", time_vector=times)
        table = np.loadtxt(path, delimiter="\t")
        np.testing.assert_array_equal(table[:, :2], times.T)
        np.testing.assert_allclose(table[:, 2], [2.0, 3.0, 4.0])

    def test_pmod_synthesizes_time(self, clusters, tmp_path):
        path = tmp_path / "tacs.tac"
        export_tacs(clusters, path, 3, fmt="pmod")
        lines = path.read_text().splitlines()
        assert lines[0] == "start[seconds]\tend[kBq/cc]\tcluster01\tcluster02"
        table = np.loadtxt(path, delimiter="\t", skiprows=1)
        np.testing.assert_array_equal(table[:, 0], [0.0, 1.0, 2.0])
        np.testing.assert_array_equal(table[:, 1], [1.0, 2.0, 3.0])

    def test_mismatched_time_vector_is_ignored(self, clusters, tmp_path, caplog):
        path = tmp_path / "tacs.csv"
        with caplog.at_level(logging.WARNING):
            export_tacs(clusters, path, 3, time_vector=np.zeros((2, 5)))
        assert "without time information" in caplog.text
        assert np.loadtxt(path, delimiter=",").shape == (3, 2)

    def test_unknown_format(self, clusters, tmp_path):
        with pytest.raises(ValueError, match="Unknown TAC format"):
            export_tacs(clusters, tmp_path / "x", 3, fmt="xlsx")


def test_label_volume(clusters, tmp_path):
    result = ClusteringResult(clusters=clusters, technique_name="kmeans")
    labels = label_volume(result, (2, 2, 3))
    assert labels.dtype == np.int32
    assert labels[0, 0, 0] == 1
    assert labels[1, 0, 1] == 1
    assert labels[0, 1, 2] == 2
    assert int((labels == 0).sum()) == 12 - 3

    path = tmp_path / "labels.npy"
    export_labels(result, (2, 2, 3), path)
    np.testing.assert_array_equal(np.load(path), labels)


def test_export_auxiliary(tmp_path):
    path = tmp_path / "aux" / "basis.txt"
    export_auxiliary(AuxiliaryInfo("pca_vectors", "1\t2\n3\t4\n"), path)
    assert path.read_text() == "1\t2\n3\t4\n"
