"""Integration test: CLI argument parsing and full clustering runs."""

from __future__ import annotations

import numpy as np
from typer.testing import CliRunner

from tacluster.cli import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_list_techniques():
    result = runner.invoke(app, ["--list-techniques"])
    assert result.exit_code == 0
    assert "kmeans" in result.output
    assert "leader_follower" in result.output


def test_list_metrics():
    result = runner.invoke(app, ["--list-metrics"])
    assert result.exit_code == 0
    assert "mahalanobis" in result.output


def test_missing_input():
    result = runner.invoke(app, [])
    assert result.exit_code != 0


def test_nonexistent_input():
    result = runner.invoke(app, ["/nonexistent/path.npy"])
    assert result.exit_code != 0


def test_kmeans_pipeline(volume_file, tmp_path):
    labels = tmp_path / "labels.npy"
    tacs = tmp_path / "tacs.tac"
    result = runner.invoke(
        app,
        [
            str(volume_file),
            "-t", "kmeans",
            "-m", "pearson",
            "-k", "2",
            "--seeds", "det++",
            "-o", str(labels),
            "--tacs", str(tacs),
            "--format", "pmod",
        ],
    )
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    volume = np.load(labels)
    assert volume.shape == (2, 4, 4)
    assert set(np.unique(volume)) == {0, 1, 2}
    assert tacs.read_text().startswith("start[seconds]\tend[kBq/cc]\tcluster01\tcluster02")
    assert "Clustering complete" in result.output


def test_pca_writes_auxiliary_file(volume_file, tmp_path):
    labels = tmp_path / "pca.npy"
    result = runner.invoke(app, [str(volume_file), "-t", "pca", "-o", str(labels)])
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert (tmp_path / "pca_pca_vectors.txt").exists()


def test_leader_follower_with_time_vector(volume_file, tmp_path):
    times = tmp_path / "times.txt"
    times.write_text("\n".join(f"{i} {i + 1}" for i in range(8)))
    tacs = tmp_path / "tacs.csv"
    result = runner.invoke(
        app,
        [
            str(volume_file),
            "-t", "leader_follower",
            "--sort-by-peak",
            "--tacs", str(tacs),
            "--time-vector", str(times),
        ],
    )
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    table = np.loadtxt(tacs, delimiter=",")
    assert table.shape == (8, 4)


def test_unknown_technique_exits_1(volume_file):
    result = runner.invoke(app, [str(volume_file), "-t", "dbscan"])
    assert result.exit_code == 1


def test_invalid_parameter_exits_1(volume_file):
    result = runner.invoke(app, [str(volume_file), "-k", "0"])
    assert result.exit_code == 1


def test_missing_time_vector_exits_4(volume_file, tmp_path):
    result = runner.invoke(
        app,
        [str(volume_file), "--tacs", str(tmp_path / "t.csv"), "--time-vector", str(tmp_path / "none.txt")],
    )
    assert result.exit_code == 4


def test_summary_reports_spacing(two_group_volume, tmp_path):
    path = tmp_path / "dynamic.npz"
    np.savez(path, data=two_group_volume.data, voxel_spacing=[2.0, 2.0, 3.5])
    result = runner.invoke(app, [str(path), "-t", "pca"])
    assert result.exit_code == 0, f"CLI failed: {result.output}"
    assert "Spacing:   2 x 2 x 3.5 mm" in result.output
