"""Exporters: cluster TACs (CSV, TSV, PMOD), label volumes, auxiliary text."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from tacluster.core.cluster import Cluster
from tacluster.core.types import AuxiliaryInfo, ClusteringResult

logger = logging.getLogger(__name__)

TAC_FORMATS = ("csv", "tsv", "pmod")


def cluster_tacs(clusters: list[Cluster], n_frames: int) -> np.ndarray:
    """Mean curve of every cluster as a ``[frames, clusters]`` matrix.

    A cluster without members falls back to its reference centroid, or to
    zeros when it has none.
    """
    result = np.zeros((n_frames, len(clusters)), dtype=np.float64)
    for i, cluster in enumerate(clusters):
        curve = cluster.mean_curve
        if curve is None:
            curve = cluster.centroid
        if curve is not None:
            result[:, i] = curve
    return result


def export_tacs(
    clusters: list[Cluster],
    output_path: Path,
    n_frames: int,
    fmt: str = "csv",
    time_vector: np.ndarray | None = None,
) -> None:
    """Write one column per cluster, preceded by frame start/end times if known."""
    fmt = fmt.lower()
    if fmt not in TAC_FORMATS:
        raise ValueError(f"Unknown TAC format '{fmt}'. Available: {', '.join(TAC_FORMATS)}")

    if time_vector is not None:
        time_vector = np.asarray(time_vector, dtype=np.float64)
        if time_vector.shape != (2, n_frames):
            logger.warning(
                f"Time vector has {time_vector.shape[-1]} entries but the image has "
                f"{n_frames} frames; writing data without time information"
            )
            time_vector = None

    header = None
    if fmt == "pmod":
        if time_vector is None:
            logger.warning(
                "PMOD output needs a time vector and none was supplied; "
                "assuming frames of one second"
            )
            start = np.arange(n_frames, dtype=np.float64)
            time_vector = np.vstack([start, start + 1.0])
        names = "\t".join(f"cluster{i:02d}" for i in range(1, len(clusters) + 1))
        header = f"start[seconds]\tend[kBq/cc]\t{names}"

    columns = [cluster_tacs(clusters, n_frames)]
    if time_vector is not None:
        columns.insert(0, time_vector.T)
    table = np.hstack(columns)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    delimiter = "," if fmt == "csv" else "\t"
    np.savetxt(
        output_path,
        table,
        fmt="%.10g",
        delimiter=delimiter,
        header=header or "",
        comments="",
    )
    logger.info(f"Cluster TACs saved to {output_path} ({fmt})")


def label_volume(result: ClusteringResult, shape: tuple[int, int, int]) -> np.ndarray:
    """``[Z, Y, X]`` int32 array of 1-based cluster numbers, 0 where unassigned."""
    labels = np.zeros(shape, dtype=np.int32)
    for (x, y, s), number in result.labels().items():
        labels[s - 1, y, x] = number
    return labels


def export_labels(
    result: ClusteringResult, shape: tuple[int, int, int], output_path: Path
) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.save(output_path, label_volume(result, shape))
    logger.info(f"Label volume saved to {output_path}")


def export_auxiliary(info: AuxiliaryInfo, output_path: Path) -> None:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(info.text)
    logger.info(f"{info.name} saved to {output_path}")
