"""Load dynamic volumes and time vectors from disk."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from tacluster.core.volume import DynamicVolume

logger = logging.getLogger(__name__)


def load_volume(input_path: Path) -> DynamicVolume:
    """Load a dynamic volume from a ``.npy`` or ``.npz`` file.

    ``.npy`` files hold the data array directly. ``.npz`` archives hold it
    under ``data`` and may add ``calibration_zero`` and ``voxel_spacing``.
    Arrays may be ``[T, Z, Y, X]`` or single-slice ``[T, Y, X]``.
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        raise FileNotFoundError(f"Path not found: {input_path}")

    suffix = input_path.suffix.lower()
    calibration_zero = 0.0
    spacing = (1.0, 1.0, 1.0)

    if suffix == ".npy":
        data = np.load(input_path)
    elif suffix == ".npz":
        with np.load(input_path) as archive:
            if "data" not in archive.files:
                raise ValueError(
                    f"{input_path.name} has no 'data' array (found: {', '.join(archive.files)})"
                )
            data = archive["data"]
            if "calibration_zero" in archive.files:
                calibration_zero = float(archive["calibration_zero"])
            if "voxel_spacing" in archive.files:
                spacing = tuple(float(s) for s in archive["voxel_spacing"])
    else:
        raise ValueError(f"Unsupported input format '{suffix}'. Use .npy or .npz")

    if data.ndim == 3:
        data = data[:, np.newaxis, :, :]
    volume = DynamicVolume(
        data=data,
        calibration_zero=calibration_zero,
        voxel_spacing=spacing,
    )
    cols, rows, slices, frames = volume.dimensions
    logger.info(f"Loaded {input_path.name}: {cols}x{rows}x{slices}, {frames} frames")
    return volume


def read_time_vector(path: Path) -> np.ndarray:
    """Read frame start and end times as a ``[2, frames]`` array.

    Lines hold two whitespace separated numbers. Once a ``#`` comment line
    has been seen (PMOD ``.acqtimes`` files) columns are tab separated.
    Lines without exactly two fields are skipped.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Time vector file not found: {path}")

    sep = None
    rows = []
    for line in path.read_text().splitlines():
        if "#" in line:
            sep = "\t"
            continue
        fields = line.strip().split(sep)
        if len(fields) != 2:
            continue
        try:
            rows.append((float(fields[0]), float(fields[1])))
        except ValueError as e:
            raise ValueError(f"Invalid time vector line in {path.name}: {line!r}") from e

    if not rows:
        raise ValueError(f"No time data found in {path.name}")
    return np.array(rows, dtype=np.float64).T
