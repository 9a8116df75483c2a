"""Initial centroid selection for iterative refinement.

Every strategy accepts a prefix of manually chosen seeds and fills the
remaining slots. Seeds are returned as ``(x, y, slice)`` coordinates.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import numpy as np

from tacluster.core.mathutils import smooth
from tacluster.core.types import ClusteringParams, Coordinates, SeedingStrategy, Voxel
from tacluster.core.volume import VoxelSource
from tacluster.errors import SeedingError
from tacluster.metrics.base import DistanceMetric

logger = logging.getLogger(__name__)

_TRIPLET = re.compile(r"^\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*$")


@dataclass
class SeedSpec:
    """A seeding strategy plus the seeds fixed by the user."""

    strategy: SeedingStrategy
    points: list[Coordinates] = field(default_factory=list)
    fallback: bool = False  # True when a malformed specification was replaced


def parse_seed_spec(text: str | None, source: VoxelSource) -> SeedSpec:
    """Parse the textual seed specification.

    Accepted forms: ``"x,y,z;x,y,z"`` (manual points, remaining slots random),
    ``"++"`` (legacy stochastic farthest-point), ``"det++"`` (deterministic,
    starting at the peak voxel) and ``"det++;x,y,z"`` (deterministic, starting
    at the given voxel). Anything malformed or out of bounds falls back to
    random seeding.
    """
    if text is None or not text.strip():
        return SeedSpec(SeedingStrategy.RANDOM)

    text = text.strip()
    if text == "++":
        return SeedSpec(SeedingStrategy.LEGACY_PLUSPLUS)

    if text.startswith("det++"):
        rest = text[len("det++"):].strip().strip(";")
        if not rest:
            return SeedSpec(SeedingStrategy.DETERMINISTIC)
        points = _parse_points(rest, source)
        if points is None or len(points) != 1:
            logger.warning(
                f"Invalid deterministic starting point '{rest}'; "
                "starting at the voxel of maximum amplitude instead"
            )
            return SeedSpec(SeedingStrategy.DETERMINISTIC, fallback=True)
        return SeedSpec(SeedingStrategy.DETERMINISTIC, points)

    points = _parse_points(text.rstrip(";"), source)
    if points is None:
        logger.warning(
            f"Invalid seed specification '{text}'; falling back to random seeding"
        )
        return SeedSpec(SeedingStrategy.RANDOM, fallback=True)
    return SeedSpec(SeedingStrategy.RANDOM, points)


def _parse_points(text: str, source: VoxelSource) -> list[Coordinates] | None:
    points = []
    for part in text.split(";"):
        match = _TRIPLET.match(part)
        if match is None:
            return None
        coords = tuple(int(g) for g in match.groups())
        if not _in_bounds(coords, source) or source.is_masked(source.get_tac(*coords)):
            return None
        points.append(coords)
    return points


def _in_bounds(coords: Coordinates, source: VoxelSource) -> bool:
    cols, rows, slices, _ = source.dimensions
    x, y, s = coords
    return 0 <= x < cols and 0 <= y < rows and 1 <= s <= slices


def format_seeds(points: list[Coordinates]) -> str:
    """Render seeds in the reusable ``"x,y,z;x,y,z;"`` form."""
    return "".join(f"{x},{y},{s};" for x, y, s in points)


def resolve_seed_spec(params: ClusteringParams, source: VoxelSource) -> SeedSpec:
    """Combine the textual specification and the structured parameters.

    A textual specification wins over ``seeding``/``initial_points``.
    """
    if params.seed_spec:
        return parse_seed_spec(params.seed_spec, source)

    points = list(params.initial_points or [])
    invalid = [p for p in points if not _in_bounds(p, source) or source.is_masked(source.get_tac(*p))]
    if invalid:
        logger.warning(
            f"Ignoring invalid initial points {invalid}; falling back to random seeding"
        )
        return SeedSpec(SeedingStrategy.RANDOM, fallback=True)
    return SeedSpec(params.seeding, points)


def choose_seeds(
    source: VoxelSource,
    voxels: list[Voxel],
    params: ClusteringParams,
    metric: DistanceMetric,
    rng: np.random.Generator,
) -> list[Coordinates]:
    """Pick ``params.n_clusters`` seed coordinates."""
    k = params.n_clusters
    spec = resolve_seed_spec(params, source)
    prefix = _dedupe(spec.points)[:k]

    if len(voxels) < k:
        raise SeedingError(
            f"Cannot draw {k} seeds from {len(voxels)} usable voxels"
        )

    if spec.strategy is SeedingStrategy.RANDOM:
        logger.info("Random initialization")
        return prefix + random_seeds(
            source, k - len(prefix), rng, params.max_seed_attempts, exclude=prefix
        )
    if spec.strategy is SeedingStrategy.DETERMINISTIC:
        logger.info("Deterministic farthest-point initialization")
        return deterministic_seeds(voxels, k, metric, prefix)
    if spec.strategy is SeedingStrategy.LEGACY_PLUSPLUS:
        logger.info("Legacy stochastic farthest-point initialization")
        if not prefix:
            prefix = random_seeds(source, 1, rng, params.max_seed_attempts)
        return legacy_plusplus_seeds(voxels, k, metric, rng, prefix)

    logger.info("K-means++ initialization")
    if not prefix:
        prefix = random_seeds(source, 1, rng, params.max_seed_attempts)
    return plusplus_seeds(voxels, k, metric, rng, prefix)


def _dedupe(points: list[Coordinates]) -> list[Coordinates]:
    return list(dict.fromkeys(points))


def random_seeds(
    source: VoxelSource,
    count: int,
    rng: np.random.Generator,
    max_attempts: int,
    exclude: list[Coordinates] | None = None,
) -> list[Coordinates]:
    """Draw voxels uniformly over the grid, re-drawing masked or repeated hits.

    Raises ``SeedingError`` when a seed needs more than ``max_attempts`` draws.
    """
    cols, rows, slices, _ = source.dimensions
    chosen = list(exclude or [])
    drawn: list[Coordinates] = []
    for _ in range(count):
        for _attempt in range(max_attempts):
            coords = (
                int(rng.integers(cols)),
                int(rng.integers(rows)),
                int(rng.integers(slices)) + 1,
            )
            if coords in chosen or source.is_masked(source.get_tac(*coords)):
                continue
            chosen.append(coords)
            drawn.append(coords)
            break
        else:
            raise SeedingError(
                f"No unmasked voxel found after {max_attempts} random draws"
            )
    return drawn


def plusplus_seeds(
    voxels: list[Voxel],
    k: int,
    metric: DistanceMetric,
    rng: np.random.Generator,
    prefix: list[Coordinates],
) -> list[Coordinates]:
    """k-means++: sample each new seed with probability proportional to D^2."""
    index = {v.coordinates: i for i, v in enumerate(voxels)}
    seeds = list(prefix)
    chosen = np.zeros(len(voxels), dtype=bool)
    nearest = np.full(len(voxels), np.inf)

    for coords in seeds:
        _update_nearest(nearest, voxels, _curve_of(coords, voxels, index), metric)
        if coords in index:
            chosen[index[coords]] = True

    while len(seeds) < k:
        with np.errstate(over="ignore"):
            weights = np.where(chosen, 0.0, nearest ** 2)
        if np.isinf(weights).any():
            weights = np.isinf(weights).astype(np.float64)
        total = weights.sum()
        if total > 0:
            pick = int(rng.choice(len(voxels), p=weights / total))
        else:
            # Every remaining voxel coincides with a seed.
            pick = int(rng.choice(np.flatnonzero(~chosen)))
        chosen[pick] = True
        seeds.append(voxels[pick].coordinates)
        _update_nearest(nearest, voxels, voxels[pick].curve, metric)

    return seeds


def legacy_plusplus_seeds(
    voxels: list[Voxel],
    k: int,
    metric: DistanceMetric,
    rng: np.random.Generator,
    prefix: list[Coordinates],
) -> list[Coordinates]:
    """Stochastic farthest-point seeding kept for reproducing older runs.

    For every unselected voxel the squared distance to its nearest seed is
    divided by the sum of squared distances to all seeds, scaled by a uniform
    random number, and the voxel with the largest product wins. This only
    approximates D^2 sampling.
    """
    index = {v.coordinates: i for i, v in enumerate(voxels)}
    seeds = list(prefix)

    while len(seeds) < k:
        seed_curves = [_curve_of(c, voxels, index) for c in seeds]
        taken = set(seeds)
        best, best_value = None, 0.0
        for voxel in voxels:
            if voxel.coordinates in taken:
                continue
            d = np.array([metric.distance(c, voxel.curve) for c in seed_curves])
            with np.errstate(over="ignore", invalid="ignore"):
                squares = d * d
                total = squares.sum()
                value = squares.min() / total if total > 0 else 0.0
            if not np.isfinite(value):
                value = 1.0
            value *= rng.random()
            if value > best_value:
                best, best_value = voxel.coordinates, value
        if best is None:
            best = next(v.coordinates for v in voxels if v.coordinates not in taken)
        seeds.append(best)

    return seeds


def deterministic_seeds(
    voxels: list[Voxel],
    k: int,
    metric: DistanceMetric,
    prefix: list[Coordinates],
) -> list[Coordinates]:
    """Maximin farthest-point seeding on smoothed curves.

    The first seed is the voxel of largest peak unless one is supplied; each
    further seed maximises its minimum distance to the seeds chosen so far.
    Smoothing only affects selection, never the stored centroids.
    """
    index = {v.coordinates: i for i, v in enumerate(voxels)}
    smoothed = [smooth(v.curve) for v in voxels]
    seeds = list(prefix)
    if not seeds:
        peaks = np.array([v.peak for v in voxels])
        seeds.append(voxels[int(np.argmax(peaks))].coordinates)

    chosen = np.zeros(len(voxels), dtype=bool)
    nearest = np.full(len(voxels), np.inf)
    for coords in seeds:
        if coords in index:
            chosen[index[coords]] = True
        seed_curve = smooth(_curve_of(coords, voxels, index))
        nearest = np.minimum(
            nearest, [metric.distance(s, seed_curve) for s in smoothed]
        )

    while len(seeds) < k:
        candidates = np.where(chosen, -np.inf, nearest)
        pick = int(np.argmax(candidates))
        chosen[pick] = True
        seeds.append(voxels[pick].coordinates)
        nearest = np.minimum(
            nearest, [metric.distance(s, smoothed[pick]) for s in smoothed]
        )

    return seeds


def _curve_of(coords: Coordinates, voxels: list[Voxel], index: dict) -> np.ndarray:
    if coords not in index:
        raise SeedingError(f"Seed {coords} is not a usable voxel of the source")
    return voxels[index[coords]].curve


def _update_nearest(
    nearest: np.ndarray, voxels: list[Voxel], seed_curve: np.ndarray, metric: DistanceMetric
) -> None:
    for i, voxel in enumerate(voxels):
        d = metric.distance(voxel.curve, seed_curve)
        if d < nearest[i]:
            nearest[i] = d
