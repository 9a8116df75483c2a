"""Exception taxonomy for clustering runs.

Configuration mistakes raise ``ValueError``. Everything raised here signals
that a run could not produce a trustworthy result.
"""

from __future__ import annotations


class TaclusterError(RuntimeError):
    """Base class for failures during a clustering run."""


class MetricNotInitializedError(TaclusterError):
    """A stateful metric was queried before ``init()`` completed."""


class DecompositionError(TaclusterError):
    """A basis decomposition failed or did not converge."""


class SeedingError(TaclusterError):
    """Initial cluster seeds could not be drawn from the voxel source."""
