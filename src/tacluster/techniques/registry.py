"""Technique registry with decorator-based registration."""

from __future__ import annotations

from typing import Type

from tacluster.metrics.base import DistanceMetric
from tacluster.metrics.registry import get_metric
from tacluster.techniques.base import ClusteringTechnique

_registry: dict[str, Type[ClusteringTechnique]] = {}


def register_technique(name: str):
    """Decorator to register a clustering technique."""

    def decorator(cls: Type[ClusteringTechnique]):
        cls.name = name
        _registry[name] = cls
        return cls

    return decorator


def get_technique(
    name: str, metric: DistanceMetric | str | None = None
) -> ClusteringTechnique:
    """Get an instance of a registered technique by name.

    ``metric`` may be an instance or a registered metric name. Techniques
    that use a metric fall back to their default one.
    """
    _ensure_techniques_loaded()
    if name not in _registry:
        available = ", ".join(_registry.keys())
        raise ValueError(f"Unknown technique '{name}'. Available: {available}")
    cls = _registry[name]
    if not cls.uses_metric:
        return cls()
    if metric is None:
        metric = cls.default_metric
    if isinstance(metric, str):
        metric = get_metric(metric)
    return cls(metric=metric)


def list_techniques() -> list[dict[str, str]]:
    """List all registered techniques with their info."""
    _ensure_techniques_loaded()
    techniques = []
    for name, cls in _registry.items():
        available, msg = cls.check_dependencies()
        techniques.append(
            {
                "name": name,
                "description": cls.description,
                "recommended_for": cls.recommended_for,
                "metric": cls.default_metric or "-",
                "available": available,
                "dependency_message": msg,
            }
        )
    return techniques


def _ensure_techniques_loaded():
    """Import technique modules to trigger registration."""
    import tacluster.techniques.decomposition  # noqa: F401
    import tacluster.techniques.kmeans  # noqa: F401
    import tacluster.techniques.leader_follower  # noqa: F401
