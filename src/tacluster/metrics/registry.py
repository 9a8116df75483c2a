"""Metric registry with decorator-based registration."""

from __future__ import annotations

from typing import Type

from tacluster.metrics.base import DistanceMetric

_registry: dict[str, Type[DistanceMetric]] = {}


def register_metric(name: str):
    """Decorator to register a distance metric."""

    def decorator(cls: Type[DistanceMetric]):
        cls.name = name
        _registry[name] = cls
        return cls

    return decorator


def get_metric(name: str, **kwargs) -> DistanceMetric:
    """Get an instance of a registered metric by name."""
    _ensure_metrics_loaded()
    if name not in _registry:
        available = ", ".join(_registry.keys())
        raise ValueError(f"Unknown metric '{name}'. Available: {available}")
    return _registry[name](**kwargs)


def list_metrics() -> list[dict[str, str]]:
    """List all registered metrics with their info."""
    _ensure_metrics_loaded()
    return [
        {
            "name": name,
            "description": cls.description,
            "requires_init": "yes" if cls.requires_init else "no",
        }
        for name, cls in _registry.items()
    ]


def _ensure_metrics_loaded():
    """Import metric modules to trigger registration."""
    import tacluster.metrics.correlation  # noqa: F401
    import tacluster.metrics.cosine  # noqa: F401
    import tacluster.metrics.mahalanobis  # noqa: F401
    import tacluster.metrics.pnorm  # noqa: F401
    import tacluster.metrics.rmsd  # noqa: F401
