"""Clustering techniques operating on voxel sources."""

from tacluster.techniques.base import ClusteringTechnique, ProgressCallback
from tacluster.techniques.registry import get_technique, list_techniques, register_technique

__all__ = [
    "ClusteringTechnique",
    "ProgressCallback",
    "get_technique",
    "list_techniques",
    "register_technique",
]
