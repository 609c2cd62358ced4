# LabOperator/src/state/__init__.py
"""Cluster state access for the Jupyterlab operator."""
from .cluster import (
    AlreadyExistsError,
    ClusterClient,
    ClusterError,
    ConflictError,
    NotFoundError,
    UnavailableError,
    load_kube_config,
)

__all__ = [
    "AlreadyExistsError",
    "ClusterClient",
    "ClusterError",
    "ConflictError",
    "NotFoundError",
    "UnavailableError",
    "load_kube_config",
]
