# LabOperator/src/controllers/__init__.py
"""
Reconcilers for the Jupyterlab operator.

Controllers hold no state between invocations; the cluster is the only
source of truth.
"""
from .jupyterlab import JupyterlabReconciler
from .locks import KeyedLocks

__all__ = ["JupyterlabReconciler", "KeyedLocks"]
