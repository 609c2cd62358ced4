# LabOperator/src/dependencies.py
"""Process-wide instances for the kopf handlers (set at startup)."""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .controllers.locks import KeyedLocks

if TYPE_CHECKING:
    from .controllers.jupyterlab import JupyterlabReconciler

# Global instances (initialized in main.py on_startup)
_reconciler: Optional["JupyterlabReconciler"] = None
_locks = KeyedLocks()


def set_reconciler(reconciler: Optional["JupyterlabReconciler"]) -> None:
    """Set the global reconciler instance."""
    global _reconciler
    _reconciler = reconciler


def get_reconciler() -> "JupyterlabReconciler":
    """Get the reconciler instance."""
    if _reconciler is None:
        raise RuntimeError("Reconciler not initialized. Check startup sequence.")
    return _reconciler


def get_locks() -> KeyedLocks:
    """Per-key locks shared by every handler that reconciles."""
    return _locks
