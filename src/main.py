# LabOperator/src/main.py
# @ai-rules:
# 1. [Pattern]: Handlers are thin. They resolve a key, take the per-key lock, call the reconciler, translate the outcome.
# 2. [Pattern]: REQUEUE and ERROR become kopf.TemporaryError so kopf re-invokes with a delay. Invalid specs are PermanentError.
# 3. [Constraint]: Pod/Deployment event handlers only nudge the owner. kopf does not retry event handlers, so they log and move on.
# 4. [Gotcha]: kopf progress goes to annotations. status is owned by the reconciler (status.nodes).
"""
Jupyterlab operator - kopf entrypoint.

Run with:
    kopf run -m src.main --all-namespaces
or:
    python -m src.main
"""
from __future__ import annotations

import logging
from typing import Any

import kopf
from kubernetes import config
from pydantic import ValidationError

from .config import (
    APP_LABEL,
    DEBUG,
    ERROR_BACKOFF,
    JUPYTERLAB_GROUP,
    JUPYTERLAB_PLURAL,
    JUPYTERLAB_VERSION,
    REQUEUE_DELAY,
    RESYNC_INTERVAL,
    WATCH_NAMESPACES,
)
from .controllers.jupyterlab import JupyterlabReconciler
from .dependencies import get_locks, get_reconciler, set_reconciler
from .labels import instance_for_labels
from .models import ObjectKey, Outcome, ReconcileResult
from .ownership import controller_owner_key
from .state.cluster import ClusterClient, load_kube_config

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Squelch noisy client loggers
for noisy in ("kubernetes.client.rest", "urllib3.connectionpool"):
    logging.getLogger(noisy).setLevel(logging.WARNING)


# =============================================================================
# Outcome translation
# =============================================================================

async def reconcile_key(key: ObjectKey) -> ReconcileResult:
    """Reconcile *key* while holding its lock."""
    async with get_locks().hold(key):
        return await get_reconciler().reconcile(key)


def raise_for_result(result: ReconcileResult) -> None:
    """Map a reconcile result onto kopf's retry semantics."""
    if result.outcome is Outcome.DONE:
        return
    if result.outcome is Outcome.REQUEUE:
        raise kopf.TemporaryError(result.reason, delay=REQUEUE_DELAY)
    if isinstance(result.cause, ValidationError):
        raise kopf.PermanentError(f"Invalid Jupyterlab: {result.reason}")
    raise kopf.TemporaryError(result.reason, delay=ERROR_BACKOFF)


# =============================================================================
# Lifecycle
# =============================================================================

@kopf.on.startup()
async def on_startup(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Load Kubernetes config, build the reconciler, tune kopf."""
    logger.info("Jupyterlab operator starting up...")
    try:
        load_kube_config()
    except config.ConfigException as e:
        logger.error(f"Could not configure Kubernetes client: {e}")
        raise kopf.PermanentError("Could not configure Kubernetes client.") from e

    set_reconciler(JupyterlabReconciler(ClusterClient()))

    # Every log line would otherwise become a K8s Event
    settings.posting.enabled = False
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=JUPYTERLAB_GROUP)
    logger.info("Jupyterlab operator started")


@kopf.on.cleanup()
async def on_cleanup(**_: Any) -> None:
    set_reconciler(None)
    logger.info("Jupyterlab operator stopped")


# =============================================================================
# Jupyterlab handlers
# =============================================================================

@kopf.on.resume(JUPYTERLAB_GROUP, JUPYTERLAB_VERSION, JUPYTERLAB_PLURAL)
@kopf.on.create(JUPYTERLAB_GROUP, JUPYTERLAB_VERSION, JUPYTERLAB_PLURAL)
@kopf.on.update(JUPYTERLAB_GROUP, JUPYTERLAB_VERSION, JUPYTERLAB_PLURAL)
async def reconcile_jupyterlab(name: str, namespace: str, **_: Any) -> None:
    """Reconcile on any change to the Jupyterlab itself."""
    raise_for_result(await reconcile_key(ObjectKey(namespace=namespace, name=name)))


@kopf.timer(JUPYTERLAB_GROUP, JUPYTERLAB_VERSION, JUPYTERLAB_PLURAL, interval=RESYNC_INTERVAL)
async def resync_jupyterlab(name: str, namespace: str, **_: Any) -> None:
    """Periodic resync; catches drift no watch event reported."""
    raise_for_result(await reconcile_key(ObjectKey(namespace=namespace, name=name)))


# =============================================================================
# Dependent resource events
# =============================================================================

async def _nudge(key: ObjectKey, source: str) -> None:
    result = await reconcile_key(key)
    if result.outcome is Outcome.ERROR:
        logger.warning(f"Reconcile of Jupyterlab {key} after {source} event failed: {result.reason}")


@kopf.on.event("apps", "v1", "deployments", labels={"app": APP_LABEL})
async def on_deployment_event(meta: Any, **_: Any) -> None:
    """A Deployment we own changed or vanished."""
    key = controller_owner_key(meta)
    if key is None:
        return
    await _nudge(key, "Deployment")


@kopf.on.event("pods", labels={"app": APP_LABEL})
async def on_pod_event(namespace: str, labels: Any, **_: Any) -> None:
    """A member pod came, went or changed; status.nodes may be stale."""
    name = instance_for_labels(labels)
    if not name or not namespace:
        return
    await _nudge(ObjectKey(namespace=namespace, name=name), "Pod")


if __name__ == "__main__":
    kopf.run(
        clusterwide=not WATCH_NAMESPACES,
        namespaces=WATCH_NAMESPACES or None,
    )
