# LabOperator/src/controllers/jupyterlab.py
# @ai-rules:
# 1. [Constraint]: Level-triggered. Every pass re-reads everything; nothing is remembered between passes.
# 2. [Pattern]: At most one mutating write per pass. After a create/update return REQUEUE and let the next pass verify it.
# 3. [Constraint]: Step order is Deployment -> Service -> Route -> status. The Route points at the Service by name.
# 4. [Constraint]: No retries, sleeps or locks in here. Backoff and per-key serialization belong to the caller.
# 5. [Gotcha]: status.nodes is compared as a set. Pod list order from the API server is not stable.
"""
Jupyterlab reconciler.

Drives the Deployment, Service and Route owned by a Jupyterlab toward the
output of the resource builders, then publishes the names of the member pods
in status.nodes.
"""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Optional

from pydantic import ValidationError

from ..builders import deployment_for_jupyterlab, route_for_jupyterlab, service_for_jupyterlab
from ..config import RECONCILE_TIMEOUT
from ..labels import labels_for_jupyterlab
from ..models import Jupyterlab, ObjectKey, ReconcileResult
from ..state.cluster import AlreadyExistsError, ClusterError, NotFoundError

if TYPE_CHECKING:
    from ..state.cluster import ClusterClient

logger = logging.getLogger(__name__)


# =============================================================================
# Drift checks (pure)
# =============================================================================

def replicas_drifted(found: Any, size: int) -> bool:
    """True if the live Deployment does not run spec.size replicas."""
    return found.spec.replicas != size


def member_names(pods: Iterable[Any]) -> list[str]:
    """Sorted pod names."""
    return sorted(pod.metadata.name for pod in pods)


def status_drifted(names: Iterable[str], nodes: Iterable[str]) -> bool:
    """True if status.nodes is not set-equal to the live member names."""
    return set(names) != set(nodes)


# =============================================================================
# Reconciler
# =============================================================================

class JupyterlabReconciler:
    """
    Converges one Jupyterlab per call.

    Usage:
        reconciler = JupyterlabReconciler(ClusterClient())
        result = await reconciler.reconcile(ObjectKey(namespace="ns", name="lab"))
    """

    def __init__(self, cluster: "ClusterClient", timeout: float = RECONCILE_TIMEOUT):
        self.cluster = cluster
        self.timeout = timeout

    async def reconcile(self, key: ObjectKey, timeout: Optional[float] = None) -> ReconcileResult:
        """
        Run one reconcile pass for *key*.

        The pass is bounded by *timeout* seconds (0 disables the deadline).
        On expiry the pass stops where it is and reports ERROR; any write
        that already went through stays, later steps are not started.
        Cancellation of the calling task propagates unchanged.
        """
        timeout = self.timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._reconcile(key), timeout=timeout or None)
        except asyncio.TimeoutError as e:
            logger.error(f"Reconcile of Jupyterlab {key} timed out after {timeout}s")
            return ReconcileResult.error(e)

    async def _reconcile(self, key: ObjectKey) -> ReconcileResult:
        try:
            lab = await self.cluster.get_jupyterlab(key)
        except NotFoundError:
            # Owned objects are garbage collected by the cluster
            logger.info(f"Jupyterlab {key} not found. Ignoring since object must be deleted")
            return ReconcileResult.done()
        except (ClusterError, ValidationError) as e:
            logger.error(f"Failed to get Jupyterlab {key}: {e}")
            return ReconcileResult.error(e)

        steps = (
            self._converge_deployment,
            self._converge_service,
            self._converge_route,
            self._refresh_status,
        )
        for step in steps:
            try:
                result = await step(lab)
            except ClusterError as e:
                logger.error(f"Reconcile of Jupyterlab {key} failed in {step.__name__}: {e}")
                return ReconcileResult.error(e)
            if result is not None:
                return result

        logger.debug(f"Jupyterlab {key} is in sync")
        return ReconcileResult.done()

    async def _get_or_create(
        self,
        lab: Jupyterlab,
        kind: str,
        fetch: Callable[[str, str], Awaitable[Any]],
        build: Callable[[Jupyterlab], Any],
        create: Callable[[Any], Awaitable[Any]],
    ) -> tuple[Any, Optional[ReconcileResult]]:
        """Fetch the dependent; when absent create it and ask for a requeue."""
        try:
            return await fetch(lab.namespace, lab.name), None
        except NotFoundError:
            pass

        body = build(lab)
        logger.info(f"Creating a new {kind} {lab.namespace}/{lab.name}")
        try:
            await create(body)
        except AlreadyExistsError:
            logger.info(f"{kind} {lab.namespace}/{lab.name} already exists, requeueing")
            return None, ReconcileResult.requeue(f"{kind} already exists")
        return None, ReconcileResult.requeue(f"created {kind}")

    async def _converge_deployment(self, lab: Jupyterlab) -> Optional[ReconcileResult]:
        found, result = await self._get_or_create(
            lab,
            "Deployment",
            self.cluster.get_deployment,
            deployment_for_jupyterlab,
            self.cluster.create_deployment,
        )
        if result is not None:
            return result

        size = lab.spec.size
        if replicas_drifted(found, size):
            logger.info(
                f"Scaling Deployment {lab.namespace}/{lab.name} "
                f"from {found.spec.replicas} to {size} replicas"
            )
            found.spec.replicas = size
            await self.cluster.update_deployment(found)
            return ReconcileResult.requeue("updated Deployment replicas")
        return None

    async def _converge_service(self, lab: Jupyterlab) -> Optional[ReconcileResult]:
        _, result = await self._get_or_create(
            lab,
            "Service",
            self.cluster.get_service,
            service_for_jupyterlab,
            self.cluster.create_service,
        )
        return result

    async def _converge_route(self, lab: Jupyterlab) -> Optional[ReconcileResult]:
        _, result = await self._get_or_create(
            lab,
            "Route",
            self.cluster.get_route,
            route_for_jupyterlab,
            self.cluster.create_route,
        )
        return result

    async def _refresh_status(self, lab: Jupyterlab) -> Optional[ReconcileResult]:
        pods = await self.cluster.list_pods(lab.namespace, labels_for_jupyterlab(lab.name))
        names = member_names(pods)
        if status_drifted(names, lab.status.nodes):
            logger.info(f"Updating Jupyterlab {lab.key} status.nodes to {names}")
            lab.status.nodes = names
            await self.cluster.update_jupyterlab_status(lab)
        # Last step: a status write does not requeue
        return None
