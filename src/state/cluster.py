# LabOperator/src/state/cluster.py
# @ai-rules:
# 1. [Constraint]: This module is the only Kubernetes API touchpoint. The reconciler sees ClusterError subclasses, never ApiException.
# 2. [Pattern]: Blocking client calls run in the default executor (run_in_executor), one round trip per method.
# 3. [Gotcha]: 409 means AlreadyExists on create and Conflict on replace. The caller picks the meaning via _call(on_conflict=...).
# 4. [Constraint]: No caching. Every get/list goes to the API server.
"""
Kubernetes resource store for the Jupyterlab operator.

Wraps CoreV1Api, AppsV1Api and CustomObjectsApi behind a small async
interface: get / list / create / update / update_status per resource kind.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, Mapping, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from ..config import (
    JUPYTERLAB_GROUP,
    JUPYTERLAB_PLURAL,
    JUPYTERLAB_VERSION,
    ROUTE_GROUP,
    ROUTE_PLURAL,
    ROUTE_VERSION,
)
from ..labels import label_selector
from ..models import Jupyterlab, ObjectKey

logger = logging.getLogger(__name__)


class ClusterError(Exception):
    """A resource store call failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(ClusterError):
    """The requested object does not exist."""


class AlreadyExistsError(ClusterError):
    """Create raced with another writer."""


class ConflictError(ClusterError):
    """Update carried a stale resourceVersion."""


class UnavailableError(ClusterError):
    """API server unreachable, overloaded or failing."""


def load_kube_config() -> None:
    """Load in-cluster config, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except config.ConfigException:
        config.load_kube_config()
        logger.info("Loaded kubeconfig")


def _translate(e: Exception, what: str, on_conflict: type[ClusterError]) -> ClusterError:
    if isinstance(e, ApiException):
        status = e.status or 0
        message = f"{what}: {status} {e.reason}"
        if status == 404:
            return NotFoundError(message, status)
        if status == 409:
            return on_conflict(message, status)
        if status == 0 or status == 429 or status >= 500:
            return UnavailableError(message, status)
        return ClusterError(message, status)
    return UnavailableError(f"{what}: {e}")


class ClusterClient:
    """
    Async facade over the Kubernetes API for the kinds this operator touches.

    Usage:
        load_kube_config()
        cluster = ClusterClient()
        lab = await cluster.get_jupyterlab(ObjectKey(namespace="ns", name="lab"))
    """

    def __init__(
        self,
        core_api: Optional[client.CoreV1Api] = None,
        apps_api: Optional[client.AppsV1Api] = None,
        custom_api: Optional[client.CustomObjectsApi] = None,
    ):
        self._core_api = core_api or client.CoreV1Api()
        self._apps_api = apps_api or client.AppsV1Api()
        self._custom_api = custom_api or client.CustomObjectsApi()

    async def _call(
        self,
        what: str,
        fn: Callable[..., Any],
        *args: Any,
        on_conflict: type[ClusterError] = ConflictError,
        **kwargs: Any,
    ) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            raise _translate(e, what, on_conflict) from e

    # -------------------------------------------------------------------------
    # Jupyterlab
    # -------------------------------------------------------------------------

    async def get_jupyterlab(self, key: ObjectKey) -> Jupyterlab:
        obj = await self._call(
            f"get Jupyterlab {key}",
            self._custom_api.get_namespaced_custom_object,
            JUPYTERLAB_GROUP, JUPYTERLAB_VERSION, key.namespace, JUPYTERLAB_PLURAL, key.name,
        )
        return Jupyterlab.from_k8s(obj)

    async def update_jupyterlab_status(self, lab: Jupyterlab) -> Jupyterlab:
        obj = await self._call(
            f"update Jupyterlab status {lab.key}",
            self._custom_api.replace_namespaced_custom_object_status,
            JUPYTERLAB_GROUP, JUPYTERLAB_VERSION, lab.namespace, JUPYTERLAB_PLURAL, lab.name,
            lab.status_body(),
        )
        return Jupyterlab.from_k8s(obj)

    # -------------------------------------------------------------------------
    # Deployment
    # -------------------------------------------------------------------------

    async def get_deployment(self, namespace: str, name: str) -> client.V1Deployment:
        return await self._call(
            f"get Deployment {namespace}/{name}",
            self._apps_api.read_namespaced_deployment, name, namespace,
        )

    async def create_deployment(self, body: client.V1Deployment) -> client.V1Deployment:
        return await self._call(
            f"create Deployment {body.metadata.namespace}/{body.metadata.name}",
            self._apps_api.create_namespaced_deployment, body.metadata.namespace, body,
            on_conflict=AlreadyExistsError,
        )

    async def update_deployment(self, body: client.V1Deployment) -> client.V1Deployment:
        return await self._call(
            f"update Deployment {body.metadata.namespace}/{body.metadata.name}",
            self._apps_api.replace_namespaced_deployment,
            body.metadata.name, body.metadata.namespace, body,
        )

    # -------------------------------------------------------------------------
    # Service
    # -------------------------------------------------------------------------

    async def get_service(self, namespace: str, name: str) -> client.V1Service:
        return await self._call(
            f"get Service {namespace}/{name}",
            self._core_api.read_namespaced_service, name, namespace,
        )

    async def create_service(self, body: client.V1Service) -> client.V1Service:
        return await self._call(
            f"create Service {body.metadata.namespace}/{body.metadata.name}",
            self._core_api.create_namespaced_service, body.metadata.namespace, body,
            on_conflict=AlreadyExistsError,
        )

    # -------------------------------------------------------------------------
    # Route (custom object, plain dicts)
    # -------------------------------------------------------------------------

    async def get_route(self, namespace: str, name: str) -> dict:
        return await self._call(
            f"get Route {namespace}/{name}",
            self._custom_api.get_namespaced_custom_object,
            ROUTE_GROUP, ROUTE_VERSION, namespace, ROUTE_PLURAL, name,
        )

    async def create_route(self, body: dict) -> dict:
        namespace = body["metadata"]["namespace"]
        return await self._call(
            f"create Route {namespace}/{body['metadata']['name']}",
            self._custom_api.create_namespaced_custom_object,
            ROUTE_GROUP, ROUTE_VERSION, namespace, ROUTE_PLURAL, body,
            on_conflict=AlreadyExistsError,
        )

    # -------------------------------------------------------------------------
    # Pods
    # -------------------------------------------------------------------------

    async def list_pods(self, namespace: str, labels: Mapping[str, str]) -> list[client.V1Pod]:
        pods = await self._call(
            f"list Pods in {namespace}",
            self._core_api.list_namespaced_pod, namespace,
            label_selector=label_selector(labels),
        )
        return list(pods.items or [])
