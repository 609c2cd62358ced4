# LabOperator/tests/conftest.py
# @ai-rules:
# 1. [Constraint]: No real cluster. FakeCluster implements the ClusterClient surface in memory.
# 2. [Pattern]: Every write is appended to FakeCluster.writes as (verb, kind, "ns/name") so tests can count them.
# 3. [Pattern]: fail_next[method] raises once; delay[method] sleeps before the call (for deadline tests).
"""Shared fixtures: in-memory cluster and a reconciler bound to it."""
from __future__ import annotations

import asyncio
import copy
from typing import Mapping, Optional

import pytest
from kubernetes import client

from src.controllers.jupyterlab import JupyterlabReconciler
from src.models import Jupyterlab, ObjectKey
from src.state.cluster import AlreadyExistsError, ConflictError, NotFoundError


class FakeCluster:
    """In-memory stand-in for ClusterClient."""

    def __init__(self) -> None:
        self.jupyterlabs: dict[tuple[str, str], dict] = {}
        self.deployments: dict[tuple[str, str], client.V1Deployment] = {}
        self.services: dict[tuple[str, str], client.V1Service] = {}
        self.routes: dict[tuple[str, str], dict] = {}
        self.pods: list[client.V1Pod] = []
        self.writes: list[tuple[str, str, str]] = []
        self.fail_next: dict[str, Exception] = {}
        self.delay: dict[str, float] = {}
        self._rv = 0

    # -- seeding helpers ------------------------------------------------------

    def _next_rv(self) -> str:
        self._rv += 1
        return str(self._rv)

    def add_jupyterlab(
        self,
        name: str,
        namespace: str = "labs",
        size: int = 1,
        nodes: Optional[list[str]] = None,
    ) -> ObjectKey:
        obj = {
            "apiVersion": "jupyter.example.com/v1alpha1",
            "kind": "Jupyterlab",
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": f"uid-{namespace}-{name}",
                "resourceVersion": self._next_rv(),
            },
            "spec": {"size": size},
        }
        if nodes is not None:
            obj["status"] = {"nodes": list(nodes)}
        self.jupyterlabs[(namespace, name)] = obj
        return ObjectKey(namespace=namespace, name=name)

    def set_size(self, key: ObjectKey, size: int) -> None:
        obj = self.jupyterlabs[(key.namespace, key.name)]
        obj["spec"]["size"] = size
        obj["metadata"]["resourceVersion"] = self._next_rv()

    def delete_jupyterlab(self, key: ObjectKey) -> None:
        del self.jupyterlabs[(key.namespace, key.name)]

    def add_pod(self, name: str, namespace: str = "labs", labels: Optional[dict[str, str]] = None) -> None:
        self.pods.append(
            client.V1Pod(metadata=client.V1ObjectMeta(name=name, namespace=namespace, labels=labels or {}))
        )

    def remove_pod(self, name: str, namespace: str = "labs") -> None:
        self.pods = [
            p for p in self.pods
            if not (p.metadata.name == name and p.metadata.namespace == namespace)
        ]

    def status_nodes(self, key: ObjectKey) -> list[str]:
        return (self.jupyterlabs[(key.namespace, key.name)].get("status") or {}).get("nodes") or []

    async def _enter(self, method: str) -> None:
        if method in self.delay:
            await asyncio.sleep(self.delay[method])
        exc = self.fail_next.pop(method, None)
        if exc is not None:
            raise exc

    # -- Jupyterlab -----------------------------------------------------------

    async def get_jupyterlab(self, key: ObjectKey) -> Jupyterlab:
        await self._enter("get_jupyterlab")
        obj = self.jupyterlabs.get((key.namespace, key.name))
        if obj is None:
            raise NotFoundError(f"get Jupyterlab {key}: 404", 404)
        return Jupyterlab.from_k8s(copy.deepcopy(obj))

    async def update_jupyterlab_status(self, lab: Jupyterlab) -> Jupyterlab:
        await self._enter("update_jupyterlab_status")
        stored = self.jupyterlabs.get((lab.namespace, lab.name))
        if stored is None:
            raise NotFoundError(f"update Jupyterlab status {lab.key}: 404", 404)
        if lab.resource_version != stored["metadata"]["resourceVersion"]:
            raise ConflictError(f"update Jupyterlab status {lab.key}: 409", 409)
        stored["status"] = copy.deepcopy(lab.status_body()["status"])
        stored["metadata"]["resourceVersion"] = self._next_rv()
        self.writes.append(("update_status", "Jupyterlab", str(lab.key)))
        return Jupyterlab.from_k8s(copy.deepcopy(stored))

    # -- typed dependents -----------------------------------------------------

    async def _get(self, store: dict, kind: str, namespace: str, name: str):
        await self._enter(f"get_{kind.lower()}")
        found = store.get((namespace, name))
        if found is None:
            raise NotFoundError(f"get {kind} {namespace}/{name}: 404", 404)
        return copy.deepcopy(found)

    async def _create(self, store: dict, kind: str, body):
        await self._enter(f"create_{kind.lower()}")
        key = (body.metadata.namespace, body.metadata.name)
        if key in store:
            raise AlreadyExistsError(f"create {kind} {key[0]}/{key[1]}: 409", 409)
        stored = copy.deepcopy(body)
        stored.metadata.resource_version = self._next_rv()
        store[key] = stored
        self.writes.append(("create", kind, f"{key[0]}/{key[1]}"))
        return copy.deepcopy(stored)

    async def get_deployment(self, namespace: str, name: str) -> client.V1Deployment:
        return await self._get(self.deployments, "Deployment", namespace, name)

    async def create_deployment(self, body: client.V1Deployment) -> client.V1Deployment:
        return await self._create(self.deployments, "Deployment", body)

    async def update_deployment(self, body: client.V1Deployment) -> client.V1Deployment:
        await self._enter("update_deployment")
        key = (body.metadata.namespace, body.metadata.name)
        stored = self.deployments.get(key)
        if stored is None:
            raise NotFoundError(f"update Deployment {key[0]}/{key[1]}: 404", 404)
        if body.metadata.resource_version != stored.metadata.resource_version:
            raise ConflictError(f"update Deployment {key[0]}/{key[1]}: 409", 409)
        updated = copy.deepcopy(body)
        updated.metadata.resource_version = self._next_rv()
        self.deployments[key] = updated
        self.writes.append(("update", "Deployment", f"{key[0]}/{key[1]}"))
        return copy.deepcopy(updated)

    async def get_service(self, namespace: str, name: str) -> client.V1Service:
        return await self._get(self.services, "Service", namespace, name)

    async def create_service(self, body: client.V1Service) -> client.V1Service:
        return await self._create(self.services, "Service", body)

    # -- Route (dict) ---------------------------------------------------------

    async def get_route(self, namespace: str, name: str) -> dict:
        await self._enter("get_route")
        found = self.routes.get((namespace, name))
        if found is None:
            raise NotFoundError(f"get Route {namespace}/{name}: 404", 404)
        return copy.deepcopy(found)

    async def create_route(self, body: dict) -> dict:
        await self._enter("create_route")
        key = (body["metadata"]["namespace"], body["metadata"]["name"])
        if key in self.routes:
            raise AlreadyExistsError(f"create Route {key[0]}/{key[1]}: 409", 409)
        self.routes[key] = copy.deepcopy(body)
        self.writes.append(("create", "Route", f"{key[0]}/{key[1]}"))
        return copy.deepcopy(body)

    # -- Pods -----------------------------------------------------------------

    async def list_pods(self, namespace: str, labels: Mapping[str, str]) -> list[client.V1Pod]:
        await self._enter("list_pods")
        return [
            copy.deepcopy(p) for p in self.pods
            if p.metadata.namespace == namespace
            and all((p.metadata.labels or {}).get(k) == v for k, v in labels.items())
        ]


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def reconciler(cluster: FakeCluster) -> JupyterlabReconciler:
    return JupyterlabReconciler(cluster, timeout=5)
