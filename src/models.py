# LabOperator/src/models.py
# @ai-rules:
# 1. [Constraint]: All API-facing models are Pydantic BaseModel. Use Field() for defaults and descriptions.
# 2. [Pattern]: Wire names follow the CRD (spec.size, status.nodes); Python names stay snake_case.
# 3. [Gotcha]: status may be missing or null on a freshly created object. Parse it as an empty JupyterlabStatus.
# 4. [Pattern]: ReconcileResult is a dataclass, not a model -- it carries a live exception.
"""Pydantic schemas for the Jupyterlab custom resource and reconcile outcomes."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import JUPYTERLAB_API_VERSION, JUPYTERLAB_KIND


# =============================================================================
# Identity
# =============================================================================

class ObjectKey(BaseModel):
    """Namespace/name pair identifying one Jupyterlab object."""
    model_config = ConfigDict(frozen=True)

    namespace: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


# =============================================================================
# Jupyterlab custom resource
# =============================================================================

class JupyterlabSpec(BaseModel):
    """User-controlled desired state."""
    size: int = Field(..., ge=0, description="Number of Jupyterlab pods to run")


class JupyterlabStatus(BaseModel):
    """Controller-owned observed state."""
    nodes: list[str] = Field(default_factory=list, description="Names of the pods backing this instance")

    @field_validator("nodes", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class Jupyterlab(BaseModel):
    """A Jupyterlab object as read from the cluster."""
    api_version: str = JUPYTERLAB_API_VERSION
    kind: str = JUPYTERLAB_KIND
    name: str
    namespace: str
    uid: str = ""
    resource_version: Optional[str] = None
    spec: JupyterlabSpec
    status: JupyterlabStatus = Field(default_factory=JupyterlabStatus)

    @classmethod
    def from_k8s(cls, obj: dict) -> "Jupyterlab":
        """Parse the dict returned by CustomObjectsApi."""
        metadata = obj.get("metadata") or {}
        return cls(
            api_version=obj.get("apiVersion") or JUPYTERLAB_API_VERSION,
            kind=obj.get("kind") or JUPYTERLAB_KIND,
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            uid=metadata.get("uid") or "",
            resource_version=metadata.get("resourceVersion"),
            spec=obj.get("spec") or {},
            status=obj.get("status") or {},
        )

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(namespace=self.namespace, name=self.name)

    def status_body(self) -> dict:
        """
        Body for a write to the status subresource.

        Carries resourceVersion so the API server rejects the write with a
        409 if another writer got there first.
        """
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
            "spec": self.spec.model_dump(),
            "status": self.status.model_dump(),
        }


# =============================================================================
# Reconcile outcome
# =============================================================================

class Outcome(str, Enum):
    """What the invocation layer should do after a reconcile pass."""
    DONE = "done"
    REQUEUE = "requeue"
    ERROR = "error"


@dataclass(frozen=True)
class ReconcileResult:
    """Result of one reconcile pass."""

    outcome: Outcome
    reason: str = ""
    cause: Optional[BaseException] = None

    @classmethod
    def done(cls) -> "ReconcileResult":
        return cls(Outcome.DONE)

    @classmethod
    def requeue(cls, reason: str) -> "ReconcileResult":
        return cls(Outcome.REQUEUE, reason=reason)

    @classmethod
    def error(cls, cause: BaseException) -> "ReconcileResult":
        return cls(Outcome.ERROR, reason=str(cause) or type(cause).__name__, cause=cause)
