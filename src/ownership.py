# LabOperator/src/ownership.py
# @ai-rules:
# 1. [Pattern]: Ownership is a plain owner -> dependent edge stored on the dependent (metadata.ownerReferences).
# 2. [Constraint]: Cascade deletion is done by the cluster garbage collector. Nothing here deletes anything.
# 3. [Gotcha]: Metadata arrives either as a V1ObjectMeta (typed client) or a camelCase mapping (custom objects, kopf bodies).
"""Owner references linking dependent resources to their Jupyterlab."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from kubernetes import client

from .config import JUPYTERLAB_API_VERSION, JUPYTERLAB_KIND
from .models import Jupyterlab, ObjectKey


def owner_reference(lab: Jupyterlab) -> client.V1OwnerReference:
    """Controller reference pointing at *lab*."""
    return client.V1OwnerReference(
        api_version=lab.api_version,
        kind=lab.kind,
        name=lab.name,
        uid=lab.uid,
        controller=True,
        block_owner_deletion=True,
    )


def owner_reference_dict(lab: Jupyterlab) -> dict:
    """Same reference, camelCase, for untyped (custom object) bodies."""
    ref = owner_reference(lab)
    return {
        ref.attribute_map[attr]: value
        for attr, value in ref.to_dict().items()
        if value is not None
    }


def _get(obj: Any, attr: str, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, attr, None)


def controller_owner_key(metadata: Any) -> Optional[ObjectKey]:
    """
    Key of the Jupyterlab controlling an object, or None.

    Only the reference flagged controller=True counts, so a resource is
    attributed to at most one Jupyterlab.
    """
    if metadata is None:
        return None
    namespace = _get(metadata, "namespace", "namespace")
    for ref in _get(metadata, "owner_references", "ownerReferences") or []:
        if not _get(ref, "controller", "controller"):
            continue
        if _get(ref, "kind", "kind") != JUPYTERLAB_KIND:
            continue
        if _get(ref, "api_version", "apiVersion") != JUPYTERLAB_API_VERSION:
            continue
        name = _get(ref, "name", "name")
        if namespace and name:
            return ObjectKey(namespace=namespace, name=name)
    return None
