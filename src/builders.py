# LabOperator/src/builders.py
# @ai-rules:
# 1. [Constraint]: Pure functions. No I/O, no clock, no randomness -- the reconciler diffs against this output.
# 2. [Pattern]: Every builder attaches the controller owner reference before the object is ever created.
# 3. [Gotcha]: The Route targets the Service by the lab's own name (Service and Route share it).
"""Desired Deployment, Service and Route for a Jupyterlab."""
from __future__ import annotations

from kubernetes import client

from .config import (
    CONTAINER_NAME,
    JUPYTERLAB_IMAGE,
    JUPYTERLAB_PORT,
    JUPYTERLAB_PORT_NAME,
    ROUTE_GROUP,
    ROUTE_HOST_DOMAIN,
    ROUTE_VERSION,
)
from .labels import labels_for_jupyterlab
from .models import Jupyterlab
from .ownership import owner_reference, owner_reference_dict


def _object_meta(lab: Jupyterlab) -> client.V1ObjectMeta:
    return client.V1ObjectMeta(
        name=lab.name,
        namespace=lab.namespace,
        labels=labels_for_jupyterlab(lab.name),
        owner_references=[owner_reference(lab)],
    )


def deployment_for_jupyterlab(lab: Jupyterlab) -> client.V1Deployment:
    """Deployment running spec.size Jupyterlab pods."""
    ls = labels_for_jupyterlab(lab.name)
    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=_object_meta(lab),
        spec=client.V1DeploymentSpec(
            replicas=lab.spec.size,
            selector=client.V1LabelSelector(match_labels=ls),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=ls),
                spec=client.V1PodSpec(
                    containers=[
                        client.V1Container(
                            name=CONTAINER_NAME,
                            image=JUPYTERLAB_IMAGE,
                            ports=[
                                client.V1ContainerPort(
                                    protocol="TCP",
                                    container_port=JUPYTERLAB_PORT,
                                )
                            ],
                        )
                    ]
                ),
            ),
        ),
    )


def service_for_jupyterlab(lab: Jupyterlab) -> client.V1Service:
    """Service exposing the Jupyterlab port on the lab's pods."""
    return client.V1Service(
        api_version="v1",
        kind="Service",
        metadata=_object_meta(lab),
        spec=client.V1ServiceSpec(
            ports=[client.V1ServicePort(name=JUPYTERLAB_PORT_NAME, port=JUPYTERLAB_PORT)],
            selector=labels_for_jupyterlab(lab.name),
        ),
    )


def route_host(lab: Jupyterlab) -> str | None:
    if not ROUTE_HOST_DOMAIN:
        return None
    return f"{lab.name}-{lab.namespace}.{ROUTE_HOST_DOMAIN}"


def route_for_jupyterlab(lab: Jupyterlab) -> dict:
    """OpenShift Route sending external traffic to the lab's Service."""
    spec: dict = {
        "to": {"kind": "Service", "name": lab.name, "weight": 100},
        "port": {"targetPort": JUPYTERLAB_PORT},
    }
    host = route_host(lab)
    if host:
        spec["host"] = host
    return {
        "apiVersion": f"{ROUTE_GROUP}/{ROUTE_VERSION}",
        "kind": "Route",
        "metadata": {
            "name": lab.name,
            "namespace": lab.namespace,
            "labels": labels_for_jupyterlab(lab.name),
            "ownerReferences": [owner_reference_dict(lab)],
        },
        "spec": spec,
    }
