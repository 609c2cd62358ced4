# LabOperator/src/config.py
# @ai-rules:
# 1. [Constraint]: Read once at import. Builders depend on these values, so they must not change at runtime.
# 2. [Pattern]: Env var name == constant name.
"""Environment configuration for the Jupyterlab operator."""
from __future__ import annotations

import os

# Custom resource coordinates
JUPYTERLAB_GROUP = "jupyter.example.com"
JUPYTERLAB_VERSION = "v1alpha1"
JUPYTERLAB_PLURAL = "jupyterlabs"
JUPYTERLAB_KIND = "Jupyterlab"
JUPYTERLAB_API_VERSION = f"{JUPYTERLAB_GROUP}/{JUPYTERLAB_VERSION}"

# OpenShift route coordinates
ROUTE_GROUP = "route.openshift.io"
ROUTE_VERSION = "v1"
ROUTE_PLURAL = "routes"

# Workload shape
APP_LABEL = "jupyterlab"
CONTAINER_NAME = "jupyterlab"
JUPYTERLAB_PORT_NAME = "jupyterlab"
JUPYTERLAB_PORT = 8888
JUPYTERLAB_IMAGE = os.getenv("JUPYTERLAB_IMAGE", "quay.io/aaziz/jupyterlab:latest")

# Empty -> the router assigns a host
ROUTE_HOST_DOMAIN = os.getenv("ROUTE_HOST_DOMAIN", "")

# Invocation timing (seconds)
RECONCILE_TIMEOUT = float(os.getenv("RECONCILE_TIMEOUT", "30"))
REQUEUE_DELAY = float(os.getenv("REQUEUE_DELAY", "1"))
ERROR_BACKOFF = float(os.getenv("ERROR_BACKOFF", "10"))
RESYNC_INTERVAL = float(os.getenv("RESYNC_INTERVAL", "60"))

DEBUG = bool(os.getenv("DEBUG"))

# Comma-separated; empty -> watch the whole cluster
WATCH_NAMESPACES = [n.strip() for n in os.getenv("WATCH_NAMESPACES", "").split(",") if n.strip()]
