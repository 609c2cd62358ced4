# LabOperator/scripts/reconcile_once.py
# @ai-rules:
# 1. [Constraint]: Standalone script -- no kopf, no watches. One reconcile pass per run.
# 2. [Pattern]: --render needs no cluster; prints the builder output as YAML.
"""
Run a single reconcile pass locally, or render the managed manifests.

Usage:
  python -m scripts.reconcile_once --namespace labs --name my-lab
  python -m scripts.reconcile_once --render --name my-lab --size 2
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml
from kubernetes import client

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.builders import deployment_for_jupyterlab, route_for_jupyterlab, service_for_jupyterlab
from src.models import Jupyterlab, JupyterlabSpec, ObjectKey, Outcome

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger("jupyterlab.local")


def render(args: argparse.Namespace) -> None:
    lab = Jupyterlab(
        name=args.name,
        namespace=args.namespace,
        uid="00000000-0000-0000-0000-000000000000",
        spec=JupyterlabSpec(size=args.size),
    )
    api = client.ApiClient()
    docs = [
        api.sanitize_for_serialization(deployment_for_jupyterlab(lab)),
        api.sanitize_for_serialization(service_for_jupyterlab(lab)),
        route_for_jupyterlab(lab),
    ]
    print(yaml.safe_dump_all(docs, sort_keys=False))


async def run(args: argparse.Namespace) -> int:
    from src.controllers.jupyterlab import JupyterlabReconciler
    from src.state.cluster import ClusterClient, load_kube_config

    load_kube_config()
    reconciler = JupyterlabReconciler(ClusterClient())
    key = ObjectKey(namespace=args.namespace, name=args.name)

    result = await reconciler.reconcile(key, timeout=args.timeout)
    logger.info(f"Jupyterlab {key}: {result.outcome.value} {result.reason}".rstrip())
    return 1 if result.outcome is Outcome.ERROR else 0


def main():
    parser = argparse.ArgumentParser(description="Reconcile one Jupyterlab, or render its manifests")
    parser.add_argument("--namespace", default="default", help="Jupyterlab namespace")
    parser.add_argument("--name", required=True, help="Jupyterlab name")
    parser.add_argument("--timeout", type=float, default=None, help="Deadline for the pass in seconds")
    parser.add_argument("--render", action="store_true", help="Print manifests as YAML, touch nothing")
    parser.add_argument("--size", type=int, default=1, help="spec.size used with --render")
    args = parser.parse_args()

    if args.render:
        render(args)
        return

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
