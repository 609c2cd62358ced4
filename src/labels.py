# LabOperator/src/labels.py
# @ai-rules:
# 1. [Constraint]: labels_for_jupyterlab is the ONLY source of the label set. Builders stamp it, list_pods selects with it.
# 2. [Gotcha]: Selector matching is exact per key, so "lab" never selects pods of "lab-2".
"""Label convention shared by resource creation and member-pod selection."""
from __future__ import annotations

from typing import Mapping, Optional

from .config import APP_LABEL

INSTANCE_LABEL = "instance"


def labels_for_jupyterlab(name: str) -> dict[str, str]:
    """Labels for selecting the resources belonging to the named Jupyterlab."""
    return {"app": APP_LABEL, INSTANCE_LABEL: name}


def label_selector(labels: Mapping[str, str]) -> str:
    """Render a label set as an equality-based selector string."""
    return ",".join(f"{k}={labels[k]}" for k in sorted(labels))


def instance_for_labels(labels: Optional[Mapping[str, str]]) -> Optional[str]:
    """Reverse lookup: the Jupyterlab name a labelled object belongs to, if any."""
    if not labels or labels.get("app") != APP_LABEL:
        return None
    return labels.get(INSTANCE_LABEL) or None
