"""
jobscaler/cluster — the remote cluster seam.

Public API:
    ClusterClient            — abstract capability set the executor consumes
    ClusterAPIError          — any failed remote call
    NotFoundError            — object already gone (HTTP 404)
    OwnerReferenceError      — controller reference could not be attached
    InMemoryClusterClient    — simulated cluster (tests, local runs)
    KubernetesClusterClient  — kubernetes Python client adapter
"""

from jobscaler.cluster.client import (
    ClusterAPIError,
    ClusterClient,
    LabelSelectorError,
    NotFoundError,
    format_label_selector,
    parse_label_selector,
)
from jobscaler.cluster.ownership import OwnerReferenceError, set_controller_reference
from jobscaler.cluster.memory import InMemoryClusterClient
from jobscaler.cluster.kube import KubernetesClusterClient

__all__ = [
    "ClusterAPIError",
    "ClusterClient",
    "LabelSelectorError",
    "NotFoundError",
    "format_label_selector",
    "parse_label_selector",
    "OwnerReferenceError",
    "set_controller_reference",
    "InMemoryClusterClient",
    "KubernetesClusterClient",
]
