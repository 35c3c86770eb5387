"""
jobscaler/cluster/client.py
───────────────────────────
ClusterClient: the capability set the executor consumes from the remote
cluster orchestration API.

The executor never talks to the API directly. Every remote effect goes
through one of these five operations:

    list_jobs(ctx, namespace, label_selector) → List[JobInstance]
    create_job(ctx, job)                      → JobInstance (as persisted)
    delete_job(ctx, job)                      → None
    update_target_status(ctx, target)         → None
    set_owner_reference(owner, child)         → None   (local, no I/O)

Implementations
────────────────
  InMemoryClusterClient   (cluster/memory.py) — simulated cluster for tests
  KubernetesClusterClient (cluster/kube.py)   — kubernetes Python client

Error contract
───────────────
  ClusterAPIError          any failed remote call.
  NotFoundError            the object does not exist (HTTP 404).
  InvocationCancelledError the context was cancelled / expired before or
                           during the call. NOT a ClusterAPIError: callers
                           that swallow API errors must still let it through.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from jobscaler.cluster.ownership import set_controller_reference
from jobscaler.shared.context import InvocationContext
from jobscaler.shared.models import JobInstance, ScaleTarget


class ClusterAPIError(Exception):
    """
    Raised when a call to the remote cluster API fails.

    Attributes:
        reason: Human-readable explanation.
        status: HTTP status code when known, else None.
    """

    def __init__(self, reason: str, status: Optional[int] = None) -> None:
        self.reason = reason
        self.status = status
        super().__init__(reason)


class NotFoundError(ClusterAPIError):
    """The referenced object does not exist (already deleted or never created)."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason, status=404)


class LabelSelectorError(ValueError):
    pass


def format_label_selector(labels: Dict[str, str]) -> str:
    """{"a": "1", "b": "2"} → "a=1,b=2" (keys sorted for stable output)."""
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))


def parse_label_selector(selector: str) -> Dict[str, str]:
    """
    Parse an equality-based selector ("k=v,k2=v2" or "k==v") into a dict.

    Set-based selectors (in, notin, !k) are not used by the executor and
    are rejected.
    """
    requirements: Dict[str, str] = {}
    for term in (part.strip() for part in selector.split(",")):
        if not term:
            continue
        if "!=" in term or " in " in term or " notin " in term or term.startswith("!"):
            raise LabelSelectorError(f"Unsupported selector term {term!r}")
        key, sep, value = term.replace("==", "=").partition("=")
        if not sep or not key.strip():
            raise LabelSelectorError(f"Malformed selector term {term!r}")
        requirements[key.strip()] = value.strip()
    return requirements


def selector_matches(requirements: Dict[str, str], labels: Dict[str, str]) -> bool:
    return all(labels.get(key) == value for key, value in requirements.items())


class ClusterClient(ABC):
    """
    Abstract remote cluster client.

    All remote methods are synchronous, may block on network I/O, and must
    honour ``ctx``: raise InvocationCancelledError instead of starting a call
    on a cancelled context, and never wait longer than ctx.remaining().
    """

    @abstractmethod
    def list_jobs(
        self, ctx: InvocationContext, namespace: str, label_selector: str
    ) -> List[JobInstance]:
        """All Jobs in ``namespace`` matching ``label_selector``."""

    @abstractmethod
    def create_job(self, ctx: InvocationContext, job: JobInstance) -> JobInstance:
        """Submit ``job``; returns the persisted object (with its generated name)."""

    @abstractmethod
    def delete_job(self, ctx: InvocationContext, job: JobInstance) -> None:
        """Delete ``job`` and its pods. Raises NotFoundError if it is already gone."""

    @abstractmethod
    def update_target_status(self, ctx: InvocationContext, target: ScaleTarget) -> None:
        """Persist ``target.status`` (the status subresource only)."""

    def set_owner_reference(self, owner: ScaleTarget, child: JobInstance) -> None:
        """
        Mark ``owner`` as the controlling owner of ``child``.

        Purely local: mutates child.metadata.owner_references. Raises
        OwnerReferenceError if child is already controlled by another object
        or the two live in different namespaces.
        """
        set_controller_reference(owner, child)
