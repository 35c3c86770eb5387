"""
jobscaler/cluster/memory.py
───────────────────────────
InMemoryClusterClient: a simulated cluster behind the ClusterClient seam.

What this is
─────────────
A dictionary-backed stand-in for the Jobs API and the ScaledJob status
subresource. It behaves like the real thing where the executor can tell the
difference:

  - ``generateName`` is expanded with a random 5-character suffix and
    collisions are re-rolled, so creates never clash on identity.
  - Each persisted object gets a uid and a creation timestamp.
  - list_jobs() applies equality label selectors and returns deep copies
    (callers cannot mutate cluster state through a listing).
  - delete_job() of a missing object raises NotFoundError.

State transitions that only the remote system performs (a Job completing
or failing) are driven from outside via mark_complete() / mark_failed().

Fault injection
────────────────
  fail_list            → every list_jobs() raises ClusterAPIError
  fail_create_calls    → set of 1-based create call numbers that fail
  fail_delete_calls    → set of 1-based delete call numbers that fail
  fail_status_update   → update_target_status() raises ClusterAPIError

Call bookkeeping (create_calls, delete_calls, deleted_names, status_updates)
lets tests assert on what was attempted, not just what survived.

Thread safety
──────────────
A single lock guards the store; concurrent invocations see a consistent
snapshot per call, which is all the real API guarantees too.
"""

from __future__ import annotations

import random
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

from jobscaler.cluster.client import (
    ClusterAPIError,
    ClusterClient,
    NotFoundError,
    parse_label_selector,
    selector_matches,
)
from jobscaler.shared.context import InvocationContext
from jobscaler.shared.models import (
    ConditionStatus,
    ConditionType,
    JobCondition,
    JobInstance,
    ScaleTarget,
)

# Alphabet the API server uses for generateName suffixes (no vowels, no 0/1/3).
_SUFFIX_ALPHABET = "bcdfghjklmnpqrstvwxz2456789"
_SUFFIX_LENGTH = 5

_Key = Tuple[str, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryClusterClient(ClusterClient):
    """Dictionary-backed cluster. See module docstring."""

    def __init__(
        self,
        clock: Callable[[], datetime] = _utcnow,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._jobs: Dict[_Key, JobInstance] = {}
        self._targets: Dict[_Key, ScaleTarget] = {}

        # Fault injection
        self.fail_list: bool = False
        self.fail_create_calls: Set[int] = set()
        self.fail_delete_calls: Set[int] = set()
        self.fail_status_update: bool = False

        # Bookkeeping
        self.list_calls: int = 0
        self.create_calls: int = 0
        self.delete_calls: int = 0
        self.deleted_names: List[str] = []
        self.status_updates: List[ScaleTarget] = []

    # ── ClusterClient ─────────────────────────────────────────────────────────

    def list_jobs(
        self, ctx: InvocationContext, namespace: str, label_selector: str
    ) -> List[JobInstance]:
        ctx.raise_if_cancelled()
        self.list_calls += 1
        if self.fail_list:
            raise ClusterAPIError("simulated list failure", status=500)

        requirements = parse_label_selector(label_selector)
        with self._lock:
            return [
                job.model_copy(deep=True)
                for (ns, _name), job in sorted(self._jobs.items())
                if ns == namespace and selector_matches(requirements, job.metadata.labels)
            ]

    def create_job(self, ctx: InvocationContext, job: JobInstance) -> JobInstance:
        ctx.raise_if_cancelled()
        self.create_calls += 1
        if self.create_calls in self.fail_create_calls:
            raise ClusterAPIError(
                f"simulated create failure (call {self.create_calls})", status=500
            )

        stored = job.model_copy(deep=True)
        namespace = stored.metadata.namespace or "default"
        with self._lock:
            stored.metadata.name = self._assign_name(namespace, stored)
            stored.metadata.namespace = namespace
            stored.metadata.uid = str(uuid.uuid4())
            stored.metadata.creation_timestamp = self._clock()
            self._jobs[(namespace, stored.metadata.name)] = stored
        return stored.model_copy(deep=True)

    def delete_job(self, ctx: InvocationContext, job: JobInstance) -> None:
        ctx.raise_if_cancelled()
        self.delete_calls += 1
        if self.delete_calls in self.fail_delete_calls:
            raise ClusterAPIError(
                f"simulated delete failure (call {self.delete_calls})", status=500
            )

        key = (job.metadata.namespace or "default", job.metadata.name or "")
        with self._lock:
            if key not in self._jobs:
                raise NotFoundError(f'jobs.batch "{key[1]}" not found')
            del self._jobs[key]
        self.deleted_names.append(key[1])

    def update_target_status(self, ctx: InvocationContext, target: ScaleTarget) -> None:
        ctx.raise_if_cancelled()
        if self.fail_status_update:
            raise ClusterAPIError("simulated status update failure", status=500)
        snapshot = target.model_copy(deep=True)
        with self._lock:
            self._targets[(target.namespace, target.name)] = snapshot
        self.status_updates.append(snapshot)

    # ── Simulation helpers (the "remote system" side) ─────────────────────────

    def add_job(self, job: JobInstance) -> JobInstance:
        """Insert a Job as-is (an external actor, or pre-existing state)."""
        stored = job.model_copy(deep=True)
        namespace = stored.metadata.namespace or "default"
        with self._lock:
            if not stored.metadata.name:
                stored.metadata.name = self._assign_name(namespace, stored)
            stored.metadata.namespace = namespace
            stored.metadata.uid = stored.metadata.uid or str(uuid.uuid4())
            self._jobs[(namespace, stored.metadata.name)] = stored
        return stored.model_copy(deep=True)

    def mark_complete(self, namespace: str, name: str, at: Optional[datetime] = None) -> None:
        at = at or self._clock()
        with self._lock:
            job = self._get(namespace, name)
            job.status.completion_time = at
            job.status.succeeded = (job.status.succeeded or 0) + 1
            job.status.conditions.append(JobCondition(
                type=ConditionType.COMPLETE.value,
                status=ConditionStatus.TRUE.value,
                last_transition_time=at,
            ))

    def mark_failed(self, namespace: str, name: str, at: Optional[datetime] = None) -> None:
        """Fail a Job. Like the real API, completionTime stays unset."""
        at = at or self._clock()
        with self._lock:
            job = self._get(namespace, name)
            job.status.failed = (job.status.failed or 0) + 1
            job.status.conditions.append(JobCondition(
                type=ConditionType.FAILED.value,
                status=ConditionStatus.TRUE.value,
                last_transition_time=at,
                reason="BackoffLimitExceeded",
            ))

    def remove_job(self, namespace: str, name: str) -> None:
        """Out-of-band deletion (operator, owner cascade)."""
        with self._lock:
            self._jobs.pop((namespace, name), None)

    def jobs(self, namespace: Optional[str] = None) -> List[JobInstance]:
        with self._lock:
            return [
                job.model_copy(deep=True)
                for (ns, _name), job in sorted(self._jobs.items())
                if namespace is None or ns == namespace
            ]

    def get_target(self, namespace: str, name: str) -> Optional[ScaleTarget]:
        with self._lock:
            target = self._targets.get((namespace, name))
            return target.model_copy(deep=True) if target else None

    # ── Private helpers ───────────────────────────────────────────────────────

    def _get(self, namespace: str, name: str) -> JobInstance:
        job = self._jobs.get((namespace, name))
        if job is None:
            raise NotFoundError(f'jobs.batch "{name}" not found')
        return job

    def _assign_name(self, namespace: str, job: JobInstance) -> str:
        if job.metadata.name:
            if (namespace, job.metadata.name) in self._jobs:
                raise ClusterAPIError(
                    f'jobs.batch "{job.metadata.name}" already exists', status=409
                )
            return job.metadata.name
        prefix = job.metadata.generate_name
        if not prefix:
            raise ClusterAPIError("name or generateName is required", status=422)
        while True:
            suffix = "".join(self._rng.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
            candidate = prefix + suffix
            if (namespace, candidate) not in self._jobs:
                return candidate
