"""
jobscaler/control_plane/retention.py
────────────────────────────────────
Retention Pruner: keep at most N finished Jobs per outcome class.

How a pass works
─────────────────
1. List the target's Jobs once (Instance Inventory). A list failure aborts
   the pass — never prune from a partial picture.
2. Partition finished Jobs into completed / failed. Running Jobs are never
   candidates.
3. Sort each partition oldest-first by completion time. The key is a pure
   function (completion_key) handed to sorted(), which is stable, so Jobs
   with equal timestamps keep list order.
4. Per partition, independently: if len > limit, delete the oldest
   (len - limit), oldest first.

Completion time
────────────────
status.completionTime is only set on successful Jobs. Failed Jobs fall back
to the lastTransitionTime of their Failed condition. Jobs with neither sort
first (treated as oldest).

Limits
───────
  completed → target.spec.successfulJobsHistoryLimit, else config default (100)
  failed    → target.spec.failedJobsHistoryLimit,     else config default (100)

Error handling contract
────────────────────────
Deletes are one call per Job. The FIRST failed delete aborts the rest of
that partition's batch and propagates. Unlike creation, cleanup is not
best-effort. A failure in the completed partition also means the failed
partition is not pruned this pass.

NotFoundError on delete means the Job is already gone (owner cascade or an
operator); it counts as removed and the batch continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from jobscaler.cluster.client import ClusterClient, NotFoundError
from jobscaler.control_plane.inventory import InstanceInventory
from jobscaler.shared.config import ExecutorConfig
from jobscaler.shared.context import InvocationContext
from jobscaler.shared.logs import TargetLoggerAdapter, target_logger
from jobscaler.shared.models import JobInstance, ScaleTarget

logger = logging.getLogger(__name__)


def completion_key(instance: JobInstance) -> Tuple[bool, Optional[datetime]]:
    """
    Sort key: oldest completion first, unknown completion before everything.

    The leading bool keeps None from ever being compared with a datetime.
    """
    finished_at = instance.finished_at
    return (finished_at is not None, finished_at)


def select_excess(instances: Sequence[JobInstance], limit: int) -> List[JobInstance]:
    """The oldest ``len(instances) - limit`` instances, oldest first. [] if within limit."""
    excess = len(instances) - max(0, limit)
    if excess <= 0:
        return []
    return sorted(instances, key=completion_key)[:excess]


@dataclass
class PruneResult:
    deleted_completed: List[str] = field(default_factory=list)
    deleted_failed: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.deleted_completed) + len(self.deleted_failed)


class RetentionPruner:
    """
    Deletes finished Jobs beyond each outcome class's history limit.

    Public API:
        history_limits(target)     → (successful_limit, failed_limit)
        prune(ctx, target, log)    → PruneResult   (raises on list/delete failure)
    """

    def __init__(
        self,
        client: ClusterClient,
        inventory: Optional[InstanceInventory] = None,
        config: Optional[ExecutorConfig] = None,
    ) -> None:
        self._client = client
        self._inventory = inventory or InstanceInventory(client)
        self._config = config or ExecutorConfig()

    def history_limits(self, target: ScaleTarget) -> Tuple[int, int]:
        successful = target.spec.successful_jobs_history_limit
        failed = target.spec.failed_jobs_history_limit
        return (
            self._config.default_successful_history_limit if successful is None else successful,
            self._config.default_failed_history_limit if failed is None else failed,
        )

    def prune(
        self,
        ctx: InvocationContext,
        target: ScaleTarget,
        log: Optional[TargetLoggerAdapter] = None,
    ) -> PruneResult:
        log = log or target_logger(logger, target)
        finished = self._inventory.finished_instances(ctx, target)
        successful_limit, failed_limit = self.history_limits(target)

        result = PruneResult()
        self._delete_beyond_limit(ctx, finished.completed, successful_limit, result.deleted_completed, log)
        self._delete_beyond_limit(ctx, finished.failed, failed_limit, result.deleted_failed, log)
        return result

    def _delete_beyond_limit(
        self,
        ctx: InvocationContext,
        instances: List[JobInstance],
        history_limit: int,
        deleted: List[str],
        log: TargetLoggerAdapter,
    ) -> None:
        for instance in select_excess(instances, history_limit):
            try:
                self._client.delete_job(ctx, instance)
            except NotFoundError:
                log.debug("Job already removed", fields={"job.Name": instance.name})
            else:
                log.info(
                    "Remove a job by reaching the historyLimit",
                    fields={"job.Name": instance.name, "historyLimit": history_limit},
                )
            deleted.append(instance.name or "")
