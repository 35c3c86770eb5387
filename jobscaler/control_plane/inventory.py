"""
jobscaler/control_plane/inventory.py
────────────────────────────────────
Instance Inventory: what does the cluster say a ScaledJob currently has?

Every answer is re-derived from one list call per question. Nothing is
cached between invocations — the list snapshot is the only truth, and it is
eventually consistent.

Query
──────
  namespace      = target.namespace
  label selector = "scaledjob=<target.name>"       (the ownership label)

Classification
───────────────
  COMPLETED  Complete condition with status True
  FAILED     Failed condition with status True
  RUNNING    anything else — including pending / not yet scheduled Jobs

Failure semantics
──────────────────
  running_count()       → list failure returns 0 and logs. This under-protects
                          the ceiling during a list outage (the planner sees
                          an idle target). With ExecutorConfig.strict_inventory
                          the failure is raised as InventoryUnavailableError
                          instead and the caller skips creation.
  finished_instances()  → list failure propagates; cleanup must never run on
                          partial or missing data.

InvocationCancelledError always propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from jobscaler.cluster.client import ClusterAPIError, ClusterClient, format_label_selector
from jobscaler.shared.context import InvocationContext
from jobscaler.shared.logs import TargetLoggerAdapter, target_logger
from jobscaler.shared.models import OWNERSHIP_LABEL, InstancePhase, JobInstance, ScaleTarget

logger = logging.getLogger(__name__)


class InventoryUnavailableError(Exception):
    """
    Raised in strict mode when the running-instance query fails.

    Attributes:
        reason: Explanation, including the underlying API error.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


@dataclass
class FinishedInstances:
    """Finished Jobs of one target, split by outcome."""
    completed: List[JobInstance] = field(default_factory=list)
    failed: List[JobInstance] = field(default_factory=list)


def label_selector_for(target: ScaleTarget) -> str:
    return format_label_selector({OWNERSHIP_LABEL: target.name})


def classify(instance: JobInstance) -> InstancePhase:
    return instance.phase


class InstanceInventory:
    """
    Read-only view of a target's Jobs.

    Public API:
        list_instances(ctx, target)           → List[JobInstance]   (raises)
        running_count(ctx, target, log)       → int                 (0 on failure)
        finished_instances(ctx, target)       → FinishedInstances   (raises)
    """

    def __init__(self, client: ClusterClient, strict: bool = False) -> None:
        self._client = client
        self._strict = strict

    def list_instances(self, ctx: InvocationContext, target: ScaleTarget) -> List[JobInstance]:
        return self._client.list_jobs(ctx, target.namespace, label_selector_for(target))

    def running_count(
        self,
        ctx: InvocationContext,
        target: ScaleTarget,
        log: Optional[TargetLoggerAdapter] = None,
    ) -> int:
        log = log or target_logger(logger, target)
        try:
            instances = self.list_instances(ctx, target)
        except ClusterAPIError as e:
            if self._strict:
                raise InventoryUnavailableError(
                    f"could not list jobs for {target.namespace}/{target.name}: {e.reason}"
                ) from e
            log.error("Can not get list of Jobs, assuming 0 running: %s", e.reason)
            return 0

        return sum(1 for instance in instances if classify(instance) == InstancePhase.RUNNING)

    def finished_instances(self, ctx: InvocationContext, target: ScaleTarget) -> FinishedInstances:
        finished = FinishedInstances()
        for instance in self.list_instances(ctx, target):
            phase = classify(instance)
            if phase == InstancePhase.COMPLETED:
                finished.completed.append(instance)
            elif phase == InstancePhase.FAILED:
                finished.failed.append(instance)
        return finished
