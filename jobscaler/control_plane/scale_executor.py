"""
jobscaler/control_plane/scale_executor.py
─────────────────────────────────────────
ScaleExecutor: the entry point. One request_scale() call per target per
scaling cycle.

Pipeline
─────────
  1. Instance Inventory  → running_count
  2. Capacity Planner    → effective_ceiling, to_create
  3. if is_active:
       status.lastActiveTime = now, persisted via update_target_status
       Instance Factory creates to_create Jobs
     else: nothing is created, lastActiveTime is untouched
  4. Retention Pruner    — always, active or not

Contract
─────────
request_scale() returns None and never raises. Every failure, including
unexpected ones from the client or the models, is logged at this boundary
and the next cycle re-observes the cluster and converges (level-triggered,
no retries in here). An unexpected error while scaling still lets the
retention pass run.

A cancelled or expired InvocationContext stops the invocation at the next
remote call; the cancellation is logged and the call returns.

Thread safety
──────────────
The executor holds no per-target state, so one instance may serve many
targets concurrently. Invocations for the SAME target must be serialised by
the caller: list-then-create is not atomic, and overlapping invocations can
overshoot the ceiling by the overlapping creates.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from jobscaler.cluster.client import ClusterAPIError, ClusterClient
from jobscaler.control_plane import capacity_planner
from jobscaler.control_plane.instance_factory import InstanceFactory
from jobscaler.control_plane.inventory import InstanceInventory, InventoryUnavailableError
from jobscaler.control_plane.retention import RetentionPruner
from jobscaler.shared.config import ExecutorConfig
from jobscaler.shared.context import InvocationCancelledError, InvocationContext
from jobscaler.shared.logs import TargetLoggerAdapter, target_logger
from jobscaler.shared.models import ScaleTarget

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScaleExecutor:
    """
    Scale-out and retention executor for ScaledJobs.

    Public API:
        request_scale(ctx, target, is_active, desired_count, ceiling) → None

    Attributes:
        inventory : InstanceInventory
        factory   : InstanceFactory
        pruner    : RetentionPruner
    """

    def __init__(
        self,
        client: ClusterClient,
        config: Optional[ExecutorConfig] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._config = config or ExecutorConfig()
        self._clock = clock

        self.inventory = InstanceInventory(client, strict=self._config.strict_inventory)
        self.factory = InstanceFactory(client, self._config)
        self.pruner = RetentionPruner(client, self.inventory, self._config)

    def request_scale(
        self,
        ctx: InvocationContext,
        target: ScaleTarget,
        is_active: bool,
        desired_count: int,
        ceiling: int,
    ) -> None:
        log = target_logger(logger, target)
        try:
            self._scale(ctx, target, is_active, desired_count, ceiling, log)
        except InvocationCancelledError as e:
            log.warning("Scaling invocation aborted: %s", e.reason)
            return
        except Exception:
            log.exception("Unexpected error while scaling jobs")

        try:
            result = self.pruner.prune(ctx, target, log)
        except InvocationCancelledError as e:
            log.warning("Job cleanup aborted: %s", e.reason)
        except ClusterAPIError as e:
            log.error("Failed to cleanUp jobs: %s", e.reason)
        except Exception:
            log.exception("Unexpected error while cleaning up jobs")
        else:
            if result.total:
                log.debug(
                    "Cleaned up jobs",
                    fields={"completed": len(result.deleted_completed), "failed": len(result.deleted_failed)},
                )

    # ── Private helpers ───────────────────────────────────────────────────────

    def _scale(
        self,
        ctx: InvocationContext,
        target: ScaleTarget,
        is_active: bool,
        desired_count: int,
        ceiling: int,
        log: TargetLoggerAdapter,
    ) -> None:
        running: Optional[int]
        try:
            running = self.inventory.running_count(ctx, target, log)
        except InventoryUnavailableError as e:
            log.error("Running jobs unknown, job creation will be skipped: %s", e.reason)
            running = None
        else:
            log.info("Scaling Jobs", fields={"Number of running Jobs": running})

        if not is_active:
            log.debug("No change in activity")
            return

        log.debug("At least one scaler is active")
        self._update_last_active_time(ctx, target, log)
        if running is None:
            return

        plan = capacity_planner.plan(ceiling, running, desired_count)
        log.info("Creating jobs", fields={"Effective number of max jobs": plan.effective_ceiling})
        self.factory.create_instances(ctx, target, plan.to_create, log)

    def _update_last_active_time(
        self, ctx: InvocationContext, target: ScaleTarget, log: TargetLoggerAdapter
    ) -> None:
        target.status.last_active_time = self._clock()
        try:
            self._client.update_target_status(ctx, target)
        except ClusterAPIError as e:
            log.error("Failed to update last active time: %s", e.reason)
