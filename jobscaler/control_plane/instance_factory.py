"""
jobscaler/control_plane/instance_factory.py
───────────────────────────────────────────
Instance Factory: stamps the ScaledJob template into new Jobs and submits them.

What every created Job gets
────────────────────────────
  metadata.generateName   "<target.name>-"  — the API server appends a unique
                          suffix, so client-side names can never collide.
  metadata.namespace      target.namespace
  metadata.labels         scaledjob=<target.name>             (correlation key)
                          app.kubernetes.io/name=<target.name>
                          app.kubernetes.io/version=<jobscaler version>
                          app.kubernetes.io/part-of=<target.name>
                          app.kubernetes.io/managed-by=<operator name>
  metadata.ownerReferences controller reference to the target
  spec                    deep copy of target.spec.jobTargetRef, with the pod
                          template also labelled scaledjob=<target.name>
  spec.template.spec.restartPolicy
                          OnFailure if unset. Jobs reject Always, and Always is
                          what clients default an unset policy to.

The target itself is never mutated; each Job owns an independent copy.

Error handling contract
────────────────────────
  Owner reference failure  → logged, the Job is still submitted (it just
                             will not be cascade-deleted with the target).
  Create failure           → logged, the remaining creates still run.
                             Best-effort fan-out: fewer Jobs than requested
                             may exist afterwards. The next invocation
                             re-observes and tops up.
  InvocationCancelledError → aborts the batch and propagates.
"""

from __future__ import annotations

import logging
from typing import Optional

from jobscaler import __version__
from jobscaler.cluster.client import ClusterAPIError, ClusterClient
from jobscaler.cluster.ownership import OwnerReferenceError
from jobscaler.shared.config import ExecutorConfig
from jobscaler.shared.context import InvocationContext
from jobscaler.shared.logs import TargetLoggerAdapter, target_logger
from jobscaler.shared.models import (
    OWNERSHIP_LABEL,
    JobInstance,
    ObjectMeta,
    RestartPolicy,
    ScaleTarget,
)

logger = logging.getLogger(__name__)


class InstanceFactory:
    """
    Builds and submits Jobs for a ScaledJob.

    Public API:
        build_instance(target)                     → JobInstance (not submitted)
        create_instances(ctx, target, count, log)  → int (successful creates)
    """

    def __init__(self, client: ClusterClient, config: Optional[ExecutorConfig] = None) -> None:
        self._client = client
        self._config = config or ExecutorConfig()

    def build_instance(self, target: ScaleTarget, log: Optional[TargetLoggerAdapter] = None) -> JobInstance:
        log = log or target_logger(logger, target)
        name = target.name

        spec = target.spec.job_target_ref.model_copy(deep=True)
        spec.template.metadata.labels[OWNERSHIP_LABEL] = name

        if spec.template.spec.restart_policy is None:
            log.debug(
                "Job RestartPolicy is not set, setting it to 'OnFailure', "
                "to avoid setting it to the client's default value 'Always'"
            )
            spec.template.spec.restart_policy = RestartPolicy.ON_FAILURE

        return JobInstance(
            metadata=ObjectMeta(
                generate_name=f"{name}-",
                namespace=target.namespace,
                labels={
                    "app.kubernetes.io/name": name,
                    "app.kubernetes.io/version": __version__,
                    "app.kubernetes.io/part-of": name,
                    "app.kubernetes.io/managed-by": self._config.operator_name,
                    OWNERSHIP_LABEL: name,
                },
            ),
            spec=spec,
        )

    def create_instances(
        self,
        ctx: InvocationContext,
        target: ScaleTarget,
        count: int,
        log: Optional[TargetLoggerAdapter] = None,
    ) -> int:
        log = log or target_logger(logger, target)
        count = max(0, count)
        log.info("Creating jobs", fields={"Number of jobs": count})

        created = 0
        for _ in range(count):
            job = self.build_instance(target, log)

            try:
                self._client.set_owner_reference(target, job)
            except OwnerReferenceError as e:
                log.error("Failed to set ScaledJob as the owner of the new Job: %s", e.reason)

            try:
                persisted = self._client.create_job(ctx, job)
            except ClusterAPIError as e:
                log.error("Failed to create a new Job: %s", e.reason)
                continue

            created += 1
            log.debug("Created job", fields={"job.Name": persisted.metadata.name})

        log.info("Created jobs", fields={"Number of jobs": created, "Requested": count})
        return created
