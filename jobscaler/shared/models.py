"""
jobscaler/shared/models.py
──────────────────────────
The single source of truth for every data structure the executor touches.

Design philosophy
-----------------
Every model mirrors the slice of a Kubernetes object that the executor
*needs to know* to make a scaling or retention decision — nothing more.
Everything else on the wire (containers, volumes, selectors …) is carried
through untouched via ``extra="allow"``.

Wire format
-----------
The remote API speaks camelCase (``completionTime``, ``ownerReferences``).
Python code speaks snake_case. ``_KubeModel`` bridges the two:

    JobInstance.model_validate(raw_dict)           # camelCase in
    job.to_wire()                                  # camelCase out
    job.status.completion_time                     # snake_case in code

Reading guide
-------------
Read top-to-bottom. Each model builds on the ones above it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 1: CONSTANTS & ENUMERATIONS
# ─────────────────────────────────────────────────────────────────────────────

OWNERSHIP_LABEL: str = "scaledjob"
"""Label key linking a Job back to its ScaledJob.

This is the ONLY selector used to enumerate a target's instances. The key
and its value (the target's name) are a fixed contract with every other
component reading the cluster — never rename it.
"""


class ConditionType(str, Enum):
    """
    Terminal condition types the remote system sets on a Job.

    COMPLETE → all pods succeeded.
    FAILED   → backoff limit / deadline exceeded.
    Other types (Suspended, SuccessCriteriaMet, ...) never finish a Job.
    """
    COMPLETE = "Complete"
    FAILED = "Failed"


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class RestartPolicy(str, Enum):
    """
    Pod restart policy.

    Jobs reject ALWAYS. Kubernetes clients default an unset policy to
    ALWAYS, so the factory pins unset templates to ON_FAILURE.
    """
    ALWAYS = "Always"
    ON_FAILURE = "OnFailure"
    NEVER = "Never"


class InstancePhase(str, Enum):
    """
    The executor's view of a Job, derived from its conditions.

    RUNNING   → no terminal condition is True (includes pending/unscheduled).
    COMPLETED → Complete=True.
    FAILED    → Failed=True.
    """
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 2: OBJECT METADATA
# ─────────────────────────────────────────────────────────────────────────────

class _KubeModel(BaseModel):
    """Base: snake_case attributes, camelCase wire aliases."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        """Serialise to the camelCase JSON-compatible form the API accepts."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class OwnerReference(_KubeModel):
    """
    Back-reference from a Job to the ScaledJob that created it.

    Stored identifier data only: the remote garbage collector uses it to
    cascade-delete Jobs when their ScaledJob is removed. It is never
    resolved to a live object in-process.
    """
    api_version: str
    kind: str
    name: str
    uid: str
    controller: Optional[bool] = None
    block_owner_deletion: Optional[bool] = None


class ObjectMeta(_KubeModel):
    name: Optional[str] = None
    generate_name: Optional[str] = None
    namespace: Optional[str] = None
    uid: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    owner_references: List[OwnerReference] = Field(default_factory=list)
    creation_timestamp: Optional[datetime] = None


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 3: JOB TEMPLATE
# What gets stamped onto every instance.
# ─────────────────────────────────────────────────────────────────────────────

class PodSpec(_KubeModel):
    """
    Pod spec. Only restart_policy is interpreted; containers, volumes and
    everything else pass through as extra fields.
    """
    model_config = ConfigDict(extra="allow")

    restart_policy: Optional[RestartPolicy] = None


class PodTemplateSpec(_KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PodSpec = Field(default_factory=PodSpec)


class JobSpec(_KubeModel):
    """
    batch/v1 JobSpec — doubles as the ScaledJob's instance template
    (``spec.jobTargetRef``).
    """
    model_config = ConfigDict(extra="allow")

    template: PodTemplateSpec = Field(default_factory=PodTemplateSpec)
    parallelism: Optional[int] = None
    completions: Optional[int] = None
    backoff_limit: Optional[int] = None
    active_deadline_seconds: Optional[int] = None
    ttl_seconds_after_finished: Optional[int] = None


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 4: JOB INSTANCE
# One unit of work on the remote system.
# ─────────────────────────────────────────────────────────────────────────────

class JobCondition(_KubeModel):
    """
    One entry of ``status.conditions``.

    type/status are plain strings: the remote system adds new condition
    types over time (SuccessCriteriaMet, FailureTarget …) and they must not
    fail validation. Compare against ConditionType / ConditionStatus.
    """
    type: str
    status: str
    last_transition_time: Optional[datetime] = None
    reason: Optional[str] = None
    message: Optional[str] = None


class JobStatus(_KubeModel):
    conditions: List[JobCondition] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    completion_time: Optional[datetime] = Field(
        None,
        description="Set by the remote system on success. Immutable once set."
    )
    active: Optional[int] = None
    succeeded: Optional[int] = None
    failed: Optional[int] = None


class JobInstance(_KubeModel):
    """
    A batch/v1 Job created for a ScaledJob.

    Status is written exclusively by the remote system; the executor only
    reads it to classify the instance.
    """
    api_version: str = "batch/v1"
    kind: str = "Job"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: JobSpec = Field(default_factory=JobSpec)
    status: JobStatus = Field(default_factory=JobStatus)

    @property
    def name(self) -> Optional[str]:
        return self.metadata.name

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.namespace

    def terminal_condition(self) -> Optional[JobCondition]:
        """
        The first Complete or Failed condition whose status is True.

        None means the Job is still running (or pending).
        """
        for condition in self.status.conditions:
            if (
                condition.type in (ConditionType.COMPLETE.value, ConditionType.FAILED.value)
                and condition.status == ConditionStatus.TRUE.value
            ):
                return condition
        return None

    @property
    def is_finished(self) -> bool:
        return self.terminal_condition() is not None

    @property
    def phase(self) -> InstancePhase:
        condition = self.terminal_condition()
        if condition is None:
            return InstancePhase.RUNNING
        if condition.type == ConditionType.COMPLETE.value:
            return InstancePhase.COMPLETED
        return InstancePhase.FAILED

    @property
    def finished_at(self) -> Optional[datetime]:
        """
        When the Job reached its terminal state.

        ``status.completionTime`` is only set for successful Jobs, so a
        failed Job falls back to the transition time of its Failed
        condition. None if neither is known.

        Always timezone-aware: a naive timestamp is taken to be UTC, which
        is what the API server writes.
        """
        finished_at = self.status.completion_time
        if finished_at is None:
            condition = self.terminal_condition()
            finished_at = condition.last_transition_time if condition is not None else None
        if finished_at is not None and finished_at.tzinfo is None:
            finished_at = finished_at.replace(tzinfo=timezone.utc)
        return finished_at


# ─────────────────────────────────────────────────────────────────────────────
# SECTION 5: SCALE TARGET
# The autoscaling configuration resource (owned externally).
# ─────────────────────────────────────────────────────────────────────────────

class ScaleTargetSpec(_KubeModel):
    """
    Fields:
        job_target_ref                 → instance template (JobSpec).
        successful_jobs_history_limit  → Completed Jobs to retain. None = default (100).
        failed_jobs_history_limit      → Failed Jobs to retain. None = default (100).
    """
    model_config = ConfigDict(extra="allow")

    job_target_ref: JobSpec = Field(default_factory=JobSpec)
    successful_jobs_history_limit: Optional[int] = Field(None, ge=0)
    failed_jobs_history_limit: Optional[int] = Field(None, ge=0)


class ScaleTargetStatus(_KubeModel):
    model_config = ConfigDict(extra="allow")

    last_active_time: Optional[datetime] = Field(
        None,
        description="Last invocation that saw an active scaler. Written, never read, here."
    )


class ScaleTarget(_KubeModel):
    """
    A ScaledJob: template + retention limits + last-active bookkeeping.

    The executor reads the template and limits and writes only
    ``status.last_active_time``.
    """
    api_version: str = "keda.sh/v1alpha1"
    kind: str = "ScaledJob"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: ScaleTargetSpec = Field(default_factory=ScaleTargetSpec)
    status: ScaleTargetStatus = Field(default_factory=ScaleTargetStatus)

    @property
    def name(self) -> str:
        return self.metadata.name or ""

    @property
    def namespace(self) -> str:
        return self.metadata.namespace or ""
