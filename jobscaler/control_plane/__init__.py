"""
jobscaler/control_plane — the scaling brain.

Public API:

    Instance Inventory:
        InstanceInventory          — list + classify a target's Jobs
        InventoryUnavailableError  — running count unknown (strict mode)
        FinishedInstances          — completed / failed partition

    Capacity Planner:
        effective_ceiling()        — max(0, ceiling - running)
        instances_to_create()      — min(desired, headroom)
        plan() / CapacityPlan      — both at once

    Instance Factory:
        InstanceFactory            — stamp template → Job, best-effort fan-out

    Retention Pruner:
        RetentionPruner            — oldest-first pruning per outcome class
        completion_key()           — the ordering key
        PruneResult

    Scale Orchestrator:
        ScaleExecutor              — request_scale() entry point
"""

from jobscaler.control_plane.capacity_planner import (
    CapacityPlan,
    effective_ceiling,
    instances_to_create,
    plan,
)
from jobscaler.control_plane.inventory import (
    FinishedInstances,
    InstanceInventory,
    InventoryUnavailableError,
    classify,
    label_selector_for,
)
from jobscaler.control_plane.instance_factory import InstanceFactory
from jobscaler.control_plane.retention import (
    PruneResult,
    RetentionPruner,
    completion_key,
    select_excess,
)
from jobscaler.control_plane.scale_executor import ScaleExecutor

__all__ = [
    "CapacityPlan",
    "effective_ceiling",
    "instances_to_create",
    "plan",
    "FinishedInstances",
    "InstanceInventory",
    "InventoryUnavailableError",
    "classify",
    "label_selector_for",
    "InstanceFactory",
    "PruneResult",
    "RetentionPruner",
    "completion_key",
    "select_excess",
    "ScaleExecutor",
]
