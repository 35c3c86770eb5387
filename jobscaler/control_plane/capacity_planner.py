"""
jobscaler/control_plane/capacity_planner.py
───────────────────────────────────────────
Capacity Planner: how many new Jobs may this invocation create?

    effective_ceiling = max(0, ceiling - running_count)
    to_create         = min(desired_count, effective_ceiling)     (≥ 0)

Pure functions, no I/O. Overshoot (running_count > ceiling, e.g. after the
ceiling was lowered) yields zero headroom, never a negative create count.
"""

from __future__ import annotations

from dataclasses import dataclass


def effective_ceiling(ceiling: int, running_count: int) -> int:
    """Headroom for new Jobs: ceiling minus Jobs still running, floored at 0."""
    return max(0, ceiling - running_count)


def instances_to_create(desired_count: int, headroom: int) -> int:
    """Jobs to request this round: the desired count capped by headroom."""
    return max(0, min(desired_count, headroom))


@dataclass(frozen=True)
class CapacityPlan:
    ceiling: int
    running_count: int
    desired_count: int
    effective_ceiling: int
    to_create: int


def plan(ceiling: int, running_count: int, desired_count: int) -> CapacityPlan:
    headroom = effective_ceiling(ceiling, running_count)
    return CapacityPlan(
        ceiling=ceiling,
        running_count=running_count,
        desired_count=desired_count,
        effective_ceiling=headroom,
        to_create=instances_to_create(desired_count, headroom),
    )
