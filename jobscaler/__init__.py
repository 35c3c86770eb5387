"""
jobscaler — scale-out and retention executor for scaled batch jobs.

Public API:
    ScaleExecutor          — entry point, request_scale() per invocation
    ExecutorConfig         — defaults and remote resource coordinates
    InvocationContext      — cancellation signal + deadline for remote calls
    ScaleTarget            — the autoscaling configuration resource
    JobInstance            — one submitted batch Job

Usage:
    from jobscaler import ScaleExecutor, InvocationContext
    from jobscaler.cluster import KubernetesClusterClient

    executor = ScaleExecutor(KubernetesClusterClient.from_environment())
    executor.request_scale(
        InvocationContext.with_timeout(30.0), target,
        is_active=True, desired_count=10, ceiling=5,
    )
"""

__version__ = "0.3.0"

from jobscaler.shared.config import ExecutorConfig
from jobscaler.shared.context import InvocationCancelledError, InvocationContext
from jobscaler.shared.models import JobInstance, ScaleTarget
from jobscaler.control_plane.scale_executor import ScaleExecutor

__all__ = [
    "__version__",
    "ExecutorConfig",
    "InvocationCancelledError",
    "InvocationContext",
    "JobInstance",
    "ScaleTarget",
    "ScaleExecutor",
]
