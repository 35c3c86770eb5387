"""
jobscaler/shared/config.py
──────────────────────────
Executor-wide configuration.

Per-target settings (history limits, template) live on the ScaleTarget
itself. This module holds the defaults those settings fall back to and the
coordinates of the remote resources the executor talks to.

Precedence
──────────
  1. Explicit ExecutorConfig(...) arguments.
  2. ``JOBSCALER_<FIELD>`` environment variables, e.g.
     ``JOBSCALER_DEFAULT_FAILED_HISTORY_LIMIT=10``. Empty values are ignored.
  3. The module constants below.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ── Defaults ──────────────────────────────────────────────────────────────────

DEFAULT_SUCCESSFUL_JOBS_HISTORY_LIMIT: int = 100
"""Completed Jobs retained per ScaledJob when the target sets no limit."""

DEFAULT_FAILED_JOBS_HISTORY_LIMIT: int = 100
"""Failed Jobs retained per ScaledJob when the target sets no limit."""

DEFAULT_OPERATOR_NAME: str = "jobscaler-operator"
"""Value of the ``app.kubernetes.io/managed-by`` label on created Jobs."""

DEFAULT_REQUEST_TIMEOUT_S: float = 30.0
"""Per-call timeout for remote requests when the context carries no deadline."""


class ExecutorConfig(BaseSettings):
    """
    Fields:
        default_successful_history_limit → fallback for spec.successfulJobsHistoryLimit
        default_failed_history_limit     → fallback for spec.failedJobsHistoryLimit
        operator_name                    → managed-by label value
        target_group / target_version    → API group/version of the ScaledJob CRD
        target_plural / target_kind      → resource plural / kind of the CRD
        request_timeout_s                → remote call timeout without a deadline
        strict_inventory                 → if True, a failed running-count query
                                           skips the creation step instead of
                                           treating the target as idle
    """
    model_config = SettingsConfigDict(env_prefix="JOBSCALER_", env_ignore_empty=True)

    default_successful_history_limit: int = Field(DEFAULT_SUCCESSFUL_JOBS_HISTORY_LIMIT, ge=0)
    default_failed_history_limit: int = Field(DEFAULT_FAILED_JOBS_HISTORY_LIMIT, ge=0)
    operator_name: str = DEFAULT_OPERATOR_NAME

    target_group: str = "keda.sh"
    target_version: str = "v1alpha1"
    target_plural: str = "scaledjobs"
    target_kind: str = "ScaledJob"

    request_timeout_s: float = Field(DEFAULT_REQUEST_TIMEOUT_S, gt=0)
    strict_inventory: bool = False

    @property
    def target_api_version(self) -> str:
        return f"{self.target_group}/{self.target_version}"

