"""
tests/test_models.py
────────────────────
Test suite for jobscaler/shared/models.py

Coverage: 15 tests across 3 groups.

Test groups
────────────
Group 1: Wire format     — camelCase in/out, unknown fields pass through
Group 2: Classification  — terminal conditions → InstancePhase
Group 3: finished_at     — completionTime and Failed-condition fallback
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from jobscaler.shared.models import (
    ConditionStatus,
    ConditionType,
    InstancePhase,
    JobCondition,
    JobInstance,
    JobStatus,
    RestartPolicy,
    ScaleTarget,
)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

T1 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 1, 1, 12, 5, tzinfo=timezone.utc)


def _job_with(*conditions: JobCondition, completion_time=None) -> JobInstance:
    return JobInstance(status=JobStatus(conditions=list(conditions), completion_time=completion_time))


def _cond(type_: str, status: str = "True", at=None) -> JobCondition:
    return JobCondition(type=type_, status=status, last_transition_time=at)


# ─────────────────────────────────────────────────────────────────────────────
# Group 1: Wire format
# ─────────────────────────────────────────────────────────────────────────────

class TestWireFormat:
    """Models read and write the remote API's camelCase form."""

    def test_job_parses_camel_case_payload(self) -> None:
        raw = {
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": {
                "name": "etl-x7k2p",
                "namespace": "batch",
                "labels": {"scaledjob": "etl"},
                "ownerReferences": [{
                    "apiVersion": "keda.sh/v1alpha1", "kind": "ScaledJob",
                    "name": "etl", "uid": "u-1", "controller": True,
                }],
            },
            "spec": {"template": {"spec": {"restartPolicy": "Never"}}},
            "status": {
                "completionTime": "2026-01-01T12:00:00Z",
                "conditions": [{"type": "Complete", "status": "True"}],
            },
        }
        job = JobInstance.model_validate(raw)

        assert job.name == "etl-x7k2p"
        assert job.metadata.owner_references[0].uid == "u-1"
        assert job.spec.template.spec.restart_policy == RestartPolicy.NEVER
        assert job.status.completion_time == T1

    def test_unknown_pod_fields_round_trip(self) -> None:
        """Containers, volumes, etc. are not modelled but must reach the API intact."""
        raw = {
            "spec": {
                "backoffLimit": 2,
                "template": {"spec": {
                    "containers": [{"name": "w", "image": "busybox"}],
                    "serviceAccountName": "runner",
                }},
            },
        }
        wire = JobInstance.model_validate(raw).to_wire()

        assert wire["spec"]["backoffLimit"] == 2
        assert wire["spec"]["template"]["spec"]["containers"] == [{"name": "w", "image": "busybox"}]
        assert wire["spec"]["template"]["spec"]["serviceAccountName"] == "runner"

    def test_to_wire_omits_unset_fields(self) -> None:
        wire = JobInstance().to_wire()
        assert "completionTime" not in wire["status"]
        assert "restartPolicy" not in wire["spec"]["template"]["spec"]

    def test_scale_target_history_limits_parse(self) -> None:
        target = ScaleTarget.model_validate({
            "metadata": {"name": "etl", "namespace": "batch"},
            "spec": {"successfulJobsHistoryLimit": 5, "failedJobsHistoryLimit": 2},
        })
        assert target.spec.successful_jobs_history_limit == 5
        assert target.spec.failed_jobs_history_limit == 2

    def test_negative_history_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            ScaleTarget.model_validate({"spec": {"failedJobsHistoryLimit": -1}})


# ─────────────────────────────────────────────────────────────────────────────
# Group 2: Classification
# ─────────────────────────────────────────────────────────────────────────────

class TestClassification:
    """Only a True Complete/Failed condition finishes a Job."""

    def test_no_conditions_is_running(self) -> None:
        assert _job_with().phase == InstancePhase.RUNNING

    def test_complete_true_is_completed(self) -> None:
        job = _job_with(_cond(ConditionType.COMPLETE.value))
        assert job.phase == InstancePhase.COMPLETED
        assert job.is_finished

    def test_failed_true_is_failed(self) -> None:
        job = _job_with(_cond(ConditionType.FAILED.value))
        assert job.phase == InstancePhase.FAILED

    @pytest.mark.parametrize("status", [ConditionStatus.FALSE.value, ConditionStatus.UNKNOWN.value])
    def test_terminal_condition_not_true_is_running(self, status: str) -> None:
        job = _job_with(_cond(ConditionType.FAILED.value, status=status))
        assert job.phase == InstancePhase.RUNNING
        assert not job.is_finished

    def test_non_terminal_condition_types_ignored(self) -> None:
        """Suspended or newer condition types never finish a Job."""
        job = _job_with(_cond("Suspended"), _cond("SuccessCriteriaMet"))
        assert job.phase == InstancePhase.RUNNING


# ─────────────────────────────────────────────────────────────────────────────
# Group 3: finished_at
# ─────────────────────────────────────────────────────────────────────────────

class TestFinishedAt:

    def test_completion_time_wins(self) -> None:
        job = _job_with(_cond(ConditionType.COMPLETE.value, at=T2), completion_time=T1)
        assert job.finished_at == T1

    def test_failed_job_falls_back_to_condition_transition(self) -> None:
        job = _job_with(_cond(ConditionType.FAILED.value, at=T2))
        assert job.finished_at == T2

    def test_running_job_has_no_finish_time(self) -> None:
        assert _job_with().finished_at is None

    def test_naive_timestamp_read_as_utc(self) -> None:
        job = _job_with(completion_time=datetime(2026, 1, 1, 12, 0))
        assert job.finished_at == T1
        assert job.finished_at.tzinfo is not None

    def test_naive_and_aware_finish_times_sort_together(self) -> None:
        naive_later = _job_with(completion_time=datetime(2026, 1, 1, 12, 5))
        aware_earlier = _job_with(completion_time=T1)
        ordered = sorted([naive_later, aware_earlier], key=lambda j: j.finished_at)
        assert ordered == [aware_earlier, naive_later]
