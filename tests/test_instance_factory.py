"""
tests/test_instance_factory.py
──────────────────────────────
Test suite for jobscaler/control_plane/instance_factory.py

Coverage: 13 tests across 3 groups.

Group 1: build_instance()    — labels, identity, restart policy, template isolation
Group 2: create_instances()  — count, best-effort fan-out, cancellation
Group 3: Ownership linkage   — controller reference, failure is non-fatal
"""

from __future__ import annotations

from typing import Optional

import pytest

from jobscaler import __version__
from jobscaler.cluster.memory import InMemoryClusterClient
from jobscaler.control_plane.instance_factory import InstanceFactory
from jobscaler.control_plane.inventory import InstanceInventory
from jobscaler.shared.config import ExecutorConfig
from jobscaler.shared.context import InvocationCancelledError, InvocationContext
from jobscaler.shared.models import (
    OWNERSHIP_LABEL,
    JobSpec,
    ObjectMeta,
    OwnerReference,
    PodSpec,
    PodTemplateSpec,
    RestartPolicy,
    ScaleTarget,
    ScaleTargetSpec,
)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _make_target(
    name: str = "etl",
    namespace: str = "batch",
    uid: Optional[str] = "uid-etl",
    restart_policy: Optional[RestartPolicy] = None,
    template_labels: Optional[dict] = None,
) -> ScaleTarget:
    return ScaleTarget(
        metadata=ObjectMeta(name=name, namespace=namespace, uid=uid),
        spec=ScaleTargetSpec(
            job_target_ref=JobSpec(
                backoff_limit=4,
                template=PodTemplateSpec(
                    metadata=ObjectMeta(labels=dict(template_labels or {"app": name})),
                    spec=PodSpec(
                        restart_policy=restart_policy,
                        containers=[{"name": "worker", "image": "busybox:1.36"}],
                    ),
                ),
            ),
        ),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Group 1: build_instance()
# ─────────────────────────────────────────────────────────────────────────────

class TestBuildInstance:

    factory = InstanceFactory(InMemoryClusterClient())

    def test_identity_and_labels(self) -> None:
        job = self.factory.build_instance(_make_target())

        assert job.metadata.generate_name == "etl-"
        assert job.metadata.name is None
        assert job.metadata.namespace == "batch"
        assert job.metadata.labels == {
            "app.kubernetes.io/name": "etl",
            "app.kubernetes.io/version": __version__,
            "app.kubernetes.io/part-of": "etl",
            "app.kubernetes.io/managed-by": "jobscaler-operator",
            "scaledjob": "etl",
        }

    def test_operator_name_configurable(self) -> None:
        factory = InstanceFactory(InMemoryClusterClient(), ExecutorConfig(operator_name="ops"))
        job = factory.build_instance(_make_target())
        assert job.metadata.labels["app.kubernetes.io/managed-by"] == "ops"

    def test_pod_template_labelled_and_overwritten(self) -> None:
        """A stale ownership label in the template is overwritten with the target name."""
        target = _make_target(template_labels={"app": "etl", OWNERSHIP_LABEL: "stale"})
        job = self.factory.build_instance(target)
        assert job.spec.template.metadata.labels == {"app": "etl", OWNERSHIP_LABEL: "etl"}

    def test_unset_restart_policy_becomes_on_failure(self) -> None:
        job = self.factory.build_instance(_make_target(restart_policy=None))
        assert job.spec.template.spec.restart_policy == RestartPolicy.ON_FAILURE

    @pytest.mark.parametrize("policy", [RestartPolicy.NEVER, RestartPolicy.ON_FAILURE])
    def test_explicit_restart_policy_passes_through(self, policy: RestartPolicy) -> None:
        job = self.factory.build_instance(_make_target(restart_policy=policy))
        assert job.spec.template.spec.restart_policy == policy

    def test_template_carried_over(self) -> None:
        wire = self.factory.build_instance(_make_target()).to_wire()
        assert wire["spec"]["backoffLimit"] == 4
        assert wire["spec"]["template"]["spec"]["containers"][0]["image"] == "busybox:1.36"

    def test_target_template_never_mutated(self) -> None:
        target = _make_target(restart_policy=None)
        before = target.model_dump()

        first = self.factory.build_instance(target)
        second = self.factory.build_instance(target)
        first.spec.template.metadata.labels["mutated"] = "yes"
        first.spec.template.spec.containers[0]["image"] = "evil"

        assert target.model_dump() == before
        assert "mutated" not in second.spec.template.metadata.labels
        assert second.spec.template.spec.containers[0]["image"] == "busybox:1.36"


# ─────────────────────────────────────────────────────────────────────────────
# Group 2: create_instances()
# ─────────────────────────────────────────────────────────────────────────────

class TestCreateInstances:

    def test_creates_requested_count_with_unique_names(self) -> None:
        cluster = InMemoryClusterClient()
        created = InstanceFactory(cluster).create_instances(InvocationContext(), _make_target(), 4)

        jobs = cluster.jobs("batch")
        assert created == 4
        assert len(jobs) == 4
        assert len({j.name for j in jobs}) == 4
        assert all(j.name.startswith("etl-") for j in jobs)

    def test_created_jobs_found_by_inventory(self) -> None:
        """Every created Job is visible through the ownership-label query; no others are."""
        cluster = InMemoryClusterClient()
        factory = InstanceFactory(cluster)
        factory.create_instances(InvocationContext(), _make_target("etl"), 3)
        factory.create_instances(InvocationContext(), _make_target("report", uid="uid-r"), 2)

        listed = InstanceInventory(cluster).list_instances(InvocationContext(), _make_target("etl"))
        assert len(listed) == 3
        assert {j.metadata.labels[OWNERSHIP_LABEL] for j in listed} == {"etl"}

    def test_individual_failures_do_not_abort_batch(self) -> None:
        cluster = InMemoryClusterClient()
        cluster.fail_create_calls = {2, 4}
        created = InstanceFactory(cluster).create_instances(InvocationContext(), _make_target(), 5)

        assert cluster.create_calls == 5
        assert created == 3
        assert len(cluster.jobs()) == 3

    def test_zero_or_negative_count_is_noop(self) -> None:
        cluster = InMemoryClusterClient()
        factory = InstanceFactory(cluster)
        assert factory.create_instances(InvocationContext(), _make_target(), 0) == 0
        assert factory.create_instances(InvocationContext(), _make_target(), -2) == 0
        assert cluster.create_calls == 0

    def test_cancellation_aborts_batch(self) -> None:
        cluster = InMemoryClusterClient()
        ctx = InvocationContext()
        ctx.cancel()
        with pytest.raises(InvocationCancelledError):
            InstanceFactory(cluster).create_instances(ctx, _make_target(), 3)
        assert cluster.jobs() == []


# ─────────────────────────────────────────────────────────────────────────────
# Group 3: Ownership linkage
# ─────────────────────────────────────────────────────────────────────────────

class TestOwnership:

    def test_controller_reference_attached(self) -> None:
        cluster = InMemoryClusterClient()
        InstanceFactory(cluster).create_instances(InvocationContext(), _make_target(), 1)

        (job,) = cluster.jobs()
        assert job.metadata.owner_references == [OwnerReference(
            api_version="keda.sh/v1alpha1",
            kind="ScaledJob",
            name="etl",
            uid="uid-etl",
            controller=True,
            block_owner_deletion=True,
        )]

    def test_owner_reference_failure_still_creates(self) -> None:
        """A target without a uid cannot own Jobs, but the Jobs are still created."""
        cluster = InMemoryClusterClient()
        created = InstanceFactory(cluster).create_instances(InvocationContext(), _make_target(uid=None), 2)

        assert created == 2
        assert all(j.metadata.owner_references == [] for j in cluster.jobs())
