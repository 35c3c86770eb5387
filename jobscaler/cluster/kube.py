"""
jobscaler/cluster/kube.py
─────────────────────────
KubernetesClusterClient: the ClusterClient backed by the kubernetes Python
client.

Endpoints used
───────────────
  Jobs         BatchV1Api.list_namespaced_job / create_namespaced_job /
               delete_namespaced_job
  ScaledJob    CustomObjectsApi.patch_namespaced_custom_object_status
               (merge patch of ``status`` only — spec and metadata are
               never written)

Translation
────────────
Responses are turned into plain camelCase dicts with
ApiClient.sanitize_for_serialization() and validated into the pydantic
models; requests are sent as the models' to_wire() dicts. No generated
V1Job objects leak past this module.

Errors
───────
  ApiException 404         → NotFoundError
  ApiException (other)     → ClusterAPIError(reason, status)
  urllib3 transport error  → InvocationCancelledError if the context expired
                             meanwhile, else ClusterAPIError

Cancellation
─────────────
A request already in flight is not interrupted by cancel(); it runs until it
returns or hits its timeout (the context deadline or request_timeout_s).
The context is checked again when the call returns, so the result of a call
that outlived a cancel is discarded with InvocationCancelledError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from jobscaler.cluster.client import ClusterAPIError, ClusterClient, NotFoundError
from jobscaler.shared.config import ExecutorConfig
from jobscaler.shared.context import InvocationCancelledError, InvocationContext
from jobscaler.shared.models import JobInstance, ScaleTarget

logger = logging.getLogger(__name__)

DELETE_PROPAGATION_POLICY: str = "Background"
"""Delete a Job's pods along with it. The API default for Jobs orphans them."""


class KubernetesClusterClient(ClusterClient):
    """
    ClusterClient over a live API server.

    Build with from_environment() inside a pod or on a workstation with a
    kubeconfig; pass explicit API objects to share a connection pool or to
    substitute doubles.
    """

    def __init__(
        self,
        api_client: Optional[client.ApiClient] = None,
        batch_api: Optional[client.BatchV1Api] = None,
        custom_objects_api: Optional[client.CustomObjectsApi] = None,
        executor_config: Optional[ExecutorConfig] = None,
    ) -> None:
        self._api_client = api_client or client.ApiClient()
        self._batch = batch_api or client.BatchV1Api(self._api_client)
        self._custom = custom_objects_api or client.CustomObjectsApi(self._api_client)
        self._config = executor_config or ExecutorConfig()

    @classmethod
    def from_environment(
        cls, executor_config: Optional[ExecutorConfig] = None
    ) -> "KubernetesClusterClient":
        """In-cluster service account first, local kubeconfig as fallback."""
        try:
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
        except ConfigException:
            config.load_kube_config()
            logger.info("Loaded Kubernetes configuration from kubeconfig")
        return cls(executor_config=executor_config)

    # ── ClusterClient ─────────────────────────────────────────────────────────

    def list_jobs(
        self, ctx: InvocationContext, namespace: str, label_selector: str
    ) -> List[JobInstance]:
        response = self._call(
            ctx,
            f"list jobs in {namespace} ({label_selector})",
            self._batch.list_namespaced_job,
            namespace,
            label_selector=label_selector,
        )
        return [self._to_job(item) for item in (response.items or [])]

    def create_job(self, ctx: InvocationContext, job: JobInstance) -> JobInstance:
        namespace = job.metadata.namespace or "default"
        created = self._call(
            ctx,
            f"create job {job.metadata.generate_name or job.metadata.name} in {namespace}",
            self._batch.create_namespaced_job,
            namespace,
            job.to_wire(),
        )
        return self._to_job(created)

    def delete_job(self, ctx: InvocationContext, job: JobInstance) -> None:
        namespace = job.metadata.namespace or "default"
        self._call(
            ctx,
            f"delete job {namespace}/{job.metadata.name}",
            self._batch.delete_namespaced_job,
            job.metadata.name,
            namespace,
            propagation_policy=DELETE_PROPAGATION_POLICY,
        )

    def update_target_status(self, ctx: InvocationContext, target: ScaleTarget) -> None:
        cfg = self._config
        body = {"status": target.status.to_wire()}
        self._call(
            ctx,
            f"update status of {cfg.target_kind} {target.namespace}/{target.name}",
            self._custom.patch_namespaced_custom_object_status,
            cfg.target_group,
            cfg.target_version,
            target.namespace,
            cfg.target_plural,
            target.name,
            body,
            _content_type="application/merge-patch+json",
        )

    # ── Private helpers ───────────────────────────────────────────────────────

    def _call(self, ctx: InvocationContext, what: str, fn: Any, *args: Any, **kwargs: Any) -> Any:
        """Run one API call under the context's deadline and map its errors."""
        ctx.raise_if_cancelled()
        kwargs["_request_timeout"] = self._timeout(ctx)
        try:
            result = fn(*args, **kwargs)
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(f"{what}: not found") from e
            raise ClusterAPIError(f"{what}: {e.status} {e.reason}", status=e.status) from e
        except urllib3.exceptions.HTTPError as e:
            if ctx.cancelled:
                raise InvocationCancelledError("deadline exceeded") from e
            raise ClusterAPIError(f"{what}: {e.__class__.__name__}: {e}") from e
        ctx.raise_if_cancelled()
        return result

    def _timeout(self, ctx: InvocationContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self._config.request_timeout_s
        return min(remaining, self._config.request_timeout_s)

    def _to_job(self, raw: Any) -> JobInstance:
        data: Dict[str, Any] = self._api_client.sanitize_for_serialization(raw)
        return JobInstance.model_validate(data)
