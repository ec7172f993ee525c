import asyncio
import functools
import time
from typing import Any, Callable, TypeVar

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from canaryscale.release.exceptions import CollaboratorError
from canaryscale.release.models import (
    InstanceRef,
    ReplicaStatus,
    ServiceRef,
    WorkloadRef,
)

T = TypeVar("T")


class KubernetesCluster:
    """
    Workload controller, endpoint registry and log source backed by
    the official Kubernetes client. The client is blocking, so every
    call runs in the loop's default executor.
    """

    def __init__(
        self,
        apps_api: client.AppsV1Api,
        core_api: client.CoreV1Api,
        poll_interval: float = 2.0,
    ) -> None:
        self._apps = apps_api
        self._core = core_api
        self._poll_interval = poll_interval

    @classmethod
    def connect(
        cls,
        kubeconfig: str | None = None,
        poll_interval: float = 2.0,
    ):
        if kubeconfig:
            config.load_kube_config(config_file=kubeconfig)

        else:
            try:
                config.load_incluster_config()

            except config.ConfigException:
                config.load_kube_config()

        return cls(
            client.AppsV1Api(),
            client.CoreV1Api(),
            poll_interval=poll_interval,
        )

    async def _call(self, call: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()

        try:
            return await loop.run_in_executor(
                None,
                functools.partial(call, *args, **kwargs),
            )

        except ApiException as err:
            raise CollaboratorError(
                f"Err. - Kubernetes API returned {err.status}: {err.reason}"
            ) from err

    async def get_replica_status(self, workload: WorkloadRef) -> ReplicaStatus:
        deployment = await self._call(
            self._apps.read_namespaced_deployment_status,
            workload.name,
            workload.namespace,
        )

        status = deployment.status

        return ReplicaStatus(
            ready=(status.ready_replicas or 0) if status else 0,
            desired=(status.replicas or 0) if status else 0,
        )

    async def set_replica_count(self, workload: WorkloadRef, count: int) -> None:
        await self._call(
            self._apps.patch_namespaced_deployment_scale,
            workload.name,
            workload.namespace,
            {"spec": {"replicas": count}},
        )

    async def set_image(
        self,
        workload: WorkloadRef,
        container: str,
        image: str,
    ) -> None:
        await self._call(
            self._apps.patch_namespaced_deployment,
            workload.name,
            workload.namespace,
            {
                "spec": {
                    "template": {
                        "spec": {
                            "containers": [
                                {
                                    "name": container,
                                    "image": image,
                                }
                            ]
                        }
                    }
                }
            },
        )

    async def wait_for_rollout_convergence(
        self,
        workload: WorkloadRef,
        timeout: float,
    ) -> bool:
        deadline = time.monotonic() + timeout

        while True:
            try:
                deployment = await self._call(
                    self._apps.read_namespaced_deployment_status,
                    workload.name,
                    workload.namespace,
                )

                if self.is_converged(deployment):
                    return True

            except CollaboratorError:
                # A failed read is not a verdict, keep polling until the deadline.
                pass

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False

            await asyncio.sleep(min(self._poll_interval, remaining))

    @staticmethod
    def is_converged(deployment: client.V1Deployment) -> bool:
        """
        Follows `kubectl rollout status`: the controller has observed the
        latest generation, every replica runs the current template and
        is available. Surplus replicas (surge or a pending scale-down)
        also count as not converged.
        """
        metadata = deployment.metadata
        spec = deployment.spec
        status = deployment.status

        if status is None:
            return False

        generation = (metadata.generation or 0) if metadata else 0
        observed_generation = status.observed_generation or 0

        if observed_generation < generation:
            return False

        desired = spec.replicas if spec and spec.replicas is not None else 1
        updated = status.updated_replicas or 0
        current = status.replicas or 0
        available = status.available_replicas or 0

        return (
            updated >= desired
            and current == desired
            and available >= desired
        )

    async def get_endpoint_count(self, service: ServiceRef) -> int:
        endpoints = await self._call(
            self._core.read_namespaced_endpoints,
            service.name,
            service.namespace,
        )

        return sum(
            len(subset.addresses or []) for subset in endpoints.subsets or []
        )

    async def list_instances(
        self,
        namespace: str,
        selector: str,
    ) -> list[InstanceRef]:
        pods = await self._call(
            self._core.list_namespaced_pod,
            namespace,
            label_selector=selector,
        )

        return [
            InstanceRef(
                name=pod.metadata.name,
                namespace=namespace,
            ) for pod in pods.items
        ]

    async def tail_recent_logs(
        self,
        instance: InstanceRef,
        line_count: int,
    ) -> list[str]:
        logs: str = await self._call(
            self._core.read_namespaced_pod_log,
            instance.name,
            instance.namespace,
            tail_lines=line_count,
        )

        return (logs or "").splitlines()
