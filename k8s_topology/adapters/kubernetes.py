import asyncio
import logging
from collections.abc import Callable
from typing import Any

import yaml
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.rest import ApiException

from k8s_topology.catalog import ResourceKind, get_kind_spec
from k8s_topology.exceptions import ResourceAccessError, UnsupportedKindError
from k8s_topology.models import ResourceIdentifier

logger = logging.getLogger(__name__)

DEFAULT_TAIL_LINES = 100

# (api attribute, namespaced list, all-namespaces list, namespaced read)
_OPERATIONS: dict[ResourceKind, tuple[str, str | None, str, str]] = {
    ResourceKind.NODE: ("core_v1", None, "list_node", "read_node"),
    ResourceKind.NAMESPACE: ("core_v1", None, "list_namespace", "read_namespace"),
    ResourceKind.DEPLOYMENT: (
        "apps_v1",
        "list_namespaced_deployment",
        "list_deployment_for_all_namespaces",
        "read_namespaced_deployment",
    ),
    ResourceKind.STATEFUL_SET: (
        "apps_v1",
        "list_namespaced_stateful_set",
        "list_stateful_set_for_all_namespaces",
        "read_namespaced_stateful_set",
    ),
    ResourceKind.DAEMON_SET: (
        "apps_v1",
        "list_namespaced_daemon_set",
        "list_daemon_set_for_all_namespaces",
        "read_namespaced_daemon_set",
    ),
    ResourceKind.REPLICA_SET: (
        "apps_v1",
        "list_namespaced_replica_set",
        "list_replica_set_for_all_namespaces",
        "read_namespaced_replica_set",
    ),
    ResourceKind.POD: (
        "core_v1",
        "list_namespaced_pod",
        "list_pod_for_all_namespaces",
        "read_namespaced_pod",
    ),
    ResourceKind.SERVICE: (
        "core_v1",
        "list_namespaced_service",
        "list_service_for_all_namespaces",
        "read_namespaced_service",
    ),
    ResourceKind.HORIZONTAL_POD_AUTOSCALER: (
        "autoscaling_v2",
        "list_namespaced_horizontal_pod_autoscaler",
        "list_horizontal_pod_autoscaler_for_all_namespaces",
        "read_namespaced_horizontal_pod_autoscaler",
    ),
}

_MANIFEST_KINDS = {
    ResourceKind.POD,
    ResourceKind.SERVICE,
    ResourceKind.DEPLOYMENT,
    ResourceKind.STATEFUL_SET,
    ResourceKind.DAEMON_SET,
    ResourceKind.REPLICA_SET,
    ResourceKind.NAMESPACE,
    ResourceKind.NODE,
}


class KubernetesAdapter:
    """
    K8sClientProtocol implementation backed by the official kubernetes client.

    Every call is read-only. Blocking client calls run in worker threads so
    that list calls for different kinds can proceed concurrently, and each
    call carries an HTTP timeout so an abandoned thread finishes on its own.

    Example:
        >>> adapter = KubernetesAdapter.from_kubeconfig(kubeconfig_bytes)
        >>> pods, _ = await adapter.list_resources("Pod", namespace="default")
    """

    def __init__(
        self,
        api_client: k8s_client.ApiClient | None = None,
        request_timeout: float | None = 30.0,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            api_client: Configured ApiClient; loads the default kubeconfig
                (or in-cluster config) when None
            request_timeout: HTTP timeout in seconds applied to every call
        """
        if api_client is None:
            try:
                k8s_config.load_incluster_config()
            except k8s_config.ConfigException:
                k8s_config.load_kube_config()
            api_client = k8s_client.ApiClient()

        self.api_client = api_client
        self.request_timeout = request_timeout
        self.core_v1 = k8s_client.CoreV1Api(api_client)
        self.apps_v1 = k8s_client.AppsV1Api(api_client)
        self.autoscaling_v2 = k8s_client.AutoscalingV2Api(api_client)

        self._api_call_stats = {"get_resource": 0, "list_resources": 0, "total": 0}

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: bytes | str | dict[str, Any],
        context: str | None = None,
        request_timeout: float | None = 30.0,
    ) -> "KubernetesAdapter":
        """
        Build an adapter from an in-memory kubeconfig.

        The configuration is loaded into a dedicated ApiClient, so adapters
        for different clusters never share global client state.

        Args:
            kubeconfig: Kubeconfig document as bytes, text or parsed dict
            context: Optional context name (defaults to current-context)
            request_timeout: HTTP timeout in seconds applied to every call

        Raises:
            ConfigException: If the kubeconfig is invalid
        """
        if isinstance(kubeconfig, bytes):
            kubeconfig = kubeconfig.decode("utf-8")
        if isinstance(kubeconfig, str):
            kubeconfig = yaml.safe_load(kubeconfig)
        if not isinstance(kubeconfig, dict):
            raise k8s_config.ConfigException("kubeconfig must be a mapping")

        configuration = k8s_client.Configuration()
        k8s_config.load_kube_config_from_dict(
            kubeconfig,
            context=context,
            client_configuration=configuration,
        )
        return cls(k8s_client.ApiClient(configuration), request_timeout=request_timeout)

    def _operation(self, kind: str, index: int) -> Callable[..., Any] | None:
        spec = get_kind_spec(kind)
        entry = _OPERATIONS[spec.kind]
        method_name = entry[index]
        if method_name is None:
            return None
        return getattr(getattr(self, entry[0]), method_name)

    def _serialize(self, obj: Any) -> Any:
        return self.api_client.sanitize_for_serialization(obj)

    def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if self.request_timeout is not None:
            kwargs["_request_timeout"] = self.request_timeout
        return func(*args, **kwargs)

    async def list_resources(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        self._api_call_stats["list_resources"] += 1
        self._api_call_stats["total"] += 1

        spec = get_kind_spec(kind)
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector

        if spec.namespaced and namespace:
            func = self._operation(kind, 1)
            result = await asyncio.to_thread(self._call, func, namespace, **kwargs)
        else:
            func = self._operation(kind, 2)
            result = await asyncio.to_thread(self._call, func, **kwargs)

        data = self._serialize(result) or {}
        items = data.get("items") or []
        for item in items:
            item.setdefault("kind", spec.kind.value)

        metadata = data.get("metadata") or {}
        return items, {"resource_version": metadata.get("resourceVersion")}

    async def get_resource(self, resource_id: ResourceIdentifier) -> dict[str, Any] | None:
        self._api_call_stats["get_resource"] += 1
        self._api_call_stats["total"] += 1

        spec = get_kind_spec(resource_id.kind)
        func = self._operation(resource_id.kind, 3)

        try:
            if spec.namespaced:
                result = await asyncio.to_thread(
                    self._call, func, resource_id.name, resource_id.namespace or "default"
                )
            else:
                result = await asyncio.to_thread(self._call, func, resource_id.name)
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"Resource not found: {resource_id}")
                return None
            raise ResourceAccessError(
                f"Error reading {resource_id}: {e.reason}",
                kind=resource_id.kind,
                namespace=resource_id.namespace,
                status=e.status,
            ) from e

        data = self._serialize(result)
        data.setdefault("kind", spec.kind.value)
        return data

    async def get_resource_manifest(
        self, kind: str, name: str, namespace: str | None = None
    ) -> str:
        """
        Render one object as a YAML document.

        ``metadata.managedFields`` is dropped since it only adds noise to the view.

        Raises:
            UnsupportedKindError: If the kind cannot be rendered
            ResourceAccessError: If the object does not exist or cannot be read
        """
        spec = get_kind_spec(kind)
        if spec.kind not in _MANIFEST_KINDS:
            raise UnsupportedKindError(kind)

        resource = await self.get_resource(
            ResourceIdentifier(kind=spec.kind.value, name=name, namespace=namespace)
        )
        if resource is None:
            raise ResourceAccessError(
                f"{kind}/{name} not found", kind=kind, namespace=namespace, status=404
            )

        resource.get("metadata", {}).pop("managedFields", None)
        return yaml.safe_dump(resource, default_flow_style=False, sort_keys=False)

    async def get_pod_logs(
        self,
        name: str,
        namespace: str,
        container: str | None = None,
        tail_lines: int = DEFAULT_TAIL_LINES,
    ) -> list[str]:
        """
        Return the most recent log lines of one pod container.

        Args:
            name: Pod name
            namespace: Pod namespace
            container: Container name; the API picks the only container when None
            tail_lines: Number of lines from the end of the log

        Raises:
            ResourceAccessError: If the log cannot be read
        """
        kwargs: dict[str, Any] = {"tail_lines": tail_lines}
        if container:
            kwargs["container"] = container

        try:
            raw = await asyncio.to_thread(
                self._call, self.core_v1.read_namespaced_pod_log, name, namespace, **kwargs
            )
        except ApiException as e:
            raise ResourceAccessError(
                f"Error reading logs for Pod/{name}: {e.reason}",
                kind="Pod",
                namespace=namespace,
                status=e.status,
            ) from e

        return (raw or "").splitlines()

    def get_api_call_stats(self) -> dict[str, int]:
        return self._api_call_stats.copy()

    def reset_api_call_stats(self) -> None:
        self._api_call_stats = {"get_resource": 0, "list_resources": 0, "total": 0}
