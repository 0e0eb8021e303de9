"""Shared test fixtures for k8s-topology tests."""

import asyncio
from typing import Any

import pytest

from k8s_topology.models import ResourceIdentifier

KUBECONFIG = """
apiVersion: v1
kind: Config
clusters:
- name: lab
  cluster:
    server: https://10.0.0.10:6443
    insecure-skip-tls-verify: true
contexts:
- name: lab-admin
  context:
    cluster: lab
    user: admin
current-context: lab-admin
users:
- name: admin
  user:
    token: not-a-real-token
"""


class MockK8sClient:
    """In-memory K8s client with failure injection and API statistics tracking."""

    def __init__(self):
        self.resources = {}
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self._api_call_stats = {"get_resource": 0, "list_resources": 0, "total": 0}
        self.list_calls: list[tuple[str, str | None]] = []

    def add_resource(self, resource: dict[str, Any]) -> None:
        """Add a resource to the mock client."""
        kind = resource.get("kind")
        name = resource.get("metadata", {}).get("name")
        namespace = resource.get("metadata", {}).get("namespace")
        key = (kind, namespace, name)
        self.resources[key] = resource

    def add_resources(self, *resources: dict[str, Any]) -> None:
        for resource in resources:
            self.add_resource(resource)

    def fail(self, kind: str, error: Exception) -> None:
        """Make every list call for a kind raise the given error."""
        self.failures[kind] = error

    def delay(self, kind: str, seconds: float) -> None:
        """Make list calls for a kind take the given time."""
        self.delays[kind] = seconds

    async def get_resource(self, resource_id: ResourceIdentifier) -> dict[str, Any] | None:
        """Get a resource by ID."""
        self._api_call_stats["get_resource"] += 1
        self._api_call_stats["total"] += 1

        key = (resource_id.kind, resource_id.namespace, resource_id.name)
        return self.resources.get(key)

    async def list_resources(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """List resources of a kind."""
        self._api_call_stats["list_resources"] += 1
        self._api_call_stats["total"] += 1
        self.list_calls.append((kind, namespace))

        if kind in self.delays:
            await asyncio.sleep(self.delays[kind])
        if kind in self.failures:
            raise self.failures[kind]

        results = []
        for (res_kind, res_ns, _), resource in self.resources.items():
            if res_kind != kind:
                continue
            if namespace and res_ns != namespace:
                continue
            results.append(resource)

        return results, {"resource_version": "12345"}

    def get_api_call_stats(self) -> dict[str, int]:
        """Get API call statistics."""
        return self._api_call_stats.copy()


class ApiError(Exception):
    """Error carrying an HTTP status, shaped like kubernetes ApiException."""

    def __init__(self, status: int, reason: str = ""):
        super().__init__(f"({status}) {reason}")
        self.status = status
        self.reason = reason


def make_resource(
    kind: str,
    name: str,
    namespace: str | None = "default",
    labels: dict[str, str] | None = None,
    owner: tuple[str, str] | None = None,
    spec: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a resource dictionary shaped like an API list item."""
    metadata: dict[str, Any] = {"name": name, "uid": f"{kind.lower()}-{name}"}
    if namespace is not None:
        metadata["namespace"] = namespace
    if labels is not None:
        metadata["labels"] = labels
    if owner is not None:
        owner_kind, owner_name = owner
        metadata["ownerReferences"] = [
            {"kind": owner_kind, "name": owner_name, "uid": f"{owner_kind.lower()}-{owner_name}"}
        ]

    resource: dict[str, Any] = {"kind": kind, "metadata": metadata}
    if spec is not None:
        resource["spec"] = spec
    return resource


def make_namespace(name: str) -> dict[str, Any]:
    labels = {"kubernetes.io/metadata.name": name}
    return make_resource("Namespace", name, namespace=None, labels=labels)


def make_node(name: str) -> dict[str, Any]:
    return make_resource(
        "Node", name, namespace=None, labels={"kubernetes.io/hostname": name}
    )


@pytest.fixture
def sample_service() -> dict[str, Any]:
    """Service selecting app=web."""
    return make_resource(
        "Service",
        "web",
        labels={"app": "web"},
        spec={"type": "ClusterIP", "selector": {"app": "web"}, "ports": [{"port": 80}]},
    )


@pytest.fixture
def sample_pods() -> list[dict[str, Any]]:
    """One pod matching the web service and one that does not."""
    return [
        make_resource("Pod", "web-1", labels={"app": "web"}),
        make_resource("Pod", "web-2", labels={"app": "other"}),
    ]


@pytest.fixture
def sample_deployment() -> dict[str, Any]:
    return make_resource(
        "Deployment",
        "api",
        labels={"app": "api"},
        spec={"replicas": 2, "selector": {"matchLabels": {"app": "api"}}},
    )


@pytest.fixture
def sample_replicaset() -> dict[str, Any]:
    return make_resource(
        "ReplicaSet",
        "api-7f9c",
        labels={"app": "api", "pod-template-hash": "7f9c"},
        owner=("Deployment", "api"),
    )


@pytest.fixture
def sample_replicaset_pod() -> dict[str, Any]:
    return make_resource(
        "Pod",
        "api-7f9c-x1",
        labels={"app": "api", "pod-template-hash": "7f9c"},
        owner=("ReplicaSet", "api-7f9c"),
    )


@pytest.fixture
def sample_hpa() -> dict[str, Any]:
    return make_resource(
        "HorizontalPodAutoscaler",
        "api-hpa",
        spec={
            "scaleTargetRef": {"apiVersion": "apps/v1", "kind": "Deployment", "name": "api"},
            "minReplicas": 1,
            "maxReplicas": 5,
        },
    )


@pytest.fixture
def mock_k8s_client(
    sample_service,
    sample_pods,
    sample_deployment,
    sample_replicaset,
    sample_replicaset_pod,
    sample_hpa,
) -> MockK8sClient:
    """Mock cluster with one namespace, two nodes and a small workload set."""
    client = MockK8sClient()
    client.add_resources(
        make_namespace("default"),
        make_namespace("kube-system"),
        make_node("worker-1"),
        make_node("worker-2"),
        sample_service,
        *sample_pods,
        sample_deployment,
        sample_replicaset,
        sample_replicaset_pod,
        sample_hpa,
        make_resource(
            "StatefulSet", "db", labels={"app": "db"}, spec={"serviceName": "db", "replicas": 1}
        ),
        make_resource("Pod", "db-0", labels={"app": "db"}, owner=("StatefulSet", "db")),
        make_resource("DaemonSet", "proxy", namespace="kube-system", labels={"k8s-app": "proxy"}),
        make_resource(
            "Pod",
            "proxy-abcde",
            namespace="kube-system",
            labels={"k8s-app": "proxy"},
            owner=("DaemonSet", "proxy"),
        ),
    )
    return client
