"""Tests for k8s_topology.discoverers.fetcher."""

import pytest

from k8s_topology.assembler import GraphAccumulator
from k8s_topology.catalog import NAMESPACED_KINDS, ResourceKind
from k8s_topology.discoverers.fetcher import ResourceFetcher, normalize_namespace_filter
from k8s_topology.models import TopologyOptions
from tests.conftest import ApiError, MockK8sClient, make_namespace, make_resource


def _ids(accumulator):
    return {node.id for nodes in accumulator.nodes_by_kind().values() for node in nodes}


@pytest.mark.parametrize(
    "value,expected",
    [(None, None), ("", None), ("all", None), ("  ", None), ("prod", "prod"), (" prod ", "prod")],
)
def test_normalize_namespace_filter(value, expected):
    assert normalize_namespace_filter(value) == expected


@pytest.mark.asyncio
async def test_fetch_all_kinds_cluster_wide(mock_k8s_client):
    fetcher = ResourceFetcher(mock_k8s_client)
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("all", accumulator)

    assert set(result.succeeded_kinds) == set(ResourceKind)
    assert result.failed_kinds == []
    assert result.timed_out_kinds == []
    assert result.is_partial is False
    assert sorted(result.namespaces) == ["default", "kube-system"]

    ids = _ids(accumulator)
    assert "node:worker-1" in ids
    assert "ns:kube-system" in ids
    assert "pod:kube-system:proxy-abcde" in ids
    assert "hpa:default:api-hpa" in ids

    namespaced_calls = [call for call in mock_k8s_client.list_calls if call[0] == "Pod"]
    assert namespaced_calls == [("Pod", None)]


@pytest.mark.asyncio
async def test_fetch_single_namespace(mock_k8s_client):
    fetcher = ResourceFetcher(mock_k8s_client)
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("kube-system", accumulator)

    ids = _ids(accumulator)
    assert "ns:kube-system" in ids
    assert "ns:default" not in ids
    assert "pod:kube-system:proxy-abcde" in ids
    assert "pod:default:web-1" not in ids
    # Nodes are cluster-scoped and always listed without a namespace.
    assert "node:worker-1" in ids
    assert ("Node", None) in mock_k8s_client.list_calls
    assert ("Pod", "kube-system") in mock_k8s_client.list_calls
    assert result.namespace == "kube-system"


@pytest.mark.asyncio
async def test_unknown_namespace_skips_namespaced_discovery(mock_k8s_client):
    fetcher = ResourceFetcher(mock_k8s_client)
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("missing", accumulator)

    assert _ids(accumulator) == {"node:worker-1", "node:worker-2"}
    assert not any(kind in result.resources for kind in NAMESPACED_KINDS)


@pytest.mark.asyncio
async def test_namespace_list_failure_returns_nodes_only(mock_k8s_client):
    mock_k8s_client.fail("Namespace", ApiError(403, "Forbidden"))
    fetcher = ResourceFetcher(mock_k8s_client)
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("", accumulator)

    assert _ids(accumulator) == {"node:worker-1", "node:worker-2"}
    assert ResourceKind.NAMESPACE in result.failed_kinds
    assert result.permission_errors == ["Namespace (namespace: all)"]
    assert not any(call[0] == "Pod" for call in mock_k8s_client.list_calls)


@pytest.mark.asyncio
async def test_single_kind_failure_is_isolated(mock_k8s_client):
    mock_k8s_client.fail("Service", ApiError(500, "Internal Server Error"))
    fetcher = ResourceFetcher(mock_k8s_client)
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("all", accumulator)

    assert result.failed_kinds == [ResourceKind.SERVICE]
    assert ResourceKind.SERVICE not in result.resources
    assert ResourceKind.POD in result.resources
    assert not any(node_id.startswith("svc:") for node_id in _ids(accumulator))
    assert "deploy:default:api" in _ids(accumulator)


@pytest.mark.asyncio
async def test_slow_kind_is_abandoned_at_deadline(mock_k8s_client):
    mock_k8s_client.delay("Pod", 5.0)
    fetcher = ResourceFetcher(mock_k8s_client, TopologyOptions(timeout_seconds=0.2))
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("all", accumulator)

    assert result.timed_out_kinds == [ResourceKind.POD]
    assert ResourceKind.POD not in result.resources
    assert ResourceKind.SERVICE in result.resources
    assert not any(node_id.startswith("pod:") for node_id in _ids(accumulator))


@pytest.mark.asyncio
async def test_include_nodes_disabled(mock_k8s_client):
    fetcher = ResourceFetcher(mock_k8s_client, TopologyOptions(include_nodes=False))
    accumulator = GraphAccumulator()

    await fetcher.fetch("all", accumulator)

    assert not any(node_id.startswith("node:") for node_id in _ids(accumulator))
    assert ("Node", None) not in mock_k8s_client.list_calls


@pytest.mark.asyncio
async def test_unnamed_items_are_skipped():
    client = MockK8sClient()
    client.add_resources(make_namespace("default"), make_resource("Pod", "web-1"))
    unnamed = {"kind": "Pod", "metadata": {"namespace": "default"}}
    client.resources[("Pod", "default", None)] = unnamed
    fetcher = ResourceFetcher(client)
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("all", accumulator)

    assert [item["metadata"]["name"] for item in result.resources[ResourceKind.POD]] == ["web-1"]
    assert "pod:default:web-1" in _ids(accumulator)


@pytest.mark.asyncio
async def test_fetch_stats(mock_k8s_client):
    mock_k8s_client.fail("HorizontalPodAutoscaler", ApiError(404, "Not Found"))
    fetcher = ResourceFetcher(mock_k8s_client)

    result = await fetcher.fetch(None, GraphAccumulator())
    stats = result.stats()

    assert stats["namespace"] == "all"
    assert stats["failed"] == ["HorizontalPodAutoscaler"]
    assert stats["items"]["Pod"] == 5
    assert stats["items"]["Node"] == 2


@pytest.mark.asyncio
async def test_malformed_items_do_not_drop_the_kind():
    client = MockK8sClient()
    client.add_resources(
        make_namespace("default"),
        make_resource("Pod", "ok", labels={"app": "web"}),
        make_resource("Pod", "bad", labels=["not", "a", "map"]),
    )
    client.resources[("Pod", "default", "garbage")] = "not-a-resource"
    fetcher = ResourceFetcher(client)
    accumulator = GraphAccumulator()

    result = await fetcher.fetch("all", accumulator)

    assert ResourceKind.POD in result.succeeded_kinds
    assert ResourceKind.POD not in result.failed_kinds
    assert [item["metadata"]["name"] for item in result.resources[ResourceKind.POD]] == [
        "ok",
        "bad",
    ]
    nodes = {node.id: node for node in accumulator.nodes_by_kind()[ResourceKind.POD]}
    assert nodes["pod:default:ok"].labels == {"app": "web"}
    assert nodes["pod:default:bad"].labels == {}


@pytest.mark.asyncio
async def test_unexpected_task_error_is_recorded_as_failure(mock_k8s_client, monkeypatch):
    list_resources = mock_k8s_client.list_resources

    async def broken_pod_listing(kind, namespace=None, label_selector=None):
        if kind == "Pod":
            # Not iterable: the error escapes the per-kind error handling.
            return 42, {}
        return await list_resources(kind, namespace=namespace, label_selector=label_selector)

    monkeypatch.setattr(mock_k8s_client, "list_resources", broken_pod_listing)
    fetcher = ResourceFetcher(mock_k8s_client)

    result = await fetcher.fetch("all", GraphAccumulator())

    assert result.failed_kinds == [ResourceKind.POD]
    assert ResourceKind.POD not in result.resources
    assert ResourceKind.POD not in result.succeeded_kinds
    assert ResourceKind.SERVICE in result.succeeded_kinds
    assert result.is_partial
