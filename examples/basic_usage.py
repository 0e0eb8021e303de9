"""Basic usage example for k8s-topology."""

import asyncio
import json
import logging
import sys

from k8s_topology import KubernetesAdapter, TopologyBuilder, TopologyOptions


async def main(namespace: str = "all"):
    """Build a topology snapshot and print its layout payload."""
    options = TopologyOptions(timeout_seconds=30)
    client = KubernetesAdapter(request_timeout=options.effective_request_timeout)
    builder = TopologyBuilder(client, options)

    print(f"Building topology for namespace: {namespace}")
    graph = await builder.build_cluster_graph(namespace)

    print("\nGraph Statistics:")
    print(f"  Nodes: {len(graph.nodes)}")
    print(f"  Edges: {len(graph.edges)}")

    print("\nRelationships:")
    for edge in graph.edges:
        print(f"  {edge.source} --[{edge.rule.value}]--> {edge.target}")

    stats = builder.get_fetch_stats()
    if stats["failed"] or stats["timed_out"]:
        print("\nPartial snapshot:")
        print(f"  Failed kinds: {', '.join(stats['failed']) or '-'}")
        print(f"  Timed out kinds: {', '.join(stats['timed_out']) or '-'}")
    for error in builder.get_permission_errors():
        print(f"  Permission denied: {error}")

    visual = await builder.build_topology(namespace)
    with open("topology.json", "w") as f:
        json.dump(visual.to_dict(), f, indent=2)
    print("\nLayout payload written to topology.json")

    api_stats = client.get_api_call_stats()
    print("\nKubernetes API Statistics:")
    print(f"  list_resources calls: {api_stats['list_resources']}")
    print(f"  Total API calls: {api_stats['total']}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "all"))
