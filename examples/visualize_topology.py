"""
Render a cluster topology to an image and a DOT file.
Requires the visualization extra: pip install k8s-topology[visualization]
"""

import asyncio
from pathlib import Path

from k8s_topology import KubernetesAdapter, TopologyBuilder, TopologyOptions
from k8s_topology.visualization import draw_topology, export_to_dot


async def demonstrate_visualization():
    print("=== K8s Topology Visualization Demo ===\n")

    options = TopologyOptions(layout_rows_per_column=15)
    builder = TopologyBuilder(KubernetesAdapter(), options)

    namespace = "default"
    graph = await builder.build_cluster_graph(namespace)
    print(f"Graph built: {len(graph.nodes)} nodes, {len(graph.edges)} edges\n")

    output_dir = Path("test-output")
    output_dir.mkdir(exist_ok=True)

    print("1. Grid layout image...")
    draw_topology(graph, "test-output/topology.png", options, title=f"Namespace: {namespace}")
    print("   ✓ Saved to test-output/topology.png")

    print("\n2. Graphviz DOT export...")
    export_to_dot(graph, "test-output/topology.dot")
    print("   ✓ Saved to test-output/topology.dot")
    print("   Render with: dot -Tpng test-output/topology.dot -o topology-dot.png")


if __name__ == "__main__":
    asyncio.run(demonstrate_visualization())
